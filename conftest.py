"""
Shared test fixtures.
"""

import pytest


class FakeClock:
    """Clock that holds its time until told otherwise.

    Values queued with script() are returned one per read, after which the
    clock keeps returning the last value.
    """

    def __init__(self, start=1_000_000):
        self.now = start
        self.reads = 0
        self._script = []

    def script(self, *values):
        self._script.extend(values)

    def advance(self, millis=1):
        self.now += millis

    def __call__(self):
        self.reads += 1
        if self._script:
            self.now = self._script.pop(0)
        return self.now


@pytest.fixture
def fake_clock():
    return FakeClock()
