"""
Exceptions raised by the Snowflake ID generator.
"""


class SnowflakeError(Exception):
    """Base class for all generator errors."""


class ConfigurationError(SnowflakeError, ValueError):
    """Bit layout, identity values or epoch are out of range.

    Only raised while constructing a generator.
    """


class ClockRegressionError(SnowflakeError, RuntimeError):
    """The clock reads earlier than the timestamp of the last issued ID."""

    def __init__(self, last_timestamp, current_timestamp):
        self.last_timestamp = last_timestamp
        self.current_timestamp = current_timestamp
        self.drift = last_timestamp - current_timestamp
        super().__init__(
            f"Clock moved backwards. Refusing to generate ID for {self.drift} milliseconds"
        )
