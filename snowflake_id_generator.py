import time
import logging
import threading
from datetime import datetime

import snowflake_config
from snowflake_errors import ClockRegressionError, ConfigurationError

logger = logging.getLogger(__name__)


def current_millis():
    """Wall clock time in milliseconds since 1970-01-01 UTC"""
    return int(time.time() * 1000)


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


class SnowflakeIDGenerator:
    """Twitter Snowflake ID Generator with a configurable bit layout

    An ID is a non-negative integer broken down into (MSB to LSB):
    - 1 bit: sign bit, always 0
    - timestamp: milliseconds since the generator's epoch (whatever is left of 63 bits)
    - datacenter ID: datacenter_id_bits (default 5)
    - machine ID: machine_id_bits (default 5)
    - sequence number: sequence_bits (default 12)

    A single instance is safe to share between threads. Two instances never
    collide as long as their (datacenter_id, machine_id) pairs differ.
    """

    DEFAULT_SEQUENCE_BITS = 12
    DEFAULT_MACHINE_ID_BITS = 5
    DEFAULT_DATACENTER_ID_BITS = 5

    # Allowed width of each field
    MIN_BITS = 1
    MAX_BITS = 60

    # Bits below the sign bit
    TOTAL_BITS = 63
    # Sum of the three field widths; keeps at least two bits for the timestamp
    MAX_LAYOUT_BITS = 61

    def __init__(self, datacenter_id, machine_id, *, epoch=None,
                 sequence_bits=DEFAULT_SEQUENCE_BITS,
                 machine_id_bits=DEFAULT_MACHINE_ID_BITS,
                 datacenter_id_bits=DEFAULT_DATACENTER_ID_BITS,
                 clock=None):
        """Initialize the ID generator

        Args:
            datacenter_id (int): ID of the datacenter (0 to 2^datacenter_id_bits - 1)
            machine_id (int): ID of the machine (0 to 2^machine_id_bits - 1)
            epoch (int, optional): Custom epoch in milliseconds, defaults to now.
                Negative epochs and epochs later than the clock are rejected
            sequence_bits (int): Width of the per-millisecond counter
            machine_id_bits (int): Width of the machine ID field
            datacenter_id_bits (int): Width of the datacenter ID field
            clock (callable, optional): Returns the current time in milliseconds

        Raises:
            ConfigurationError: If any width or ID is out of range, or the epoch
                is negative or in the future
        """
        self._validate_bits(sequence_bits=sequence_bits,
                            machine_id_bits=machine_id_bits,
                            datacenter_id_bits=datacenter_id_bits)

        self.sequence_bits = sequence_bits
        self.machine_id_bits = machine_id_bits
        self.datacenter_id_bits = datacenter_id_bits

        # Maximum values for each section
        self.max_sequence = -1 ^ (-1 << sequence_bits)
        self.max_machine_id = -1 ^ (-1 << machine_id_bits)
        self.max_datacenter_id = -1 ^ (-1 << datacenter_id_bits)

        # Bit shifts for each section
        self.machine_id_shift = sequence_bits
        self.datacenter_id_shift = self.machine_id_shift + machine_id_bits
        self.timestamp_shift = self.datacenter_id_shift + datacenter_id_bits
        self.timestamp_bits = self.TOTAL_BITS - self.timestamp_shift

        if not _is_int(datacenter_id) or datacenter_id < 0 or datacenter_id > self.max_datacenter_id:
            raise ConfigurationError(
                f"Datacenter ID must be between 0 and {self.max_datacenter_id}, got {datacenter_id!r}")
        if not _is_int(machine_id) or machine_id < 0 or machine_id > self.max_machine_id:
            raise ConfigurationError(
                f"Machine ID must be between 0 and {self.max_machine_id}, got {machine_id!r}")

        self._clock = clock or current_millis
        now = self._clock()
        if epoch is None:
            epoch = now
        if not _is_int(epoch) or epoch < 0 or epoch > now:
            raise ConfigurationError(f"Epoch must be between 0 and {now}, got {epoch!r}")

        self.datacenter_id = datacenter_id
        self.machine_id = machine_id
        self._epoch = epoch
        self._sequence = 0
        self._last_timestamp = -1
        self._lock = threading.Lock()

        logger.info(
            f"Initialized ID generator with datacenter ID: {datacenter_id}, machine ID: {machine_id}, "
            f"layout: {self.timestamp_bits}/{datacenter_id_bits}/{machine_id_bits}/{sequence_bits}, "
            f"epoch: {epoch}")

    @classmethod
    def from_config(cls, settings=None, clock=None):
        """Build a generator from the values in snowflake_config

        Args:
            settings (module, optional): Any object with the snowflake_config attributes

        Returns:
            SnowflakeIDGenerator: The configured generator
        """
        settings = settings or snowflake_config
        return cls(
            settings.DATACENTER_ID,
            settings.MACHINE_ID,
            epoch=settings.EPOCH,
            sequence_bits=settings.SEQUENCE_BITS,
            machine_id_bits=settings.MACHINE_ID_BITS,
            datacenter_id_bits=settings.DATACENTER_ID_BITS,
            clock=clock,
        )

    @classmethod
    def _validate_bits(cls, **widths):
        for name, width in widths.items():
            if not _is_int(width) or width < cls.MIN_BITS or width > cls.MAX_BITS:
                raise ConfigurationError(
                    f"{name} out of range (should be between [{cls.MIN_BITS}, {cls.MAX_BITS}]), got {width!r}")
        total = sum(widths.values())
        if total > cls.MAX_LAYOUT_BITS:
            raise ConfigurationError(
                f"Total bit count {total} is too large (should be at most {cls.MAX_LAYOUT_BITS})")

    @property
    def epoch(self):
        return self._epoch

    @property
    def last_timestamp(self):
        """Absolute millisecond of the last issued ID, -1 before the first one"""
        return self._last_timestamp

    @property
    def sequence(self):
        return self._sequence

    def _wait_next_millis(self, last_timestamp):
        """Spin until the clock moves past last_timestamp

        Args:
            last_timestamp (int): The last timestamp used

        Returns:
            int: The next timestamp in milliseconds
        """
        timestamp = self._clock()
        while timestamp <= last_timestamp:
            timestamp = self._clock()
        return timestamp

    def next_id(self):
        """Generate the next unique ID

        Returns:
            int: A unique, per-instance non-decreasing ID

        Raises:
            ClockRegressionError: If the clock reads earlier than the last issued ID
        """
        with self._lock:
            timestamp = self._clock()

            if timestamp < self._last_timestamp:
                raise ClockRegressionError(self._last_timestamp, timestamp)

            if timestamp == self._last_timestamp:
                self._sequence = (self._sequence + 1) & self.max_sequence
                # Sequence exhausted for this millisecond
                if self._sequence == 0:
                    timestamp = self._wait_next_millis(self._last_timestamp)
            else:
                self._sequence = 0

            self._last_timestamp = timestamp

            return self._pack(timestamp - self._epoch, self.datacenter_id, self.machine_id, self._sequence)

    def reset_epoch(self, epoch):
        """Replace the epoch used for the timestamp section

        IDs generated after a reset may repeat IDs generated before it. Only use
        this when the ID is one component of a larger key (for example a date
        prefix followed by the ID) and the outer component keeps keys distinct.

        Args:
            epoch (int): New epoch in milliseconds
        """
        if not _is_int(epoch):
            raise TypeError(f"Epoch must be an integer, got {type(epoch).__name__}")
        with self._lock:
            previous, self._epoch = self._epoch, epoch
        logger.warning(
            f"Epoch reset from {previous} to {epoch}; new IDs may collide with IDs issued before the reset")

    def _pack(self, timestamp, datacenter_id, machine_id, sequence):
        return (
            (timestamp << self.timestamp_shift) |
            (datacenter_id << self.datacenter_id_shift) |
            (machine_id << self.machine_id_shift) |
            sequence
        )

    def compose_id(self, timestamp, datacenter_id, machine_id, sequence):
        """Pack the four sections into an ID using this generator's layout

        Args:
            timestamp (int): Milliseconds since the epoch
            datacenter_id (int): Datacenter ID
            machine_id (int): Machine ID
            sequence (int): Sequence number

        Returns:
            int: The packed ID
        """
        for name, value, maximum in (("datacenter_id", datacenter_id, self.max_datacenter_id),
                                     ("machine_id", machine_id, self.max_machine_id),
                                     ("sequence", sequence, self.max_sequence)):
            if value < 0 or value > maximum:
                raise ValueError(f"{name} must be between 0 and {maximum}, got {value}")
        if timestamp < 0:
            raise ValueError(f"timestamp must not be negative, got {timestamp}")
        return self._pack(timestamp, datacenter_id, machine_id, sequence)

    def parse_id(self, snowflake_id):
        """Parse a snowflake ID back into its components

        Args:
            snowflake_id (int): The snowflake ID to parse

        Returns:
            dict: A dictionary with the components of the ID
        """
        if snowflake_id < 0:
            raise ValueError(f"Snowflake IDs are never negative, got {snowflake_id}")

        timestamp = snowflake_id >> self.timestamp_shift
        datacenter_id = (snowflake_id >> self.datacenter_id_shift) & self.max_datacenter_id
        machine_id = (snowflake_id >> self.machine_id_shift) & self.max_machine_id
        sequence = snowflake_id & self.max_sequence

        # Convert timestamp back to a readable time
        try:
            readable_time = datetime.fromtimestamp((timestamp + self._epoch) / 1000)
            generated_time = readable_time.strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
        except (OverflowError, OSError, ValueError):
            generated_time = None

        return {
            "id": snowflake_id,
            "timestamp": timestamp,
            "datacenter_id": datacenter_id,
            "machine_id": machine_id,
            "sequence": sequence,
            "generated_time": generated_time,
        }

    def fields(self):
        """Sections of the layout from most to least significant

        Returns:
            list: (name, bits, shift) tuples
        """
        return [
            ("timestamp", self.timestamp_bits, self.timestamp_shift),
            ("datacenter_id", self.datacenter_id_bits, self.datacenter_id_shift),
            ("machine_id", self.machine_id_bits, self.machine_id_shift),
            ("sequence", self.sequence_bits, 0),
        ]

    def __repr__(self):
        return (f"{type(self).__name__}(datacenter_id={self.datacenter_id}, machine_id={self.machine_id}, "
                f"epoch={self._epoch}, sequence_bits={self.sequence_bits}, "
                f"machine_id_bits={self.machine_id_bits}, datacenter_id_bits={self.datacenter_id_bits})")
