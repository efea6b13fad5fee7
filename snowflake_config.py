"""
Configuration settings for the Snowflake ID generator.

Every value can be overridden through the environment.
"""

import os


def _optional_int(name):
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    return int(value)


# Custom epoch in milliseconds since 1970-01-01 UTC (None = time of construction)
EPOCH = _optional_int("SNOWFLAKE_EPOCH")

# Node identity, assigned out of band (must be unique per running generator)
DATACENTER_ID = int(os.getenv("SNOWFLAKE_DATACENTER_ID", 0))
MACHINE_ID = int(os.getenv("SNOWFLAKE_MACHINE_ID", 0))

# Bit layout: each width in [1, 60], total at most 61
SEQUENCE_BITS = int(os.getenv("SNOWFLAKE_SEQUENCE_BITS", 12))
MACHINE_ID_BITS = int(os.getenv("SNOWFLAKE_MACHINE_ID_BITS", 5))
DATACENTER_ID_BITS = int(os.getenv("SNOWFLAKE_DATACENTER_ID_BITS", 5))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")
