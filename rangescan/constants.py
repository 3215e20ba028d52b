"""
Constants for rangescan.
"""

# Partition filter value meaning "the whole table".
NON_PARTITIONED = "Non-Partitioned"

# Upper bound for the number of ranges a single partitioning call produces.
MAX_PARTITIONS = 2**31 - 1

DEFAULT_NUM_PARTITIONS = 8
DEFAULT_BATCH_SIZE = 131072

ENV_PREFIX = "RANGESCAN_"
