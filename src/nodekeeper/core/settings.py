"""
Project-wide constants or “settings” that are unlikely to change at runtime.
"""

import uuid

ROOT_NODE_ID = uuid.UUID("cafebabe-cafe-babe-cafe-babecafebabe")

DEFAULT_CACHE_SIZE = 1000
DEFAULT_SAVE_THRESHOLD = 5000  # Pending deletions before an intermediate commit
PROGRESS_INTERVAL = 10000  # Nodes between consistency check progress lines
CACHE_REPORT_INTERVAL = 10000000  # Cache accesses between hit ratio lines

PATH_SEPARATOR = "/"
NAME_WILDCARD = "*"
