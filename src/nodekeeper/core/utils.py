"""
Utility functions shared across modules: logging, counters and path text helpers.
"""

import logging
import threading
from typing import Optional, Tuple

from nodekeeper.core.errors import InvalidPathSpec
from nodekeeper.core.settings import NAME_WILDCARD, PATH_SEPARATOR

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "info", log_file: Optional[str] = None) -> None:
    """
    Send log records to the console and, when given, to a log file.

    Args:
        level: Level name (debug, info, warning, error)
        log_file: Optional path of a file that receives the same records
    """
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")

    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(level=numeric_level, format=LOG_FORMAT, handlers=handlers, force=True)
    # SQL echo is too chatty for maintenance runs
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)


class AtomicCounter:
    """A lock-guarded integer counter."""

    def __init__(self, initial: int = 0):
        self._value = initial
        self._lock = threading.Lock()

    def increment(self, delta: int = 1) -> int:
        """Add ``delta`` and return the new value."""
        with self._lock:
            self._value += delta
            return self._value

    def get_and_increment(self) -> int:
        with self._lock:
            value = self._value
            self._value += 1
            return value

    @property
    def value(self) -> int:
        return self._value


def get_name(path: str) -> str:
    """Last segment of a path ("" for the root)."""
    return path.rstrip(PATH_SEPARATOR).rsplit(PATH_SEPARATOR, 1)[-1]


def get_relative_parent(path: str, level: int = 1) -> str:
    """Strip ``level`` trailing segments from a path."""
    parent = path.rstrip(PATH_SEPARATOR)
    for _ in range(level):
        if PATH_SEPARATOR not in parent:
            return ""
        parent = parent.rsplit(PATH_SEPARATOR, 1)[0]
    return parent


def split_path(rel_path: str) -> Tuple[str, ...]:
    """Split a relative path into its non-empty segments."""
    return tuple(segment for segment in rel_path.split(PATH_SEPARATOR) if segment)


class NameFilter:
    """
    Single-wildcard name filter: a name matches when it starts with the text
    before the ``*`` and ends with the text after it.
    """

    def __init__(self, prefix: str, suffix: str):
        self.prefix = prefix
        self.suffix = suffix

    @classmethod
    def parse(cls, expression: str) -> Optional["NameFilter"]:
        """
        Build a filter from a name expression.

        Returns:
            None when the expression contains no wildcard

        Raises:
            InvalidPathSpec: If the expression has more than one wildcard
        """
        count = expression.count(NAME_WILDCARD)
        if count == 0:
            return None
        if count > 1:
            raise InvalidPathSpec(f"Only one '{NAME_WILDCARD}' is allowed in a name filter: {expression}")
        prefix, suffix = expression.split(NAME_WILDCARD)
        return cls(prefix, suffix)

    def starts_with(self, name: str) -> bool:
        return name.startswith(self.prefix)

    def ends_with(self, name: str) -> bool:
        return name.endswith(self.suffix)

    def __call__(self, name: str) -> bool:
        return self.starts_with(name) and self.ends_with(name)

    def __repr__(self) -> str:
        return f"NameFilter({self.prefix!r}{NAME_WILDCARD}{self.suffix!r})"
