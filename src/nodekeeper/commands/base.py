"""
Base class for maintenance commands.
"""

import logging
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from nodekeeper.core.context import ExecutionContext
from nodekeeper.core.errors import AlreadyExecuted

logger = logging.getLogger(__name__)


class CommandState(str, Enum):
    """Lifecycle of a command instance; the only transition is READY -> EXECUTED."""
    READY = "ready"
    EXECUTED = "executed"


class Command(ABC):
    """
    A maintenance command. All commands extend from this class.

    None of the commands can safely be re-run blindly (a partial repair changes
    what a second run finds), so every instance executes at most once.
    """

    def __init__(self):
        self._state = CommandState.READY
        self._state_lock = threading.Lock()

    @property
    def name(self) -> str:
        return type(self).__name__

    @property
    def state(self) -> CommandState:
        return self._state

    def execute(self, context: ExecutionContext) -> Any:
        """
        Run the command against the store of ``context``.

        Raises:
            AlreadyExecuted: If this instance has been executed before
        """
        with self._state_lock:
            if self._state is CommandState.EXECUTED:
                raise AlreadyExecuted(f"{self.name} was already executed")
            self._state = CommandState.EXECUTED
        return self._do_execute(context)

    @abstractmethod
    def _do_execute(self, context: ExecutionContext) -> Any:
        """Command body; the return value is handed back by ``execute``."""
