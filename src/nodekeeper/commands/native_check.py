"""
Command to run the store's own consistency check.
"""

import logging

from nodekeeper.commands.base import Command
from nodekeeper.core.context import ExecutionContext

logger = logging.getLogger(__name__)


class NativeConsistencyCheck(Command):

    def __init__(self, fix: bool = True):
        super().__init__()
        self.fix = fix

    def _do_execute(self, context: ExecutionContext) -> int:
        return context.store.check_consistency(None, True, self.fix)
