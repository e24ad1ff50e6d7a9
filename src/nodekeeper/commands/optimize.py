"""
Command to compact the store through its own optimizer.

Stores without an optimizer raise UnsupportedOperationError.
"""

from nodekeeper.commands.base import Command
from nodekeeper.core.context import ExecutionContext


class Optimize(Command):

    def _do_execute(self, context: ExecutionContext) -> None:
        context.store.optimize()
