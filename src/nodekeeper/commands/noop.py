"""
Command that does nothing except start up the store.
"""

from nodekeeper.commands.base import Command
from nodekeeper.core.context import ExecutionContext


class Noop(Command):

    def _do_execute(self, context: ExecutionContext) -> None:
        pass
