"""
Maintenance commands. Each command instance runs at most once against an ExecutionContext.
"""

from nodekeeper.commands.base import Command, CommandState
from nodekeeper.commands.consistency_check import ConsistencyCheck
from nodekeeper.commands.native_check import NativeConsistencyCheck
from nodekeeper.commands.noop import Noop
from nodekeeper.commands.optimize import Optimize
from nodekeeper.commands.print_list import PrintList
from nodekeeper.commands.remove import Remove

__all__ = [
    'Command',
    'CommandState',
    'ConsistencyCheck',
    'NativeConsistencyCheck',
    'Noop',
    'Optimize',
    'PrintList',
    'Remove',
]
