# src/nodekeeper/core/errors.py
"""
Exception types raised by the node stores and the maintenance commands.
"""


class NodeKeeperError(Exception):
    """Base class for all nodekeeper errors."""


class StorageError(NodeKeeperError):
    """A load or store call failed in the underlying node store."""


class NoSuchNodeError(StorageError):
    """The requested node id is not known to the store."""

    def __init__(self, node_id):
        super().__init__(f"No node with id {node_id}")
        self.node_id = node_id


class UnsupportedOperationError(StorageError):
    """The store does not implement an optional operation."""


class OrphanDetected(NodeKeeperError):
    """
    A child and its claimed parent disagree about their relationship and
    the reference cannot be repaired from the traversing side.
    """

    def __init__(self, child_id, claimed_parent_id, message: str = None):
        super().__init__(
            message or f"Node {child_id} is not referenced by its parent {claimed_parent_id}"
        )
        self.child_id = child_id
        self.claimed_parent_id = claimed_parent_id


class InvalidPathSpec(NodeKeeperError, ValueError):
    """A path argument does not satisfy the command's preconditions."""


class AlreadyExecuted(NodeKeeperError, RuntimeError):
    """A command instance was executed a second time."""


class ChangeLogStateError(NodeKeeperError, RuntimeError):
    """A committed change log was modified without being reset."""


class UnreachedNodesError(NodeKeeperError):
    """Strict consistency check found records unreachable from the root."""

    def __init__(self, node_ids):
        super().__init__(f"{len(node_ids)} node(s) are not reachable from the root")
        self.node_ids = list(node_ids)
