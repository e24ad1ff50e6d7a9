"""
Result models returned by the commands.
"""

import uuid
from typing import List, Optional

from pydantic import BaseModel, Field


class RepairRecord(BaseModel):
    """A stray child entry removed from the traversing parent."""
    parent_id: uuid.UUID
    child_id: uuid.UUID
    parent_path: str
    child_path: str


class OrphanRecord(BaseModel):
    """A child whose claimed parent does not reference it either."""
    child_id: uuid.UUID
    claimed_parent_id: Optional[uuid.UUID] = None
    referenced_by: uuid.UUID
    child_path: str


class CheckReport(BaseModel):
    """Outcome of a consistency check run."""
    nodes_processed: int = 0
    repairs: List[RepairRecord] = Field(default_factory=list)
    orphans: List[OrphanRecord] = Field(default_factory=list)
    unreached_ids: List[uuid.UUID] = Field(default_factory=list)
    id_scan_supported: bool = True
    dry_run: bool = False
    committed: bool = False
