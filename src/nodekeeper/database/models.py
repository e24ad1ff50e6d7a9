# src/nodekeeper/database/models.py

from sqlalchemy import Boolean, Column, ForeignKey, Integer, JSON, String, Uuid
from sqlalchemy.orm import declarative_base, relationship

# Create the base class for SQLAlchemy models
Base = declarative_base()


class NodeRecord(Base):
    """A stored node. Parent links are plain columns so inconsistent trees can be stored and repaired."""
    __tablename__ = "nodes"

    id = Column(Uuid(as_uuid=True), primary_key=True)
    parent_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    is_node = Column(Boolean, nullable=False, default=True)
    shares = Column(JSON, nullable=True)  # additional parent ids of a shared node, as strings

    # Relationships
    child_entries = relationship(
        "ChildEntryRecord",
        back_populates="parent",
        order_by="ChildEntryRecord.position",
        cascade="all, delete-orphan",
    )


class ChildEntryRecord(Base):
    """One named child reference of a node, ordered by position."""
    __tablename__ = "child_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    parent_id = Column(Uuid(as_uuid=True), ForeignKey("nodes.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    name = Column(String, nullable=False)
    child_id = Column(Uuid(as_uuid=True), nullable=False, index=True)  # may dangle until repaired

    # Relationships
    parent = relationship("NodeRecord", back_populates="child_entries")
