# File: nodekeeper/database/engine.py

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine


def get_engine(database_url: str, echo: bool = False) -> Engine:
    """Create the SQLAlchemy engine for a node store database."""
    return create_engine(database_url, echo=echo, future=True)
