# nodekeeper/src/nodekeeper/database/session.py

import contextlib

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)


@contextlib.contextmanager
def get_session(session_factory: sessionmaker) -> Session:
    """
    Use as:
        with get_session(factory) as session:
            ...
    """
    db = session_factory()
    try:
        yield db
    finally:
        db.close()
