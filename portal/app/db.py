"""Request-scoped database session and workspace store."""
from typing import Generator, Optional

from fastapi import Depends
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from modules.workspace.database import get_engine, get_session_factory
from modules.workspace.store import SqlAlchemyStore

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def get_db_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = get_engine()
    return _engine


def get_db() -> Generator[Session, None, None]:
    """One session per request; commit on success, rollback on error."""
    global _session_factory
    if _session_factory is None:
        _session_factory = get_session_factory(get_db_engine())
    session = _session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_store(db: Session = Depends(get_db)) -> SqlAlchemyStore:
    return SqlAlchemyStore(db)
