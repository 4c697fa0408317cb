# database.py

from contextlib import contextmanager
from typing import Generator

from sqlmodel import SQLModel, Session, create_engine

from ..utils.logger_utils import setup_logging

logger = setup_logging(__name__)


class DatabaseManager:
    """Owns the SQLModel engine and hands out transactional sessions."""

    def __init__(self, db_url: str = 'sqlite:///recap_history.sqlite'):
        connect_args = {"check_same_thread": False} if db_url.startswith("sqlite") else {}
        self.engine = create_engine(db_url, echo=False, connect_args=connect_args)
        SQLModel.metadata.create_all(self.engine)
        logger.info(f"Database engine initialized with URL: {db_url}")

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Provide a transactional scope around a series of operations."""
        session = Session(self.engine)
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Session rollback due to exception: {e}")
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        """Close every pooled connection of the engine."""
        self.engine.dispose()
