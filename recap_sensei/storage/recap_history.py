"""
Recap history.

Completed results are appended to a bounded, newest-first history. The
history is append-only: no keys and no de-duplication. Once it holds
max_entries results, appending evicts the oldest one.
"""

from abc import ABC, abstractmethod
from collections import deque
from datetime import datetime
from typing import Deque, List, Optional

from sqlalchemy import delete
from sqlmodel import Field, SQLModel, col, func, select

from ..recap_generator.models.recap_models import PipelineResult
from ..utils.logger_utils import setup_logging
from .database import DatabaseManager

logger = setup_logging(__name__)

DEFAULT_MAX_ENTRIES = 50


class ResultStore(ABC):
    """Bounded, newest-first history of completed results."""

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries

    @abstractmethod
    def append_result(self, result: PipelineResult) -> None:
        """Insert a result at the front, evicting the oldest entries beyond the bound."""

    @abstractmethod
    def list_results(self, limit: Optional[int] = None) -> List[PipelineResult]:
        """Results newest first."""

    @abstractmethod
    def clear(self) -> None:
        pass

    @abstractmethod
    def count(self) -> int:
        pass

    def close(self) -> None:
        """Release any resources held by the store."""


class InMemoryResultStore(ResultStore):
    """History kept in process memory."""

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        super().__init__(max_entries)
        self._entries: Deque[PipelineResult] = deque(maxlen=max_entries)

    def append_result(self, result: PipelineResult) -> None:
        self._entries.appendleft(result)

    def list_results(self, limit: Optional[int] = None) -> List[PipelineResult]:
        entries = list(self._entries)
        return entries if limit is None else entries[:limit]

    def clear(self) -> None:
        self._entries.clear()

    def count(self) -> int:
        return len(self._entries)


class RecapHistoryEntry(SQLModel, table=True):
    """One saved recap."""
    __tablename__ = "recap_history"

    id: Optional[int] = Field(default=None, primary_key=True)
    run_id: int
    anime: Optional[str] = Field(default=None, index=True)
    episode: Optional[str] = None
    title: Optional[str] = None
    blurb: str
    payload: str = Field(description="PipelineResult as JSON")
    saved_at: datetime = Field(default_factory=datetime.now)

    @classmethod
    def from_result(cls, result: PipelineResult) -> "RecapHistoryEntry":
        return cls(
            run_id=result.run_id,
            anime=result.subject_label,
            episode=result.episode_label,
            title=result.recap.title,
            blurb=result.blurb,
            payload=result.model_dump_json(),
        )

    def to_result(self) -> PipelineResult:
        return PipelineResult.model_validate_json(self.payload)


class SQLModelResultStore(ResultStore):
    """History persisted in a SQL database through SQLModel."""

    def __init__(self, db_url: str = 'sqlite:///recap_history.sqlite', max_entries: int = DEFAULT_MAX_ENTRIES,
                 db_manager: Optional[DatabaseManager] = None):
        super().__init__(max_entries)
        self.db_manager = db_manager or DatabaseManager(db_url)

    def close(self) -> None:
        self.db_manager.dispose()
        logger.debug("History database engine disposed")

    def append_result(self, result: PipelineResult) -> None:
        with self.db_manager.session_scope() as session:
            session.add(RecapHistoryEntry.from_result(result))
            session.flush()

            # Entries are newest-first by id; everything past the bound goes
            stale_ids = session.exec(
                select(RecapHistoryEntry.id)
                .order_by(col(RecapHistoryEntry.id).desc())
                .offset(self.max_entries)
            ).all()
            if stale_ids:
                session.execute(delete(RecapHistoryEntry).where(col(RecapHistoryEntry.id).in_(stale_ids)))
                logger.debug(f"Evicted {len(stale_ids)} old recap(s) from history")

        logger.info(f"Added recap for {result.subject_label or 'Unknown'} Ep{result.episode_label or '?'} to history")

    def list_results(self, limit: Optional[int] = None) -> List[PipelineResult]:
        with self.db_manager.session_scope() as session:
            query = select(RecapHistoryEntry).order_by(col(RecapHistoryEntry.id).desc())
            if limit is not None:
                query = query.limit(limit)
            entries = session.exec(query).all()
            return [entry.to_result() for entry in entries]

    def clear(self) -> None:
        with self.db_manager.session_scope() as session:
            session.execute(delete(RecapHistoryEntry))
        logger.info("Cleared recap history")

    def count(self) -> int:
        with self.db_manager.session_scope() as session:
            return session.exec(select(func.count()).select_from(RecapHistoryEntry)).one()


def create_result_store(db_url: Optional[str] = None, max_entries: int = DEFAULT_MAX_ENTRIES) -> ResultStore:
    """SQL-backed store when a database URL is given, in-memory otherwise."""
    if db_url:
        return SQLModelResultStore(db_url, max_entries)
    return InMemoryResultStore(max_entries)
