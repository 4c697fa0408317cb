from .database import DatabaseManager
from .recap_history import (
    ResultStore,
    InMemoryResultStore,
    SQLModelResultStore,
    RecapHistoryEntry,
    create_result_store,
)

__all__ = [
    "DatabaseManager",
    "ResultStore",
    "InMemoryResultStore",
    "SQLModelResultStore",
    "RecapHistoryEntry",
    "create_result_store",
]
