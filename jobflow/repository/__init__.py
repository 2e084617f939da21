"""
Repository layer for job, user and history persistence.

This package contains the collaborator interfaces the workflow consumes
and a SQLite implementation of them.
"""

from .interface import HistoryRepository, JobRepository, RepositoryError, UserRepository
from .sqlite_repository import (
    Database,
    SqliteHistoryRepository,
    SqliteJobRepository,
    SqliteUserRepository,
)

__all__ = [
    "Database",
    "HistoryRepository",
    "JobRepository",
    "RepositoryError",
    "SqliteHistoryRepository",
    "SqliteJobRepository",
    "SqliteUserRepository",
    "UserRepository",
]
