"""
Repository interfaces for the workflow's collaborators.

This module defines the abstract interfaces that all repository
implementations must follow. Implementations raise RepositoryError for
any storage fault; "not found" is reported as None, never raised.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from jobflow.domain import Actor, Job, JobStatus, Role, StatusHistoryEntry


class RepositoryError(Exception):
    """A storage operation failed."""


class JobRepository(ABC):
    """Persistence for Job rows."""

    @abstractmethod
    def save(self, job: Job) -> None:
        """
        Insert or replace a job.

        Args:
            job: The job to save
        """

    @abstractmethod
    def get(self, job_id: int) -> Optional[Job]:
        """
        Get a job by id.

        Returns:
            The job if found, None otherwise
        """

    @abstractmethod
    def update_status(
        self,
        job_id: int,
        expected_status: JobStatus,
        changes: Dict[str, Any],
    ) -> bool:
        """
        Atomically apply changes if the job is still in expected_status.

        Args:
            job_id: The job id
            expected_status: Status the caller validated against
            changes: Column -> value; may include "status". None values
                clear the column.

        Returns:
            True if the row was updated, False if the job is gone or its
            status has moved on
        """

    @abstractmethod
    def update_assignee(self, job_id: int, assigned_to: Optional[int]) -> bool:
        """
        Set or clear the assigned technician.

        Returns:
            True if the job exists and was updated
        """

    @abstractmethod
    def delete(self, job_id: int) -> bool:
        """
        Delete a job.

        Returns:
            True if the job existed and was deleted
        """

    @abstractmethod
    def close(self) -> None:
        """Close repository and release resources."""


class UserRepository(ABC):
    """Read access to users and their roles."""

    @abstractmethod
    def save(self, actor: Actor) -> None:
        """Insert or replace a user."""

    @abstractmethod
    def get(self, user_id: int) -> Optional[Actor]:
        """Get a user, None if unknown."""

    def get_role(self, user_id: int) -> Optional[Role]:
        """
        Get a user's stored role.

        Returns:
            The role, or None for unknown users
        """
        actor = self.get(user_id)
        return actor.role if actor is not None else None


class HistoryRepository(ABC):
    """Append-only storage for status history."""

    @abstractmethod
    def append(self, entry: StatusHistoryEntry) -> StatusHistoryEntry:
        """
        Store a new history entry.

        Returns:
            The stored entry, with its id filled in
        """

    @abstractmethod
    def list_by_job(self, job_id: int) -> List[StatusHistoryEntry]:
        """
        Get all entries of a job.

        Returns:
            Entries ordered by changed_at, oldest first
        """

    def last_for_job(self, job_id: int) -> Optional[StatusHistoryEntry]:
        entries = self.list_by_job(job_id)
        return entries[-1] if entries else None
