"""
Pure domain model for service jobs.

This module contains the Job dataclass and the closed status and role
enumerations. There is no coupling to the database layer; all
persistence logic is handled by the repository layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from dateutil.tz import tzutc


def _normalize(text: str) -> str:
    return text.strip().lower().replace("-", "_").replace(" ", "_")


class JobStatus(Enum):
    """Job lifecycle states."""

    PENDING = "pending"  # Created, waiting for a technician
    IN_PROGRESS = "in_progress"  # Work has started
    ON_HOLD = "on_hold"  # Paused, needs a comment explaining why
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, text: str) -> JobStatus:
        """
        Parse a status literal.

        Accepts "in_progress", "In-Progress" and "in progress" alike.

        Raises:
            ValueError: If text is not one of the five status literals
        """
        if isinstance(text, cls):
            return text
        if not isinstance(text, str):
            raise ValueError(f"Invalid job status {text!r}")
        return cls(_normalize(text))

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title().replace(" ", "-")


class Role(Enum):
    """User roles known to the workflow."""

    ADMIN = "admin"
    MANAGER = "manager"
    DISPATCHER = "dispatcher"
    TECHNICIAN = "technician"

    @classmethod
    def parse(cls, text: str) -> Role:
        if isinstance(text, cls):
            return text
        if not isinstance(text, str):
            raise ValueError(f"Invalid role {text!r}")
        return cls(_normalize(text))


@dataclass(frozen=True)
class Actor:
    """A user acting on a job, with the role resolved from storage."""

    id: int
    role: Optional[Role]
    name: Optional[str] = None


@dataclass(frozen=True)
class TransitionRequest:
    """One requested status change, built per call and never stored."""

    job_id: int
    requested_status: str
    acting_user_id: int
    comment: Optional[str] = None
    claimed_role: Optional[str] = None


@dataclass
class Job:  # pylint: disable=too-many-instance-attributes
    """
    Pure domain model representing a service job.

    The workflow engine only ever proposes changes to status, the
    timestamps and actual_duration. Everything else belongs to the
    CRUD layer that created the job.
    """

    # Identity
    id: int
    title: str = ""

    # Status
    status: JobStatus = JobStatus.PENDING
    assigned_to: Optional[int] = None

    # Durations, in minutes
    estimated_duration: Optional[int] = None
    actual_duration: Optional[int] = None

    # Timing
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    status_changed_at: Optional[datetime] = None
    status_changed_by: Optional[int] = None

    def __post_init__(self):
        if self.created_at is None:
            self.created_at = datetime.now(tzutc())
        if not isinstance(self.status, JobStatus):
            self.status = JobStatus.parse(self.status)
        if self.estimated_duration is not None and self.estimated_duration <= 0:
            raise ValueError(
                f"estimated_duration must be positive, got {self.estimated_duration}")

    def is_assigned(self) -> bool:
        return self.assigned_to is not None

    def is_assigned_to(self, user_id: int) -> bool:
        return self.assigned_to is not None and self.assigned_to == user_id

    def __str__(self) -> str:
        assignee = self.assigned_to if self.is_assigned() else "unassigned"
        return f"[{self.id}] {self.status.label} ({assignee}) {self.title}"
