"""
Domain models for jobflow.

This package contains pure domain logic with no database coupling.
"""

from .history import StatusHistoryEntry, history_gaps
from .job import Actor, Job, JobStatus, Role, TransitionRequest

__all__ = [
    "Actor",
    "Job",
    "JobStatus",
    "Role",
    "StatusHistoryEntry",
    "TransitionRequest",
    "history_gaps",
]
