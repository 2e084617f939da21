"""
Typed outcomes of workflow validation.

Expected business conditions are reported as Rejected values rather than
raised, so callers can map them to their own transport.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from jobflow.domain import JobStatus
from jobflow.utils import dateTimeToDb


class RejectionKind(Enum):
    NOT_FOUND = "not_found"
    INVALID_STATUS = "invalid_status"
    INVALID_TRANSITION = "invalid_transition"
    ROLE_NOT_AUTHORIZED = "role_not_authorized"
    FORBIDDEN_TRANSITION = "forbidden_transition"
    MISSING_COMMENT = "missing_comment"
    MISSING_ASSIGNMENT = "missing_assignment"
    BUSINESS_RULE_VIOLATION = "business_rule_violation"
    INVALID_ASSIGNEE = "invalid_assignee"
    CONFLICT = "conflict"  # job changed between validation and update
    INTERNAL_ERROR = "internal_error"

    @property
    def retryable(self) -> bool:
        return self in (RejectionKind.INTERNAL_ERROR, RejectionKind.CONFLICT)


@dataclass(frozen=True)
class TimeTracking:
    """Timestamp and duration updates implied by an accepted transition."""

    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    actual_duration: Optional[int] = None
    status_changed_at: Optional[datetime] = None
    status_changed_by: Optional[int] = None
    # Minutes spent in the status being left, goes to the history entry
    duration_in_status: Optional[int] = None

    def job_changes(self) -> Dict[str, Any]:
        changes = {}
        for name in ("started_at", "completed_at", "actual_duration",
                     "status_changed_at", "status_changed_by"):
            value = getattr(self, name)
            if value is not None:
                changes[name] = value
        return changes


@dataclass(frozen=True)
class Accepted:
    """
    The requested status change may go ahead.

    Nothing has been written yet: the caller applies job_changes() and,
    when requires_history_log is set, records a history entry.
    """

    current_status: JobStatus
    new_status: JobStatus
    comment: Optional[str] = None
    validated_at: Optional[datetime] = None
    time_tracking: TimeTracking = field(default_factory=TimeTracking)
    requires_history_log: bool = True
    is_status_change: bool = True

    ok = True

    def job_changes(self) -> Dict[str, Any]:
        if not self.is_status_change:
            return {}
        changes = {"status": self.new_status}
        changes.update(self.time_tracking.job_changes())
        return changes

    def to_dict(self) -> Dict[str, Any]:
        tracking = self.time_tracking
        return {
            "currentStatus": self.current_status.value,
            "newStatus": self.new_status.value,
            "comment": self.comment,
            "isStatusChange": self.is_status_change,
            "validatedAt": dateTimeToDb(self.validated_at),
            "requiresHistoryLog": self.requires_history_log,
            "timeTrackingData": {
                "started_at": dateTimeToDb(tracking.started_at),
                "completed_at": dateTimeToDb(tracking.completed_at),
                "actual_duration": tracking.actual_duration,
            },
        }


@dataclass(frozen=True)
class Rejected:
    kind: RejectionKind
    message: str
    allowed_transitions: Tuple[JobStatus, ...] = ()

    ok = False

    def to_dict(self) -> Dict[str, Any]:
        data = {"error": self.message, "kind": self.kind.value}
        if self.kind is RejectionKind.INVALID_TRANSITION:
            data["allowed_transitions"] = [s.value for s in self.allowed_transitions]
        return data


ValidationResult = Union[Accepted, Rejected]
