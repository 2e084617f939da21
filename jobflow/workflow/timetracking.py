"""Timestamps and durations implied by a transition."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from jobflow.domain import Job, JobStatus
from jobflow.utils import minutesBetween

from .result import TimeTracking


class TimeTrackingCalculator(object):
    """
    Pure computation of the time-tracking side effects.

    Pending -> In-Progress stamps started_at. Any move into Completed
    stamps completed_at and, when the job has a started_at, the actual
    duration in whole minutes. Every real transition moves
    status_changed_at and reports how long the job sat in the status it
    is leaving.
    """

    def compute(
        self,
        current: JobStatus,
        target: JobStatus,
        job: Job,
        now: datetime,
        actor_id: Optional[int] = None,
    ) -> TimeTracking:
        started_at = None
        completed_at = None
        actual_duration = None

        if current is JobStatus.PENDING and target is JobStatus.IN_PROGRESS:
            started_at = now

        if target is JobStatus.COMPLETED:
            completed_at = now
            if job.started_at is not None:
                actual_duration = minutesBetween(job.started_at, now)

        duration_in_status = None
        if job.status_changed_at is not None:
            duration_in_status = minutesBetween(job.status_changed_at, now)

        return TimeTracking(
            started_at=started_at,
            completed_at=completed_at,
            actual_duration=actual_duration,
            status_changed_at=now,
            status_changed_by=actor_id,
            duration_in_status=duration_in_status,
        )
