"""
Read-only workflow analytics over recorded status history.

Analytics are advisory: they may run while a history entry is being
appended and simply reflect whatever has been committed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Any, Dict, Optional, Tuple, Union

import simplejson as json

from jobflow.domain import JobStatus, StatusHistoryEntry, history_gaps
from jobflow.repository import HistoryRepository, JobRepository, RepositoryError
from jobflow.utils import dateTimeToDb
from jobflow.workflow import Rejected, RejectionKind

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class Timeline:
    created: Optional[datetime]
    started: Optional[datetime]
    completed: Optional[datetime]


@dataclass(frozen=True)
class WorkflowAnalytics:  # pylint: disable=too-many-instance-attributes
    job_id: int
    current_status: JobStatus
    estimated_duration: Optional[int]
    actual_duration: Optional[int]
    total_time_tracked: int
    status_breakdown: Dict[JobStatus, int]
    status_history: Tuple[StatusHistoryEntry, ...]
    timeline: Timeline
    chain_intact: bool

    ok = True

    @property
    def duration_variance(self) -> Optional[int]:
        """Actual minus estimated minutes, None unless both are known."""
        if self.actual_duration is None or self.estimated_duration is None:
            return None
        return self.actual_duration - self.estimated_duration

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jobId": self.job_id,
            "currentStatus": self.current_status.value,
            "estimatedDuration": self.estimated_duration,
            "actualDuration": self.actual_duration,
            "durationVariance": self.duration_variance,
            "totalTimeTracked": self.total_time_tracked,
            "statusBreakdown": {
                status.value: minutes
                for status, minutes in self.status_breakdown.items()},
            "statusHistory": [
                {
                    "from_status": e.from_status.value if e.from_status else None,
                    "to_status": e.to_status.value,
                    "duration_in_status": e.duration_in_status,
                    "changed_at": dateTimeToDb(e.changed_at),
                    "changed_by": e.changed_by,
                    "comment": e.comment,
                }
                for e in self.status_history],
            "timeline": {
                "created": dateTimeToDb(self.timeline.created),
                "started": dateTimeToDb(self.timeline.started),
                "completed": dateTimeToDb(self.timeline.completed),
            },
            "chainIntact": self.chain_intact,
        }

    def to_json(self, **kwargs) -> str:
        return json.dumps(self.to_dict(), **kwargs)


class AnalyticsAggregator(object):
    def __init__(self, jobs: JobRepository, history: HistoryRepository):
        self.jobs = jobs
        self.history = history

    def analyze(self, job_id: int) -> Union[WorkflowAnalytics, Rejected]:
        """
        Summarize how a job moved through its statuses.

        Returns:
            WorkflowAnalytics, or Rejected with NOT_FOUND / INTERNAL_ERROR
        """
        try:
            entries = self.history.list_by_job(job_id)
            job = self.jobs.get(job_id)
        except RepositoryError:
            LOG.exception("Failed to get workflow analytics for job %s", job_id)
            return Rejected(RejectionKind.INTERNAL_ERROR, "Failed to retrieve analytics")

        if job is None:
            return Rejected(RejectionKind.NOT_FOUND, "Job not found")

        total = 0
        breakdown: Dict[JobStatus, int] = {}
        for entry in entries:
            minutes = entry.duration_in_status or 0
            total += minutes
            if entry.from_status is not None:
                breakdown[entry.from_status] = breakdown.get(entry.from_status, 0) + minutes

        return WorkflowAnalytics(
            job_id=job.id,
            current_status=job.status,
            estimated_duration=job.estimated_duration,
            actual_duration=job.actual_duration,
            total_time_tracked=total,
            status_breakdown=breakdown,
            status_history=tuple(entries),
            timeline=Timeline(
                created=job.created_at,
                started=job.started_at,
                completed=job.completed_at,
            ),
            chain_intact=not history_gaps(entries),
        )
