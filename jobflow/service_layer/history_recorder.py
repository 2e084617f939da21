"""
Append-only status history writer.

By default a failed history write is logged and otherwise ignored, since
the job row has already changed. With fail_closed=True the failure is
raised as HistoryWriteError so the caller can undo the status change.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any, Dict, Optional

from jobflow.domain import JobStatus, StatusHistoryEntry
from jobflow.repository import HistoryRepository, RepositoryError
from jobflow.utils import utcNow

LOG = logging.getLogger(__name__)


class HistoryWriteError(Exception):
    """A history entry could not be stored in fail-closed mode."""


class HistoryRecorder(object):
    def __init__(self, history: HistoryRepository, fail_closed: bool = False):
        self.history = history
        self.fail_closed = fail_closed

    # pylint: disable-next=too-many-arguments
    def record(
        self,
        job_id: int,
        from_status: Optional[JobStatus],
        to_status: JobStatus,
        actor_id: Optional[int],
        comment: Optional[str] = None,
        duration_in_status: Optional[int] = None,
        changed_at: Optional[datetime] = None,
        is_automated: bool = False,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[StatusHistoryEntry]:
        """
        Append one history entry.

        Returns:
            The stored entry, or None if the write failed in fail-open mode

        Raises:
            HistoryWriteError: If the write failed in fail-closed mode
        """
        entry = StatusHistoryEntry(
            job_id=job_id,
            from_status=from_status,
            to_status=to_status,
            changed_by=actor_id,
            changed_at=changed_at or utcNow(),
            comment=comment,
            duration_in_status=duration_in_status,
            is_automated=is_automated,
            metadata=dict(metadata or {}),
        )
        try:
            stored = self.history.append(entry)
        except RepositoryError as e:
            LOG.error("Failed to log status change for job %s (%s -> %s): %s",
                      job_id, from_status.value if from_status else None,
                      to_status.value, e)
            if self.fail_closed:
                raise HistoryWriteError(
                    f"Could not record status change of job {job_id}") from e
            return None

        LOG.info("Status change logged to history: job=%s %s -> %s by %s "
                 "(%s min in previous status)",
                 job_id, from_status.value if from_status else None,
                 to_status.value, actor_id, duration_in_status)
        return stored
