"""
Status history entries.

A history entry is written once per accepted transition and is never
modified afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from .job import JobStatus


@dataclass(frozen=True)
class StatusHistoryEntry:  # pylint: disable=too-many-instance-attributes
    """One accepted status change of a job."""

    job_id: int
    from_status: Optional[JobStatus]
    to_status: JobStatus
    changed_by: Optional[int]
    changed_at: datetime
    comment: Optional[str] = None
    # Minutes spent in from_status, None for the first entry
    duration_in_status: Optional[int] = None
    is_automated: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)
    id: Optional[int] = None

    def is_initial(self) -> bool:
        return self.from_status is None


def history_gaps(entries: Sequence[StatusHistoryEntry]) -> List[int]:
    """
    Return the indices of entries that do not continue the chain.

    Entry n+1 must start where entry n ended and must not be older than
    it. An empty list means the history is intact.
    """
    gaps = []
    for idx in range(1, len(entries)):
        prev, cur = entries[idx - 1], entries[idx]
        if cur.from_status != prev.to_status or cur.changed_at < prev.changed_at:
            gaps.append(idx)
    return gaps
