"""Mandatory comment and assignment checks."""

from __future__ import annotations

from typing import FrozenSet, Iterable, Optional, Tuple

from jobflow.domain import Job, JobStatus

from .result import Rejected, RejectionKind

DEFAULT_COMMENT_REQUIRED: FrozenSet[JobStatus] = frozenset({
    JobStatus.COMPLETED,
    JobStatus.CANCELLED,
    JobStatus.ON_HOLD,
})

DEFAULT_ASSIGNMENT_REQUIRED: FrozenSet[JobStatus] = frozenset({
    JobStatus.IN_PROGRESS,
    JobStatus.COMPLETED,
})


def has_text(comment: Optional[str]) -> bool:
    return bool(comment and comment.strip())


class FieldRequirements(object):
    def __init__(
        self,
        comment_required: Iterable[JobStatus] = DEFAULT_COMMENT_REQUIRED,
        assignment_required: Iterable[JobStatus] = DEFAULT_ASSIGNMENT_REQUIRED,
        comment_required_edges: Iterable[Tuple[JobStatus, JobStatus]] = (),
    ):
        self.comment_required = frozenset(comment_required)
        self.assignment_required = frozenset(assignment_required)
        self.comment_required_edges = frozenset(comment_required_edges)

    def needs_comment(self, current: JobStatus, target: JobStatus) -> bool:
        return (target in self.comment_required
                or (current, target) in self.comment_required_edges)

    def check(
        self, target: JobStatus, job: Job, comment: Optional[str]
    ) -> Optional[Rejected]:
        if self.needs_comment(job.status, target) and not has_text(comment):
            return Rejected(
                RejectionKind.MISSING_COMMENT,
                f"A comment is required when changing status to '{target.value}'")
        if target in self.assignment_required and not job.is_assigned():
            return Rejected(
                RejectionKind.MISSING_ASSIGNMENT,
                "Job must be assigned to a technician before changing status "
                f"to '{target.value}'")
        return None
