"""Legal status-to-status edges."""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple

from jobflow.config import ConfigError
from jobflow.domain import JobStatus

DEFAULT_TRANSITIONS: Mapping[JobStatus, Tuple[JobStatus, ...]] = MappingProxyType({
    JobStatus.PENDING: (
        JobStatus.IN_PROGRESS,
        JobStatus.CANCELLED,
        JobStatus.ON_HOLD,
    ),
    JobStatus.IN_PROGRESS: (
        JobStatus.COMPLETED,
        JobStatus.ON_HOLD,
        JobStatus.CANCELLED,
        JobStatus.PENDING,
    ),
    JobStatus.ON_HOLD: (
        JobStatus.PENDING,
        JobStatus.IN_PROGRESS,
        JobStatus.CANCELLED,
    ),
    # Reopening
    JobStatus.COMPLETED: (
        JobStatus.IN_PROGRESS,
    ),
    # Reactivation
    JobStatus.CANCELLED: (
        JobStatus.PENDING,
    ),
})


class TransitionGraph(object):
    """
    Static lookup of which statuses a job may move to.

    Staying in the same status is not an edge; the validator treats it as
    a no-op before consulting the graph.
    """

    def __init__(self, edges: Optional[Mapping[JobStatus, Iterable[JobStatus]]] = None):
        if edges is None:
            edges = DEFAULT_TRANSITIONS
        missing = set(JobStatus) - set(edges)
        if missing:
            raise ConfigError("Transition table has no entry for: {}".format(
                ", ".join(sorted(s.value for s in missing))))
        frozen = {}
        for source, targets in edges.items():
            targets = tuple(targets)
            if source in targets:
                raise ConfigError(f"Self-transition {source.value} is not an edge")
            frozen[source] = targets
        self._edges = MappingProxyType(frozen)

    def allowed_targets(self, current: JobStatus) -> Tuple[JobStatus, ...]:
        return self._edges.get(current, ())

    def is_allowed(self, current: JobStatus, target: JobStatus) -> bool:
        return target in self.allowed_targets(current)

    def edges(self) -> Mapping[JobStatus, Tuple[JobStatus, ...]]:
        return self._edges
