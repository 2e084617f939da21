"""
Business rules, keyed by target status.

Rules run after the graph, role and mandatory-field checks have passed.
Each rule is a plain callable rule(job, actor) -> RuleResult. Rules get
the actor with its role already resolved from storage and do no I/O of
their own.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Iterable, Mapping, Optional, Sequence, Tuple

from jobflow.config import ConfigError
from jobflow.domain import Actor, Job, JobStatus, Role


@dataclass(frozen=True)
class RuleResult:
    valid: bool
    message: Optional[str] = None

    @classmethod
    def fail(cls, message: str) -> RuleResult:
        return cls(False, message)


PASS = RuleResult(True)

Rule = Callable[[Job, Actor], RuleResult]


def can_start(job: Job, actor: Actor) -> RuleResult:
    if not job.is_assigned():
        return RuleResult.fail(
            "Job must be assigned to a technician before it can be started")
    # Admins, managers and dispatchers may start anyone's job
    if actor.role is Role.TECHNICIAN and not job.is_assigned_to(actor.id):
        return RuleResult.fail("Only the assigned technician can start this job")
    return PASS


def can_complete(job: Job, actor: Actor) -> RuleResult:
    _ = actor
    if not job.is_assigned():
        return RuleResult.fail("Job must be assigned before it can be completed")
    # Stricter than the graph: Pending never reaches Completed directly
    if job.status is JobStatus.PENDING:
        return RuleResult.fail("Job must be started before it can be completed")
    return PASS


def can_cancel(job: Job, actor: Actor) -> RuleResult:
    _ = actor
    if job.status is JobStatus.COMPLETED:
        return RuleResult.fail("Cannot cancel a completed job")
    return PASS


def restrict_from(
    source: JobStatus, roles: Iterable[Role], action: str
) -> Rule:
    """
    Build a rule limiting moves out of source to the given roles.

    Used for reopening completed jobs and reactivating cancelled ones.
    """
    roles = frozenset(roles)
    names = ", ".join(sorted(r.value for r in roles)) or "nobody"

    def rule(job: Job, actor: Actor) -> RuleResult:
        if job.status is source and actor.role not in roles:
            return RuleResult.fail(f"Only {names} can {action}")
        return PASS

    rule.__name__ = f"restrict_from_{source.value}"
    return rule


DEFAULT_BUSINESS_RULES: Mapping[JobStatus, Tuple[Rule, ...]] = MappingProxyType({
    JobStatus.IN_PROGRESS: (can_start,),
    JobStatus.COMPLETED: (can_complete,),
    JobStatus.CANCELLED: (can_cancel,),
})


class BusinessRuleEvaluator(object):
    """
    Runs the rules registered for a target status.

    Statuses without rules pass. Rules for one status run in registration
    order and the first failure wins.
    """

    def __init__(self, rules: Optional[Mapping[JobStatus, Sequence[Rule]]] = None):
        if rules is None:
            rules = DEFAULT_BUSINESS_RULES
        frozen = {}
        for status, funcs in rules.items():
            if not isinstance(status, JobStatus):
                raise ConfigError(f"Business rules must be keyed by JobStatus, got {status!r}")
            frozen[status] = tuple(funcs)
        self._rules = MappingProxyType(frozen)

    def rules_for(self, target: JobStatus) -> Tuple[Rule, ...]:
        return self._rules.get(target, ())

    def evaluate(self, target: JobStatus, job: Job, actor: Actor) -> RuleResult:
        for rule in self.rules_for(target):
            result = rule(job, actor)
            if not result.valid:
                return result
        return PASS
