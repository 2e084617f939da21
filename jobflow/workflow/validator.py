"""
Request-scoped status change decision pipeline.

The validator composes the transition graph, role policy, mandatory
field checks, business rules and time tracking. It never writes
anything: an Accepted result describes what the caller must persist.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import logging
from types import MappingProxyType
from typing import Callable, Dict, FrozenSet, List, Mapping, Optional, Tuple

from jobflow.domain import Actor, Job, JobStatus, Role
from jobflow.utils import utcNow

from .fields import DEFAULT_ASSIGNMENT_REQUIRED, DEFAULT_COMMENT_REQUIRED, FieldRequirements
from .graph import DEFAULT_TRANSITIONS, TransitionGraph
from .policy import DEFAULT_ROLE_POLICIES, RoleAuthorizationPolicy, RolePolicy
from .result import Accepted, Rejected, RejectionKind, TimeTracking, ValidationResult
from .rules import DEFAULT_BUSINESS_RULES, BusinessRuleEvaluator, Rule, restrict_from
from .timetracking import TimeTrackingCalculator

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkflowConfig:
    """
    Immutable tables driving a WorkflowValidator.

    Every status needs an entry in transitions and every role an entry
    in role_policies; a ConfigError is raised otherwise.
    """

    transitions: Mapping[JobStatus, Tuple[JobStatus, ...]] = field(
        default_factory=lambda: DEFAULT_TRANSITIONS)
    role_policies: Mapping[Role, RolePolicy] = field(
        default_factory=lambda: DEFAULT_ROLE_POLICIES)
    comment_required: FrozenSet[JobStatus] = DEFAULT_COMMENT_REQUIRED
    comment_required_edges: FrozenSet[Tuple[JobStatus, JobStatus]] = frozenset()
    assignment_required: FrozenSet[JobStatus] = DEFAULT_ASSIGNMENT_REQUIRED
    business_rules: Mapping[JobStatus, Tuple[Rule, ...]] = field(
        default_factory=lambda: DEFAULT_BUSINESS_RULES)

    def __post_init__(self):
        # Building the components runs the exhaustiveness checks
        graph = TransitionGraph(self.transitions)
        RoleAuthorizationPolicy(self.role_policies)
        rules = BusinessRuleEvaluator(self.business_rules)
        object.__setattr__(self, "transitions", graph.edges())
        object.__setattr__(self, "role_policies", MappingProxyType(dict(self.role_policies)))
        object.__setattr__(self, "comment_required", frozenset(self.comment_required))
        object.__setattr__(
            self, "comment_required_edges", frozenset(self.comment_required_edges))
        object.__setattr__(self, "assignment_required", frozenset(self.assignment_required))
        object.__setattr__(self, "business_rules", MappingProxyType(
            {status: rules.rules_for(status) for status in self.business_rules}))


def default_workflow_config(config=None, plugins=None) -> WorkflowConfig:
    """
    Build the standard workflow, adjusted by rc-file settings and plugins.

    Args:
        config: Optional jobflow.config.Config; adds the reopen and
            reactivate restrictions it names
        plugins: Optional jobflow.plugins.Plugins contributing extra rules

    Returns:
        WorkflowConfig
    """
    rules: Dict[JobStatus, List[Rule]] = {
        status: list(funcs) for status, funcs in DEFAULT_BUSINESS_RULES.items()}
    comment_edges = set()

    if config is not None:
        if config.reopenRoles is not None:
            rules.setdefault(JobStatus.IN_PROGRESS, []).append(restrict_from(
                JobStatus.COMPLETED, config.reopenRoles, "reopen completed jobs"))
        if config.reactivateRoles is not None:
            rules.setdefault(JobStatus.PENDING, []).append(restrict_from(
                JobStatus.CANCELLED, config.reactivateRoles,
                "reactivate cancelled jobs"))
        if config.reopenRequiresComment:
            comment_edges.add((JobStatus.COMPLETED, JobStatus.IN_PROGRESS))

    if plugins is not None:
        for status, funcs in plugins.businessRules().items():
            rules.setdefault(status, []).extend(funcs)

    return WorkflowConfig(
        business_rules={status: tuple(funcs) for status, funcs in rules.items()},
        comment_required_edges=frozenset(comment_edges),
    )


class WorkflowValidator(object):
    """
    Decides one status change request.

    Checks run in a fixed order and stop at the first failure: graph,
    role, mandatory fields, business rules. Only then is time tracking
    computed.
    """

    def __init__(
        self,
        config: Optional[WorkflowConfig] = None,
        clock: Callable[[], datetime] = utcNow,
    ):
        self.config = config or WorkflowConfig()
        self.graph = TransitionGraph(self.config.transitions)
        self.policy = RoleAuthorizationPolicy(self.config.role_policies)
        self.fields = FieldRequirements(
            comment_required=self.config.comment_required,
            assignment_required=self.config.assignment_required,
            comment_required_edges=self.config.comment_required_edges,
        )
        self.rules = BusinessRuleEvaluator(self.config.business_rules)
        self.time_tracking = TimeTrackingCalculator()
        self._clock = clock

    # pylint: disable-next=too-many-arguments,too-many-return-statements
    def validate(
        self,
        job: Job,
        requested_status: JobStatus,
        actor: Actor,
        comment: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ValidationResult:
        """
        Validate moving job to requested_status on behalf of actor.

        Args:
            job: Job as currently stored
            requested_status: Target status
            actor: Acting user, role resolved from storage
            comment: Optional comment; some targets require one
            now: Time of the change (defaults to the validator's clock)

        Returns:
            Accepted or Rejected
        """
        current = job.status
        if now is None:
            now = self._clock()

        if requested_status is current:
            LOG.debug("Job %s already %s, nothing to validate",
                      job.id, current.value)
            return Accepted(
                current_status=current,
                new_status=current,
                comment=comment,
                validated_at=now,
                time_tracking=TimeTracking(),
                requires_history_log=False,
                is_status_change=False,
            )

        if not self.graph.is_allowed(current, requested_status):
            return self._reject(job, actor, Rejected(
                RejectionKind.INVALID_TRANSITION,
                f"Invalid status transition from '{current.value}' to "
                f"'{requested_status.value}'",
                allowed_transitions=self.graph.allowed_targets(current),
            ), requested_status)

        rejection = self.policy.check(actor.role, requested_status)
        if rejection is not None:
            return self._reject(job, actor, rejection, requested_status)

        rejection = self.fields.check(requested_status, job, comment)
        if rejection is not None:
            return self._reject(job, actor, rejection, requested_status)

        rule_result = self.rules.evaluate(requested_status, job, actor)
        if not rule_result.valid:
            return self._reject(job, actor, Rejected(
                RejectionKind.BUSINESS_RULE_VIOLATION, rule_result.message
            ), requested_status)

        LOG.info(
            "Job status transition validated: job=%s user=%s role=%s %s -> %s "
            "assigned_to=%s",
            job.id, actor.id, actor.role.value if actor.role else None,
            current.value, requested_status.value, job.assigned_to)

        tracking = self.time_tracking.compute(
            current, requested_status, job, now, actor_id=actor.id)
        return Accepted(
            current_status=current,
            new_status=requested_status,
            comment=comment,
            validated_at=now,
            time_tracking=tracking,
            requires_history_log=True,
            is_status_change=True,
        )

    def available_transitions(
        self, current: JobStatus, role: Optional[Role]
    ) -> List[JobStatus]:
        """Graph targets from current that role may set, in graph order."""
        return [target for target in self.graph.allowed_targets(current)
                if self.policy.is_authorized(role, target)]

    @staticmethod
    def _reject(job, actor, rejection, requested_status):
        LOG.info("Job %s: %s -> %s rejected for user %s (%s): %s",
                 job.id, job.status.value, requested_status.value, actor.id,
                 rejection.kind.value, rejection.message)
        return rejection
