"""Which statuses each role may set."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional

from jobflow.config import ConfigError
from jobflow.domain import JobStatus, Role

from .result import Rejected, RejectionKind

CANCEL_FORBIDDEN_MESSAGE = "Only managers and administrators can cancel jobs"


@dataclass(frozen=True)
class RolePolicy:
    allowed_statuses: FrozenSet[JobStatus]
    # Target status -> reason, for targets this role may never set
    forbidden_transitions: Mapping[JobStatus, str] = field(
        default_factory=lambda: MappingProxyType({}))

    def __post_init__(self):
        object.__setattr__(self, "allowed_statuses", frozenset(self.allowed_statuses))
        object.__setattr__(
            self, "forbidden_transitions",
            MappingProxyType(dict(self.forbidden_transitions)))


_ALL_STATUSES = frozenset(JobStatus)

DEFAULT_ROLE_POLICIES: Mapping[Role, RolePolicy] = MappingProxyType({
    Role.TECHNICIAN: RolePolicy(
        allowed_statuses=frozenset({
            JobStatus.IN_PROGRESS,
            JobStatus.COMPLETED,
            JobStatus.ON_HOLD,
        }),
        forbidden_transitions={JobStatus.CANCELLED: CANCEL_FORBIDDEN_MESSAGE},
    ),
    Role.DISPATCHER: RolePolicy(allowed_statuses=_ALL_STATUSES),
    Role.MANAGER: RolePolicy(allowed_statuses=_ALL_STATUSES),
    Role.ADMIN: RolePolicy(allowed_statuses=_ALL_STATUSES),
})


class RoleAuthorizationPolicy(object):
    """
    Per-role allow-lists with optional forbidden targets.

    Only consulted once the transition graph has accepted the edge, so an
    impossible transition is never reported as a permissions problem.
    """

    def __init__(self, policies: Optional[Mapping[Role, RolePolicy]] = None):
        if policies is None:
            policies = DEFAULT_ROLE_POLICIES
        missing = set(Role) - set(policies)
        if missing:
            raise ConfigError("Role policy table has no entry for: {}".format(
                ", ".join(sorted(r.value for r in missing))))
        self._policies = MappingProxyType(dict(policies))

    def policy_for(self, role: Optional[Role]) -> Optional[RolePolicy]:
        if role is None:
            return None
        return self._policies.get(role)

    def check(self, role: Optional[Role], target: JobStatus) -> Optional[Rejected]:
        """Return None when role may set target, else the rejection."""
        policy = self.policy_for(role)
        if policy is not None:
            # Forbidden-target reasons take precedence over the allow-list
            message = policy.forbidden_transitions.get(target)
            if message:
                return Rejected(RejectionKind.FORBIDDEN_TRANSITION, message)
        if policy is None or target not in policy.allowed_statuses:
            role_name = role.value if role is not None else "unknown"
            return Rejected(
                RejectionKind.ROLE_NOT_AUTHORIZED,
                f"Your role ({role_name}) is not authorized to set jobs to "
                f"'{target.value}' status")
        return None

    def is_authorized(self, role: Optional[Role], target: JobStatus) -> bool:
        return self.check(role, target) is None
