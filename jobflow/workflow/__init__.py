"""
Job status workflow engine.

Pure decision logic: nothing in this package performs I/O. The service
layer fetches jobs and roles, calls the validator and persists what an
Accepted result describes.
"""

from .assignment import AssignmentPolicy
from .fields import FieldRequirements
from .graph import DEFAULT_TRANSITIONS, TransitionGraph
from .policy import DEFAULT_ROLE_POLICIES, RoleAuthorizationPolicy, RolePolicy
from .result import Accepted, Rejected, RejectionKind, TimeTracking, ValidationResult
from .rules import DEFAULT_BUSINESS_RULES, BusinessRuleEvaluator, RuleResult
from .timetracking import TimeTrackingCalculator
from .validator import WorkflowConfig, WorkflowValidator, default_workflow_config

__all__ = [
    "Accepted",
    "AssignmentPolicy",
    "BusinessRuleEvaluator",
    "DEFAULT_BUSINESS_RULES",
    "DEFAULT_ROLE_POLICIES",
    "DEFAULT_TRANSITIONS",
    "FieldRequirements",
    "Rejected",
    "RejectionKind",
    "RolePolicy",
    "RoleAuthorizationPolicy",
    "RuleResult",
    "TimeTracking",
    "TimeTrackingCalculator",
    "TransitionGraph",
    "ValidationResult",
    "WorkflowConfig",
    "WorkflowValidator",
    "default_workflow_config",
]
