"""Who may change a job's assignee, and to whom."""

from __future__ import annotations

from typing import Optional

from jobflow.domain import Actor, Job, Role

from .result import Rejected, RejectionKind


class AssignmentPolicy(object):
    def check(
        self,
        job: Job,
        new_assignee: Optional[int],
        actor: Actor,
        assignee_role: Optional[Role] = None,
    ) -> Optional[Rejected]:
        """
        Validate an assignee change.

        Args:
            job: Job as currently stored
            new_assignee: User id to assign, None to unassign
            actor: User making the change
            assignee_role: Stored role of new_assignee, None if the user
                does not exist

        Returns:
            None if the change is allowed, else the rejection
        """
        if actor.role is Role.TECHNICIAN and job.assigned_to != new_assignee:
            return Rejected(
                RejectionKind.ROLE_NOT_AUTHORIZED,
                "Technicians cannot reassign jobs to other technicians")

        if new_assignee is None:
            return None

        if assignee_role is None:
            return Rejected(RejectionKind.INVALID_ASSIGNEE, "Assigned user not found")

        if assignee_role is not Role.TECHNICIAN:
            return Rejected(
                RejectionKind.INVALID_ASSIGNEE,
                "Jobs can only be assigned to technicians")

        return None
