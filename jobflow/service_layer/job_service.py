"""
Business logic for job status changes.

This module contains the JobWorkflowService class, the I/O boundary of
the workflow: it loads the job and the acting user, asks the validator
for a decision, applies an accepted change with a conditional update,
records history and sends notifications.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Callable, List, Optional, Tuple, Union

from jobflow.domain import Actor, Job, JobStatus, TransitionRequest
from jobflow.repository import (
    Database,
    HistoryRepository,
    JobRepository,
    RepositoryError,
    SqliteHistoryRepository,
    SqliteJobRepository,
    SqliteUserRepository,
    UserRepository,
)
from jobflow.utils import KeyedLock, utcNow
from jobflow.workflow import (
    Accepted,
    AssignmentPolicy,
    Rejected,
    RejectionKind,
    ValidationResult,
    WorkflowValidator,
    default_workflow_config,
)

from .analytics import AnalyticsAggregator, WorkflowAnalytics
from .history_recorder import HistoryRecorder, HistoryWriteError

LOG = logging.getLogger(__name__)

NOT_FOUND = "Job not found"
INTERNAL_ERROR = "Internal server error during workflow validation"
CONFLICT = ("Job status was changed by another request; "
            "reload the job and try again")


class JobWorkflowService:
    """
    Service for job status changes.

    Validation, the job update and the history insert for one job run
    under a per-job lock, and the update itself only applies if the job
    still has the status that was validated. Two requests racing on the
    same job therefore cannot both succeed from the same starting status.
    """

    # pylint: disable-next=too-many-arguments
    def __init__(
        self,
        jobs: JobRepository,
        users: UserRepository,
        history: HistoryRepository,
        validator: Optional[WorkflowValidator] = None,
        recorder: Optional[HistoryRecorder] = None,
        notifier=None,
        clock: Callable[[], datetime] = utcNow,
    ):
        """
        Initialize service.

        Args:
            jobs: Job repository
            users: User repository, source of truth for roles
            history: Status history repository
            validator: Workflow validator (default workflow if not provided)
            recorder: History recorder (fail-open if not provided)
            notifier: Optional object with a statusChanged(job, status,
                actor, comment) method
            clock: Returns the current time
        """
        self.jobs = jobs
        self.users = users
        self.history = history
        self.validator = validator or WorkflowValidator(clock=clock)
        self.recorder = recorder or HistoryRecorder(history)
        self.notifier = notifier
        self.assignment_policy = AssignmentPolicy()
        self.analytics_aggregator = AnalyticsAggregator(jobs, history)
        self._clock = clock
        self._locks = KeyedLock()

    @classmethod
    def from_config(cls, config, plugins=None, notifier=None) -> JobWorkflowService:
        """
        Build a service on the SQLite database under the config's state dir.

        Args:
            config: jobflow.config.Config
            plugins: Optional jobflow.plugins.Plugins with extra rules
            notifier: Overrides the chat notifier built from the config
        """
        db = Database(config.dbFile)
        history = SqliteHistoryRepository(db)
        if notifier is None and config.hasNotifyHooks:
            # pylint: disable-next=import-outside-toplevel
            from jobflow.notify import ChatNotifier
            notifier = ChatNotifier(config)
        return cls(
            jobs=SqliteJobRepository(db),
            users=SqliteUserRepository(db),
            history=history,
            validator=WorkflowValidator(default_workflow_config(config, plugins)),
            recorder=HistoryRecorder(history, fail_closed=config.historyFailClosed),
            notifier=notifier,
        )

    def _load(
        self, request: TransitionRequest, now: datetime
    ) -> Tuple[ValidationResult, Optional[Job], Optional[Actor]]:
        job = self.jobs.get(request.job_id)
        if job is None:
            return Rejected(RejectionKind.NOT_FOUND, NOT_FOUND), None, None

        try:
            target = JobStatus.parse(request.requested_status)
        except ValueError:
            return Rejected(
                RejectionKind.INVALID_STATUS,
                "Invalid status '{}'. Valid statuses: {}".format(
                    request.requested_status,
                    ", ".join(s.value for s in JobStatus)),
            ), job, None

        # The stored role wins over whatever the caller claims
        actor = self.users.get(request.acting_user_id)
        if actor is None:
            return Rejected(
                RejectionKind.ROLE_NOT_AUTHORIZED,
                f"User {request.acting_user_id} not found"), job, None
        if (request.claimed_role and actor.role is not None
                and request.claimed_role != actor.role.value):
            LOG.warning("User %s claimed role %r but is stored as %s",
                        actor.id, request.claimed_role, actor.role.value)

        result = self.validator.validate(
            job, target, actor, comment=request.comment, now=now)
        return result, job, actor

    def validate_transition(self, request: TransitionRequest) -> ValidationResult:
        """
        Decide a status change without applying it.

        Args:
            request: The requested change

        Returns:
            Accepted or Rejected
        """
        try:
            result, _, _ = self._load(request, self._clock())
        except RepositoryError:
            LOG.exception("Job workflow validation error for job %s", request.job_id)
            return Rejected(RejectionKind.INTERNAL_ERROR, INTERNAL_ERROR)
        return result

    def change_status(self, request: TransitionRequest) -> ValidationResult:
        """
        Validate and apply a status change, then record it.

        Args:
            request: The requested change

        Returns:
            The Accepted result that was applied, or why it was not
        """
        with self._locks.locked(request.job_id):
            now = self._clock()
            try:
                result, job, actor = self._load(request, now)
                if not result.ok or not result.is_status_change:
                    return result

                if not self.jobs.update_status(
                        job.id, result.current_status, result.job_changes()):
                    LOG.warning("Job %s left %s before it could be set to %s",
                                job.id, result.current_status.value,
                                result.new_status.value)
                    return Rejected(RejectionKind.CONFLICT, CONFLICT)
            except RepositoryError:
                LOG.exception("Job workflow error for job %s", request.job_id)
                return Rejected(RejectionKind.INTERNAL_ERROR, INTERNAL_ERROR)

            try:
                self.recorder.record(
                    job.id,
                    result.current_status,
                    result.new_status,
                    actor.id,
                    comment=result.comment,
                    duration_in_status=result.time_tracking.duration_in_status,
                    changed_at=now,
                )
            except HistoryWriteError:
                self._revert(job, result)
                return Rejected(
                    RejectionKind.INTERNAL_ERROR,
                    "Status change could not be recorded and was rolled back")

            LOG.info("Job %s status changed %s -> %s by user %s",
                     job.id, result.current_status.value,
                     result.new_status.value, actor.id)

        self._notify(job, result, actor)
        return result

    def _revert(self, job: Job, result: Accepted) -> None:
        previous = {name: getattr(job, name) for name in result.job_changes()}
        try:
            reverted = self.jobs.update_status(job.id, result.new_status, previous)
        except RepositoryError:
            LOG.exception("Failed to roll back status of job %s to %s",
                          job.id, job.status.value)
            return
        if not reverted:
            LOG.error("Job %s moved on before its status could be rolled back",
                      job.id)

    def _notify(self, job: Job, result: Accepted, actor: Actor) -> None:
        if self.notifier is None:
            return
        # The change is committed; a notification problem must not undo it
        try:
            self.notifier.statusChanged(job, result.new_status, actor, result.comment)
        except Exception:  # pylint: disable=broad-except
            LOG.exception("Failed to send notification for job %s -> %s",
                          job.id, result.new_status.value)

    def register_job(self, job: Job, actor_id: Optional[int] = None) -> Job:
        """
        Store a newly created job and open its status history.

        Args:
            job: New job, normally Pending
            actor_id: User who created the job

        Returns:
            The stored job

        Raises:
            ValueError: If a job with the same id exists
            RepositoryError: If storage fails
            HistoryWriteError: If the initial history entry could not be
                stored in fail-closed mode; the job is removed again
        """
        with self._locks.locked(job.id):
            if self.jobs.get(job.id) is not None:
                raise ValueError(f"Job {job.id} already exists")

            if job.status_changed_at is None:
                job.status_changed_at = job.created_at
            if job.status_changed_by is None:
                job.status_changed_by = actor_id

            self.jobs.save(job)
            try:
                self.recorder.record(
                    job.id, None, job.status, actor_id,
                    comment="Job created",
                    changed_at=job.status_changed_at,
                    is_automated=True,
                    metadata={
                        "event": "created",
                        "assigned_to": job.assigned_to,
                        "estimated_duration": job.estimated_duration,
                    },
                )
            except HistoryWriteError:
                self.jobs.delete(job.id)
                raise

            LOG.info("Registered job %s", job)

            return job

    def validate_assignment(
        self, job_id: int, assignee_id: Optional[int], actor_id: int
    ) -> Optional[Rejected]:
        """
        Check an assignee change.

        Returns:
            None if allowed, else the rejection
        """
        try:
            job = self.jobs.get(job_id)
            if job is None:
                return Rejected(RejectionKind.NOT_FOUND, NOT_FOUND)
            actor = self.users.get(actor_id)
            if actor is None:
                return Rejected(
                    RejectionKind.ROLE_NOT_AUTHORIZED, f"User {actor_id} not found")
            assignee_role = None
            if assignee_id is not None:
                assignee_role = self.users.get_role(assignee_id)
        except RepositoryError:
            LOG.exception("Job assignment validation error for job %s", job_id)
            return Rejected(
                RejectionKind.INTERNAL_ERROR,
                "Internal server error during assignment validation")

        rejection = self.assignment_policy.check(job, assignee_id, actor, assignee_role)
        if rejection is None:
            LOG.info("Job assignment change validated: job=%s user=%s %s -> %s",
                     job_id, actor_id, job.assigned_to, assignee_id)
        return rejection

    def assign(
        self, job_id: int, assignee_id: Optional[int], actor_id: int
    ) -> Optional[Rejected]:
        """
        Validate and apply an assignee change.

        Returns:
            None on success, else the rejection
        """
        with self._locks.locked(job_id):
            rejection = self.validate_assignment(job_id, assignee_id, actor_id)
            if rejection is not None:
                return rejection
            try:
                if not self.jobs.update_assignee(job_id, assignee_id):
                    return Rejected(RejectionKind.NOT_FOUND, NOT_FOUND)
            except RepositoryError:
                LOG.exception("Failed to assign job %s", job_id)
                return Rejected(RejectionKind.INTERNAL_ERROR, INTERNAL_ERROR)
            LOG.info("Job %s assigned to %s by user %s", job_id, assignee_id, actor_id)
            return None

    def available_transitions(
        self, job_id: int, actor_id: int
    ) -> Union[List[JobStatus], Rejected]:
        """Statuses the user could move the job to, before business rules."""
        try:
            job = self.jobs.get(job_id)
            if job is None:
                return Rejected(RejectionKind.NOT_FOUND, NOT_FOUND)
            role = self.users.get_role(actor_id)
        except RepositoryError:
            LOG.exception("Failed to load job %s", job_id)
            return Rejected(RejectionKind.INTERNAL_ERROR, INTERNAL_ERROR)
        return self.validator.available_transitions(job.status, role)

    def analytics(self, job_id: int) -> Union[WorkflowAnalytics, Rejected]:
        return self.analytics_aggregator.analyze(job_id)

    def close(self) -> None:
        """Close service and release resources."""
        self.jobs.close()
