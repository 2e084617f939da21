"""In-memory repositories and other test doubles."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
import threading

from dateutil.tz import tzutc

from jobflow.domain import Actor, Job, JobStatus, Role
from jobflow.repository import (
    HistoryRepository,
    JobRepository,
    RepositoryError,
    UserRepository,
)

T0 = datetime(2024, 3, 4, 9, 0, 0, tzinfo=tzutc())

ADMIN = Actor(id=1, role=Role.ADMIN, name="Ada")
MANAGER = Actor(id=2, role=Role.MANAGER, name="Max")
DISPATCHER = Actor(id=3, role=Role.DISPATCHER, name="Dee")
TECH = Actor(id=10, role=Role.TECHNICIAN, name="Tom")
OTHER_TECH = Actor(id=11, role=Role.TECHNICIAN, name="Tia")

ALL_ACTORS = (ADMIN, MANAGER, DISPATCHER, TECH, OTHER_TECH)


class FakeClock(object):
    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


class InMemoryJobRepository(JobRepository):
    def __init__(self):
        self.rows = {}
        self.closed = False
        self._lock = threading.Lock()

    def save(self, job):
        with self._lock:
            self.rows[job.id] = replace(job)

    def get(self, job_id):
        with self._lock:
            job = self.rows.get(job_id)
            return replace(job) if job is not None else None

    def update_status(self, job_id, expected_status, changes):
        with self._lock:
            job = self.rows.get(job_id)
            if job is None or job.status is not expected_status:
                return False
            self.rows[job_id] = replace(job, **changes)
            return True

    def update_assignee(self, job_id, assigned_to):
        with self._lock:
            job = self.rows.get(job_id)
            if job is None:
                return False
            self.rows[job_id] = replace(job, assigned_to=assigned_to)
            return True

    def delete(self, job_id):
        with self._lock:
            return self.rows.pop(job_id, None) is not None

    def close(self):
        self.closed = True


class InMemoryUserRepository(UserRepository):
    def __init__(self, actors=ALL_ACTORS):
        self.rows = {actor.id: actor for actor in actors}

    def save(self, actor):
        self.rows[actor.id] = actor

    def get(self, user_id):
        return self.rows.get(user_id)


class InMemoryHistoryRepository(HistoryRepository):
    def __init__(self):
        self.entries = []
        self._lock = threading.Lock()

    def append(self, entry):
        with self._lock:
            stored = replace(entry, id=len(self.entries) + 1)
            self.entries.append(stored)
            return stored

    def list_by_job(self, job_id):
        with self._lock:
            entries = [e for e in self.entries if e.job_id == job_id]
        return sorted(entries, key=lambda e: (e.changed_at, e.id))


class FailingHistoryRepository(InMemoryHistoryRepository):
    def append(self, entry):
        raise RepositoryError("disk full")


class FailingJobRepository(InMemoryJobRepository):
    def get(self, job_id):
        raise RepositoryError("connection reset")


def makeJob(jobId=100, status=JobStatus.PENDING, assignedTo=None, **kwargs):
    kwargs.setdefault("created_at", T0)
    kwargs.setdefault("estimated_duration", 60)
    kwargs.setdefault("title", "Fix boiler")
    return Job(id=jobId, status=status,
               assigned_to=assignedTo, **kwargs)
