"""
Tests for domain models.
"""

from datetime import timedelta
import unittest

from jobflow.domain import Job, JobStatus, Role, StatusHistoryEntry, history_gaps

from .helpers import T0


class TestJobStatus(unittest.TestCase):
    def test_parse_literals(self):
        self.assertIs(JobStatus.parse("pending"), JobStatus.PENDING)
        self.assertIs(JobStatus.parse("in_progress"), JobStatus.IN_PROGRESS)
        self.assertIs(JobStatus.parse("In-Progress"), JobStatus.IN_PROGRESS)
        self.assertIs(JobStatus.parse(" on hold "), JobStatus.ON_HOLD)
        self.assertIs(JobStatus.parse(JobStatus.CANCELLED), JobStatus.CANCELLED)

    def test_parse_invalid(self):
        for bad in ("done", "", "inprogress", None, 3):
            with self.assertRaises(ValueError):
                JobStatus.parse(bad)

    def test_label(self):
        self.assertEqual(JobStatus.IN_PROGRESS.label, "In-Progress")
        self.assertEqual(JobStatus.ON_HOLD.label, "On-Hold")
        self.assertEqual(JobStatus.PENDING.label, "Pending")


class TestRole(unittest.TestCase):
    def test_parse(self):
        self.assertIs(Role.parse("Technician"), Role.TECHNICIAN)
        with self.assertRaises(ValueError):
            Role.parse("customer")


class TestJob(unittest.TestCase):
    """Test Job domain model."""

    def test_create_basic_job(self):
        job = Job(id=1, title="Replace filter")

        self.assertEqual(job.status, JobStatus.PENDING)
        self.assertIsNone(job.assigned_to)
        self.assertIsNotNone(job.created_at)
        self.assertIsNone(job.started_at)
        self.assertFalse(job.is_assigned())

    def test_status_from_string(self):
        job = Job(id=1, status="on_hold")
        self.assertIs(job.status, JobStatus.ON_HOLD)

    def test_estimated_duration_positive(self):
        with self.assertRaises(ValueError):
            Job(id=1, estimated_duration=0)

    def test_is_assigned_to(self):
        job = Job(id=1, assigned_to=10)
        self.assertTrue(job.is_assigned_to(10))
        self.assertFalse(job.is_assigned_to(11))
        self.assertFalse(Job(id=2).is_assigned_to(10))

    def test_str(self):
        job = Job(id=7, title="Leak", status=JobStatus.IN_PROGRESS, assigned_to=10)
        self.assertEqual(str(job), "[7] In-Progress (10) Leak")


def _entry(fromStatus, toStatus, minutes):
    return StatusHistoryEntry(
        job_id=1, from_status=fromStatus, to_status=toStatus, changed_by=1,
        changed_at=T0 + timedelta(minutes=minutes))


class TestHistoryGaps(unittest.TestCase):
    def test_intact_chain(self):
        entries = [
            _entry(None, JobStatus.PENDING, 0),
            _entry(JobStatus.PENDING, JobStatus.IN_PROGRESS, 5),
            _entry(JobStatus.IN_PROGRESS, JobStatus.COMPLETED, 50),
        ]
        self.assertEqual(history_gaps(entries), [])
        self.assertTrue(entries[0].is_initial())
        self.assertFalse(entries[1].is_initial())

    def test_broken_chain(self):
        entries = [
            _entry(None, JobStatus.PENDING, 0),
            _entry(JobStatus.ON_HOLD, JobStatus.IN_PROGRESS, 5),
            _entry(JobStatus.IN_PROGRESS, JobStatus.COMPLETED, 1),
        ]
        self.assertEqual(history_gaps(entries), [1, 2])

    def test_empty(self):
        self.assertEqual(history_gaps([]), [])
