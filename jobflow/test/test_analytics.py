"""
Tests for workflow analytics.
"""

from datetime import timedelta
import unittest

import simplejson as json

from jobflow.domain import JobStatus, StatusHistoryEntry
from jobflow.service_layer import AnalyticsAggregator, HistoryRecorder
from jobflow.workflow import RejectionKind

from .helpers import (
    FailingJobRepository,
    InMemoryHistoryRepository,
    InMemoryJobRepository,
    T0,
    TECH,
    makeJob,
)

S = JobStatus


class TestAnalyticsAggregator(unittest.TestCase):
    def setUp(self):
        self.jobs = InMemoryJobRepository()
        self.history = InMemoryHistoryRepository()
        self.recorder = HistoryRecorder(self.history)
        self.aggregator = AnalyticsAggregator(self.jobs, self.history)

    def _record(self, fromStatus, toStatus, minutes, duration, comment=None):
        self.recorder.record(
            100, fromStatus, toStatus, TECH.id, comment=comment,
            duration_in_status=duration,
            changed_at=T0 + timedelta(minutes=minutes))

    def test_summary(self):
        self.jobs.save(makeJob(
            status=S.COMPLETED, assignedTo=TECH.id,
            started_at=T0 + timedelta(minutes=5),
            completed_at=T0 + timedelta(minutes=80),
            actual_duration=75))
        self._record(None, S.PENDING, 0, None, comment="Job created")
        self._record(S.PENDING, S.IN_PROGRESS, 5, 5)
        self._record(S.IN_PROGRESS, S.ON_HOLD, 25, 20, comment="parts")
        self._record(S.ON_HOLD, S.IN_PROGRESS, 55, 30)
        self._record(S.IN_PROGRESS, S.COMPLETED, 80, 25, comment="done")

        analytics = self.aggregator.analyze(100)

        self.assertTrue(analytics.ok)
        self.assertEqual(analytics.current_status, S.COMPLETED)
        self.assertEqual(analytics.total_time_tracked, 80)
        self.assertEqual(analytics.status_breakdown, {
            S.PENDING: 5,
            S.IN_PROGRESS: 45,
            S.ON_HOLD: 30,
        })
        self.assertEqual(analytics.duration_variance, 15)
        self.assertEqual(len(analytics.status_history), 5)
        self.assertTrue(analytics.chain_intact)
        self.assertEqual(analytics.timeline.started, T0 + timedelta(minutes=5))

        data = json.loads(analytics.to_json())
        self.assertEqual(data["statusBreakdown"]["in_progress"], 45)
        self.assertEqual(data["durationVariance"], 15)
        self.assertEqual(data["statusHistory"][2]["comment"], "parts")
        self.assertEqual(data["timeline"]["created"], "2024-03-04T09:00:00.000000+00:00")

    def test_no_history(self):
        self.jobs.save(makeJob())
        analytics = self.aggregator.analyze(100)
        self.assertEqual(analytics.total_time_tracked, 0)
        self.assertEqual(analytics.status_breakdown, {})
        self.assertIsNone(analytics.duration_variance)
        self.assertTrue(analytics.chain_intact)

    def test_broken_chain_reported(self):
        self.jobs.save(makeJob(status=S.ON_HOLD))
        self._record(None, S.PENDING, 0, None)
        self.history.append(StatusHistoryEntry(
            job_id=100, from_status=S.IN_PROGRESS, to_status=S.ON_HOLD,
            changed_by=TECH.id, changed_at=T0 + timedelta(minutes=9)))
        self.assertFalse(self.aggregator.analyze(100).chain_intact)

    def test_unknown_job(self):
        result = self.aggregator.analyze(5)
        self.assertEqual(result.kind, RejectionKind.NOT_FOUND)

    def test_storage_failure(self):
        aggregator = AnalyticsAggregator(FailingJobRepository(), self.history)
        with self.assertLogs("jobflow.service_layer.analytics", "ERROR"):
            result = aggregator.analyze(100)
        self.assertEqual(result.kind, RejectionKind.INTERNAL_ERROR)
        self.assertEqual(result.message, "Failed to retrieve analytics")
