"""
Service layer for job status changes.

This package contains the I/O boundary around the workflow engine:
loading jobs and roles, applying accepted changes, recording history and
reading analytics.
"""

from .analytics import AnalyticsAggregator, Timeline, WorkflowAnalytics
from .history_recorder import HistoryRecorder, HistoryWriteError
from .job_service import JobWorkflowService

__all__ = [
    "AnalyticsAggregator",
    "HistoryRecorder",
    "HistoryWriteError",
    "JobWorkflowService",
    "Timeline",
    "WorkflowAnalytics",
]
