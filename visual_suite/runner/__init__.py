"""Runner module - check session lifecycle and suite orchestration."""

from .check_session import CheckSession, CheckSessionState, CheckpointRecord
from .orchestrator import TestOrchestrator, TestRun
from .result_collector import ResultCollector
from .results import (
    CheckpointResult,
    ResultSummary,
    SessionResult,
    SessionStatus,
    TargetResult,
)
from .runner_handle import RunnerHandle, create_runner_handle

__all__ = [
    "CheckSession",
    "CheckSessionState",
    "CheckpointRecord",
    "TestOrchestrator",
    "TestRun",
    "ResultCollector",
    "CheckpointResult",
    "ResultSummary",
    "SessionResult",
    "SessionStatus",
    "TargetResult",
    "RunnerHandle",
    "create_runner_handle",
]
