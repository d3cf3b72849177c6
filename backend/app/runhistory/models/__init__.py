"""RunHistory - Models

RunSummary / TestHistoryEntry 数据契约与状态枚举。
"""
from runhistory.models.history import (
    HistoryStatistics,
    RunIndexAdapter,
    RunSummary,
    TestHistoryEntry,
    TestResultsAdapter,
)
from runhistory.models.run_status import RunStatus, TestStatus

__all__ = [
    "HistoryStatistics",
    "RunIndexAdapter",
    "RunSummary",
    "TestHistoryEntry",
    "TestResultsAdapter",
    "RunStatus",
    "TestStatus",
]
