"""RunHistory - Test Run History

UI 测试套件的运行历史：记录（Recorder）与查询（Viewer）。

核心组件：
- recorder: 生命周期事件 → 历史目录
- viewer: 历史目录 → 列表 / 过滤 / 统计 / 报告
- pytest_plugin: pytest 会话 → recorder
- cli: view-history 命令
"""

from runhistory.models import (
    HistoryStatistics,
    RunStatus,
    RunSummary,
    TestHistoryEntry,
    TestStatus,
)
from runhistory.recorder import (
    ArchiveResult,
    HistoryRecorder,
    RecorderStateError,
    RunConfig,
    TestIdentity,
    TestOutcome,
)
from runhistory.viewer import HistoryViewer

__all__ = [
    # Models
    "HistoryStatistics",
    "RunStatus",
    "RunSummary",
    "TestHistoryEntry",
    "TestStatus",
    # Recorder
    "ArchiveResult",
    "HistoryRecorder",
    "RecorderStateError",
    "RunConfig",
    "TestIdentity",
    "TestOutcome",
    # Viewer
    "HistoryViewer",
]
