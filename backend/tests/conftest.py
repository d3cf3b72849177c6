"""
RunHistory 测试配置

统一隔离历史目录与环境变量，确保测试之间互不影响。
"""
from datetime import datetime
from pathlib import Path

import pytest

from runhistory.models.history import RunSummary
from runhistory.models.run_status import RunStatus
from runhistory.recorder import HistoryRecorder, TestIdentity, TestOutcome
from runhistory.storage.store import HistoryStore

pytest_plugins = ["pytester"]

# 会影响 Settings 的环境变量
SETTINGS_ENV_VARS = (
    "ENVIRONMENT",
    "PROJECT",
    "RH_ENVIRONMENT",
    "RH_PROJECT",
    "RH_HISTORY_DIR",
    "RH_REPORT_DIR",
    "RH_INDEX_LIMIT",
    "RH_LOG_FILE",
)


@pytest.fixture(autouse=True)
def clean_settings_env(monkeypatch):
    """每个测试前清理配置相关环境变量"""
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def history_dir(tmp_path: Path) -> Path:
    """历史根目录（不预先创建）"""
    return tmp_path / "test-history"


@pytest.fixture
def report_dir(tmp_path: Path) -> Path:
    """浏览器报告目录（默认不存在）"""
    return tmp_path / "playwright-report"


@pytest.fixture
def make_recorder(history_dir, report_dir):
    """创建指向临时目录的 Recorder"""
    def _make(**kwargs) -> HistoryRecorder:
        kwargs.setdefault("report_dir", report_dir)
        return HistoryRecorder(history_dir, **kwargs)
    return _make


@pytest.fixture
def record_run(make_recorder):
    """完整跑一次 Run：begin → 每个状态一个用例 → end"""
    def _record(*statuses, **kwargs) -> HistoryRecorder:
        recorder = make_recorder(**kwargs)
        recorder.on_run_begin()
        for i, status in enumerate(statuses):
            recorder.on_test_end(
                TestIdentity(title=f"case {i}", file="tests/specs/test_claims.py", project="qa1"),
                TestOutcome(status=status, duration=100 * (i + 1)),
            )
        recorder.on_run_end()
        return recorder
    return _record


def _make_summary(run_id: str, start: datetime, status: RunStatus = RunStatus.PASSED, **counts) -> RunSummary:
    summary = RunSummary.start(run_id=run_id, started_at=start, environment="qa1", project="QA")
    summary.status = status
    for key, value in counts.items():
        setattr(summary, key, value)
    summary.total = summary.passed + summary.failed + summary.skipped + summary.timed_out
    return summary


@pytest.fixture
def make_summary():
    """构造 RunSummary（用于直接写索引）"""
    return _make_summary


@pytest.fixture
def seed_index(history_dir):
    """按给定顺序把 RunSummary 写入索引（后写入的排在前面）"""
    def _seed(*summaries: RunSummary) -> HistoryStore:
        store = HistoryStore(history_dir)
        for summary in summaries:
            store.update_index(summary)
        return store
    return _seed
