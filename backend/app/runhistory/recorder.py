"""RunHistory - History Recorder

把一次测试运行的生命周期事件（开始 / 每个用例结束 / 结束）持久化到历史目录。

调用顺序约定：on_run_begin → on_test_end* → on_run_end。
- on_run_begin 立即写 summary.json，进程中途被杀也能留下记录
- 用例结果只在内存缓冲，on_run_end 一次性写入 test-results.json
- 写盘失败直接抛出；只有浏览器报告归档是 best-effort
"""

from __future__ import annotations

import logging
import shutil
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional
from uuid import uuid4

from runhistory.core.config import Settings, get_settings
from runhistory.models.history import RunSummary, TestHistoryEntry
from runhistory.models.run_status import TestStatus
from runhistory.storage.store import REPORT_ARCHIVE_DIR, HistoryStore

logger = logging.getLogger(__name__)


class RecorderStateError(RuntimeError):
    """生命周期调用顺序错误（例如未 begin 就 end）"""


@dataclass(frozen=True)
class RunConfig:
    """Run 开始事件携带的配置，缺省值回退到 Settings"""
    environment: Optional[str] = None
    project: Optional[str] = None


@dataclass(frozen=True)
class TestIdentity:
    """用例身份"""
    __test__ = False

    title: str
    file: str
    project: Optional[str] = None


@dataclass(frozen=True)
class TestOutcome:
    """用例结果；error 只保留消息文本"""
    __test__ = False

    status: TestStatus
    duration: int = 0
    error: Optional[str] = None


@dataclass(frozen=True)
class ArchiveResult:
    """报告归档结果（失败不影响 Run）"""
    copied: bool
    source: str
    destination: Optional[str] = None
    error: Optional[str] = None


def generate_run_id() -> str:
    # e.g. run-1718000000000-3f9a1c
    return f"run-{int(time.time() * 1000)}-{uuid4().hex[:6]}"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class HistoryRecorder:
    """测试历史记录器

    每个实例只服务一次 Run；RunSummary 计数器只由本实例修改。
    """

    def __init__(
        self,
        history_dir: Path | str | None = None,
        *,
        report_dir: Path | str | None = None,
        index_limit: int | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.store = HistoryStore(history_dir or self.settings.HISTORY_DIR)
        self.report_dir = Path(report_dir or self.settings.REPORT_DIR).resolve()
        self.index_limit = index_limit or self.settings.INDEX_LIMIT

        self._summary: RunSummary | None = None
        self._results: list[TestHistoryEntry] = []
        self.archive_result: ArchiveResult | None = None

    # ------------------------------------------------------------
    # 只读状态
    # ------------------------------------------------------------
    @property
    def run_id(self) -> str | None:
        return self._summary.run_id if self._summary else None

    @property
    def run_dir(self) -> Path | None:
        return self.store.run_dir(self._summary.run_id) if self._summary else None

    @property
    def summary(self) -> RunSummary | None:
        return self._summary.model_copy() if self._summary else None

    @property
    def results(self) -> list[TestHistoryEntry]:
        return list(self._results)

    def _require_started(self) -> RunSummary:
        if self._summary is None:
            raise RecorderStateError("on_run_begin() must be called first")
        return self._summary

    # ------------------------------------------------------------
    # 生命周期
    # ------------------------------------------------------------
    def on_run_begin(self, config: RunConfig | None = None) -> None:
        config = config or RunConfig()
        if self._summary is not None:
            raise RecorderStateError(f"run {self._summary.run_id} already started")

        summary = RunSummary.start(
            run_id=generate_run_id(),
            started_at=_utc_now(),
            environment=config.environment or self.settings.ENVIRONMENT,
            project=config.project or self.settings.PROJECT,
        )
        run_dir = self.store.ensure_run_dir(summary.run_id)
        self._summary = summary
        self._results = []

        self.store.write_summary(summary)

        logger.info(f"[Test History] Starting test run: {summary.run_id}")
        logger.info(f"[Test History] Results will be stored in: {run_dir}")

    def on_test_end(self, test: TestIdentity, result: TestOutcome) -> None:
        summary = self._require_started()
        status = TestStatus(result.status)

        entry = TestHistoryEntry(
            timestamp=_utc_now(),
            run_id=summary.run_id,
            status=status,
            duration=int(result.duration),
            title=test.title,
            file=test.file,
            project=test.project,
            error=result.error if status.is_failure() else None,
        )
        self._results.append(entry)
        summary.count(status)

    def on_run_end(self, result: Any = None) -> None:
        """result 仅作结束信号（例如 pytest exitstatus），内容不参与计算"""
        summary = self._require_started()
        summary.finish(_utc_now())

        self.store.write_results(summary.run_id, self._results)
        self.store.write_summary(summary)
        self.store.update_index(summary, limit=self.index_limit)

        self.archive_result = self._archive_report()
        if self.archive_result.error:
            logger.debug(f"[Test History] Report archival skipped: {self.archive_result.error}")

        logger.info(f"[Test History] Test run completed: {summary.run_id}")
        logger.info(
            f"[Test History] Summary: {summary.passed} passed, {summary.failed} failed, "
            f"{summary.skipped} skipped, {summary.timed_out} timed out"
        )
        logger.info(f"[Test History] Results saved to: {self.run_dir}")

    def _archive_report(self) -> ArchiveResult:
        """复制浏览器报告目录到 Run 目录；任何失败只记录在结果里"""
        source = str(self.report_dir)
        if not self.report_dir.is_dir():
            return ArchiveResult(copied=False, source=source, error="report directory not found")

        destination = self.store.run_dir(self._summary.run_id) / REPORT_ARCHIVE_DIR
        try:
            shutil.copytree(self.report_dir, destination, dirs_exist_ok=True)
        except OSError as e:  # shutil.Error 也是 OSError
            return ArchiveResult(copied=False, source=source, destination=str(destination), error=str(e))
        return ArchiveResult(copied=True, source=source, destination=str(destination))


__all__ = [
    "ArchiveResult",
    "HistoryRecorder",
    "RecorderStateError",
    "RunConfig",
    "TestIdentity",
    "TestOutcome",
    "generate_run_id",
]
