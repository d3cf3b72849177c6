"""RunHistory - History Viewer

只读访问历史目录：列表、查询、过滤、统计与文本报告。
任何读取失败都降级为空结果，不会因为一份损坏的历史文件而中断。
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from runhistory.core.config import get_settings
from runhistory.models.history import HistoryStatistics, RunSummary, TestHistoryEntry
from runhistory.models.run_status import RunStatus
from runhistory.storage.store import HistoryStore

logger = logging.getLogger(__name__)

RULE_WIDTH = 100


def _to_utc_date(value: date | datetime | str) -> date:
    """把 date / datetime / ISO 字符串规整为 UTC 日历日"""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00")) if "T" in value else date.fromisoformat(value)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


def format_local_time(value: datetime) -> str:
    return value.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def format_seconds(duration_ms: float) -> str:
    return f"{duration_ms / 1000:.2f}"


class HistoryViewer:
    """测试历史查看器"""

    def __init__(self, history_dir: Path | str | None = None, console: Console | None = None):
        self.store = HistoryStore(history_dir or get_settings().HISTORY_DIR)
        self.console = console or Console(soft_wrap=True, highlight=False, emoji=False)

    def list_runs(self) -> list[RunSummary]:
        """全部已索引 Run（最新在前）"""
        return self.store.read_index()

    def get_run(self, run_id: str) -> RunSummary | None:
        return next((run for run in self.list_runs() if run.run_id == run_id), None)

    def find_run(self, run_id: str) -> RunSummary | None:
        """先查索引，找不到再读 Run 目录下的 summary.json（中途崩溃、未进索引的 Run）"""
        return self.get_run(run_id) or self.store.read_summary(run_id)

    def get_run_results(self, run_id: str) -> list[TestHistoryEntry]:
        return self.store.read_results(run_id)

    def get_latest_run(self) -> RunSummary | None:
        runs = self.list_runs()
        return runs[0] if runs else None

    def get_runs_by_status(self, status: RunStatus | str) -> list[RunSummary]:
        status = RunStatus(status)
        return [run for run in self.list_runs() if run.status == status]

    def get_runs_by_date(self, day: date | datetime | str) -> list[RunSummary]:
        """按开始时间的 UTC 日历日过滤（忽略具体时刻）；无法解析的日期字符串 → 空列表"""
        try:
            target = _to_utc_date(day)
        except ValueError as e:
            logger.warning(f"Invalid date {day!r}: {e}")
            return []
        return [run for run in self.list_runs() if _to_utc_date(run.start_time) == target]

    def get_statistics(self) -> HistoryStatistics:
        return HistoryStatistics.from_runs(self.list_runs())

    def print_summary(self, limit: int = 10) -> None:
        """打印最近 limit 次 Run 与整体统计"""
        runs = self.list_runs()
        stats = HistoryStatistics.from_runs(runs)
        out = self.console

        out.print("\n=== Test History Summary ===")
        out.print(f"Total Runs: {stats.total_runs}")
        out.print(f"Success Rate: {stats.success_rate:.2f}%")
        out.print(f"Average Duration: {format_seconds(stats.average_duration)}s")

        if not runs:
            out.print("\nNo test runs found.")
            return

        out.print(f"\nRecent Runs (last {limit}):")
        out.print("─" * RULE_WIDTH)
        for run in runs[:limit]:
            icon = "[green]✓[/green]" if run.status == RunStatus.PASSED else "[red]✗[/red]"
            out.print(
                f"{icon} {escape(run.run_id[:20])}... | {format_local_time(run.start_time)} | "
                f"Passed: {run.passed}, Failed: {run.failed}, Skipped: {run.skipped} | "
                f"Duration: {format_seconds(run.duration)}s"
            )
        out.print("─" * RULE_WIDTH)
