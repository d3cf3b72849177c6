"""RunHistory - History Data Models

测试运行历史的数据模型：RunSummary（每次运行一条）、TestHistoryEntry（每个用例一条）
以及跨 Run 的统计结果。

磁盘上的 JSON 使用 camelCase 字段名（runId / startTime / timedOut ...），
Python 侧使用 snake_case，通过 alias 互转。
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from runhistory.models.run_status import RunStatus, TestStatus


class HistoryModel(BaseModel):
    """历史模型基类（camelCase 别名，允许按字段名构造）"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        """导出为写文件用的 dict（使用别名，省略空字段）"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class RunSummary(HistoryModel):
    """一次测试运行的汇总

    计数器只通过 count() 累加，保证 total == passed + failed + skipped + timed_out。
    """
    run_id: str
    timestamp: datetime
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: int = 0
    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    timed_out: int = 0
    status: RunStatus = RunStatus.PASSED
    environment: Optional[str] = None
    project: Optional[str] = None

    @classmethod
    def start(
        cls,
        run_id: str,
        started_at: datetime,
        environment: str,
        project: str,
    ) -> "RunSummary":
        """创建零值汇总（status = passed）"""
        return cls(
            run_id=run_id,
            timestamp=started_at,
            start_time=started_at,
            environment=environment,
            project=project,
        )

    def count(self, status: TestStatus) -> None:
        """累加一个已完成用例；失败类状态把 Run 锁存为 failed"""
        status = TestStatus(status)
        self.total += 1
        if status is TestStatus.PASSED:
            self.passed += 1
        elif status is TestStatus.FAILED:
            self.failed += 1
        elif status is TestStatus.SKIPPED:
            self.skipped += 1
        elif status is TestStatus.TIMED_OUT:
            self.timed_out += 1

        if status.is_failure():
            self.status = RunStatus.FAILED

    def finish(self, ended_at: datetime) -> None:
        """写入结束时间并计算耗时（毫秒）"""
        self.end_time = ended_at
        self.duration = (ended_at - self.start_time) // timedelta(milliseconds=1)

    @property
    def is_finished(self) -> bool:
        return self.end_time is not None


class TestHistoryEntry(HistoryModel):
    """单个测试用例的执行记录"""
    __test__ = False

    timestamp: datetime
    run_id: str
    status: TestStatus
    duration: int = 0
    title: str
    file: str
    project: Optional[str] = None
    error: Optional[str] = None


class HistoryStatistics(HistoryModel):
    """跨所有已索引 Run 的统计"""
    total_runs: int = 0
    total_tests: int = 0
    total_passed: int = 0
    total_failed: int = 0
    total_skipped: int = 0
    average_duration: float = Field(default=0.0, description="平均耗时（毫秒）")
    success_rate: float = Field(default=0.0, description="status == passed 的 Run 占比（百分比）")

    @classmethod
    def from_runs(cls, runs: list[RunSummary]) -> "HistoryStatistics":
        """聚合统计；没有 Run 时返回全零"""
        if not runs:
            return cls()

        successful_runs = sum(1 for run in runs if run.status == RunStatus.PASSED)
        return cls(
            total_runs=len(runs),
            total_tests=sum(run.total for run in runs),
            total_passed=sum(run.passed for run in runs),
            total_failed=sum(run.failed for run in runs),
            total_skipped=sum(run.skipped for run in runs),
            average_duration=sum(run.duration for run in runs) / len(runs),
            success_rate=successful_runs / len(runs) * 100,
        )


# 列表文件（runs-index.json / test-results.json）的读写适配器
RunIndexAdapter = TypeAdapter(list[RunSummary])
TestResultsAdapter = TypeAdapter(list[TestHistoryEntry])


__all__ = [
    "HistoryModel",
    "RunSummary",
    "TestHistoryEntry",
    "HistoryStatistics",
    "RunIndexAdapter",
    "TestResultsAdapter",
]
