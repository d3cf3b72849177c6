"""RunHistory - History Store

文件系统即数据库：Recorder 写、Viewer 读的同一棵目录树。

路径结构约定：
    {HISTORY_DIR}/
    ├── runs-index.json          # RunSummary 列表，最新在前，最多 INDEX_LIMIT 条
    ├── runs-index.json.lock     # 更新索引时的排他锁
    └── run-<epochMillis>-<rand>/
        ├── summary.json         # 开始与结束时各写一次
        ├── test-results.json    # 结束时一次性写入
        └── html-report/         # 可选，浏览器报告归档

读操作全部容错（缺失/损坏 → 空结果 + warning），写操作错误直接抛出。
"""

from __future__ import annotations

import fcntl
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from pydantic import ValidationError

from runhistory.models.history import (
    RunIndexAdapter,
    RunSummary,
    TestHistoryEntry,
    TestResultsAdapter,
)

logger = logging.getLogger(__name__)

INDEX_FILE = "runs-index.json"
SUMMARY_FILE = "summary.json"
RESULTS_FILE = "test-results.json"
REPORT_ARCHIVE_DIR = "html-report"

DEFAULT_INDEX_LIMIT = 100


class HistoryStore:
    """
    root 指向历史根目录（默认 ./test-history）
    """

    def __init__(self, root: Path | str):
        self.root = Path(root).resolve()

    @property
    def index_path(self) -> Path:
        return self.root / INDEX_FILE

    def run_dir(self, run_id: str) -> Path:
        d = (self.root / run_id).resolve()
        if not run_id or d == self.root or not d.is_relative_to(self.root):
            raise FileNotFoundError("invalid run_id")
        return d

    # ------------------------------------------------------------
    # 写（错误不吞，交给调用方）
    # ------------------------------------------------------------
    def ensure_run_dir(self, run_id: str) -> Path:
        """创建根目录与 Run 目录（幂等）"""
        d = self.run_dir(run_id)
        d.mkdir(parents=True, exist_ok=True)
        return d

    def write_summary(self, summary: RunSummary) -> Path:
        path = self.run_dir(summary.run_id) / SUMMARY_FILE
        path.write_bytes(summary.model_dump_json(indent=2, by_alias=True, exclude_none=True).encode("utf-8"))
        return path

    def write_results(self, run_id: str, entries: list[TestHistoryEntry]) -> Path:
        path = self.run_dir(run_id) / RESULTS_FILE
        path.write_bytes(TestResultsAdapter.dump_json(entries, indent=2, by_alias=True, exclude_none=True))
        return path

    def update_index(self, summary: RunSummary, limit: int = DEFAULT_INDEX_LIMIT) -> list[RunSummary]:
        """把 summary 合并进全局索引

        - 同一 runId 已存在时替换旧条目（不重复）
        - 新条目插到最前，超出 limit 的最旧条目被淘汰
        - 读-改-写全程持有排他锁，新文件经 os.replace 原子落盘
        """
        self.root.mkdir(parents=True, exist_ok=True)
        with self._index_lock():
            runs = self.read_index()
            runs = [run for run in runs if run.run_id != summary.run_id]
            runs.insert(0, summary)
            runs = runs[:limit]

            tmp_path = self.index_path.with_name(INDEX_FILE + ".tmp")
            tmp_path.write_bytes(RunIndexAdapter.dump_json(runs, indent=2, by_alias=True, exclude_none=True))
            os.replace(tmp_path, self.index_path)
        return runs

    @contextmanager
    def _index_lock(self) -> Iterator[None]:
        lock_path = self.root / (INDEX_FILE + ".lock")
        with open(lock_path, "a", encoding="utf-8") as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)

    # ------------------------------------------------------------
    # 读（缺失/损坏 → 空结果）
    # ------------------------------------------------------------
    def read_index(self) -> list[RunSummary]:
        if not self.index_path.exists():
            return []
        try:
            return RunIndexAdapter.validate_json(self.index_path.read_bytes())
        except (ValidationError, OSError) as e:
            logger.warning(f"Could not read runs index {self.index_path}, treating as empty: {e}")
            return []

    def read_results(self, run_id: str) -> list[TestHistoryEntry]:
        try:
            path = self.run_dir(run_id) / RESULTS_FILE
        except FileNotFoundError:
            logger.warning(f"Invalid run id: {run_id!r}")
            return []
        if not path.exists():
            return []
        try:
            return TestResultsAdapter.validate_json(path.read_bytes())
        except (ValidationError, OSError) as e:
            logger.warning(f"Could not read results for run {run_id}: {e}")
            return []

    def read_summary(self, run_id: str) -> RunSummary | None:
        """读取 Run 目录下的 summary.json（未完成 / 崩溃的 Run 也有）"""
        try:
            path = self.run_dir(run_id) / SUMMARY_FILE
        except FileNotFoundError:
            logger.warning(f"Invalid run id: {run_id!r}")
            return None
        if not path.exists():
            return None
        try:
            return RunSummary.model_validate_json(path.read_bytes())
        except (ValidationError, OSError) as e:
            logger.warning(f"Could not read summary for run {run_id}: {e}")
            return None
