"""Tests for History Viewer

验证查询 / 过滤 / 统计 / 报告输出，以及损坏历史文件下的容错行为。
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from runhistory.models.run_status import RunStatus, TestStatus
from runhistory.storage.store import INDEX_FILE, RESULTS_FILE
from runhistory.viewer import HistoryViewer

BASE = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


class TestListRuns:
    """list_runs / get_run / get_latest_run 测试"""

    def test_empty_history(self, history_dir):
        viewer = HistoryViewer(history_dir)
        assert viewer.list_runs() == []
        assert viewer.get_latest_run() is None
        assert viewer.get_run("run-missing") is None

    def test_reads_are_idempotent(self, record_run, history_dir):
        record_run(TestStatus.PASSED)
        record_run(TestStatus.FAILED)
        viewer = HistoryViewer(history_dir)
        assert viewer.list_runs() == viewer.list_runs()

    def test_get_run_round_trip(self, record_run, history_dir):
        """Recorder 写入的汇总经 get_run 读回逐字段相等"""
        recorder = record_run(TestStatus.PASSED, TestStatus.SKIPPED, TestStatus.TIMED_OUT)
        run = HistoryViewer(history_dir).get_run(recorder.run_id)
        assert run is not None
        assert run.model_dump() == recorder.summary.model_dump()

    def test_latest_is_most_recent(self, record_run, history_dir):
        record_run(TestStatus.PASSED)
        latest = record_run(TestStatus.PASSED)
        assert HistoryViewer(history_dir).get_latest_run().run_id == latest.run_id

    def test_index_cap_over_many_runs(self, record_run, history_dir):
        """连续 105 次 Run 后索引只保留最新 100 条"""
        recorders = [record_run(TestStatus.PASSED) for _ in range(105)]

        runs = HistoryViewer(history_dir).list_runs()
        assert len(runs) == 100
        assert runs[0].run_id == recorders[-1].run_id
        assert len({run.run_id for run in runs}) == 100
        evicted = {r.run_id for r in recorders[:5]}
        assert evicted.isdisjoint(run.run_id for run in runs)
        # Run 目录本身不会被清理
        assert all(r.run_dir.exists() for r in recorders[:5])

    def test_find_run_falls_back_to_summary_file(self, make_recorder, record_run, history_dir):
        """未进索引的 Run 只能通过 find_run 找到"""
        finished = record_run(TestStatus.PASSED)
        crashed = make_recorder()
        crashed.on_run_begin()

        viewer = HistoryViewer(history_dir)
        assert viewer.get_run(crashed.run_id) is None
        run = viewer.find_run(crashed.run_id)
        assert run.run_id == crashed.run_id
        assert not run.is_finished
        assert viewer.find_run(finished.run_id).is_finished
        assert viewer.find_run("run-missing") is None

    def test_malformed_index(self, history_dir):
        """截断的 runs-index.json → 空列表"""
        history_dir.mkdir(parents=True)
        (history_dir / INDEX_FILE).write_text('[{"runId": "run-1", "timest', encoding="utf-8")
        viewer = HistoryViewer(history_dir)
        assert viewer.list_runs() == []
        assert viewer.get_latest_run() is None


class TestRunResults:
    """get_run_results 测试"""

    def test_results_in_call_order(self, record_run, history_dir):
        recorder = record_run(TestStatus.PASSED, TestStatus.FAILED, TestStatus.SKIPPED)
        results = HistoryViewer(history_dir).get_run_results(recorder.run_id)
        assert [r.title for r in results] == ["case 0", "case 1", "case 2"]
        assert [r.status for r in results] == [TestStatus.PASSED, TestStatus.FAILED, TestStatus.SKIPPED]

    def test_missing_results(self, history_dir):
        assert HistoryViewer(history_dir).get_run_results("run-unknown") == []

    def test_corrupt_results(self, record_run, history_dir):
        """已索引的 Run 其 test-results.json 损坏 → 空列表"""
        recorder = record_run(TestStatus.PASSED)
        (recorder.run_dir / RESULTS_FILE).write_text("{not valid json", encoding="utf-8")

        viewer = HistoryViewer(history_dir)
        assert viewer.get_run(recorder.run_id) is not None
        assert viewer.get_run_results(recorder.run_id) == []


class TestFilters:
    """按状态 / 日期过滤测试"""

    def test_by_status(self, seed_index, make_summary, history_dir):
        seed_index(
            make_summary("run-1", BASE, passed=1),
            make_summary("run-2", BASE, RunStatus.FAILED, failed=1),
            make_summary("run-3", BASE, RunStatus.FAILED, timed_out=1),
        )
        viewer = HistoryViewer(history_dir)
        assert [r.run_id for r in viewer.get_runs_by_status("failed")] == ["run-3", "run-2"]
        assert [r.run_id for r in viewer.get_runs_by_status(RunStatus.PASSED)] == ["run-1"]

    def test_by_status_rejects_unknown(self, history_dir):
        with pytest.raises(ValueError):
            HistoryViewer(history_dir).get_runs_by_status("flaky")

    def test_by_date(self, seed_index, make_summary, history_dir):
        """同一日历日的 Run 不论具体时刻都命中"""
        seed_index(
            make_summary("run-early", datetime(2024, 1, 1, 0, 5, tzinfo=timezone.utc)),
            make_summary("run-late", datetime(2024, 1, 1, 23, 55, tzinfo=timezone.utc)),
            make_summary("run-next", datetime(2024, 1, 2, 10, 0, tzinfo=timezone.utc)),
        )
        viewer = HistoryViewer(history_dir)

        runs = viewer.get_runs_by_date(date(2024, 1, 1))
        assert sorted(r.run_id for r in runs) == ["run-early", "run-late"]
        assert [r.run_id for r in viewer.get_runs_by_date("2024-01-02")] == ["run-next"]
        assert viewer.get_runs_by_date(date(2024, 1, 3)) == []

    @pytest.mark.parametrize("bad", ["2024-01-01 10:00", "yesterday", "2024-13-01"])
    def test_by_date_malformed_string(self, seed_index, make_summary, history_dir, bad, caplog):
        """无法解析的日期字符串 → 空列表 + warning"""
        seed_index(make_summary("run-1", BASE))
        assert HistoryViewer(history_dir).get_runs_by_date(bad) == []
        assert "Invalid date" in caplog.text

    def test_by_date_normalizes_aware_datetime(self, seed_index, make_summary, history_dir):
        """带时区的 datetime 先换算到 UTC 再取日期"""
        seed_index(make_summary("run-utc", datetime(2024, 1, 1, 20, 0, tzinfo=timezone.utc)))
        viewer = HistoryViewer(history_dir)

        # 2024-01-02 02:00 +08:00 == 2024-01-01 18:00 UTC
        shanghai = timezone(timedelta(hours=8))
        runs = viewer.get_runs_by_date(datetime(2024, 1, 2, 2, 0, tzinfo=shanghai))
        assert [r.run_id for r in runs] == ["run-utc"]


class TestStatistics:
    """get_statistics 测试"""

    def test_no_runs(self, history_dir):
        """空历史返回全零，不会除零"""
        stats = HistoryViewer(history_dir).get_statistics()
        assert stats.total_runs == 0
        assert stats.total_tests == 0
        assert stats.total_passed == 0
        assert stats.total_failed == 0
        assert stats.total_skipped == 0
        assert stats.average_duration == 0
        assert stats.success_rate == 0

    def test_success_rate_counts_runs(self, seed_index, make_summary, history_dir):
        seed_index(
            make_summary("run-1", BASE, passed=10),
            make_summary("run-2", BASE, passed=10),
            make_summary("run-3", BASE, RunStatus.FAILED, passed=9, failed=1),
            make_summary("run-4", BASE, passed=5, skipped=5),
        )
        stats = HistoryViewer(history_dir).get_statistics()
        assert stats.total_runs == 4
        assert stats.total_tests == 40
        assert stats.total_passed == 34
        assert stats.total_failed == 1
        assert stats.total_skipped == 5
        assert stats.success_rate == 75.0


class TestPrintSummary:
    """print_summary 输出测试"""

    def test_lists_recent_runs(self, record_run, history_dir, capsys):
        record_run(TestStatus.PASSED)
        newer = record_run(TestStatus.PASSED, TestStatus.FAILED)

        HistoryViewer(history_dir).print_summary(1)
        out = capsys.readouterr().out

        assert "=== Test History Summary ===" in out
        assert "Total Runs: 2" in out
        assert "Success Rate: 50.00%" in out
        assert "Recent Runs (last 1):" in out
        assert f"✗ {newer.run_id[:20]}..." in out
        assert "Passed: 1, Failed: 1, Skipped: 0" in out
        assert out.count("| Duration:") == 1
        assert "─" * 100 in out

    def test_empty_history(self, history_dir, capsys):
        HistoryViewer(history_dir).print_summary()
        out = capsys.readouterr().out
        assert "Total Runs: 0" in out
        assert "No test runs found." in out
