"""RunHistory - pytest plugin

把 pytest 的会话事件转发给 HistoryRecorder。

启用方式：
    pytest -p runhistory.pytest_plugin [--history-dir DIR] [--no-history]
"""

from __future__ import annotations

import re

import pytest

from runhistory.core.config import get_settings
from runhistory.models.run_status import TestStatus
from runhistory.recorder import HistoryRecorder, RunConfig, TestIdentity, TestOutcome

PLUGIN_NAME = "runhistory_reporter"

# pytest-timeout 的失败信息: "Failed: Timeout >5.0s" / "Failed: Timeout (>5.0s) from pytest-timeout."
TIMEOUT_PATTERN = re.compile(r"Failed: Timeout \(?>")


def _error_message(report: pytest.TestReport) -> str | None:
    """只保留错误消息文本，不保留完整堆栈"""
    longrepr = report.longrepr
    if longrepr is None:
        return None
    reprcrash = getattr(longrepr, "reprcrash", None)
    if reprcrash is not None and reprcrash.message:
        return reprcrash.message
    lines = [line for line in str(longrepr).splitlines() if line.strip()]
    return lines[-1].strip() if lines else None


def map_report_status(report: pytest.TestReport) -> TestStatus:
    if report.passed:
        return TestStatus.PASSED
    if report.skipped:
        return TestStatus.SKIPPED
    if TIMEOUT_PATTERN.search(report.longreprtext):
        return TestStatus.TIMED_OUT
    return TestStatus.FAILED


class HistoryReporterPlugin:
    """
    pytest 插件：每个会话对应一次 Run
    """

    def __init__(self, recorder: HistoryRecorder, environment: str | None = None):
        self.recorder = recorder
        self.environment = environment
        # nodeid → 等待 teardown 的 call / setup 报告
        self._pending: dict[str, pytest.TestReport] = {}

    def pytest_sessionstart(self, session: pytest.Session) -> None:
        self.recorder.on_run_begin(RunConfig(environment=self.environment))

    def pytest_runtest_logreport(self, report: pytest.TestReport) -> None:
        # call 阶段正常记录；setup 阶段只记录跳过或报错（此时不会有 call 阶段）
        # 用例结果在 teardown 报告到达后才落定：teardown 报错会把通过/跳过改判为失败
        if report.when == "setup" and report.passed:
            return
        if report.when != "teardown":
            self._pending[report.nodeid] = report
            return

        primary = self._pending.pop(report.nodeid, None)
        if primary is None and report.passed:
            return
        self._record(primary or report, teardown=report)

    def _record(self, report: pytest.TestReport, teardown: pytest.TestReport | None = None) -> None:
        status = map_report_status(report)
        error = _error_message(report) if status.is_failure() else None
        if teardown is not None and teardown.failed and not status.is_failure():
            status = map_report_status(teardown)
            error = _error_message(teardown)

        summary = self.recorder.summary
        self.recorder.on_test_end(
            TestIdentity(
                title=report.head_line or report.nodeid,
                file=report.location[0],
                project=summary.environment if summary else None,
            ),
            TestOutcome(
                status=status,
                duration=int(report.duration * 1000),
                error=error,
            ),
        )

    def pytest_sessionfinish(self, session: pytest.Session, exitstatus: int) -> None:
        # 会话中断时可能有等不到 teardown 的用例
        for report in self._pending.values():
            self._record(report)
        self._pending.clear()
        self.recorder.on_run_end(exitstatus)

    def pytest_terminal_summary(self, terminalreporter) -> None:
        if self.recorder.run_dir is not None:
            terminalreporter.write_line(f"[Test History] Results saved to: {self.recorder.run_dir}")


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("runhistory", "test run history")
    group.addoption(
        "--history-dir",
        action="store",
        default=None,
        help="Directory for test run history (default: RH_HISTORY_DIR or ./test-history)",
    )
    group.addoption(
        "--no-history",
        action="store_true",
        default=False,
        help="Disable test run history recording",
    )


def pytest_configure(config: pytest.Config) -> None:
    if config.getoption("--no-history"):
        return
    # xdist worker 不记录，由 controller 统一接收报告
    if hasattr(config, "workerinput"):
        return

    settings = get_settings()
    recorder = HistoryRecorder(config.getoption("--history-dir"), settings=settings)
    config.pluginmanager.register(
        HistoryReporterPlugin(recorder, environment=settings.ENVIRONMENT),
        PLUGIN_NAME,
    )


def pytest_unconfigure(config: pytest.Config) -> None:
    plugin = config.pluginmanager.get_plugin(PLUGIN_NAME)
    if plugin is not None:
        config.pluginmanager.unregister(plugin)
