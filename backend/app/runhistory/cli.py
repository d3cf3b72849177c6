from __future__ import annotations

from typing import Optional

import typer
from rich.markup import escape

from runhistory.logging_config import setup_logging
from runhistory.models.history import TestHistoryEntry
from runhistory.models.run_status import RunStatus, TestStatus
from runhistory.viewer import HistoryViewer, format_local_time, format_seconds

app = typer.Typer(add_completion=False, help="Test run history viewer")

DEFAULT_SUMMARY_LIMIT = 10
FAILED_RUNS_LIMIT = 20

USAGE = """Usage:
  view-history              - Show summary of recent runs
  view-history summary [N]  - Show summary of last N runs (default: 10)
  view-history latest       - Show details of latest run
  view-history stats        - Show statistics across all runs
  view-history run <runId>  - Show details of specific run
  view-history failed       - Show all failed runs"""


def _status_icon(status: TestStatus) -> str:
    if status == TestStatus.PASSED:
        return "✓"
    if status == TestStatus.FAILED:
        return "✗"
    return "○"


def _print_usage(viewer: HistoryViewer) -> None:
    viewer.console.print(USAGE, markup=False)


def _print_results_brief(viewer: HistoryViewer, results: list[TestHistoryEntry]) -> None:
    out = viewer.console
    out.print(f"Total tests: {len(results)}")
    for i, r in enumerate(results, start=1):
        out.print(
            f"{i}. {_status_icon(r.status)} {r.title} ({r.status.value}) - {format_seconds(r.duration)}s",
            markup=False,
        )
        if r.error:
            out.print(f"   Error: {r.error}", markup=False)


def _print_results_detail(viewer: HistoryViewer, results: list[TestHistoryEntry]) -> None:
    out = viewer.console
    out.print(f"\n=== Test Results ({len(results)} tests) ===")
    for i, r in enumerate(results, start=1):
        out.print(f"{i}. {_status_icon(r.status)} {r.title}", markup=False)
        out.print(f"   File: {r.file}", markup=False)
        out.print(f"   Status: {r.status.value} | Duration: {format_seconds(r.duration)}s")
        if r.error:
            out.print(f"   Error: {r.error}", markup=False)
        out.print("")


def show_summary(viewer: HistoryViewer, limit_arg: Optional[str]) -> None:
    if limit_arg is None:
        viewer.print_summary(DEFAULT_SUMMARY_LIMIT)
        return
    try:
        limit = int(limit_arg)
    except ValueError:
        _print_usage(viewer)
        return
    viewer.print_summary(limit)


def show_latest(viewer: HistoryViewer) -> None:
    latest = viewer.get_latest_run()
    if latest is None:
        viewer.console.print("No test runs found.")
        return
    viewer.console.print("\n=== Latest Test Run ===")
    viewer.console.print_json(data=latest.to_json_dict())
    viewer.console.print("\n=== Test Results ===")
    _print_results_brief(viewer, viewer.get_run_results(latest.run_id))


def show_stats(viewer: HistoryViewer) -> None:
    viewer.console.print("\n=== Test History Statistics ===")
    viewer.console.print_json(data=viewer.get_statistics().to_json_dict())


def show_run(viewer: HistoryViewer, run_id: Optional[str]) -> None:
    if not run_id:
        viewer.console.print("Usage: view-history run <runId>")
        return
    run = viewer.find_run(run_id)
    if run is None:
        viewer.console.print(f"Run {escape(run_id)} not found.")
        return
    viewer.console.print("\n=== Test Run Details ===")
    if not run.is_finished:
        viewer.console.print("(run did not finish; showing its initial summary)")
    viewer.console.print_json(data=run.to_json_dict())
    _print_results_detail(viewer, viewer.get_run_results(run_id))


def show_failed(viewer: HistoryViewer) -> None:
    failed_runs = viewer.get_runs_by_status(RunStatus.FAILED)
    viewer.console.print(f"\n=== Failed Runs ({len(failed_runs)}) ===")
    for run in failed_runs[:FAILED_RUNS_LIMIT]:
        viewer.console.print(
            f"{escape(run.run_id)} | {format_local_time(run.start_time)} | Failed: {run.failed}/{run.total}"
        )


# 参数只按位置解析（"-3" 不当作选项）；多余参数打印 usage
@app.command(context_settings={"ignore_unknown_options": True, "allow_extra_args": True})
def view_history(
    ctx: typer.Context,
    command: Optional[str] = typer.Argument(None, help="summary | latest | stats | run | failed"),
    arg: Optional[str] = typer.Argument(None, help="N for summary, runId for run"),
):
    """View persisted test run history."""
    setup_logging()
    viewer = HistoryViewer()

    if ctx.args:
        _print_usage(viewer)
    elif command is None:
        viewer.print_summary(DEFAULT_SUMMARY_LIMIT)
    elif command == "summary":
        show_summary(viewer, arg)
    elif command == "latest":
        show_latest(viewer)
    elif command == "stats":
        show_stats(viewer)
    elif command == "run":
        show_run(viewer, arg)
    elif command == "failed":
        show_failed(viewer)
    else:
        _print_usage(viewer)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
