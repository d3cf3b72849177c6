"""RunHistory - Storage

历史目录树的读写层。
"""
from runhistory.storage.store import (
    INDEX_FILE,
    REPORT_ARCHIVE_DIR,
    RESULTS_FILE,
    SUMMARY_FILE,
    HistoryStore,
)

__all__ = [
    "INDEX_FILE",
    "REPORT_ARCHIVE_DIR",
    "RESULTS_FILE",
    "SUMMARY_FILE",
    "HistoryStore",
]
