import logging
import sys
from pathlib import Path

from runhistory.core.config import get_settings


def setup_logging(level: str | None = None, log_file: str | None = None):
    """配置日志

    stdout 留给报告输出，日志走 stderr；设置了 RH_LOG_FILE 时同时写文件。
    """
    settings = get_settings()
    level = level or settings.LOG_LEVEL
    log_file = log_file or settings.LOG_FILE

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )

    logger = logging.getLogger("runhistory")
    logger.debug("日志服务已启动")
    return logger
