"""Logging initialization using loguru."""

from pathlib import Path
from typing import Optional

from loguru import logger

from dustpan.config import default_log_dir


def init_logging(log_dir: Optional[Path] = None, level: str = "INFO") -> Path:
    """
    Send log records to a rotating file under log_dir.

    The default stderr sink is removed so log output never draws over
    the terminal UI.

    Returns:
        The directory the log files are written to
    """
    log_path = Path(log_dir) if log_dir is not None else default_log_dir()
    log_path.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.add(
        str(log_path / "dustpan_{time:YYYYMMDD}.log"),
        rotation="10 MB",
        retention="10 days",
        enqueue=True,
        backtrace=False,
        diagnose=False,
        level=level,
    )
    return log_path


def disable_logging() -> None:
    """Drop every sink, e.g. for --no-log."""
    logger.remove()
