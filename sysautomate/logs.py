import datetime
import logging
import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from rich.console import Console
from rich.logging import RichHandler

from sysautomate.errors import PreconditionError

LOGGER_NAME = "sysautomate"
FILE_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class _NoConsoleEcho(logging.Filter):
    """Drop records the console UI already printed itself."""

    def filter(self, record: logging.LogRecord) -> bool:
        return not record.name.startswith(f"{LOGGER_NAME}.ui")


def setup_logger(console: Console, debug: bool = False) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    for h in logger.handlers[:]:
        logger.removeHandler(h)
        h.close()

    console_handler = RichHandler(console=console, rich_tracebacks=True, show_path=False)
    console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    console_handler.addFilter(_NoConsoleEcho())
    logger.addHandler(console_handler)
    return logger


def ensure_report_dir(report_dir: Path) -> Path:
    """
    Create the report directory if needed.

    Raises:
        PreconditionError: If the directory cannot be created or written
    """
    try:
        report_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise PreconditionError(f"Cannot create report directory {report_dir}: {e}") from e
    if not os.access(report_dir, os.W_OK):
        raise PreconditionError(f"Report directory {report_dir} is not writable.")
    return report_dir


def prune_reports(report_dir: Path, retention_days: int, now: Optional[float] = None) -> List[Path]:
    """
    Delete report files last modified more than ``retention_days`` days ago.

    Args:
        report_dir: Directory holding run logs
        retention_days: Age limit in days
        now: Reference time as a UNIX timestamp (defaults to the current time)

    Returns:
        Paths that were deleted
    """
    logger = logging.getLogger(LOGGER_NAME)
    cutoff = (now if now is not None else time.time()) - retention_days * 86400
    removed = []
    for item in sorted(report_dir.rglob("*")):
        try:
            if item.is_file() and item.stat().st_mtime < cutoff:
                item.unlink()
                removed.append(item)
                logger.debug(f"Pruned old report: {item}")
        except OSError as e:
            logger.warning(f"Failed to prune {item}: {e}")
    if removed:
        logger.info(f"Pruned {len(removed)} report(s) older than {retention_days} days from {report_dir}")
    return removed


def report_log_path(report_dir: Path, distro: str, when: Optional[datetime.datetime] = None) -> Path:
    stamp = (when or datetime.datetime.now()).strftime("%Y-%m-%d-%H-%M-%S")
    return report_dir / f"{distro}-maintenance-{stamp}.log"


@contextmanager
def report_log(log_file: Path) -> Iterator[logging.FileHandler]:
    """
    Attach a DEBUG file handler for the run log for the duration of the block.

    The handler is flushed, detached and closed on exit, even when the
    block raises.
    """
    logger = logging.getLogger(LOGGER_NAME)
    try:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
    except OSError as e:
        raise PreconditionError(f"Cannot open run log {log_file}: {e}") from e
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, DATE_FORMAT))
    try:
        os.chmod(log_file, 0o600)
    except OSError as e:
        logger.warning(f"Could not set log file perms {log_file}: {e}")
    logger.addHandler(file_handler)
    try:
        yield file_handler
    finally:
        file_handler.flush()
        logger.removeHandler(file_handler)
        file_handler.close()
