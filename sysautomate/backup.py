import datetime
import logging
import shutil
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from sysautomate.errors import BackupError

logger = logging.getLogger("sysautomate")


def backup_configs(
    files: Iterable[str], backup_dir: Path, today: Optional[datetime.date] = None
) -> Tuple[List[Path], List[str]]:
    """
    Copy each config file to ``<backup_dir>/<name>.backup.<YYYY-MM-DD>``.

    Missing or unreadable files are reported back rather than raised, so one
    bad path does not stop the others from being saved.

    Args:
        files: Absolute paths of files to back up
        backup_dir: Destination directory (created if missing)
        today: Date used in the backup suffix

    Returns:
        (backups written, paths that could not be backed up)

    Raises:
        BackupError: If the backup directory cannot be created
    """
    stamp = (today or datetime.date.today()).isoformat()
    try:
        backup_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise BackupError(f"Cannot create backup directory {backup_dir}: {e}") from e

    saved, failed = [], []
    for file_str in files:
        src = Path(file_str)
        if not src.is_file():
            logger.warning(f"Cannot backup non-file: {src}")
            failed.append(file_str)
            continue
        dest = backup_dir / f"{src.name}.backup.{stamp}"
        try:
            shutil.copy2(src, dest)
        except OSError as e:
            logger.error(f"Failed backup {src} to {dest}: {e}")
            failed.append(file_str)
            continue
        logger.debug(f"Backed up '{src}' to '{dest}'")
        saved.append(dest)
    return saved, failed
