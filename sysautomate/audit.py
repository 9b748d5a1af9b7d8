import heapq
import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple

import psutil
import requests

logger = logging.getLogger("sysautomate")


# ----------------------------------------------------------------
# Largest Files
# ----------------------------------------------------------------
def _walk_files(root: Path, exclude: Iterable[str]) -> Iterator[Tuple[int, str]]:
    excluded = {os.path.normpath(e) for e in exclude}
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if os.path.join(dirpath, d) not in excluded]
        for name in filenames:
            path = os.path.join(dirpath, name)
            try:
                st = os.lstat(path)
            except OSError:
                continue
            if stat.S_ISREG(st.st_mode):
                yield st.st_size, path


def find_largest_files(
    root: Path, count: int = 10, min_size: int = 0, exclude: Iterable[str] = ()
) -> List[Tuple[int, str]]:
    """
    Return the ``count`` largest regular files under ``root``, biggest first.

    Symlinks are not followed; directories listed in ``exclude`` are not
    descended into and unreadable entries are skipped.
    """
    candidates = ((size, path) for size, path in _walk_files(root, exclude) if size >= min_size)
    return heapq.nlargest(count, candidates)


def format_largest_files(entries: List[Tuple[int, str]]) -> str:
    return "\n".join(f"{size / 1024 / 1024:.2f} MB - {path}" for size, path in entries)


# ----------------------------------------------------------------
# Zombie Processes
# ----------------------------------------------------------------
@dataclass
class ZombieProcess:
    pid: int
    ppid: int
    name: str

    def __str__(self) -> str:
        return f"Z  ppid={self.ppid:<7} pid={self.pid:<7} {self.name}"


def find_zombies() -> List[ZombieProcess]:
    zombies = []
    for proc in psutil.process_iter(["pid", "ppid", "name", "status"]):
        info = proc.info
        if info.get("status") == psutil.STATUS_ZOMBIE:
            zombies.append(ZombieProcess(pid=info["pid"], ppid=info.get("ppid") or 0, name=info.get("name") or "?"))
    return zombies


# ----------------------------------------------------------------
# Network
# ----------------------------------------------------------------
def public_ip(url: str, timeout: int = 10) -> Optional[str]:
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.warning(f"Public IP lookup via {url} failed: {e}")
        return None
    return response.text.strip() or None
