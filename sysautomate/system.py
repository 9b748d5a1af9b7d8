import logging
import os
import platform
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Union

from sysautomate.errors import ExecutionError, PreconditionError

logger = logging.getLogger("sysautomate")

OS_RELEASE = Path("/etc/os-release")


def run_command(
    cmd: List[str],
    check: bool = False,
    capture_output: bool = True,
    timeout: Optional[int] = None,
    env: Optional[Dict[str, str]] = None,
    cwd: Optional[Union[str, Path]] = None,
) -> subprocess.CompletedProcess:
    """
    Execute a system command and log what happened.

    stdin is attached to /dev/null, so a tool that prompts gets EOF instead
    of waiting on a terminal nobody sees.

    Args:
        cmd: Command and arguments
        check: Raise CalledProcessError on a non-zero exit
        capture_output: Capture stdout/stderr as text
        timeout: Seconds before the command is abandoned (None waits forever)
        env: Environment variables
        cwd: Working directory

    Returns:
        subprocess.CompletedProcess object

    Raises:
        ExecutionError: If the command is missing or times out
    """
    cmd_str = " ".join(cmd)
    logger.debug(f"Running command: {cmd_str}" + (f" in {cwd}" if cwd else ""))
    try:
        result = subprocess.run(
            cmd,
            stdin=subprocess.DEVNULL,
            capture_output=capture_output,
            text=True,
            check=check,
            timeout=timeout,
            env=env,
            cwd=cwd,
            errors="replace",
        )
    except subprocess.TimeoutExpired as e:
        logger.error(f"Command timed out after {timeout} seconds: {cmd_str}")
        raise ExecutionError(f"Command '{cmd_str}' timed out after {timeout} seconds.") from e
    except FileNotFoundError as e:
        logger.error(f"Command not found: {cmd[0]}. Ensure it is installed and in PATH.")
        raise ExecutionError(f"Command not found: {cmd[0]}") from e
    except subprocess.CalledProcessError as e:
        error_msg = f"Command '{cmd_str}' failed with code {e.returncode}."
        if e.stderr:
            error_msg += f"\nStderr: {e.stderr.strip()}"
        logger.error(error_msg)
        raise

    if capture_output:
        if result.stdout and result.stdout.strip():
            logger.debug(f"Cmd stdout: {result.stdout.strip()}")
        if result.stderr and result.stderr.strip():
            logger.debug(f"Cmd stderr: {result.stderr.strip()}")
    logger.debug(f"Command exited with code {result.returncode}: {cmd_str}")
    return result


def is_available(tool_name: str) -> bool:
    exists = shutil.which(tool_name) is not None
    logger.debug(f"Command '{tool_name}' found: {exists}")
    return exists


def current_kernel_version() -> str:
    """Release string of the running kernel, as ``uname -r`` prints it."""
    return platform.release()


def is_root() -> bool:
    return os.geteuid() == 0


def check_root() -> None:
    if not is_root():
        raise PreconditionError("Please run as root or with sudo privileges.")
    logger.debug("Root privileges confirmed.")


def read_os_release(path: Path = OS_RELEASE) -> Dict[str, str]:
    """Parse an os-release file into a dict; missing files give an empty dict."""
    if not path.is_file():
        return {}
    data = {}
    for line in path.read_text(errors="replace").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        data[key.strip()] = value.strip().strip('"').strip("'")
    return data
