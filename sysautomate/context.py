import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence

from sysautomate.config import AppConfig
from sysautomate.errors import ExecutionError
from sysautomate.models import ActionResult
from sysautomate.notify import Notifier
from sysautomate.system import run_command
from sysautomate.ui import ConsoleUI

if TYPE_CHECKING:
    from sysautomate.backends import PackageBackend


@dataclass
class RunContext:
    """Everything a step needs from its surroundings for one run."""

    config: AppConfig
    ui: ConsoleUI
    notifier: Notifier
    backend: "PackageBackend"
    log_file: Optional[Path] = None

    def run(
        self, cmd: List[str], echo: bool = True, env: Optional[Dict[str, str]] = None
    ) -> subprocess.CompletedProcess:
        """
        Run one external tool, echoing the command and its output to the UI.

        ``env`` holds extra variables layered over the current environment.
        """
        self.ui.command(" ".join(cmd))
        full_env = {**os.environ, **env} if env else None
        result = run_command(cmd, timeout=self.config.command_timeout, env=full_env)
        if echo:
            self.ui.output(_combined(result))
        return result

    def run_all(
        self,
        commands: Iterable[List[str]],
        ok_codes: Sequence[int] = (0,),
        env: Optional[Dict[str, str]] = None,
    ) -> ActionResult:
        """
        Run every command in order, continuing after failures.

        Args:
            commands: Commands to run
            ok_codes: Exit codes that count as success
            env: Extra environment variables for every command

        Returns:
            ActionResult that fails if any command failed or could not start
        """
        outputs, failures = [], []
        for cmd in commands:
            cmd_str = " ".join(cmd)
            try:
                result = self.run(cmd, env=env)
            except ExecutionError as e:
                self.ui.error(str(e))
                failures.append(cmd_str)
                continue
            outputs.append(_combined(result))
            if result.returncode not in ok_codes:
                self.ui.error(f"Command failed ({result.returncode}): {cmd_str}")
                failures.append(cmd_str)
        output = "\n".join(o for o in outputs if o)
        if failures:
            return ActionResult.failure(f"Failed: {'; '.join(failures)}", output=output)
        return ActionResult.success(output=output)


def _combined(result: subprocess.CompletedProcess) -> str:
    parts = [p.strip() for p in (result.stdout, result.stderr) if p and p.strip()]
    return "\n".join(parts)
