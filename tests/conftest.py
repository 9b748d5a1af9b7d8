import io
import subprocess
from typing import Dict, List, Optional

import pytest
from rich.console import Console

from sysautomate.backends import PackageBackend
from sysautomate.config import AppConfig
from sysautomate.context import RunContext
from sysautomate.models import ActionResult
from sysautomate.notify import Notifier
from sysautomate.ui import NORD_THEME, ConsoleUI


class FakeBackend(PackageBackend):
    name = "fake"
    title = "Fake Automate"
    manager = "fakepkg"
    install_command = "fakepkg install"
    package_names = {"smartctl": "smartmontools"}

    def __init__(self, latest: str = "6.9.1-100") -> None:
        self.latest = latest
        self.calls: List[str] = []

    def _ok(self, name: str) -> ActionResult:
        self.calls.append(name)
        return ActionResult.success(output=f"{name} done")

    def upgrade_all(self, ctx):
        return self._ok("upgrade_all")

    def remove_orphans(self, ctx):
        return self._ok("remove_orphans")

    def clean_cache(self, ctx):
        return self._ok("clean_cache")

    def check_integrity(self, ctx):
        return self._ok("check_integrity")

    def list_installed_kernels(self, ctx):
        return self._ok("list_installed_kernels")

    def latest_installed_kernel(self):
        return self.latest


class RecordingNotifier(Notifier):
    def __init__(self) -> None:
        super().__init__("Fake Automate", enabled=False)
        self.messages: List[str] = []

    def notify(self, message: str) -> None:
        self.messages.append(message)


class FakeRunner:
    """Stands in for ``run_command``; answers by command name."""

    def __init__(self) -> None:
        self.commands: List[List[str]] = []
        self.envs: List[Optional[Dict[str, str]]] = []
        self.responses = {}

    def respond(self, cmd_str: str, returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        self.responses[cmd_str] = (returncode, stdout, stderr)

    def __call__(self, cmd, timeout=None, **kwargs):
        self.commands.append(list(cmd))
        self.envs.append(kwargs.get("env"))
        returncode, stdout, stderr = self.responses.get(" ".join(cmd), (0, "", ""))
        if isinstance(returncode, Exception):
            raise returncode
        return subprocess.CompletedProcess(cmd, returncode, stdout, stderr)


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), theme=NORD_THEME, width=120, color_system=None)


@pytest.fixture
def ui(console) -> ConsoleUI:
    return ConsoleUI(console)


@pytest.fixture
def config(tmp_path) -> AppConfig:
    return AppConfig(
        report_dir=tmp_path / "Report",
        home=tmp_path / "home",
        backup_dir=tmp_path / "SystemBackups",
        largest_files_root=tmp_path / "data",
    )


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def ctx(config, ui, notifier, backend) -> RunContext:
    return RunContext(config=config, ui=ui, notifier=notifier, backend=backend)


@pytest.fixture
def runner(monkeypatch) -> FakeRunner:
    fake = FakeRunner()
    monkeypatch.setattr("sysautomate.context.run_command", fake)
    return fake
