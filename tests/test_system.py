import subprocess

import pytest

from sysautomate.errors import ExecutionError
from sysautomate.system import read_os_release, run_command


def test_run_command_detaches_stdin(monkeypatch):
    seen = {}

    def fake_run(cmd, **kwargs):
        seen.update(kwargs)
        return subprocess.CompletedProcess(cmd, 0, "ok\n", "")

    monkeypatch.setattr(subprocess, "run", fake_run)
    result = run_command(["fwupdmgr", "update", "-y"])
    assert result.stdout == "ok\n"
    assert seen["stdin"] is subprocess.DEVNULL
    assert seen["capture_output"] is True


def test_run_command_missing_binary():
    with pytest.raises(ExecutionError, match="Command not found"):
        run_command(["definitely-not-a-real-tool-xyz"])


def test_run_command_timeout(monkeypatch):
    def slow(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

    monkeypatch.setattr(subprocess, "run", slow)
    with pytest.raises(ExecutionError, match="timed out"):
        run_command(["sleep", "100"], timeout=1)


def test_read_os_release(tmp_path):
    path = tmp_path / "os-release"
    path.write_text('# comment\nID=fedora\nPRETTY_NAME="Fedora Linux 40"\nID_LIKE=\'rhel\'\n')
    assert read_os_release(path) == {"ID": "fedora", "PRETTY_NAME": "Fedora Linux 40", "ID_LIKE": "rhel"}
    assert read_os_release(tmp_path / "missing") == {}
