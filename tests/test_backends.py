import shutil

import pytest

from sysautomate.backends import (
    AptBackend,
    DnfBackend,
    PacmanBackend,
    backend_for,
    detect_backend,
    latest_kernel_or_running,
    parse_rpm_last,
    version_key,
)
from sysautomate.errors import ExecutionError, PreconditionError


def test_version_key_orders_numerically():
    versions = ["6.9.1-100", "6.10.0-101", "6.2.0-1", "6.10.0-99"]
    assert sorted(versions, key=version_key) == ["6.2.0-1", "6.9.1-100", "6.10.0-99", "6.10.0-101"]


def test_parse_rpm_last_takes_newest():
    output = (
        "kernel-6.10.0-101.fc40.x86_64                 Mon 01 Jul 2024 10:00:00 AM UTC\n"
        "kernel-6.9.1-100.fc40.x86_64                  Mon 10 Jun 2024 09:00:00 AM UTC\n"
    )
    assert parse_rpm_last(output) == "6.10.0-101.fc40.x86_64"
    assert parse_rpm_last("package kernel is not installed\n") is None
    assert parse_rpm_last("") is None


@pytest.mark.parametrize(
    "content, expected",
    [
        ('ID=fedora\nPRETTY_NAME="Fedora Linux 40"\n', DnfBackend),
        ("ID=ubuntu\nID_LIKE=debian\n", AptBackend),
        ("ID=endeavouros\nID_LIKE=arch\n", PacmanBackend),
        ('ID=nobara\nID_LIKE="rhel centos fedora"\n', DnfBackend),
        ('ID="pop"\n', AptBackend),
    ],
)
def test_detect_backend_from_os_release(tmp_path, content, expected):
    os_release = tmp_path / "os-release"
    os_release.write_text(content)
    assert isinstance(detect_backend(os_release), expected)


def test_detect_backend_falls_back_to_path(tmp_path, monkeypatch):
    os_release = tmp_path / "os-release"
    os_release.write_text("ID=gentoo\n")
    monkeypatch.setattr(shutil, "which", lambda name: "/usr/bin/apt" if name == "apt" else None)
    assert isinstance(detect_backend(os_release), AptBackend)


def test_detect_backend_without_any_manager(tmp_path, monkeypatch):
    monkeypatch.setattr(shutil, "which", lambda name: None)
    with pytest.raises(PreconditionError):
        detect_backend(tmp_path / "missing")


def test_backend_for_aliases():
    assert isinstance(backend_for("Manjaro"), PacmanBackend)
    assert isinstance(backend_for("rhel"), DnfBackend)
    assert isinstance(backend_for("debian"), AptBackend)
    with pytest.raises(PreconditionError, match="Unsupported distribution"):
        backend_for("slackware")


def test_install_hint_uses_distro_package_names():
    assert DnfBackend().install_hint("smartctl") == "Install with: sudo dnf install smartmontools"
    assert AptBackend().install_hint("sensors") == "Install with: sudo apt install lm-sensors"
    assert PacmanBackend().install_hint("lynis") == "Install with: sudo pacman -S lynis"


def test_apt_latest_kernel_from_boot(tmp_path):
    for release in ("6.1.0-9-amd64", "6.1.0-18-amd64"):
        (tmp_path / f"vmlinuz-{release}").touch()
    (tmp_path / "initrd.img-6.1.0-18-amd64").touch()
    assert AptBackend(boot_dir=tmp_path).latest_installed_kernel() == "6.1.0-18-amd64"
    assert AptBackend(boot_dir=tmp_path / "empty").latest_installed_kernel() is None


def test_pacman_latest_kernel_keeps_running_when_its_tree_survives(tmp_path, monkeypatch):
    monkeypatch.setattr("sysautomate.backends.current_kernel_version", lambda: "6.6.30-1-lts")
    for release in ("6.6.30-1-lts", "6.9.7-arch1-1"):
        (tmp_path / release).mkdir()
        (tmp_path / release / "vmlinuz").touch()
    assert PacmanBackend(modules_dir=tmp_path).latest_installed_kernel() == "6.6.30-1-lts"


def test_pacman_latest_kernel_after_upgrade(tmp_path, monkeypatch):
    monkeypatch.setattr("sysautomate.backends.current_kernel_version", lambda: "6.9.7-arch1-1")
    for release in ("6.10.2-arch1-1", "6.6.31-1-lts"):
        (tmp_path / release).mkdir()
        (tmp_path / release / "vmlinuz").touch()
    (tmp_path / "6.9.7-arch1-1").mkdir()
    assert PacmanBackend(modules_dir=tmp_path).latest_installed_kernel() == "6.10.2-arch1-1"


def test_latest_kernel_or_running_falls_back(monkeypatch):
    monkeypatch.setattr("sysautomate.backends.current_kernel_version", lambda: "6.8.0-running")

    class Broken(DnfBackend):
        def latest_installed_kernel(self):
            raise ExecutionError("Command not found: rpm")

    class Unknown(DnfBackend):
        def latest_installed_kernel(self):
            return None

    assert latest_kernel_or_running(Broken()) == "6.8.0-running"
    assert latest_kernel_or_running(Unknown()) == "6.8.0-running"


def test_dnf_upgrade_runs_upgrade_then_distro_sync(ctx, runner):
    result = DnfBackend().upgrade_all(ctx)
    assert result.ok
    assert runner.commands == [["dnf", "upgrade", "--refresh", "-y"], ["dnf", "distro-sync", "-y"]]


def test_dnf_remove_old_kernels(ctx, runner):
    runner.respond(
        "dnf repoquery --installonly --latest-limit=-2 -q",
        stdout="kernel-6.8.5-301.fc40.x86_64\nkernel-core-6.8.5-301.fc40.x86_64\n",
    )
    assert DnfBackend().remove_old_kernels(ctx).ok
    assert runner.commands[-1] == [
        "dnf", "remove", "-y", "kernel-6.8.5-301.fc40.x86_64", "kernel-core-6.8.5-301.fc40.x86_64",
    ]


def test_dnf_remove_old_kernels_nothing_to_do(ctx, runner):
    result = DnfBackend().remove_old_kernels(ctx)
    assert result.ok
    assert result.message == "No old kernels to remove."
    assert len(runner.commands) == 1


def test_apt_skips_upgrade_when_update_fails(ctx, runner):
    runner.respond("apt update", returncode=100, stderr="Temporary failure resolving")
    result = AptBackend().upgrade_all(ctx)
    assert not result.ok
    assert runner.commands == [["apt", "update"]]


def test_apt_lists_linux_images_only(ctx, runner):
    runner.respond(
        "dpkg --list",
        stdout="ii  bash  5.2\nii  linux-image-6.1.0-18-amd64  6.1.76-1\nii  vim  9.0\n",
    )
    result = AptBackend().list_installed_kernels(ctx)
    assert result.output == "ii  linux-image-6.1.0-18-amd64  6.1.76-1"


def test_pacman_orphans_none(ctx, runner):
    runner.respond("pacman -Qdtq", returncode=1)
    result = PacmanBackend().remove_orphans(ctx)
    assert result.ok
    assert runner.commands == [["pacman", "-Qdtq"]]


def test_pacman_orphans_removed(ctx, runner):
    runner.respond("pacman -Qdtq", stdout="libfoo\nlibbar\n")
    assert PacmanBackend().remove_orphans(ctx).ok
    assert runner.commands[-1] == ["pacman", "-Rns", "--noconfirm", "libfoo", "libbar"]


def test_aur_upgrade_runs_as_invoking_user(ctx, runner, monkeypatch):
    monkeypatch.setattr(shutil, "which", lambda name: "/usr/bin/yay" if name == "yay" else None)
    monkeypatch.setenv("SUDO_USER", "alice")
    assert PacmanBackend().upgrade_aur(ctx).ok
    assert runner.commands == [["sudo", "-u", "alice", "yay", "-Syu", "--noconfirm"]]


def test_apt_runs_without_prompts(ctx, runner):
    assert AptBackend().upgrade_all(ctx).ok
    assert runner.commands[1][:3] == ["apt", "full-upgrade", "-y"]
    assert "Dpkg::Options::=--force-confold" in runner.commands[1]
    assert all(env["DEBIAN_FRONTEND"] == "noninteractive" for env in runner.envs)
    assert all("PATH" in env for env in runner.envs)
