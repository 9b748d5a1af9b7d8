"""
Package-manager backends.

One backend is chosen at startup from ``/etc/os-release`` (or a ``--distro``
override) and used for every package-related step of the run.
"""

import logging
import os
import re
import shutil
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple, Type

from sysautomate.errors import ExecutionError, PreconditionError
from sysautomate.models import ActionResult
from sysautomate.system import OS_RELEASE, current_kernel_version, read_os_release, run_command

if TYPE_CHECKING:
    from sysautomate.context import RunContext

logger = logging.getLogger("sysautomate")


def version_key(version: str) -> Tuple[Tuple[int, int, str], ...]:
    """Sort key that orders digit runs numerically, so 6.10 sorts after 6.9."""
    key = []
    for token in re.split(r"(\d+)", version):
        if not token:
            continue
        if token.isdigit():
            key.append((0, int(token), ""))
        else:
            key.append((1, 0, token))
    return tuple(key)


class PackageBackend:
    """Base class for distro package managers."""

    name: str = "linux"
    title: str = "Linux Automate"
    manager: str = ""
    install_command: str = ""
    package_names: Dict[str, str] = {}

    def upgrade_all(self, ctx: "RunContext") -> ActionResult:
        raise NotImplementedError

    def remove_orphans(self, ctx: "RunContext") -> ActionResult:
        raise NotImplementedError

    def clean_cache(self, ctx: "RunContext") -> ActionResult:
        raise NotImplementedError

    def check_integrity(self, ctx: "RunContext") -> ActionResult:
        raise NotImplementedError

    def list_installed_kernels(self, ctx: "RunContext") -> ActionResult:
        raise NotImplementedError

    def remove_old_kernels(self, ctx: "RunContext") -> ActionResult:
        return ActionResult.success(message=f"{self.manager} keeps no extra kernels to prune.")

    def latest_installed_kernel(self) -> Optional[str]:
        raise NotImplementedError

    def is_available(self) -> bool:
        return shutil.which(self.manager) is not None

    def install_hint(self, tool: str) -> str:
        package = self.package_names.get(tool, tool)
        return f"Install with: sudo {self.install_command} {package}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class DnfBackend(PackageBackend):
    name = "fedora"
    title = "Fedora Automate"
    manager = "dnf"
    install_command = "dnf install"
    package_names = {
        "fwupdmgr": "fwupd",
        "smartctl": "smartmontools",
        "sensors": "lm_sensors",
        "pip3": "python3-pip",
        "firewall-cmd": "firewalld",
        "snap": "snapd",
    }

    def upgrade_all(self, ctx: "RunContext") -> ActionResult:
        return ctx.run_all([["dnf", "upgrade", "--refresh", "-y"], ["dnf", "distro-sync", "-y"]])

    def remove_orphans(self, ctx: "RunContext") -> ActionResult:
        return ctx.run_all([["dnf", "autoremove", "-y"]])

    def clean_cache(self, ctx: "RunContext") -> ActionResult:
        return ctx.run_all([["dnf", "clean", "all"]])

    def check_integrity(self, ctx: "RunContext") -> ActionResult:
        return ctx.run_all([["dnf", "check"]])

    def list_installed_kernels(self, ctx: "RunContext") -> ActionResult:
        return ctx.run_all([["rpm", "-q", "kernel"]])

    def remove_old_kernels(self, ctx: "RunContext") -> ActionResult:
        ctx.ui.step("Removing old kernels (keeping latest two)")
        result = ctx.run(["dnf", "repoquery", "--installonly", "--latest-limit=-2", "-q"])
        if result.returncode != 0:
            return ActionResult.failure("dnf repoquery failed", output=result.stderr or "")
        old = result.stdout.split()
        if not old:
            return ActionResult.success(message="No old kernels to remove.")
        return ctx.run_all([["dnf", "remove", "-y", *old]])

    def latest_installed_kernel(self) -> Optional[str]:
        result = run_command(["rpm", "-q", "--last", "kernel"])
        if result.returncode != 0:
            return None
        return parse_rpm_last(result.stdout)


def parse_rpm_last(output: str) -> Optional[str]:
    """Newest kernel release from ``rpm -q --last kernel`` (first line, ``kernel-`` stripped)."""
    for line in output.splitlines():
        fields = line.split()
        if fields and fields[0].startswith("kernel-"):
            return fields[0][len("kernel-"):]
    return None


# dpkg keeps the installed config file on conflicts instead of prompting.
APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}
APT_DPKG_OPTIONS = ["-o", "Dpkg::Options::=--force-confdef", "-o", "Dpkg::Options::=--force-confold"]


class AptBackend(PackageBackend):
    name = "debian"
    title = "Debian Automate"
    manager = "apt"
    install_command = "apt install"
    package_names = {
        "fwupdmgr": "fwupd",
        "smartctl": "smartmontools",
        "sensors": "lm-sensors",
        "pip3": "python3-pip",
        "snap": "snapd",
        "dig": "dnsutils",
    }

    def __init__(self, boot_dir: Path = Path("/boot")) -> None:
        self.boot_dir = boot_dir

    def upgrade_all(self, ctx: "RunContext") -> ActionResult:
        update = ctx.run_all([["apt", "update"]], env=APT_ENV)
        if not update.ok:
            return update
        upgrade = ctx.run_all([["apt", "full-upgrade", "-y", *APT_DPKG_OPTIONS]], env=APT_ENV)
        upgrade.output = "\n".join(o for o in (update.output, upgrade.output) if o)
        return upgrade

    def remove_orphans(self, ctx: "RunContext") -> ActionResult:
        return ctx.run_all([["apt", "autoremove", "-y"]], env=APT_ENV)

    def clean_cache(self, ctx: "RunContext") -> ActionResult:
        return ctx.run_all([["apt", "clean"]])

    def check_integrity(self, ctx: "RunContext") -> ActionResult:
        return ctx.run_all([["apt-get", "check"]])

    def list_installed_kernels(self, ctx: "RunContext") -> ActionResult:
        result = ctx.run(["dpkg", "--list"], echo=False)
        if result.returncode != 0:
            return ActionResult.failure("dpkg --list failed", output=result.stderr or "")
        kernels = "\n".join(line for line in result.stdout.splitlines() if "linux-image" in line)
        ctx.ui.output(kernels)
        return ActionResult.success(output=kernels)

    def remove_old_kernels(self, ctx: "RunContext") -> ActionResult:
        return ActionResult.success(message="Old kernels are removed by apt autoremove.")

    def latest_installed_kernel(self) -> Optional[str]:
        releases = [p.name[len("vmlinuz-"):] for p in self.boot_dir.glob("vmlinuz-*")]
        if not releases:
            return None
        return max(releases, key=version_key)


class PacmanBackend(PackageBackend):
    name = "arch"
    title = "Arch Automate Script"
    manager = "pacman"
    install_command = "pacman -S"
    package_names = {
        "fwupdmgr": "fwupd",
        "smartctl": "smartmontools",
        "sensors": "lm_sensors",
        "pip3": "python-pip",
        "firewall-cmd": "firewalld",
        "paccache": "pacman-contrib",
        "dig": "bind",
    }
    kernel_packages = ("linux", "linux-lts", "linux-zen", "linux-hardened", "linux-rt", "linux-rt-lts")
    aur_helpers = ("paru", "yay")

    def __init__(self, modules_dir: Path = Path("/usr/lib/modules")) -> None:
        self.modules_dir = modules_dir

    def aur_helper(self) -> Optional[str]:
        return next((h for h in self.aur_helpers if shutil.which(h)), None)

    def upgrade_all(self, ctx: "RunContext") -> ActionResult:
        return ctx.run_all([["pacman", "-Syu", "--noconfirm"]])

    def upgrade_aur(self, ctx: "RunContext") -> ActionResult:
        helper = self.aur_helper()
        if helper is None:
            return ActionResult.failure("No AUR helper (paru/yay) found.")
        cmd = [helper, "-Syu", "--noconfirm"]
        # AUR helpers refuse to build as root.
        sudo_user = os.environ.get("SUDO_USER")
        if sudo_user and sudo_user != "root":
            cmd = ["sudo", "-u", sudo_user] + cmd
        return ctx.run_all([cmd])

    def remove_orphans(self, ctx: "RunContext") -> ActionResult:
        result = ctx.run(["pacman", "-Qdtq"], echo=False)
        orphans = result.stdout.split() if result.returncode == 0 else []
        if not orphans:
            return ActionResult.success(message="No orphaned packages.")
        return ctx.run_all([["pacman", "-Rns", "--noconfirm", *orphans]])

    def clean_cache(self, ctx: "RunContext") -> ActionResult:
        if shutil.which("paccache"):
            return ctx.run_all([["paccache", "-r"]])
        ctx.ui.warning(f"paccache not installed. {self.install_hint('paccache')}")
        return ctx.run_all([["pacman", "-Sc", "--noconfirm"]])

    def check_integrity(self, ctx: "RunContext") -> ActionResult:
        return ctx.run_all([["pacman", "-Dk"]])

    def list_installed_kernels(self, ctx: "RunContext") -> ActionResult:
        result = ctx.run(["pacman", "-Q"], echo=False)
        if result.returncode != 0:
            return ActionResult.failure("pacman -Q failed", output=result.stderr or "")
        kernels = "\n".join(
            line for line in result.stdout.splitlines() if line.split() and line.split()[0] in self.kernel_packages
        )
        if not kernels:
            ctx.ui.warning("Kernel package names may differ.")
        ctx.ui.output(kernels)
        return ActionResult.success(output=kernels)

    def latest_installed_kernel(self) -> Optional[str]:
        # pacman deletes the module tree of a replaced kernel, so a surviving
        # tree for the running release means it is still the installed one.
        running = current_kernel_version()
        if (self.modules_dir / running / "vmlinuz").is_file():
            return running
        releases = [p.parent.name for p in self.modules_dir.glob("*/vmlinuz")]
        if not releases:
            return None
        return max(releases, key=version_key)


BACKENDS: Dict[str, Type[PackageBackend]] = {
    "fedora": DnfBackend,
    "debian": AptBackend,
    "arch": PacmanBackend,
}

DISTRO_ALIASES: Dict[str, str] = {
    "fedora": "fedora",
    "rhel": "fedora",
    "centos": "fedora",
    "rocky": "fedora",
    "almalinux": "fedora",
    "dnf": "fedora",
    "debian": "debian",
    "ubuntu": "debian",
    "linuxmint": "debian",
    "pop": "debian",
    "raspbian": "debian",
    "apt": "debian",
    "arch": "arch",
    "manjaro": "arch",
    "endeavouros": "arch",
    "pacman": "arch",
}


def backend_for(name: str) -> PackageBackend:
    key = DISTRO_ALIASES.get(name.lower())
    if key is None:
        raise PreconditionError(
            f"Unsupported distribution '{name}'. Choose one of: {', '.join(sorted(BACKENDS))}."
        )
    return BACKENDS[key]()


def detect_backend(os_release: Path = OS_RELEASE) -> PackageBackend:
    """
    Pick the package backend for this machine.

    ``ID`` is tried first, then each ``ID_LIKE`` entry, then whichever of
    dnf/apt/pacman is on PATH.

    Raises:
        PreconditionError: If no supported package manager is found
    """
    data = read_os_release(os_release)
    candidates: List[str] = []
    if data.get("ID"):
        candidates.append(data["ID"])
    candidates.extend(data.get("ID_LIKE", "").split())
    for candidate in candidates:
        if candidate.lower() in DISTRO_ALIASES:
            backend = backend_for(candidate)
            logger.info(f"Detected {data.get('PRETTY_NAME', candidate)}: using {backend.manager}")
            return backend

    for backend_cls in BACKENDS.values():
        backend = backend_cls()
        if backend.is_available():
            logger.warning(f"Unrecognised distribution; falling back to {backend.manager} found on PATH.")
            return backend
    raise PreconditionError("No supported package manager (dnf, apt, pacman) found.")


def latest_kernel_or_running(backend: PackageBackend) -> str:
    """Newest installed kernel, or the running one when the backend cannot tell."""
    try:
        latest = backend.latest_installed_kernel()
    except ExecutionError as e:
        logger.warning(f"Could not query installed kernels: {e}")
        latest = None
    return latest or current_kernel_version()
