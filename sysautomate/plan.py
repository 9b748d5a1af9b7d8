from typing import Callable, List

from sysautomate import tasks
from sysautomate.backends import PackageBackend, PacmanBackend
from sysautomate.models import Step
from sysautomate.orchestrator import MaintenanceOrchestrator
from sysautomate.system import is_available


def requires(*tools: str) -> Callable[[], bool]:
    """Applicability predicate: true when any of ``tools`` is on PATH."""
    return lambda: any(is_available(tool) for tool in tools)


def _missing(label: str, backend: PackageBackend, tool: str) -> str:
    return f"{label} not installed. {backend.install_hint(tool)}"


def _aur_applicable(backend: PackageBackend) -> Callable[[], bool]:
    def check() -> bool:
        return isinstance(backend, PacmanBackend) and backend.aur_helper() is not None

    return check


def default_steps(backend: PackageBackend) -> List[Step]:
    """The full maintenance plan, in execution order."""
    if isinstance(backend, PacmanBackend):
        aur_hint = "No AUR helper (paru or yay) found."
    else:
        aur_hint = f"AUR is only available on Arch-based systems, not with {backend.manager}."

    return [
        Step("Updating system packages", tasks.update_system_packages),
        Step("Updating AUR packages", tasks.update_aur_packages,
             applicability=_aur_applicable(backend), skip_hint=aur_hint),
        Step("Checking for firmware updates", tasks.update_firmware,
             applicability=requires("fwupdmgr"), skip_hint=_missing("fwupd", backend, "fwupdmgr")),
        Step("Updating Flatpaks", tasks.update_flatpaks,
             applicability=requires("flatpak"), skip_hint=_missing("Flatpak", backend, "flatpak")),
        Step("Updating Snaps", tasks.update_snaps,
             applicability=requires("snap"), skip_hint=_missing("Snap", backend, "snap")),
        Step("Updating pip3 packages", tasks.update_pip_packages,
             applicability=requires("pip3"), skip_hint=_missing("pip3", backend, "pip3")),
        Step("Updating npm global packages", tasks.update_npm_globals,
             applicability=requires("npm"), skip_hint=_missing("npm", backend, "npm")),
        Step("Removing orphaned packages", tasks.remove_orphans),
        Step("Cleaning package cache", tasks.clean_package_cache),
        Step("Cleaning old system logs", tasks.vacuum_journal,
             applicability=requires("journalctl"), skip_hint="journalctl not found; systemd journal not in use."),
        Step("Emptying user trash", tasks.empty_trash),
        Step("Clearing thumbnail cache", tasks.clear_thumbnails),
        Step("Checking for broken packages", tasks.check_broken_packages),
        Step("Finding largest files", tasks.report_largest_files),
        Step("Checking for zombie processes", tasks.report_zombies),
        Step("Firewall status", tasks.firewall_status,
             applicability=requires("firewall-cmd", "ufw"),
             skip_hint=f"No firewall frontend (firewalld or ufw) found. {backend.install_hint('firewall-cmd')}"),
        Step("Listing open ports", tasks.list_open_ports,
             applicability=requires("ss"), skip_hint=_missing("ss", backend, "iproute2")),
        Step("Disk usage", tasks.disk_usage),
        Step("Memory usage", tasks.memory_usage),
        Step("CPU info", tasks.cpu_info,
             applicability=requires("lscpu"), skip_hint=_missing("lscpu", backend, "util-linux")),
        Step("Installed kernels", tasks.installed_kernels),
        Step("Backing up critical configs", tasks.backup_critical_configs),
        Step("Testing internet connectivity", tasks.check_connectivity,
             applicability=requires("ping"), skip_hint=_missing("ping", backend, "iputils")),
        Step("Running security audit (Lynis)", tasks.lynis_audit,
             applicability=requires("lynis"), skip_hint=_missing("Lynis", backend, "lynis")),
        Step("Rootkit scan (Rkhunter)", tasks.rkhunter_scan,
             applicability=requires("rkhunter"), skip_hint=_missing("Rkhunter", backend, "rkhunter")),
        Step("Hardware health check", tasks.hardware_health,
             applicability=requires("smartctl", "sensors"),
             skip_hint=_missing("smartmontools and lm_sensors", backend, "smartctl")),
        Step("System optimization", tasks.optimize_system),
        Step("Network information", tasks.network_info),
        Step("Security hardening checks", tasks.security_checks),
    ]


def build_plan(orchestrator: MaintenanceOrchestrator) -> MaintenanceOrchestrator:
    for step in default_steps(orchestrator.ctx.backend):
        orchestrator.register(step)
    return orchestrator
