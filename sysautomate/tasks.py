"""
Step actions for the maintenance plan.

Every action takes the run context and returns an ``ActionResult``; none of
them raise on an ordinary tool failure.
"""

import json
import re
import shutil
import time
from pathlib import Path
from typing import List, Optional

from sysautomate import audit
from sysautomate.backup import backup_configs
from sysautomate.context import RunContext
from sysautomate.errors import BackupError
from sysautomate.models import ActionResult
from sysautomate.system import is_available

# fwupdmgr exits with 2 when there is nothing to do.
FWUPD_OK = (0, 2)
# rkhunter --update exits with 2 when new data files were downloaded.
RKHUNTER_UPDATE_OK = (0, 2)
# smartctl prints "Device Model", "overall-health" and "Temperature_Celsius".
SMART_SUMMARY = re.compile(r"model|health|temp", re.IGNORECASE)


def merge_results(*results: ActionResult) -> ActionResult:
    output = "\n".join(r.output for r in results if r.output)
    messages = [r.message for r in results if r.message]
    ok = all(r.ok for r in results)
    return ActionResult(ok=ok, output=output, message="; ".join(messages))


# ----------------------------------------------------------------
# Updates
# ----------------------------------------------------------------
def update_system_packages(ctx: RunContext) -> ActionResult:
    return ctx.backend.upgrade_all(ctx)


def update_aur_packages(ctx: RunContext) -> ActionResult:
    return ctx.backend.upgrade_aur(ctx)


def update_firmware(ctx: RunContext) -> ActionResult:
    return ctx.run_all(
        [["fwupdmgr", "refresh"], ["fwupdmgr", "get-updates"], ["fwupdmgr", "update", "-y"]],
        ok_codes=FWUPD_OK,
    )


def update_flatpaks(ctx: RunContext) -> ActionResult:
    return ctx.run_all([["flatpak", "update", "-y"], ["flatpak", "uninstall", "--unused", "-y"]])


def update_snaps(ctx: RunContext) -> ActionResult:
    return ctx.run_all([["snap", "refresh"]])


def outdated_pip_packages(output: str) -> List[str]:
    """Names from ``pip list --outdated --format=json`` output."""
    if not output.strip():
        return []
    return [entry["name"] for entry in json.loads(output) if entry.get("name")]


def update_pip_packages(ctx: RunContext) -> ActionResult:
    listing = ctx.run(["pip3", "list", "--outdated", "--format=json"], echo=False)
    if listing.returncode != 0:
        return ActionResult.failure("Could not list outdated pip3 packages.", output=listing.stderr or "")
    try:
        outdated = outdated_pip_packages(listing.stdout)
    except (ValueError, KeyError, TypeError) as e:
        return ActionResult.failure(f"Unreadable pip3 output: {e}", output=listing.stdout)
    if not outdated:
        return ActionResult.success(message="All pip3 packages are up to date.")
    ctx.ui.step(f"Upgrading {len(outdated)} pip3 package(s): {', '.join(outdated)}")
    return ctx.run_all([["pip3", "install", "--user", "--upgrade", name] for name in outdated])


def update_npm_globals(ctx: RunContext) -> ActionResult:
    return ctx.run_all([["npm", "install", "-g", "npm"], ["npm", "update", "-g"]])


# ----------------------------------------------------------------
# Cleanup
# ----------------------------------------------------------------
def remove_orphans(ctx: RunContext) -> ActionResult:
    return ctx.backend.remove_orphans(ctx)


def clean_package_cache(ctx: RunContext) -> ActionResult:
    return ctx.backend.clean_cache(ctx)


def vacuum_journal(ctx: RunContext) -> ActionResult:
    return ctx.run_all([["journalctl", f"--vacuum-time={ctx.config.journal_vacuum}"]])


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def purge_trash(trash_dir: Path, older_than_days: int, now: Optional[float] = None) -> int:
    """
    Permanently delete trashed items whose ``.trashinfo`` is older than the limit.

    Entries in ``files/`` with no ``.trashinfo`` cannot be restored, so they
    are removed whatever their age.

    Returns:
        Number of trashed items removed
    """
    info_dir, files_dir = trash_dir / "info", trash_dir / "files"
    cutoff = (now if now is not None else time.time()) - older_than_days * 86400
    removed = 0
    if info_dir.is_dir():
        for info in info_dir.glob("*.trashinfo"):
            if info.stat().st_mtime >= cutoff:
                continue
            target = files_dir / info.name[: -len(".trashinfo")]
            if target.exists() or target.is_symlink():
                _remove(target)
            info.unlink()
            removed += 1
    if files_dir.is_dir():
        for item in files_dir.iterdir():
            if not (info_dir / f"{item.name}.trashinfo").exists():
                _remove(item)
                removed += 1
    return removed


def clear_directory(directory: Path) -> int:
    if not directory.is_dir():
        return 0
    count = 0
    for item in directory.iterdir():
        _remove(item)
        count += 1
    return count


def empty_trash(ctx: RunContext) -> ActionResult:
    trash = ctx.config.home / ".local" / "share" / "Trash"
    try:
        removed = purge_trash(trash, ctx.config.trash_days)
    except OSError as e:
        return ActionResult.failure(f"Could not empty trash {trash}: {e}")
    return ActionResult.success(
        message=f"Removed {removed} trashed item(s) older than {ctx.config.trash_days} days or without trash info."
    )


def clear_thumbnails(ctx: RunContext) -> ActionResult:
    thumbnails = ctx.config.home / ".cache" / "thumbnails"
    try:
        removed = clear_directory(thumbnails)
    except OSError as e:
        return ActionResult.failure(f"Could not clear {thumbnails}: {e}")
    return ActionResult.success(message=f"Removed {removed} thumbnail cache entr{'y' if removed == 1 else 'ies'}.")


def check_broken_packages(ctx: RunContext) -> ActionResult:
    return ctx.backend.check_integrity(ctx)


# ----------------------------------------------------------------
# Reports
# ----------------------------------------------------------------
def report_largest_files(ctx: RunContext) -> ActionResult:
    cfg = ctx.config
    entries = audit.find_largest_files(
        cfg.largest_files_root,
        count=cfg.largest_files_count,
        min_size=cfg.largest_files_min_mb * 1024 * 1024,
        exclude=cfg.largest_files_exclude,
    )
    if not entries:
        return ActionResult.success(message=f"No files larger than {cfg.largest_files_min_mb} MB found.")
    text = audit.format_largest_files(entries)
    ctx.ui.output(text)
    return ActionResult.success(output=text)


def report_zombies(ctx: RunContext) -> ActionResult:
    zombies = audit.find_zombies()
    if not zombies:
        return ActionResult.success(message="No zombie processes found.")
    text = "\n".join(str(z) for z in zombies)
    ctx.ui.warning("Zombie processes detected:")
    ctx.ui.output(text)
    return ActionResult.success(output=text, message=f"{len(zombies)} zombie process(es) detected.")


def firewall_status(ctx: RunContext) -> ActionResult:
    if is_available("firewall-cmd"):
        return ctx.run_all([["firewall-cmd", "--state"], ["firewall-cmd", "--list-all"]])
    return ctx.run_all([["ufw", "status", "verbose"]])


def list_open_ports(ctx: RunContext) -> ActionResult:
    return ctx.run_all([["ss", "-tulnp"]])


def disk_usage(ctx: RunContext) -> ActionResult:
    return ctx.run_all([["df", "-h"]])


def memory_usage(ctx: RunContext) -> ActionResult:
    return ctx.run_all([["free", "-h"]])


def cpu_info(ctx: RunContext) -> ActionResult:
    return ctx.run_all([["lscpu"]])


def installed_kernels(ctx: RunContext) -> ActionResult:
    return ctx.backend.list_installed_kernels(ctx)


def backup_critical_configs(ctx: RunContext) -> ActionResult:
    try:
        saved, failed = backup_configs(ctx.config.backup_files, ctx.config.backup_dir)
    except BackupError as e:
        return ActionResult.failure(str(e))
    output = "\n".join(str(p) for p in saved)
    ctx.ui.output(output)
    if failed:
        return ActionResult.failure(f"Could not back up: {', '.join(failed)}", output=output)
    return ActionResult.success(output=output, message=f"Configs backed up to {ctx.config.backup_dir}")


def check_connectivity(ctx: RunContext) -> ActionResult:
    return ctx.run_all([["ping", "-c", "3", ctx.config.ping_host]])


# ----------------------------------------------------------------
# Security audit
# ----------------------------------------------------------------
def lynis_audit(ctx: RunContext) -> ActionResult:
    return ctx.run_all([["lynis", "audit", "system", "--quiet"]])


def rkhunter_scan(ctx: RunContext) -> ActionResult:
    update = ctx.run_all([["rkhunter", "--update"]], ok_codes=RKHUNTER_UPDATE_OK)
    check = ctx.run_all([["rkhunter", "--check", "--sk"]])
    return merge_results(update, check)


def smart_devices(scan_output: str) -> List[str]:
    """Device paths from ``smartctl --scan`` output."""
    devices = []
    for line in scan_output.splitlines():
        fields = line.split()
        if fields and fields[0].startswith("/dev/"):
            devices.append(fields[0])
    return devices


def hardware_health(ctx: RunContext) -> ActionResult:
    results = []
    if is_available("smartctl"):
        ctx.ui.step("SMART Disk Health:")
        scan = ctx.run(["smartctl", "--scan"], echo=False)
        for device in smart_devices(scan.stdout):
            detail = ctx.run(["smartctl", "--all", device], echo=False)
            lines = [
                line for line in detail.stdout.splitlines()
                if SMART_SUMMARY.search(line)
            ]
            text = f"{device}\n" + "\n".join(lines)
            ctx.ui.output(text)
            results.append(ActionResult.success(output=text))
    else:
        ctx.ui.warning(f"smartmontools not installed. {ctx.backend.install_hint('smartctl')}")

    if is_available("sensors"):
        ctx.ui.step("Temperature Sensors:")
        results.append(ctx.run_all([["sensors"]]))
    else:
        ctx.ui.warning(f"lm_sensors not installed. {ctx.backend.install_hint('sensors')}")
    return merge_results(*results)


def optimize_system(ctx: RunContext) -> ActionResult:
    results = []
    for tool, cmd in (("fc-cache", ["fc-cache", "-fv"]), ("updatedb", ["updatedb"])):
        if is_available(tool):
            results.append(ctx.run_all([cmd]))
        else:
            ctx.ui.warning(f"{tool} not installed; skipping.")
    results.append(ctx.backend.remove_old_kernels(ctx))
    return merge_results(*results)


def network_info(ctx: RunContext) -> ActionResult:
    results = []
    ip = audit.public_ip(ctx.config.public_ip_url)
    ctx.ui.info(f"Public IP: {ip or 'Unavailable'}")
    results.append(ActionResult.success(output=f"Public IP: {ip or 'Unavailable'}"))

    if is_available("dig"):
        ctx.ui.step("DNS Test:")
        results.append(ctx.run_all([["dig", ctx.config.dns_probe_host, "+short"]]))
    else:
        ctx.ui.warning(f"dig not installed. {ctx.backend.install_hint('dig')}")

    if is_available("speedtest-cli"):
        ctx.ui.step("Network Speed Test:")
        results.append(ctx.run_all([["speedtest-cli", "--simple"]]))
    else:
        ctx.ui.warning(f"speedtest-cli not installed. {ctx.backend.install_hint('speedtest-cli')}")
    return merge_results(*results)


def security_checks(ctx: RunContext) -> ActionResult:
    lines = []
    if is_available("getenforce"):
        mode = ctx.run(["getenforce"], echo=False).stdout.strip() or "Unknown"
        ctx.ui.info(f"SELinux Status: {mode}")
        lines.append(f"SELinux: {mode}")

    if not is_available("systemctl"):
        ctx.ui.warning("systemctl not found; cannot query fail2ban.")
        lines.append("Fail2ban: unknown")
    elif ctx.run(["systemctl", "is-active", "--quiet", "fail2ban"], echo=False).returncode == 0:
        ctx.ui.success("Fail2ban is running.")
        lines.append("Fail2ban: running")
    else:
        ctx.ui.warning("Fail2ban not running or not installed.")
        lines.append("Fail2ban: not running")

    if is_available("firewall-cmd"):
        rules = ctx.run(["firewall-cmd", "--list-all"], echo=False)
        count = len(rules.stdout.splitlines())
        ctx.ui.info(f"Firewall Rule Count: {count}")
        lines.append(f"Firewall rules: {count}")
    elif is_available("ufw"):
        rules = ctx.run(["ufw", "status", "numbered"], echo=False)
        count = sum(1 for line in rules.stdout.splitlines() if line.lstrip().startswith("["))
        ctx.ui.info(f"Firewall Rule Count: {count}")
        lines.append(f"Firewall rules: {count}")
    return ActionResult.success(output="\n".join(lines))
