from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

APP_NAME = "Linux Automate"
APP_SUBTITLE = "Maintenance & Security Audit"
VERSION = "1.0.0"


@dataclass
class AppConfig:
    """Runtime settings for a maintenance run."""

    # Report log retention
    report_dir: Path = field(default_factory=lambda: Path.home() / "Report")
    log_retention_days: int = 10

    # Cleanup
    home: Path = field(default_factory=Path.home)
    trash_days: int = 14
    journal_vacuum: str = "2weeks"

    # Largest files report
    largest_files_count: int = 10
    largest_files_min_mb: int = 100
    largest_files_root: Path = Path("/")
    largest_files_exclude: List[str] = field(
        default_factory=lambda: ["/proc", "/sys", "/dev", "/run"]
    )

    # Config backup
    backup_dir: Path = field(default_factory=lambda: Path.home() / "SystemBackups")
    backup_files: List[str] = field(
        default_factory=lambda: ["/etc/fstab", "/etc/hosts"]
    )

    # Network checks
    ping_host: str = "8.8.8.8"
    public_ip_url: str = "https://ifconfig.me/ip"
    dns_probe_host: str = "google.com"

    # Command execution (None = wait for the tool to finish)
    command_timeout: Optional[int] = None

    # Behaviour toggles
    notifications: bool = True
    color: bool = True

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        return {k: str(v) if isinstance(v, Path) else v for k, v in data.items()}
