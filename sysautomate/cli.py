import json
import logging
import signal
import sys
from pathlib import Path
from typing import Any, Optional

import click

from sysautomate.backends import backend_for, detect_backend
from sysautomate.config import APP_SUBTITLE, VERSION, AppConfig
from sysautomate.context import RunContext
from sysautomate.errors import MaintenanceError
from sysautomate.logs import ensure_report_dir, prune_reports, report_log, report_log_path, setup_logger
from sysautomate.models import RunStatus
from sysautomate.notify import Notifier
from sysautomate.orchestrator import MaintenanceOrchestrator
from sysautomate.plan import build_plan
from sysautomate.system import check_root
from sysautomate.ui import ConsoleUI, make_console

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def signal_handler(signum: int, frame: Any) -> None:
    logger = logging.getLogger("sysautomate")
    logger.error(f"Run interrupted by signal {signum}.")
    sys.exit(128 + signum)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--distro", envvar="SYSAUTOMATE_DISTRO", default=None,
              help="Override distro detection (fedora, debian, arch or a derivative)")
@click.option("--report-dir", envvar="SYSAUTOMATE_REPORT_DIR", type=click.Path(path_type=Path),
              default=None, help="Directory for run logs (default: ~/Report)")
@click.option("--backup-dir", envvar="SYSAUTOMATE_BACKUP_DIR", type=click.Path(path_type=Path),
              default=None, help="Directory for config backups (default: ~/SystemBackups)")
@click.option("--retention-days", envvar="SYSAUTOMATE_RETENTION_DAYS", type=click.IntRange(min=0),
              default=10, show_default=True, help="Delete run logs older than this many days")
@click.option("--json", "as_json", envvar="SYSAUTOMATE_JSON", is_flag=True,
              help="Print the run report as JSON after the summary")
@click.option("--no-notify", envvar="SYSAUTOMATE_NO_NOTIFY", is_flag=True, help="Disable desktop notifications")
@click.option("--no-color", envvar="SYSAUTOMATE_NO_COLOR", is_flag=True, help="Disable colored output")
@click.option("--debug", envvar="SYSAUTOMATE_DEBUG", is_flag=True, help="Enable debug logging on the console")
@click.version_option(VERSION, prog_name="sysautomate")
def main(
    distro: Optional[str],
    report_dir: Optional[Path],
    backup_dir: Optional[Path],
    retention_days: int,
    as_json: bool,
    no_notify: bool,
    no_color: bool,
    debug: bool,
) -> None:
    """Run system maintenance and a security audit, then print a report."""
    config = AppConfig(log_retention_days=retention_days, notifications=not no_notify, color=not no_color)
    if report_dir is not None:
        config.report_dir = report_dir.expanduser()
    if backup_dir is not None:
        config.backup_dir = backup_dir.expanduser()

    console = make_console(config.color)
    ui = ConsoleUI(console)
    logger = setup_logger(console, debug=debug)

    # SIGINT keeps its default handler and surfaces as KeyboardInterrupt.
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        check_root()
        backend = backend_for(distro) if distro else detect_backend()
        ensure_report_dir(config.report_dir)
        prune_reports(config.report_dir, config.log_retention_days)
        log_file = report_log_path(config.report_dir, backend.name)

        with report_log(log_file):
            logger.debug(f"Configuration: {config.to_dict()}")
            ui.header(backend.title)
            ui.info(f"{APP_SUBTITLE} v{VERSION} using {backend.manager}")
            ui.info(f"Log file: {log_file}")

            notifier = Notifier(backend.title, enabled=config.notifications)
            ctx = RunContext(config=config, ui=ui, notifier=notifier, backend=backend, log_file=log_file)
            orchestrator = build_plan(MaintenanceOrchestrator(ctx))
            report = orchestrator.run()

            ui.summary(report)
            if as_json:
                click.echo(json.dumps(report.to_dict(), indent=2))
    except MaintenanceError as e:
        ui.error(str(e))
        sys.exit(EXIT_FAILURE)
    except KeyboardInterrupt:
        ui.warning("Run interrupted by user.")
        sys.exit(EXIT_INTERRUPTED)

    sys.exit(EXIT_OK if report.status == RunStatus.COMPLETED else EXIT_FAILURE)


if __name__ == "__main__":
    main()
