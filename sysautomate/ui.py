"""
Nord-themed console output for maintenance runs.

Every message printed here is also logged under ``sysautomate.ui`` so the run
log mirrors what the operator saw on screen.
"""

import logging
import shutil
from typing import TYPE_CHECKING, List, Tuple

import pyfiglet
from rich.align import Align
from rich.box import ROUNDED
from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.style import Style
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from sysautomate.config import APP_SUBTITLE, VERSION

if TYPE_CHECKING:
    from sysautomate.models import RunReport

logger = logging.getLogger("sysautomate.ui")


# ----------------------------------------------------------------
# Nord-Themed Colors
# ----------------------------------------------------------------
class NordColors:
    """Nord color palette for consistent theming throughout the application."""

    # Polar Night (dark background)
    POLAR_NIGHT_4: str = "#4C566A"

    # Snow Storm (light text)
    SNOW_STORM_1: str = "#D8DEE9"
    SNOW_STORM_2: str = "#E5E9F0"
    SNOW_STORM_3: str = "#ECEFF4"

    # Frost (blue accents)
    FROST_1: str = "#8FBCBB"
    FROST_2: str = "#88C0D0"
    FROST_3: str = "#81A1C1"
    FROST_4: str = "#5E81AC"

    # Aurora (other accents)
    RED: str = "#BF616A"
    ORANGE: str = "#D08770"
    YELLOW: str = "#EBCB8B"
    GREEN: str = "#A3BE8C"
    PURPLE: str = "#B48EAD"

    @classmethod
    def get_frost_gradient(cls, text_lines: List[str]) -> List[Tuple[str, str]]:
        colors = [cls.FROST_1, cls.FROST_2, cls.FROST_3, cls.FROST_4]
        return [(line, colors[i % len(colors)]) for i, line in enumerate(text_lines)]


NORD_THEME = Theme(
    {
        "info": f"bold {NordColors.FROST_2}",
        "warning": f"bold {NordColors.YELLOW}",
        "error": f"bold {NordColors.RED}",
        "success": f"bold {NordColors.GREEN}",
        "section": f"{NordColors.FROST_3} bold",
        "step": f"{NordColors.FROST_2}",
        "command": f"bold {NordColors.FROST_4}",
        "path": f"italic {NordColors.FROST_1}",
        "output": f"{NordColors.SNOW_STORM_1}",
    }
)


def make_console(color: bool = True) -> Console:
    return Console(theme=NORD_THEME, no_color=not color, highlight=False)


class ConsoleUI:
    """Styled printing helpers bound to one rich console."""

    def __init__(self, console: Console) -> None:
        self.console = console

    def header(self, title: str) -> None:
        """
        Print the pyfiglet banner inside a Nord-styled panel.

        Args:
            title: Text to render as ASCII art
        """
        width = min(shutil.get_terminal_size().columns - 10, 80)
        ascii_art = ""
        for font in ("slant", "small", "standard"):
            try:
                ascii_art = pyfiglet.Figlet(font=font, width=width).renderText(title)
                if ascii_art.strip():
                    break
            except pyfiglet.FontNotFound as e:
                logger.debug(f"Font {font} failed: {e}")
        if not ascii_art.strip():
            ascii_art = f"=== {title} ===\n"

        lines = [line for line in ascii_art.splitlines() if line.strip()]
        styled_text = ""
        for line, color in NordColors.get_frost_gradient(lines):
            escaped_line = line.replace("[", "\\[").replace("]", "\\]")
            styled_text += f"[bold {color}]{escaped_line}[/]\n"

        self.console.print(
            Panel(
                Text.from_markup(styled_text.rstrip("\n")),
                border_style=Style(color=NordColors.FROST_1),
                padding=(1, 2),
                box=ROUNDED,
                title=f"[bold {NordColors.SNOW_STORM_2}]v{VERSION}[/]",
                title_align="right",
                subtitle=f"[bold {NordColors.SNOW_STORM_1}]{APP_SUBTITLE}[/]",
                subtitle_align="center",
            )
        )
        logger.info(f"=== {title} v{VERSION} ===")

    def section(self, title: str) -> None:
        self.console.print()
        self.console.print(Text(f">>> {title}...", style="section"))
        self.console.print(f"[{NordColors.FROST_3}]{'─' * 60}[/]")
        logger.info(f"--- {title} ---")

    def step(self, text: str) -> None:
        self.console.print(Text(f"➜ {text}", style="step"))
        logger.info(text)

    def command(self, cmd_str: str) -> None:
        self.console.print(Text(f"→ {cmd_str}", style="command"))
        logger.info(f"→ {cmd_str}")

    def output(self, text: str) -> None:
        if not text.strip():
            return
        self.console.print(Text(text.rstrip(), style="output"))
        logger.info(text.rstrip())

    def success(self, text: str) -> None:
        self.console.print(Text(f"✓ {text}", style="success"))
        logger.info(f"SUCCESS: {text}")

    def info(self, text: str) -> None:
        self.console.print(Text(f"• {text}", style="info"))
        logger.info(text)

    def warning(self, text: str) -> None:
        self.console.print(Text(f"⚠ {text}", style="warning"))
        logger.warning(text)

    def error(self, text: str) -> None:
        self.console.print(Text(f"✗ {text}", style="error"))
        logger.error(text)

    def summary(self, report: "RunReport") -> None:
        """Display a table of every step record followed by totals and reboot advice."""
        from sysautomate.models import RunStatus, StepOutcome

        icons = {
            StepOutcome.SUCCESS: ("✓", "success"),
            StepOutcome.FAILURE: ("✗", "error"),
            StepOutcome.SKIPPED: ("-", "warning"),
        }

        table = Table(
            show_header=True,
            header_style=f"bold {NordColors.FROST_1}",
            border_style=NordColors.FROST_3,
            box=ROUNDED,
            title=f"[bold {NordColors.FROST_2}]Maintenance Run Report[/]",
            title_justify="center",
            expand=True,
        )
        table.add_column("#", justify="right", style=NordColors.POLAR_NIGHT_4)
        table.add_column("Step", style=f"bold {NordColors.FROST_2}")
        table.add_column("Status", justify="center")
        table.add_column("Time", justify="right", style=NordColors.SNOW_STORM_1)
        table.add_column("Message", style=NordColors.SNOW_STORM_1, ratio=3)

        for index, record in enumerate(report.step_results, 1):
            icon, style = icons[record.outcome]
            table.add_row(
                str(index),
                Text(record.name),
                f"[{style}]{icon} {record.outcome.value.upper()}[/]",
                f"{record.elapsed:.1f}s",
                Text(record.message),
            )

        counts = report.counts()
        totals = Text()
        totals.append("Summary: ", style=f"bold {NordColors.FROST_3}")
        totals.append(f"{counts[StepOutcome.SUCCESS]} Succeeded", style=f"bold {NordColors.GREEN}")
        totals.append(" | ")
        totals.append(f"{counts[StepOutcome.FAILURE]} Failed", style=f"bold {NordColors.RED}")
        totals.append(" | ")
        totals.append(f"{counts[StepOutcome.SKIPPED]} Skipped", style=f"bold {NordColors.YELLOW}")

        self.console.print()
        self.console.print(
            Panel(
                Group(table, Align.center(totals)),
                border_style=Style(color=NordColors.FROST_4),
                padding=(0, 1),
                box=ROUNDED,
            )
        )
        for record in report.step_results:
            logger.info(f"[{record.outcome.value.upper()}] {record.name} ({record.elapsed:.2f}s) {record.message}")

        if report.reboot_recommended:
            self.warning(
                f"A new kernel ({report.kernel_after}) is installed but {report.kernel_before} is running. Please reboot."
            )
        elif report.kernel_before is None or report.kernel_after is None:
            self.warning("Kernel version could not be determined; reboot status unknown.")
        else:
            self.info(f"Running kernel {report.kernel_before} is current. No reboot required.")

        status_style = "success" if report.status == RunStatus.COMPLETED else "error"
        lines = [f"[{status_style}]Run {report.status.value} in {report.duration:.0f} seconds[/]"]
        if report.log_file:
            lines.append(f"Log: [path]{escape(str(report.log_file))}[/path]")
        self.console.print(
            Panel(
                Text.from_markup("\n".join(lines)),
                border_style=Style(color=NordColors.FROST_1),
                box=ROUNDED,
                padding=(1, 2),
            )
        )
        logger.info(f"Run {report.status.value} in {report.duration:.0f} seconds")
