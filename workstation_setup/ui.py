"""
Nord-themed console helpers
---------------------------
Palette, rich theme and the small set of panels/tables shared by the run log,
the confirmation gate and the CLI. Nothing here holds global state: every
helper takes the Console it should draw on.
"""

from typing import Iterable, Optional, Tuple

import pyfiglet
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme


class NordColors:
    """Nord theme color palette for consistent UI styling."""

    # Polar Night (dark/background)
    NORD0 = "#2E3440"
    NORD1 = "#3B4252"
    NORD2 = "#434C5E"
    NORD3 = "#4C566A"

    # Snow Storm (light/text)
    NORD4 = "#D8DEE9"
    NORD5 = "#E5E9F0"
    NORD6 = "#ECEFF4"

    # Frost (blue accents)
    NORD7 = "#8FBCBB"
    NORD8 = "#88C0D0"
    NORD9 = "#81A1C1"
    NORD10 = "#5E81AC"

    # Aurora (status indicators)
    NORD11 = "#BF616A"  # Red (errors)
    NORD12 = "#D08770"  # Orange (warnings)
    NORD13 = "#EBCB8B"  # Yellow (caution)
    NORD14 = "#A3BE8C"  # Green (success)
    NORD15 = "#B48EAD"  # Purple (special)


NORD_THEME = Theme(
    {
        "info": NordColors.NORD8,
        "warning": NordColors.NORD13,
        "error": f"bold {NordColors.NORD11}",
        "success": f"bold {NordColors.NORD14}",
        "header": f"bold {NordColors.NORD8}",
        "prompt": f"bold {NordColors.NORD15}",
        "prompt.invalid": NordColors.NORD12,
        "panel.border": f"bold {NordColors.NORD9}",
        "table.header": f"bold {NordColors.NORD9}",
        "logging.level.success": f"bold {NordColors.NORD14}",
        "logging.level.warning": NordColors.NORD13,
        "logging.level.error": f"bold {NordColors.NORD11}",
        "logging.level.info": NordColors.NORD8,
        "logging.level.debug": NordColors.NORD3,
    }
)

# Outcome value -> (icon, style) used by the summary table.
OUTCOME_STYLES = {
    "applied": ("✓", f"bold {NordColors.NORD14}"),
    "satisfied": ("=", NordColors.NORD8),
    "declined": ("⏭", NordColors.NORD9),
    "planned": ("⋯", NordColors.NORD15),
    "failed": ("✗", f"bold {NordColors.NORD11}"),
}


def make_console(**kwargs) -> Console:
    """Create a Console using the Nord theme."""
    return Console(theme=NORD_THEME, **kwargs)


def print_header(console: Console, text: str) -> None:
    """Print a striking header using pyfiglet."""
    ascii_art = pyfiglet.figlet_format(text, font="slant")
    console.print(
        Panel(
            ascii_art,
            style=f"bold {NordColors.NORD8}",
            border_style=f"bold {NordColors.NORD9}",
            expand=False,
        )
    )


def print_section(console: Console, title: str) -> None:
    """Print a formatted section header."""
    console.print(
        Panel(
            title,
            style=f"bold {NordColors.NORD8}",
            border_style=f"bold {NordColors.NORD9}",
            expand=True,
        )
    )


def create_table(
    title: str, columns: Iterable[Tuple[str, str]], rows: Iterable[Iterable[str]]
) -> Table:
    """Build a rounded Nord table from (header, style) columns and string rows."""
    table = Table(
        title=title,
        box=box.ROUNDED,
        title_style=f"bold {NordColors.NORD8}",
        header_style="table.header",
        border_style=NordColors.NORD3,
        expand=True,
    )
    for header, style in columns:
        table.add_column(header, style=style)
    for row in rows:
        table.add_row(*row)
    return table


def outcome_label(value: str, label: Optional[str] = None) -> str:
    """Return rich markup for a step outcome, e.g. ``[bold #A3BE8C]✓ APPLIED[/]``."""
    icon, style = OUTCOME_STYLES.get(value, ("?", NordColors.NORD4))
    return f"[{style}]{icon} {(label or value).upper()}[/]"
