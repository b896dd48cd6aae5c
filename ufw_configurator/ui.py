import shutil
from typing import TYPE_CHECKING, Iterable, List, Optional

import pyfiglet
from rich import box
from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from .config import APP_NAME, APP_SUBTITLE, VERSION

if TYPE_CHECKING:
    from .network import NetworkFacts
    from .rules import FirewallPlan
    from .verification import CheckResult


# ----------------------------------------------------------------
# Nord-Themed Colors and Theme Setup
# ----------------------------------------------------------------
class NordColors:
    """Nord color palette definitions for consistent UI styling."""

    POLAR_NIGHT_1: str = "#2E3440"
    POLAR_NIGHT_3: str = "#434C5E"
    POLAR_NIGHT_4: str = "#4C566A"
    SNOW_STORM_1: str = "#D8DEE9"
    SNOW_STORM_2: str = "#E5E9F0"
    FROST_1: str = "#8FBCBB"
    FROST_2: str = "#88C0D0"
    FROST_3: str = "#81A1C1"
    FROST_4: str = "#5E81AC"
    RED: str = "#BF616A"
    ORANGE: str = "#D08770"
    YELLOW: str = "#EBCB8B"
    GREEN: str = "#A3BE8C"
    PURPLE: str = "#B48EAD"

    @classmethod
    def get_frost_gradient(cls, steps: int = 4) -> List[str]:
        """Returns a gradient using the frost color palette."""
        frosts = [cls.FROST_1, cls.FROST_2, cls.FROST_3, cls.FROST_4]
        return frosts[:steps]


nord_theme = Theme(
    {
        "banner": f"bold {NordColors.FROST_2}",
        "header": f"bold {NordColors.FROST_2}",
        "info": NordColors.GREEN,
        "warning": NordColors.YELLOW,
        "error": NordColors.RED,
        "debug": NordColors.POLAR_NIGHT_4,
        "success": NordColors.GREEN,
    }
)

console = Console(theme=nord_theme)


# ----------------------------------------------------------------
# UI Helper Functions
# ----------------------------------------------------------------
def create_header(title: str = APP_NAME) -> Panel:
    """
    Generate an ASCII art header with gradient styling using Pyfiglet.
    """
    term_width, _ = shutil.get_terminal_size((80, 24))
    fonts: List[str] = ["slant", "small", "mini"]

    ascii_art = ""
    for font in fonts:
        try:
            fig = pyfiglet.Figlet(font=font, width=min(term_width - 10, 100))
            ascii_art = fig.renderText(title)
            if ascii_art.strip():
                break
        except Exception:
            continue
    if not ascii_art.strip():
        ascii_art = title

    ascii_lines = [line for line in ascii_art.splitlines() if line.strip()]
    colors = NordColors.get_frost_gradient()
    combined_text = Text()

    for i, line in enumerate(ascii_lines):
        color = colors[i % len(colors)]
        combined_text.append(Text(line, style=f"bold {color}"))
        if i < len(ascii_lines) - 1:
            combined_text.append("\n")

    return Panel(
        Align.center(combined_text),
        border_style=NordColors.FROST_1,
        padding=(1, 2),
        title=Text(f"v{VERSION}", style=f"bold {NordColors.SNOW_STORM_2}"),
        title_align="right",
        subtitle=Text(APP_SUBTITLE, style=f"bold {NordColors.SNOW_STORM_1}"),
        subtitle_align="center",
        box=box.ROUNDED,
    )


def print_message(
    text: str, style: str = NordColors.FROST_2, prefix: str = "•"
) -> None:
    """Print a styled message with a prefix."""
    console.print(f"[{style}]{prefix} {text}[/{style}]")


def print_success(message: str) -> None:
    print_message(message, NordColors.GREEN, "✓")


def print_warning(message: str) -> None:
    print_message(message, NordColors.YELLOW, "⚠")


def print_error(message: str) -> None:
    print_message(message, NordColors.RED, "✗")


def print_section(title: str) -> None:
    """Print a section header."""
    console.print()
    console.print(f"[bold {NordColors.FROST_3}]{title}[/]")
    console.print(f"[{NordColors.FROST_3}]{'─' * len(title)}[/]")


def display_panel(
    message: str, style: str = NordColors.FROST_2, title: Optional[str] = None
) -> None:
    """Display a styled panel with a message."""
    panel = Panel(
        Text.from_markup(f"[{style}]{message}[/]"),
        border_style=f"{style}",
        padding=(1, 2),
        title=f"[bold {style}]{title}[/]" if title else None,
        box=box.ROUNDED,
    )
    console.print(panel)


# ----------------------------------------------------------------
# Summary Tables
# ----------------------------------------------------------------
def facts_table(facts: "NetworkFacts") -> Table:
    """Tabulate the detected network facts."""
    table = Table(
        title="Detected Networks",
        box=box.ROUNDED,
        title_style=f"bold {NordColors.FROST_2}",
        border_style=NordColors.FROST_3,
    )
    table.add_column("Source", style=f"bold {NordColors.FROST_2}")
    table.add_column("Interface", style=NordColors.SNOW_STORM_1)
    table.add_column("Address", style=NordColors.SNOW_STORM_1)
    table.add_column("Network", style=NordColors.GREEN)

    table.add_row("LAN", facts.interface, str(facts.address), str(facts.network))
    if facts.docker_bridge_network is not None:
        table.add_row(
            "Docker bridge",
            "docker0",
            str(facts.docker_bridge_address),
            str(facts.docker_bridge_network),
        )
    for net in facts.custom_docker_networks:
        table.add_row(f"Docker '{net.name}'", "-", "-", str(net.subnet))
    if facts.tailscale_address is not None:
        table.add_row(
            "Tailscale",
            "tailscale0",
            str(facts.tailscale_address),
            "[dim]bypasses UFW[/dim]",
        )
    return table


def plan_table(plan: "FirewallPlan") -> Table:
    """Tabulate the operations a plan will run, in order."""
    table = Table(
        title="UFW Operations",
        box=box.SIMPLE,
        title_style=f"bold {NordColors.FROST_2}",
    )
    table.add_column("#", style=NordColors.FROST_3, justify="right")
    table.add_column("Command", style=NordColors.SNOW_STORM_1)
    table.add_column("Purpose", style=NordColors.FROST_2)
    for index, op in enumerate(plan.operations, start=1):
        table.add_row(str(index), op.command_line(), op.description)
    return table


def checks_table(results: Iterable["CheckResult"]) -> Table:
    table = Table(
        title="Verification",
        box=box.ROUNDED,
        title_style=f"bold {NordColors.FROST_2}",
        border_style=NordColors.FROST_3,
    )
    table.add_column("Check", style=f"bold {NordColors.FROST_2}")
    table.add_column("Status")
    table.add_column("Detail", style=NordColors.SNOW_STORM_1)
    for result in results:
        if result.passed:
            status = f"[{NordColors.GREEN}]✓ PASS[/]"
        elif result.fatal:
            status = f"[{NordColors.RED}]✗ FAIL[/]"
        else:
            status = f"[{NordColors.YELLOW}]⚠ WARN[/]"
        table.add_row(result.name, status, result.detail)
    return table
