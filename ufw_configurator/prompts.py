import io
import select
import sys
from typing import Optional, TextIO

from rich.prompt import Confirm

from .ui import NordColors, console


def confirm(message: str, default: bool = False) -> bool:
    """Yes/no question with no timeout."""
    return Confirm.ask(
        f"[bold {NordColors.PURPLE}]{message}[/]", default=default, console=console
    )


def timed_confirm(
    message: str,
    timeout: int,
    default: bool = True,
    stream: Optional[TextIO] = None,
) -> bool:
    """
    Yes/no question that answers `default` when nothing arrives in time.

    An empty line or end of input also gives `default`.
    """
    stream = stream or sys.stdin
    hint = "Y/n" if default else "y/N"
    console.print(
        f"[bold {NordColors.PURPLE}]{message} ({hint}, {timeout}s): [/]", end=""
    )

    try:
        fileno = stream.fileno()
    except (AttributeError, ValueError, io.UnsupportedOperation):
        fileno = None

    if fileno is not None:
        ready, _, _ = select.select([stream], [], [], timeout)
        if not ready:
            console.print()
            return default

    reply = stream.readline().strip().lower()
    if not reply:
        return default
    if reply[0] == "y":
        return True
    if reply[0] == "n":
        return False
    return default
