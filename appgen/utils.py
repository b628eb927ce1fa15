"""Shared utility functions for appgen.

Provides async command execution and Rich-based console reporting.  Every
generator writes its status lines through :func:`say_status` so output looks
the same whether files are being created, skipped or commands are being run.
"""

from __future__ import annotations

import asyncio
import os
import shlex
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: str | list[str],
    cwd: str | Path | None = None,
    timeout: int = 120,
    capture: bool = True,
    env: dict[str, str] | None = None,
) -> tuple[int, str, str]:
    """Run ``bundle``, ``bin/rails``, ``yarn`` or any other command asynchronously.

    A list is executed directly; a string goes through the shell.  *env* is
    merged on top of ``os.environ``.  When *capture* is ``False`` the child
    inherits our stdout/stderr and the returned strings are empty.

    Returns:
        ``(returncode, stdout, stderr)``.  A missing executable yields 127 and a
        timeout yields -1, each with an explanation in *stderr*.
    """
    display = cmd if isinstance(cmd, str) else shlex.join(cmd)
    pipe = asyncio.subprocess.PIPE if capture else None
    options: dict[str, Any] = {
        "stdout": pipe,
        "stderr": pipe,
        "cwd": str(cwd) if cwd else None,
        "env": {**os.environ, **env} if env else None,
    }

    try:
        if isinstance(cmd, str):
            process = await asyncio.create_subprocess_shell(cmd, **options)
        else:
            process = await asyncio.create_subprocess_exec(*cmd, **options)
    except FileNotFoundError as exc:
        return 127, "", f"Command not found: {exc.filename or display}"

    try:
        out, err = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return -1, "", f"Command timed out after {timeout}s: {display}"

    return (
        process.returncode or 0,
        _decode(out),
        _decode(err),
    )


def _decode(data: bytes | None) -> str:
    return (data or b"").decode("utf-8", errors="replace").strip()


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------

STATUS_COLORS: dict[str, str] = {
    "create": "green",
    "append": "green",
    "gsub": "green",
    "run": "green",
    "apply": "green",
    "exist": "blue",
    "identical": "blue",
    "force": "yellow",
    "skip": "yellow",
    "conflict": "red",
}


def say_status(status: str, message: str, color: str | None = None) -> None:
    """Print a right-aligned, coloured status word followed by *message*.

    Example output::

              create  Gemfile
                 run  bundle install
    """
    style = color or STATUS_COLORS.get(status, "white")
    console.print(
        f"[bold {style}]{status:>12}[/bold {style}]  {escape(message)}",
        highlight=False,
        soft_wrap=True,
    )


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table.

    Args:
        data: Mapping of label -> value.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{escape(message)}[/bold green]", soft_wrap=True)


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{escape(message)}[/bold red]", soft_wrap=True)


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{escape(message)}[/bold yellow]", soft_wrap=True)
