"""File and command actions shared by every generator.

``Generator`` wraps a destination directory and offers the primitive actions
the concrete generators are built from: creating files and directories,
rendering templates, appending to and rewriting existing files, and running
external commands.  Every action reports a status line; in pretend mode the
status is reported but nothing touches the disk or spawns a process.
"""

from __future__ import annotations

import asyncio
import re
import shlex
from pathlib import Path
from typing import Any

from rich.markup import escape

from appgen.config import Config
from appgen.utils import console, print_error, run_command, say_status

from .templates import TemplateRenderer


class Generator:
    """Base class for generators that write into ``destination_root``."""

    def __init__(
        self,
        destination_root: str | Path,
        *,
        config: Config | None = None,
        renderer: TemplateRenderer | None = None,
        pretend: bool = False,
        quiet: bool = False,
        force: bool = False,
    ) -> None:
        self.destination_root = Path(destination_root).expanduser().resolve()
        self.config = config or Config()
        self.renderer = renderer or TemplateRenderer()
        self.pretend = pretend
        self.quiet = quiet
        self.force = force

    # -- Output ------------------------------------------------------------

    def say(self, message: str, style: str | None = None) -> None:
        if self.quiet:
            return
        if style:
            console.print(f"[{style}]{escape(message)}[/{style}]", highlight=False, soft_wrap=True)
        else:
            console.print(message, highlight=False, markup=False, soft_wrap=True)

    def say_status(self, status: str, message: str, color: str | None = None) -> None:
        if not self.quiet:
            say_status(status, message, color)

    def relative(self, path: str | Path) -> str:
        """Return *path* relative to the destination root for status lines."""
        target = Path(path)
        try:
            return str(target.relative_to(self.destination_root))
        except ValueError:
            return str(target)

    def path(self, relative: str | Path) -> Path:
        return self.destination_root / relative

    # -- File actions ------------------------------------------------------

    async def create_file(self, relative: str | Path, content: str) -> Path:
        """Write *content* to *relative*, leaving differing files alone unless forced."""
        target = self.path(relative)
        if target.exists():
            existing = await asyncio.to_thread(target.read_text, encoding="utf-8")
            if existing == content:
                self.say_status("identical", self.relative(target))
                return target
            if not self.force:
                self.say_status("skip", self.relative(target))
                return target
            self.say_status("force", self.relative(target))
        else:
            self.say_status("create", self.relative(target))
        if not self.pretend:
            await asyncio.to_thread(_write_file, target, content)
        return target

    async def template(
        self, source: str, relative: str | Path, context: dict[str, Any]
    ) -> Path:
        """Render the Jinja2 template *source* into *relative*."""
        content = self.renderer.render(source, context)
        return await self.create_file(relative, content)

    async def empty_directory(self, relative: str | Path) -> Path:
        target = self.path(relative)
        if target.is_dir():
            self.say_status("exist", self.relative(target))
        else:
            self.say_status("create", self.relative(target))
            if not self.pretend:
                await asyncio.to_thread(target.mkdir, parents=True, exist_ok=True)
        return target

    async def append_to_file(self, relative: str | Path, content: str) -> Path:
        target = self.path(relative)
        self.say_status("append", self.relative(target))
        if not self.pretend:
            await asyncio.to_thread(_append_file, target, content)
        return target

    async def gsub_file(
        self, relative: str | Path, pattern: str | re.Pattern[str], replacement: str
    ) -> Path:
        """Rewrite every match of *pattern* in an existing file."""
        target = self.path(relative)
        self.say_status("gsub", self.relative(target))
        if not self.pretend:
            content = await asyncio.to_thread(target.read_text, encoding="utf-8")
            updated = re.sub(pattern, replacement, content, flags=re.MULTILINE)
            await asyncio.to_thread(_write_file, target, updated)
        return target

    # -- Commands ----------------------------------------------------------

    async def run(
        self,
        command: list[str],
        *,
        env: dict[str, str] | None = None,
        cwd: Path | None = None,
        capture: bool | None = None,
    ) -> int:
        """Run an external command once and report a failure to the user.

        Returns the process exit code (``0`` in pretend mode).
        """
        self.say_status("run", shlex.join(command))
        if self.pretend:
            return 0
        returncode, _stdout, stderr = await run_command(
            command,
            cwd=cwd or self.destination_root,
            timeout=self.config.commands.timeout,
            capture=self.quiet if capture is None else capture,
            env=env,
        )
        if returncode != 0:
            print_error(f"Command failed ({returncode}): {shlex.join(command)}")
            if stderr:
                console.print(f"[dim]{escape(stderr[:500])}[/dim]", highlight=False)
        return returncode

    async def rails_command(self, command: str) -> int:
        return await self.run([self.config.commands.rails, *shlex.split(command)])

    async def yarn_command(self, command: str) -> int:
        return await self.run([self.config.commands.yarn, *shlex.split(command)])


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _write_file(path: Path, content: str) -> None:
    """Synchronous helper: create parent dirs and write content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _append_file(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as handle:
        handle.write(content)
