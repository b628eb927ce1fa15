"""Main application scaffolding orchestrator (``appgen new``).

Takes an application path plus ``GeneratorOptions`` and generates a new
application: the ``Gemfile`` built by :mod:`appgen.scaffolder.manifest`,
configuration files, the empty directory skeleton, an optional application
template, and finally the ``bundle`` / ``bin/rails`` commands that install
the JavaScript tooling.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import yaml
from jinja2 import TemplateError

from appgen.config import Config
from appgen.database import render_database_yml
from appgen.options import GeneratorOptions, InvalidConfigurationError
from appgen.version import GemVersion

from .base import Generator
from .manifest import DependencyEntry, FrameworkRelease, build_manifest, gemfile_line
from .templates import TemplateRenderer


RESERVED_NAMES: tuple[str, ...] = ("application", "destroy", "plugin", "runner", "test")

# Constants the generated application module must not shadow.
RESERVED_CONSTANTS: tuple[str, ...] = (
    "Application",
    "Bundler",
    "Class",
    "Gem",
    "Kernel",
    "Module",
    "Object",
    "Rails",
    "String",
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class TemplateLoadError(Exception):
    """Raised when an application template cannot be fetched, read or applied."""

    def __init__(self, location: str, error: BaseException) -> None:
        self.location = location
        self.error = error
        super().__init__(f"The template [{location}] could not be loaded. Error: {error}")


# ---------------------------------------------------------------------------
# Application names
# ---------------------------------------------------------------------------


def app_name_for(path: str | Path) -> str:
    """Derive the application name from its directory (``my.app`` -> ``my_app``)."""
    name = Path(path).name.replace("\\", "")
    return name.replace(".", "_").replace(" ", "_")


def app_const_base(app_name: str) -> str:
    """Camelize an application name into its module constant (``blog_app`` -> ``BlogApp``)."""
    underscored = re.sub(r"_+", "_", re.sub(r"\W", "_", app_name))
    return "".join(part[:1].upper() + part[1:] for part in underscored.split("_") if part)


def validate_app_name(app_name: str) -> None:
    """Reject names that would produce an invalid or clashing application constant.

    Raises:
        InvalidConfigurationError: If the name is empty, starts with a digit,
            is a reserved generator word, or camelizes to a reserved constant.
    """
    const = app_const_base(app_name)
    if not const:
        raise InvalidConfigurationError(f"Invalid application name {app_name!r}.")
    if const[0].isdigit():
        raise InvalidConfigurationError(
            f"Invalid application name {app_name}. "
            "Please give a name which does not start with numbers."
        )
    if app_name in RESERVED_NAMES:
        raise InvalidConfigurationError(
            f"Invalid application name {app_name}. Please give a name which does not "
            f"match one of the reserved rails words: {', '.join(RESERVED_NAMES)}"
        )
    if const in RESERVED_CONSTANTS:
        raise InvalidConfigurationError(
            f"Invalid application name {app_name}, constant {const} is already in use. "
            "Please choose another application name."
        )


# ---------------------------------------------------------------------------
# Main generator
# ---------------------------------------------------------------------------


class AppGenerator(Generator):
    """Generates a new application directory.

    Given an application path and ``GeneratorOptions``, writes:
    - Gemfile, README.md and .gitignore
    - config/application.rb, config/boot.rb and config/database.yml
    - the empty directory skeleton with ``.keep`` files
    - anything the application template adds
    and then runs ``bundle install`` and the JavaScript install tasks.
    """

    def __init__(
        self,
        app_path: str | Path,
        options: GeneratorOptions,
        config: Config | None = None,
        *,
        include: Callable[[DependencyEntry], bool] | None = None,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        super().__init__(
            app_path,
            config=config,
            renderer=renderer,
            pretend=options.pretend,
            quiet=options.quiet,
            force=options.force,
        )
        self.options = options
        self.include = include
        self.app_template = _template_location(options.template)
        self.framework = FrameworkRelease(
            version=GemVersion.parse(self.config.framework.version),
            repository=self.config.framework.repository,
            dev_path=str(self.config.framework.dev_path),
        )

    # -- Naming ------------------------------------------------------------

    @property
    def app_name(self) -> str:
        return app_name_for(self.destination_root)

    @property
    def app_const_base(self) -> str:
        return app_const_base(self.app_name)

    # -- Derived values ----------------------------------------------------

    def gemfile_entries(self) -> list[DependencyEntry]:
        return build_manifest(self.options, self.include, self.framework)

    def build_context(self) -> dict[str, Any]:
        """Build the Jinja2 template context for this application."""
        version = self.framework.version
        return {
            "app_name": self.app_name,
            "app_const_base": self.app_const_base,
            "options": self.options,
            "comments": self.options.comment_flags(),
            "gemfile_entries": self.gemfile_entries(),
            "framework_version": str(version),
            "load_defaults": f"{version.major}.{version.minor}",
        }

    def keep_directories(self) -> list[str]:
        """Empty directories the skeleton ships with, each holding a ``.keep`` file."""
        dirs = [
            "app/controllers/concerns",
            "app/models/concerns",
            "lib/assets",
            "lib/tasks",
            "log",
            "tmp",
            "tmp/pids",
            "vendor",
        ]
        if not self.options.api and not self.options.skip_sprockets:
            dirs.append("app/assets/images")
        if not self.options.skips_active_storage:
            dirs.extend(["storage", "tmp/storage"])
        if not self.options.skip_test:
            dirs.extend(
                [
                    "test/fixtures/files",
                    "test/controllers",
                    "test/models",
                    "test/helpers",
                    "test/integration",
                ]
            )
            if not self.options.skip_action_mailer:
                dirs.append("test/mailers")
        if self.options.installs_system_tests:
            dirs.append("test/system")
        return dirs

    # -- Public API --------------------------------------------------------

    async def generate(self) -> Path:
        """Generate the application and run its install commands.

        Returns:
            Path to the generated application root.

        Raises:
            InvalidConfigurationError: If the application name is invalid.
            TemplateLoadError: If the application template cannot be applied.
        """
        validate_app_name(self.app_name)
        await self.create_root()

        context = self.build_context()
        await self.create_root_files(context)
        await self.create_config_files(context)
        await self.create_directories()
        await self.apply_app_template(context)

        await self.run_bundle()
        await self.generate_bundler_binstub()
        await self.run_webpack()
        await self.run_importmap()
        await self.run_hotwire()
        return self.destination_root

    async def create_root(self) -> None:
        await self.empty_directory(self.destination_root)

    async def create_root_files(self, ctx: dict[str, Any]) -> None:
        await self.template("Gemfile.j2", "Gemfile", ctx)
        await self.template("README.md.j2", "README.md", ctx)
        if not self.options.skip_git:
            await self.template("gitignore.j2", ".gitignore", ctx)

    async def create_config_files(self, ctx: dict[str, Any]) -> None:
        await self.template("config/application.rb.j2", "config/application.rb", ctx)
        await self.template("config/boot.rb.j2", "config/boot.rb", ctx)
        if not self.options.skip_active_record:
            await self.create_file(
                "config/database.yml",
                render_database_yml(self.options.database, self.app_name),
            )

    async def create_directories(self) -> None:
        for directory in self.keep_directories():
            await self.empty_directory_with_keep_file(directory)

    async def empty_directory_with_keep_file(self, relative: str) -> None:
        await self.empty_directory(relative)
        await self.keep_file(relative)

    async def keep_file(self, relative: str) -> None:
        if self.options.keeps:
            await self.create_file(f"{relative}/.keep", "")

    # -- Application templates ---------------------------------------------

    async def apply_app_template(self, ctx: dict[str, Any]) -> None:
        """Apply the YAML application template given with ``--template``.

        A template may list extra ``gems`` (appended to the Gemfile) and
        ``files`` (path -> Jinja2 content rendered with the generator context).
        """
        if not self.app_template:
            return
        self.say_status("apply", self.app_template)
        try:
            source = await self._read_app_template(self.app_template)
            recipe = yaml.safe_load(source) or {}
            if not isinstance(recipe, dict):
                raise ValueError("template must be a mapping with 'gems' and/or 'files'")
            gem_lines = [_recipe_gem_line(item) for item in recipe.get("gems") or []]
            files = {
                str(path): self.renderer.render_string(str(body), ctx)
                for path, body in (recipe.get("files") or {}).items()
            }
        except (
            OSError,
            httpx.HTTPError,
            httpx.InvalidURL,
            yaml.YAMLError,
            TemplateError,
            ValueError,
            TypeError,
            KeyError,
            AttributeError,
        ) as exc:
            raise TemplateLoadError(self.app_template, exc) from exc

        if gem_lines:
            await self.append_to_file("Gemfile", "\n" + "\n".join(gem_lines) + "\n")
        for path, content in files.items():
            await self.create_file(path, content)

    async def _read_app_template(self, location: str) -> str:
        if _is_url(location):
            async with httpx.AsyncClient(
                timeout=self.config.template_fetch_timeout, follow_redirects=True
            ) as client:
                response = await client.get(location)
                response.raise_for_status()
                return response.text
        return await asyncio.to_thread(Path(location).read_text, encoding="utf-8")

    # -- External commands -------------------------------------------------

    async def bundle_command(self, command: str, env: dict[str, str] | None = None) -> int:
        return await self.run(
            [self.config.commands.bundle, *command.split()],
            env=env,
        )

    async def run_bundle(self) -> None:
        if self.options.bundle_install:
            await self.bundle_command("install", {"BUNDLE_IGNORE_MESSAGES": "1"})

    async def generate_bundler_binstub(self) -> None:
        if self.options.bundle_install:
            await self.bundle_command("binstubs bundler")

    async def run_webpack(self) -> None:
        if self.options.webpack_install:
            await self._rails_command_after_bundle("webpacker:install")

    async def run_importmap(self) -> None:
        if self.options.importmap_install:
            await self._rails_command_after_bundle("importmap:install")

    async def run_hotwire(self) -> None:
        if self.options.hotwire_install:
            await self._rails_command_after_bundle("turbo:install stimulus:install")

    async def _rails_command_after_bundle(self, task: str) -> None:
        if not self.options.bundle_install:
            self.say(
                f"Skipping `rails {task}` because `bundle install` was skipped.\n"
                f"To complete setup, you must run `bundle install` followed by `rails {task}`."
            )
            return
        await self.rails_command(task)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _is_url(location: str) -> bool:
    return re.match(r"^https?://", location) is not None


def _template_location(template: str | None) -> str | None:
    """URLs are kept as given; filesystem paths are expanded against the cwd."""
    if template is None:
        return None
    if _is_url(template):
        return template
    return str(Path(template).expanduser().resolve())


def _recipe_gem_line(item: Any) -> str:
    """Render one ``gems`` item of an application template.

    Items are either a bare gem name or a mapping with ``name`` and optional
    ``version``, ``comment`` and ``group``.
    """
    if isinstance(item, str):
        item = {"name": item}
    version = item.get("version") or ()
    if isinstance(version, (int, float)):
        version = str(version)
    entry = DependencyEntry.registry(item["name"], version, item.get("comment"))
    line = gemfile_line(entry)
    if item.get("group"):
        line += f", group: :{item['group']}"
    if entry.comment:
        return f"# {entry.comment}\n{line}"
    return line
