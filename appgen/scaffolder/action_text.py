"""Action Text install generator (``appgen action_text:install``).

Wires the rich-text editing subsystem into an existing application: adds the
``@rails/actiontext`` and ``trix`` JavaScript packages, imports them from the
application bundle, copies the stylesheet, view partials and migrations, and
enables the ``image_processing`` gem.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path, PurePosixPath

import yaml

from appgen.config import Config
from appgen.utils import print_warning
from appgen.version import GemVersion, npm_version

from .base import Generator
from .templates import TemplateRenderer

TRIX_VERSION = "^1.3.1"

JAVASCRIPT_IMPORTS = 'import "trix"\nimport "@rails/actiontext"\n'

IMPORTMAP_PINS = 'pin "trix"\npin "@rails/actiontext", to: "actiontext.js"\n'

MISSING_BUNDLE_WARNING = (
    "WARNING: Action Text can't locate your JavaScript bundle to add its package dependencies."
)

# (engine, migration name) in the order they must run
MIGRATIONS: tuple[tuple[str, str], ...] = (
    ("active_storage", "create_active_storage_tables"),
    ("action_text", "create_action_text_tables"),
)

IMAGE_PROCESSING_PATTERN = r'^(#\s*)?gem "image_processing"'


@dataclass(frozen=True)
class WebpackerConfig:
    """Where a webpacker-managed application keeps its JavaScript.

    ``source_entry_path`` is relative to the application root, i.e. it already
    includes ``source_path``.
    """

    source_path: str = "app/javascript"
    source_entry_path: str = "app/javascript/packs"

    @classmethod
    def load(cls, path: Path) -> WebpackerConfig:
        """Read the ``default`` section of ``config/webpacker.yml``."""
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            print_warning(f"Could not parse {path}, using default JavaScript paths: {exc}")
            return cls()
        settings = data.get("default", data) if isinstance(data, dict) else {}
        if not isinstance(settings, dict):
            settings = {}
        source_path = str(settings.get("source_path", cls.source_path))
        entry = str(settings.get("source_entry_path", "packs"))
        return cls(source_path, str(PurePosixPath(source_path) / entry))


class ActionTextInstallGenerator(Generator):
    """Installs Action Text into the application at ``destination_root``."""

    def __init__(
        self,
        destination_root: str | Path,
        config: Config | None = None,
        *,
        unreleased: bool = False,
        renderer: TemplateRenderer | None = None,
        pretend: bool = False,
        quiet: bool = False,
        force: bool = False,
    ) -> None:
        super().__init__(
            destination_root,
            config=config,
            renderer=renderer,
            pretend=pretend,
            quiet=quiet,
            force=force,
        )
        self.unreleased = unreleased
        self.framework_version = GemVersion.parse(self.config.framework.version)

    # -- Detection ---------------------------------------------------------

    def webpacker_config(self) -> WebpackerConfig | None:
        """Return the webpacker settings when the application bundles with webpacker."""
        path = self.path("config/webpacker.yml")
        if path.is_file():
            return WebpackerConfig.load(path)
        return None

    def npm_version(self) -> str:
        """Version of the framework npm packages matching the installed framework."""
        return npm_version(self.framework_version, unreleased=self.unreleased)

    def js_dependencies(self) -> dict[str, str]:
        return {
            "@rails/actiontext": self.npm_version(),
            "trix": TRIX_VERSION,
        }

    @property
    def migration_version(self) -> str:
        return f"{self.framework_version.major}.{self.framework_version.minor}"

    # -- Public API --------------------------------------------------------

    async def generate(self) -> None:
        webpacker = self.webpacker_config()
        await self.install_javascript_dependencies(webpacker)
        await self.append_javascript_dependencies(webpacker)
        await self.create_actiontext_files()
        await self.create_migrations()
        await self.enable_image_processing_gem()

    async def install_javascript_dependencies(self, webpacker: WebpackerConfig | None) -> None:
        if webpacker is None:
            return
        self.say("Installing JavaScript dependencies", "green")
        packages = " ".join(f"{name}@{version}" for name, version in self.js_dependencies().items())
        await self.yarn_command(f"add {packages}")

    async def append_javascript_dependencies(self, webpacker: WebpackerConfig | None) -> None:
        if webpacker is not None:
            application_js = Path(webpacker.source_entry_path) / "application.js"
        else:
            application_js = Path("app/javascript/application.js")

        if not self.path(application_js).is_file():
            self.say(
                f"{MISSING_BUNDLE_WARNING}\n\n"
                f"Add these lines to any bundles:\n\n{JAVASCRIPT_IMPORTS}\n"
                "Alternatively, install and setup the webpacker gem then rerun "
                "`bin/rails action_text:install`\n"
                "to have JavaScript dependencies added to package.json and installed via yarn.",
                "red",
            )
            return

        await self.append_to_file(application_js, JAVASCRIPT_IMPORTS)
        if webpacker is None and self.path("config/importmap.rb").is_file():
            await self.append_to_file("config/importmap.rb", IMPORTMAP_PINS)

    async def create_actiontext_files(self) -> None:
        await self.template(
            "action_text/actiontext.scss.j2", "app/assets/stylesheets/actiontext.scss", {}
        )
        await self.template(
            "action_text/blob.html.erb.j2", "app/views/active_storage/blobs/_blob.html.erb", {}
        )
        await self.template(
            "action_text/content.html.erb.j2",
            "app/views/layouts/action_text/contents/_content.html.erb",
            {},
        )

    async def create_migrations(self) -> None:
        """Copy the engine migrations into ``db/migrate`` with timestamp prefixes.

        Migrations already present (under any timestamp) are left alone.
        """
        migrate_dir = self.path("db/migrate")
        existing = [p.name for p in migrate_dir.glob("*.rb")] if migrate_dir.is_dir() else []
        started = datetime.now(timezone.utc)

        for offset, (engine, name) in enumerate(MIGRATIONS):
            suffix = f"_{name}.{engine}.rb"
            if any(filename.endswith(suffix) for filename in existing):
                self.say_status("skip", f"db/migrate/{name}.{engine}.rb")
                continue
            number = (started + timedelta(seconds=offset)).strftime("%Y%m%d%H%M%S")
            await self.template(
                f"action_text/{name}.rb.j2",
                f"db/migrate/{number}{suffix}",
                {"migration_version": self.migration_version},
            )

    async def enable_image_processing_gem(self) -> None:
        if self.path("Gemfile").is_file():
            await self.gsub_file("Gemfile", IMAGE_PROCESSING_PATTERN, 'gem "image_processing"')
