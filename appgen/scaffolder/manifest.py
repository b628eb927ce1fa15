"""Gemfile dependency manifest for generated applications.

``build_manifest`` walks a fixed list of dependency families, asks each one
whether it applies to the current ``GeneratorOptions`` and collects the
entries it produces.  The resulting list keeps family order, which is the
order the gems appear in the generated ``Gemfile``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

from appgen.database import gem_for_database
from appgen.options import GeneratorOptions
from appgen.version import FRAMEWORK_VERSION, GemVersion, edge_branch, version_specifier

DEFAULT_REPOSITORY = "rails/rails"


# ---------------------------------------------------------------------------
# Dependency entries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RegistrySource:
    """Gem installed from the default gem source."""


@dataclass(frozen=True)
class GitHubSource:
    """Gem checked out from a GitHub repository, optionally on a branch."""

    repository: str
    branch: str | None = None


@dataclass(frozen=True)
class PathSource:
    """Gem loaded from a local directory."""

    path: str


DependencySource = Union[RegistrySource, GitHubSource, PathSource]


@dataclass(frozen=True)
class DependencyEntry:
    """One ``gem`` line in the generated Gemfile.

    A commented-out entry is still rendered, prefixed with ``# ``, so the
    generated file documents the optional dependency without installing it.
    """

    name: str
    version: tuple[str, ...] = ()
    comment: str | None = None
    source: DependencySource = field(default_factory=RegistrySource)
    commented_out: bool = False
    platforms: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Dependency name must not be empty")
        if isinstance(self.version, str):
            object.__setattr__(self, "version", (self.version,))
        else:
            object.__setattr__(self, "version", tuple(self.version))

    @classmethod
    def registry(
        cls,
        name: str,
        version: str | list[str] | tuple[str, ...] = (),
        comment: str | None = None,
        *,
        commented_out: bool = False,
        platforms: tuple[str, ...] = (),
    ) -> DependencyEntry:
        return cls(
            name,
            version,
            comment,
            RegistrySource(),
            commented_out=commented_out,
            platforms=platforms,
        )

    @classmethod
    def github(
        cls,
        name: str,
        repository: str,
        branch: str | None = None,
        comment: str | None = None,
    ) -> DependencyEntry:
        return cls(name, (), comment, GitHubSource(repository, branch))

    @classmethod
    def path(cls, name: str, path: str, comment: str | None = None) -> DependencyEntry:
        return cls(name, (), comment, PathSource(path))

    @property
    def version_string(self) -> str | None:
        """Constraints joined so they render as ``"~> 1.2.3", ">= 1.2.3.4"`` inside quotes."""
        if not self.version:
            return None
        return '", "'.join(self.version)


def gemfile_line(entry: DependencyEntry) -> str:
    """Render *entry* as a single ``gem`` statement (without its comment)."""
    parts = [f'gem "{entry.name}"']
    if entry.version_string:
        parts.append(f'"{entry.version_string}"')
    source = entry.source
    if isinstance(source, GitHubSource):
        parts.append(f'github: "{source.repository}"')
        if source.branch:
            parts.append(f'branch: "{source.branch}"')
    elif isinstance(source, PathSource):
        parts.append(f'path: "{source.path}"')
    if entry.platforms:
        parts.append(f"platforms: %i[ {' '.join(entry.platforms)} ]")
    line = ", ".join(parts)
    return f"# {line}" if entry.commented_out else line


# ---------------------------------------------------------------------------
# Framework release being generated against
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FrameworkRelease:
    """The framework version, repository and local checkout used for the core gem."""

    version: GemVersion = field(default_factory=lambda: GemVersion.parse(FRAMEWORK_VERSION))
    repository: str = DEFAULT_REPOSITORY
    dev_path: str = str(Path("~/rails").expanduser())


# ---------------------------------------------------------------------------
# Families
# ---------------------------------------------------------------------------

Producer = Callable[[GeneratorOptions, FrameworkRelease], list[DependencyEntry]]


@dataclass(frozen=True)
class ManifestFamily:
    """A group of entries decided by one rule."""

    name: str
    applies: Callable[[GeneratorOptions], bool]
    produce: Producer


def _framework_entries(options: GeneratorOptions, framework: FrameworkRelease) -> list[DependencyEntry]:
    if options.dev:
        return [DependencyEntry.path("rails", framework.dev_path)]
    if options.edge:
        return [DependencyEntry.github("rails", framework.repository, edge_branch(framework.version))]
    if options.main:
        return [DependencyEntry.github("rails", framework.repository, "main")]
    return [
        DependencyEntry.registry(
            "rails",
            version_specifier(framework.version),
            f"Bundle edge Rails instead: gem 'rails', github: '{framework.repository}', branch: 'main'",
        )
    ]


def _database_entries(options: GeneratorOptions, framework: FrameworkRelease) -> list[DependencyEntry]:
    gem_name, constraints = gem_for_database(options.database)
    return [
        DependencyEntry.registry(
            gem_name,
            constraints,
            f"Use {options.database} as the database for Active Record",
        )
    ]


def _web_server_entries(options: GeneratorOptions, framework: FrameworkRelease) -> list[DependencyEntry]:
    return [DependencyEntry.registry("puma", "~> 5.0", "Use Puma as the app server")]


def _assets_entries(options: GeneratorOptions, framework: FrameworkRelease) -> list[DependencyEntry]:
    return [DependencyEntry.registry("sass-rails", ">= 6", "Use SCSS for stylesheets")]


def _webpacker_entries(options: GeneratorOptions, framework: FrameworkRelease) -> list[DependencyEntry]:
    return [
        DependencyEntry.registry(
            "webpacker",
            "~> 6.0.0.rc.5",
            "Transpile app-like JavaScript. Read more: https://github.com/rails/webpacker",
        )
    ]


def _javascript_entries(options: GeneratorOptions, framework: FrameworkRelease) -> list[DependencyEntry]:
    importmap = DependencyEntry.registry(
        "importmap-rails",
        ">= 0.3.4",
        "Manage modern JavaScript using ESM without transpiling or bundling",
    )
    if options.skip_hotwire:
        return [importmap]
    turbo = DependencyEntry.registry(
        "turbo-rails",
        ">= 0.7.4",
        "Hotwire's SPA-like page accelerator. Read more: https://turbo.hotwired.dev",
    )
    stimulus = DependencyEntry.registry(
        "stimulus-rails",
        ">= 0.3.9",
        "Hotwire's modest JavaScript framework for the HTML you already have. "
        "Read more: https://stimulus.hotwired.dev",
    )
    return [importmap, turbo, stimulus]


def _jbuilder_entries(options: GeneratorOptions, framework: FrameworkRelease) -> list[DependencyEntry]:
    return [
        DependencyEntry.registry(
            "jbuilder",
            "~> 2.7",
            "Build JSON APIs with ease. Read more: https://github.com/rails/jbuilder",
            commented_out=options.api,
        )
    ]


def _psych_entries(options: GeneratorOptions, framework: FrameworkRelease) -> list[DependencyEntry]:
    return [
        DependencyEntry.registry(
            "psych",
            "~> 2.0",
            "Use Psych as the YAML engine, instead of Syck, so serialized data can be read "
            "safely from different rubies (see http://git.io/uuLVag)",
            platforms=("rbx",),
        )
    ]


def _cable_entries(options: GeneratorOptions, framework: FrameworkRelease) -> list[DependencyEntry]:
    return [
        DependencyEntry.registry(
            "redis",
            "~> 4.0",
            "Use Redis adapter to run Action Cable in production",
            commented_out=True,
        )
    ]


def _always(options: GeneratorOptions) -> bool:
    return True


FAMILIES: tuple[ManifestFamily, ...] = (
    ManifestFamily("framework", _always, _framework_entries),
    ManifestFamily("database", lambda o: not o.skip_active_record, _database_entries),
    ManifestFamily("web_server", _always, _web_server_entries),
    ManifestFamily("assets", lambda o: not o.skip_sprockets, _assets_entries),
    ManifestFamily("webpacker", lambda o: o.webpack, _webpacker_entries),
    ManifestFamily("javascript", lambda o: not o.skip_javascript, _javascript_entries),
    ManifestFamily("jbuilder", lambda o: not o.skip_jbuilder, _jbuilder_entries),
    ManifestFamily("psych", lambda o: o.runtime == "rubinius", _psych_entries),
    ManifestFamily("cable", lambda o: not o.skip_action_cable, _cable_entries),
)


def build_manifest(
    options: GeneratorOptions,
    include: Callable[[DependencyEntry], bool] | None = None,
    framework: FrameworkRelease | None = None,
) -> list[DependencyEntry]:
    """Return the Gemfile entries for *options* in family order.

    Entries rejected by *include* are dropped; the survivors keep their
    relative order.
    """
    framework = framework or FrameworkRelease()
    entries: list[DependencyEntry] = []
    for family in FAMILIES:
        if family.applies(options):
            entries.extend(family.produce(options, framework))
    if include is None:
        return entries
    return [entry for entry in entries if include(entry)]
