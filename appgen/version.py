"""Framework version handling.

Parses gem-style version strings (``7.0.0``, ``6.1.3.1``, ``7.0.0.alpha``,
``5.0.0.beta1.1``) and derives the three strings the generator needs from
them: the ``Gemfile`` version constraints for the framework gem, the branch
name used when tracking the framework repository, and the npm-compatible
package version used by JavaScript install steps.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# Version the generated applications are pinned to.
FRAMEWORK_VERSION = "7.0.0.alpha"

_VERSION_PATTERN = re.compile(r"^[0-9]+(\.[0-9a-zA-Z]+)*$")
_SEGMENT_PATTERN = re.compile(r"[0-9]+|[a-zA-Z]+")


class MalformedVersionError(ValueError):
    """Raised when a version string does not start with numeric segments."""


@dataclass(frozen=True)
class GemVersion:
    """A parsed gem-style version.

    ``segments`` splits the version on dots and on digit/letter boundaries, so
    ``"6.1.0.rc1"`` has the segments ``(6, 1, 0, "rc", 1)``.  Any letter makes
    the version a pre-release.
    """

    version: str
    segments: tuple[int | str, ...]

    @classmethod
    def parse(cls, version: str | GemVersion) -> GemVersion:
        if isinstance(version, GemVersion):
            return version
        text = str(version).strip()
        if not _VERSION_PATTERN.match(text):
            raise MalformedVersionError(f"Malformed version number string {version!r}")
        segments = tuple(
            int(part) if part.isdigit() else part
            for part in _SEGMENT_PATTERN.findall(text)
        )
        return cls(version=text, segments=segments)

    @property
    def prerelease(self) -> bool:
        return any(isinstance(s, str) for s in self.segments)

    @property
    def release(self) -> GemVersion:
        """The version with any pre-release part removed."""
        if not self.prerelease:
            return self
        numeric: list[int] = []
        for segment in self.segments:
            if isinstance(segment, str):
                break
            numeric.append(segment)
        return GemVersion(".".join(str(s) for s in numeric), tuple(numeric))

    @property
    def major(self) -> int:
        return int(self.segments[0])

    @property
    def minor(self) -> int:
        return int(self.segments[1]) if len(self.segments) > 1 else 0

    def __str__(self) -> str:
        return self.version


def version_specifier(version: str | GemVersion) -> list[str]:
    """Return the ``Gemfile`` constraints that pin the framework gem.

    Examples::

        version_specifier("1.2.3")        -> ["~> 1.2.3"]
        version_specifier("1.2.3.pre4")   -> ["~> 1.2.3.pre4"]
        version_specifier("1.2.3.4")      -> ["~> 1.2.3", ">= 1.2.3.4"]
        version_specifier("1.2.3.4.pre5") -> ["~> 1.2.3", ">= 1.2.3.4.pre5"]
    """
    gem_version = GemVersion.parse(version)
    if len(gem_version.segments) == 3 or len(gem_version.release.segments) == 3:
        return [f"~> {gem_version}"]
    patch = ".".join(str(s) for s in gem_version.segments[:3])
    return [f"~> {patch}", f">= {gem_version}"]


def edge_branch(version: str | GemVersion) -> str:
    """Branch to track in edge mode: ``main`` for pre-releases, else ``<major>-<minor>-stable``."""
    gem_version = GemVersion.parse(version)
    if gem_version.prerelease:
        return "main"
    return "-".join(str(s) for s in gem_version.segments[:2]) + "-stable"


def npm_version(version: str | GemVersion, *, unreleased: bool = False) -> str:
    """Convert a gem version into a version npm accepts.

    npm rejects versions such as ``5.0.0.rc1`` or ``5.0.0.beta1.1``, so every
    separator from the third dot onward becomes a dash::

        "5.0.1"     -> "5.0.1"
        "5.0.1.1"   -> "5.0.1-1"
        "5.0.0.rc1" -> "5.0.0-rc1"

    ``5.0.1.1`` therefore reads as a pre-release to npm.  Applications that
    track an unreleased framework (dev, edge or main) get ``"latest"``.
    """
    if unreleased:
        return "latest"
    parts = str(GemVersion.parse(version)).split(".")
    return ".".join(parts[:3]) + "".join(f"-{part}" for part in parts[3:])
