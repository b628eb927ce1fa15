"""appgen configuration.

Environment-level settings that are not per-run generator flags: which
framework release new applications target, where the external tools live and
how long they may run.  All settings use Pydantic v2 models so they can be
validated at construction time and serialised to/from JSON or environment
variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from appgen.version import FRAMEWORK_VERSION


class FrameworkConfig(BaseModel):
    """Which framework release generated applications depend on."""

    version: str = Field(default=FRAMEWORK_VERSION)
    repository: str = Field(default="rails/rails", description="GitHub repository for edge/main apps")
    dev_path: Path = Field(
        default_factory=lambda: Path("~/rails").expanduser(),
        description="Local framework checkout used by --dev",
    )


class CommandConfig(BaseModel):
    """External executables the generators shell out to."""

    bundle: str = Field(default="bundle")
    rails: str = Field(default="bin/rails")
    yarn: str = Field(default="yarn")
    timeout: int = Field(default=600, ge=10, description="Per-command timeout in seconds")


class Config(BaseModel):
    """Global appgen configuration.

    Instances are typically created once by the CLI entry point and then
    passed to the generators.
    """

    framework: FrameworkConfig = Field(default_factory=FrameworkConfig)
    commands: CommandConfig = Field(default_factory=CommandConfig)
    rc_path: Path = Field(
        default_factory=lambda: Path("~/.appgenrc").expanduser(),
        description="File with extra arguments for `appgen new`",
    )
    template_fetch_timeout: float = Field(default=30.0, gt=0)

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            APPGEN_FRAMEWORK_VERSION, APPGEN_FRAMEWORK_REPOSITORY, APPGEN_DEV_PATH,
            APPGEN_BUNDLE, APPGEN_RAILS, APPGEN_YARN, APPGEN_COMMAND_TIMEOUT,
            APPGEN_RC.
        """
        framework_kwargs: dict[str, Any] = {}
        if os.environ.get("APPGEN_FRAMEWORK_VERSION"):
            framework_kwargs["version"] = os.environ["APPGEN_FRAMEWORK_VERSION"]
        if os.environ.get("APPGEN_FRAMEWORK_REPOSITORY"):
            framework_kwargs["repository"] = os.environ["APPGEN_FRAMEWORK_REPOSITORY"]
        if os.environ.get("APPGEN_DEV_PATH"):
            framework_kwargs["dev_path"] = Path(os.environ["APPGEN_DEV_PATH"]).expanduser()

        command_kwargs: dict[str, Any] = {}
        if os.environ.get("APPGEN_BUNDLE"):
            command_kwargs["bundle"] = os.environ["APPGEN_BUNDLE"]
        if os.environ.get("APPGEN_RAILS"):
            command_kwargs["rails"] = os.environ["APPGEN_RAILS"]
        if os.environ.get("APPGEN_YARN"):
            command_kwargs["yarn"] = os.environ["APPGEN_YARN"]
        if os.environ.get("APPGEN_COMMAND_TIMEOUT"):
            command_kwargs["timeout"] = int(os.environ["APPGEN_COMMAND_TIMEOUT"])

        kwargs: dict[str, Any] = {
            "framework": FrameworkConfig(**framework_kwargs),
            "commands": CommandConfig(**command_kwargs),
        }
        if os.environ.get("APPGEN_RC"):
            kwargs["rc_path"] = Path(os.environ["APPGEN_RC"]).expanduser()
        return cls(**kwargs)
