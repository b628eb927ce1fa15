"""Generator options and the predicates derived from them.

``GeneratorOptions`` holds the flags of a single ``appgen new`` run.  Every
secondary decision the generators make ("is Active Storage skipped?", "do we
install system tests?") is a property on this model, so there is exactly one
place where those rules live.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from appgen.database import DATABASES, convert_database_for_jruby

RUNTIMES: tuple[str, ...] = ("mri", "jruby", "rubinius")


class InvalidConfigurationError(Exception):
    """Raised when generator options are unknown, mistyped, or inconsistent."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        self.errors = errors or []
        super().__init__(message)


class GeneratorOptions(BaseModel):
    """Flags for one generation run.  Immutable once constructed."""

    model_config = ConfigDict(extra="forbid", strict=True, frozen=True)

    database: str = Field(default="sqlite3", description="Database adapter to preconfigure")
    template: str | None = Field(default=None, description="Application template path or URL")

    skip_git: bool = False
    skip_keeps: bool = False
    skip_action_mailer: bool = False
    skip_action_mailbox: bool = False
    skip_action_text: bool = False
    skip_active_record: bool = False
    skip_active_job: bool = False
    skip_active_storage: bool = False
    skip_action_cable: bool = False
    skip_sprockets: bool = False
    skip_javascript: bool = False
    skip_hotwire: bool = False
    skip_jbuilder: bool = False
    skip_test: bool = False
    skip_system_test: bool = False
    skip_bootsnap: bool = False
    skip_bundle: bool = False

    webpack: bool = Field(default=False, description="Bundle JavaScript with webpacker")
    api: bool = Field(default=False, description="Generate an API-only application")

    # Framework sourcing; precedence is dev > edge > main > released gem.
    dev: bool = False
    edge: bool = False
    main: bool = False

    pretend: bool = False
    quiet: bool = False
    force: bool = False

    runtime: str = Field(default="mri", description="Ruby implementation the app targets")

    @field_validator("database")
    @classmethod
    def _known_database(cls, value: str) -> str:
        if value not in DATABASES:
            raise ValueError(f"must be one of {', '.join(DATABASES)}")
        return value

    @field_validator("runtime")
    @classmethod
    def _known_runtime(cls, value: str) -> str:
        if value not in RUNTIMES:
            raise ValueError(f"must be one of {', '.join(RUNTIMES)}")
        return value

    # ------------------------------------------------------------------
    # Derived predicates
    # ------------------------------------------------------------------

    @property
    def skips_active_storage(self) -> bool:
        return self.skip_active_storage or self.skip_active_record

    @property
    def skips_rich_text(self) -> bool:
        return self.skip_action_text or self.skips_active_storage

    @property
    def skips_attachment_mailbox(self) -> bool:
        return self.skip_action_mailbox or self.skips_active_storage

    @property
    def uses_sqlite_default_db(self) -> bool:
        return not self.skip_active_record and self.database == "sqlite3"

    @property
    def installs_system_tests(self) -> bool:
        return not (self.skip_system_test or self.skip_test or self.api)

    @property
    def alternate_runtime(self) -> bool:
        return self.runtime != "mri"

    @property
    def installs_boot_support(self) -> bool:
        return not self.skip_bootsnap and not self.dev and not self.alternate_runtime

    @property
    def unreleased(self) -> bool:
        """True when the framework comes from a checkout or repository instead of a release."""
        return self.dev or self.edge or self.main

    @property
    def keeps(self) -> bool:
        return not self.skip_keeps

    @property
    def include_all_frameworks(self) -> bool:
        return not any(
            (
                self.skip_active_record,
                self.skip_action_mailer,
                self.skip_test,
                self.skip_sprockets,
                self.skip_action_cable,
                self.skip_active_job,
                self.skips_active_storage,
                self.skips_attachment_mailbox,
                self.skips_rich_text,
            )
        )

    @property
    def bundle_install(self) -> bool:
        return not (self.skip_bundle or self.pretend)

    @property
    def webpack_install(self) -> bool:
        return self.webpack

    @property
    def importmap_install(self) -> bool:
        return not (self.skip_javascript or self.webpack)

    @property
    def hotwire_install(self) -> bool:
        return not (self.skip_javascript or self.skip_hotwire)

    def comment_flags(self) -> dict[str, bool]:
        """Whether each optional framework line should be commented out in generated files.

        Storage-dependent frameworks use the derived predicates, so skipping
        Active Record also comments out Active Storage, Action Mailbox and
        Action Text.
        """
        return {
            "skip_active_job": self.skip_active_job,
            "skip_active_record": self.skip_active_record,
            "skip_active_storage": self.skips_active_storage,
            "skip_action_mailer": self.skip_action_mailer,
            "skip_action_mailbox": self.skips_attachment_mailbox,
            "skip_action_text": self.skips_rich_text,
            "skip_action_cable": self.skip_action_cable,
            "skip_sprockets": self.skip_sprockets,
            "skip_test": self.skip_test,
            "skip_system_test": not self.installs_system_tests,
            "skip_bootsnap": not self.installs_boot_support,
            "skip_javascript": self.skip_javascript,
            "skip_hotwire": not self.hotwire_install,
            "skip_jbuilder": self.skip_jbuilder,
        }


def resolve(flags: Mapping[str, Any] | None = None, **overrides: Any) -> GeneratorOptions:
    """Build validated ``GeneratorOptions`` from a flat flag mapping.

    Unset flags take their defaults.  On the JRuby runtime the native database
    adapters are swapped for their JDBC equivalents.

    Raises:
        InvalidConfigurationError: If a flag is unknown or has the wrong type.
    """
    data: dict[str, Any] = {**(flags or {}), **overrides}
    database = data.get("database", "sqlite3")
    if data.get("runtime") == "jruby" and isinstance(database, str):
        data["database"] = convert_database_for_jruby(database)

    try:
        return GeneratorOptions.model_validate(data)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc']) or 'options'}: {err['msg']}"
            for err in exc.errors()
        )
        raise InvalidConfigurationError(
            f"Invalid generator options: {problems}", errors=exc.errors()
        ) from exc
