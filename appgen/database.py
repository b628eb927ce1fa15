"""Database adapter support for generated applications.

Maps the ``--database`` option onto the adapter gem that goes in the
``Gemfile`` and onto the ``config/database.yml`` that ships with the new
application.
"""

from __future__ import annotations

from typing import Any

import yaml

DATABASES: tuple[str, ...] = (
    "mysql",
    "postgresql",
    "sqlite3",
    "oracle",
    "sqlserver",
    "jdbcmysql",
    "jdbcsqlite3",
    "jdbcpostgresql",
    "jdbc",
)

# database option -> (gem name, version constraints)
_ADAPTER_GEMS: dict[str, tuple[str, tuple[str, ...]]] = {
    "mysql": ("mysql2", ("~> 0.5",)),
    "postgresql": ("pg", ("~> 1.1",)),
    "sqlite3": ("sqlite3", ("~> 1.4",)),
    "oracle": ("activerecord-oracle_enhanced-adapter", ()),
    "sqlserver": ("activerecord-sqlserver-adapter", ()),
    "jdbcmysql": ("activerecord-jdbcmysql-adapter", ()),
    "jdbcsqlite3": ("activerecord-jdbcsqlite3-adapter", ()),
    "jdbcpostgresql": ("activerecord-jdbcpostgresql-adapter", ()),
    "jdbc": ("activerecord-jdbc-adapter", ()),
}

# database option -> value of the ``adapter`` key in database.yml
_YAML_ADAPTERS: dict[str, str] = {
    "mysql": "mysql2",
    "postgresql": "postgresql",
    "sqlite3": "sqlite3",
    "oracle": "oracle_enhanced",
    "sqlserver": "sqlserver",
    "jdbcmysql": "mysql",
    "jdbcsqlite3": "sqlite3",
    "jdbcpostgresql": "postgresql",
    "jdbc": "jdbc",
}

_JRUBY_DATABASES: dict[str, str] = {
    "mysql": "jdbcmysql",
    "postgresql": "jdbcpostgresql",
    "sqlite3": "jdbcsqlite3",
}

ENVIRONMENTS: tuple[str, ...] = ("development", "test", "production")


def gem_for_database(database: str) -> tuple[str, tuple[str, ...]]:
    """Return ``(gem_name, constraints)`` for a supported database option.

    Raises:
        KeyError: If *database* is not one of :data:`DATABASES`.
    """
    return _ADAPTER_GEMS[database]


def convert_database_for_jruby(database: str) -> str:
    """JRuby talks to databases through JDBC; swap native adapters for their JDBC twins."""
    return _JRUBY_DATABASES.get(database, database)


def database_config(database: str, app_name: str) -> dict[str, dict[str, Any]]:
    """Build the per-environment connection settings for ``config/database.yml``."""
    adapter = _YAML_ADAPTERS[database]
    config: dict[str, dict[str, Any]] = {}
    for env in ENVIRONMENTS:
        settings: dict[str, Any] = {"adapter": adapter, "pool": 5}
        if adapter == "sqlite3":
            settings["timeout"] = 5000
            settings["database"] = f"db/{env}.sqlite3"
        else:
            settings["database"] = f"{app_name}_{env}"
            if adapter in ("mysql2", "mysql"):
                settings["encoding"] = "utf8mb4"
                settings["username"] = "root"
                settings["host"] = "localhost"
            elif adapter == "postgresql":
                settings["encoding"] = "unicode"
        if env == "production" and adapter != "sqlite3":
            settings["username"] = app_name
            settings["password"] = f"<%= ENV[\"{app_name.upper()}_DATABASE_PASSWORD\"] %>"
        config[env] = settings
    return config


def render_database_yml(database: str, app_name: str) -> str:
    """Serialise :func:`database_config` as YAML, one top-level key per environment."""
    return yaml.safe_dump(
        database_config(database, app_name),
        default_flow_style=False,
        sort_keys=False,
    )
