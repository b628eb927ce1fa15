"""appgen command-line interface.

Usage::

    appgen new blog --database postgresql --skip-jbuilder
    appgen new api-app --api -T
    appgen action_text:install --destination ./blog

``appgen new`` also reads extra arguments from ``~/.appgenrc`` (or the file
given with ``--rc``) unless ``--no-rc`` is passed.
"""

from __future__ import annotations

import argparse
import asyncio
import shlex
import sys
from pathlib import Path
from typing import Any

from appgen.config import Config
from appgen.options import GeneratorOptions, InvalidConfigurationError, resolve
from appgen.scaffolder.action_text import ActionTextInstallGenerator
from appgen.scaffolder.generator import AppGenerator, TemplateLoadError
from appgen.utils import console, print_error, print_success, print_summary_table

# (option name, short aliases, help)
_NEW_BOOLEAN_FLAGS: list[tuple[str, tuple[str, ...], str]] = [
    ("skip_git", ("-G",), "Skip .gitignore file"),
    ("skip_keeps", (), "Skip source control .keep files"),
    ("skip_action_mailer", ("-M",), "Skip Action Mailer files"),
    ("skip_action_mailbox", (), "Skip Action Mailbox gem"),
    ("skip_action_text", (), "Skip Action Text gem"),
    ("skip_active_record", ("-O",), "Skip Active Record files"),
    ("skip_active_job", (), "Skip Active Job"),
    ("skip_active_storage", (), "Skip Active Storage files"),
    ("skip_action_cable", ("-C",), "Skip Action Cable files"),
    ("skip_sprockets", ("-S",), "Skip Sprockets files"),
    ("skip_javascript", ("-J",), "Skip JavaScript files"),
    ("skip_hotwire", (), "Skip Hotwire integration"),
    ("skip_jbuilder", (), "Skip jbuilder gem"),
    ("skip_test", ("-T",), "Skip test files"),
    ("skip_system_test", (), "Skip system test files"),
    ("skip_bootsnap", (), "Skip bootsnap gem"),
    ("skip_bundle", ("-B",), "Don't run bundle install"),
    ("webpack", (), "Preconfigure webpacker for JavaScript bundling"),
    ("api", (), "Preconfigure smaller stack for API only apps"),
    ("dev", (), "Set up the application with Gemfile pointing to your framework checkout"),
    ("edge", (), "Set up the application with Gemfile pointing to the framework repository"),
    ("pretend", ("-p",), "Run but do not make any changes"),
    ("quiet", ("-q",), "Suppress status output"),
    ("force", ("-f",), "Overwrite files that already exist"),
]


def _option_flag(name: str) -> str:
    return "--" + name.replace("_", "-")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="appgen",
        description="appgen -- scaffold new Rails applications",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  appgen new blog\n"
            "  appgen new blog -d postgresql --skip-jbuilder\n"
            "  appgen action_text:install --destination ./blog\n"
        ),
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    new = subparsers.add_parser("new", help="Create a new application")
    new.add_argument("app_path", help="Directory to create the application in")
    new.add_argument(
        "--template", "-m",
        default=argparse.SUPPRESS,
        help="Path to an application template (can be a filesystem path or URL)",
    )
    new.add_argument(
        "--database", "-d",
        default=argparse.SUPPRESS,
        help="Preconfigure for selected database (default: sqlite3)",
    )
    new.add_argument(
        "--runtime",
        default=argparse.SUPPRESS,
        help="Ruby implementation the app targets: mri, jruby or rubinius (default: mri)",
    )
    for name, aliases, help_text in _NEW_BOOLEAN_FLAGS:
        new.add_argument(
            _option_flag(name), *aliases,
            dest=name,
            action="store_true",
            default=argparse.SUPPRESS,
            help=help_text,
        )
    new.add_argument(
        "--main", "--master",
        dest="main",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Set up the application with Gemfile pointing to the framework main branch",
    )
    new.add_argument("--rc", help="Path to file containing extra configuration options")
    new.add_argument(
        "--no-rc",
        action="store_true",
        help="Skip loading of extra configuration options from the rc file",
    )

    install = subparsers.add_parser(
        "action_text:install", help="Install Action Text into an existing application"
    )
    install.add_argument(
        "--destination", "-D",
        default=".",
        help="Application root (default: current directory)",
    )
    for flag in ("--dev", "--edge", "--main"):
        install.add_argument(
            flag,
            dest="unreleased",
            action="store_true",
            help="The application tracks an unreleased framework",
        )
    install.add_argument("--pretend", "-p", action="store_true")
    install.add_argument("--quiet", "-q", action="store_true")
    install.add_argument("--force", "-f", action="store_true")
    return parser


def with_rc_arguments(argv: list[str], config: Config) -> list[str]:
    """Insert the rc file's arguments right after the ``new`` subcommand.

    Arguments given on the command line come later, so they win where
    options take a value.
    """
    if not argv or argv[0] != "new" or "--no-rc" in argv:
        return argv

    rc_path = config.rc_path
    explicit = False
    for index, arg in enumerate(argv):
        if arg.startswith("--rc="):
            rc_path, explicit = Path(arg.split("=", 1)[1]).expanduser(), True
        elif arg == "--rc" and index + 1 < len(argv):
            rc_path, explicit = Path(argv[index + 1]).expanduser(), True

    if not rc_path.is_file():
        if explicit:
            raise InvalidConfigurationError(f"The rc file {rc_path} does not exist")
        return argv

    extra = shlex.split(rc_path.read_text(encoding="utf-8"), comments=True)
    if extra:
        console.print(
            f"Using {' '.join(extra)} from {rc_path}", highlight=False, markup=False, soft_wrap=True
        )
    return [argv[0], *extra, *argv[1:]]


def options_from_args(args: argparse.Namespace) -> GeneratorOptions:
    flags: dict[str, Any] = {
        key: value
        for key, value in vars(args).items()
        if key in GeneratorOptions.model_fields
    }
    return resolve(flags)


async def _run_new(args: argparse.Namespace, config: Config) -> None:
    options = options_from_args(args)
    generator = AppGenerator(args.app_path, options, config)
    app_root = await generator.generate()
    if options.quiet:
        return
    print_summary_table(
        {
            "Application": generator.app_const_base,
            "Database": "none" if options.skip_active_record else options.database,
            "JavaScript": _javascript_summary(options),
            "Gems": ", ".join(entry.name for entry in generator.gemfile_entries()),
        },
        title="New application",
    )
    print_success(f"Created {generator.app_const_base} in {app_root}")


async def _run_action_text_install(args: argparse.Namespace, config: Config) -> None:
    generator = ActionTextInstallGenerator(
        args.destination,
        config,
        unreleased=args.unreleased,
        pretend=args.pretend,
        quiet=args.quiet,
        force=args.force,
    )
    await generator.generate()


def _javascript_summary(options: GeneratorOptions) -> str:
    if options.skip_javascript:
        return "none"
    if options.webpack:
        return "webpacker"
    return "importmap" if options.skip_hotwire else "importmap + hotwire"


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``appgen`` / ``python -m appgen.cli``."""
    config = Config.from_env()
    arguments = list(sys.argv[1:] if argv is None else argv)
    parser = build_parser()

    try:
        args = parser.parse_args(with_rc_arguments(arguments, config))
        if args.command == "new":
            asyncio.run(_run_new(args, config))
        else:
            asyncio.run(_run_action_text_install(args, config))
    except (InvalidConfigurationError, TemplateLoadError) as exc:
        print_error(f"Error: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
