"""Tests for the application generator.

Covers:
- Application name derivation and validation
- Full generation with the default options
- Option variants (api, skip flags, dev/edge framework sourcing, runtimes)
- Install command sequencing, skip_bundle and pretend
- Application templates from a path and from a URL (mock httpx)
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from appgen.config import Config, FrameworkConfig
from appgen.options import InvalidConfigurationError, resolve
from appgen.scaffolder.generator import (
    AppGenerator,
    TemplateLoadError,
    _recipe_gem_line,
    _template_location,
    app_const_base,
    app_name_for,
    validate_app_name,
)


# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def executed_commands(mocked: AsyncMock) -> list[list[str]]:
    return [list(call.args[0]) for call in mocked.call_args_list]


def mock_http_client(response: MagicMock | None = None, error: Exception | None = None):
    mock_client = AsyncMock()
    if error is not None:
        mock_client.get = AsyncMock(side_effect=error)
    else:
        mock_client.get = AsyncMock(return_value=response)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    return mock_client


RECIPE = """\
gems:
  - rspec-rails
  - name: pry
    version: "~> 0.14"
    group: development
    comment: Debug in the console
files:
  config/initializers/app_name.rb: |
    APP_NAME = "{{ app_const_base }}"
"""


# ---------------------------------------------------------------------------
# Naming
# ---------------------------------------------------------------------------


class TestNaming:
    def test_app_name_from_directory(self):
        assert app_name_for("/work/blog") == "blog"
        assert app_name_for("/work/my.app") == "my_app"
        assert app_name_for("/work/my app") == "my_app"

    def test_app_const_base(self):
        assert app_const_base("blog") == "Blog"
        assert app_const_base("blog_app") == "BlogApp"
        assert app_const_base("my-app") == "MyApp"

    def test_valid_names(self):
        validate_app_name("blog")
        validate_app_name("shop_2")

    def test_name_starting_with_digit(self):
        with pytest.raises(InvalidConfigurationError, match="does not start with numbers"):
            validate_app_name("1blog")

    def test_reserved_word(self):
        with pytest.raises(InvalidConfigurationError, match="reserved rails words"):
            validate_app_name("application")

    def test_reserved_constant(self):
        with pytest.raises(InvalidConfigurationError, match="constant Object"):
            validate_app_name("object")

    def test_empty_name(self):
        with pytest.raises(InvalidConfigurationError):
            validate_app_name("___")


# ---------------------------------------------------------------------------
# Derived values
# ---------------------------------------------------------------------------


class TestDerivedValues:
    def test_gemfile_entries_use_configured_version(self, app_path: Path):
        config = Config(framework=FrameworkConfig(version="6.1.3.1"))
        generator = AppGenerator(app_path, resolve(), config)
        assert generator.gemfile_entries()[0].version == ("~> 6.1.3", ">= 6.1.3.1")

    def test_include_predicate(self, app_path: Path, config: Config):
        generator = AppGenerator(
            app_path, resolve(), config, include=lambda entry: entry.name != "jbuilder"
        )
        assert "jbuilder" not in [entry.name for entry in generator.gemfile_entries()]

    def test_build_context(self, app_path: Path, config: Config):
        context = AppGenerator(app_path, resolve(), config).build_context()
        assert context["app_name"] == "blog"
        assert context["app_const_base"] == "Blog"
        assert context["load_defaults"] == "7.0"
        assert context["framework_version"] == "7.0.0.alpha"
        assert context["comments"]["skip_action_cable"] is False

    def test_keep_directories(self, app_path: Path, config: Config):
        default = AppGenerator(app_path, resolve(), config).keep_directories()
        assert "test/system" in default
        assert "storage" in default
        assert "app/assets/images" in default

        api = AppGenerator(app_path, resolve(api=True), config).keep_directories()
        assert "test/system" not in api
        assert "app/assets/images" not in api

        no_tests = AppGenerator(app_path, resolve(skip_test=True), config).keep_directories()
        assert not any(d.startswith("test/") for d in no_tests)

    def test_template_location(self, tmp_path: Path):
        assert _template_location(None) is None
        assert _template_location("https://example.com/t.yml") == "https://example.com/t.yml"
        assert Path(_template_location(str(tmp_path / "t.yml"))).is_absolute()

    def test_recipe_gem_line(self):
        assert _recipe_gem_line("rspec-rails") == 'gem "rspec-rails"'
        assert _recipe_gem_line({"name": "pry", "version": "~> 0.14", "group": "test"}) == (
            'gem "pry", "~> 0.14", group: :test'
        )


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


class TestGenerate:
    @pytest.mark.asyncio
    async def test_default_application(self, app_path: Path, config: Config, mock_run_command):
        root = await AppGenerator(app_path, resolve(), config).generate()

        assert root == app_path.resolve()
        gemfile = (root / "Gemfile").read_text()
        assert 'gem "rails", "~> 7.0.0.alpha"' in gemfile
        assert 'gem "sqlite3", "~> 1.4"' in gemfile
        assert 'gem "puma", "~> 5.0"' in gemfile
        assert 'gem "importmap-rails", ">= 0.3.4"' in gemfile
        assert '# gem "redis", "~> 4.0"' in gemfile
        assert 'gem "bootsnap", ">= 1.4.4", require: false' in gemfile

        assert (root / "README.md").read_text().startswith("# Blog")
        assert (root / ".gitignore").exists()
        assert "module Blog" in (root / "config/application.rb").read_text()
        assert (root / "config/boot.rb").exists()
        assert "db/development.sqlite3" in (root / "config/database.yml").read_text()
        assert (root / "log/.keep").exists()
        assert (root / "test/system/.keep").exists()

    @pytest.mark.asyncio
    async def test_install_command_order(self, app_path: Path, config: Config, mock_run_command):
        await AppGenerator(app_path, resolve(), config).generate()
        assert executed_commands(mock_run_command) == [
            ["bundle", "install"],
            ["bundle", "binstubs", "bundler"],
            ["bin/rails", "importmap:install"],
            ["bin/rails", "turbo:install", "stimulus:install"],
        ]
        bundle_install = mock_run_command.call_args_list[0]
        assert bundle_install.kwargs["env"] == {"BUNDLE_IGNORE_MESSAGES": "1"}
        assert bundle_install.kwargs["cwd"] == app_path.resolve()

    @pytest.mark.asyncio
    async def test_webpack_commands(self, app_path: Path, config: Config, mock_run_command):
        await AppGenerator(app_path, resolve(webpack=True), config).generate()
        assert executed_commands(mock_run_command)[2:] == [
            ["bin/rails", "webpacker:install"],
            ["bin/rails", "turbo:install", "stimulus:install"],
        ]

    @pytest.mark.asyncio
    async def test_skip_javascript_runs_bundle_only(
        self, app_path: Path, config: Config, mock_run_command
    ):
        await AppGenerator(app_path, resolve(skip_javascript=True), config).generate()
        assert executed_commands(mock_run_command) == [
            ["bundle", "install"],
            ["bundle", "binstubs", "bundler"],
        ]

    @pytest.mark.asyncio
    async def test_skip_bundle_explains_skipped_tasks(
        self, app_path: Path, config: Config, mock_run_command, capsys
    ):
        await AppGenerator(app_path, resolve(skip_bundle=True), config).generate()
        mock_run_command.assert_not_awaited()
        out = capsys.readouterr().out
        assert "Skipping `rails importmap:install` because `bundle install` was skipped." in out
        assert "you must run `bundle install` followed by `rails turbo:install stimulus:install`" in out

    @pytest.mark.asyncio
    async def test_pretend_writes_and_runs_nothing(
        self, app_path: Path, config: Config, mock_run_command, capsys
    ):
        await AppGenerator(app_path, resolve(pretend=True), config).generate()
        assert not app_path.exists()
        mock_run_command.assert_not_awaited()
        assert "create  Gemfile" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_api_application(self, app_path: Path, config: Config, mock_run_command):
        root = await AppGenerator(app_path, resolve(api=True), config).generate()
        assert '# gem "jbuilder", "~> 2.7"' in (root / "Gemfile").read_text()
        assert "config.api_only = true" in (root / "config/application.rb").read_text()
        assert not (root / "test/system").exists()

    @pytest.mark.asyncio
    async def test_skip_flags(self, app_path: Path, config: Config, mock_run_command):
        options = resolve(skip_git=True, skip_keeps=True, skip_active_record=True)
        root = await AppGenerator(app_path, options, config).generate()
        assert not (root / ".gitignore").exists()
        assert not (root / "config/database.yml").exists()
        assert (root / "log").is_dir()
        assert not (root / "log/.keep").exists()
        assert "sqlite3" not in (root / "Gemfile").read_text()

    @pytest.mark.asyncio
    async def test_postgresql_database_yml(self, app_path: Path, config: Config, mock_run_command):
        root = await AppGenerator(app_path, resolve(database="postgresql"), config).generate()
        assert 'gem "pg", "~> 1.1"' in (root / "Gemfile").read_text()
        assert "blog_development" in (root / "config/database.yml").read_text()

    @pytest.mark.asyncio
    async def test_dev_uses_local_checkout(self, app_path: Path, config: Config, mock_run_command):
        root = await AppGenerator(app_path, resolve(dev=True), config).generate()
        gemfile = (root / "Gemfile").read_text()
        assert 'gem "rails", path: "/src/rails"' in gemfile
        assert "bootsnap" not in gemfile

    @pytest.mark.asyncio
    async def test_rubinius_adds_psych(self, app_path: Path, config: Config, mock_run_command):
        root = await AppGenerator(app_path, resolve(runtime="rubinius"), config).generate()
        assert 'gem "psych", "~> 2.0", platforms: %i[ rbx ]' in (root / "Gemfile").read_text()

    @pytest.mark.asyncio
    async def test_invalid_name_creates_nothing(self, tmp_path: Path, config: Config):
        app_path = tmp_path / "test"
        with pytest.raises(InvalidConfigurationError):
            await AppGenerator(app_path, resolve(), config).generate()
        assert not app_path.exists()

    @pytest.mark.asyncio
    async def test_existing_files_are_kept(
        self, app_path: Path, config: Config, mock_run_command, capsys
    ):
        app_path.mkdir()
        (app_path / "README.md").write_text("my notes\n")
        await AppGenerator(app_path, resolve(), config).generate()
        assert (app_path / "README.md").read_text() == "my notes\n"
        assert "skip  README.md" in capsys.readouterr().out


# ---------------------------------------------------------------------------
# Application templates
# ---------------------------------------------------------------------------


class TestAppTemplate:
    @pytest.mark.asyncio
    async def test_template_from_path(
        self, tmp_path: Path, app_path: Path, config: Config, mock_run_command
    ):
        recipe = tmp_path / "recipe.yml"
        recipe.write_text(RECIPE)
        root = await AppGenerator(app_path, resolve(template=str(recipe)), config).generate()

        gemfile = (root / "Gemfile").read_text()
        assert 'gem "rspec-rails"' in gemfile
        assert '# Debug in the console\ngem "pry", "~> 0.14", group: :development' in gemfile
        assert (root / "config/initializers/app_name.rb").read_text() == 'APP_NAME = "Blog"\n'

    @pytest.mark.asyncio
    async def test_template_from_url(self, app_path: Path, config: Config, mock_run_command):
        response = MagicMock()
        response.text = RECIPE
        response.raise_for_status = MagicMock()
        mock_client = mock_http_client(response)

        url = "https://example.com/recipe.yml"
        with patch("httpx.AsyncClient", return_value=mock_client) as client_cls:
            root = await AppGenerator(app_path, resolve(template=url), config).generate()

        mock_client.get.assert_awaited_once_with(url)
        assert client_cls.call_args.kwargs["follow_redirects"] is True
        assert 'gem "rspec-rails"' in (root / "Gemfile").read_text()

    @pytest.mark.asyncio
    async def test_missing_template_file(
        self, tmp_path: Path, app_path: Path, config: Config, mock_run_command
    ):
        missing = tmp_path / "missing.yml"
        generator = AppGenerator(app_path, resolve(template=str(missing)), config)
        with pytest.raises(TemplateLoadError) as exc_info:
            await generator.generate()
        assert str(exc_info.value).startswith(f"The template [{missing.resolve()}] could not be loaded.")
        assert isinstance(exc_info.value.error, FileNotFoundError)
        mock_run_command.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unreachable_template_url(self, app_path: Path, config: Config, mock_run_command):
        mock_client = mock_http_client(error=httpx.ConnectError("connection refused"))
        url = "https://example.com/recipe.yml"
        with patch("httpx.AsyncClient", return_value=mock_client):
            with pytest.raises(TemplateLoadError, match="connection refused"):
                await AppGenerator(app_path, resolve(template=url), config).generate()

    @pytest.mark.asyncio
    async def test_malformed_template_url(self, app_path: Path, config: Config, mock_run_command):
        url = "http://[::1/recipe.yml"
        with pytest.raises(TemplateLoadError) as exc_info:
            await AppGenerator(app_path, resolve(template=url), config).generate()
        assert isinstance(exc_info.value.error, httpx.InvalidURL)
        assert str(exc_info.value).startswith(f"The template [{url}] could not be loaded.")

    @pytest.mark.asyncio
    async def test_template_must_be_mapping(
        self, tmp_path: Path, app_path: Path, config: Config, mock_run_command
    ):
        recipe = tmp_path / "recipe.yml"
        recipe.write_text("- just\n- a list\n")
        with pytest.raises(TemplateLoadError, match="must be a mapping"):
            await AppGenerator(app_path, resolve(template=str(recipe)), config).generate()
