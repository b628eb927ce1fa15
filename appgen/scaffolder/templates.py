"""Jinja2 rendering for generated application files.

Every file the generators write that is more than a one-liner (``Gemfile``,
``config/application.rb``, the Action Text partials and migrations) lives as
a ``.j2`` template next to this module.  Application template recipes are
rendered through the same environment, so recipe files see the same filters
and context as the bundled ones.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from .manifest import gemfile_line

BUNDLED_TEMPLATES = Path(__file__).parent / "templates"


def comment_if(flag: bool) -> str:
    """``{{ comments.skip_action_cable | comment_if }}`` renders ``"# "`` when the flag is set."""
    return "# " if flag else ""


class TemplateRenderer:
    """Loads ``.j2`` templates from one directory and renders them.

    Undefined variables raise instead of rendering as empty strings.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        self.template_dir = Path(template_dir) if template_dir else BUNDLED_TEMPLATES
        # Output is Ruby, YAML and ERB.
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )
        self.env.filters.update(gemfile_line=gemfile_line, comment_if=comment_if)

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render the template at *template_path* (relative, e.g. ``"config/boot.rb.j2"``)."""
        return self.env.get_template(template_path).render(**context)

    def render_string(self, source: str, context: dict[str, Any]) -> str:
        return self.env.from_string(source).render(**context)
