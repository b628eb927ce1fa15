"""appgen scaffolder -- generates new applications and installs subsystems.

This package turns ``GeneratorOptions`` into a new application directory:
the Gemfile manifest, configuration files, the directory skeleton, and the
``bundle`` / ``bin/rails`` install steps.

Quick usage::

    from appgen.options import resolve
    from appgen.scaffolder import AppGenerator

    options = resolve({"database": "postgresql", "skip_jbuilder": True})
    app_root = await AppGenerator("/tmp/blog", options).generate()
"""

from appgen.scaffolder.action_text import ActionTextInstallGenerator, WebpackerConfig
from appgen.scaffolder.generator import AppGenerator, TemplateLoadError
from appgen.scaffolder.manifest import DependencyEntry, build_manifest
from appgen.scaffolder.templates import TemplateRenderer

__all__ = [
    "ActionTextInstallGenerator",
    "AppGenerator",
    "DependencyEntry",
    "TemplateLoadError",
    "TemplateRenderer",
    "WebpackerConfig",
    "build_manifest",
]
