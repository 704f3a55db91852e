"""Jinja2 rendering for generated config files.

Generated files are small and fixed, so their templates live inline as
module-level strings in ``config_gen`` and ``docker_gen`` and are handed to a
``TemplateRenderer`` through a ``DictLoader`` keyed by output file name.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from jinja2 import DictLoader, Environment, StrictUndefined

from .answers import ProjectAnswers


class TemplateRenderer:
    """Renders named inline Jinja2 templates with project context."""

    def __init__(self, templates: dict[str, str] | None = None) -> None:
        self.templates = dict(templates or {})
        # Outputs are config files and Markdown, never HTML.
        self.env = Environment(
            loader=DictLoader(self.templates),
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )
        self.env.filters["title_words"] = _title_words_filter
        self.env.filters["snake_case"] = snake_case

    def render(self, name: str, context: dict[str, Any]) -> str:
        """Render the template registered as *name*."""
        return self.env.get_template(name).render(**context)


def build_context(answers: ProjectAnswers) -> dict[str, Any]:
    """Template variables shared by every generated file."""
    return {
        "project_name": answers.name,
        "description": answers.description,
        "author": answers.author,
        "author_name": answers.author_name,
        "license": answers.license,
        "port": answers.port,
        "docker": answers.docker,
        "git_hooks": answers.git_hooks,
        "lint": answers.lint,
        "format": answers.format,
        "test": answers.test,
    }


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------


def _title_words_filter(value: Any) -> str:
    """``my-api`` -> ``My Api``."""
    # str() makes a StrictUndefined value raise UndefinedError here.
    text = str(value)
    return " ".join(word.capitalize() for word in re.split(r"[-_\s]+", text) if word)


def snake_case(value: Any) -> str:
    """``my-api`` -> ``my_api``."""
    return re.sub(r"[-\s]+", "_", str(value)).lower()


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def write_file(path: Path, content: str) -> None:
    """Synchronous helper: create parent dirs and write content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
