"""Shared pytest fixtures for the servergen test suite.

Provides reusable fixtures for:
- A small on-disk template tree with everything the copier must skip
- Ready-made ``ProjectAnswers`` (no toggles / all toggles)
- Scripted prompt answers for driving the collector and pipeline
- A ``Config`` pointing at the temporary template
- A mock for ``run_command`` so no git / npm process is ever spawned
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock, patch

import pytest

from servergen.config import Config
from servergen.scaffolder.answers import ProjectAnswers


# ---------------------------------------------------------------------------
# Template tree
# ---------------------------------------------------------------------------

TEMPLATE_MANIFEST: dict[str, Any] = {
    "name": "backend-server-template",
    "version": "0.4.0",
    "description": "Template",
    "main": "generate-project.js",
    "bin": {"create-backend-server": "generate-project.js"},
    "preferGlobal": True,
    "files": ["src"],
    "publishConfig": {"access": "public"},
    "scripts": {"prepublishOnly": "npm run build"},
    "author": "",
    "license": "ISC",
    "dependencies": {"express": "4.0.0"},
}

TEMPLATE_FILES: dict[str, str] = {
    "package.json": json.dumps(TEMPLATE_MANIFEST, indent=2),
    "tsconfig.json": '{"compilerOptions": {"outDir": "dist"}}\n',
    ".env.example": "# Server Configuration\nPORT=8000\nNODE_ENV=development\n",
    "src/app.ts": "export default {};\n",
    "src/config/env.config.ts": "export const PORT = 8000;\n",
    "scaffold.json": json.dumps({"defaults": {"description": "Template default", "port": "8100"}}),
    ".npmignore": "node_modules\n",
    "CHANGELOG.md": "# Changelog\n",
    # everything below must never reach a generated project
    "TEMPLATE_README.md": "template docs\n",
    "docs/TEMPLATE_USAGE.md": "template docs\n",
    "template-scripts/customize.sh": "echo customize\n",
    "node_modules/express/index.js": "module.exports = {};\n",
    ".git/HEAD": "ref: refs/heads/main\n",
    "dist/server.js": "compiled\n",
    "package-lock.json": "{}\n",
    "yarn.lock": "\n",
    "npm-debug.log": "debug\n",
    "src/debug.log": "debug\n",
    ".DS_Store": "\n",
    ".env": "PORT=1234\n",
}

EXCLUDED_FILES: tuple[str, ...] = (
    "TEMPLATE_README.md",
    "docs/TEMPLATE_USAGE.md",
    "template-scripts/customize.sh",
    "node_modules/express/index.js",
    ".git/HEAD",
    "dist/server.js",
    "package-lock.json",
    "yarn.lock",
    "npm-debug.log",
    "src/debug.log",
    ".DS_Store",
    ".env",
)


def build_template(root: Path) -> Path:
    for relative, content in TEMPLATE_FILES.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """A throw-away template tree under ``tmp_path/template``."""
    return build_template(tmp_path / "template")


@pytest.fixture
def excluded_files() -> tuple[str, ...]:
    return EXCLUDED_FILES


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    """Working directory the generated project is created in."""
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def config(template_dir: Path, work_dir: Path) -> Config:
    return Config(
        template_dir=template_dir,
        working_dir=work_dir,
        repository_url_template="https://github.com/acme/{name}",
        install_timeout=5,
        git_timeout=5,
        run_timeout=30,
    )


# ---------------------------------------------------------------------------
# Answers
# ---------------------------------------------------------------------------

@pytest.fixture
def answers() -> ProjectAnswers:
    """Answers with every toggle off."""
    return ProjectAnswers(
        name="my-api",
        description="Orders service",
        author_name="Ada Lovelace",
        author_email="ada@example.com",
        license="Apache-2.0",
        port="9090",
    )


@pytest.fixture
def all_toggles_answers(answers: ProjectAnswers) -> ProjectAnswers:
    return answers.model_copy(
        update={"docker": True, "git_hooks": True, "lint": True, "format": True, "test": True}
    )


def prompt_replies(
    name: str = "my-api",
    description: str = "",
    author: str = "Ada Lovelace",
    email: str = "",
    license: str = "",
    port: str = "9090",
    toggles: tuple[str, str, str, str, str] = ("n", "n", "n", "n", "n"),
    confirm: str = "y",
) -> list[str]:
    """Replies in prompt order: identity questions, the five toggles, confirmation."""
    return [name, description, author, email, license, port, *toggles, confirm]


@pytest.fixture(name="prompt_replies")
def prompt_replies_fixture() -> Callable[..., list[str]]:
    return prompt_replies


class ScriptedAsk:
    """Prompt stand-in that replays canned replies and records the questions."""

    def __init__(self, replies: list[str]) -> None:
        self.replies = list(replies)
        self.questions: list[tuple[str, str]] = []

    def __call__(self, question: str, default: str) -> str:
        self.questions.append((question, default))
        if not self.replies:
            raise AssertionError(f"Unexpected prompt: {question}")
        return self.replies.pop(0)


@pytest.fixture
def scripted_ask() -> Callable[[list[str]], ScriptedAsk]:
    return ScriptedAsk


# ---------------------------------------------------------------------------
# Subprocess mocking
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_run_command():
    """Patch ``run_command`` inside the tool invoker.

    Usage::

        def test_tools(mock_run_command):
            mock_run_command.return_value = (0, "", "")
    """
    with patch(
        "servergen.scaffolder.tools.run_command",
        new=AsyncMock(return_value=(0, "", "")),
    ) as mocked:
        yield mocked
