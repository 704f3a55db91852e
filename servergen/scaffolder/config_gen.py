"""Generation of the project's config files.

Each output is a pure function of ``ProjectAnswers``.  ``ConfigGenerator``
decides which outputs a project gets and writes them one by one; a failed
write is recorded and the remaining files are still written.
"""

from __future__ import annotations

import asyncio
import re
import shutil
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from servergen.utils import dump_json

from .answers import ProjectAnswers
from .templates import TemplateRenderer, build_context, snake_case, write_file

ENV_TEMPLATE_NAME = ".env.example"
ENV_ACTIVE_NAME = ".env"

# Files that must be executable after writing.
EXECUTABLE_FILES: frozenset[str] = frozenset({".husky/pre-commit"})


# ---------------------------------------------------------------------------
# Inline templates
# ---------------------------------------------------------------------------

ENV_EXAMPLE_TEMPLATE = """\
# Server Configuration
PORT={{ port }}
NODE_ENV=development

# Database Configuration
MONGO_URI=mongodb://localhost:27017/{{ project_name | snake_case }}

# JWT Configuration
JWT_SECRET=change-this-secret-in-production
JWT_EXPIRES_IN=7d

# CORS Configuration
ALLOWED_ORIGINS=http://localhost:3000,http://localhost:{{ port }}

# Logging Configuration
LOG_LEVEL=info
"""

GITIGNORE_TEMPLATE = """\
# Dependencies
node_modules/
.pnpm-store/

# Build output
dist/
coverage/
*.tsbuildinfo

# Environment
.env
.env.*
!.env.example

# Logs
logs/
*.log
npm-debug.log*
yarn-debug.log*
yarn-error.log*

# Editor / OS
.idea/
.vscode/
.DS_Store
Thumbs.db
"""

README_TEMPLATE = """\
# {{ project_name | title_words }}

{{ description }}

## Getting started

```bash
npm install
cp .env.example .env   # already done by the generator
npm run dev
```

The server listens on port **{{ port }}** by default.

## Scripts

| Script | Description |
| --- | --- |
| `npm run dev` | Start the development server with reload |
| `npm run build` | Compile TypeScript into `dist/` |
| `npm start` | Run the compiled server |
{% if test %}
| `npm test` | Run the Jest test suite |
| `npm run test:coverage` | Run tests with a coverage report |
{% endif %}
{% if lint %}
| `npm run lint` | Lint the sources with ESLint |
{% endif %}
{% if format %}
| `npm run format` | Format the sources with Prettier |
{% endif %}
{% if docker %}
| `npm run docker:up` | Start the app and MongoDB with Docker Compose |
{% endif %}

## Endpoints

- `GET /health` - liveness: process status, timestamp and environment
- `GET /ready` - readiness: `200` once MongoDB is connected, `503` otherwise

## Environment

Configuration is read from `.env`. See `.env.example` for every variable;
the server refuses to start when a value is invalid.
{% if docker %}

## Docker

```bash
docker compose up -d
```

The compose file starts the API on port {{ port }} and a MongoDB instance.
Set `JWT_SECRET` in your shell before starting it.
{% endif %}

## License

{{ license }}{% if author_name %} © {{ author_name }}{% endif %}

"""

PRETTIER_IGNORE_TEMPLATE = """\
node_modules
dist
coverage
"""

JEST_CONFIG_TEMPLATE = """\
/** @type {import('jest').Config} */
module.exports = {
  preset: 'ts-jest',
  testEnvironment: 'node',
  roots: ['<rootDir>/src'],
  testMatch: ['**/__tests__/**/*.test.ts', '**/?(*.)+(spec|test).ts'],
  collectCoverageFrom: ['src/**/*.ts', '!src/server.ts'],
  coverageDirectory: 'coverage',
};
"""

HUSKY_PRE_COMMIT_TEMPLATE = """\
npx lint-staged
"""

_renderer = TemplateRenderer(
    {
        ENV_TEMPLATE_NAME: ENV_EXAMPLE_TEMPLATE,
        ".gitignore": GITIGNORE_TEMPLATE,
        "README.md": README_TEMPLATE,
        ".prettierignore": PRETTIER_IGNORE_TEMPLATE,
        "jest.config.js": JEST_CONFIG_TEMPLATE,
        ".husky/pre-commit": HUSKY_PRE_COMMIT_TEMPLATE,
    }
)


# ---------------------------------------------------------------------------
# Pure render functions
# ---------------------------------------------------------------------------


def render_env_example(answers: ProjectAnswers) -> str:
    return _renderer.render(ENV_TEMPLATE_NAME, build_context(answers))


def rewrite_env_port(env_text: str, port: str) -> str:
    """Point every ``PORT=`` line at *port*, appending one if there is none."""
    pattern = re.compile(r"^PORT=.*$", re.MULTILINE)
    if pattern.search(env_text):
        return pattern.sub(f"PORT={port}", env_text)
    if env_text and not env_text.endswith("\n"):
        env_text += "\n"
    return f"{env_text}PORT={port}\n"


def rewrite_env_values(env_text: str, answers: ProjectAnswers) -> str:
    """Rewrite the project-specific lines of an existing ``.env.example``.

    ``PORT`` is always set.  ``MONGO_URI`` and ``ALLOWED_ORIGINS`` are only
    rewritten when the file already defines them.
    """
    text = rewrite_env_port(env_text, answers.port)
    values = {
        "MONGO_URI": f"mongodb://localhost:27017/{snake_case(answers.name)}",
        "ALLOWED_ORIGINS": f"http://localhost:3000,http://localhost:{answers.port}",
    }
    for key, value in values.items():
        pattern = re.compile(rf"^{key}=.*$", re.MULTILINE)
        line = f"{key}={value}"
        text = pattern.sub(lambda _match: line, text)
    return text


def render_gitignore(answers: ProjectAnswers) -> str:
    return _renderer.render(".gitignore", build_context(answers))


def render_readme(answers: ProjectAnswers) -> str:
    return _renderer.render("README.md", build_context(answers))


def render_eslint_config(answers: ProjectAnswers) -> str:
    extends = ["eslint:recommended", "plugin:@typescript-eslint/recommended"]
    return dump_json(
        {
            "root": True,
            "parser": "@typescript-eslint/parser",
            "parserOptions": {"ecmaVersion": 2022, "sourceType": "module"},
            "plugins": ["@typescript-eslint"],
            "extends": extends,
            "env": {"node": True, "es2022": True, **({"jest": True} if answers.test else {})},
            "ignorePatterns": ["dist/", "node_modules/", "coverage/"],
            "rules": {
                "@typescript-eslint/no-unused-vars": ["error", {"argsIgnorePattern": "^_"}],
                "no-console": "off",
            },
        }
    )


def render_prettier_config(answers: ProjectAnswers) -> str:
    return dump_json(
        {
            "semi": True,
            "singleQuote": True,
            "trailingComma": "all",
            "printWidth": 100,
            "tabWidth": 2,
        }
    )


def render_prettier_ignore(answers: ProjectAnswers) -> str:
    return _renderer.render(".prettierignore", build_context(answers))


def render_jest_config(answers: ProjectAnswers) -> str:
    return _renderer.render("jest.config.js", build_context(answers))


def render_husky_pre_commit(answers: ProjectAnswers) -> str:
    return _renderer.render(".husky/pre-commit", build_context(answers))


def render_lintstaged_config(answers: ProjectAnswers) -> str:
    commands: list[str] = []
    if answers.lint:
        commands.append("eslint --fix")
    if answers.format:
        commands.append("prettier --write")
    if not commands:
        commands.append("bash -c 'tsc --noEmit'")
    return dump_json({"*.ts": commands})


RenderFn = Callable[[ProjectAnswers], str]


def planned_files(answers: ProjectAnswers) -> dict[str, RenderFn]:
    """Map each config file the project gets to the function that renders it."""
    files: dict[str, RenderFn] = {
        ".gitignore": render_gitignore,
        "README.md": render_readme,
    }
    if answers.lint:
        files[".eslintrc.json"] = render_eslint_config
    if answers.format:
        files[".prettierrc"] = render_prettier_config
        files[".prettierignore"] = render_prettier_ignore
    if answers.test:
        files["jest.config.js"] = render_jest_config
    if answers.git_hooks:
        files[".husky/pre-commit"] = render_husky_pre_commit
        files[".lintstagedrc.json"] = render_lintstaged_config
    return files


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


@dataclass
class MaterializeResult:
    written: list[Path] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    def extend(self, other: "MaterializeResult") -> None:
        self.written.extend(other.written)
        self.failed.update(other.failed)


def _make_executable(path: Path) -> None:
    current = path.stat().st_mode
    path.chmod(current | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


async def write_outputs(destination: Path, contents: dict[str, str]) -> MaterializeResult:
    """Write each ``relative path -> content`` pair independently."""
    result = MaterializeResult()
    for relative, content in contents.items():
        out = destination / relative
        try:
            await asyncio.to_thread(write_file, out, content)
            if relative in EXECUTABLE_FILES:
                await asyncio.to_thread(_make_executable, out)
        except OSError as exc:
            result.failed[relative] = str(exc)
        else:
            result.written.append(out)
    return result


def _materialize_env(destination: Path, answers: ProjectAnswers) -> tuple[Path, Path]:
    template = destination / ENV_TEMPLATE_NAME
    if template.is_file():
        text = rewrite_env_values(template.read_text(encoding="utf-8"), answers)
    else:
        text = render_env_example(answers)
    template.write_text(text, encoding="utf-8")
    active = destination / ENV_ACTIVE_NAME
    shutil.copyfile(template, active)
    return template, active


class ConfigGenerator:
    """Writes the environment files and the toggle-dependent config files."""

    async def materialize_env(self, destination: Path, answers: ProjectAnswers) -> MaterializeResult:
        """Refresh ``.env.example`` with the chosen values and copy it to ``.env``."""
        result = MaterializeResult()
        try:
            template, active = await asyncio.to_thread(_materialize_env, destination, answers)
        except OSError as exc:
            result.failed[ENV_ACTIVE_NAME] = str(exc)
        else:
            result.written.extend([template, active])
        return result

    async def generate_all(self, destination: Path, answers: ProjectAnswers) -> MaterializeResult:
        result = await self.materialize_env(destination, answers)
        contents: dict[str, str] = {}
        for relative, render in planned_files(answers).items():
            contents[relative] = render(answers)
        result.extend(await write_outputs(destination, contents))
        return result
