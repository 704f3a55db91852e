"""End-to-end generation against the bundled Express template.

Runs the full pipeline with scripted answers.  git and the package managers
are mocked; everything else (copy, cleanup, manifest, config files) touches a
real temporary directory.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from servergen.config import DEFAULT_TEMPLATE_DIR, Config
from servergen.pipeline import EXIT_OK, GenerationPipeline

pytestmark = pytest.mark.integration


@pytest.fixture
def bundled_config(work_dir: Path) -> Config:
    return Config(
        template_dir=DEFAULT_TEMPLATE_DIR,
        working_dir=work_dir,
        repository_url_template="https://github.com/acme/{name}",
    )


async def _generate(config: Config, scripted_ask, replies: list[str]) -> Path:
    pipeline = GenerationPipeline(config, ask=scripted_ask(replies))
    assert await pipeline.run() == EXIT_OK
    return config.working_dir / "my-api"


class TestGenerateFromBundledTemplate:
    async def test_minimal_project(
        self, bundled_config, scripted_ask, prompt_replies, mock_run_command
    ):
        project = await _generate(bundled_config, scripted_ask, prompt_replies())

        files = sorted(p.relative_to(project).as_posix() for p in project.rglob("*") if p.is_file())
        assert files == [
            ".env",
            ".env.example",
            ".gitignore",
            "README.md",
            "package.json",
            "src/app.ts",
            "src/config/env.config.ts",
            "src/config/initial.config.ts",
            "src/config/logger.config.ts",
            "src/middlewares/error.middleware.ts",
            "src/middlewares/not-found.middleware.ts",
            "src/routes/index.ts",
            "src/server.ts",
            "tsconfig.json",
        ]

    async def test_manifest(self, bundled_config, scripted_ask, prompt_replies, mock_run_command):
        project = await _generate(bundled_config, scripted_ask, prompt_replies())

        manifest = json.loads((project / "package.json").read_text(encoding="utf-8"))
        assert manifest["name"] == "my-api"
        assert manifest["version"] == "1.0.0"
        assert manifest["main"] == "dist/server.js"
        assert manifest["description"] == "A REST API server built with Express and TypeScript"
        assert manifest["author"] == "Ada Lovelace"
        assert manifest["license"] == "MIT"
        assert manifest["homepage"] == "https://github.com/acme/my-api#readme"
        assert manifest["engines"] == {"node": ">=18"}
        for field in ("bin", "preferGlobal", "files", "publishConfig"):
            assert field not in manifest
        assert "prepublishOnly" not in manifest["scripts"]
        assert manifest["scripts"]["test"].endswith("exit 0")
        assert "rimraf" in manifest["devDependencies"]

    async def test_env_port(self, bundled_config, scripted_ask, prompt_replies, mock_run_command):
        project = await _generate(bundled_config, scripted_ask, prompt_replies(port="3001"))

        env = (project / ".env").read_text(encoding="utf-8")
        assert "PORT=3001" in env.splitlines()
        assert "PORT=8000" not in env.splitlines()
        assert "MONGO_URI=mongodb://localhost:27017/my_api" in env.splitlines()
        assert "ALLOWED_ORIGINS=http://localhost:3000,http://localhost:3001" in env.splitlines()
        assert "8000" not in env
        assert env == (project / ".env.example").read_text(encoding="utf-8")

    async def test_every_feature(self, bundled_config, scripted_ask, prompt_replies, mock_run_command):
        project = await _generate(
            bundled_config, scripted_ask, prompt_replies(toggles=("y", "y", "y", "y", "y"))
        )

        compose = yaml.safe_load((project / "docker-compose.yml").read_text(encoding="utf-8"))
        assert compose["services"]["app"]["ports"] == ["9090:9090"]
        assert "EXPOSE 9090" in (project / "Dockerfile").read_text(encoding="utf-8")

        lintstaged = json.loads((project / ".lintstagedrc.json").read_text(encoding="utf-8"))
        assert lintstaged["*.ts"] == ["eslint --fix", "prettier --write"]

        scripts = json.loads((project / "package.json").read_text(encoding="utf-8"))["scripts"]
        assert scripts["test"] == "jest"
        assert scripts["prepare"] == "husky"

        readme = (project / "README.md").read_text(encoding="utf-8")
        assert readme.startswith("# My Api\n")
        assert "## Docker" in readme

    async def test_bundled_template_untouched(
        self, bundled_config, scripted_ask, prompt_replies, mock_run_command
    ):
        before = sorted(p.relative_to(DEFAULT_TEMPLATE_DIR) for p in DEFAULT_TEMPLATE_DIR.rglob("*"))
        await _generate(bundled_config, scripted_ask, prompt_replies())
        after = sorted(p.relative_to(DEFAULT_TEMPLATE_DIR) for p in DEFAULT_TEMPLATE_DIR.rglob("*"))
        assert before == after
