"""Tests for the container bundle (servergen.scaffolder.docker_gen).

Covers:
- Dockerfile port and multi-stage build
- docker-compose.yml services, healthcheck gating and volumes
- Nothing written when Docker is off
- Delegation to an injected renderer
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest
import yaml

from servergen.scaffolder.answers import ProjectAnswers
from servergen.scaffolder.docker_gen import DockerGenerator
from servergen.scaffolder.templates import TemplateRenderer

pytestmark = pytest.mark.unit


@pytest.fixture
def docker_answers(answers: ProjectAnswers) -> ProjectAnswers:
    return answers.model_copy(update={"docker": True})


@pytest.fixture
def docker_gen() -> DockerGenerator:
    return DockerGenerator()


class TestDockerfile:
    def test_exposes_chosen_port(self, docker_gen: DockerGenerator, docker_answers: ProjectAnswers):
        text = docker_gen.render_dockerfile(docker_answers)
        assert "EXPOSE 9090" in text
        assert "ENV PORT=9090" in text

    def test_multi_stage_build(self, docker_gen: DockerGenerator, docker_answers: ProjectAnswers):
        text = docker_gen.render_dockerfile(docker_answers)
        assert text.count("FROM node:20-alpine") == 2
        assert "COPY --from=build /app/dist ./dist" in text
        assert 'CMD ["node", "dist/server.js"]' in text

    def test_install_skips_lifecycle_scripts(
        self, docker_gen: DockerGenerator, docker_answers: ProjectAnswers
    ):
        for line in docker_gen.render_dockerfile(docker_answers).splitlines():
            if "npm install" in line:
                assert "--ignore-scripts" in line


class TestDockerignore:
    def test_excludes_local_state(self, docker_gen: DockerGenerator, docker_answers: ProjectAnswers):
        lines = docker_gen.render_dockerignore(docker_answers).splitlines()
        assert "node_modules" in lines
        assert ".env" in lines
        assert "!.env.example" in lines


class TestCompose:
    @pytest.fixture
    def compose(self, docker_gen: DockerGenerator, docker_answers: ProjectAnswers) -> dict:
        return yaml.safe_load(docker_gen.render_compose(docker_answers))

    def test_services(self, compose: dict):
        assert set(compose["services"]) == {"app", "mongo"}

    def test_app_port_mapping(self, compose: dict):
        app = compose["services"]["app"]
        assert app["ports"] == ["9090:9090"]
        assert app["environment"]["PORT"] == "9090"
        assert app["environment"]["MONGO_URI"] == "mongodb://mongo:27017/my_api"

    def test_app_waits_for_healthy_database(self, compose: dict):
        depends = compose["services"]["app"]["depends_on"]
        assert depends == {"mongo": {"condition": "service_healthy"}}

    def test_mongo_healthcheck_and_volume(self, compose: dict):
        mongo = compose["services"]["mongo"]
        assert mongo["image"] == "mongo:7"
        assert "mongosh" in mongo["healthcheck"]["test"]
        assert "mongo-data:/data/db" in mongo["volumes"]
        assert "mongo-data" in compose["volumes"]

    def test_jwt_secret_is_required(self, compose: dict):
        assert compose["services"]["app"]["environment"]["JWT_SECRET"].startswith("${JWT_SECRET:?")

    def test_container_names(self, compose: dict):
        assert compose["services"]["app"]["container_name"] == "my-api"
        assert compose["services"]["mongo"]["container_name"] == "my-api-mongo"


class TestGenerateAll:
    async def test_writes_bundle(
        self, tmp_path: Path, docker_gen: DockerGenerator, docker_answers: ProjectAnswers
    ):
        result = await docker_gen.generate_all(tmp_path, docker_answers)

        assert sorted(p.name for p in result.written) == sorted(DockerGenerator.FILES)
        for name in DockerGenerator.FILES:
            assert (tmp_path / name).is_file()

    async def test_docker_off_writes_nothing(
        self, tmp_path: Path, docker_gen: DockerGenerator, answers: ProjectAnswers
    ):
        result = await docker_gen.generate_all(tmp_path, answers)
        assert result.written == []
        assert list(tmp_path.iterdir()) == []

    def test_uses_injected_renderer(self, docker_answers: ProjectAnswers):
        renderer = MagicMock(spec=TemplateRenderer)
        renderer.render.side_effect = lambda name, context: f"# {name} for {context['project_name']}\n"

        files = DockerGenerator(renderer).render_all(docker_answers)

        assert files["Dockerfile"] == "# Dockerfile for my-api\n"
        assert renderer.render.call_count == 3
