"""Container bundle generation: Dockerfile, .dockerignore and docker-compose.yml.

The compose file wires the generated API to a MongoDB service; the API only
starts once the database healthcheck passes.
"""

from __future__ import annotations

from pathlib import Path

from .answers import ProjectAnswers
from .config_gen import MaterializeResult, write_outputs
from .templates import TemplateRenderer, build_context

DOCKERFILE_TEMPLATE = """\
FROM node:20-alpine AS build
WORKDIR /app
COPY package*.json ./
RUN npm install --ignore-scripts
COPY tsconfig.json ./
COPY src ./src
RUN npm run build

FROM node:20-alpine
WORKDIR /app
ENV NODE_ENV=production
ENV PORT={{ port }}
COPY package*.json ./
RUN npm install --omit=dev --ignore-scripts
COPY --from=build /app/dist ./dist
EXPOSE {{ port }}
USER node
CMD ["node", "dist/server.js"]
"""

DOCKERIGNORE_TEMPLATE = """\
node_modules
dist
coverage
npm-debug.log*
.env
.env.*
!.env.example
.git
.husky
Dockerfile
docker-compose.yml
"""

COMPOSE_TEMPLATE = """\
services:
  app:
    build: .
    container_name: {{ project_name }}
    restart: unless-stopped
    ports:
      - "{{ port }}:{{ port }}"
    environment:
      NODE_ENV: production
      PORT: "{{ port }}"
      MONGO_URI: mongodb://mongo:27017/{{ project_name | snake_case }}
      JWT_SECRET: ${JWT_SECRET:?set JWT_SECRET before starting}
    depends_on:
      mongo:
        condition: service_healthy

  mongo:
    image: mongo:7
    container_name: {{ project_name }}-mongo
    restart: unless-stopped
    ports:
      - "27017:27017"
    volumes:
      - mongo-data:/data/db
    healthcheck:
      test: ["CMD", "mongosh", "--quiet", "--eval", "db.adminCommand('ping')"]
      interval: 10s
      timeout: 5s
      retries: 5

volumes:
  mongo-data:
"""


class DockerGenerator:
    """Generates the three-file container bundle."""

    FILES: tuple[str, ...] = ("Dockerfile", ".dockerignore", "docker-compose.yml")

    def __init__(self, renderer: TemplateRenderer | None = None) -> None:
        self.renderer = renderer or TemplateRenderer(
            {
                "Dockerfile": DOCKERFILE_TEMPLATE,
                ".dockerignore": DOCKERIGNORE_TEMPLATE,
                "docker-compose.yml": COMPOSE_TEMPLATE,
            }
        )

    def render_dockerfile(self, answers: ProjectAnswers) -> str:
        return self.renderer.render("Dockerfile", build_context(answers))

    def render_dockerignore(self, answers: ProjectAnswers) -> str:
        return self.renderer.render(".dockerignore", build_context(answers))

    def render_compose(self, answers: ProjectAnswers) -> str:
        return self.renderer.render("docker-compose.yml", build_context(answers))

    def render_all(self, answers: ProjectAnswers) -> dict[str, str]:
        """Return ``{file name: content}`` for the whole bundle."""
        return {name: self.renderer.render(name, build_context(answers)) for name in self.FILES}

    async def generate_all(self, destination: Path, answers: ProjectAnswers) -> MaterializeResult:
        """Write the bundle into *destination*, or nothing if Docker is off."""
        if not answers.docker:
            return MaterializeResult()
        return await write_outputs(destination, self.render_all(answers))
