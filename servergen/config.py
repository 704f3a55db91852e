"""servergen configuration.

Typed settings for a generator run.  Everything the interactive prompts do
*not* ask for lives here: where the template comes from, how external tools
are invoked and how long they may take.  Values can be overridden through
``SERVERGEN_*`` environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "template"

_TRUTHY = {"1", "true", "yes", "on"}


class Config(BaseModel):
    """Global servergen configuration.

    Created once by the CLI entry point and passed to ``GenerationPipeline``,
    which hands the relevant pieces to each stage.
    """

    template_dir: Path = Field(default=DEFAULT_TEMPLATE_DIR)
    working_dir: Path = Field(default_factory=Path.cwd)
    repository_url_template: str = Field(
        default="https://github.com/your-username/{name}",
        description="Hosting URL for the generated project; '{name}' is replaced",
    )
    commit_message: str = Field(
        default="Initial commit: Setup from backend server template"
    )
    package_managers: list[str] = Field(
        default_factory=lambda: ["npm", "yarn", "pnpm"],
        min_length=1,
        description="Install attempts in priority order",
    )
    git_timeout: int = Field(default=60, ge=1, description="Per git command, in seconds")
    install_timeout: int = Field(
        default=300, ge=1, description="Per package-manager attempt, in seconds"
    )
    run_timeout: int = Field(
        default=900, ge=1, description="Watchdog ceiling for the whole run, in seconds"
    )
    skip_git: bool = Field(default=False)
    skip_install: bool = Field(default=False)

    @field_validator("repository_url_template")
    @classmethod
    def _has_name_placeholder(cls, value: str) -> str:
        if "{name}" not in value:
            raise ValueError("repository_url_template must contain '{name}'")
        return value.rstrip("/")

    def repository_url(self, project_name: str) -> str:
        """Return the hosting URL for *project_name*."""
        return self.repository_url_template.format(name=project_name)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            SERVERGEN_TEMPLATE_DIR, SERVERGEN_REPOSITORY_URL,
            SERVERGEN_PACKAGE_MANAGERS, SERVERGEN_GIT_TIMEOUT,
            SERVERGEN_INSTALL_TIMEOUT, SERVERGEN_RUN_TIMEOUT,
            SERVERGEN_SKIP_GIT, SERVERGEN_SKIP_INSTALL.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("SERVERGEN_TEMPLATE_DIR"):
            kwargs["template_dir"] = Path(os.environ["SERVERGEN_TEMPLATE_DIR"])
        if os.environ.get("SERVERGEN_REPOSITORY_URL"):
            kwargs["repository_url_template"] = os.environ["SERVERGEN_REPOSITORY_URL"]
        if os.environ.get("SERVERGEN_PACKAGE_MANAGERS"):
            kwargs["package_managers"] = [
                pm.strip()
                for pm in os.environ["SERVERGEN_PACKAGE_MANAGERS"].split(",")
                if pm.strip()
            ]
        if os.environ.get("SERVERGEN_GIT_TIMEOUT"):
            kwargs["git_timeout"] = int(os.environ["SERVERGEN_GIT_TIMEOUT"])
        if os.environ.get("SERVERGEN_INSTALL_TIMEOUT"):
            kwargs["install_timeout"] = int(os.environ["SERVERGEN_INSTALL_TIMEOUT"])
        if os.environ.get("SERVERGEN_RUN_TIMEOUT"):
            kwargs["run_timeout"] = int(os.environ["SERVERGEN_RUN_TIMEOUT"])

        kwargs["skip_git"] = os.environ.get("SERVERGEN_SKIP_GIT", "").lower() in _TRUTHY
        kwargs["skip_install"] = (
            os.environ.get("SERVERGEN_SKIP_INSTALL", "").lower() in _TRUTHY
        )
        return cls(**kwargs)
