"""Interactive collection and validation of project answers.

The collector asks each question once.  There is no re-prompt loop: the
first invalid answer raises ``AnswerError`` and the run aborts.  Validation
lives in small pure functions so ``ProjectAnswers`` can reuse them and tests
can exercise them without a terminal.
"""

from __future__ import annotations

import getpass
import json
import re
from pathlib import Path
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from rich.prompt import Prompt

from servergen.utils import console

from .errors import AnswerError

NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*[a-z0-9]$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MAX_NAME_LENGTH = 214
FORBIDDEN_NAME_CHARS = '<>:"/\\|?*'

TOGGLES: tuple[str, ...] = ("docker", "git_hooks", "lint", "format", "test")

# Prompt texts, in the order they are asked.
TOGGLE_PROMPTS: dict[str, str] = {
    "docker": "Add Docker support? (y/N)",
    "git_hooks": "Add git hooks (husky + lint-staged)? (y/N)",
    "lint": "Add ESLint? (y/N)",
    "format": "Add Prettier? (y/N)",
    "test": "Add Jest testing? (y/N)",
}


# ---------------------------------------------------------------------------
# Validation predicates
# ---------------------------------------------------------------------------


def validate_project_name(name: str) -> str:
    """Return *name* if it is usable as both an npm package and directory name.

    Raises:
        ValueError: Describing the first rule the name breaks.
    """
    if not name:
        raise ValueError("Project name is required")
    if len(name) > MAX_NAME_LENGTH:
        raise ValueError(f"Project name must be at most {MAX_NAME_LENGTH} characters")
    if name[0] in "._":
        raise ValueError("Project name must not start with '.' or '_'")
    bad = sorted({ch for ch in name if ch in FORBIDDEN_NAME_CHARS})
    if bad:
        raise ValueError(
            f"Project name must not contain any of {' '.join(FORBIDDEN_NAME_CHARS)} "
            f"(found {' '.join(bad)})"
        )
    if not NAME_PATTERN.match(name):
        raise ValueError(
            "Project name must use lowercase letters, digits and hyphens, "
            "and must start and end with a letter or digit"
        )
    return name


def validate_email(email: str) -> str:
    """Return *email* if empty or shaped like ``local@domain.tld``."""
    if email and not EMAIL_PATTERN.match(email):
        raise ValueError(f"Invalid email address: {email}")
    return email


def validate_port(port: str) -> str:
    """Return *port* if it is an integer string in the range 1-65535."""
    if not re.fullmatch(r"\d+", port):
        raise ValueError(f"Port must be a number, got '{port}'")
    if not 1 <= int(port) <= 65535:
        raise ValueError(f"Port must be between 1 and 65535, got {port}")
    return port


def parse_toggle(answer: str) -> bool:
    """Interpret a yes/no answer: anything starting with ``y``/``Y`` is yes."""
    return answer.strip().lower().startswith("y")


# ---------------------------------------------------------------------------
# Answer record
# ---------------------------------------------------------------------------


class ProjectAnswers(BaseModel):
    """Immutable record of everything the user told us about the project."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    author_name: str = ""
    author_email: Optional[str] = None
    license: str = "MIT"
    port: str = "8000"
    docker: bool = False
    git_hooks: bool = False
    lint: bool = False
    format: bool = False
    test: bool = False

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return validate_project_name(value)

    @field_validator("author_email")
    @classmethod
    def _check_email(cls, value: Optional[str]) -> Optional[str]:
        if value:
            return validate_email(value)
        return None

    @field_validator("port")
    @classmethod
    def _check_port(cls, value: str) -> str:
        return validate_port(value)

    @property
    def author(self) -> str:
        """Author string in npm's ``Name <email>`` form."""
        if self.author_email:
            return f"{self.author_name} <{self.author_email}>".strip()
        return self.author_name

    @property
    def enabled_toggles(self) -> list[str]:
        return [toggle for toggle in TOGGLES if getattr(self, toggle)]


# ---------------------------------------------------------------------------
# Template defaults
# ---------------------------------------------------------------------------


class TemplateDefaults(BaseModel):
    """Prompt defaults shipped in the template's ``scaffold.json``."""

    description: str = "A REST API server"
    author_name: str = Field(default_factory=lambda: _current_user())
    license: str = "MIT"
    port: str = "8000"

    @classmethod
    def load(cls, template_dir: Path) -> "TemplateDefaults":
        """Read ``scaffold.json`` from *template_dir*, falling back to built-ins."""
        path = Path(template_dir) / "scaffold.json"
        if not path.is_file():
            return cls()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return cls.model_validate(data.get("defaults", {}))
        except (OSError, ValueError, AttributeError):
            # Malformed defaults only cost us nicer prompts.
            return cls()


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return ""


# ---------------------------------------------------------------------------
# Collector
# ---------------------------------------------------------------------------

AskFn = Callable[[str, str], str]


def rich_ask(question: str, default: str) -> str:
    """Ask one question on the shared console; empty input returns *default*."""
    return Prompt.ask(
        f"[bold cyan]?[/bold cyan] {question}",
        default=default,
        show_default=bool(default),
        console=console,
    )


class AnswerCollector:
    """Asks the fixed question sequence and validates each answer immediately."""

    def __init__(self, defaults: TemplateDefaults | None = None, ask: AskFn | None = None) -> None:
        self.defaults = defaults or TemplateDefaults()
        self.ask = ask or rich_ask

    def _prompt(self, question: str, default: str = "") -> str:
        answer = (self.ask(question, default) or "").strip()
        return answer or default

    def _checked(self, field: str, validator: Callable[[str], str], value: str) -> str:
        try:
            return validator(value)
        except ValueError as exc:
            raise AnswerError(field, str(exc)) from exc

    def collect(self) -> ProjectAnswers:
        """Run every prompt in order and return the validated answers.

        Raises:
            AnswerError: On the first missing or invalid answer.
        """
        name = self._checked("name", validate_project_name, self._prompt("Project name"))
        description = self._prompt("Project description", self.defaults.description)
        author_name = self._prompt("Author name", self.defaults.author_name)
        author_email = self._checked(
            "author_email", validate_email, self._prompt("Author email (optional)")
        )
        license_ = self._prompt("License", self.defaults.license)
        port = self._checked("port", validate_port, self._prompt("Port", self.defaults.port))

        toggles = {
            toggle: parse_toggle(self._prompt(question))
            for toggle, question in TOGGLE_PROMPTS.items()
        }

        try:
            return ProjectAnswers(
                name=name,
                description=description,
                author_name=author_name,
                author_email=author_email or None,
                license=license_,
                port=port,
                **toggles,
            )
        except ValidationError as exc:
            first = exc.errors()[0]
            field = str(first["loc"][0]) if first.get("loc") else "answers"
            raise AnswerError(field, first["msg"]) from exc
