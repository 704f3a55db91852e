"""External tool invocation: git bootstrap and dependency installation.

Both phases are best-effort.  They never raise; every command becomes an
``AttemptResult`` and a phase reports a ``FallbackResult``.  Callers decide
what to tell the user, which keeps "degraded" outcomes on a separate channel
from the ``ScaffoldError`` exceptions that abort a run.

Installation tries each package manager in priority order and stops at the
first success::

    npm install  ->  yarn install  ->  pnpm install
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path

from servergen.utils import run_command


@dataclass(frozen=True)
class Attempt:
    """One external command to try."""

    name: str
    command: list[str]
    timeout: float = 120

    @property
    def display(self) -> str:
        return " ".join(self.command)


@dataclass
class AttemptResult:
    """Record of a single command execution."""

    attempt: Attempt
    success: bool
    returncode: int
    stderr: str = ""
    duration_seconds: float = 0.0

    @property
    def timed_out(self) -> bool:
        return self.returncode == -1


@dataclass
class FallbackResult:
    """Outcome of an ordered chain of attempts."""

    success: bool
    results: list[AttemptResult] = field(default_factory=list)

    @property
    def succeeded_with(self) -> Attempt | None:
        for result in self.results:
            if result.success:
                return result.attempt
        return None

    @property
    def last_error(self) -> str:
        for result in reversed(self.results):
            if not result.success:
                return result.stderr or f"exit code {result.returncode}"
        return ""


async def run_attempt(attempt: Attempt, cwd: Path) -> AttemptResult:
    """Execute *attempt* in *cwd*; timeouts and missing binaries count as failures."""
    started = time.monotonic()
    returncode, _stdout, stderr = await run_command(
        attempt.command, cwd=cwd, timeout=attempt.timeout
    )
    return AttemptResult(
        attempt=attempt,
        success=returncode == 0,
        returncode=returncode,
        stderr=stderr,
        duration_seconds=time.monotonic() - started,
    )


async def run_until_success(attempts: list[Attempt], cwd: Path) -> FallbackResult:
    """Try *attempts* in order and stop at the first one that succeeds."""
    outcome = FallbackResult(success=False)
    for attempt in attempts:
        result = await run_attempt(attempt, cwd)
        outcome.results.append(result)
        if result.success:
            outcome.success = True
            break
    return outcome


async def run_until_failure(attempts: list[Attempt], cwd: Path) -> FallbackResult:
    """Run *attempts* in order and stop at the first one that fails."""
    outcome = FallbackResult(success=True)
    for attempt in attempts:
        result = await run_attempt(attempt, cwd)
        outcome.results.append(result)
        if not result.success:
            outcome.success = False
            break
    return outcome


class ToolInvoker:
    """Bootstraps version control and installs dependencies for a new project."""

    def __init__(
        self,
        package_managers: list[str] | None = None,
        commit_message: str = "Initial commit",
        git_timeout: float = 60,
        install_timeout: float = 300,
    ) -> None:
        self.package_managers = package_managers or ["npm", "yarn", "pnpm"]
        self.commit_message = commit_message
        self.git_timeout = git_timeout
        self.install_timeout = install_timeout

    def git_attempts(self) -> list[Attempt]:
        return [
            Attempt("git init", ["git", "init"], self.git_timeout),
            Attempt("git add", ["git", "add", "-A"], self.git_timeout),
            Attempt(
                "git commit",
                ["git", "commit", "-m", self.commit_message],
                self.git_timeout,
            ),
        ]

    def install_attempts(self) -> list[Attempt]:
        return [
            Attempt(f"{pm} install", [pm, "install"], self.install_timeout)
            for pm in self.package_managers
        ]

    async def init_git(self, project_dir: Path) -> FallbackResult:
        """``git init`` + ``git add -A`` + ``git commit``; abandons on first failure."""
        return await run_until_failure(self.git_attempts(), project_dir)

    async def install_dependencies(self, project_dir: Path) -> FallbackResult:
        """Install with the first package manager that works."""
        return await run_until_success(self.install_attempts(), project_dir)
