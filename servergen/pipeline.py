"""servergen pipeline orchestrator.

Runs one project generation from the first prompt to the final summary::

    Collecting -> Resolving -> Copying -> CleaningUp -> Customizing
    -> MaterializingConfig -> InvokingTools -> Reporting

Failures in collecting, resolving, copying or customizing abort the run with
exit status 1.  Everything afterwards degrades in place: the problem is
printed as a warning together with the command the user can run instead, and
the run still ends with the success summary.

Usage::

    servergen
    python -m servergen
"""

from __future__ import annotations

import asyncio
import os
import sys
import time
import traceback
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable

from rich.panel import Panel

from servergen import __version__
from servergen.config import Config
from servergen.scaffolder.answers import (
    AnswerCollector,
    AskFn,
    ProjectAnswers,
    TemplateDefaults,
    rich_ask,
)
from servergen.scaffolder.config_gen import ConfigGenerator, MaterializeResult
from servergen.scaffolder.copier import cleanup_destination, copy_template
from servergen.scaffolder.docker_gen import DockerGenerator
from servergen.scaffolder.errors import ScaffoldError
from servergen.scaffolder.manifest import update_manifest
from servergen.scaffolder.paths import resolve_destination
from servergen.scaffolder.tools import ToolInvoker
from servergen.utils import (
    console,
    create_progress,
    format_duration,
    print_error,
    print_stage_header,
    print_step,
    print_success,
    print_summary_table,
    print_warning,
)

EXIT_OK = 0
EXIT_FAILURE = 1


class Stage(str, Enum):
    """Pipeline states, in execution order."""

    COLLECTING = "Collecting answers"
    RESOLVING = "Resolving destination"
    COPYING = "Copying template"
    CLEANING_UP = "Cleaning up"
    CUSTOMIZING = "Customizing package.json"
    MATERIALIZING = "Writing config files"
    INVOKING_TOOLS = "Running git and package manager"
    REPORTING = "Reporting"


@dataclass
class ManualStep:
    """A best-effort step that failed and what to run instead."""

    problem: str
    remedy: str


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class GenerationPipeline:
    """Drives a single generator run.

    Attributes:
        config: Non-interactive settings (template location, tool timeouts...).
        stage: The stage currently executing; used to label fatal errors.
        manual_steps: Degraded steps collected for the final summary.
    """

    def __init__(self, config: Config, ask: AskFn | None = None) -> None:
        self.config = config
        self.ask = ask or rich_ask
        self.stage = Stage.COLLECTING
        self.manual_steps: list[ManualStep] = []
        self.generated: list[Path] = []
        self.tools = ToolInvoker(
            package_managers=config.package_managers,
            commit_message=config.commit_message,
            git_timeout=config.git_timeout,
            install_timeout=config.install_timeout,
        )
        self.config_gen = ConfigGenerator()
        self.docker_gen = DockerGenerator()

    async def run(self) -> int:
        """Execute the whole run and return the process exit code."""
        started = time.monotonic()
        console.print(
            Panel(
                "[bold bright_cyan]Backend Server Project Generator[/bold bright_cyan]\n"
                f"Template : {self.config.template_dir}",
                border_style="bright_cyan",
            )
        )

        try:
            answers = await self.collect()
            destination = self.resolve(answers)
            if not await self.confirm(answers, destination):
                print_warning("Cancelled; nothing was written.")
                return EXIT_OK
            await self.copy(destination)
            self.cleanup(destination)
            await self.customize(destination, answers)
            await self.materialize(destination, answers)
            await self.invoke_tools(destination)
        except ScaffoldError as exc:
            print_error(f"{self.stage.value} failed: {exc}")
            return EXIT_FAILURE
        except Exception as exc:
            print_error(f"{self.stage.value} failed unexpectedly: {exc}")
            console.print(f"[dim]{traceback.format_exc()}[/dim]")
            return EXIT_FAILURE

        self.stage = Stage.REPORTING
        self._print_final_summary(answers, destination, time.monotonic() - started)
        return EXIT_OK

    # -- Fatal stages ------------------------------------------------------

    async def collect(self) -> ProjectAnswers:
        self.stage = Stage.COLLECTING
        defaults = TemplateDefaults.load(self.config.template_dir)
        collector = AnswerCollector(defaults, ask=self.ask)
        # Prompting blocks on stdin; keep the event loop (and watchdog) alive.
        return await asyncio.to_thread(collector.collect)

    def resolve(self, answers: ProjectAnswers) -> Path:
        self.stage = Stage.RESOLVING
        return resolve_destination(
            self.config.working_dir, answers.name, self.config.template_dir
        )

    async def confirm(self, answers: ProjectAnswers, destination: Path) -> bool:
        """Show the collected answers and ask before touching the disk."""
        print_summary_table(
            {
                "Name": answers.name,
                "Description": answers.description,
                "Author": answers.author or "-",
                "License": answers.license,
                "Port": answers.port,
                "Features": ", ".join(answers.enabled_toggles) or "none",
                "Location": str(destination),
            },
            title="New project",
        )
        reply = await asyncio.to_thread(self.ask, "Create project? (Y/n)", "y")
        reply = (reply or "").strip().lower()
        return not reply.startswith("n")

    async def copy(self, destination: Path) -> None:
        self.stage = Stage.COPYING
        print_stage_header(self.stage.value)
        with create_progress() as progress:
            progress.add_task("Copying template files...", total=None)
            copied = await copy_template(self.config.template_dir, destination)
        print_step(f"Copied {len(copied)} files to {destination}")

    def cleanup(self, destination: Path) -> None:
        self.stage = Stage.CLEANING_UP
        result = cleanup_destination(destination)
        for name in result.removed:
            print_step(f"Removed template file {name}")
        for name, error in result.failed.items():
            print_warning(f"Could not remove {name}: {error}")
            self.manual_steps.append(
                ManualStep(f"{name} is left over from the template", f"rm -rf {name}")
            )

    async def customize(self, destination: Path, answers: ProjectAnswers) -> None:
        self.stage = Stage.CUSTOMIZING
        print_stage_header(self.stage.value)
        path = await update_manifest(
            destination, answers, self.config.repository_url(answers.name)
        )
        print_step(f"Updated {path.name}")

    # -- Best-effort stages ------------------------------------------------

    async def materialize(self, destination: Path, answers: ProjectAnswers) -> None:
        self.stage = Stage.MATERIALIZING
        print_stage_header(self.stage.value)
        result = MaterializeResult()
        result.extend(await self.config_gen.generate_all(destination, answers))
        result.extend(await self.docker_gen.generate_all(destination, answers))

        for path in result.written:
            print_step(f"Created {path.relative_to(destination)}")
        for name, error in result.failed.items():
            print_warning(f"Could not write {name}: {error}")
            self.manual_steps.append(
                ManualStep(f"{name} was not generated", "re-run servergen or add it by hand")
            )
        self.generated.extend(result.written)

    async def invoke_tools(self, destination: Path) -> None:
        self.stage = Stage.INVOKING_TOOLS
        print_stage_header(self.stage.value)

        if self.config.skip_git:
            print_step("Skipped git initialisation")
        else:
            git = await self.tools.init_git(destination)
            if git.success:
                print_step("Initialised git repository with an initial commit")
            else:
                print_warning(f"Git setup failed: {git.last_error}")
                self.manual_steps.append(
                    ManualStep(
                        "Git repository was not initialised",
                        f'git init && git add -A && git commit -m "{self.config.commit_message}"',
                    )
                )

        if self.config.skip_install:
            print_step("Skipped dependency installation")
            return

        with create_progress() as progress:
            progress.add_task("Installing dependencies...", total=None)
            install = await self.tools.install_dependencies(destination)

        for failed in install.results:
            if not failed.success:
                print_warning(
                    f"{failed.attempt.display} failed after "
                    f"{format_duration(failed.duration_seconds)}: {failed.stderr or failed.returncode}"
                )
        if install.success and install.succeeded_with is not None:
            print_step(f"Installed dependencies with {install.succeeded_with.command[0]}")
        else:
            self.manual_steps.append(
                ManualStep(
                    "Dependencies were not installed",
                    " || ".join(f"{pm} install" for pm in self.config.package_managers),
                )
            )

    # -- Reporting ---------------------------------------------------------

    def _print_final_summary(
        self, answers: ProjectAnswers, destination: Path, elapsed: float
    ) -> None:
        console.print()
        console.print(
            Panel(
                f"[bold green]Project {answers.name} created[/bold green]\n"
                f"Location : {destination}\n"
                f"Generated: {len(self.generated)} config files\n"
                f"Duration : {format_duration(elapsed)}",
                title="[bold]Done[/bold]",
                border_style="green",
            )
        )

        if self.manual_steps:
            print_warning("Some steps need to be finished by hand:")
            for step in self.manual_steps:
                console.print(f"  - {step.problem}: [bold]{step.remedy}[/bold]")
            console.print()

        print_success("To start development:")
        console.print(f"  cd {answers.name}")
        console.print("  npm run dev")
        console.print()
        console.print("Next steps:")
        console.print("  1. Review .env and set a real JWT_SECRET")
        console.print("  2. Add your first route under src/routes")
        console.print(f"  3. Check http://localhost:{answers.port}/health")


# ---------------------------------------------------------------------------
# Watchdog
# ---------------------------------------------------------------------------


def _force_exit(code: int) -> None:
    sys.stdout.flush()
    os._exit(code)


async def run_with_watchdog(
    pipeline: GenerationPipeline,
    timeout: float,
    on_timeout: Callable[[int], None] = _force_exit,
) -> int:
    """Run *pipeline* bounded by *timeout* seconds.

    When the ceiling is hit the pipeline task is cancelled (killing any
    running child process), a timeout diagnostic is printed and *on_timeout*
    terminates the process.  A prompt blocked on stdin cannot be unwound
    cleanly, hence the hard exit.
    """
    try:
        return await asyncio.wait_for(pipeline.run(), timeout=timeout)
    except asyncio.TimeoutError:
        print_error(
            f"Timed out after {format_duration(timeout)} "
            f"(during: {pipeline.stage.value}); aborting"
        )
        on_timeout(EXIT_FAILURE)
        return EXIT_FAILURE


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """CLI entry point for ``servergen`` / ``python -m servergen``."""
    import argparse

    parser = argparse.ArgumentParser(
        prog="servergen",
        description="Generate an Express + TypeScript REST server project interactively",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "All project details are asked interactively.\n"
            "Environment overrides: SERVERGEN_TEMPLATE_DIR, SERVERGEN_REPOSITORY_URL,\n"
            "SERVERGEN_PACKAGE_MANAGERS, SERVERGEN_INSTALL_TIMEOUT, SERVERGEN_RUN_TIMEOUT,\n"
            "SERVERGEN_SKIP_GIT, SERVERGEN_SKIP_INSTALL\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.parse_args()

    try:
        config = Config.from_env()
    except ValueError as exc:
        print_error(f"Invalid configuration: {exc}")
        sys.exit(EXIT_FAILURE)

    pipeline = GenerationPipeline(config)
    try:
        exit_code = asyncio.run(run_with_watchdog(pipeline, config.run_timeout))
    except KeyboardInterrupt:
        print_error("Interrupted")
        exit_code = EXIT_FAILURE
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
