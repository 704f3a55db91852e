"""Destination directory resolution and safety checks."""

from __future__ import annotations

from pathlib import Path

from .errors import PathConflictError


def resolve_destination(
    working_dir: str | Path, project_name: str, template_dir: str | Path
) -> Path:
    """Return the absolute project directory for *project_name*.

    Only inspects the file system; nothing is created.

    Raises:
        PathConflictError: If the directory already exists, or if it would sit
            inside the template tree (copying a tree into itself never ends).
    """
    destination = (Path(working_dir) / project_name).resolve()
    template_root = Path(template_dir).resolve()

    if destination == template_root or template_root in destination.parents:
        raise PathConflictError(
            destination,
            f"Destination {destination} is inside the template directory {template_root}",
        )
    if destination.exists():
        raise PathConflictError(destination, f"Directory {destination} already exists")
    return destination
