"""Fatal error hierarchy for the scaffolding stages.

Anything raised from here aborts the run with exit status 1.  Best-effort
stages never raise these; they report through ``AttemptResult`` values and
warnings instead.
"""

from __future__ import annotations

from pathlib import Path


class ScaffoldError(Exception):
    """Base class for failures that leave the generated project unusable."""


class AnswerError(ScaffoldError):
    """Raised when a prompt answer is missing or fails validation."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(message)


class PathConflictError(ScaffoldError):
    """Raised when the destination directory cannot be used."""

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        super().__init__(message)


class TemplateCopyError(ScaffoldError):
    """Raised when copying the template tree fails."""


class ManifestError(ScaffoldError):
    """Raised when the destination ``package.json`` cannot be loaded or rewritten."""
