"""Filtered template copy and post-copy cleanup.

The copy walks the template tree with ``shutil.copytree`` and an ignore
callback built from an ``ExclusionRuleset``.  Directories the ruleset rejects
are never descended into, so a whole subtree disappears with its root.
"""

from __future__ import annotations

import asyncio
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .errors import TemplateCopyError


class MatchKind(str, Enum):
    """How an exclusion pattern is compared against an entry's base name."""

    EXACT = "exact"
    PREFIX = "prefix"
    SUFFIX = "suffix"


@dataclass(frozen=True)
class ExclusionRule:
    pattern: str
    kind: MatchKind = MatchKind.EXACT

    def matches(self, name: str) -> bool:
        if self.kind is MatchKind.PREFIX:
            return name.startswith(self.pattern)
        if self.kind is MatchKind.SUFFIX:
            return name.endswith(self.pattern)
        return name == self.pattern


@dataclass(frozen=True)
class ExclusionRuleset:
    """Decides which template entries stay behind during the copy."""

    rules: tuple[ExclusionRule, ...]
    doc_marker: str = "TEMPLATE"
    scripts_dir: str = "template-scripts"

    def is_excluded(self, name: str, parent_name: str = "") -> bool:
        """Return ``True`` if the entry *name* inside *parent_name* is skipped."""
        if name == self.scripts_dir or parent_name == self.scripts_dir:
            return True
        if self.doc_marker and self.doc_marker in name:
            return True
        return any(rule.matches(name) for rule in self.rules)

    def ignore(self, directory: str, names: list[str]) -> set[str]:
        """``shutil.copytree`` ignore callback."""
        parent_name = Path(directory).name
        return {name for name in names if self.is_excluded(name, parent_name)}


DEFAULT_RULES: tuple[ExclusionRule, ...] = (
    # version control
    ExclusionRule(".git"),
    ExclusionRule(".gitmodules"),
    # dependency caches
    ExclusionRule("node_modules"),
    ExclusionRule(".npm"),
    ExclusionRule(".yarn"),
    ExclusionRule(".pnpm-store"),
    ExclusionRule("__pycache__"),
    # build output
    ExclusionRule("dist"),
    ExclusionRule("build"),
    ExclusionRule("coverage"),
    ExclusionRule(".nyc_output"),
    # lockfiles
    ExclusionRule("package-lock.json"),
    ExclusionRule("yarn.lock"),
    ExclusionRule("pnpm-lock.yaml"),
    # local env files; .env.example is the only one that ships
    ExclusionRule(".env"),
    ExclusionRule(".env.development"),
    ExclusionRule(".env.production"),
    # editor / OS artifacts
    ExclusionRule(".idea"),
    ExclusionRule(".vscode"),
    ExclusionRule(".DS_Store"),
    ExclusionRule("Thumbs.db"),
    ExclusionRule("npm-debug.log", MatchKind.PREFIX),
    ExclusionRule("yarn-error.log", MatchKind.PREFIX),
    ExclusionRule(".#", MatchKind.PREFIX),
    ExclusionRule(".log", MatchKind.SUFFIX),
    ExclusionRule(".swp", MatchKind.SUFFIX),
    ExclusionRule(".pyc", MatchKind.SUFFIX),
    ExclusionRule("~", MatchKind.SUFFIX),
    # template-only setup files
    ExclusionRule("template-setup.md"),
    ExclusionRule("setup-template.sh"),
)

DEFAULT_RULESET = ExclusionRuleset(rules=DEFAULT_RULES)

# Entries the filter lets through but the generated project must not keep.
CLEANUP_PATHS: tuple[str, ...] = (
    "scaffold.json",
    ".npmignore",
    "CHANGELOG.md",
    "LICENSE",
    ".github",
)


# ---------------------------------------------------------------------------
# Copy
# ---------------------------------------------------------------------------


async def copy_template(
    source: str | Path,
    destination: str | Path,
    ruleset: ExclusionRuleset = DEFAULT_RULESET,
) -> list[Path]:
    """Copy the template tree at *source* into the new *destination*.

    Returns:
        Copied files, relative to *destination*, sorted.

    Raises:
        TemplateCopyError: If the source is missing, the destination exists, or
            any file fails to copy.  A partially written destination is removed
            before raising, unless it was created by someone else.
    """
    src = Path(source)
    dst = Path(destination)
    if not src.is_dir():
        raise TemplateCopyError(f"Template directory not found: {src}")
    if dst.exists():
        raise TemplateCopyError(f"Destination already exists: {dst}")

    try:
        await asyncio.to_thread(shutil.copytree, src, dst, ignore=ruleset.ignore)
    except FileExistsError as exc:
        # Someone else created the destination after the check; it is not ours to remove.
        raise TemplateCopyError(f"Destination already exists: {dst}") from exc
    except (shutil.Error, OSError) as exc:
        await asyncio.to_thread(shutil.rmtree, dst, True)
        raise TemplateCopyError(f"Failed to copy template files: {exc}") from exc

    return sorted(p.relative_to(dst) for p in dst.rglob("*") if p.is_file())


# ---------------------------------------------------------------------------
# Cleanup
# ---------------------------------------------------------------------------


@dataclass
class CleanupResult:
    removed: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)


def cleanup_destination(
    destination: str | Path, names: tuple[str, ...] = CLEANUP_PATHS
) -> CleanupResult:
    """Delete template-only entries from the destination root.

    Missing entries are skipped.  Failures are collected, never raised.
    """
    root = Path(destination)
    result = CleanupResult()
    for name in names:
        target = root / name
        if not target.exists() and not target.is_symlink():
            continue
        try:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            else:
                target.unlink()
        except OSError as exc:
            result.failed[name] = str(exc)
        else:
            result.removed.append(name)
    return result
