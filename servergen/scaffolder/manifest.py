"""``package.json`` customization.

The copied manifest still describes the template itself.  ``customize_manifest``
turns it into the generated project's manifest in a fixed order: identity
fields, publish-field removal, script table, baseline dependencies and finally
the toggle-gated dev dependencies.  Dependency merges are additive; a version
already pinned in the template always wins.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from servergen.utils import load_json, save_json

from .answers import ProjectAnswers
from .errors import ManifestError

MANIFEST_NAME = "package.json"
PROJECT_VERSION = "1.0.0"
SERVER_ENTRY = "dist/server.js"

# Fields that only make sense for the published template package.
PUBLISH_FIELDS: tuple[str, ...] = ("bin", "preferGlobal", "publishConfig", "files")

BASE_DEPENDENCIES: dict[str, str] = {
    "express": "^4.19.2",
    "cors": "^2.8.5",
    "helmet": "^7.1.0",
    "dotenv": "^16.4.5",
    "mongoose": "^8.4.0",
    "winston": "^3.13.0",
}

BASE_DEV_DEPENDENCIES: dict[str, str] = {
    "typescript": "^5.4.5",
    "ts-node-dev": "^2.0.0",
    "rimraf": "^5.0.7",
    "@types/node": "^20.12.12",
    "@types/express": "^4.17.21",
    "@types/cors": "^2.8.17",
}

TOGGLE_DEV_DEPENDENCIES: dict[str, dict[str, str]] = {
    "docker": {},
    "git_hooks": {
        "husky": "^9.0.11",
        "lint-staged": "^15.2.5",
    },
    "lint": {
        "eslint": "^8.57.0",
        "@typescript-eslint/parser": "^7.11.0",
        "@typescript-eslint/eslint-plugin": "^7.11.0",
    },
    "format": {
        "prettier": "^3.2.5",
    },
    "test": {
        "jest": "^29.7.0",
        "@types/jest": "^29.5.12",
        "ts-jest": "^29.1.4",
    },
}


def _noop(feature: str) -> str:
    return f'echo "{feature} not configured" && exit 0'


def build_scripts(answers: ProjectAnswers) -> dict[str, str]:
    """Return the full npm script table for *answers*.

    Every script name is always present; toggles only decide whether the
    command does real work or is a placeholder.
    """
    test = answers.test
    lint = answers.lint
    fmt = answers.format
    docker = answers.docker
    return {
        "build": "tsc",
        "start": f"node {SERVER_ENTRY}",
        "dev": "ts-node-dev --respawn --transpile-only src/server.ts",
        "clean": "rimraf dist",
        "test": "jest" if test else _noop("Tests"),
        "test:watch": "jest --watch" if test else _noop("Tests"),
        "test:coverage": "jest --coverage" if test else _noop("Tests"),
        "lint": "eslint src --ext .ts" if lint else _noop("Linting"),
        "lint:fix": "eslint src --ext .ts --fix" if lint else _noop("Linting"),
        "format": 'prettier --write "src/**/*.ts"' if fmt else _noop("Formatting"),
        "format:check": 'prettier --check "src/**/*.ts"' if fmt else _noop("Formatting"),
        "prepare": "husky" if answers.git_hooks else _noop("Git hooks"),
        "docker:build": f"docker build -t {answers.name} ." if docker else _noop("Docker"),
        "docker:up": "docker compose up -d" if docker else _noop("Docker"),
        "docker:down": "docker compose down" if docker else _noop("Docker"),
    }


def merge_dependencies(target: dict[str, str], entries: dict[str, str]) -> list[str]:
    """Add *entries* to *target* without touching existing versions.

    Returns:
        Package names that were actually added.
    """
    added: list[str] = []
    for package, version in entries.items():
        if package not in target:
            target[package] = version
            added.append(package)
    return added


def _ensure_mapping(manifest: dict[str, Any], key: str) -> dict[str, str]:
    value = manifest.get(key)
    if value is None:
        value = manifest[key] = {}
    if not isinstance(value, dict):
        raise ManifestError(f"'{key}' in {MANIFEST_NAME} must be an object")
    return value


def customize_manifest(
    manifest: dict[str, Any], answers: ProjectAnswers, repository_url: str
) -> dict[str, Any]:
    """Rewrite *manifest* in place for the generated project and return it."""
    # 1. identity
    manifest["name"] = answers.name
    manifest["description"] = answers.description
    manifest["author"] = answers.author
    manifest["license"] = answers.license
    manifest["version"] = PROJECT_VERSION
    manifest["main"] = SERVER_ENTRY
    manifest["repository"] = {"type": "git", "url": f"git+{repository_url}.git"}
    manifest["bugs"] = {"url": f"{repository_url}/issues"}
    manifest["homepage"] = f"{repository_url}#readme"

    # 2. publish-only fields
    for key in PUBLISH_FIELDS:
        manifest.pop(key, None)

    # 3. scripts
    manifest["scripts"] = build_scripts(answers)

    # 4. baseline dependencies
    dependencies = _ensure_mapping(manifest, "dependencies")
    dev_dependencies = _ensure_mapping(manifest, "devDependencies")
    merge_dependencies(dependencies, BASE_DEPENDENCIES)
    merge_dependencies(dev_dependencies, BASE_DEV_DEPENDENCIES)

    # 5. toggle-gated dev dependencies
    for toggle in answers.enabled_toggles:
        merge_dependencies(dev_dependencies, TOGGLE_DEV_DEPENDENCIES.get(toggle, {}))

    return manifest


def load_manifest(path: str | Path) -> dict[str, Any]:
    """Load a manifest, turning every way it can be broken into ``ManifestError``."""
    manifest_path = Path(path)
    try:
        data = load_json(manifest_path)
    except FileNotFoundError as exc:
        raise ManifestError(f"{MANIFEST_NAME} not found at {manifest_path}") from exc
    except json.JSONDecodeError as exc:
        raise ManifestError(f"{MANIFEST_NAME} is not valid JSON: {exc}") from exc
    except OSError as exc:
        raise ManifestError(f"Cannot read {manifest_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ManifestError(f"{MANIFEST_NAME} must contain a JSON object")
    return data


async def update_manifest(
    destination: str | Path, answers: ProjectAnswers, repository_url: str
) -> Path:
    """Load, customize and write back ``<destination>/package.json``.

    Raises:
        ManifestError: On any load, shape or write failure.
    """
    path = Path(destination) / MANIFEST_NAME
    manifest = load_manifest(path)
    customize_manifest(manifest, answers, repository_url)
    try:
        await save_json(manifest, path)
    except OSError as exc:
        raise ManifestError(f"Cannot write {path}: {exc}") from exc
    return path
