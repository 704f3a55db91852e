"""servergen scaffolder -- turns answers plus the bundled template into a project.

Stages, in the order the pipeline runs them::

    AnswerCollector -> resolve_destination -> copy_template -> cleanup_destination
    -> update_manifest -> ConfigGenerator / DockerGenerator -> ToolInvoker

Quick usage::

    from servergen.scaffolder import ProjectAnswers, copy_template, update_manifest

    answers = ProjectAnswers(name="my-api", port="9090")
    files = await copy_template(template_dir, destination)
    await update_manifest(destination, answers, "https://github.com/me/my-api")
"""

from servergen.scaffolder.answers import AnswerCollector, ProjectAnswers, TemplateDefaults
from servergen.scaffolder.config_gen import ConfigGenerator, MaterializeResult
from servergen.scaffolder.copier import (
    DEFAULT_RULESET,
    ExclusionRule,
    ExclusionRuleset,
    cleanup_destination,
    copy_template,
)
from servergen.scaffolder.docker_gen import DockerGenerator
from servergen.scaffolder.errors import (
    AnswerError,
    ManifestError,
    PathConflictError,
    ScaffoldError,
    TemplateCopyError,
)
from servergen.scaffolder.manifest import update_manifest
from servergen.scaffolder.paths import resolve_destination
from servergen.scaffolder.templates import TemplateRenderer
from servergen.scaffolder.tools import FallbackResult, ToolInvoker

__all__ = [
    "AnswerCollector",
    "AnswerError",
    "ConfigGenerator",
    "DEFAULT_RULESET",
    "DockerGenerator",
    "ExclusionRule",
    "ExclusionRuleset",
    "FallbackResult",
    "ManifestError",
    "MaterializeResult",
    "PathConflictError",
    "ProjectAnswers",
    "ScaffoldError",
    "TemplateCopyError",
    "TemplateDefaults",
    "TemplateRenderer",
    "ToolInvoker",
    "cleanup_destination",
    "copy_template",
    "resolve_destination",
    "update_manifest",
]
