"""Workflow generation - the single entry point from manifest to workflow.

One generation covers one (manifest, environment) pair:

    resolve -> validate against template -> normalize -> render steps
    -> splice custom steps -> assemble

Any failure aborts that generation with a GenerationError; no partial
document is returned.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import yaml

from gpgen.catalog import TemplateCatalog, default_catalog
from gpgen.errors import GenerationError, GpgenError
from gpgen.manifest import DEFAULT_ENVIRONMENT, Manifest
from gpgen.models import Job, WorkflowDocument
from gpgen.normalize import normalize_inputs
from gpgen.renderer import render_step
from gpgen.resolver import PRODUCTION_ENVIRONMENT, STAGING_ENVIRONMENT, InputResolver
from gpgen.settings import Settings
from gpgen.splicer import apply_custom_steps

logger = logging.getLogger(__name__)


def workflow_name(manifest: Manifest, environment: str) -> str:
    """Pipeline name, suffixed with " (env)" for non-default environments."""
    if environment == DEFAULT_ENVIRONMENT:
        return manifest.pipeline_name
    return f"{manifest.pipeline_name} ({environment})"


def workflow_triggers(environment: str) -> dict[str, Any]:
    """GitHub Actions ``on:`` block for an environment."""
    if environment in (DEFAULT_ENVIRONMENT, STAGING_ENVIRONMENT):
        return {
            "push": {"branches": ["main", "develop"]},
            "pull_request": {"branches": ["main"]},
        }
    if environment == PRODUCTION_ENVIRONMENT:
        return {
            "push": {"tags": ["v*"]},
            "release": {"types": ["published"]},
        }
    return {"push": {"branches": ["main"]}}


def required_permissions(inputs: Mapping[str, Any]) -> dict[str, str]:
    """Job permissions implied by the effective inputs.

    Only real booleans count: the string "true" grants nothing.
    """
    permissions: dict[str, str] = {}
    if inputs.get("trivyScanEnabled") is True:
        permissions["security-events"] = "write"
        permissions["contents"] = "read"
    if inputs.get("containerEnabled") is True:
        permissions["packages"] = "write"
        permissions.setdefault("contents", "read")
    return permissions


def environments_for(manifest: Manifest, requested: str | None = None) -> list[str]:
    """Environments to generate: the requested one, or default plus all declared."""
    if requested:
        return [requested]
    return [DEFAULT_ENVIRONMENT] + [name for name in manifest.spec.environments if name != DEFAULT_ENVIRONMENT]


def workflow_filename(manifest: Manifest, environment: str) -> str:
    """Output file name for one environment's workflow."""
    if environment == DEFAULT_ENVIRONMENT:
        return f"{manifest.pipeline_name}.yml"
    return f"{manifest.pipeline_name}-{environment}.yml"


def dump_workflow(document: WorkflowDocument) -> str:
    """Serialize a workflow document to YAML, keeping key order."""
    return yaml.safe_dump(
        document.to_dict(),
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
        width=float("inf"),
    )


class WorkflowGenerator:
    """Generates GitHub Actions workflows from manifests.

    Example:
        generator = WorkflowGenerator()
        document = generator.generate_workflow(manifest, "production")
        text = dump_workflow(document)
    """

    def __init__(self, catalog: TemplateCatalog | None = None, settings: Settings | None = None) -> None:
        self.catalog = catalog or default_catalog()
        self.settings = settings or Settings()
        self.resolver = InputResolver(self.catalog)

    def generate_workflow(self, manifest: Manifest, environment: str = DEFAULT_ENVIRONMENT) -> WorkflowDocument:
        """Generate the workflow document for one environment.

        Raises:
            GenerationError: Wrapping the configuration, expression or
                directive error that aborted generation.
        """
        try:
            return self._generate(manifest, environment)
        except GpgenError as e:
            raise GenerationError(
                f"failed to generate workflow for environment '{environment}': {e}",
                environment=environment,
            ) from e

    def validate_environment(self, manifest: Manifest, environment: str = DEFAULT_ENVIRONMENT) -> None:
        """Resolve one environment's inputs and check them against the template.

        Raises:
            GenerationError: If the template is unknown or an input is invalid.
        """
        try:
            inputs = self.resolver.resolve(manifest, environment)
            self.catalog.validate_inputs(manifest.spec.template, inputs)
        except GpgenError as e:
            raise GenerationError(
                f"invalid inputs for environment '{environment}': {e}",
                environment=environment,
            ) from e

    def render_workflow(self, manifest: Manifest, environment: str = DEFAULT_ENVIRONMENT) -> str:
        """Generate one environment's workflow as YAML text."""
        return dump_workflow(self.generate_workflow(manifest, environment))

    def _generate(self, manifest: Manifest, environment: str) -> WorkflowDocument:
        template = self.catalog.load(manifest.spec.template)
        logger.debug(f"Generating '{manifest.pipeline_name}' from template '{template.name}' for '{environment}'")

        inputs = self.resolver.resolve(manifest, environment)
        self.catalog.validate_inputs(template.name, inputs)
        rendered_inputs = normalize_inputs(inputs)

        steps = [render_step(step, rendered_inputs) for step in template.steps]
        steps = apply_custom_steps(steps, manifest.spec.custom_steps)

        env_config = manifest.environment(environment)
        if env_config is not None:
            steps = apply_custom_steps(steps, env_config.custom_steps)

        job = Job(
            runs_on=self.settings.runs_on,
            permissions=required_permissions(inputs),
            steps=steps,
        )
        return WorkflowDocument(
            name=workflow_name(manifest, environment),
            on=workflow_triggers(environment),
            jobs={self.settings.job_id: job},
        )
