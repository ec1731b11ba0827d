"""Pipeline manifest models, parsing and validation.

A manifest selects a golden-path template and supplies inputs, custom
steps and per-environment overrides:

    apiVersion: gpgen.dev/v1
    kind: Pipeline
    metadata:
      name: my-service
    spec:
      template: go-service
      inputs:
        goVersion: "1.22"
      customSteps:
        - name: Lint
          position: before:test
          run: golangci-lint run
      environments:
        production:
          inputs:
            trivySeverity: CRITICAL
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from jsonschema import Draft202012Validator
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from gpgen.errors import ManifestError
from gpgen.expressions import format_value

if TYPE_CHECKING:
    from gpgen.catalog import TemplateCatalog

logger = logging.getLogger(__name__)

VALID_API_VERSIONS = ("gpgen.dev/v1",)
VALID_KINDS = ("Pipeline",)
POSITION_PATTERN = re.compile(r"^(before|after|replace):[a-z0-9-]+$")
MIN_TIMEOUT_MINUTES = 1
MAX_TIMEOUT_MINUTES = 360
VALIDATION_MODE_ANNOTATION = "gpgen.dev/validation-mode"
DEFAULT_ENVIRONMENT = "default"
SCHEMA_PATH = Path(__file__).parent / "schemas" / "manifest.schema.json"


class ValidationMode(str, Enum):
    """Manifest validation modes (metadata annotation)."""

    STRICT = "strict"
    RELAXED = "relaxed"


def _string_map(v: Any) -> dict[str, str]:
    """Coerce YAML scalars in with/env/annotation maps to strings."""
    if v is None:
        return {}
    if not isinstance(v, dict):
        return v
    return {str(k): format_value(val) for k, val in v.items()}


class CustomStep(BaseModel):
    """A user-defined step spliced into the template's step list.

    Attributes:
        name: Step display name (required, non-empty).
        position: "before:<token>", "after:<token>", "replace:<token>" or "" to append.
        uses: Action reference (exclusive with run).
        run: Shell command (exclusive with uses).
        with_: Action inputs.
        env: Step environment variables.
        if_: Step condition.
        timeout_minutes: Step timeout, 1-360.
        continue_on_error: Whether failures are tolerated.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str
    position: str = ""
    uses: str = ""
    run: str = ""
    with_: dict[str, str] = Field(default_factory=dict, alias="with")
    env: dict[str, str] = Field(default_factory=dict)
    if_: str = Field(default="", alias="if")
    timeout_minutes: int | None = Field(default=None, alias="timeout-minutes")
    continue_on_error: bool | None = Field(default=None, alias="continue-on-error")

    @field_validator("with_", "env", mode="before")
    @classmethod
    def coerce_string_map(cls, v: Any) -> Any:
        return _string_map(v)

    @field_validator("position", mode="before")
    @classmethod
    def empty_position(cls, v: Any) -> Any:
        return "" if v is None else v


class EnvironmentConfig(BaseModel):
    """Overrides applied when generating for a named environment."""

    model_config = ConfigDict(populate_by_name=True)

    annotations: dict[str, str] = Field(default_factory=dict)
    inputs: dict[str, Any] = Field(default_factory=dict)
    custom_steps: list[CustomStep] = Field(default_factory=list, alias="customSteps")

    @field_validator("annotations", mode="before")
    @classmethod
    def coerce_annotations(cls, v: Any) -> Any:
        return _string_map(v)

    @field_validator("inputs", mode="before")
    @classmethod
    def empty_inputs(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("custom_steps", mode="before")
    @classmethod
    def empty_steps(cls, v: Any) -> Any:
        return [] if v is None else v


class ManifestMetadata(BaseModel):
    """Pipeline metadata."""

    name: str = ""
    description: str = ""
    annotations: dict[str, str] = Field(default_factory=dict)

    @field_validator("annotations", mode="before")
    @classmethod
    def coerce_annotations(cls, v: Any) -> Any:
        return _string_map(v)


class ManifestSpec(BaseModel):
    """Pipeline specification."""

    model_config = ConfigDict(populate_by_name=True)

    template: str
    inputs: dict[str, Any] = Field(default_factory=dict)
    custom_steps: list[CustomStep] = Field(default_factory=list, alias="customSteps")
    environments: dict[str, EnvironmentConfig] = Field(default_factory=dict)

    @field_validator("inputs", mode="before")
    @classmethod
    def empty_inputs(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("custom_steps", mode="before")
    @classmethod
    def empty_steps(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("environments", mode="before")
    @classmethod
    def empty_environments(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, dict):
            return {name: {} if env is None else env for name, env in v.items()}
        return v


class Manifest(BaseModel):
    """Root structure of a pipeline manifest."""

    model_config = ConfigDict(populate_by_name=True)

    api_version: str = Field(alias="apiVersion")
    kind: str
    metadata: ManifestMetadata = Field(default_factory=ManifestMetadata)
    spec: ManifestSpec

    @field_validator("metadata", mode="before")
    @classmethod
    def empty_metadata(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def pipeline_name(self) -> str:
        """Metadata name, falling back to the template name."""
        return self.metadata.name or self.spec.template

    def environment(self, name: str) -> EnvironmentConfig | None:
        """Get overrides for an environment ("default" never has overrides)."""
        if name == DEFAULT_ENVIRONMENT:
            return None
        return self.spec.environments.get(name)


def parse_manifest(text: str, *, path: str | None = None) -> Manifest:
    """Parse manifest YAML into a Manifest.

    Checks required fields and the bundled JSON schema. Semantic checks
    live in validate_manifest().

    Args:
        text: Manifest YAML source.
        path: Source path, used in error messages.

    Raises:
        ManifestError: If the YAML, required fields or structure are invalid.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ManifestError(f"failed to parse YAML: {e}", path=path) from e

    if not isinstance(data, dict):
        raise ManifestError("manifest must be a YAML mapping", path=path)

    if not data.get("apiVersion"):
        raise ManifestError("apiVersion is required", path=path)
    if not data.get("kind"):
        raise ManifestError("kind is required", path=path)
    if "spec" not in data:
        raise ManifestError("spec is required", path=path)
    if not isinstance(data["spec"], dict) or not data["spec"].get("template"):
        raise ManifestError("template is required", path=path)

    errors = schema_errors(data)
    if errors:
        raise ManifestError("manifest does not match schema", path=path, errors=errors)

    try:
        return Manifest.model_validate(data)
    except PydanticValidationError as e:
        errors = [f"{_location(err['loc'])}: {err['msg']}" for err in e.errors()]
        raise ManifestError("manifest does not match schema", path=path, errors=errors) from e


@lru_cache(maxsize=1)
def manifest_validator() -> Draft202012Validator:
    """Validator for the bundled manifest schema (loaded once)."""
    return Draft202012Validator(json.loads(SCHEMA_PATH.read_text(encoding="utf-8")))


def _location(parts: Iterable[Any]) -> str:
    return ".".join(str(p) for p in parts) or "(root)"


def schema_errors(data: Any) -> list[str]:
    """Structural problems in a manifest document, as ``location: message`` lines."""
    errors = sorted(manifest_validator().iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path])
    return [f"{_location(e.absolute_path)}: {e.message}" for e in errors]


def custom_step_problem(step: CustomStep) -> str | None:
    """Describe the first rule a custom step violates, or None if valid."""
    if not step.name.strip():
        return "step name cannot be empty"
    if step.position and not POSITION_PATTERN.match(step.position):
        return (
            f"invalid position format: {step.position}, "
            f"must match pattern '{POSITION_PATTERN.pattern}'"
        )
    if not step.uses and not step.run:
        return "step must have either 'uses' or 'run'"
    if step.uses and step.run:
        return "step cannot have both 'uses' and 'run'"
    if step.timeout_minutes is not None and not (
        MIN_TIMEOUT_MINUTES <= step.timeout_minutes <= MAX_TIMEOUT_MINUTES
    ):
        return f"timeout-minutes must be between {MIN_TIMEOUT_MINUTES} and {MAX_TIMEOUT_MINUTES}"
    return None


def validate_manifest(manifest: Manifest, catalog: TemplateCatalog | None = None) -> None:
    """Validate a parsed manifest against the semantic rules.

    Args:
        manifest: Parsed manifest.
        catalog: Template catalog (defaults to the built-in catalog).

    Raises:
        ManifestError: On the first violated rule.
    """
    if catalog is None:
        from gpgen.catalog import default_catalog

        catalog = default_catalog()

    if manifest.api_version not in VALID_API_VERSIONS:
        raise ManifestError(
            f"invalid apiVersion: {manifest.api_version}, must be one of [{', '.join(VALID_API_VERSIONS)}]"
        )
    if manifest.kind not in VALID_KINDS:
        raise ManifestError(f"invalid kind: {manifest.kind}, must be one of [{', '.join(VALID_KINDS)}]")
    if manifest.spec.template not in catalog:
        raise ManifestError(
            f"invalid template: {manifest.spec.template}, must be one of [{', '.join(catalog.list())}]"
        )

    for i, step in enumerate(manifest.spec.custom_steps):
        problem = custom_step_problem(step)
        if problem:
            raise ManifestError(f"invalid custom step at index {i}: {problem}")

    for env_name, env_config in manifest.spec.environments.items():
        for i, step in enumerate(env_config.custom_steps):
            problem = custom_step_problem(step)
            if problem:
                raise ManifestError(f"invalid custom step at index {i} in environment {env_name}: {problem}")


def load_manifest_from_file(path: str | Path, catalog: TemplateCatalog | None = None) -> Manifest:
    """Read, parse and validate a manifest file.

    Raises:
        ManifestError: If the file is missing or the manifest is invalid.
    """
    path = Path(path)
    if not path.exists():
        raise ManifestError(f"manifest file not found: {path}")

    logger.debug(f"Loading manifest from {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestError(f"failed to read manifest file: {e}", path=str(path)) from e

    manifest = parse_manifest(text, path=str(path))
    validate_manifest(manifest, catalog)
    return manifest


def get_validation_mode(manifest: Manifest, environment: str | None = None) -> ValidationMode:
    """Validation mode from annotations (strict unless "relaxed").

    An environment's own annotation takes precedence over the manifest's.
    """
    mode = manifest.metadata.annotations.get(VALIDATION_MODE_ANNOTATION)
    env_config = manifest.environment(environment) if environment else None
    if env_config is not None:
        mode = env_config.annotations.get(VALIDATION_MODE_ANNOTATION, mode)
    if mode == ValidationMode.RELAXED.value:
        return ValidationMode.RELAXED
    return ValidationMode.STRICT
