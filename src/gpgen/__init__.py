"""gpgen: Golden Path Pipeline Generator for GitHub Actions workflows."""

__version__ = "0.1.0"

from gpgen.catalog import TemplateCatalog, default_catalog
from gpgen.errors import (
    ConfigurationError,
    DirectiveError,
    GenerationError,
    GpgenError,
    InputValidationError,
    InvalidPositionError,
    ManifestError,
    TargetStepNotFoundError,
    TemplateExpressionError,
    TemplateNotFoundError,
)
from gpgen.generator import WorkflowGenerator, dump_workflow
from gpgen.manifest import (
    CustomStep,
    Manifest,
    get_validation_mode,
    load_manifest_from_file,
    parse_manifest,
    validate_manifest,
)
from gpgen.models import EffectiveInputs, Template, TemplateStep, WorkflowDocument, WorkflowStep
from gpgen.normalize import normalize_inputs
from gpgen.renderer import render_step
from gpgen.resolver import InputResolver
from gpgen.settings import Settings, load_settings
from gpgen.splicer import apply_custom_step, apply_custom_steps, matches_step

__all__ = [
    # Core
    "InputResolver",
    "TemplateCatalog",
    "WorkflowGenerator",
    "default_catalog",
    "dump_workflow",
    "load_settings",
    "Settings",
    # Manifests
    "CustomStep",
    "Manifest",
    "get_validation_mode",
    "load_manifest_from_file",
    "parse_manifest",
    "validate_manifest",
    # Models
    "EffectiveInputs",
    "Template",
    "TemplateStep",
    "WorkflowDocument",
    "WorkflowStep",
    # Pipeline stages
    "apply_custom_step",
    "apply_custom_steps",
    "matches_step",
    "normalize_inputs",
    "render_step",
    # Errors
    "ConfigurationError",
    "DirectiveError",
    "GenerationError",
    "GpgenError",
    "InputValidationError",
    "InvalidPositionError",
    "ManifestError",
    "TargetStepNotFoundError",
    "TemplateExpressionError",
    "TemplateNotFoundError",
]
