"""Starter manifests for ``gpgen init``."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml

from gpgen.errors import TemplateNotFoundError
from gpgen.manifest import VALID_API_VERSIONS, VALID_KINDS, VALIDATION_MODE_ANNOTATION, ValidationMode
from gpgen.resolver import PRODUCTION_ENVIRONMENT, STAGING_ENVIRONMENT

DESCRIPTION_ANNOTATION = "gpgen.dev/description"

# replaced with the pipeline name in starter input values
NAME_TOKEN = "<name>"

Starter = tuple[str, dict[str, Any], dict[str, dict[str, Any]]]


def _node_app() -> Starter:
    return (
        "Node.js application pipeline",
        {
            "buildCommand": "npm run build",
            "nodeVersion": "18",
            "packageManager": "npm",
            "testCommand": "npm test",
        },
        {
            STAGING_ENVIRONMENT: {"testCommand": "npm run test:ci"},
            PRODUCTION_ENVIRONMENT: {"nodeVersion": "20", "testCommand": "npm run test:all"},
        },
    )


def _go_service() -> Starter:
    return (
        "Go service pipeline with security scanning",
        {
            "buildCommand": f"go build -o bin/{NAME_TOKEN} ./cmd/{NAME_TOKEN}",
            "goVersion": "1.21",
            "platforms": "linux/amd64,darwin/amd64",
            "testCommand": "go test ./...",
            "trivyScanEnabled": True,
            "trivySeverity": "CRITICAL,HIGH",
        },
        {
            STAGING_ENVIRONMENT: {"testCommand": "go test -race ./...", "trivySeverity": "CRITICAL,HIGH,MEDIUM"},
            PRODUCTION_ENVIRONMENT: {
                "goVersion": "1.22",
                "testCommand": "go test -race -cover ./...",
                "trivySeverity": "CRITICAL",
            },
        },
    )


def _python_app() -> Starter:
    return (
        "Python application pipeline",
        {
            "lintCommand": "flake8",
            "packageManager": "pip",
            "pythonVersion": "3.11",
            "requirements": "requirements.txt",
            "testCommand": "pytest",
        },
        {
            STAGING_ENVIRONMENT: {"testCommand": "pytest --cov=. --cov-report=xml"},
            PRODUCTION_ENVIRONMENT: {
                "pythonVersion": "3.12",
                "testCommand": "pytest --cov=. --cov-report=xml --cov-fail-under=80",
            },
        },
    )


def _with_name(inputs: dict[str, Any], name: str) -> dict[str, Any]:
    return {
        key: value.replace(NAME_TOKEN, name) if isinstance(value, str) else value
        for key, value in inputs.items()
    }


STARTERS: dict[str, Callable[[], Starter]] = {
    "node-app": _node_app,
    "go-service": _go_service,
    "python-app": _python_app,
}


def generate_manifest_template(template: str, name: str) -> str:
    """Render a starter manifest for a built-in template.

    The manifest itself is relaxed; its staging and production
    environments are strict.

    Raises:
        TemplateNotFoundError: If there is no starter for the template.
    """
    if template not in STARTERS:
        raise TemplateNotFoundError(template, sorted(STARTERS))

    description, inputs, environments = STARTERS[template]()
    data = {
        "apiVersion": VALID_API_VERSIONS[0],
        "kind": VALID_KINDS[0],
        "metadata": {
            "name": name,
            "annotations": {
                VALIDATION_MODE_ANNOTATION: ValidationMode.RELAXED.value,
                DESCRIPTION_ANNOTATION: description,
            },
        },
        "spec": {
            "template": template,
            "inputs": _with_name(inputs, name),
            "customSteps": [],
            "environments": {
                env: {
                    "annotations": {VALIDATION_MODE_ANNOTATION: ValidationMode.STRICT.value},
                    "inputs": _with_name(env_inputs, name),
                }
                for env, env_inputs in environments.items()
            },
        },
    }
    return yaml.safe_dump(data, sort_keys=False, default_flow_style=False, width=float("inf"))


def default_pipeline_name(path: str | Path | None = None) -> str:
    """Pipeline name derived from a directory (the cwd by default)."""
    directory = Path(path) if path is not None else Path.cwd()
    return directory.resolve().name.replace(" ", "-").lower()
