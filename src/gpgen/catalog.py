"""Template catalog - maps template names to their golden-path definitions.

The catalog is an immutable registry: it is constructed once (usually via
default_catalog()) and passed to the resolver and generator. There is no
dynamic registration.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from functools import lru_cache
from types import MappingProxyType
from typing import Any

from gpgen import conditions
from gpgen.config import (
    ACTION_VERSIONS,
    ACTOR_PLACEHOLDER,
    LANGUAGES,
    TEMPLATE_AUTHOR,
    TOKEN_PLACEHOLDER,
    Language,
    default_container_config,
    default_security_config,
    get_package_manager_options,
)
from gpgen.errors import InputValidationError, TemplateNotFoundError
from gpgen.expressions import format_value
from gpgen.models import InputDefinition, InputType, Template, TemplateStep

logger = logging.getLogger(__name__)


class TemplateCatalog:
    """Read-only lookup of golden-path templates by name."""

    def __init__(self, templates: Iterable[Template]) -> None:
        table: dict[str, Template] = {}
        for template in templates:
            if template.name in table:
                raise ValueError(f"Template '{template.name}' is defined more than once")
            table[template.name] = template
        self._templates: Mapping[str, Template] = MappingProxyType(table)

    def __contains__(self, name: object) -> bool:
        return name in self._templates

    def load(self, name: str) -> Template:
        """Get a deep copy of a template by name.

        Raises:
            TemplateNotFoundError: If the template doesn't exist.
        """
        if name not in self._templates:
            raise TemplateNotFoundError(name, self.list())
        return self._templates[name].model_copy(deep=True)

    def list(self) -> list[str]:
        """List all template names, sorted."""
        return sorted(self._templates)

    def templates(self) -> list[Template]:
        """List all templates, sorted by name."""
        return [self._templates[name] for name in self.list()]

    def validate_inputs(self, template_name: str, inputs: Mapping[str, Any]) -> None:
        """Validate effective inputs against a template's input definitions.

        Checks every defined input for presence (when required), type, and
        membership in its allowed values. Inputs not defined by the
        template are ignored.

        Raises:
            TemplateNotFoundError: If the template doesn't exist.
            InputValidationError: On the first violating input.
        """
        template = self.load(template_name)

        for input_name in sorted(template.inputs):
            definition = template.inputs[input_name]
            if input_name not in inputs:
                if definition.required:
                    raise InputValidationError(
                        f"required input '{input_name}' not provided",
                        input_name=input_name,
                        violation=InputValidationError.MISSING_REQUIRED,
                    )
                continue
            validate_input_value(input_name, inputs[input_name], definition)


def _matches_type(value: Any, input_type: InputType) -> bool:
    if input_type is InputType.STRING:
        return isinstance(value, str)
    if input_type is InputType.NUMBER:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if input_type is InputType.BOOLEAN:
        return isinstance(value, bool)
    if input_type is InputType.ARRAY:
        return isinstance(value, list)
    return isinstance(value, Mapping)


def validate_input_value(name: str, value: Any, definition: InputDefinition) -> None:
    """Validate one input value against its definition.

    Raises:
        InputValidationError: If the type is wrong or the value is not allowed.
    """
    if not _matches_type(value, definition.type):
        article = "an" if definition.type.value[0] in "aeiou" else "a"
        raise InputValidationError(
            f"input '{name}' must be {article} {definition.type.value}",
            input_name=name,
            violation=InputValidationError.WRONG_TYPE,
        )

    if definition.options and format_value(value) not in definition.options:
        raise InputValidationError(
            f"input '{name}' must be one of: [{', '.join(definition.options)}]",
            input_name=name,
            violation=InputValidationError.NOT_IN_ALLOWED_SET,
        )


# ---------------------------------------------------------------------------
# Built-in templates
# ---------------------------------------------------------------------------


def _version_input(language: str, default: str, versions: Iterable[str]) -> InputDefinition:
    return InputDefinition(
        type=InputType.STRING,
        description=f"{language} version to use",
        default=default,
        required=True,
        options=tuple(versions),
    )


def _package_manager_input(default: str, options: Iterable[str]) -> InputDefinition:
    return InputDefinition(
        type=InputType.STRING,
        description="Package manager to use",
        default=default,
        required=True,
        options=tuple(options),
    )


def _command_input(description: str, default: str, required: bool) -> InputDefinition:
    return InputDefinition(type=InputType.STRING, description=description, default=default, required=required)


def _shared_inputs() -> dict[str, InputDefinition]:
    return {
        "security": InputDefinition(
            type=InputType.OBJECT,
            description="Security scanning configuration",
            default=default_security_config(),
        ),
        "container": InputDefinition(
            type=InputType.OBJECT,
            description="Container building and registry configuration",
            default=default_container_config(),
        ),
    }


def _checkout_step() -> TemplateStep:
    return TemplateStep(id="checkout", name="Checkout code", uses=ACTION_VERSIONS.checkout)


def _security_steps() -> list[TemplateStep]:
    return [
        TemplateStep(
            id="security-scan",
            name="Run Trivy vulnerability scanner",
            uses=ACTION_VERSIONS.trivy,
            with_={
                "scan-type": "fs",
                "scan-ref": ".",
                "format": "sarif",
                "output": "trivy-results.sarif",
                "severity": "{{ Inputs.security.trivy.severity }}",
                "exit-code": "{{ Inputs.security.trivy.exitCode }}",
            },
            if_=conditions.trivy_scan_condition(),
        ),
        TemplateStep(
            id="upload-sarif",
            name="Upload Trivy scan results to GitHub Security tab",
            uses=ACTION_VERSIONS.codeql_upload_sarif,
            with_={"sarif_file": "trivy-results.sarif"},
            if_=conditions.trivy_upload_condition(),
        ),
    ]


def _container_steps() -> list[TemplateStep]:
    return [
        TemplateStep(
            id="setup-docker-buildx",
            name="Set up Docker Buildx",
            uses=ACTION_VERSIONS.docker_setup_buildx,
            if_=conditions.container_build_condition(),
        ),
        TemplateStep(
            id="login-registry",
            name="Log in to Container Registry",
            uses=ACTION_VERSIONS.docker_login,
            with_={
                "registry": "{{ Inputs.container.registry }}",
                "username": ACTOR_PLACEHOLDER,
                "password": TOKEN_PLACEHOLDER,
            },
            if_=conditions.container_push_condition(),
        ),
        TemplateStep(
            id="build-and-push",
            name="Build and push container image",
            uses=ACTION_VERSIONS.docker_build_push,
            with_={
                "context": "{{ Inputs.container.buildContext }}",
                "file": "{{ Inputs.container.dockerfile }}",
                "push": "{{ Inputs.container.push.enabled }}",
                "tags": "{{ Inputs.container.registry }}/{{ Inputs.container.imageName }}:"
                "{{ Inputs.container.imageTag }}",
                "build-args": "{{ Inputs.container.buildArgs }}",
                "cache-from": "type=gha",
                "cache-to": "type=gha,mode=max",
            },
            if_=conditions.container_build_condition(),
        ),
    ]


def node_app_template() -> Template:
    node = LANGUAGES[Language.NODE]
    inputs = {
        "nodeVersion": _version_input("Node.js", node.default_version, node.versions),
        "packageManager": _package_manager_input(
            node.default_manager, get_package_manager_options(Language.NODE)
        ),
        "testCommand": _command_input("Command to run tests", node.default_test_cmd, True),
        "buildCommand": _command_input("Command to build the application", node.default_build_cmd, False),
        **_shared_inputs(),
    }
    steps = [
        _checkout_step(),
        TemplateStep(
            id="setup-node",
            name="Setup Node.js",
            uses=ACTION_VERSIONS.setup_node,
            with_={
                "node-version": "{{ Inputs.nodeVersion }}",
                "cache": "{{ Inputs.packageManager }}",
            },
        ),
        TemplateStep(
            id="install",
            name="Install dependencies",
            run='{{ Inputs.packageManager }} {% if Inputs.packageManager == "npm" %}ci'
            "{% else %}install --frozen-lockfile{% endif %}",
        ),
        TemplateStep(id="test", name="Run tests", run="{{ Inputs.testCommand }}"),
        TemplateStep(
            id="build",
            name="Build application",
            run="{{ Inputs.buildCommand }}",
            if_="{{ Inputs.buildCommand }}",
        ),
        *_security_steps(),
        *_container_steps(),
    ]
    return Template(
        name="node-app",
        description="Node.js application with testing, building, and deployment",
        author=TEMPLATE_AUTHOR,
        tags=("nodejs", "javascript", "web"),
        inputs=inputs,
        steps=tuple(steps),
    )


def go_service_template() -> Template:
    go = LANGUAGES[Language.GO]
    inputs = {
        "goVersion": _version_input("Go", go.default_version, go.versions),
        "testCommand": _command_input("Command to run tests", go.default_test_cmd, True),
        "buildCommand": _command_input("Command to build the service", go.default_build_cmd, True),
        "platforms": InputDefinition(
            type=InputType.STRING,
            description="Target platforms for cross-compilation",
            default="linux/amd64,darwin/amd64",
        ),
        **_shared_inputs(),
    }
    steps = [
        _checkout_step(),
        TemplateStep(
            id="setup-go",
            name="Setup Go",
            uses=ACTION_VERSIONS.setup_go,
            with_={"go-version": "{{ Inputs.goVersion }}", "cache": "true"},
        ),
        TemplateStep(id="test", name="Run tests", run="{{ Inputs.testCommand }}"),
        TemplateStep(id="build", name="Build service", run="{{ Inputs.buildCommand }}"),
        *_security_steps(),
        *_container_steps(),
    ]
    return Template(
        name="go-service",
        description="Go service with testing, building, and cross-compilation",
        author=TEMPLATE_AUTHOR,
        tags=("go", "golang", "service", "api"),
        inputs=inputs,
        steps=tuple(steps),
    )


def python_app_template() -> Template:
    python = LANGUAGES[Language.PYTHON]
    inputs = {
        "pythonVersion": _version_input("Python", python.default_version, python.versions),
        "packageManager": _package_manager_input(
            python.default_manager, get_package_manager_options(Language.PYTHON)
        ),
        "testCommand": _command_input("Command to run tests", python.default_test_cmd, True),
        "lintCommand": _command_input("Command to run linting", python.default_lint_cmd, False),
        "requirements": InputDefinition(
            type=InputType.STRING,
            description="Requirements file path",
            default=python.default_requirements,
            required=True,
        ),
        **_shared_inputs(),
    }
    steps = [
        _checkout_step(),
        TemplateStep(
            id="setup-python",
            name="Setup Python",
            uses=ACTION_VERSIONS.setup_python,
            with_={
                "python-version": "{{ Inputs.pythonVersion }}",
                "cache": "{{ Inputs.packageManager }}",
            },
        ),
        TemplateStep(
            id="install",
            name="Install dependencies",
            run='{% if Inputs.packageManager == "pip" %}pip install -r {{ Inputs.requirements }}'
            '{% elif Inputs.packageManager == "poetry" %}poetry install'
            "{% else %}pipenv install{% endif %}",
        ),
        TemplateStep(
            id="lint",
            name="Run linting",
            run="{{ Inputs.lintCommand }}",
            if_="{{ Inputs.lintCommand }}",
        ),
        TemplateStep(id="test", name="Run tests", run="{{ Inputs.testCommand }}"),
        *_security_steps(),
        *_container_steps(),
    ]
    return Template(
        name="python-app",
        description="Python application with testing, linting, and packaging",
        author=TEMPLATE_AUTHOR,
        tags=("python", "web", "application"),
        inputs=inputs,
        steps=tuple(steps),
    )


@lru_cache(maxsize=1)
def default_catalog() -> TemplateCatalog:
    """Build the catalog of built-in templates (once per process)."""
    catalog = TemplateCatalog([node_app_template(), go_service_template(), python_app_template()])
    logger.debug(f"Loaded built-in templates: {', '.join(catalog.list())}")
    return catalog
