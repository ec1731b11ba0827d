"""Static configuration tables for the built-in templates.

Single source of truth for supported language versions, package managers,
default commands, pinned action versions and the default security and
container input objects.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict


class Language(str, Enum):
    """Languages with a golden-path template."""

    GO = "go"
    NODE = "node"
    PYTHON = "python"


class LanguageConfig(BaseModel):
    """Defaults and supported options for one language.

    Attributes:
        versions: Supported toolchain versions, oldest first.
        default_version: Version used when the manifest doesn't pick one.
        package_managers: Supported package managers (empty for Go).
        default_manager: Package manager used by default.
        default_test_cmd: Default test command.
        default_build_cmd: Default build command (empty if not applicable).
        default_lint_cmd: Default lint command (empty if not applicable).
        default_requirements: Default requirements file (Python only).
    """

    model_config = ConfigDict(frozen=True)

    versions: tuple[str, ...]
    default_version: str
    package_managers: tuple[str, ...] = ()
    default_manager: str = ""
    default_test_cmd: str
    default_build_cmd: str = ""
    default_lint_cmd: str = ""
    default_requirements: str = ""


LANGUAGES: MappingProxyType[Language, LanguageConfig] = MappingProxyType(
    {
        Language.GO: LanguageConfig(
            versions=("1.21", "1.22", "1.23", "1.24"),
            default_version="1.21",
            default_test_cmd="go test ./...",
            default_build_cmd="go build -o bin/service ./cmd/service",
        ),
        Language.NODE: LanguageConfig(
            versions=("16", "18", "20", "22"),
            default_version="18",
            package_managers=("npm", "yarn", "pnpm"),
            default_manager="npm",
            default_test_cmd="npm test",
            default_build_cmd="npm run build",
        ),
        Language.PYTHON: LanguageConfig(
            versions=("3.9", "3.10", "3.11", "3.12"),
            default_version="3.11",
            package_managers=("pip", "poetry", "pipenv"),
            default_manager="pip",
            default_test_cmd="pytest",
            default_lint_cmd="flake8",
            default_requirements="requirements.txt",
        ),
    }
)

# Trivy severity filters accepted by the security scan step
SECURITY_SEVERITY_LEVELS = (
    "CRITICAL",
    "HIGH",
    "MEDIUM",
    "LOW",
    "CRITICAL,HIGH",
    "CRITICAL,HIGH,MEDIUM",
)


class ActionVersions(BaseModel):
    """Pinned third-party action references used by template steps."""

    model_config = ConfigDict(frozen=True)

    checkout: str = "actions/checkout@v4"
    setup_node: str = "actions/setup-node@v4"
    setup_go: str = "actions/setup-go@v4"
    setup_python: str = "actions/setup-python@v4"
    docker_setup_buildx: str = "docker/setup-buildx-action@v3"
    docker_login: str = "docker/login-action@v3"
    docker_build_push: str = "docker/build-push-action@v5"
    codeql_upload_sarif: str = "github/codeql-action/upload-sarif@v3"
    trivy: str = "aquasecurity/trivy-action@master"


ACTION_VERSIONS = ActionVersions()

# Literal tokens replaced after expression evaluation; their targets are
# GitHub expressions and must never be evaluated by the template engine.
ACTOR_PLACEHOLDER = "GITHUB_ACTOR_PLACEHOLDER"
TOKEN_PLACEHOLDER = "GITHUB_TOKEN_PLACEHOLDER"
ACTOR_EXPRESSION = "${{ github.actor }}"
TOKEN_EXPRESSION = "${{ secrets.GITHUB_TOKEN }}"

TEMPLATE_AUTHOR = "GPGen Team"


def get_package_manager_options(language: Language) -> list[str]:
    """Return the supported package managers for a language."""
    return list(LANGUAGES[language].package_managers)


def default_security_config() -> dict[str, Any]:
    """Build a fresh default ``security`` input object."""
    return {
        "trivy": {
            "enabled": False,
            "severity": "CRITICAL,HIGH",
            "exitCode": "1",
        },
    }


def default_container_config() -> dict[str, Any]:
    """Build a fresh default ``container`` input object."""
    return {
        "enabled": False,
        "registry": "ghcr.io",
        "imageName": "${{ github.repository }}",
        "imageTag": "${{ github.sha }}",
        "dockerfile": "Dockerfile",
        "buildContext": ".",
        "buildArgs": "{}",
        "push": {
            "enabled": True,
            "onProduction": True,
            "alwaysPush": False,
        },
        "build": {
            "alwaysBuild": False,
            "alwaysPush": False,
            "onPR": True,
            "onProduction": True,
        },
    }
