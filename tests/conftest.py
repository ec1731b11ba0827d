"""Pytest fixtures for gpgen tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from gpgen.catalog import TemplateCatalog, default_catalog
from gpgen.manifest import Manifest, parse_manifest
from gpgen.models import WorkflowStep

GO_SERVICE_MANIFEST = """\
apiVersion: gpgen.dev/v1
kind: Pipeline
metadata:
  name: payments
spec:
  template: go-service
  inputs:
    goVersion: "1.22"
    testCommand: go test -race ./...
  customSteps:
    - name: Run linter
      position: before:test
      run: golangci-lint run
  environments:
    staging:
      inputs:
        trivySeverity: CRITICAL,HIGH,MEDIUM
    production:
      inputs:
        goVersion: "1.23"
        trivySeverity: CRITICAL
      customSteps:
        - name: Publish release notes
          run: ./scripts/release-notes.sh
"""

NODE_APP_MANIFEST = """\
apiVersion: gpgen.dev/v1
kind: Pipeline
metadata:
  name: storefront
spec:
  template: node-app
  inputs:
    nodeVersion: "20"
    packageManager: npm
"""


@pytest.fixture
def catalog() -> TemplateCatalog:
    """The built-in template catalog."""
    return default_catalog()


@pytest.fixture
def go_manifest() -> Manifest:
    """A go-service manifest with staging and production overrides."""
    return parse_manifest(GO_SERVICE_MANIFEST)


@pytest.fixture
def node_manifest() -> Manifest:
    """A minimal node-app manifest."""
    return parse_manifest(NODE_APP_MANIFEST)


@pytest.fixture
def node_steps() -> list[WorkflowStep]:
    """The core node-app steps: checkout, setup, install, test, build."""
    return [
        WorkflowStep(name="Checkout code", uses="actions/checkout@v4"),
        WorkflowStep(name="Setup Node.js", uses="actions/setup-node@v4"),
        WorkflowStep(name="Install dependencies", run="npm ci"),
        WorkflowStep(name="Run tests", run="npm test"),
        WorkflowStep(name="Build application", run="npm run build"),
    ]


@pytest.fixture
def manifest_file(tmp_path: Path) -> Path:
    """The go-service manifest written to a temporary file."""
    path = tmp_path / "manifest.yaml"
    path.write_text(GO_SERVICE_MANIFEST, encoding="utf-8")
    return path
