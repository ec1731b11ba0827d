"""Tests for workflow generation."""

from __future__ import annotations

import pytest
import yaml

from gpgen.errors import (
    GenerationError,
    InputValidationError,
    TargetStepNotFoundError,
    TemplateNotFoundError,
)
from gpgen.generator import (
    WorkflowGenerator,
    dump_workflow,
    environments_for,
    required_permissions,
    workflow_filename,
    workflow_name,
    workflow_triggers,
)
from gpgen.manifest import parse_manifest
from gpgen.settings import Settings


def make_manifest(body: str):
    return parse_manifest("apiVersion: gpgen.dev/v1\nkind: Pipeline\n" + body)


class TestWorkflowName:
    """Tests for workflow naming."""

    def test_default_environment(self, go_manifest):
        """The default environment uses the bare pipeline name."""
        assert workflow_name(go_manifest, "default") == "payments"

    def test_other_environment(self, go_manifest):
        """Other environments are suffixed."""
        assert workflow_name(go_manifest, "production") == "payments (production)"

    def test_falls_back_to_template_name(self):
        """Without a metadata name, the template name is used."""
        manifest = make_manifest("spec:\n  template: node-app\n")
        assert workflow_name(manifest, "default") == "node-app"
        assert workflow_filename(manifest, "staging") == "node-app-staging.yml"


class TestTriggers:
    """Tests for environment triggers."""

    @pytest.mark.parametrize("environment", ["default", "staging"])
    def test_branch_triggers(self, environment):
        """default and staging run on branch pushes and PRs."""
        assert workflow_triggers(environment) == {
            "push": {"branches": ["main", "develop"]},
            "pull_request": {"branches": ["main"]},
        }

    def test_production_triggers(self):
        """production runs on tags and releases."""
        assert workflow_triggers("production") == {
            "push": {"tags": ["v*"]},
            "release": {"types": ["published"]},
        }

    def test_custom_environment_triggers(self):
        """Other environments run on main pushes."""
        assert workflow_triggers("qa") == {"push": {"branches": ["main"]}}


class TestPermissions:
    """Tests for permission derivation."""

    def test_no_flags(self):
        """No flags, no permissions."""
        assert required_permissions({}) == {}

    def test_trivy_enabled(self):
        """Trivy needs security-events write and contents read."""
        assert required_permissions({"trivyScanEnabled": True}) == {
            "security-events": "write",
            "contents": "read",
        }

    def test_string_true_does_not_count(self):
        """Only booleans count."""
        assert required_permissions({"trivyScanEnabled": "true", "containerEnabled": "true"}) == {}

    def test_container_enabled(self):
        """Containers need packages write and contents read."""
        assert required_permissions({"containerEnabled": True}) == {"packages": "write", "contents": "read"}

    def test_both_flags_single_contents(self):
        """contents:read appears once."""
        permissions = required_permissions({"trivyScanEnabled": True, "containerEnabled": True})
        assert permissions == {"security-events": "write", "contents": "read", "packages": "write"}


class TestEnvironmentsFor:
    """Tests for environment selection."""

    def test_requested_only(self, go_manifest):
        """A requested environment is generated alone."""
        assert environments_for(go_manifest, "staging") == ["staging"]

    def test_all_environments(self, go_manifest):
        """default comes first, then declared environments in order."""
        assert environments_for(go_manifest) == ["default", "staging", "production"]

    def test_declared_default_not_duplicated(self):
        """A declared default environment is not listed twice."""
        manifest = make_manifest("spec:\n  template: node-app\n  environments:\n    default: {}\n    qa: {}\n")
        assert environments_for(manifest) == ["default", "qa"]


class TestGenerateWorkflow:
    """Tests for WorkflowGenerator.generate_workflow."""

    def test_default_document(self, go_manifest, catalog):
        """The default environment document has the expected shape."""
        document = WorkflowGenerator(catalog).generate_workflow(go_manifest, "default")
        data = document.to_dict()
        assert list(data) == ["name", "on", "jobs"]
        assert data["name"] == "payments"
        job = data["jobs"]["build"]
        assert job["runs-on"] == "ubuntu-latest"
        assert "permissions" not in job
        step_names = [step["name"] for step in job["steps"]]
        assert step_names[:5] == ["Checkout code", "Setup Go", "Run linter", "Run tests", "Build service"]

    def test_inputs_rendered(self, go_manifest, catalog):
        """Step fields are rendered from effective inputs."""
        document = WorkflowGenerator(catalog).generate_workflow(go_manifest, "default")
        steps = {step.name: step for step in document.jobs["build"].steps}
        assert steps["Setup Go"].with_["go-version"] == "1.22"
        assert steps["Run tests"].run == "go test -race ./..."
        assert steps["Run Trivy vulnerability scanner"].if_ == "false"

    def test_production_overrides_and_custom_steps(self, go_manifest, catalog):
        """Environment inputs and custom steps apply to their environment only."""
        generator = WorkflowGenerator(catalog)
        production = generator.generate_workflow(go_manifest, "production")
        staging = generator.generate_workflow(go_manifest, "staging")

        prod_steps = production.jobs["build"].steps
        assert production.name == "payments (production)"
        assert production.on == {"push": {"tags": ["v*"]}, "release": {"types": ["published"]}}
        assert prod_steps[-1].name == "Publish release notes"
        assert next(s for s in prod_steps if s.name == "Setup Go").with_["go-version"] == "1.23"
        assert "Publish release notes" not in [s.name for s in staging.jobs["build"].steps]

    def test_permissions_from_flat_flags(self, catalog):
        """Flat enable flags drive permissions and step conditions."""
        manifest = make_manifest(
            "spec:\n  template: node-app\n  inputs:\n    trivyScanEnabled: true\n    containerEnabled: true\n"
        )
        document = WorkflowGenerator(catalog).generate_workflow(manifest, "default")
        job = document.jobs["build"]
        assert job.permissions == {"security-events": "write", "contents": "read", "packages": "write"}
        scan = next(s for s in job.steps if s.name == "Run Trivy vulnerability scanner")
        assert scan.if_ == "true"
        assert scan.with_["severity"] == "CRITICAL,HIGH"

    def test_login_step_placeholders(self, node_manifest, catalog):
        """Registry login credentials become GitHub expressions."""
        document = WorkflowGenerator(catalog).generate_workflow(node_manifest, "default")
        login = next(s for s in document.jobs["build"].steps if s.name == "Log in to Container Registry")
        assert login.with_["username"] == "${{ github.actor }}"
        assert login.with_["password"] == "${{ secrets.GITHUB_TOKEN }}"
        assert login.with_["registry"] == "ghcr.io"

    def test_node_install_command(self, catalog):
        """The install command depends on the package manager."""
        generator = WorkflowGenerator(catalog)
        npm = generator.generate_workflow(make_manifest("spec:\n  template: node-app\n"), "default")
        yarn = generator.generate_workflow(
            make_manifest("spec:\n  template: node-app\n  inputs:\n    packageManager: yarn\n"), "default"
        )
        assert npm.jobs["build"].steps[2].run == "npm ci"
        assert yarn.jobs["build"].steps[2].run == "yarn install --frozen-lockfile"

    def test_settings_control_job(self, node_manifest, catalog):
        """Job id and runner come from settings."""
        settings = Settings(runs_on="self-hosted", job_id="ci")
        document = WorkflowGenerator(catalog, settings).generate_workflow(node_manifest, "default")
        assert list(document.jobs) == ["ci"]
        assert document.jobs["ci"].runs_on == "self-hosted"

    def test_unknown_template_is_fatal(self, catalog):
        """Generation is strict about the template even though resolution is not."""
        manifest = make_manifest("spec:\n  template: rust-service\n")
        with pytest.raises(GenerationError) as exc_info:
            WorkflowGenerator(catalog).generate_workflow(manifest, "default")
        assert isinstance(exc_info.value.__cause__, TemplateNotFoundError)
        assert exc_info.value.environment == "default"

    def test_invalid_input_is_fatal(self, catalog):
        """Input validation failures abort generation."""
        manifest = make_manifest("spec:\n  template: node-app\n  inputs:\n    nodeVersion: '14'\n")
        with pytest.raises(GenerationError, match="nodeVersion") as exc_info:
            WorkflowGenerator(catalog).generate_workflow(manifest, "default")
        assert isinstance(exc_info.value.__cause__, InputValidationError)

    def test_bad_custom_step_is_fatal(self, catalog):
        """Splice failures abort generation."""
        manifest = make_manifest(
            "spec:\n"
            "  template: node-app\n"
            "  environments:\n"
            "    staging:\n"
            "      customSteps:\n"
            "        - name: Smoke test\n"
            "          position: after:deploy\n"
            "          run: ./smoke.sh\n"
        )
        generator = WorkflowGenerator(catalog)
        generator.generate_workflow(manifest, "default")
        with pytest.raises(GenerationError, match="target step not found: deploy") as exc_info:
            generator.generate_workflow(manifest, "staging")
        assert isinstance(exc_info.value.__cause__, TargetStepNotFoundError)


class TestRenderWorkflow:
    """Tests for YAML output."""

    def test_yaml_round_trips(self, go_manifest, catalog):
        """The YAML text loads back to the document structure."""
        generator = WorkflowGenerator(catalog)
        text = generator.render_workflow(go_manifest, "production")
        assert yaml.safe_load(text) == generator.generate_workflow(go_manifest, "production").to_dict()

    def test_key_order_preserved(self, node_manifest, catalog):
        """Top-level keys keep GitHub Actions order."""
        text = dump_workflow(WorkflowGenerator(catalog).generate_workflow(node_manifest, "default"))
        lines = [line for line in text.splitlines() if not line.startswith(" ")]
        assert len(lines) == 3
        assert lines[0] == "name: storefront"
        assert "on" in lines[1]
        assert lines[2] == "jobs:"

    def test_validate_environment(self, go_manifest, catalog):
        """Resolved inputs can be checked without rendering."""
        WorkflowGenerator(catalog).validate_environment(go_manifest, "production")
        manifest = make_manifest("spec:\n  template: go-service\n  inputs:\n    goVersion: '1.10'\n")
        with pytest.raises(GenerationError, match="goVersion"):
            WorkflowGenerator(catalog).validate_environment(manifest, "default")


class TestContainerConditions:
    """Tests for container step conditions against explicit nested settings."""

    OPTED_OUT = (
        "spec:\n"
        "  template: node-app\n"
        "  inputs:\n"
        "    container:\n"
        "      enabled: true\n"
        "      build:\n"
        "        onPR: false\n"
        "      push:\n"
        "        onProduction: false\n"
    )

    @staticmethod
    def step_if(document, name):
        return next(s for s in document.jobs["build"].steps if s.name == name).if_

    def test_default_respects_nested_build_on_pr(self, catalog):
        """container.build.onPR: false keeps PR builds off in the default workflow."""
        document = WorkflowGenerator(catalog).generate_workflow(make_manifest(self.OPTED_OUT), "default")
        condition = self.step_if(document, "Build and push container image")
        assert condition.startswith("true && (false || false && github.event_name == 'pull_request' || ")

    def test_production_respects_nested_push_on_production(self, catalog):
        """container.push.onProduction: false keeps registry login off in production."""
        document = WorkflowGenerator(catalog).generate_workflow(make_manifest(self.OPTED_OUT), "production")
        login = self.step_if(document, "Log in to Container Registry")
        assert login.startswith("true && true && (false || false && (github.event_name == 'push'")
        build = self.step_if(document, "Set up Docker Buildx")
        assert "|| true && (github.event_name == 'push'" in build

    def test_production_flags_apply_without_nested_settings(self, catalog):
        """Without nested settings the production event flags decide."""
        manifest = make_manifest("spec:\n  template: node-app\n  inputs:\n    container:\n      enabled: true\n")
        document = WorkflowGenerator(catalog).generate_workflow(manifest, "production")
        assert self.step_if(document, "Log in to Container Registry").startswith(
            "true && true && (false || true && (github.event_name == 'push'"
        )
        assert self.step_if(document, "Set up Docker Buildx").startswith(
            "true && (false || false && github.event_name == 'pull_request' || true && "
        )

    def test_environment_nested_override(self, catalog):
        """Nested settings in an environment override win over its event flags."""
        manifest = make_manifest(
            "spec:\n"
            "  template: node-app\n"
            "  environments:\n"
            "    staging:\n"
            "      inputs:\n"
            "        container:\n"
            "          enabled: true\n"
            "          build:\n"
            "            onPR: false\n"
        )
        document = WorkflowGenerator(catalog).generate_workflow(manifest, "staging")
        assert self.step_if(document, "Set up Docker Buildx").startswith(
            "true && (false || false && github.event_name == 'pull_request'"
        )

    def test_flat_flag_still_wins_when_explicit(self, catalog):
        """An explicit flat flag overrides the nested value."""
        manifest = make_manifest(
            "spec:\n"
            "  template: node-app\n"
            "  inputs:\n"
            "    containerBuildOnPR: true\n"
            "    container:\n"
            "      enabled: true\n"
            "      build:\n"
            "        onPR: false\n"
        )
        document = WorkflowGenerator(catalog).generate_workflow(manifest, "default")
        assert self.step_if(document, "Set up Docker Buildx").startswith(
            "true && (false || true && github.event_name == 'pull_request'"
        )
