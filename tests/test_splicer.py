"""Tests for custom step splicing."""

from __future__ import annotations

import pytest

from gpgen.errors import InvalidPositionError, TargetStepNotFoundError
from gpgen.manifest import CustomStep
from gpgen.models import WorkflowStep
from gpgen.splicer import (
    apply_custom_step,
    apply_custom_steps,
    custom_step_to_workflow_step,
    matches_step,
)


def names(steps):
    return [step.name for step in steps]


class TestMatchesStep:
    """Tests for fuzzy step name matching."""

    @pytest.mark.parametrize(
        "name, token",
        [
            ("Run tests", "test"),
            ("Run tests", "tests"),
            ("Build application", "build"),
            ("Setup Node.js", "setup-node"),
            ("Setup Node.js", "node"),
            ("Install dependencies", "install"),
            ("Install dependencies", "dependencies"),
            ("Checkout code", "checkout"),
        ],
    )
    def test_alias_table(self, name, token):
        """Known step names accept their aliases."""
        assert matches_step(WorkflowStep(name=name), token)

    def test_alias_table_is_exclusive(self):
        """Names in the alias table accept nothing else."""
        assert not matches_step(WorkflowStep(name="Run tests"), "build")
        assert not matches_step(WorkflowStep(name="Run tests"), "run")
        assert not matches_step(WorkflowStep(name="Build application"), "application")

    def test_case_insensitive(self):
        """Matching ignores case."""
        assert matches_step(WorkflowStep(name="RUN TESTS"), "Test")

    def test_word_match(self):
        """Other names match on whole words."""
        assert matches_step(WorkflowStep(name="Setup Go"), "go")
        assert matches_step(WorkflowStep(name="Build service"), "build")

    def test_trailing_s_stripped(self):
        """A trailing s is stripped from each word before comparing."""
        assert matches_step(WorkflowStep(name="Upload artifacts"), "artifact")

    def test_substring_for_long_tokens(self):
        """Tokens of four or more characters match inside words."""
        assert matches_step(WorkflowStep(name="Run Trivy vulnerability scanner"), "scan")
        assert matches_step(WorkflowStep(name="Run linting"), "lint")

    def test_no_substring_for_short_tokens(self):
        """Tokens under four characters must equal a word."""
        assert not matches_step(WorkflowStep(name="Set up Docker Buildx"), "bui")
        assert not matches_step(WorkflowStep(name="Run linting"), "lin")


class TestApplyCustomStep:
    """Tests for a single splice."""

    def test_append_when_no_position(self, node_steps):
        """An empty position appends."""
        result = apply_custom_step(node_steps, CustomStep(name="Notify", run="./notify.sh"))
        assert len(result) == 6
        assert result[-1].name == "Notify"

    def test_append_to_empty_list(self):
        """Appending works on an empty list."""
        result = apply_custom_step([], CustomStep(name="Only", run="true"))
        assert names(result) == ["Only"]

    def test_insert_after(self, node_steps):
        """after:test lands right after Run tests."""
        result = apply_custom_step(
            node_steps, CustomStep(name="Security Scan", position="after:test", uses="aquasecurity/trivy-action@master")
        )
        assert len(result) == 6
        assert result[4].name == "Security Scan"
        assert names(result) == [
            "Checkout code",
            "Setup Node.js",
            "Install dependencies",
            "Run tests",
            "Security Scan",
            "Build application",
        ]

    def test_insert_before(self, node_steps):
        """before:install lands right before Install dependencies."""
        result = apply_custom_step(node_steps, CustomStep(name="Cache", position="before:install", run="echo"))
        assert len(result) == 6
        assert result[2].name == "Cache"
        assert result[3].name == "Install dependencies"

    def test_replace(self, node_steps):
        """replace:build overwrites Build application in place."""
        result = apply_custom_step(node_steps, CustomStep(name="Custom Build", position="replace:build", run="make"))
        assert len(result) == 5
        assert result[4].name == "Custom Build"
        assert "Build application" not in names(result)

    def test_first_match_wins(self):
        """The first matching step is the target."""
        steps = [WorkflowStep(name="Build frontend"), WorkflowStep(name="Build backend")]
        result = apply_custom_step(steps, CustomStep(name="Prepare", position="before:build", run="true"))
        assert names(result) == ["Prepare", "Build frontend", "Build backend"]

    def test_input_not_mutated(self, node_steps):
        """The original list is unchanged."""
        before = names(node_steps)
        apply_custom_step(node_steps, CustomStep(name="Custom Build", position="replace:build", run="make"))
        assert names(node_steps) == before

    def test_missing_colon(self, node_steps):
        """A position without a colon is malformed."""
        with pytest.raises(InvalidPositionError, match="invalid position format") as exc_info:
            apply_custom_step(node_steps, CustomStep(name="X", position="invalid-position", run="true"))
        assert exc_info.value.position == "invalid-position"
        assert exc_info.value.step_name == "X"

    def test_unknown_directive(self, node_steps):
        """Directives other than before/after/replace are rejected."""
        with pytest.raises(InvalidPositionError, match="unknown position directive: around"):
            apply_custom_step(node_steps, CustomStep(name="X", position="around:test", run="true"))

    def test_target_not_found(self, node_steps):
        """An unmatched token is reported."""
        with pytest.raises(TargetStepNotFoundError, match="target step not found: nonexistent") as exc_info:
            apply_custom_step(node_steps, CustomStep(name="X", position="after:nonexistent", run="true"))
        assert exc_info.value.target == "nonexistent"
        assert exc_info.value.step_name == "X"


class TestApplyCustomSteps:
    """Tests for sequential splicing."""

    def test_later_steps_see_earlier_ones(self, node_steps):
        """A custom step can target one inserted before it."""
        custom = [
            CustomStep(name="Run linter", position="after:install", run="npm run lint"),
            CustomStep(name="Upload lint report", position="after:linter", run="./upload.sh"),
        ]
        result = apply_custom_steps(node_steps, custom)
        assert names(result)[2:6] == [
            "Install dependencies",
            "Run linter",
            "Upload lint report",
            "Run tests",
        ]

    def test_error_aborts(self, node_steps):
        """Any failing step aborts the whole splice."""
        custom = [
            CustomStep(name="Fine", run="true"),
            CustomStep(name="Broken", position="after:nonexistent", run="true"),
        ]
        with pytest.raises(TargetStepNotFoundError):
            apply_custom_steps(node_steps, custom)
        assert len(node_steps) == 5

    def test_no_custom_steps(self, node_steps):
        """No custom steps yields an equal copy."""
        result = apply_custom_steps(node_steps, [])
        assert names(result) == names(node_steps)
        assert result is not node_steps


class TestCustomStepConversion:
    """Tests for custom_step_to_workflow_step."""

    def test_all_fields_carried(self):
        """Every custom step field reaches the workflow step."""
        custom = CustomStep.model_validate(
            {
                "name": "Deploy",
                "uses": "acme/deploy@v1",
                "with": {"replicas": 3, "dry-run": True},
                "env": {"REGION": "eu-west-1"},
                "if": "github.ref == 'refs/heads/main'",
                "timeout-minutes": 15,
                "continue-on-error": True,
            }
        )
        step = custom_step_to_workflow_step(custom)
        assert step.to_dict() == {
            "name": "Deploy",
            "uses": "acme/deploy@v1",
            "with": {"replicas": "3", "dry-run": "true"},
            "env": {"REGION": "eu-west-1"},
            "if": "github.ref == 'refs/heads/main'",
            "timeout-minutes": 15,
            "continue-on-error": True,
        }
