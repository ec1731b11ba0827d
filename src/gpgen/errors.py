"""Typed exceptions for gpgen.

All generator errors inherit from GpgenError.
These provide structured error information for logging and CLI output.
"""

from __future__ import annotations

from typing import Any


class GpgenError(Exception):
    """Base exception for all gpgen errors."""

    def __init__(self, message: str, *, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx})"
        return self.message


class ConfigurationError(GpgenError):
    """Template or input configuration is invalid."""


class TemplateNotFoundError(ConfigurationError):
    """Raised when a requested template doesn't exist."""

    def __init__(self, name: str, available: list[str]) -> None:
        super().__init__(f"unknown template: {name}", context={"available": ", ".join(available)})
        self.name = name
        self.available = available


class InputValidationError(ConfigurationError):
    """An effective input violates its template definition.

    Attributes:
        input_name: Name of the offending input.
        violation: One of "missing-required", "wrong-type", "not-in-allowed-set".
    """

    MISSING_REQUIRED = "missing-required"
    WRONG_TYPE = "wrong-type"
    NOT_IN_ALLOWED_SET = "not-in-allowed-set"

    def __init__(self, message: str, *, input_name: str, violation: str):
        super().__init__(message)
        self.input_name = input_name
        self.violation = violation


class ManifestError(GpgenError):
    """Manifest parsing, schema or semantic validation failed."""

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        errors: list[str] | None = None,
    ):
        context: dict[str, Any] = {}
        if path:
            context["path"] = path
        super().__init__(message, context=context)
        self.path = path
        self.errors = errors or []

    def __str__(self) -> str:
        text = super().__str__()
        if self.errors:
            return text + "".join(f"\n  - {e}" for e in self.errors)
        return text


class DirectiveError(GpgenError):
    """A custom step position directive could not be applied."""

    def __init__(self, message: str, *, step_name: str | None = None):
        context = {"step": step_name} if step_name else {}
        super().__init__(message, context=context)
        self.step_name = step_name


class InvalidPositionError(DirectiveError):
    """Position directive is malformed or names an unknown directive."""

    def __init__(self, message: str, *, position: str, step_name: str | None = None):
        super().__init__(message, step_name=step_name)
        self.position = position


class TargetStepNotFoundError(DirectiveError):
    """No existing step matches the directive's target token."""

    def __init__(self, target: str, *, step_name: str | None = None):
        super().__init__(f"target step not found: {target}", step_name=step_name)
        self.target = target


class TemplateExpressionError(GpgenError):
    """A {{ }} expression in a step field failed to parse or evaluate."""

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        field: str | None = None,
        step: str | None = None,
    ):
        context = {"field": field, "step": step, "expression": expression}
        super().__init__(message, context={k: v for k, v in context.items() if v is not None})
        self.expression = expression
        self.field = field
        self.step = step


class GenerationError(GpgenError):
    """Generation of a workflow for one environment was aborted."""

    def __init__(self, message: str, *, environment: str):
        super().__init__(message, context={"environment": environment})
        self.environment = environment
