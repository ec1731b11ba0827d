"""Template and workflow models.

This module defines the data structures the generator works with:
- InputDefinition/TemplateStep/Template: immutable golden-path definitions
- EffectiveInputs: resolved inputs for one (manifest, environment) generation
- WorkflowStep/Job/WorkflowDocument: the rendered GitHub Actions workflow
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class InputType(str, Enum):
    """Template input value types."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


class InputDefinition(BaseModel):
    """Definition of a single template input.

    Attributes:
        type: Expected value type.
        description: Human-readable description.
        default: Default value (None means no default).
        required: Whether the input must be present after resolution.
        options: Closed set of allowed values (compared after stringification).
        pattern: Optional documentation-only value pattern.
    """

    model_config = ConfigDict(frozen=True)

    type: InputType
    description: str = ""
    default: Any = None
    required: bool = False
    options: tuple[str, ...] = ()
    pattern: str | None = None


class TemplateStep(BaseModel):
    """Single step of a golden-path template, before rendering."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    uses: str = ""
    run: str = ""
    with_: dict[str, str] = Field(default_factory=dict, alias="with")
    env: dict[str, str] = Field(default_factory=dict)
    if_: str = Field(default="", alias="if")
    timeout_minutes: int | None = Field(default=None, alias="timeout-minutes")


class Template(BaseModel):
    """A named golden-path template.

    Attributes:
        name: Unique template identifier (e.g., "go-service").
        description: Human-readable description.
        version: Template version.
        author: Template author.
        tags: Free-form tags.
        inputs: Input definitions keyed by input name.
        steps: Ordered base step list.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    version: str = "1.0.0"
    author: str = ""
    tags: tuple[str, ...] = ()
    inputs: dict[str, InputDefinition] = Field(default_factory=dict)
    steps: tuple[TemplateStep, ...] = ()


class _Missing:
    """Sentinel type for absent input paths."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


class EffectiveInputs(dict[str, Any]):
    """Resolved input map for one generation.

    A plain dict with dotted-path helpers for nested object inputs
    (e.g. ``container.push.enabled``). Keys filled in by set_default are
    tracked in ``defaulted`` until an explicit value replaces them, so
    later stages can tell manifest values from fallbacks.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.defaulted: set[str] = set()

    def lookup(self, path: str) -> Any:
        """Get a value by dotted path.

        Returns:
            The value, or MISSING if any path segment is absent or a
            non-mapping value is traversed.
        """
        current: Any = self
        for part in path.split("."):
            if not isinstance(current, Mapping) or part not in current:
                return MISSING
            current = current[part]
        return current

    def set_default(self, key: str, value: Any) -> bool:
        """Set a key only if absent, marking it as defaulted.

        Returns:
            True if the value was set.
        """
        if key in self:
            return False
        self[key] = value
        self.defaulted.add(key)
        return True

    def apply(self, values: Mapping[str, Any]) -> None:
        """Overlay explicitly supplied values."""
        self.update(values)
        self.defaulted.difference_update(values)

    def is_explicit(self, key: str) -> bool:
        """True if the key holds a supplied value rather than a default."""
        return key in self and key not in self.defaulted


class WorkflowStep(BaseModel):
    """A rendered GitHub Actions step."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    uses: str = ""
    run: str = ""
    with_: dict[str, str] = Field(default_factory=dict, alias="with")
    env: dict[str, str] = Field(default_factory=dict)
    if_: str = Field(default="", alias="if")
    timeout_minutes: int | None = Field(default=None, alias="timeout-minutes")
    continue_on_error: bool | None = Field(default=None, alias="continue-on-error")

    def to_dict(self) -> dict[str, Any]:
        """Serialize with GitHub key names, omitting empty fields."""
        return self.model_dump(by_alias=True, exclude_defaults=True)


class Job(BaseModel):
    """A GitHub Actions job."""

    model_config = ConfigDict(populate_by_name=True)

    runs_on: str = Field(default="ubuntu-latest", alias="runs-on")
    permissions: dict[str, str] = Field(default_factory=dict)
    steps: list[WorkflowStep] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"runs-on": self.runs_on}
        if self.permissions:
            data["permissions"] = dict(self.permissions)
        data["steps"] = [step.to_dict() for step in self.steps]
        return data


class WorkflowDocument(BaseModel):
    """Complete in-memory workflow, ready for YAML serialization."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    on: dict[str, Any] = Field(default_factory=dict)
    jobs: dict[str, Job] = Field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Plain structure in GitHub Actions key order."""
        return {
            "name": self.name,
            "on": self.on,
            "jobs": {job_id: job.to_dict() for job_id, job in self.jobs.items()},
        }
