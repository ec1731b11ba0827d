"""Rendering of the template expressions embedded in step fields.

Step fields are Jinja templates evaluated in a sandbox against a read-only
context. The built-in templates use a small part of the syntax:

- Dotted lookups: ``{{ Inputs.container.registry }}``
- Branching: ``{% if Inputs.packageManager == "npm" %}ci{% else %}...{% endif %}``
- Whitespace control: ``{{- ... -}}``

Lookups only traverse mappings. A missing key renders as the empty string
and is falsy; looking up a field on a scalar is an error. Values print the
way the workflow files expect them (``true``/``false``, ``3`` for ``3.0``).
"""

from __future__ import annotations

from collections.abc import Mapping
from functools import lru_cache
from typing import Any

from jinja2 import ChainableUndefined, Template, TemplateError, Undefined
from jinja2.sandbox import SandboxedEnvironment

from gpgen.errors import TemplateExpressionError


def is_truthy(value: Any) -> bool:
    """Truthiness of a rendered condition: zero values and empty collections are false."""
    return bool(value)


def format_value(value: Any) -> str:
    """Format a value for a workflow field."""
    if value is None or isinstance(value, Undefined):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return "[" + " ".join(format_value(item) for item in value) + "]"
    if isinstance(value, Mapping):
        items = (f"{k}:{format_value(value[k])}" for k in sorted(value, key=str))
        return "map[" + " ".join(items) + "]"
    return str(value)


class InputsEnvironment(SandboxedEnvironment):
    """Sandboxed environment whose lookups only walk mappings."""

    def __init__(self) -> None:
        super().__init__(
            autoescape=False,
            undefined=ChainableUndefined,
            finalize=format_value,
            keep_trailing_newline=True,
        )

    def _lookup(self, obj: Any, key: Any) -> Any:
        if isinstance(obj, Undefined):
            return obj
        if not isinstance(obj, Mapping):
            raise TemplateExpressionError(f"can't evaluate field {key} in type {type(obj).__name__}")
        if key in obj:
            return obj[key]
        return self.undefined(obj=obj, name=key)

    def getattr(self, obj: Any, attribute: str) -> Any:
        return self._lookup(obj, attribute)

    def getitem(self, obj: Any, argument: Any) -> Any:
        return self._lookup(obj, argument)


@lru_cache(maxsize=1)
def _environment() -> InputsEnvironment:
    return InputsEnvironment()


@lru_cache(maxsize=256)
def parse_template(text: str) -> Template:
    """Compile template text.

    Raises:
        TemplateExpressionError: If the text is not a valid template.
    """
    try:
        return _environment().from_string(text)
    except TemplateError as e:
        raise TemplateExpressionError(f"invalid template: {e.message}", expression=text) from e


def render_template(text: str, context: Mapping[str, Any]) -> str:
    """Render template text against a read-only context.

    Args:
        text: Template source, e.g. ``"{{ Inputs.testCommand }}"``.
        context: Root mapping; ``Inputs.x`` looks up ``context["Inputs"]["x"]``.

    Returns:
        The rendered string. Text without template markup is returned unchanged.

    Raises:
        TemplateExpressionError: If parsing or evaluation fails.
    """
    if "{{" not in text and "{%" not in text and "{#" not in text:
        return text
    template = parse_template(text)
    try:
        return template.render(**context)
    except TemplateExpressionError as e:
        raise TemplateExpressionError(e.message, expression=text) from e
    except TemplateError as e:
        raise TemplateExpressionError(f"failed to evaluate template: {e.message}", expression=text) from e
