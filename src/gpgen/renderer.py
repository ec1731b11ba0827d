"""Step rendering: template step + effective inputs -> workflow step.

Each textual field is rendered in two phases. Expressions are evaluated
first, then the actor/token placeholders are replaced with GitHub
expression syntax. The placeholders must never pass through the
evaluator.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from gpgen.config import ACTOR_EXPRESSION, ACTOR_PLACEHOLDER, TOKEN_EXPRESSION, TOKEN_PLACEHOLDER
from gpgen.errors import TemplateExpressionError
from gpgen.expressions import render_template
from gpgen.models import TemplateStep, WorkflowStep

PLACEHOLDERS = (
    (ACTOR_PLACEHOLDER, ACTOR_EXPRESSION),
    (TOKEN_PLACEHOLDER, TOKEN_EXPRESSION),
)


def replace_placeholders(value: str) -> str:
    """Substitute reserved placeholder tokens with GitHub expressions."""
    for placeholder, expression in PLACEHOLDERS:
        value = value.replace(placeholder, expression)
    return value


def _render_field(value: str, context: Mapping[str, Any], *, field: str, step: TemplateStep) -> str:
    try:
        rendered = render_template(value, context)
    except TemplateExpressionError as e:
        raise TemplateExpressionError(
            f"failed to render {field} of step '{step.id}': {e.message}",
            expression=value,
            field=field,
            step=step.id,
        ) from e
    return replace_placeholders(rendered)


def render_step(template_step: TemplateStep, inputs: Mapping[str, Any]) -> WorkflowStep:
    """Render one template step against effective inputs.

    Raises:
        TemplateExpressionError: Naming the failing field and step id.
    """
    context = {"Inputs": inputs}

    return WorkflowStep(
        name=template_step.name,
        uses=template_step.uses,
        run=_render_field(template_step.run, context, field="run", step=template_step),
        with_={
            key: _render_field(value, context, field=f"with.{key}", step=template_step)
            for key, value in template_step.with_.items()
        },
        env={
            key: _render_field(value, context, field=f"env.{key}", step=template_step)
            for key, value in template_step.env.items()
        },
        if_=_render_field(template_step.if_, context, field="if", step=template_step),
        timeout_minutes=template_step.timeout_minutes,
    )
