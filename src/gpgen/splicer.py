"""Custom step splicing.

A custom step's position directive places it relative to an existing step:

    before:<token>   insert immediately before the matched step
    after:<token>    insert immediately after the matched step
    replace:<token>  overwrite the matched step in place
    (empty)          append to the end

Tokens are matched against step display names with matches_step().
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from types import MappingProxyType

from gpgen.errors import InvalidPositionError, TargetStepNotFoundError
from gpgen.manifest import CustomStep
from gpgen.models import WorkflowStep

logger = logging.getLogger(__name__)

BEFORE = "before"
AFTER = "after"
REPLACE = "replace"
DIRECTIVES = (BEFORE, AFTER, REPLACE)

# Lowercased step name -> accepted tokens. Names listed here accept only these.
STEP_ALIASES: Mapping[str, frozenset[str]] = MappingProxyType(
    {
        "run tests": frozenset({"test", "tests"}),
        "build application": frozenset({"build"}),
        "setup node.js": frozenset({"setup-node", "node"}),
        "install dependencies": frozenset({"install", "dependencies"}),
        "checkout code": frozenset({"checkout"}),
    }
)

MIN_SUBSTRING_TOKEN_LENGTH = 4


def _singular(word: str) -> str:
    return word[:-1] if word.endswith("s") else word


def matches_step(step: WorkflowStep, target: str) -> bool:
    """Check whether a step's display name matches a position token."""
    name = step.name.lower()
    token = target.lower()

    aliases = STEP_ALIASES.get(name)
    if aliases is not None:
        return token in aliases

    for word in name.split():
        word = _singular(word)
        if word == token:
            return True
        if len(token) >= MIN_SUBSTRING_TOKEN_LENGTH and token in word:
            return True
    return False


def custom_step_to_workflow_step(custom_step: CustomStep) -> WorkflowStep:
    """Convert a manifest custom step into a workflow step."""
    return WorkflowStep(
        name=custom_step.name,
        uses=custom_step.uses,
        run=custom_step.run,
        with_=dict(custom_step.with_),
        env=dict(custom_step.env),
        if_=custom_step.if_,
        timeout_minutes=custom_step.timeout_minutes,
        continue_on_error=custom_step.continue_on_error,
    )


def _find_step(steps: Sequence[WorkflowStep], target: str) -> int | None:
    for i, step in enumerate(steps):
        if matches_step(step, target):
            return i
    return None


def apply_custom_step(steps: Sequence[WorkflowStep], custom_step: CustomStep) -> list[WorkflowStep]:
    """Splice one custom step into a step list.

    Returns:
        A new list; the argument is left unchanged.

    Raises:
        InvalidPositionError: If the position is malformed or the directive unknown.
        TargetStepNotFoundError: If no step matches the target token.
    """
    result = list(steps)
    new_step = custom_step_to_workflow_step(custom_step)
    position = custom_step.position

    if not position:
        result.append(new_step)
        return result

    directive, sep, target = position.partition(":")
    if not sep:
        raise InvalidPositionError(
            f"invalid position format: {position}",
            position=position,
            step_name=custom_step.name,
        )
    if directive not in DIRECTIVES:
        raise InvalidPositionError(
            f"invalid position format: {position} (unknown position directive: {directive})",
            position=position,
            step_name=custom_step.name,
        )

    index = _find_step(result, target)
    if index is None:
        raise TargetStepNotFoundError(target, step_name=custom_step.name)

    logger.debug(f"Applying custom step '{custom_step.name}' {directive} '{result[index].name}'")
    if directive == BEFORE:
        result.insert(index, new_step)
    elif directive == AFTER:
        result.insert(index + 1, new_step)
    else:
        result[index] = new_step
    return result


def apply_custom_steps(steps: Sequence[WorkflowStep], custom_steps: Iterable[CustomStep]) -> list[WorkflowStep]:
    """Apply custom steps in order, each against the previous result.

    Raises:
        DirectiveError: On the first step that cannot be applied.
    """
    result = list(steps)
    for custom_step in custom_steps:
        result = apply_custom_step(result, custom_step)
    return result
