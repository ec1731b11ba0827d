"""Builders for GitHub Actions ``if:`` conditions used by template steps.

Input references are emitted as ``{{ Inputs.<path> }}`` expressions, so the
conditions are rendered against the effective inputs like any other step
field before they reach the workflow file.
"""

from __future__ import annotations

# GitHub event names
EVENT_PULL_REQUEST = "pull_request"
EVENT_PUSH = "push"
EVENT_RELEASE = "release"

# GitHub ref patterns
REF_TAGS_PREFIX = "refs/tags/"
REF_MAIN_BRANCH = "refs/heads/main"

# GitHub context variables
GITHUB_EVENT_NAME = "github.event_name"
GITHUB_REF = "github.ref"


class ConditionBuilder:
    """Accumulates condition parts and joins them with && or ||.

    Example:
        ConditionBuilder().with_input_condition("container.enabled").with_always().and_()
        # -> "{{ Inputs.container.enabled }} && always()"
    """

    def __init__(self) -> None:
        self.parts: list[str] = []

    def with_input_condition(self, input_path: str) -> ConditionBuilder:
        self.parts.append(f"{{{{ Inputs.{input_path} }}}}")
        return self

    def with_event_equals(self, event_name: str) -> ConditionBuilder:
        self.parts.append(f"{GITHUB_EVENT_NAME} == '{event_name}'")
        return self

    def with_ref_starts_with(self, prefix: str) -> ConditionBuilder:
        self.parts.append(f"startsWith({GITHUB_REF}, '{prefix}')")
        return self

    def with_always(self) -> ConditionBuilder:
        self.parts.append("always()")
        return self

    def with_custom_condition(self, condition: str) -> ConditionBuilder:
        self.parts.append(condition)
        return self

    def and_(self) -> str:
        """Join all parts with &&."""
        if not self.parts:
            return ""
        return " && ".join(self.parts)

    def or_(self) -> str:
        """Join all parts with ||, parenthesized when there is more than one."""
        if not self.parts:
            return ""
        if len(self.parts) == 1:
            return self.parts[0]
        return "(" + " || ".join(self.parts) + ")"


def _production_events() -> str:
    tag_push = ConditionBuilder().with_event_equals(EVENT_PUSH).with_ref_starts_with(REF_TAGS_PREFIX).and_()
    release = ConditionBuilder().with_event_equals(EVENT_RELEASE).and_()
    return ConditionBuilder().with_custom_condition(tag_push).with_custom_condition(release).or_()


def container_build_condition() -> str:
    """Container build gate.

    enabled && (alwaysBuild || (onPR && pull_request) || (onProduction && (tag push || release)))
    """
    always_build = ConditionBuilder().with_input_condition("container.build.alwaysBuild").and_()
    on_pr = (
        ConditionBuilder()
        .with_input_condition("container.build.onPR")
        .with_event_equals(EVENT_PULL_REQUEST)
        .and_()
    )
    on_production = (
        ConditionBuilder()
        .with_input_condition("container.build.onProduction")
        .with_custom_condition(_production_events())
        .and_()
    )
    build_conditions = (
        ConditionBuilder()
        .with_custom_condition(always_build)
        .with_custom_condition(on_pr)
        .with_custom_condition(on_production)
        .or_()
    )
    return (
        ConditionBuilder()
        .with_input_condition("container.enabled")
        .with_custom_condition(build_conditions)
        .and_()
    )


def container_push_condition() -> str:
    """Registry login gate.

    enabled && push.enabled && (alwaysPush || (onProduction && (tag push || release)))
    """
    always_push = ConditionBuilder().with_input_condition("container.push.alwaysPush").and_()
    on_production = (
        ConditionBuilder()
        .with_input_condition("container.push.onProduction")
        .with_custom_condition(_production_events())
        .and_()
    )
    push_conditions = (
        ConditionBuilder().with_custom_condition(always_push).with_custom_condition(on_production).or_()
    )
    return (
        ConditionBuilder()
        .with_input_condition("container.enabled")
        .with_input_condition("container.push.enabled")
        .with_custom_condition(push_conditions)
        .and_()
    )


def trivy_scan_condition() -> str:
    return ConditionBuilder().with_input_condition("security.trivy.enabled").and_()


def trivy_upload_condition() -> str:
    """SARIF upload runs even when the scan step failed."""
    return ConditionBuilder().with_input_condition("security.trivy.enabled").with_always().and_()
