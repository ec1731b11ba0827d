"""Normalization of resolved inputs into the shape templates expect.

Templates read nested ``security`` and ``container`` objects. Manifests may
supply them partially, or through the older flat keys
(``trivyScanEnabled``, ``containerRegistry``, ...). Normalization fills the
nested objects from the built-in defaults and then lets the flat keys win,
unless a flat key only holds a default and the manifest set the nested value.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from gpgen.config import default_container_config, default_security_config
from gpgen.models import EffectiveInputs

# flat key -> (nested path, bool only)
LEGACY_KEYS: Mapping[str, tuple[tuple[str, ...], bool]] = {
    "trivyScanEnabled": (("security", "trivy", "enabled"), True),
    "trivySeverity": (("security", "trivy", "severity"), False),
    "containerEnabled": (("container", "enabled"), True),
    "containerRegistry": (("container", "registry"), False),
    "containerImageName": (("container", "imageName"), False),
    "containerImageTag": (("container", "imageTag"), False),
    "containerBuildOnPR": (("container", "build", "onPR"), False),
    "containerBuildOnProduction": (("container", "build", "onProduction"), False),
    "containerPushOnProduction": (("container", "push", "onProduction"), False),
}


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge override into a copy of base."""
    result = copy.deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), Mapping):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def _set_path(target: dict[str, Any], path: tuple[str, ...], value: Any) -> None:
    current = target
    for part in path[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]
    current[path[-1]] = value


def _explicit_path(inputs: Mapping[str, Any], path: tuple[str, ...]) -> bool:
    """True if a manifest-supplied object sets the nested path."""
    root, *rest = path
    if isinstance(inputs, EffectiveInputs) and not inputs.is_explicit(root):
        return False
    current = inputs.get(root)
    for part in rest:
        if not isinstance(current, Mapping) or part not in current:
            return False
        current = current[part]
    return True


def _is_defaulted(inputs: Mapping[str, Any], key: str) -> bool:
    return isinstance(inputs, EffectiveInputs) and key in inputs.defaulted


def normalize_inputs(inputs: Mapping[str, Any]) -> EffectiveInputs:
    """Return a normalized copy of the inputs.

    Flat keys stay in the result so permission derivation and templates
    that read them keep working. A flat key that only holds a default
    (see EffectiveInputs.defaulted) never overrides a nested value the
    manifest set. The argument is not modified.
    """
    result = EffectiveInputs(copy.deepcopy(dict(inputs)))
    if isinstance(inputs, EffectiveInputs):
        result.defaulted.update(inputs.defaulted)

    security = inputs.get("security")
    container = inputs.get("container")
    result["security"] = deep_merge(
        default_security_config(), security if isinstance(security, Mapping) else {}
    )
    result["container"] = deep_merge(
        default_container_config(), container if isinstance(container, Mapping) else {}
    )

    for key, (path, bool_only) in LEGACY_KEYS.items():
        if key not in inputs:
            continue
        value = inputs[key]
        if bool_only and not isinstance(value, bool):
            continue
        if _is_defaulted(inputs, key) and _explicit_path(inputs, path):
            continue
        _set_path(result, path, copy.deepcopy(value))

    return result
