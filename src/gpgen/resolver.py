"""Effective input resolution.

Inputs for one (manifest, environment) generation are layered, later
layers winning:

1. template input defaults
2. manifest base inputs
3. environment overrides (non-default environments only)
4. event-context flags, set only where no earlier layer provided the key

Template defaults and event-context flags stay marked as defaulted on the
result (EffectiveInputs.defaulted); manifest values are explicit.
"""

from __future__ import annotations

import copy
import logging
from types import MappingProxyType

from gpgen.catalog import TemplateCatalog, default_catalog
from gpgen.errors import TemplateNotFoundError
from gpgen.manifest import DEFAULT_ENVIRONMENT, Manifest
from gpgen.models import EffectiveInputs

logger = logging.getLogger(__name__)

STAGING_ENVIRONMENT = "staging"
PRODUCTION_ENVIRONMENT = "production"

_NON_PRODUCTION_FLAGS = MappingProxyType(
    {
        "containerBuildOnPR": True,
        "containerBuildOnProduction": False,
        "containerPushOnProduction": False,
    }
)
_PRODUCTION_FLAGS = MappingProxyType(
    {
        "containerBuildOnPR": False,
        "containerBuildOnProduction": True,
        "containerPushOnProduction": True,
    }
)

EVENT_CONTEXT_FLAGS = MappingProxyType(
    {
        DEFAULT_ENVIRONMENT: _NON_PRODUCTION_FLAGS,
        STAGING_ENVIRONMENT: _NON_PRODUCTION_FLAGS,
        PRODUCTION_ENVIRONMENT: _PRODUCTION_FLAGS,
    }
)


class InputResolver:
    """Builds the effective input map for a manifest and environment."""

    def __init__(self, catalog: TemplateCatalog | None = None) -> None:
        self.catalog = catalog or default_catalog()

    def resolve(self, manifest: Manifest, environment: str) -> EffectiveInputs:
        """Resolve effective inputs.

        Never raises: an unknown template only loses its defaults layer.
        Validation against the template is a separate step
        (TemplateCatalog.validate_inputs).
        """
        inputs = EffectiveInputs()

        try:
            template = self.catalog.load(manifest.spec.template)
        except TemplateNotFoundError:
            logger.warning(
                f"Template '{manifest.spec.template}' not found, resolving inputs without template defaults"
            )
        else:
            for name, definition in template.inputs.items():
                if definition.default is not None:
                    inputs.set_default(name, copy.deepcopy(definition.default))

        inputs.apply(copy.deepcopy(manifest.spec.inputs))

        env_config = manifest.environment(environment)
        if env_config is not None:
            logger.debug(f"Applying {len(env_config.inputs)} input override(s) for environment '{environment}'")
            inputs.apply(copy.deepcopy(env_config.inputs))

        for key, value in EVENT_CONTEXT_FLAGS.get(environment, {}).items():
            inputs.set_default(key, value)

        return inputs
