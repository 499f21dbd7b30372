"""Transformer discovery via setuptools entry points.

Packages that know how to migrate a stack register their transformers by
declaring entry points in their ``pyproject.toml``::

    [project.entry-points."fsd_migrate.transformers"]
    vue-vuetify = "fsd_vuetify:VuetifyTransformer"

The entry point name is the project type key used for lookup. After
``pip install fsd-vuetify`` the transformer is picked up by
``TransformerRegistry.load_plugins()``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from importlib.metadata import EntryPoint, entry_points
from typing import Any

logger = logging.getLogger("fsd_migrate.plugins")

TRANSFORMER_GROUP = "fsd_migrate.transformers"


@dataclass
class PluginInfo:
    """One entry point and whether it could be imported."""

    name: str
    group: str
    module: str
    loaded: bool = False
    error: str = ""


def _load(ep: EntryPoint) -> tuple[Any, str]:
    """Import an entry point; returns (object, "") or (None, error message)."""
    try:
        return ep.load(), ""
    except Exception as e:
        return None, str(e) or type(e).__name__


def discover_plugins(group: str) -> dict[str, Any]:
    """Map entry point name to loaded object; broken entry points are skipped with a warning."""
    found: dict[str, Any] = {}
    for ep in entry_points(group=group):
        obj, error = _load(ep)
        if error:
            logger.warning("Skipping plugin %s (%s): %s", ep.name, ep.value, error)
            continue
        logger.debug("Loaded plugin %s from %s", ep.name, ep.value)
        found[ep.name] = obj
    return found


def discover_transformers() -> dict[str, Any]:
    return discover_plugins(TRANSFORMER_GROUP)


def list_transformer_plugins() -> list[PluginInfo]:
    """Every transformer entry point, including ones that fail to import."""
    infos = []
    for ep in entry_points(group=TRANSFORMER_GROUP):
        _, error = _load(ep)
        infos.append(
            PluginInfo(name=ep.name, group=TRANSFORMER_GROUP, module=ep.value, loaded=not error, error=error)
        )
    return infos
