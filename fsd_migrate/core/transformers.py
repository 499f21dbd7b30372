"""Transformer contract and registry.

A transformer holds the framework-specific rewrite logic for one project
type. It implements any subset of six phase hooks; the migrator calls them
in PHASES order. Hooks left as the inherited no-op, or missing entirely on
a duck-typed object, are skipped.

Transformers are looked up by project type with three tiers of matching:
exact key, substring in either direction, then the framework prefix
(``vue`` for ``vue-vuetify-supabase``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Optional

from fsd_migrate.errors import TransformerNotFoundError

if TYPE_CHECKING:
    from fsd_migrate.analyzers.models import AnalysisResult

logger = logging.getLogger("fsd_migrate.transformers")

PHASES: list[str] = [
    "pre-migration",
    "dependencies",
    "configuration",
    "file-structure",
    "source-code",
    "post-migration",
]

PHASE_TITLES: dict[str, str] = {
    "pre-migration": "Pre-migration setup",
    "dependencies": "Dependencies migration",
    "configuration": "Configuration migration",
    "file-structure": "File structure migration",
    "source-code": "Source code migration",
    "post-migration": "Post-migration cleanup",
}

# logger(message, level="info")
PhaseLogger = Callable[..., None]


def hook_name(phase: str) -> str:
    """Method name for a phase: ``file-structure`` -> ``migrate_file_structure``."""
    return "migrate_" + phase.replace("-", "_")


@dataclass
class PhaseContext:
    """Everything a phase hook receives besides the analysis."""

    analysis: AnalysisResult
    dry_run: bool
    verbose: bool
    project_path: Path
    logger: PhaseLogger


class Transformer:
    """Base class for per-stack transformers. Every hook defaults to a no-op."""

    name: str = ""

    def migrate_pre_migration(self, analysis: AnalysisResult, context: PhaseContext) -> None:
        pass

    def migrate_dependencies(self, analysis: AnalysisResult, context: PhaseContext) -> None:
        pass

    def migrate_configuration(self, analysis: AnalysisResult, context: PhaseContext) -> None:
        pass

    def migrate_file_structure(self, analysis: AnalysisResult, context: PhaseContext) -> None:
        pass

    def migrate_source_code(self, analysis: AnalysisResult, context: PhaseContext) -> None:
        pass

    def migrate_post_migration(self, analysis: AnalysisResult, context: PhaseContext) -> None:
        pass


def get_hook(transformer: Any, phase: str) -> Optional[Callable[..., Any]]:
    """Return the bound hook for a phase, or None if the transformer doesn't implement it."""
    name = hook_name(phase)
    method = getattr(transformer, name, None)
    if not callable(method):
        return None
    if isinstance(transformer, Transformer) and getattr(type(transformer), name, None) is getattr(Transformer, name):
        return None
    return method


class TransformerRegistry:
    """Maps project-type keys to transformer instances, in registration order."""

    def __init__(self) -> None:
        self._transformers: dict[str, Any] = {}

    def register(self, project_type: str, transformer: Any) -> None:
        """Register a transformer (a Transformer instance or any object with hook methods)."""
        if isinstance(transformer, type):
            transformer = transformer()
        self._transformers[project_type] = transformer
        logger.debug("Registered transformer for %s", project_type)

    def unregister(self, project_type: str) -> None:
        self._transformers.pop(project_type, None)

    def get(self, project_type: str) -> Optional[Any]:
        """Find a transformer: exact key, then substring either way, then framework prefix."""
        if project_type in self._transformers:
            return self._transformers[project_type]

        for key, transformer in self._transformers.items():
            if key in project_type or project_type in key:
                return transformer

        framework = project_type.split("-")[0]
        return self._transformers.get(framework)

    def resolve(self, project_type: str) -> Any:
        """Like get(), but raise TransformerNotFoundError when nothing matches."""
        transformer = self.get(project_type)
        if transformer is None:
            raise TransformerNotFoundError(project_type, available=self.project_types)
        return transformer

    def load_plugins(self) -> int:
        """Register transformers published under the ``fsd_migrate.transformers`` entry point group.

        Explicit registrations win over plugins with the same key.

        Returns:
            Number of plugin transformers registered.
        """
        from fsd_migrate.plugins import discover_transformers

        count = 0
        for project_type, transformer in discover_transformers().items():
            if project_type in self._transformers:
                continue
            try:
                self.register(project_type, transformer)
            except Exception as e:
                logger.warning("Failed to instantiate transformer plugin %s: %s", project_type, e)
                continue
            count += 1
        return count

    @property
    def project_types(self) -> list[str]:
        return list(self._transformers)

    def __contains__(self, project_type: str) -> bool:
        return project_type in self._transformers

    def __len__(self) -> int:
        return len(self._transformers)
