"""Layered configuration service for fsd-migrate.

Priority (highest to lowest):
1. Explicit options (CLI flags, constructor arguments) applied by the caller
2. Environment variables (FSD_*)
3. Project config (.fsd.toml in the project directory)
4. Global config (~/.config/fsd/config.toml)
5. Built-in defaults
"""
from __future__ import annotations

import copy
import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import tomli_w

from fsd_migrate.errors import ConfigError

logger = logging.getLogger("fsd_migrate.config")

PROJECT_CONFIG_NAME = ".fsd.toml"

DEFAULTS: dict[str, Any] = {
    "migration": {
        "dry_run": False,
        "auto_backup": True,
        "confirm_steps": True,
        "verbose": False,
        "target_framework": "vue",
    },
    "backup": {
        "include_node_modules": False,
        "include_git": False,
        "description": "Pre-migration backup",
    },
    "cleanup": {
        "max_age": 30,
        "max_count": 10,
    },
}

ENV_VAR_MAP = {
    "FSD_DRY_RUN": "migration.dry_run",
    "FSD_AUTO_BACKUP": "migration.auto_backup",
    "FSD_CONFIRM_STEPS": "migration.confirm_steps",
    "FSD_VERBOSE": "migration.verbose",
    "FSD_TARGET_FRAMEWORK": "migration.target_framework",
    "FSD_INCLUDE_NODE_MODULES": "backup.include_node_modules",
    "FSD_INCLUDE_GIT": "backup.include_git",
    "FSD_BACKUP_MAX_AGE": "cleanup.max_age",
    "FSD_BACKUP_MAX_COUNT": "cleanup.max_count",
}

INT_KEYS = {"cleanup.max_age", "cleanup.max_count"}
TRUE_WORDS = ("true", "1", "yes")
FALSE_WORDS = ("false", "0", "no")


def _global_config_path() -> Path:
    """~/.config/fsd/config.toml"""
    return Path.home() / ".config" / "fsd" / "config.toml"


def _read_toml(path: Path) -> dict:
    """Load a TOML file; a missing or broken file counts as empty."""
    if not path.is_file():
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
        logger.warning("Ignoring unreadable config %s: %s", path, e)
        return {}


def _write_toml(data: dict, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(tomli_w.dumps(data), encoding="utf-8")


def _deep_merge(base: dict, override: dict) -> dict:
    """Return base updated with override; nested tables merge, everything else is replaced."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _get_nested(data: dict, dotted_key: str, default: Any = None) -> Any:
    node: Any = data
    for part in dotted_key.split("."):
        if not isinstance(node, dict) or part not in node:
            return default
        node = node[part]
    return default if node is None else node


def _set_nested(data: dict, dotted_key: str, value: Any) -> None:
    *parents, leaf = dotted_key.split(".")
    node = data
    for part in parents:
        child = node.get(part)
        if not isinstance(child, dict):
            child = node[part] = {}
        node = child
    node[leaf] = value


def is_known_key(dotted_key: str) -> bool:
    """True for leaf settings that have a built-in default."""
    value = _get_nested(DEFAULTS, dotted_key)
    return value is not None and not isinstance(value, dict)


def parse_value(config_path: str, raw: str) -> Any:
    """Convert a string from the environment or command line to the type its key expects."""
    if config_path in INT_KEYS:
        try:
            return int(raw)
        except ValueError:
            raise ConfigError(
                f"Expected an integer for {config_path}, got '{raw}'",
                context={"key": config_path},
            ) from None
    if raw.lower() in TRUE_WORDS:
        return True
    if raw.lower() in FALSE_WORDS:
        return False
    if isinstance(_get_nested(DEFAULTS, config_path), bool):
        raise ConfigError(
            f"Expected true or false for {config_path}, got '{raw}'",
            context={"key": config_path},
        )
    return raw


@dataclass
class ResolvedConfig:
    """Merged configuration plus the files and variables it came from."""
    data: dict = field(default_factory=dict)
    global_config_path: Optional[Path] = None
    project_config_path: Optional[Path] = None
    env_vars: list[str] = field(default_factory=list)

    def get(self, dotted_key: str, default: Any = None) -> Any:
        return _get_nested(self.data, dotted_key, default)

    def get_int(self, dotted_key: str, default: int = 0) -> int:
        value = self.get(dotted_key, default)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(
                f"Expected an integer for {dotted_key}, got {value!r}",
                context={"key": dotted_key},
            )
        return value

    def get_bool(self, dotted_key: str, default: bool = False) -> bool:
        value = self.get(dotted_key, default)
        if not isinstance(value, bool):
            raise ConfigError(
                f"Expected true or false for {dotted_key}, got {value!r}",
                context={"key": dotted_key},
            )
        return value


class ConfigService:
    """Resolves configuration for one project directory.

    The project layer lives next to the code being migrated, so each project
    gets its own service (see ``get_config_service``).
    """

    def __init__(self, project_path: Optional[Path] = None):
        self.project_path = Path(project_path) if project_path else Path.cwd()
        self._resolved: Optional[ResolvedConfig] = None

    @property
    def project_config_path(self) -> Path:
        return self.project_path / PROJECT_CONFIG_NAME

    def resolve(self, force: bool = False) -> ResolvedConfig:
        """Merge defaults, global file, project file and FSD_* variables (cached).

        Raises:
            ConfigError: If an FSD_* variable does not parse as the type
                of its setting (integer or true/false).
        """
        if self._resolved is None or force:
            self._resolved = self._load()
        return self._resolved

    def _load(self) -> ResolvedConfig:
        resolved = ResolvedConfig(data=copy.deepcopy(DEFAULTS))

        for path, attr in (
            (_global_config_path(), "global_config_path"),
            (self.project_config_path, "project_config_path"),
        ):
            layer = _read_toml(path)
            if layer:
                resolved.data = _deep_merge(resolved.data, layer)
                setattr(resolved, attr, path)
                logger.debug("Loaded config layer %s", path)

        for env_var, config_path in ENV_VAR_MAP.items():
            raw = os.environ.get(env_var)
            if raw is None:
                continue
            _set_nested(resolved.data, config_path, parse_value(config_path, raw))
            resolved.env_vars.append(env_var)

        return resolved

    def get(self, dotted_key: str, default: Any = None) -> Any:
        return self.resolve().get(dotted_key, default)

    def set_global(self, dotted_key: str, value: Any) -> None:
        """Persist one value in ~/.config/fsd/config.toml."""
        path = _global_config_path()
        data = _read_toml(path)
        _set_nested(data, dotted_key, value)
        _write_toml(data, path)
        self._resolved = None
        logger.info("Set %s = %r in %s", dotted_key, value, path)

    def init_project_config(self) -> Path:
        """Write the defaults to <project>/.fsd.toml.

        Raises:
            FileExistsError: If the project already has a config file.
        """
        path = self.project_config_path
        if path.exists():
            raise FileExistsError(f"Project config already exists: {path}")
        _write_toml(DEFAULTS, path)
        self._resolved = None
        logger.info("Created project config: %s", path)
        return path

    def show(self) -> dict:
        """Freshly resolved values and the layers that contributed to them."""
        resolved = self.resolve(force=True)
        return {
            "resolved": resolved.data,
            "sources": {
                "global_config": str(resolved.global_config_path) if resolved.global_config_path else None,
                "project_config": str(resolved.project_config_path) if resolved.project_config_path else None,
                "env": list(resolved.env_vars),
            },
        }


_config_services: dict[Path, ConfigService] = {}


def get_config_service(project_path: Optional[Path] = None) -> ConfigService:
    """Shared ConfigService for a project directory (cwd if omitted)."""
    key = (Path(project_path) if project_path else Path.cwd()).resolve()
    service = _config_services.get(key)
    if service is None:
        service = _config_services[key] = ConfigService(key)
    return service


def reset_config_service() -> None:
    _config_services.clear()
