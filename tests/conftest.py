"""Shared fixtures for fsd-migrate tests."""
import json
from pathlib import Path

import pytest

from fsd_migrate.core.config_service import ENV_VAR_MAP, reset_config_service


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point HOME at a temp directory and clear FSD_* variables for every test.

    This ensures tests never read the real global config.
    """
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for env_var in [*ENV_VAR_MAP, "FSD_DEBUG"]:
        monkeypatch.delenv(env_var, raising=False)
    reset_config_service()

    import fsd_migrate.ui as ui
    monkeypatch.setattr(ui, "_json_mode", False)
    monkeypatch.setattr(ui, "_plain_mode", False)

    yield home
    reset_config_service()


def write_package_json(root: Path, data: dict) -> Path:
    path = root / "package.json"
    path.write_text(json.dumps(data, indent=2))
    return path


@pytest.fixture
def make_project(tmp_path):
    """Factory that lays out a project directory from a package.json dict and extra files."""

    def _make(package=None, files=None, name="project"):
        root = tmp_path / name
        root.mkdir()
        if package is not None:
            write_package_json(root, package)
        for rel, content in (files or {}).items():
            target = root / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
        return root

    return _make


@pytest.fixture
def vue3_project(make_project):
    """A small Vue 3 + Vite project with a src/ tree and an npm lockfile."""
    return make_project(
        package={
            "name": "shop-front",
            "version": "1.2.0",
            "scripts": {"dev": "vite", "build": "vite build"},
            "dependencies": {"vue": "^3.4.0", "pinia": "^2.1.0"},
            "devDependencies": {"vite": "^5.0.0", "@vitejs/plugin-vue": "^5.0.0"},
        },
        files={
            "package-lock.json": "{}",
            "vite.config.js": "export default {}\n",
            "index.html": "<div id='app'></div>\n",
            "src/main.js": "import { createApp } from 'vue'\nimport { createPinia } from 'pinia'\n",
            "src/App.vue": "<template><div /></template>\n",
            "src/components/Header.vue": "<template><header /></template>\n",
        },
    )
