"""Project analyzer.

Reads package.json, lockfiles, well-known config files and a handful of
conventional source directories, classifies the stack, and scores how risky
a migration onto the target stack will be. Detection is dependency- and
filename-based; source files are only searched for substrings.

The analyzer never writes to the project and never raises for problems in
the project's content. Those are recorded in ``potential_issues``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from fsd_migrate.errors import ProjectNotFoundError

from .models import (
    COMPLEXITY_HIGH,
    COMPLEXITY_LOW,
    COMPLEXITY_MEDIUM,
    AnalysisResult,
    DirectoryInfo,
    MigrationStrategy,
)

logger = logging.getLogger("fsd_migrate.analyzer")

DEFAULT_TARGET_FRAMEWORK = "vue"

# Lockfile -> package manager, in priority order
LOCKFILES: list[tuple[str, str]] = [
    ("yarn.lock", "yarn"),
    ("pnpm-lock.yaml", "pnpm"),
    ("package-lock.json", "npm"),
]

# Classification rules: (dependency names, label). First match wins per category.
FRAMEWORK_RULES: list[tuple[tuple[str, ...], str]] = [
    (("vue",), "vue"),
    (("react",), "react"),
    (("angular", "@angular/core"), "angular"),
    (("svelte",), "svelte"),
]

UI_LIBRARY_RULES: list[tuple[tuple[str, ...], str]] = [
    (("vuetify",), "vuetify"),
    (("quasar",), "quasar"),
    (("element-plus",), "element-plus"),
    (("ant-design-vue",), "ant-design-vue"),
    (("@mui/material",), "material-ui"),
]

STATE_MANAGEMENT_RULES: list[tuple[tuple[str, ...], str]] = [
    (("pinia",), "pinia"),
    (("vuex",), "vuex"),
    (("redux", "@reduxjs/toolkit"), "redux"),
    (("zustand",), "zustand"),
]

# (dependency names, backend, database)
BACKEND_RULES: list[tuple[tuple[str, ...], str | None, str]] = [
    (("@supabase/supabase-js",), "supabase", "supabase"),
    (("firebase",), "firebase", "firebase"),
    (("prisma", "@prisma/client"), None, "prisma"),
    (("mongoose",), None, "mongodb"),
]

BUILD_TOOL_RULES: list[tuple[tuple[str, ...], str]] = [
    (("vite", "@vitejs/plugin-vue", "@vitejs/plugin-react"), "vite"),
    (("webpack",), "webpack"),
    (("rollup",), "rollup"),
    (("vue-cli-service", "@vue/cli-service"), "vue-cli"),
    (("@angular/cli",), "angular-cli"),
    (("create-react-app", "react-scripts"), "create-react-app"),
]

TEST_FRAMEWORK_RULES: list[tuple[tuple[str, ...], str]] = [
    (("jest",), "jest"),
    (("vitest",), "vitest"),
]

E2E_FRAMEWORK_RULES: list[tuple[tuple[str, ...], str]] = [
    (("cypress",), "cypress"),
    (("playwright", "@playwright/test"), "playwright"),
]

# Well-known config files recorded when present at the project root
CONFIG_FILES: list[str] = [
    "package.json",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "tsconfig.json",
    "jsconfig.json",
    "vite.config.js",
    "vite.config.ts",
    "vue.config.js",
    "nuxt.config.js",
    "webpack.config.js",
    "rollup.config.js",
    ".gitignore",
    ".env",
    ".env.example",
    "README.md",
    "CHANGELOG.md",
    "tailwind.config.js",
    "tailwind.config.ts",
    "eslint.config.js",
    ".eslintrc.js",
    ".eslintrc.json",
    "prettier.config.js",
    ".prettierrc",
    "jest.config.js",
    "vitest.config.js",
]

SOURCE_DIRS: list[str] = ["src", "components", "pages", "views", "lib", "utils", "assets", "styles"]

MAIN_FILES: list[str] = ["src/main.js", "src/main.ts"]

# Complexity weights
FRAMEWORK_WEIGHTS = {"vue3": 1, "vue2": 3, "react": 5}
BUILD_TOOL_WEIGHTS = {"vite": 1, "vue-cli": 2, "webpack": 3}
MANY_DEPENDENCIES = 20
MANY_CONFIG_FILES = 10

ESTIMATED_TIME = {
    COMPLEXITY_LOW: "1-2 hours",
    COMPLEXITY_MEDIUM: "4-8 hours",
    COMPLEXITY_HIGH: "1-2 days",
}

APPROACH = {
    COMPLEXITY_LOW: "direct",
    COMPLEXITY_MEDIUM: "incremental",
    COMPLEXITY_HIGH: "careful",
}

SAME_FRAMEWORK_PHASES = [
    "Backup current project",
    "Update package.json dependencies",
    "Migrate build configuration",
    "Update file structure",
    "Test and validate",
]

CROSS_FRAMEWORK_PHASES = [
    "Backup current project",
    "Framework migration analysis",
    "Create new project structure",
    "Migrate components and logic",
    "Test and validate",
]


def complexity_level(score: int) -> str:
    """Map a complexity score to low/medium/high."""
    if score <= 3:
        return COMPLEXITY_LOW
    if score <= 6:
        return COMPLEXITY_MEDIUM
    return COMPLEXITY_HIGH


def major_version(version_range: str) -> str | None:
    """Return the major version of a semver range like ``^3.4.0`` or ``~2.6``."""
    stripped = version_range.strip().lstrip("^~>=<v ")
    major = stripped.split(".")[0]
    return major if major.isdigit() else None


def _first_match(deps: dict[str, str], rules: list[tuple[tuple[str, ...], str]]) -> tuple[str, str] | None:
    """Return (label, matched dependency name) for the first matching rule."""
    for names, label in rules:
        for name in names:
            if name in deps:
                return label, name
    return None


class ProjectAnalyzer:
    """Inspects a project directory and produces an AnalysisResult."""

    def __init__(self, target_framework: str = DEFAULT_TARGET_FRAMEWORK):
        self.target_framework = target_framework

    def analyze(self, project_path: Path) -> AnalysisResult:
        """Analyze a project directory.

        Args:
            project_path: Root directory of the project.

        Returns:
            A new AnalysisResult. Running this twice on an unchanged
            directory yields equal results.

        Raises:
            ProjectNotFoundError: If project_path is not a directory.
        """
        project_path = Path(project_path).resolve()
        if not project_path.is_dir():
            raise ProjectNotFoundError(str(project_path))

        logger.info("Analyzing project structure: %s", project_path)
        result = AnalysisResult(project_path=str(project_path))

        self._analyze_package_json(project_path, result)
        self._analyze_file_structure(project_path, result)
        self._analyze_source_code(project_path, result)
        self._analyze_build_configuration(project_path, result)
        self._determine_project_type(result)
        self._assess_migration_complexity(result)
        self._generate_recommendations(result)
        result.migration_strategy = self._generate_migration_strategy(result)

        logger.info(
            "Analysis complete: %s (%s complexity, score %d)",
            result.project_type,
            result.migration_complexity,
            result.complexity_score,
        )
        return result

    # ── package.json ──

    def _analyze_package_json(self, root: Path, result: AnalysisResult) -> None:
        """Read package.json and detect the package manager and stack."""
        result.package_manager = self._detect_package_manager(root)

        package_path = root / "package.json"
        if not package_path.exists():
            result.potential_issues.append("No package.json found - not a Node.js project")
            return

        try:
            data = json.loads(package_path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("top-level value is not an object")
        except (OSError, UnicodeDecodeError, ValueError) as e:
            logger.warning("Failed to parse %s: %s", package_path, e)
            result.potential_issues.append(f"Invalid package.json: {e}")
            return

        result.dependencies = _string_map(data.get("dependencies"))
        result.dev_dependencies = _string_map(data.get("devDependencies"))
        result.scripts = _string_map(data.get("scripts"))
        result.project_name = data.get("name")
        result.version = data.get("version")

        self._classify_dependencies(result)

    def _detect_package_manager(self, root: Path) -> str | None:
        for lockfile, manager in LOCKFILES:
            if (root / lockfile).exists():
                return manager
        return None

    def _classify_dependencies(self, result: AnalysisResult) -> None:
        """Classify the stack from the merged dependency map."""
        deps = result.all_dependencies

        match = _first_match(deps, FRAMEWORK_RULES)
        if match:
            result.framework, dep_name = match
            if result.framework == "vue":
                result.framework_version = major_version(deps[dep_name])
            elif result.framework == "react":
                result.framework_version = deps[dep_name]

        match = _first_match(deps, UI_LIBRARY_RULES)
        if match:
            result.ui_library, dep_name = match
            result.ui_library_version = deps[dep_name]

        match = _first_match(deps, STATE_MANAGEMENT_RULES)
        if match:
            result.state_management = match[0]

        for names, backend, database in BACKEND_RULES:
            if any(name in deps for name in names):
                result.backend = backend
                result.database = database
                break

        match = _first_match(deps, BUILD_TOOL_RULES)
        if match:
            result.build_tool = match[0]

        match = _first_match(deps, TEST_FRAMEWORK_RULES)
        if match:
            result.test_framework = match[0]

        match = _first_match(deps, E2E_FRAMEWORK_RULES)
        if match:
            result.e2e_framework = match[0]

    # ── Files and directories ──

    def _analyze_file_structure(self, root: Path, result: AnalysisResult) -> None:
        result.has_git = (root / ".git").exists()
        result.has_node_modules = (root / "node_modules").exists()
        result.config_files = [name for name in CONFIG_FILES if (root / name).exists()]

        for dir_name in SOURCE_DIRS:
            dir_path = root / dir_name
            if dir_path.is_dir():
                info = self._directory_info(dir_path)
                if info.error:
                    result.potential_issues.append(f"Could not read {dir_name}/: {info.error}")
                result.source_structure[dir_name] = info

        result.has_main_file = any((root / name).exists() for name in MAIN_FILES)
        result.has_vue_config = (root / "vue.config.js").exists()
        result.has_vite_config = (root / "vite.config.js").exists() or (root / "vite.config.ts").exists()

    def _directory_info(self, dir_path: Path) -> DirectoryInfo:
        """Summarize one directory level: files, subdirectories, extensions."""
        info = DirectoryInfo()
        file_types: set[str] = set()
        try:
            for entry in sorted(dir_path.iterdir(), key=lambda p: p.name):
                if entry.is_dir():
                    info.subdirs.append(entry.name)
                    continue
                info.file_count += 1
                file_types.add(entry.suffix)
                if entry.name.startswith("index."):
                    info.has_index = True
        except OSError as e:
            logger.warning("Failed to read directory %s: %s", dir_path, e)
            return DirectoryInfo(error=str(e))
        info.file_types = sorted(file_types)
        return info

    def _analyze_source_code(self, root: Path, result: AnalysisResult) -> None:
        """Look for app bootstrap patterns in src/main.* (substring search only)."""
        for main_file in MAIN_FILES:
            main_path = root / main_file
            if not main_path.exists():
                continue
            try:
                content = main_path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                result.potential_issues.append(f"Could not read {main_file}: {e}")
                continue

            if "createApp" in content:
                result.vue_app_pattern = "composition-api"
            elif "new Vue" in content:
                result.vue_app_pattern = "options-api"

            if "createPinia" in content:
                result.uses_pinia = True
            if "createVuetify" in content:
                result.uses_vuetify = True

    def _analyze_build_configuration(self, root: Path, result: AnalysisResult) -> None:
        if result.has_vite_config:
            result.build_system = "vite"
        elif result.has_vue_config:
            result.build_system = "vue-cli"
        elif (root / "webpack.config.js").exists():
            result.build_system = "webpack"

        if (root / "tsconfig.json").exists():
            result.uses_typescript = True

        if (root / "tailwind.config.js").exists() or (root / "tailwind.config.ts").exists():
            result.css_framework = "tailwind"

    # ── Derived fields ──

    def _determine_project_type(self, result: AnalysisResult) -> None:
        if result.framework == "vue":
            if result.ui_library == "vuetify":
                project_type = "vue-vuetify"
            elif result.css_framework == "tailwind":
                project_type = "vue-tailwind"
            else:
                project_type = "vue-basic"
        elif result.framework in ("react", "angular", "svelte"):
            project_type = result.framework
        else:
            project_type = "unknown"

        if result.backend:
            project_type += f"-{result.backend}"
        result.project_type = project_type

    def _assess_migration_complexity(self, result: AnalysisResult) -> None:
        score = 0
        factors: list[str] = []

        if result.framework == "vue" and result.framework_version == "3":
            score += FRAMEWORK_WEIGHTS["vue3"]
            factors.append("Vue 3 (low complexity)")
        elif result.framework == "vue" and result.framework_version == "2":
            score += FRAMEWORK_WEIGHTS["vue2"]
            factors.append("Vue 2 (medium complexity)")
        elif result.framework == "react":
            score += FRAMEWORK_WEIGHTS["react"]
            factors.append("React framework (high complexity)")

        if result.build_tool == "vite":
            score += BUILD_TOOL_WEIGHTS["vite"]
            factors.append("Vite build tool (low complexity)")
        elif result.build_tool == "vue-cli":
            score += BUILD_TOOL_WEIGHTS["vue-cli"]
            factors.append("Vue CLI (medium complexity)")
        elif result.build_tool == "webpack":
            score += BUILD_TOOL_WEIGHTS["webpack"]
            factors.append("Custom Webpack (medium complexity)")

        if len(result.all_dependencies) > MANY_DEPENDENCIES:
            score += 2
            factors.append("Many dependencies (medium complexity)")

        if len(result.config_files) > MANY_CONFIG_FILES:
            score += 1
            factors.append("Many config files (slight complexity)")

        if result.uses_typescript:
            score += 1
            factors.append("TypeScript (slight complexity)")

        result.complexity_score = score
        result.complexity_factors = factors
        result.migration_complexity = complexity_level(score)

    def _generate_recommendations(self, result: AnalysisResult) -> None:
        modules: list[str] = []

        if result.framework == "vue":
            modules.append("vue-base")

        if result.ui_library == "vuetify":
            modules.append("vuetify")
        elif result.css_framework == "tailwind":
            modules.append("tailwind")

        if result.state_management == "pinia":
            modules.append("pinia")
        elif result.state_management == "vuex":
            modules.append("pinia")
            result.potential_issues.append("Consider migrating from Vuex to Pinia")

        if result.backend in ("supabase", "firebase"):
            modules.append(result.backend)

        if result.test_framework in ("jest", "vitest"):
            modules.append(result.test_framework)

        result.recommended_modules = modules

    def _generate_migration_strategy(self, result: AnalysisResult) -> MigrationStrategy:
        complexity = result.migration_complexity
        strategy = MigrationStrategy(
            approach=APPROACH[complexity],
            estimated_time=ESTIMATED_TIME[complexity],
        )
        if complexity == COMPLEXITY_HIGH:
            strategy.risks.append("High complexity migration requires careful planning")

        if result.framework == self.target_framework:
            strategy.phases = list(SAME_FRAMEWORK_PHASES)
        else:
            strategy.phases = list(CROSS_FRAMEWORK_PHASES)
            strategy.risks.append("Cross-framework migration is complex")
        return strategy


def _string_map(value: object) -> dict[str, str]:
    """Coerce a package.json section into a name -> string map."""
    if not isinstance(value, dict):
        return {}
    return {str(k): str(v) for k, v in value.items()}
