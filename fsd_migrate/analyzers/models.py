"""Data models for project analysis results."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

COMPLEXITY_LOW = "low"
COMPLEXITY_MEDIUM = "medium"
COMPLEXITY_HIGH = "high"


@dataclass
class DirectoryInfo:
    """One-level summary of a conventional source directory."""
    file_count: int = 0
    subdirs: list[str] = field(default_factory=list)
    file_types: list[str] = field(default_factory=list)  # sorted extensions, "" for none
    has_index: bool = False
    error: Optional[str] = None

    def to_dict(self) -> dict:
        if self.error is not None:
            return {"error": self.error}
        return {
            "fileCount": self.file_count,
            "subdirs": self.subdirs,
            "fileTypes": self.file_types,
            "hasIndex": self.has_index,
        }


@dataclass
class MigrationStrategy:
    """Suggested approach for migrating a project."""
    approach: str = "incremental"  # direct, incremental, careful
    phases: list[str] = field(default_factory=list)
    estimated_time: str = "unknown"
    risks: list[str] = field(default_factory=list)
    backup_required: bool = True

    def to_dict(self) -> dict:
        return {
            "approach": self.approach,
            "phases": self.phases,
            "estimatedTime": self.estimated_time,
            "risks": self.risks,
            "backupRequired": self.backup_required,
        }


@dataclass
class AnalysisResult:
    """Everything ``ProjectAnalyzer.analyze`` learned about a project.

    A fresh instance is built on every call; nothing here is shared.
    """
    project_path: str
    project_name: Optional[str] = None
    version: Optional[str] = None

    # Detected stack
    framework: Optional[str] = None
    framework_version: Optional[str] = None
    ui_library: Optional[str] = None
    ui_library_version: Optional[str] = None
    state_management: Optional[str] = None
    backend: Optional[str] = None
    database: Optional[str] = None
    build_tool: Optional[str] = None
    build_system: Optional[str] = None  # from config files rather than deps
    package_manager: Optional[str] = None
    test_framework: Optional[str] = None
    e2e_framework: Optional[str] = None
    uses_typescript: bool = False
    css_framework: Optional[str] = None

    # Inventory
    dependencies: dict[str, str] = field(default_factory=dict)
    dev_dependencies: dict[str, str] = field(default_factory=dict)
    scripts: dict[str, str] = field(default_factory=dict)
    config_files: list[str] = field(default_factory=list)
    source_structure: dict[str, DirectoryInfo] = field(default_factory=dict)
    has_git: bool = False
    has_node_modules: bool = False
    has_main_file: bool = False
    has_vue_config: bool = False
    has_vite_config: bool = False

    # Entry-point hints from src/main.*
    vue_app_pattern: Optional[str] = None  # composition-api, options-api
    uses_pinia: bool = False
    uses_vuetify: bool = False

    # Derived
    project_type: str = "unknown"
    migration_complexity: str = COMPLEXITY_LOW
    complexity_score: int = 0
    complexity_factors: list[str] = field(default_factory=list)
    recommended_modules: list[str] = field(default_factory=list)
    potential_issues: list[str] = field(default_factory=list)
    migration_strategy: MigrationStrategy = field(default_factory=MigrationStrategy)

    @property
    def all_dependencies(self) -> dict[str, str]:
        """Runtime and dev dependencies merged (dev wins on name clashes)."""
        return {**self.dependencies, **self.dev_dependencies}

    def summary(self) -> dict:
        """Compact view for listings and confirmation prompts."""
        return {
            "projectType": self.project_type,
            "framework": self.framework,
            "migrationComplexity": self.migration_complexity,
            "recommendedModules": list(self.recommended_modules),
            "estimatedTime": self.migration_strategy.estimated_time,
            "potentialIssues": list(self.potential_issues),
        }

    def to_dict(self) -> dict:
        return {
            "projectPath": self.project_path,
            "projectName": self.project_name,
            "version": self.version,
            "projectType": self.project_type,
            "framework": self.framework,
            "frameworkVersion": self.framework_version,
            "uiLibrary": self.ui_library,
            "uiLibraryVersion": self.ui_library_version,
            "stateManagement": self.state_management,
            "backend": self.backend,
            "database": self.database,
            "buildTool": self.build_tool,
            "buildSystem": self.build_system,
            "packageManager": self.package_manager,
            "testFramework": self.test_framework,
            "e2eFramework": self.e2e_framework,
            "usesTypeScript": self.uses_typescript,
            "cssFramework": self.css_framework,
            "dependencies": self.dependencies,
            "devDependencies": self.dev_dependencies,
            "scripts": self.scripts,
            "configFiles": self.config_files,
            "sourceStructure": {
                name: info.to_dict() for name, info in self.source_structure.items()
            },
            "hasGit": self.has_git,
            "hasNodeModules": self.has_node_modules,
            "hasMainFile": self.has_main_file,
            "hasVueConfig": self.has_vue_config,
            "hasViteConfig": self.has_vite_config,
            "vueAppPattern": self.vue_app_pattern,
            "usesPinia": self.uses_pinia,
            "usesVuetify": self.uses_vuetify,
            "migrationComplexity": self.migration_complexity,
            "complexityScore": self.complexity_score,
            "complexityFactors": self.complexity_factors,
            "recommendedModules": self.recommended_modules,
            "potentialIssues": self.potential_issues,
            "migrationStrategy": self.migration_strategy.to_dict(),
        }
