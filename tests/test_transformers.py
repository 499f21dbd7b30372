"""Tests for the transformer contract and registry."""

from unittest.mock import patch

import pytest

from fsd_migrate.core.transformers import (
    PHASES,
    Transformer,
    TransformerRegistry,
    get_hook,
    hook_name,
)
from fsd_migrate.errors import TransformerNotFoundError


class VueTransformer(Transformer):
    name = "vue"

    def migrate_dependencies(self, analysis, context):
        context.logger("updating package.json")


class DuckTransformer:
    """Not a Transformer subclass; only implements two hooks."""

    def migrate_pre_migration(self, analysis, context):
        pass

    def migrate_source_code(self, analysis, context):
        pass


class TestHooks:
    def test_phase_order(self):
        assert PHASES == [
            "pre-migration",
            "dependencies",
            "configuration",
            "file-structure",
            "source-code",
            "post-migration",
        ]

    @pytest.mark.parametrize(
        "phase, name",
        [("pre-migration", "migrate_pre_migration"), ("file-structure", "migrate_file_structure")],
    )
    def test_hook_name(self, phase, name):
        assert hook_name(phase) == name

    def test_inherited_noop_is_skipped(self):
        transformer = VueTransformer()
        assert get_hook(transformer, "dependencies") is not None
        assert get_hook(transformer, "configuration") is None

    def test_duck_typed_transformer(self):
        transformer = DuckTransformer()
        hooks = [phase for phase in PHASES if get_hook(transformer, phase)]
        assert hooks == ["pre-migration", "source-code"]


class TestRegistryLookup:
    @pytest.fixture
    def registry(self):
        registry = TransformerRegistry()
        registry.register("vue-vuetify", VueTransformer())
        registry.register("react", DuckTransformer())
        return registry

    def test_exact_match(self, registry):
        assert registry.get("vue-vuetify") is registry.get("vue-vuetify")
        assert isinstance(registry.get("vue-vuetify"), VueTransformer)

    def test_key_contained_in_type(self, registry):
        assert isinstance(registry.get("vue-vuetify-supabase"), VueTransformer)

    def test_type_contained_in_key(self, registry):
        assert isinstance(registry.get("vuetify"), VueTransformer)

    def test_framework_prefix(self):
        registry = TransformerRegistry()
        vue = VueTransformer()
        registry.register("vue", vue)
        registry.register("react", DuckTransformer())
        assert registry.get("vue-tailwind") is vue

    def test_no_match(self, registry):
        assert registry.get("angular") is None
        with pytest.raises(TransformerNotFoundError) as exc_info:
            registry.resolve("angular")
        assert exc_info.value.project_type == "angular"
        assert "vue-vuetify" in str(exc_info.value)

    def test_exact_beats_substring(self):
        registry = TransformerRegistry()
        generic = VueTransformer()
        specific = VueTransformer()
        registry.register("vue", generic)
        registry.register("vue-basic", specific)
        assert registry.get("vue-basic") is specific

    def test_register_class_instantiates(self):
        registry = TransformerRegistry()
        registry.register("vue", VueTransformer)
        assert isinstance(registry.get("vue"), VueTransformer)

    def test_unregister(self, registry):
        registry.unregister("react")
        assert "react" not in registry
        assert len(registry) == 1
        registry.unregister("react")  # no error when absent


class TestLoadPlugins:
    def test_registers_discovered_transformers(self):
        registry = TransformerRegistry()
        with patch(
            "fsd_migrate.plugins.discover_transformers",
            return_value={"svelte": DuckTransformer},
        ):
            assert registry.load_plugins() == 1
        assert isinstance(registry.get("svelte"), DuckTransformer)

    def test_explicit_registration_wins(self):
        registry = TransformerRegistry()
        mine = VueTransformer()
        registry.register("vue", mine)
        with patch(
            "fsd_migrate.plugins.discover_transformers",
            return_value={"vue": DuckTransformer, "react": DuckTransformer},
        ):
            assert registry.load_plugins() == 1
        assert registry.get("vue") is mine
        assert registry.project_types == ["vue", "react"]

    def test_broken_plugin_is_skipped(self):
        class Broken:
            def __init__(self):
                raise RuntimeError("needs config")

        registry = TransformerRegistry()
        with patch("fsd_migrate.plugins.discover_transformers", return_value={"bad": Broken}):
            assert registry.load_plugins() == 0
        assert "bad" not in registry
