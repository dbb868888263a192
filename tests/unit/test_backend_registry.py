"""Tests for storage_engine/config/registry.py."""

import pytest

from storage_engine.config.definition import BackendDefinition
from storage_engine.config.registry import BackendRegistry, servers_section
from storage_engine.errors import (
    ConfigurationError,
    DuplicateBackendName,
    MissingRequiredOption,
    RegistryFrozen,
    UnknownBackend,
)


class TestRegister:
    """Tests for building a registry by hand."""

    def test_register_and_lookup(self):
        registry = BackendRegistry()
        definition = BackendDefinition.create("scratch", "memory")
        registry.register(definition)
        assert registry.lookup("scratch") is definition
        assert "scratch" in registry
        assert len(registry) == 1

    def test_duplicate_name(self):
        registry = BackendRegistry([BackendDefinition.create("scratch", "memory")])
        with pytest.raises(DuplicateBackendName):
            registry.register(BackendDefinition.create("scratch", "memory"))

    def test_frozen_registry_rejects_registration(self):
        registry = BackendRegistry().freeze()
        assert registry.frozen
        with pytest.raises(RegistryFrozen):
            registry.register(BackendDefinition.create("scratch", "memory"))

    def test_lookup_unknown(self):
        with pytest.raises(UnknownBackend) as exc_info:
            BackendRegistry().lookup("ghost")
        assert exc_info.value.name == "ghost"

    def test_lookup_is_exact(self):
        """Test that names are not matched by prefix or case."""
        registry = BackendRegistry([BackendDefinition.create("uploads", "memory")])
        assert not registry.exists("upload")
        assert not registry.exists("Uploads")
        assert not registry.exists("uploads2")


class TestFromConfig:
    """Tests for BackendRegistry.from_config()."""

    def test_sample_config(self, registry):
        assert registry.frozen
        assert registry.names() == ["local", "avatars", "docs", "scratch", "tmp", "archive"]
        assert registry.servers() == ["local", "docs", "scratch", "archive"]

    def test_servers_key_is_optional(self):
        registry = BackendRegistry.from_config({"scratch": {"kind": "memory"}})
        assert registry.names() == ["scratch"]

    def test_bucket_definitions(self, registry):
        avatars = registry.lookup("avatars")
        assert avatars.server == "local"
        assert avatars.default_prefix == "images/avatars/"
        assert avatars.kind.value == "local"

        tmp = registry.lookup("tmp")
        assert tmp.server == "scratch"
        assert tmp.default_prefix == "tmp"

    def test_bucket_name_collides_with_server(self):
        config = {
            "scratch": {"kind": "memory", "buckets": {"docs": {}}},
            "docs": {"kind": "memory"},
        }
        with pytest.raises(DuplicateBackendName):
            BackendRegistry.from_config(config)

    def test_invalid_entry_aborts_construction(self):
        config = {
            "scratch": {"kind": "memory"},
            "archive": {"kind": "s3", "options": {}},
        }
        with pytest.raises(MissingRequiredOption):
            BackendRegistry.from_config(config)

    def test_config_must_be_mapping(self):
        with pytest.raises(ConfigurationError):
            BackendRegistry.from_config(["scratch"])  # type: ignore[arg-type]

    def test_buckets_must_be_mapping(self):
        with pytest.raises(ConfigurationError, match="buckets"):
            BackendRegistry.from_config({"scratch": {"kind": "memory", "buckets": ["tmp"]}})

    def test_misspelled_buckets_key(self):
        with pytest.raises(ConfigurationError, match="Unknown key 'bukets'"):
            BackendRegistry.from_config(
                {"scratch": {"kind": "memory", "bukets": {"tmp": "tmp"}}}
            )

    def test_bucket_entry_rejects_unknown_keys(self):
        """Test that buckets cannot carry their own options."""
        with pytest.raises(ConfigurationError, match="Unknown key 'options'") as exc_info:
            BackendRegistry.from_config(
                {
                    "scratch": {
                        "kind": "memory",
                        "buckets": {"tmp": {"directory": "tmp", "options": {"x": 1}}},
                    }
                }
            )
        assert exc_info.value.backend == "tmp"

    def test_bucket_prefix_key(self):
        registry = BackendRegistry.from_config(
            {"scratch": {"kind": "memory", "buckets": {"tmp": {"prefix": "tmp/"}}}}
        )
        assert registry.lookup("tmp").default_prefix == "tmp/"

    def test_iteration_yields_definitions(self, registry):
        assert [definition.name for definition in registry] == registry.names()

    def test_config_is_not_mutated(self, sample_config):
        snapshot = repr(sample_config)
        BackendRegistry.from_config(sample_config)
        assert repr(sample_config) == snapshot


class TestServersSection:
    """Tests for detecting the optional 'servers' wrapper."""

    def test_backend_named_servers(self):
        registry = BackendRegistry.from_config(
            {"servers": {"kind": "memory"}, "other": {"kind": "memory"}}
        )
        assert registry.names() == ["servers", "other"]

    def test_only_backend_named_servers(self):
        registry = BackendRegistry.from_config({"servers": {"kind": "memory"}})
        assert registry.names() == ["servers"]

    def test_wrapper_unwrapped(self):
        assert servers_section({"servers": {"a": {"kind": "memory"}}}) == {
            "a": {"kind": "memory"}
        }

    def test_wrapper_next_to_other_keys(self):
        with pytest.raises(ConfigurationError, match="Unexpected top-level key 'extra'"):
            BackendRegistry.from_config(
                {"servers": {"a": {"kind": "memory"}}, "extra": {"kind": "memory"}}
            )

    def test_wrapper_must_be_mapping(self):
        with pytest.raises(ConfigurationError, match="'servers' must be a mapping"):
            servers_section({"servers": ["a"]})
