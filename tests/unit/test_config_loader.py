"""Tests for storage_engine/config/loader.py - YAML loading and env expansion."""

from pathlib import Path

import pytest

from storage_engine.config.loader import (
    expand_env_vars,
    expand_values,
    load_registry,
    load_storage_config,
)
from storage_engine.errors import ConfigurationError, MissingRequiredOption


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


class TestEnvExpansion:
    """Tests for ${VAR} and $VAR substitution."""

    def test_braced(self, monkeypatch):
        monkeypatch.setenv("ARCHIVE_BUCKET", "prod-archive")
        assert expand_env_vars("${ARCHIVE_BUCKET}") == "prod-archive"

    def test_bare(self, monkeypatch):
        monkeypatch.setenv("ROOT", "/srv")
        assert expand_env_vars("$ROOT/uploads") == "/srv/uploads"

    def test_unset_left_untouched(self, monkeypatch):
        monkeypatch.delenv("NOT_SET_ANYWHERE", raising=False)
        assert expand_env_vars("${NOT_SET_ANYWHERE}") == "${NOT_SET_ANYWHERE}"

    def test_unset_strict(self, monkeypatch):
        monkeypatch.delenv("NOT_SET_ANYWHERE", raising=False)
        with pytest.raises(ConfigurationError, match="NOT_SET_ANYWHERE"):
            expand_env_vars("${NOT_SET_ANYWHERE}", strict=True)

    def test_nested_values(self, monkeypatch):
        monkeypatch.setenv("HOST", "files.internal")
        data = {"a": {"host": "$HOST", "port": 22, "tags": ["${HOST}", True]}}
        assert expand_values(data) == {
            "a": {"host": "files.internal", "port": 22, "tags": ["files.internal", True]}
        }


class TestLoadStorageConfig:
    """Tests for load_storage_config()."""

    def test_servers_key_unwrapped(self, tmp_path):
        path = _write(
            tmp_path / "storage.yaml",
            "servers:\n  scratch:\n    kind: memory\n",
        )
        assert load_storage_config(path) == {"scratch": {"kind": "memory"}}

    def test_flat_mapping(self, tmp_path):
        path = _write(tmp_path / "storage.yaml", "scratch:\n  kind: memory\n")
        assert load_storage_config(path) == {"scratch": {"kind": "memory"}}

    def test_env_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("UPLOAD_ROOT", raising=False)
        env_file = _write(tmp_path / ".env", f"UPLOAD_ROOT={tmp_path}\n")
        path = _write(
            tmp_path / "storage.yaml",
            "uploads:\n  kind: local\n  options:\n    root_dir: ${UPLOAD_ROOT}/up\n",
        )
        try:
            config = load_storage_config(path, env_file=env_file)
        finally:
            monkeypatch.delenv("UPLOAD_ROOT", raising=False)
        assert config["uploads"]["options"]["root_dir"] == f"{tmp_path}/up"

    def test_expansion_can_be_disabled(self, tmp_path):
        path = _write(tmp_path / "storage.yaml", "a:\n  kind: memory\n  prefix: $HOME\n")
        assert load_storage_config(path, expand_env=False)["a"]["prefix"] == "$HOME"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_storage_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = _write(tmp_path / "bad.yaml", "a: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_storage_config(path)

    def test_non_mapping(self, tmp_path):
        path = _write(tmp_path / "list.yaml", "- a\n- b\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_storage_config(path)

    def test_servers_must_be_mapping(self, tmp_path):
        path = _write(tmp_path / "servers.yaml", "servers:\n  - a\n")
        with pytest.raises(ConfigurationError, match="servers"):
            load_storage_config(path)


class TestLoadRegistry:
    """Tests for load_registry()."""

    def test_builds_frozen_registry(self, tmp_path):
        path = _write(
            tmp_path / "storage.yaml",
            "servers:\n"
            "  archive:\n"
            "    kind: awsS3\n"
            "    options:\n"
            "      bucket: archive\n"
            "    buckets:\n"
            "      invoices:\n"
            "        directory: finance/invoices/\n",
        )
        registry = load_registry(path)
        assert registry.frozen
        assert registry.names() == ["archive", "invoices"]
        assert registry.lookup("invoices").default_prefix == "finance/invoices/"

    def test_schema_errors_surface(self, tmp_path):
        path = _write(tmp_path / "storage.yaml", "archive:\n  kind: s3\n")
        with pytest.raises(MissingRequiredOption):
            load_registry(path)
