"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from storage_engine.config.registry import BackendRegistry  # noqa: E402
from storage_engine.engine import StorageEngine  # noqa: E402


@pytest.fixture
def sample_config(tmp_path: Path):
    """Provide a sample valid storage configuration."""
    return {
        "servers": {
            "local": {
                "kind": "local",
                "options": {"root_dir": str(tmp_path / "local")},
                "buckets": {
                    "avatars": {"directory": "images/avatars/"},
                },
            },
            "docs": {
                "kind": "memory",
                "prefix": "users/42/",
            },
            "scratch": {
                "kind": "memory",
                "buckets": {"tmp": "tmp"},
            },
            "archive": {
                "kind": "s3",
                "options": {
                    "bucket": "test-bucket",
                    "region": "us-east-1",
                    "path_prefix": "archive",
                },
            },
        }
    }


@pytest.fixture
def registry(sample_config):
    """Frozen registry built from the sample config."""
    return BackendRegistry.from_config(sample_config)


@pytest.fixture
def engine(sample_config):
    """Storage engine over the sample config, closed after the test."""
    with StorageEngine.from_config(sample_config) as storage:
        yield storage


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mock AWS credentials for moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
