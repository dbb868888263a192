"""Load storage configuration from YAML files.

The engine itself consumes already-parsed mappings; this module is the thin
host-side loader that turns a YAML file into such a mapping.

Example config::

    servers:
      uploads:
        kind: local
        options:
          root_dir: /srv/uploads
      archive:
        kind: s3
        options:
          bucket: ${ARCHIVE_BUCKET}
          region: eu-west-1
        buckets:
          invoices:
            directory: finance/invoices/
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv

from storage_engine.config.registry import BackendRegistry, servers_section
from storage_engine.errors import ConfigurationError

logger = logging.getLogger(__name__)

__all__ = [
    "expand_env_vars",
    "expand_values",
    "load_env_file",
    "load_storage_config",
    "load_registry",
]

# ${VAR_NAME} or $VAR_NAME
ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


def load_env_file(
    path: Optional[Union[str, Path]] = None,
    *,
    override: bool = False,
) -> bool:
    """Load variables from a .env file; True if one was found."""
    return load_dotenv(dotenv_path=path, override=override)


def expand_env_vars(value: str, *, strict: bool = False) -> str:
    """Expand ``${VAR}`` and ``$VAR`` references in *value*.

    Unset variables are left untouched unless *strict* is set.

    Raises:
        ConfigurationError: In strict mode, when a variable is not set
    """

    def replacer(match: re.Match) -> str:
        var_name = match.group(1) or match.group(2)
        env_value = os.environ.get(var_name)
        if env_value is None:
            if strict:
                raise ConfigurationError(
                    f"Environment variable not set: {var_name}",
                    details={"variable": var_name},
                )
            return str(match.group(0))
        return env_value

    return ENV_VAR_PATTERN.sub(replacer, value)


def expand_values(data: Any, *, strict: bool = False) -> Any:
    """Recursively expand environment references in string values."""
    if isinstance(data, str):
        return expand_env_vars(data, strict=strict)
    if isinstance(data, dict):
        return {key: expand_values(value, strict=strict) for key, value in data.items()}
    if isinstance(data, list):
        return [expand_values(item, strict=strict) for item in data]
    return data


def _read_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    config_path = Path(path)
    logger.info("Loading storage config from %s", config_path)

    if not config_path.exists():
        raise ConfigurationError(
            f"Config file not found: {config_path}",
            details={"config_path": str(config_path)},
        )

    try:
        with open(config_path, "r", encoding="utf-8") as handle:
            cfg = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ConfigurationError(
            f"Invalid YAML in config file: {exc}",
            details={"config_path": str(config_path)},
        ) from exc

    if not isinstance(cfg, dict):
        raise ConfigurationError(
            "Storage config must be a YAML mapping",
            details={"config_path": str(config_path)},
        )

    return cfg


def load_storage_config(
    path: Union[str, Path],
    *,
    env_file: Optional[Union[str, Path]] = None,
    expand_env: bool = True,
    strict_env: bool = False,
) -> Dict[str, Any]:
    """Read a YAML file and return the ``{name: entry}`` server mapping.

    Args:
        path: Path to the YAML file
        env_file: Optional .env file loaded before expansion
        expand_env: Substitute environment references in string values
        strict_env: Fail on references to unset variables

    Raises:
        ConfigurationError: Missing file, invalid YAML or wrong shape
    """
    if env_file is not None:
        load_env_file(env_file)

    cfg = _read_yaml(path)
    servers = dict(servers_section(cfg))

    if expand_env:
        servers = expand_values(servers, strict=strict_env)

    return servers


def load_registry(path: Union[str, Path], **kwargs: Any) -> BackendRegistry:
    """Load a YAML file and build a frozen :class:`BackendRegistry`."""
    return BackendRegistry.from_config(load_storage_config(path, **kwargs))
