"""Backend configuration: kinds, option schemas, definitions and the registry."""

from storage_engine.config.kinds import BackendKind
from storage_engine.config.schema import SCHEMAS, OptionSchema, OptionType, validate_options
from storage_engine.config.definition import BackendDefinition
from storage_engine.config.registry import BackendRegistry

__all__ = [
    "BackendKind",
    "OptionSchema",
    "OptionType",
    "SCHEMAS",
    "validate_options",
    "BackendDefinition",
    "BackendRegistry",
]
