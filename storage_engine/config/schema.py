"""Option schemas and the strict option validator.

Every backend kind declares which options it requires and which it accepts.
Each schema compiles to a pydantic model with ``extra="forbid"``; the
validator runs the model and maps the first error onto the storage error
taxonomy. Validation is a gate, not a transform: valid options come back
unchanged.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Annotated, Any, Dict, List, Optional, Type

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    ValidationError,
    create_model,
)
from pydantic_core import PydanticCustomError

from storage_engine.config.kinds import BackendKind
from storage_engine.errors import MissingRequiredOption, TypeMismatch, UnknownOption

__all__ = ["OptionType", "OptionSchema", "SCHEMAS", "schema_for", "validate_options"]


def _require_mapping(value: Any) -> Any:
    if not isinstance(value, (Mapping, list, tuple)):
        raise PydanticCustomError("mapping_type", "Input should be a mapping or an array")
    return value


class OptionType(Enum):
    """Declared type of an option value."""

    STRING = "string"
    BOOLEAN = "boolean"
    MAPPING = "mapping"
    ANY = "any"

    def matches(self, value: Any) -> bool:
        """Return True if *value* satisfies this type."""
        if self is OptionType.STRING:
            return isinstance(value, str)
        if self is OptionType.BOOLEAN:
            return isinstance(value, bool)
        if self is OptionType.MAPPING:
            # Arrays and mappings share one declared type
            return isinstance(value, (Mapping, list, tuple))
        return True

    @property
    def annotation(self) -> Any:
        """Pydantic field annotation enforcing this type without coercion."""
        if self is OptionType.STRING:
            return StrictStr
        if self is OptionType.BOOLEAN:
            return StrictBool
        if self is OptionType.MAPPING:
            return Annotated[Any, AfterValidator(_require_mapping)]
        return Any


def _type_name(value: Any) -> str:
    if isinstance(value, bool):
        return OptionType.BOOLEAN.value
    if isinstance(value, str):
        return OptionType.STRING.value
    if isinstance(value, (Mapping, list, tuple)):
        return OptionType.MAPPING.value
    return type(value).__name__


def _frozen(options: Dict[str, OptionType]) -> Mapping:
    return MappingProxyType(dict(options))


def _build_model(required: Mapping, optional: Mapping) -> Type[BaseModel]:
    # Option names are carried as aliases so any key is a legal field
    fields: Dict[str, Any] = {}
    for index, (name, option_type) in enumerate(required.items()):
        fields[f"option_{index}"] = (option_type.annotation, Field(..., alias=name))
    offset = len(required)
    for index, (name, option_type) in enumerate(optional.items(), start=offset):
        fields[f"option_{index}"] = (option_type.annotation, Field(None, alias=name))
    return create_model(
        "StorageOptions",
        __config__=ConfigDict(extra="forbid"),
        **fields,
    )


@dataclass(frozen=True)
class OptionSchema:
    """Required and optional options for one backend kind."""

    required: Mapping = field(default_factory=lambda: _frozen({}))
    optional: Mapping = field(default_factory=lambda: _frozen({}))
    model: Type[BaseModel] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "model", _build_model(self.required, self.optional))

    def accepts(self, name: str) -> bool:
        return name in self.required or name in self.optional

    def type_of(self, name: str) -> Optional[OptionType]:
        if name in self.required:
            return self.required[name]
        return self.optional.get(name)


SCHEMAS: Mapping = MappingProxyType(
    {
        BackendKind.LOCAL: OptionSchema(
            required=_frozen({"root_dir": OptionType.STRING}),
            optional=_frozen(
                {
                    "host": OptionType.STRING,
                    "visibility": OptionType.MAPPING,
                    "write_flags": OptionType.ANY,
                    "link_handling": OptionType.ANY,
                }
            ),
        ),
        BackendKind.S3: OptionSchema(
            required=_frozen({"bucket": OptionType.STRING}),
            optional=_frozen(
                {
                    "client": OptionType.MAPPING,
                    "region": OptionType.STRING,
                    "endpoint_url": OptionType.STRING,
                    "path_prefix": OptionType.STRING,
                    "visibility": OptionType.MAPPING,
                    "url_expires": OptionType.ANY,
                }
            ),
        ),
        BackendKind.FTP: OptionSchema(
            required=_frozen({"host": OptionType.STRING}),
            optional=_frozen(
                {
                    "port": OptionType.ANY,
                    "username": OptionType.STRING,
                    "password": OptionType.STRING,
                    "root": OptionType.STRING,
                    "timeout": OptionType.ANY,
                    "passive": OptionType.BOOLEAN,
                    "tls": OptionType.BOOLEAN,
                }
            ),
        ),
        BackendKind.SFTP: OptionSchema(
            required=_frozen({"host": OptionType.STRING}),
            optional=_frozen(
                {
                    "port": OptionType.ANY,
                    "username": OptionType.STRING,
                    "password": OptionType.STRING,
                    "private_key": OptionType.STRING,
                    "root": OptionType.STRING,
                    "timeout": OptionType.ANY,
                }
            ),
        ),
        BackendKind.GRIDFS: OptionSchema(
            required=_frozen(
                {
                    "connection": OptionType.STRING,
                    "database": OptionType.STRING,
                }
            ),
            optional=_frozen({"bucket": OptionType.STRING}),
        ),
        BackendKind.MEMORY: OptionSchema(),
    }
)


def schema_for(kind: BackendKind) -> Optional[OptionSchema]:
    """Return the schema declared for *kind*, or None."""
    return SCHEMAS.get(kind)


def _first_error(errors: List[Dict[str, Any]], options: Mapping) -> Dict[str, Any]:
    missing = [error for error in errors if error["type"] == "missing"]
    if missing:
        return missing[0]
    order = {name: index for index, name in enumerate(options)}
    return min(errors, key=lambda error: order.get(error["loc"][0], len(order)))


def validate_options(
    schema: OptionSchema,
    options: Mapping,
    *,
    backend: Optional[str] = None,
) -> Dict[str, Any]:
    """Validate *options* against *schema*.

    Required keys are checked first in declaration order, then every
    supplied key in insertion order, so diagnostics are deterministic.

    Args:
        schema: Schema for the backend kind
        options: Raw options mapping
        backend: Backend name, used only for error context

    Returns:
        The options, unchanged, as a plain dict

    Raises:
        MissingRequiredOption: A required key is absent
        UnknownOption: A key is outside required and optional
        TypeMismatch: A value has the wrong type
    """
    for name in schema.required:
        if name not in options:
            raise MissingRequiredOption(name, backend=backend)
    for name in options:
        if not isinstance(name, str):
            raise UnknownOption(str(name), backend=backend)

    try:
        schema.model.model_validate(dict(options))
    except ValidationError as e:
        error = _first_error(e.errors(), options)
        name = str(error["loc"][0])
        if error["type"] == "missing":
            raise MissingRequiredOption(name, backend=backend) from None
        if error["type"] == "extra_forbidden":
            raise UnknownOption(name, backend=backend) from None
        expected = schema.type_of(name)
        raise TypeMismatch(
            name,
            expected.value if expected else OptionType.ANY.value,
            _type_name(options.get(name)),
            backend=backend,
        ) from None

    return dict(options)
