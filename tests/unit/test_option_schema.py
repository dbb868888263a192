"""Tests for storage_engine/config/schema.py - option schemas and validation."""

import pytest
from pydantic import BaseModel, ValidationError

from storage_engine.config.kinds import BackendKind
from storage_engine.config.schema import (
    SCHEMAS,
    OptionSchema,
    OptionType,
    schema_for,
    validate_options,
)
from storage_engine.errors import (
    ConfigurationError,
    MissingRequiredOption,
    TypeMismatch,
    UnknownOption,
)


class TestOptionType:
    """Tests for declared option types."""

    def test_string(self):
        assert OptionType.STRING.matches("eu-west-1")
        assert not OptionType.STRING.matches(1)

    def test_boolean_rejects_strings(self):
        """Test that 'true' is not accepted where a boolean is declared."""
        assert OptionType.BOOLEAN.matches(True)
        assert not OptionType.BOOLEAN.matches("true")
        assert not OptionType.BOOLEAN.matches(1)

    def test_mapping_accepts_lists(self):
        """Test that arrays and mappings share the mapping type."""
        assert OptionType.MAPPING.matches({"a": 1})
        assert OptionType.MAPPING.matches(["a", "b"])
        assert not OptionType.MAPPING.matches("a")

    def test_any(self):
        for value in (None, 1, "x", [], {}, 1.5):
            assert OptionType.ANY.matches(value)


class TestSchemas:
    """Tests for the per-kind schema table."""

    def test_every_kind_has_a_schema(self):
        for kind in BackendKind:
            assert isinstance(schema_for(kind), OptionSchema)

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            SCHEMAS[BackendKind.LOCAL] = OptionSchema()  # type: ignore[index]

    def test_required_and_optional_are_disjoint(self):
        for schema in SCHEMAS.values():
            assert not set(schema.required) & set(schema.optional)

    def test_s3_requires_bucket(self):
        schema = schema_for(BackendKind.S3)
        assert "bucket" in schema.required
        assert schema.type_of("client") is OptionType.MAPPING
        assert schema.type_of("nonsense") is None

    def test_memory_accepts_nothing(self):
        schema = schema_for(BackendKind.MEMORY)
        assert not schema.accepts("root_dir")


class TestValidateOptions:
    """Tests for validate_options()."""

    def test_valid_options_returned_unchanged(self):
        """Test that validation does not add defaults or coerce values."""
        options = {"bucket": "b", "region": "eu-west-1"}
        result = validate_options(schema_for(BackendKind.S3), options, backend="archive")
        assert result == options
        assert result is not options

    def test_empty_s3_options_missing_bucket(self):
        with pytest.raises(MissingRequiredOption) as exc_info:
            validate_options(schema_for(BackendKind.S3), {}, backend="archive")
        assert exc_info.value.option == "bucket"
        assert exc_info.value.backend == "archive"

    def test_unknown_option(self):
        with pytest.raises(UnknownOption) as exc_info:
            validate_options(
                schema_for(BackendKind.LOCAL),
                {"root_dir": "/srv", "rootdir": "/srv"},
            )
        assert exc_info.value.option == "rootdir"

    def test_type_mismatch(self):
        with pytest.raises(TypeMismatch) as exc_info:
            validate_options(
                schema_for(BackendKind.FTP),
                {"host": "ftp.internal", "passive": "yes"},
            )
        error = exc_info.value
        assert error.option == "passive"
        assert error.expected == "boolean"
        assert error.actual == "string"

    def test_missing_required_reported_before_unknown(self):
        """Test that required keys are checked before supplied keys."""
        with pytest.raises(MissingRequiredOption):
            validate_options(schema_for(BackendKind.S3), {"nonsense": 1})

    def test_first_required_in_declaration_order(self):
        with pytest.raises(MissingRequiredOption) as exc_info:
            validate_options(schema_for(BackendKind.GRIDFS), {})
        assert exc_info.value.option == "connection"

    def test_first_unknown_in_insertion_order(self):
        with pytest.raises(UnknownOption) as exc_info:
            validate_options(OptionSchema(), {"zeta": 1, "alpha": 2})
        assert exc_info.value.option == "zeta"

    def test_errors_are_configuration_errors(self):
        with pytest.raises(ConfigurationError):
            validate_options(schema_for(BackendKind.S3), {})

    def test_any_typed_option_accepts_anything(self):
        schema = schema_for(BackendKind.SFTP)
        for port in (22, "22", None):
            assert validate_options(schema, {"host": "h", "port": port})["port"] == port

    def test_mapping_type_mismatch(self):
        with pytest.raises(TypeMismatch) as exc_info:
            validate_options(schema_for(BackendKind.S3), {"bucket": "b", "client": "profile"})
        assert exc_info.value.expected == "mapping"
        assert exc_info.value.actual == "string"

    def test_explicit_none_for_string_option(self):
        with pytest.raises(TypeMismatch) as exc_info:
            validate_options(schema_for(BackendKind.S3), {"bucket": "b", "region": None})
        assert exc_info.value.actual == "NoneType"

    def test_strings_are_not_coerced(self):
        """Test that numbers are rejected rather than converted where a string is declared."""
        with pytest.raises(TypeMismatch) as exc_info:
            validate_options(
                schema_for(BackendKind.GRIDFS), {"connection": "mongodb://db", "database": 7}
            )
        assert exc_info.value.option == "database"
        assert exc_info.value.actual == "int"

    def test_first_bad_key_in_insertion_order(self):
        """Test that a type error before an unknown key is reported first."""
        with pytest.raises(TypeMismatch):
            validate_options(
                schema_for(BackendKind.FTP),
                {"host": "h", "tls": "no", "nonsense": 1},
            )

    def test_non_string_key(self):
        with pytest.raises(UnknownOption) as exc_info:
            validate_options(schema_for(BackendKind.MEMORY), {1: "x"})
        assert exc_info.value.option == "1"


class TestOptionModels:
    """Tests for the pydantic models compiled from each schema."""

    def test_every_schema_has_a_model(self):
        for schema in SCHEMAS.values():
            assert issubclass(schema.model, BaseModel)

    def test_model_forbids_extra_keys(self):
        with pytest.raises(ValidationError) as exc_info:
            schema_for(BackendKind.MEMORY).model.model_validate({"x": 1})
        assert exc_info.value.errors()[0]["type"] == "extra_forbidden"

    def test_model_uses_option_names(self):
        """Test that option names appear in error locations unchanged."""
        with pytest.raises(ValidationError) as exc_info:
            schema_for(BackendKind.LOCAL).model.model_validate({})
        assert exc_info.value.errors()[0]["loc"] == ("root_dir",)

    def test_schema_equality_ignores_model(self):
        first = OptionSchema(required={"a": OptionType.STRING})
        second = OptionSchema(required={"a": OptionType.STRING})
        assert first == second
        assert first.model is not second.model
