"""Tests for storage_engine/uri.py - identifier parsing."""

import pytest

from storage_engine.errors import MalformedIdentifier
from storage_engine.uri import SEPARATOR, ParsedUri, build_uri, parse_uri


class TestParseUri:
    """Tests for parse_uri()."""

    def test_simple(self):
        assert parse_uri("uploads:avatars/42.png") == ParsedUri("uploads", "avatars/42.png")

    def test_only_first_separator_counts(self):
        parsed = parse_uri("notes:2024/12:30.txt")
        assert parsed.server == "notes"
        assert parsed.path == "2024/12:30.txt"

    def test_empty_path_addresses_root(self):
        assert parse_uri("uploads:").path == ""

    def test_legacy_double_slash_form(self):
        """Test that server://path keeps the slashes in the raw path."""
        parsed = parse_uri("uploads://avatars/42.png")
        assert parsed.server == "uploads"
        assert parsed.path == "//avatars/42.png"

    @pytest.mark.parametrize("identifier", ["noseparatorhere", ":path", ""])
    def test_malformed(self, identifier):
        with pytest.raises(MalformedIdentifier):
            parse_uri(identifier)

    def test_not_a_string(self):
        with pytest.raises(MalformedIdentifier, match="must be a string"):
            parse_uri(None)

    def test_malformed_is_value_error(self):
        with pytest.raises(ValueError):
            parse_uri("noseparatorhere")

    def test_render_is_inverse_of_parse(self):
        for identifier in ("a:b", "a:", "a:b:c", "a://b", "bucket: spaced /x"):
            assert parse_uri(identifier).render() == identifier


class TestBuildUri:
    """Tests for build_uri()."""

    def test_build(self):
        assert build_uri("uploads", "a/b.txt") == f"uploads{SEPARATOR}a/b.txt"

    def test_build_root(self):
        assert build_uri("uploads") == "uploads:"

    def test_round_trip(self):
        parsed = parse_uri(build_uri("uploads", "x:y/z"))
        assert parsed == ParsedUri("uploads", "x:y/z")

    def test_rejects_separator_in_server(self):
        with pytest.raises(MalformedIdentifier):
            build_uri("a:b", "c")

    def test_rejects_empty_server(self):
        with pytest.raises(MalformedIdentifier):
            build_uri("", "c")
