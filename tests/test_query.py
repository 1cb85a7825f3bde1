"""Tests for query parsing: boolean operators, phrases and field prefixes."""

import pytest

from memkg.query import FIELDS, ParsedQuery, parse_field_query, parse_query, strip_field_prefixes


class TestParseQuery:
    def test_plain_terms_are_optional_and_lowercased(self):
        parsed = parse_query("Auth Module")
        assert parsed.optional == ["auth", "module"]
        assert parsed.required == [] and parsed.excluded == [] and parsed.phrases == []

    def test_operators(self):
        parsed = parse_query("+auth -deprecated service")
        assert parsed.required == ["auth"]
        assert parsed.excluded == ["deprecated"]
        assert parsed.optional == ["service"]

    def test_phrases_extracted_first(self):
        parsed = parse_query('"Tech Debt" +cleanup "hot path"')
        assert parsed.phrases == ["tech debt", "hot path"]
        assert parsed.required == ["cleanup"]
        assert parsed.optional == []

    def test_bare_operators_are_optional(self):
        parsed = parse_query("+ - x")
        assert parsed.optional == ["+", "-", "x"]

    def test_whitespace_only(self):
        assert parse_query("   ").is_empty

    def test_positive_terms_skip_exclusions(self):
        parsed = parse_query('+a b "c d" -e')
        assert parsed.positive_terms == ["a", "b", "c d"]


class TestParseFieldQuery:
    def test_single_field(self):
        fq = parse_field_query("type:person")
        assert fq.type == ParsedQuery(optional=["person"])
        assert fq.name is None and fq.obs is None and fq.all is None

    def test_multiple_fields_and_free_text(self):
        fq = parse_field_query("name:Auth TYPE:Module +secure")
        assert fq.name.optional == ["auth"]
        assert fq.type.optional == ["module"]
        assert fq.all.required == ["secure"]

    def test_quoted_field_value(self):
        fq = parse_field_query('obs:"tech debt" cleanup')
        assert fq.obs.optional == ["tech", "debt"]
        assert fq.all.optional == ["cleanup"]

    def test_field_value_operators_parsed_recursively(self):
        fq = parse_field_query("name:+Alice")
        assert fq.name.required == ["alice"]

    def test_field_only_inside_token_is_free_text(self):
        fq = parse_field_query("rename:foo")
        assert fq.name is None
        assert fq.all.optional == ["rename:foo"]

    def test_usable(self):
        assert parse_field_query("type:x").is_usable
        assert parse_field_query("alice").is_usable
        assert not parse_field_query("-alice").is_usable

    @pytest.mark.parametrize("prefix", [*FIELDS, *(f.upper() for f in FIELDS)])
    def test_every_field_prefix_recognised(self, prefix):
        fq = parse_field_query(f"{prefix}:value")
        assert getattr(fq, prefix.lower()) == ParsedQuery(optional=["value"])
        assert fq.all is None

    def test_unknown_prefix_is_free_text(self):
        assert parse_field_query("kind:value").all.optional == ["kind:value"]


def test_strip_field_prefixes():
    assert strip_field_prefixes("Alice type:person") == "Alice"
    assert strip_field_prefixes('name:"Big Co" acquisition  deal') == "acquisition deal"
    assert strip_field_prefixes("type:person") == ""
