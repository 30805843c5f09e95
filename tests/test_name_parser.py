"""Tests for composite name parsing"""
import pytest

from metrics.name_parser import NameTagParser, name_parser


class TestNameTagParser:
    """Test the inline tag grammar and its fallbacks"""

    @pytest.mark.parametrize("raw", [
        "requests",
        "http.server.requests",
        "jvm.gc-time_total",
        "",
    ])
    def test_plain_names(self, raw):
        """Test names without a tag section are returned unchanged"""
        parsed = name_parser.parse(raw)

        assert parsed.base == raw
        assert parsed.tags == {}

    def test_single_tag(self):
        """Test one inline tag"""
        parsed = name_parser.parse("requests{region=us}")

        assert parsed.base == "requests"
        assert parsed.tags == {"region": "us"}

    def test_multiple_tags_with_whitespace(self):
        """Test several tags, surrounding whitespace is stripped"""
        parsed = name_parser.parse("api.calls{ method = GET , status=200}")

        assert parsed.base == "api.calls"
        assert parsed.tags == {"method": "GET", "status": "200"}

    def test_value_may_contain_equals(self):
        """Test pairs split on the first equals sign"""
        parsed = name_parser.parse("query{filter=a=b}")

        assert parsed.tags == {"filter": "a=b"}

    def test_empty_tag_section(self):
        """Test empty braces mean no tags"""
        parsed = name_parser.parse("requests{}")

        assert parsed.base == "requests"
        assert parsed.tags == {}

    def test_empty_value_is_kept(self):
        """Test a key with an empty value is a valid tag"""
        assert name_parser.parse("requests{region=}").tags == {"region": ""}

    @pytest.mark.parametrize("raw", [
        "requests{region=us",
        "requests region=us}",
        "requests{region}",
        "requests{=us}",
        "requests{region=us,}",
        "{region=us}",
        "requests{a={b}}",
        "requests{region=us}.count",
        "requests{a=b}{c=d}",
    ])
    def test_malformed_names_fall_back_to_base(self, raw):
        """Test anything off-grammar becomes the base name with no tags"""
        parsed = name_parser.parse(raw)

        assert parsed.base == raw
        assert parsed.tags == {}

    def test_non_string_input_does_not_raise(self):
        """Test non-string names are coerced"""
        parsed = name_parser.parse(42)

        assert parsed.base == "42"
        assert parsed.tags == {}

    def test_parse_is_idempotent(self):
        """Test repeated parses give equal, independent results"""
        parser = NameTagParser()
        first = parser.parse("requests{region=us}")
        first.tags["mutated"] = "yes"
        second = parser.parse("requests{region=us}")

        assert second.tags == {"region": "us"}

    def test_format_builds_sorted_composite_name(self):
        """Test composite names are built with sorted keys"""
        assert name_parser.format("requests", {"status": "200", "method": "GET"}) == \
            "requests{method=GET,status=200}"

    def test_format_without_tags(self):
        """Test formatting without tags returns the base"""
        assert name_parser.format("requests") == "requests"
        assert name_parser.format("requests", {}) == "requests"

    def test_format_then_parse(self):
        """Test parse recovers what format built"""
        tags = {"region": "us", "zone": "b"}

        parsed = name_parser.parse(name_parser.format("cache.hits", tags))

        assert parsed.base == "cache.hits"
        assert parsed.tags == tags

    @pytest.mark.parametrize("tags", [
        {"uri": "/items/{id}"},
        {"path": "/a,b"},
        {"a=b": "c"},
        {"k{": "v"},
        {" ": "v"},
    ])
    def test_format_rejects_reserved_characters(self, tags):
        """Test tags that parse could not recover are refused"""
        with pytest.raises(ValueError):
            name_parser.format("http", tags)

    def test_format_rejects_braces_in_base_with_tags(self):
        """Test a braced base cannot be combined with tags"""
        with pytest.raises(ValueError):
            name_parser.format("http{x=1}", {"region": "us"})

    def test_format_allows_equals_in_values(self):
        """Test values may contain equals signs"""
        name = name_parser.format("query", {"filter": "a=b"})

        assert name_parser.parse(name).tags == {"filter": "a=b"}

    def test_format_passes_composite_base_through(self):
        """Test an already composite name without extra tags is unchanged"""
        assert name_parser.format("requests{region=us}") == "requests{region=us}"

    def test_base_whitespace_is_preserved(self):
        """Test plain and composite base names both keep surrounding whitespace"""
        assert name_parser.parse(" a ").base == " a "

        parsed = name_parser.parse(" a {x=1}")
        assert parsed.base == " a "
        assert parsed.tags == {"x": "1"}
