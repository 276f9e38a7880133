"""Tests for model-output recovery helpers."""

import pytest

from docwarehouse.services.text_extraction import (
    CATALOGUE_STRATEGIES,
    extract_fenced_json, extract_raw, extract_tag, extract_tag_or_text,
    first_match, parse_json_lenient,
)


class TestExtractTag:
    def test_returns_trimmed_content(self):
        assert extract_tag("x <readme>\n# Hi\n</readme> y", "readme") == "# Hi"

    def test_missing_tag(self):
        assert extract_tag("no tags", "readme") is None

    def test_hyphenated_tag(self):
        assert extract_tag("<data-blog>body</data-blog>", "data-blog") == "body"

    def test_first_block_wins(self):
        assert extract_tag("<a>1</a><a>2</a>", "a") == "1"

    def test_fallback_to_text(self):
        assert extract_tag_or_text("  plain answer \n", "blog") == "plain answer"


class TestStrategies:
    def test_tagged_structure_preferred(self):
        text = 'junk ```json {"x": 1}``` <documentation_structure>{"items": []}</documentation_structure>'
        assert first_match(text, CATALOGUE_STRATEGIES) == '{"items": []}'

    def test_fenced_json_second(self):
        text = 'Here you go:\n```json\n{"items": []}\n```\nThanks'
        assert first_match(text, CATALOGUE_STRATEGIES) == '{"items": []}'

    def test_raw_last(self):
        assert first_match('  {"items": []}  ', CATALOGUE_STRATEGIES) == '{"items": []}'

    def test_blank_text_matches_nothing(self):
        assert first_match("   ", CATALOGUE_STRATEGIES) is None

    def test_individual_strategies(self):
        assert extract_fenced_json("no fence") is None
        assert extract_raw("") is None


class TestParseJsonLenient:
    def test_valid_json(self):
        assert parse_json_lenient('{"a": [1, 2]}') == {"a": [1, 2]}

    def test_trailing_comma_repaired(self):
        assert parse_json_lenient('{"a": [1, 2,],}') == {"a": [1, 2]}

    def test_fences_stripped(self):
        assert parse_json_lenient('```json\n{"a": 1}\n```') == {"a": 1}

    def test_empty_text_raises(self):
        with pytest.raises(ValueError):
            parse_json_lenient("")
