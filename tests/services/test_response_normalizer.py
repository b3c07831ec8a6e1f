"""
Tests for the response normalizer fallback chain.
"""

import pytest

from viralscript.core.exceptions import MalformedResponse
from viralscript.services.response_normalizer import (
    ParseStrategy,
    extract_json,
    extract_json_with_strategy,
)


class TestFallbackOrder:
    """Fenced -> direct -> braces -> MalformedResponse."""

    def test_fenced_block_after_prose(self):
        value, strategy = extract_json_with_strategy('Here you go:\n```json\n{"a":1}\n```')
        assert value == {"a": 1}
        assert strategy == ParseStrategy.FENCED

    def test_untagged_fence(self):
        value, strategy = extract_json_with_strategy('```\n{"a": [1, 2]}\n```')
        assert value == {"a": [1, 2]}
        assert strategy == ParseStrategy.FENCED

    def test_plain_json(self):
        value, strategy = extract_json_with_strategy('  {"a": 1}\n')
        assert value == {"a": 1}
        assert strategy == ParseStrategy.DIRECT

    def test_prose_around_object(self):
        value, strategy = extract_json_with_strategy('prefix {"a":1} suffix')
        assert value == {"a": 1}
        assert strategy == ParseStrategy.BRACES

    def test_not_json_raises(self):
        with pytest.raises(MalformedResponse) as exc_info:
            extract_json("not json at all")
        assert exc_info.value.raw_length == len("not json at all")
        assert exc_info.value.preview == "not json at all"

    def test_broken_fence_falls_through_to_braces(self):
        text = 'Example:\n```\nnot json\n```\nResult: {"a": 2}'
        assert extract_json(text) == {"a": 2}


class TestFailures:
    def test_empty_text_is_malformed(self):
        with pytest.raises(MalformedResponse):
            extract_json("")

    def test_none_is_malformed(self):
        with pytest.raises(MalformedResponse):
            extract_json(None)

    def test_truncated_object_is_malformed(self):
        with pytest.raises(MalformedResponse):
            extract_json('{"segments": [{"visual": "a", "audio": "b"},')

    def test_empty_object_is_not_invented(self):
        # A valid empty object parses; an invalid payload never becomes one
        assert extract_json("{}") == {}
        with pytest.raises(MalformedResponse):
            extract_json("}{")
