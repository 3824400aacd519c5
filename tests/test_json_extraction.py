import pytest

from rolefit.json_extraction import (
    QUESTION_STRATEGIES,
    SUGGESTION_STRATEGIES,
    extract_json,
    parse_bracketed_array,
    parse_fenced_object,
)


class TestExtractJson:

    def test_direct_object(self):
        assert extract_json('{"text": "Hi"}', QUESTION_STRATEGIES, dict) == {"text": "Hi"}

    def test_fenced_object_inside_prose(self):
        reply = 'Here you go:\n```json\n{"text": "Hi", "options": ["A"]}\n```\nGood luck!'
        assert extract_json(reply, QUESTION_STRATEGIES, dict) == {"text": "Hi", "options": ["A"]}

    def test_plain_fence_without_language(self):
        assert parse_fenced_object('```\n{"a": 1}\n```') == {"a": 1}

    def test_unparseable_question_reply(self):
        with pytest.raises(ValueError):
            extract_json("I cannot help with that.", QUESTION_STRATEGIES, dict)

    def test_wrong_type_counts_as_failure(self):
        with pytest.raises(ValueError):
            extract_json('["not", "an", "object"]', QUESTION_STRATEGIES, dict)

    def test_empty_reply(self):
        with pytest.raises(ValueError):
            extract_json("   ", QUESTION_STRATEGIES)

    def test_fenced_array(self):
        reply = '```json\n["One", "Two"]\n```'
        assert extract_json(reply, SUGGESTION_STRATEGIES, list) == ["One", "Two"]

    def test_bracketed_array_as_last_resort(self):
        reply = 'Suggestions: ["Daily standups", "Code review"] hope this helps'
        assert extract_json(reply, SUGGESTION_STRATEGIES, list) == ["Daily standups", "Code review"]

    def test_bracketed_array_without_match(self):
        with pytest.raises(ValueError):
            parse_bracketed_array("no brackets here")

    def test_too_deeply_nested_reply_is_a_failure(self):
        reply = "[" * 100000 + "]" * 100000
        with pytest.raises(ValueError):
            extract_json(reply, SUGGESTION_STRATEGIES, list)
