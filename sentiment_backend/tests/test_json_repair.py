import pytest

from sentiment_backend.utils.json import parse_json_object, repair_json


def test_parses_plain_json():
    assert parse_json_object('{"sentiment": "positive"}') == {"sentiment": "positive"}


def test_strips_markdown_fence_and_trailing_comma():
    text = '```json\n{"sentiment": "neutral", "positives": [],}\n```'
    assert parse_json_object(text) == {"sentiment": "neutral", "positives": []}


def test_ignores_prose_around_object():
    text = 'Here is the analysis:\n{"sentiment": "mixed"}\nHope this helps!'
    assert parse_json_object(text) == {"sentiment": "mixed"}


def test_closes_truncated_reply():
    text = '{"sentiment": "positive", "positives": ["fast"], "negatives": ["lou'
    parsed = parse_json_object(text)

    assert parsed["sentiment"] == "positive"
    assert parsed["positives"] == ["fast"]


def test_converts_python_literals():
    assert repair_json('{"flag": True, "other": None}') == '{"flag":true, "other":null}'


def test_unwraps_single_element_list():
    assert parse_json_object('[{"sentiment": "negative"}]') == {"sentiment": "negative"}


@pytest.mark.parametrize("text", ["", "   ", "no json here", "[1, 2]"])
def test_rejects_non_objects(text):
    with pytest.raises(ValueError):
        parse_json_object(text)
