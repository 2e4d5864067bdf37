import json

import pytest

from hackerchess.core.errors import InvalidGameRecord
from hackerchess.core.positions import decode_positions, normalize_positions

START = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"


def test_none_becomes_empty_array():
    assert normalize_positions(None) == "[]"


def test_json_array_string_is_stored_verbatim():
    raw = '["a", "b"]'
    assert normalize_positions(raw) is raw


def test_json_object_string_is_stored_verbatim():
    raw = '{"start": "x"}'
    assert normalize_positions(raw) == raw


def test_non_json_string_is_wrapped():
    assert json.loads(normalize_positions("not-json")) == ["not-json"]
    assert json.loads(normalize_positions(START)) == [START]


def test_list_and_dict_are_encoded():
    assert json.loads(normalize_positions([START, "x"])) == [START, "x"]
    assert json.loads(normalize_positions({"a": 1})) == {"a": 1}


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("42", [42]),
        ('"e4"', ["e4"]),
        ("true", [True]),
        ("null", []),
        (7, [7]),
        (False, [False]),
    ],
)
def test_scalars_are_wrapped(raw, expected):
    assert json.loads(normalize_positions(raw)) == expected


def test_non_standard_json_constants_are_treated_as_text():
    assert json.loads(normalize_positions("NaN")) == ["NaN"]
    assert json.loads(normalize_positions("1e999")) == ["1e999"]


def test_unencodable_values_are_rejected():
    with pytest.raises(InvalidGameRecord):
        normalize_positions(float("nan"))
    with pytest.raises(InvalidGameRecord):
        normalize_positions([object()])
    with pytest.raises(InvalidGameRecord):
        normalize_positions(object())


def test_decode_tolerates_legacy_text():
    assert decode_positions(None) == []
    assert decode_positions("") == []
    assert decode_positions('["a"]') == ["a"]
    assert decode_positions("legacy fen text") == ["legacy fen text"]
