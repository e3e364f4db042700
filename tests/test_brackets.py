import json

from placediag.etl.brackets import find_json_start, json_after_marker, json_at, slice_balanced


def test_slice_returns_embedded_object_with_noise_around_it():
    value = {
        "quote": 'he said "hi" {not a brace}',
        "nested": [1, {"closer": "]"}, {"deep": {"deeper": [True, None]}}],
        "slash": "back\\slash",
    }
    text = "var x = 1; window.__STATE__ = " + json.dumps(value) + "; trailing } ] junk"

    chunk = slice_balanced(text, text.index("{"))

    assert chunk is not None
    assert json.loads(chunk) == value


def test_slice_handles_top_level_array():
    value = [1, "two", {"three": "[3]"}]
    text = "prefix " + json.dumps(value) + " suffix"

    chunk = slice_balanced(text, text.index("["))

    assert json.loads(chunk) == value


def test_slice_handles_unicode_payload():
    value = {"name": "행복한 미용실", "keywordList": [{"text": "강남{미용실}"}]}
    text = "<script>" + json.dumps(value, ensure_ascii=False) + "</script>"

    chunk = slice_balanced(text, text.index("{"))

    assert json.loads(chunk) == value


def test_slice_requires_opening_bracket():
    assert slice_balanced('x = {"a": 1}', 0) is None
    assert slice_balanced("", 0) is None
    assert slice_balanced("{}", 5) is None


def test_slice_returns_none_for_truncated_input():
    assert slice_balanced('{"a": [1, 2, {"b": "c"}', 0) is None
    assert slice_balanced('{"a": "unterminated }', 0) is None


def test_slice_returns_none_for_mismatched_closer():
    assert slice_balanced('{"a": [1, 2}', 0) is None


def test_find_json_start_picks_earliest_bracket():
    assert find_json_start("abc [1] {2}") == 4
    assert find_json_start("abc {1} [2]") == 4
    assert find_json_start("no json here") == -1


def test_json_after_marker_decodes_following_blob():
    html = '<script>window.__APOLLO_STATE__ = {"Place:1": {"photoCount": 3}};</script>'

    assert json_after_marker(html, "__APOLLO_STATE__") == {"Place:1": {"photoCount": 3}}


def test_json_after_marker_missing_or_broken():
    assert json_after_marker("<html></html>", "__NEXT_DATA__") is None
    assert json_after_marker("__NEXT_DATA__ = {'single': 'quotes'}", "__NEXT_DATA__") is None
    assert json_after_marker('__NEXT_DATA__ = {"a": 1', "__NEXT_DATA__") is None


def test_json_at_decodes_only_at_the_given_offset():
    text = 'x = [1, {"a": "]"}] tail'

    assert json_at(text, text.index("[")) == [1, {"a": "]"}]
    assert json_at(text, 0) is None
