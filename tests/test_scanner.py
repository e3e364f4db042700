import json

from placediag.etl import scanner
from placediag.models import Provenance


def test_parse_count_strips_non_digits():
    assert scanner.parse_count("1,927") == 1927
    assert scanner.parse_count("리뷰 1,204개") == 1204
    assert scanner.parse_count("") == 0
    assert scanner.parse_count("abc") == 0
    assert scanner.parse_count(None) == 0


def test_parse_count_numeric_inputs():
    assert scanner.parse_count(42) == 42
    assert scanner.parse_count(3.7) == 3
    assert scanner.parse_count(-5) == 0
    assert scanner.parse_count(True) == 0
    assert scanner.parse_count({"count": 3}) == 0


def test_parse_count_non_finite_floats_are_zero():
    assert scanner.parse_count(float("inf")) == 0
    assert scanner.parse_count(float("-inf")) == 0
    assert scanner.parse_count(float("nan")) == 0


def test_scan_survives_overflowing_json_numbers():
    tree = json.loads('{"reviewCount": 1e400, "visitorReviewCount": 12, "photoCount": Infinity}')

    result = scanner.scan(tree)

    assert result.review_count == 12
    assert result.photo_count == 0


def test_review_count_takes_max_across_field_names():
    tree = {
        "a": {"reviewCount": 5},
        "b": [{"visitorReviewCount": "40"}],
        "c": {"nested": {"blogReviewCount": 12}},
    }

    assert scanner.scan(tree).review_count == 40


def test_counts_stay_zero_without_matching_fields():
    result = scanner.scan({"place": {"name": "x", "rating": 4.5}})

    assert result.review_count == 0
    assert result.photo_count == 0


def test_photo_count_candidates():
    tree = [{"imageCount": 7}, {"images": {"totalPhotoCount": "1,120"}}]

    assert scanner.scan(tree).photo_count == 1120


def test_keyword_list_is_deduplicated_and_truncated():
    keywords = ["강남", "미용실", "펌", "염색", "커트", "클리닉", "두피", "드라이"]
    tree = {"keywordList": [{"text": k} for k in keywords]}

    assert scanner.scan(tree).keywords == keywords[:5]


def test_keyword_list_accepts_name_and_plain_strings():
    tree = {"keywordList": [{"text": "a"}, {"text": "a"}, {"name": "b"}, "c", {"other": "x"}, " "]}

    assert scanner.scan(tree).keywords == ["a", "b", "c"]


def test_first_keyword_list_wins():
    tree = {
        "first": {"keywordList": [{"text": "one"}]},
        "second": {"keywordList": [{"text": "two"}, {"text": "three"}]},
    }

    assert scanner.scan(tree).keywords == ["one"]


def test_text_fields_first_match_wins():
    tree = {
        "first": {"introduction": "x" * 20},
        "second": {"introduction": "y" * 30},
    }

    assert scanner.scan(tree).description == "x" * 20


def test_address_candidates_follow_priority_and_minimum_length():
    assert scanner.scan(
        {"jibunAddress": "서울 강남구 역삼동 123", "roadAddress": "서울 강남구 테헤란로 1"}
    ).address == "서울 강남구 테헤란로 1"
    assert scanner.scan({"roadAddress": "abc", "address": "서울 강남구 역삼동"}).address == "서울 강남구 역삼동"
    assert scanner.scan({"address": {"road": "not a string"}}).address == ""


def test_short_description_and_directions_are_rejected():
    result = scanner.scan({"description": "짧은 소개", "way": "정문"})

    assert result.description == ""
    assert result.directions == ""


def test_missing_fields_and_signals():
    result = scanner.scan({"placeName": "행복한 미용실", "reviewCount": 3})

    missing = result.missing_fields()
    assert "name" not in missing
    assert "review_count" not in missing
    assert {"address", "description", "directions", "keywords", "photo_count"} <= set(missing)

    signals = result.to_signals(Provenance.STATIC_EMBEDDED_JSON)
    assert {s.field: s.value for s in signals} == {"name": "행복한 미용실", "review_count": 3}
    assert all(s.provenance is Provenance.STATIC_EMBEDDED_JSON for s in signals)


def test_scan_ignores_scalars():
    assert scanner.scan("just a string").missing_fields()
    assert scanner.scan(None).review_count == 0

