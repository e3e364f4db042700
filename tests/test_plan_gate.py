from dataclasses import replace

import pytest

from placediag.core import diagnosis, plan_gate
from placediag.models import CompetitorRecord, Plan, PlaceRecord

RECORD = PlaceRecord(
    name="행복한 미용실",
    address="서울 강남구 테헤란로 123",
    description="짧은 소개",
    directions="",
    keywords=("강남미용실",),
    review_count=12,
    photo_count=3,
)


def _report():
    report = diagnosis.diagnose(RECORD, fetched_at="2024-01-01T00:00:00+00:00")
    competitor = CompetitorRecord(
        name="옆집 미용실", address="서울 강남구 역삼로 1", keywords=("역삼미용실", "펌"), review_count=40, photo_count=20
    )
    return replace(report, competitors=[competitor])


def test_free_plan_locks_every_prescriptive_field():
    redacted = plan_gate.redact(_report(), Plan.FREE)

    assert redacted.plan is Plan.FREE
    assert redacted.improvements.description == plan_gate.LOCK_MARKER
    assert redacted.improvements.directions == plan_gate.LOCK_MARKER
    assert redacted.improvements.review_guide == plan_gate.LOCK_MARKER
    assert redacted.improvements.photo_guide == plan_gate.LOCK_MARKER
    assert set(redacted.improvements.keyword_suggestions) == {plan_gate.LOCK_MARKER}
    assert len(redacted.recommended_keywords) == 5
    assert set(redacted.recommended_keywords) == {plan_gate.LOCK_MARKER}
    assert redacted.competitors[0].keywords == (plan_gate.LOCK_MARKER, plan_gate.LOCK_MARKER)
    assert redacted.competitors[0].name == "옆집 미용실"


def test_free_plan_keeps_scores_and_issues():
    report = _report()

    redacted = plan_gate.redact(report, "free")

    assert redacted.scores == report.scores
    assert redacted.total_score == report.total_score
    assert redacted.total_grade == report.total_grade
    assert redacted.place == report.place


def test_pro_plan_passes_content_through():
    report = _report()

    revealed = plan_gate.redact(report, "pro")

    assert revealed.plan is Plan.PRO
    assert revealed.improvements == report.improvements
    assert revealed.recommended_keywords == report.recommended_keywords
    assert revealed.competitors == report.competitors


def test_unknown_plan_is_rejected():
    with pytest.raises(ValueError):
        plan_gate.redact(_report(), "enterprise")


def test_free_report_serializes_lock_marker():
    payload = plan_gate.redact(_report(), Plan.FREE).to_dict()

    assert payload["meta"]["plan"] == "free"
    assert payload["recommend"]["improvements"]["reviewGuide"] == plan_gate.LOCK_MARKER
    assert payload["recommend"]["competitors"][0]["keywords"] == [plan_gate.LOCK_MARKER] * 2
    assert payload["scores"]["reviews"]["score"] == 60
