import pytest

from placediag import pipeline
from placediag.core.errors import CompetitorBatchError, IdentityError
from placediag.core.plan_gate import LOCK_MARKER
from placediag.models import CompetitorRecord, Plan, PlaceRecord

URL = "https://m.place.naver.com/place/1234567/home"

RECORD = PlaceRecord(
    name="행복한 미용실",
    address="서울 강남구 테헤란로 123",
    description="짧은 소개",
    keywords=("강남미용실", "펌"),
    review_count=75,
    photo_count=12,
)


class DummyExtractor:
    def __init__(self):
        self.identities = []

    def extract(self, identity, **kwargs):
        self.identities.append(identity)
        return RECORD


def _competitor_search(calls, result=None, exc=None):
    def search(term, **kwargs):
        calls.append((term, kwargs))
        if exc is not None:
            raise exc
        return result or [CompetitorRecord("옆집", "서울 강남구", ("펌",), 10, 5)]

    return search


def test_free_plan_report_is_redacted_and_skips_competitors():
    calls = []
    extractor = DummyExtractor()

    report = pipeline.run_analysis(
        URL, "free", "강남 미용실", extractor=extractor, competitor_search=_competitor_search(calls)
    )

    assert extractor.identities[0].place_id == "1234567"
    assert report.plan is Plan.FREE
    assert report.scores["reviews"].score == 80
    assert report.improvements.description == LOCK_MARKER
    assert report.competitors is None
    assert calls == []


def test_pro_plan_includes_competitors():
    calls = []
    extractor = DummyExtractor()

    report = pipeline.run_analysis(
        URL, Plan.PRO, "  강남 미용실 ", extractor=extractor, competitor_search=_competitor_search(calls)
    )

    assert report.improvements.description != LOCK_MARKER
    assert [c.name for c in report.competitors] == ["옆집"]
    term, kwargs = calls[0]
    assert term == "강남 미용실"
    assert kwargs["exclude_id"] == "1234567"
    assert kwargs["extractor"] is extractor


def test_pro_plan_without_query_has_no_competitors():
    calls = []

    report = pipeline.run_analysis(URL, Plan.PRO, "", extractor=DummyExtractor(), competitor_search=_competitor_search(calls))

    assert report.competitors is None
    assert calls == []
    assert "competitors" not in report.to_dict()["recommend"]


def test_competitor_batch_failure_omits_field():
    calls = []

    report = pipeline.run_analysis(
        URL,
        Plan.PRO,
        "강남 미용실",
        extractor=DummyExtractor(),
        competitor_search=_competitor_search(calls, exc=CompetitorBatchError("down")),
    )

    assert report.competitors is None
    assert report.total_score > 0


def test_unresolvable_url_never_reaches_extractor():
    extractor = DummyExtractor()

    with pytest.raises(IdentityError):
        pipeline.run_analysis("https://example.com/", extractor=extractor)

    assert extractor.identities == []


def test_unknown_plan_rejected():
    with pytest.raises(ValueError):
        pipeline.run_analysis(URL, "gold", extractor=DummyExtractor())
