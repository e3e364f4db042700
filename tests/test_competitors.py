import pytest
import requests

from placediag.core import competitors
from placediag.core.config import Settings
from placediag.core.errors import CompetitorBatchError, ProviderUnavailable
from placediag.models import PlaceRecord

SEARCH_HTML = """
<html><body>
  <ul>
    <li><a href="https://m.place.naver.com/hairshop/1111111/home">A</a></li>
    <li><a href="https://m.place.naver.com/place/2222222">B</a></li>
    <li><a href="https://m.place.naver.com/hairshop/1111111/review">A again</a></li>
    <li><a href="https://m.place.naver.com/place/1234567">self</a></li>
    <li><a href="/help/faq">help</a></li>
  </ul>
  <script>window.__APOLLO_STATE__ = {"PlaceSummary:3333333": {}, "PlaceSummary:4444444": {}};</script>
</body></html>
"""


class DummyExtractor:
    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls = []

    def extract(self, identity, dynamic=None, timeout=None):
        self.calls.append((identity.place_id, dynamic, timeout))
        if identity.place_id in self.failing:
            raise ProviderUnavailable("blocked")
        return PlaceRecord(
            name=f"가게 {identity.place_id}",
            address="서울 강남구",
            keywords=("키워드",),
            review_count=int(identity.place_id[:2]),
        )


def _search(markup=SEARCH_HTML):
    def fetch(term, timeout=None):
        return markup

    return fetch


def test_collect_place_ids_dedupes_and_excludes_self():
    ids = competitors.collect_place_ids(SEARCH_HTML, 10, exclude_id="1234567")

    assert ids == ["1111111", "2222222", "3333333", "4444444"]


def test_collect_place_ids_respects_limit():
    assert competitors.collect_place_ids(SEARCH_HTML, 2) == ["1111111", "2222222"]


def test_search_competitors_preserves_order_and_skips_failures():
    extractor = DummyExtractor(failing={"2222222"})

    results = competitors.search_competitors(
        "강남 미용실",
        4,
        extractor=extractor,
        exclude_id="1234567",
        settings=Settings(competitor_concurrency=2),
        search_fetcher=_search(),
    )

    assert [r.name for r in results] == ["가게 1111111", "가게 3333333", "가게 4444444"]
    assert results[0].review_count == 11
    assert all(dynamic is False for _, dynamic, _ in extractor.calls)


def test_search_competitors_uses_configured_limit():
    extractor = DummyExtractor()

    results = competitors.search_competitors(
        "강남 미용실",
        extractor=extractor,
        settings=Settings(competitor_limit=1),
        search_fetcher=_search(),
    )

    assert len(results) == 1


def test_search_competitors_with_no_results():
    results = competitors.search_competitors(
        "없는 가게",
        extractor=DummyExtractor(),
        settings=Settings(),
        search_fetcher=_search("<html></html>"),
    )

    assert results == []


def test_search_page_failure_raises_batch_error():
    def broken(term, timeout=None):
        raise requests.Timeout("slow")

    with pytest.raises(CompetitorBatchError):
        competitors.search_competitors(
            "강남 미용실", extractor=DummyExtractor(), settings=Settings(), search_fetcher=broken
        )
