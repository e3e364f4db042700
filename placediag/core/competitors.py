"""Competitor aggregation: search, then extract each result listing."""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional

import requests
from bs4 import BeautifulSoup

from placediag.core.config import Settings, get_settings
from placediag.core.errors import CompetitorBatchError, PlaceDiagError
from placediag.core.identity import canonical_url, extract_place_id
from placediag.core.place_extractor import PlaceExtractor
from placediag.models import CompetitorRecord, ListingIdentity
from placediag.vendors import naver_place

logger = logging.getLogger(__name__)

# Ids that show up outside anchors (Apollo cache keys, inline links in JSON).
_MARKUP_ID_PATTERN = re.compile(r"(?:/place/|/entry/place/|Place[A-Za-z]*:)(\d{7,})")

SearchFetcher = Callable[..., str]


def collect_place_ids(markup: str, limit: int, *, exclude_id: Optional[str] = None) -> List[str]:
    """Distinct listing ids from search result markup, in page order."""
    ids: List[str] = []

    def add(place_id: Optional[str]) -> bool:
        if place_id and place_id != exclude_id and place_id not in ids:
            ids.append(place_id)
        return len(ids) >= limit

    soup = BeautifulSoup(markup or "", "html.parser")
    for anchor in soup.find_all("a", href=True):
        if add(extract_place_id(anchor["href"], allow_fallback=False)):
            return ids

    for match in _MARKUP_ID_PATTERN.finditer(markup or ""):
        if add(match.group(1)):
            break
    return ids


def search_competitors(
    term: str,
    limit: Optional[int] = None,
    *,
    extractor: Optional[PlaceExtractor] = None,
    exclude_id: Optional[str] = None,
    settings: Optional[Settings] = None,
    search_fetcher: Optional[SearchFetcher] = None,
) -> List[CompetitorRecord]:
    """Extract up to ``limit`` listings found by searching ``term``.

    Raises CompetitorBatchError when the search page cannot be loaded. A
    single listing that fails to extract is skipped.
    """
    settings = settings or get_settings()
    limit = limit or settings.competitor_limit
    extractor = extractor or PlaceExtractor(settings=settings)
    fetch = search_fetcher or naver_place.fetch_search

    logger.info("Searching competitors term=%s limit=%d", term, limit)
    try:
        markup = fetch(term, timeout=settings.http_timeout_seconds)
    except (requests.RequestException, ValueError) as exc:
        logger.error("Competitor search failed for term=%s: %s", term, exc)
        raise CompetitorBatchError(f"search page unavailable: {exc}") from exc

    place_ids = collect_place_ids(markup, limit, exclude_id=exclude_id)
    logger.info("Found %d competitor listings for term=%s", len(place_ids), term)
    if not place_ids:
        return []

    def extract_one(place_id: str) -> Optional[CompetitorRecord]:
        identity = ListingIdentity(place_id=place_id, canonical_url=canonical_url(place_id))
        try:
            record = extractor.extract(
                identity, dynamic=False, timeout=settings.http_timeout_seconds * 2
            )
        except PlaceDiagError as exc:
            logger.warning("Skipping competitor %s: %s", place_id, exc)
            return None
        except Exception as exc:  # noqa: BLE001
            logger.exception("Competitor extraction crashed for %s: %s", place_id, exc)
            return None
        return CompetitorRecord.from_place(record)

    workers = max(1, min(settings.competitor_concurrency, len(place_ids)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="competitor") as executor:
        results = list(executor.map(extract_one, place_ids))

    return [record for record in results if record is not None]
