"""Turn listing page markup into extracted signals.

Three passes, each only for fields the previous ones left empty:
  1. embedded page-state blobs (``__NEXT_DATA__``, then ``__APOLLO_STATE__``)
  2. literal regexes over the raw markup (JSON fields, including escaped JSON)
  3. regexes over the visible text (``방문자 리뷰 1,927`` style counters)
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Iterable, List, Optional, Pattern, Sequence, Set, TypeVar

from bs4 import BeautifulSoup

from placediag.etl.brackets import json_after_marker, json_at
from placediag.etl.scanner import ScanResult, parse_count, scan, unique_keywords
from placediag.models import COUNT_FIELDS, TEXT_FIELDS, ExtractedSignal, Provenance

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

STATE_MARKERS = ("__NEXT_DATA__", "__APOLLO_STATE__")
ALL_FIELDS = TEXT_FIELDS + ("keywords",) + COUNT_FIELDS

_TITLE_SUFFIX = re.compile(r"\s*[:\-|]\s*(?:네이버|NAVER).*$", re.IGNORECASE)


def _json_string_pattern(key: str) -> Pattern[str]:
    return re.compile(r'"%s"\s*:\s*"((?:[^"\\]|\\.)*)"' % re.escape(key))


def _json_count_pattern(keys: Sequence[str]) -> Pattern[str]:
    # Matches both "reviewCount":1927 and the escaped \"reviewCount\":\"1,927\" form.
    alternatives = "|".join(re.escape(key) for key in keys)
    return re.compile(r'\\?"(?:%s)\\?"\s*:\s*\\?"?([\d,]+)' % alternatives)


TEXT_PATTERNS = {
    "name": [_json_string_pattern("placeName"), _json_string_pattern("bizName")],
    "address": [_json_string_pattern("roadAddress"), _json_string_pattern("jibunAddress")],
    "description": [_json_string_pattern("introduction"), _json_string_pattern("description")],
    "directions": [_json_string_pattern("directions"), _json_string_pattern("wayDescription")],
}
COUNT_JSON_PATTERNS = {
    "review_count": _json_count_pattern(("visitorReviewCount", "reviewCount", "totalReviewCount")),
    "photo_count": _json_count_pattern(("photoCount", "totalPhotoCount")),
}
COUNT_VISIBLE_PATTERNS = {
    "review_count": [
        re.compile(r"방문자\s*리뷰\s*([\d,]+)"),
        re.compile(r"리뷰\s*([\d,]+)"),
    ],
    "photo_count": [
        re.compile(r"사진\s*([\d,]+)"),
    ],
}
KEYWORD_ARRAY_START = re.compile(r'"keywordList"\s*:\s*\[')
KEYWORD_TEXT_PATTERN = re.compile(r'"(?:text|name)"\s*:\s*"((?:[^"\\]|\\.)*)"')
KEYWORD_BLOCK_PATTERN = re.compile(r'"keywordList"\s*:\s*\[(.*?)\]', re.DOTALL)


def first_match(candidates: Iterable[T], attempt: Callable[[T], Optional[R]]) -> Optional[R]:
    """Return the first truthy ``attempt(candidate)`` in priority order."""
    for candidate in candidates:
        result = attempt(candidate)
        if result:
            return result
    return None


def _decode_json_string(raw: str) -> str:
    try:
        return json.loads(f'"{raw}"').strip()
    except ValueError:
        return raw.strip()


def _search_text(markup: str, patterns: Sequence[Pattern[str]]) -> Optional[str]:
    def attempt(pattern: Pattern[str]) -> Optional[str]:
        match = pattern.search(markup)
        return _decode_json_string(match.group(1)) if match else None

    return first_match(patterns, attempt)


def _max_count(text: str, pattern: Pattern[str]) -> int:
    return max((parse_count(match) for match in pattern.findall(text)), default=0)


def extract_keywords_from_markup(markup: str) -> List[str]:
    """Pull the keyword list out of raw markup, sliced first, regex as last resort."""
    start = KEYWORD_ARRAY_START.search(markup)
    blob = json_at(markup, start.end() - 1) if start else None
    if isinstance(blob, list):
        keywords = scan({"keywordList": blob}).keywords
        if keywords:
            return keywords

    block = KEYWORD_BLOCK_PATTERN.search(markup)
    if not block:
        return []
    return unique_keywords(_decode_json_string(raw) for raw in KEYWORD_TEXT_PATTERN.findall(block.group(1)))


def extract_title_text(raw: str) -> str:
    """Strip the portal suffix (``" : 네이버"``) from a page title."""
    cleaned = _TITLE_SUFFIX.sub("", raw or "").strip()
    if not cleaned or "네이버" in cleaned:
        return ""
    return cleaned


def extract_title(soup: BeautifulSoup) -> str:
    """Listing name from ``og:title`` or ``<title>``."""
    candidates = []
    og_title = soup.find("meta", attrs={"property": "og:title"})
    if og_title and og_title.get("content"):
        candidates.append(og_title["content"])
    if soup.title and soup.title.string:
        candidates.append(soup.title.string)
    return first_match(candidates, extract_title_text) or ""


def _filled(signals: Sequence[ExtractedSignal]) -> Set[str]:
    return {signal.field for signal in signals}


def scan_state_blobs(markup: str, provenance: Provenance) -> List[ExtractedSignal]:
    """Scan embedded state blobs; the second marker is only tried if fields are missing."""
    signals: List[ExtractedSignal] = []
    for marker in STATE_MARKERS:
        if set(ALL_FIELDS) <= _filled(signals):
            break
        blob = json_after_marker(markup, marker)
        if blob is None:
            logger.debug("No %s blob found", marker)
            continue
        result: ScanResult = scan(blob)
        logger.debug("%s blob filled %s", marker, sorted(set(ALL_FIELDS) - set(result.missing_fields())))
        signals.extend(result.to_signals(provenance))
    return signals


def regex_fallbacks(markup: str, missing: Set[str], provenance: Provenance, soup: Optional[BeautifulSoup] = None) -> List[ExtractedSignal]:
    """Literal regex fallbacks for whatever the structured passes left empty."""
    found = {}

    if "name" in missing and soup is not None:
        found["name"] = extract_title(soup)

    for name, patterns in TEXT_PATTERNS.items():
        if name in missing and not found.get(name):
            found[name] = _search_text(markup, patterns)

    if "keywords" in missing:
        found["keywords"] = tuple(extract_keywords_from_markup(markup))

    visible = soup.get_text(" ", strip=True) if soup is not None else ""
    for name, pattern in COUNT_JSON_PATTERNS.items():
        if name not in missing:
            continue
        count = _max_count(markup, pattern)
        if not count and visible:
            count = first_match(COUNT_VISIBLE_PATTERNS[name], lambda p: _max_count(visible, p)) or 0
        found[name] = count

    return [ExtractedSignal(name, value, provenance) for name, value in found.items() if value]


def parse_markup(markup: str, *, embedded: Provenance, regex: Provenance) -> List[ExtractedSignal]:
    """All signals a page's markup yields, structured passes before regexes."""
    if not markup:
        return []

    signals = scan_state_blobs(markup, embedded)
    missing = set(ALL_FIELDS) - _filled(signals)
    if missing:
        soup = BeautifulSoup(markup, "html.parser")
        signals.extend(regex_fallbacks(markup, missing, regex, soup))
    return signals


def parse_json_payloads(payloads: Iterable[Any], provenance: Provenance) -> List[ExtractedSignal]:
    """Scan intercepted JSON bodies one by one so each keeps first-match semantics."""
    signals: List[ExtractedSignal] = []
    for payload in payloads:
        signals.extend(scan(payload).to_signals(provenance))
    return signals
