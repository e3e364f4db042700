"""Opportunistic signal harvesting from arbitrary decoded JSON trees.

Listing payloads differ by category (restaurant, hairshop, hospital...) and by
source (``__NEXT_DATA__``, the Apollo cache, GraphQL responses), so instead of
walking a known path we visit every object node and test it against ordered
candidate field names.

Text fields are first-match-wins within one scan, so the result does not depend
on which duplicate copy of a node the walk reaches last. Counts take the max
over every candidate field in the tree: the same figure is exposed under
several names and some of them are partial (e.g. blog-only review counts).
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from placediag.models import MAX_KEYWORDS, ExtractedSignal, Provenance

NAME_FIELDS = ("placeName", "bizName", "businessName")
ADDRESS_FIELDS = ("roadAddress", "jibunAddress", "address", "fullAddress")
DESCRIPTION_FIELDS = ("introduction", "description", "summary", "businessDescription")
DIRECTIONS_FIELDS = ("directions", "way", "wayDescription", "directionDescription")
REVIEW_COUNT_FIELDS = (
    "reviewCount",
    "totalReviewCount",
    "visitorReviewCount",
    "blogReviewCount",
    "reviewsCount",
)
PHOTO_COUNT_FIELDS = ("photoCount", "totalPhotoCount", "photosCount", "imageCount")
KEYWORD_LIST_FIELD = "keywordList"
KEYWORD_TEXT_FIELDS = ("text", "name")

# (record field, candidate names, minimum stripped length)
TEXT_CANDIDATES: Tuple[Tuple[str, Sequence[str], int], ...] = (
    ("name", NAME_FIELDS, 1),
    ("address", ADDRESS_FIELDS, 5),
    ("description", DESCRIPTION_FIELDS, 15),
    ("directions", DIRECTIONS_FIELDS, 15),
)
COUNT_CANDIDATES: Tuple[Tuple[str, Sequence[str]], ...] = (
    ("review_count", REVIEW_COUNT_FIELDS),
    ("photo_count", PHOTO_COUNT_FIELDS),
)

_NON_DIGITS = re.compile(r"\D")


def parse_count(value: Any) -> int:
    """Coerce a count-like value to a non-negative int; anything unusable is 0."""
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, float):
        return max(int(value), 0) if math.isfinite(value) else 0
    if isinstance(value, str):
        digits = _NON_DIGITS.sub("", value)
        return int(digits) if digits else 0
    return 0


def unique_keywords(values: Sequence[Any], limit: int = MAX_KEYWORDS) -> List[str]:
    """Strip, drop empties, dedupe preserving order, then truncate."""
    seen: List[str] = []
    for value in values:
        text = str(value).strip() if value is not None else ""
        if text and text not in seen:
            seen.append(text)
        if len(seen) >= limit:
            break
    return seen


@dataclass
class ScanResult:
    """Fields discovered by one scan. Empty/zero means not found."""

    name: str = ""
    address: str = ""
    description: str = ""
    directions: str = ""
    keywords: List[str] = field(default_factory=list)
    review_count: int = 0
    photo_count: int = 0

    def missing_fields(self) -> List[str]:
        missing = [name for name, _, _ in TEXT_CANDIDATES if not getattr(self, name)]
        if not self.keywords:
            missing.append("keywords")
        missing.extend(name for name, _ in COUNT_CANDIDATES if not getattr(self, name))
        return missing

    def to_signals(self, provenance: Provenance) -> List[ExtractedSignal]:
        signals: List[ExtractedSignal] = []
        for name, _, _ in TEXT_CANDIDATES:
            value = getattr(self, name)
            if value:
                signals.append(ExtractedSignal(name, value, provenance))
        if self.keywords:
            signals.append(ExtractedSignal("keywords", tuple(self.keywords), provenance))
        for name, _ in COUNT_CANDIDATES:
            value = getattr(self, name)
            if value:
                signals.append(ExtractedSignal(name, value, provenance))
        return signals


def scan(value: Any) -> ScanResult:
    """Walk ``value`` and return every signal it exposes."""
    result = ScanResult()
    _visit(value, result)
    return result


def _visit(node: Any, acc: ScanResult) -> None:
    if isinstance(node, list):
        for item in node:
            _visit(item, acc)
        return
    if not isinstance(node, dict):
        return

    _match_keywords(node, acc)
    _match_counts(node, acc)
    _match_text(node, acc)

    for child in node.values():
        if isinstance(child, (dict, list)):
            _visit(child, acc)


def _match_keywords(node: Dict[str, Any], acc: ScanResult) -> None:
    if acc.keywords:
        return
    raw = node.get(KEYWORD_LIST_FIELD)
    if not isinstance(raw, list):
        return
    acc.keywords = unique_keywords(_keyword_text(item) for item in raw)


def _keyword_text(item: Any) -> Optional[str]:
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        for key in KEYWORD_TEXT_FIELDS:
            value = item.get(key)
            if isinstance(value, str) and value.strip():
                return value
    return None


def _match_counts(node: Dict[str, Any], acc: ScanResult) -> None:
    for target, candidates in COUNT_CANDIDATES:
        best = getattr(acc, target)
        for key in candidates:
            if key in node:
                best = max(best, parse_count(node[key]))
        setattr(acc, target, best)


def _match_text(node: Dict[str, Any], acc: ScanResult) -> None:
    for target, candidates, min_length in TEXT_CANDIDATES:
        if getattr(acc, target):
            continue
        for key in candidates:
            value = node.get(key)
            if isinstance(value, str) and len(value.strip()) >= min_length:
                setattr(acc, target, value.strip())
                break
