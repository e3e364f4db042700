"""Fold extracted signals into records and merge records across tiers."""

import logging
from dataclasses import replace
from typing import Dict, Iterable, Sequence, Tuple

from placediag.models import (
    COUNT_FIELDS,
    MAX_KEYWORDS,
    TEXT_FIELDS,
    ExtractedSignal,
    PlaceRecord,
    Provenance,
)

logger = logging.getLogger(__name__)

# Page chrome that sometimes leaks into the name/address DOM nodes.
_PLACEHOLDER_TOKENS = ("네이버", "naver", "로딩", "loading")
DOM_PRIORITY_FIELDS = ("name", "address")

Sources = Dict[str, Provenance]


def is_placeholder(text: str) -> bool:
    cleaned = (text or "").strip()
    if len(cleaned) < 2:
        return True
    lowered = cleaned.lower()
    return any(token in lowered for token in _PLACEHOLDER_TOKENS)


def fold_signals(signals: Sequence[ExtractedSignal]) -> Tuple[PlaceRecord, Sources]:
    """Collapse one tier's signals into a record.

    Text fields and keywords take the best-ranked signal, earliest first among
    equals. Counts take the largest value seen.
    """
    ordered = sorted(enumerate(signals), key=lambda pair: (pair[1].rank, pair[0]))
    values: Dict[str, object] = {}
    sources: Sources = {}

    for _, signal in ordered:
        if signal.field in COUNT_FIELDS:
            current = values.get(signal.field, 0)
            if int(signal.value) > current:
                values[signal.field] = int(signal.value)
                sources[signal.field] = signal.provenance
        elif signal.field not in values and signal.value:
            if signal.field == "keywords":
                values[signal.field] = tuple(signal.value)[:MAX_KEYWORDS]
            else:
                values[signal.field] = str(signal.value).strip()
            sources[signal.field] = signal.provenance

    return PlaceRecord(**values), sources


def merge_records(base: PlaceRecord, other: PlaceRecord) -> PlaceRecord:
    """Merge two partial records, only ever improving ``base``.

    Non-empty beats empty and longer beats shorter for text, larger wins for
    counts, and the first non-empty keyword list is kept.
    """
    updates: Dict[str, object] = {}
    for name in TEXT_FIELDS:
        current = getattr(base, name)
        candidate = getattr(other, name)
        if len(candidate) > len(current):
            updates[name] = candidate
    for name in COUNT_FIELDS:
        if getattr(other, name) > getattr(base, name):
            updates[name] = getattr(other, name)
    if not base.keywords and other.keywords:
        updates["keywords"] = other.keywords
    return replace(base, **updates) if updates else base


def merge_tiers(tiers: Iterable[Tuple[PlaceRecord, Sources]]) -> PlaceRecord:
    """Merge tier outputs in order, letting rendered DOM text win for name/address."""
    merged = PlaceRecord()
    dom_overrides: Dict[str, str] = {}

    for record, sources in tiers:
        placeholders = {}
        for name in DOM_PRIORITY_FIELDS:
            if sources.get(name) is not Provenance.DYNAMIC_DOM:
                continue
            value = getattr(record, name)
            if is_placeholder(value):
                placeholders[name] = ""
            elif name not in dom_overrides:
                dom_overrides[name] = value
        merged = merge_records(merged, replace(record, **placeholders) if placeholders else record)

    if dom_overrides:
        logger.debug("DOM text overrides for fields: %s", sorted(dom_overrides))
        merged = replace(merged, **dom_overrides)
    return merged

