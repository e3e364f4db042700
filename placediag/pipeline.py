"""End-to-end analysis: resolve, extract, diagnose, add competitors, gate by plan."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, List, Optional, Union

from placediag.core.competitors import search_competitors
from placediag.core.diagnosis import diagnose
from placediag.core.errors import CompetitorBatchError
from placediag.core.identity import resolve_identity
from placediag.core.place_extractor import PlaceExtractor
from placediag.core.plan_gate import redact
from placediag.models import CompetitorRecord, DiagnosisReport, Plan

logger = logging.getLogger(__name__)

CompetitorSearch = Callable[..., List[CompetitorRecord]]


def run_analysis(
    place_url: str,
    plan: Union[Plan, str] = Plan.FREE,
    search_query: Optional[str] = None,
    *,
    extractor: Optional[PlaceExtractor] = None,
    competitor_search: Optional[CompetitorSearch] = None,
) -> DiagnosisReport:
    """Full pipeline for one listing URL.

    Raises IdentityError for an unresolvable URL and ProviderUnavailable when
    the listing could not be fetched at all. A failed competitor search only
    drops the competitors field.
    """
    plan = Plan(plan)
    identity = resolve_identity(place_url)
    extractor = extractor or PlaceExtractor()
    logger.info("Starting analysis place=%s plan=%s", identity.place_id, plan.value)

    record = extractor.extract(identity)
    report = diagnose(record, plan)

    query = (search_query or "").strip()
    if plan is Plan.PRO and query:
        search = competitor_search or search_competitors
        try:
            competitors = search(query, extractor=extractor, exclude_id=identity.place_id)
        except CompetitorBatchError as exc:
            logger.warning("Competitor analysis unavailable for query=%s: %s", query, exc)
        else:
            report = replace(report, competitors=competitors)

    logger.info(
        "Finished analysis place=%s total=%s grade=%s",
        identity.place_id,
        report.total_score,
        report.total_grade,
    )
    return redact(report, plan)
