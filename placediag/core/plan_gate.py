"""Redact prescriptive (paid) content from reports for the free plan."""

from dataclasses import replace
from typing import Union

from placediag.models import DiagnosisReport, Improvements, Plan

LOCK_MARKER = "🔒 유료 리포트에서 제공됩니다."


def _locked(values) -> tuple:
    return tuple(LOCK_MARKER for _ in values)


def redact(report: DiagnosisReport, plan: Union[Plan, str]) -> DiagnosisReport:
    """Return ``report`` as the given plan may see it.

    Scores, grades and issues are never touched. For the free plan every
    improvement text, every suggested or recommended keyword and every
    competitor keyword is replaced with LOCK_MARKER. Raises ValueError for an
    unknown plan.
    """
    plan = Plan(plan)
    if plan is Plan.PRO:
        return replace(report, plan=plan)

    improvements = report.improvements or Improvements()
    locked_improvements = Improvements(
        description=LOCK_MARKER,
        directions=LOCK_MARKER,
        review_guide=LOCK_MARKER,
        photo_guide=LOCK_MARKER,
        keyword_suggestions=_locked(improvements.keyword_suggestions),
    )
    competitors = report.competitors
    if competitors is not None:
        competitors = [replace(c, keywords=_locked(c.keywords)) for c in competitors]

    return replace(
        report,
        plan=plan,
        improvements=locked_improvements,
        recommended_keywords=_locked(report.recommended_keywords),
        competitors=competitors,
    )
