"""Deterministic scoring of a listing record across five fixed categories."""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from placediag.core.improvements import build_improvements, recommended_keywords
from placediag.models import CategoryScore, DiagnosisReport, Plan, PlaceRecord

CATEGORIES = ("description", "directions", "keywords", "reviews", "photos")

# (minimum score, grade), checked top-down.
GRADE_THRESHOLDS = ((95, "S"), (80, "A"), (70, "B"), (55, "C"), (40, "D"))

OPERATIONAL_KEYWORDS = (
    "영업시간",
    "운영시간",
    "시간",
    "가격",
    "요금",
    "비용",
    "메뉴",
    "서비스",
    "예약",
    "시술",
    "진료",
)
TRANSIT_KEYWORDS = ("지하철", "출구", "도보", "버스", "정류장", "주차", "자차")
# A station name ending in 역 ("강남역 3번", "역삼역에서"); not 지역, 구역, 역할 and the like.
STATION_PATTERN = re.compile(r"[가-힣A-Za-z0-9]+(?<![지구영전무])역(?=\s|에서|앞|\d|[,.)]|$)")

# (upper bound exclusive, score) bands; counts at or past the last bound score 100.
REVIEW_BANDS = ((10, 30), (50, 60), (100, 80))
PHOTO_BANDS = ((10, 30), (30, 60), (50, 80))


def grade_for(score: int) -> str:
    for minimum, grade in GRADE_THRESHOLDS:
        if score >= minimum:
            return grade
    return "F"


def _category(score: int, issues: List[str]) -> CategoryScore:
    score = max(0, min(100, score))
    return CategoryScore(score=score, grade=grade_for(score), issues=tuple(issues))


def _contains_any(text: str, keywords: Sequence[str]) -> bool:
    return any(keyword in text for keyword in keywords)


def score_description(text: str) -> CategoryScore:
    text = (text or "").strip()
    if not text:
        return _category(0, ["상세설명이 없습니다."])

    score = 100
    issues: List[str] = []
    if len(text) < 100:
        score -= 30
        issues.append("상세설명이 너무 짧습니다 (100자 미만, 200자 이상 권장).")
    elif len(text) < 200:
        score -= 15
        issues.append("200자 이상으로 확장하면 검색/전환에 더 유리합니다.")
    if not _contains_any(text, OPERATIONAL_KEYWORDS):
        score -= 20
        issues.append("영업시간/가격/메뉴/서비스 등 이용 정보가 빠져 있습니다.")
    return _category(score, issues)


def score_directions(text: str) -> CategoryScore:
    text = (text or "").strip()
    if not text:
        return _category(0, ["오시는길 정보가 없습니다."])

    score = 100
    issues: List[str] = []
    if len(text) < 50:
        score -= 30
        issues.append("출구/도보시간/랜드마크 등 구체 정보가 부족합니다.")
    if not (_contains_any(text, TRANSIT_KEYWORDS) or STATION_PATTERN.search(text)):
        score -= 25
        issues.append("지하철/버스/주차 등 교통·주차 안내가 없습니다.")
    return _category(score, issues)


def score_keywords(keywords: Sequence[str]) -> CategoryScore:
    count = len([k for k in keywords or () if k])
    if count == 0:
        return _category(0, ["대표키워드가 비어있습니다."])
    if count < 3:
        return _category(60, ["대표키워드를 5개까지 채우는 것을 권장합니다."])
    if count < 5:
        return _category(80, ["대표키워드 5개를 모두 채우면 노출 안정성이 올라갑니다."])
    return _category(100, [])


def _banded(count: int, bands) -> int:
    if count <= 0:
        return 0
    for upper, score in bands:
        if count < upper:
            return score
    return 100


def score_reviews(count: int) -> CategoryScore:
    score = _banded(count, REVIEW_BANDS)
    issues: List[str] = []
    if score == 0:
        issues.append("리뷰가 없습니다.")
    elif count < 10:
        issues.append("리뷰 10개 이상 확보를 권장합니다.")
    elif count < 50:
        issues.append("리뷰 50개 이상이면 노출이 더 안정적입니다.")
    elif count < 100:
        issues.append("리뷰 100개 이상을 목표로 꾸준히 확보하세요.")
    return _category(score, issues)


def score_photos(count: int) -> CategoryScore:
    score = _banded(count, PHOTO_BANDS)
    issues: List[str] = []
    if score == 0:
        issues.append("사진이 없습니다.")
    elif count < 10:
        issues.append("사진 10장 이상(외관/내부/메뉴·가격표/작업 사진)을 권장합니다.")
    elif count < 30:
        issues.append("사진 30장 이상이면 클릭/전환에 더 유리합니다.")
    elif count < 50:
        issues.append("대표사진 구성과 퀄리티를 개선하면 전환율이 올라갑니다.")
    return _category(score, issues)


def score_record(record: PlaceRecord) -> Dict[str, CategoryScore]:
    return {
        "description": score_description(record.description),
        "directions": score_directions(record.directions),
        "keywords": score_keywords(record.keywords),
        "reviews": score_reviews(record.review_count),
        "photos": score_photos(record.photo_count),
    }


def total_score(scores: Sequence[int]) -> int:
    """Mean of the category scores, rounded half up."""
    if not scores:
        return 0
    return int(math.floor(sum(scores) / len(scores) + 0.5))


def diagnose(
    record: PlaceRecord,
    plan: Plan = Plan.FREE,
    *,
    fetched_at: Optional[str] = None,
) -> DiagnosisReport:
    """Score ``record`` and attach the prescriptive content.

    Improvements are always generated here; redaction for the free plan is
    the plan gate's job.
    """
    scores = score_record(record)
    total = total_score([scores[name].score for name in CATEGORIES])
    return DiagnosisReport(
        place=record,
        scores=scores,
        total_score=total,
        total_grade=grade_for(total),
        plan=Plan(plan),
        fetched_at=fetched_at or datetime.now(timezone.utc).isoformat(),
        improvements=build_improvements(record, scores),
        recommended_keywords=tuple(recommended_keywords(record)),
    )
