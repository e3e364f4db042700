"""Core data models shared by the extraction and diagnosis pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

TEXT_FIELDS = ("name", "address", "description", "directions")
COUNT_FIELDS = ("review_count", "photo_count")
MAX_KEYWORDS = 5


class Provenance(str, Enum):
    """Where a signal was discovered. Lower rank wins inside a tier."""

    DYNAMIC_DOM = "dynamic-dom"
    STATIC_EMBEDDED_JSON = "static-embedded-json"
    DYNAMIC_EMBEDDED_JSON = "dynamic-embedded-json"
    INTERCEPTED_NETWORK_JSON = "intercepted-network-json"
    STATIC_REGEX = "static-regex"
    DYNAMIC_REGEX = "dynamic-regex"

    @property
    def rank(self) -> int:
        return _PROVENANCE_RANK[self]


_PROVENANCE_RANK = {
    Provenance.DYNAMIC_DOM: 0,
    Provenance.STATIC_EMBEDDED_JSON: 1,
    Provenance.DYNAMIC_EMBEDDED_JSON: 1,
    Provenance.INTERCEPTED_NETWORK_JSON: 2,
    Provenance.STATIC_REGEX: 3,
    Provenance.DYNAMIC_REGEX: 3,
}


class Plan(str, Enum):
    FREE = "free"
    PRO = "pro"


@dataclass(frozen=True)
class ListingIdentity:
    """A resolved listing id plus the canonical URL derived from it."""

    place_id: str
    canonical_url: str

    @property
    def mobile_url(self) -> str:
        return f"https://m.place.naver.com/place/{self.place_id}/home"


@dataclass(frozen=True)
class ExtractedSignal:
    field: str
    value: Any
    provenance: Provenance

    @property
    def rank(self) -> int:
        return self.provenance.rank


@dataclass(frozen=True)
class PlaceRecord:
    """Normalized snapshot of one listing."""

    name: str = ""
    address: str = ""
    description: str = ""
    directions: str = ""
    keywords: tuple = ()
    review_count: int = 0
    photo_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "address": self.address,
            "description": self.description,
            "directions": self.directions,
            "keywords": list(self.keywords),
            "reviewCount": self.review_count,
            "photoCount": self.photo_count,
        }


@dataclass(frozen=True)
class CompetitorRecord:
    name: str
    address: str
    keywords: tuple
    review_count: int
    photo_count: int

    @classmethod
    def from_place(cls, record: PlaceRecord) -> "CompetitorRecord":
        return cls(
            name=record.name,
            address=record.address,
            keywords=record.keywords,
            review_count=record.review_count,
            photo_count=record.photo_count,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "address": self.address,
            "keywords": list(self.keywords),
            "reviewCount": self.review_count,
            "photoCount": self.photo_count,
        }


@dataclass(frozen=True)
class CategoryScore:
    score: int
    grade: str
    issues: tuple = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"score": self.score, "grade": self.grade, "issues": list(self.issues)}


@dataclass(frozen=True)
class Improvements:
    """Prescriptive (paid) content. Fields are None when the category needs no help."""

    description: Optional[str] = None
    directions: Optional[str] = None
    review_guide: Optional[str] = None
    photo_guide: Optional[str] = None
    keyword_suggestions: tuple = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "directions": self.directions,
            "reviewGuide": self.review_guide,
            "photoGuide": self.photo_guide,
            "keywordSuggestions": list(self.keyword_suggestions),
        }


@dataclass(frozen=True)
class DiagnosisReport:
    place: PlaceRecord
    scores: Dict[str, CategoryScore]
    total_score: int
    total_grade: str
    plan: Plan
    fetched_at: str
    improvements: Optional[Improvements] = None
    recommended_keywords: tuple = ()
    competitors: Optional[List[CompetitorRecord]] = field(default=None)

    def to_dict(self) -> Dict[str, Any]:
        """Render the report in the wire shape returned by the HTTP surface."""
        recommend: Dict[str, Any] = {
            "totalScore": self.total_score,
            "totalGrade": self.total_grade,
            "improvements": self.improvements.to_dict() if self.improvements else None,
            "recommendedKeywords": list(self.recommended_keywords),
        }
        if self.competitors is not None:
            recommend["competitors"] = [c.to_dict() for c in self.competitors]
        return {
            "success": True,
            "meta": {"fetchedAt": self.fetched_at, "plan": self.plan.value},
            "place": self.place.to_dict(),
            "scores": {name: score.to_dict() for name, score in self.scores.items()},
            "recommend": recommend,
        }
