"""Template-driven improvement text and keyword recommendations (paid content)."""

from typing import Dict, List, Mapping

from placediag.etl.scanner import unique_keywords
from placediag.models import MAX_KEYWORDS, CategoryScore, Improvements, PlaceRecord

IMPROVEMENT_THRESHOLD = 80
DEFAULT_NAME = "매장"
FALLBACK_KEYWORDS = ("예약", "후기", "추천", "전문", "친절")

DESCRIPTION_TEMPLATE = """{name}은(는) 방문 고객이 "다시 찾고 싶은 경험"을 제공하는 것을 목표로 운영됩니다.

✅ 이런 점이 좋아요
- 서비스 품질에 집중
- 편안한 분위기와 쾌적한 공간
- 예약/문의가 편리한 운영

📍 위치
- {address}

🕒 이용 안내
- 영업시간/휴무일, 대표 메뉴·서비스와 가격대를 함께 적어주세요.

※ 상세설명은 200~350자 권장 + 핵심 키워드(지역/역명 + 업종/서비스 + 강점)를 자연스럽게 2~3회 포함하는 것이 좋습니다."""

DIRECTIONS_TEMPLATE = """📍 지하철
- 역명/출구 번호 + 도보 시간(예: 4분) + 랜드마크(건물명/편의점/카페 등)

🚌 버스
- 하차 정류장명 + 도보 동선(횡단보도/골목 진입 등)

🚗 자차
- {address} + 주차 가능 여부(유/무료) + 위치(지하/기계식/인근 유료주차장)

※ "숫자(도보 n분/출구 n번)"와 "기준점(랜드마크)"이 있으면 예약 전환이 크게 올라갑니다."""

REVIEW_GUIDE_TEMPLATE = """✅ 리뷰 늘리는 가장 쉬운 흐름(현장용)
1) 서비스 종료 직후: "오늘 괜찮으셨다면 리뷰 한 줄만 부탁드려요 😊"
2) 가능하면: "{photo_ask} 큰 도움이 됩니다!"

✅ 답글 템플릿
- "소중한 리뷰 감사합니다 😊 다음 방문도 더 만족드리겠습니다. 좋은 하루 보내세요!"

🎯 목표
- 현재 리뷰 {review_count}개 → {review_target}개 이상: 노출 안정화에 유리
- 사진 리뷰 비율 증가: 클릭/전환에 도움

({name} 기준 문구입니다.)"""

PHOTO_GUIDE_TEMPLATE = """📸 사진 구성 가이드 (현재 {photo_count}장 → 목표 {photo_target}장 이상)
- 외관/간판: 처음 방문하는 고객이 찾기 쉽도록
- 내부: 좌석/대기 공간/분위기
- 대표 메뉴·서비스: 결과물 위주로 밝게
- 가격표/메뉴판: 문의를 줄이고 전환을 높입니다

※ {name}의 대표사진은 가장 자신 있는 1장을 첫 번째로 배치하세요."""


def _next_target(count: int, steps=(10, 50, 100)) -> int:
    for step in steps:
        if count < step:
            return step
    return count + 50


def description_improvement(record: PlaceRecord) -> str:
    return DESCRIPTION_TEMPLATE.format(
        name=record.name or DEFAULT_NAME,
        address=record.address.strip() or "접근성이 좋은 위치",
    )


def directions_improvement(record: PlaceRecord) -> str:
    return DIRECTIONS_TEMPLATE.format(address=record.address.strip() or "도로명 주소")


def review_guide(record: PlaceRecord) -> str:
    return REVIEW_GUIDE_TEMPLATE.format(
        name=record.name or DEFAULT_NAME,
        photo_ask="사진도 같이 올려주시면" if record.photo_count > 0 else "사진까지 올려주시면",
        review_count=record.review_count,
        review_target=_next_target(record.review_count),
    )


def photo_guide(record: PlaceRecord) -> str:
    return PHOTO_GUIDE_TEMPLATE.format(
        name=record.name or DEFAULT_NAME,
        photo_count=record.photo_count,
        photo_target=_next_target(record.photo_count, steps=(10, 30, 50)),
    )


def keyword_suggestions(record: PlaceRecord) -> List[str]:
    """The listing's own keywords topped up with generic fallbacks."""
    return unique_keywords(list(record.keywords) + list(FALLBACK_KEYWORDS))


def recommended_keywords(record: PlaceRecord) -> List[str]:
    """Keywords built from the address's administrative areas plus domain terms."""
    parts = record.address.split()
    city = parts[0] if parts else ""
    district = parts[1] if len(parts) > 1 else ""
    base = record.name.split()[0] if record.name.split() else ""

    candidates = [
        f"{district}추천" if district else (f"{city}추천" if city else "지역추천"),
        f"{district}예약" if district else "예약가능",
        f"{city}후기" if city else "후기좋은",
        f"{base}전문" if base else "전문",
        "친절한",
    ]
    return unique_keywords(candidates, limit=MAX_KEYWORDS)


def build_improvements(record: PlaceRecord, scores: Mapping[str, CategoryScore]) -> Improvements:
    """Generate text only for categories scoring below the threshold."""

    def needs(category: str) -> bool:
        return scores[category].score < IMPROVEMENT_THRESHOLD

    fields: Dict[str, object] = {}
    if needs("description"):
        fields["description"] = description_improvement(record)
    if needs("directions"):
        fields["directions"] = directions_improvement(record)
    if needs("reviews"):
        fields["review_guide"] = review_guide(record)
    if needs("photos"):
        fields["photo_guide"] = photo_guide(record)
    if needs("keywords"):
        fields["keyword_suggestions"] = tuple(keyword_suggestions(record))
    return Improvements(**fields)
