"""Static-then-dynamic extraction of one Naver Place listing."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

import requests

from placediag.core.config import Settings, get_settings
from placediag.core.errors import BrowserUnavailable, ProviderUnavailable
from placediag.core.identity import resolve_identity
from placediag.etl.markup import extract_title_text, parse_json_payloads, parse_markup
from placediag.etl.merge import fold_signals, is_placeholder, merge_tiers
from placediag.models import ExtractedSignal, ListingIdentity, PlaceRecord, Provenance
from placediag.vendors import naver_place
from placediag.vendors.browser import BrowserSession, RenderRequest, get_browser_session

logger = logging.getLogger(__name__)

PLACE_FRAME_SELECTOR = "iframe#entryIframe"
READY_MARKERS = ("roadAddress", "reviewCount", "keywordList")
# Info tab first so the "more" toggle it reveals can be clicked next.
EXPAND_SELECTORS = (
    "a[role='tab']:has-text('정보')",
    "a:has-text('내용 더보기')",
    "a:has-text('더보기')",
)
TEXT_SELECTORS = {
    "name": ("span.GHAhO", "#_title span", "h1"),
    "address": ("span.LDgIH", "span[class*='addr']"),
    "description": ("div.T8RFa", "div[class*='intro']", "div[class*='desc']"),
    "directions": ("span.zPfVt", "div[class*='way']", "div[class*='direction']"),
}
DOM_GUARDED_FIELDS = ("name", "address")

StaticFetcher = Callable[..., str]


class TierStatus(str, Enum):
    SIGNALS = "signals"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass
class TierResult:
    tier: str
    status: TierStatus
    signals: List[ExtractedSignal] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def from_signals(cls, tier: str, signals: List[ExtractedSignal]) -> "TierResult":
        status = TierStatus.SIGNALS if signals else TierStatus.EMPTY
        return cls(tier=tier, status=status, signals=signals)

    @classmethod
    def failed(cls, tier: str, error: str) -> "TierResult":
        return cls(tier=tier, status=TierStatus.FAILED, error=error)


class PlaceExtractor:
    """Run the extraction tiers for one listing and merge what they find."""

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        fetcher: Optional[StaticFetcher] = None,
        renderer: Optional[BrowserSession] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._fetcher = fetcher or naver_place.fetch_static
        self._renderer = renderer

    @property
    def renderer(self) -> BrowserSession:
        if self._renderer is None:
            self._renderer = get_browser_session()
        return self._renderer

    def extract_url(self, url: str, **kwargs) -> PlaceRecord:
        """Resolve ``url`` first; IdentityError aborts before any network call."""
        return self.extract(resolve_identity(url), **kwargs)

    def extract(
        self,
        identity: ListingIdentity,
        *,
        dynamic: Optional[bool] = None,
        timeout: Optional[float] = None,
    ) -> PlaceRecord:
        """Return the merged record for ``identity``.

        Missing fields come back empty/zero. ProviderUnavailable is raised when
        every attempted tier failed to reach the source, and BrowserUnavailable
        as soon as the dynamic tier finds the browser cannot be started.
        Render timeouts and page errors only empty that tier.
        """
        if dynamic is None:
            dynamic = self.settings.enable_dynamic_tier
        budget = timeout if timeout is not None else self.settings.analysis_timeout_seconds
        deadline = time.monotonic() + budget

        results = [self.static_tier(identity, deadline)]
        if dynamic:
            results.append(self.dynamic_tier(identity, deadline))

        for result in results:
            logger.info(
                "place=%s tier=%s status=%s signals=%d error=%s",
                identity.place_id,
                result.tier,
                result.status.value,
                len(result.signals),
                result.error,
            )

        if all(result.status is TierStatus.FAILED for result in results):
            errors = "; ".join(f"{r.tier}: {r.error}" for r in results)
            raise ProviderUnavailable(f"no source reachable for place {identity.place_id} ({errors})")

        record = merge_tiers(
            fold_signals(result.signals) for result in results if result.status is TierStatus.SIGNALS
        )
        logger.info("place=%s merged record=%s", identity.place_id, record)
        return record

    # ---------- tiers ----------

    def static_tier(self, identity: ListingIdentity, deadline: float) -> TierResult:
        remaining = _remaining(deadline)
        if remaining <= 0:
            return TierResult.failed("static", "deadline exceeded")
        try:
            markup = self._fetcher(
                identity.mobile_url, timeout=min(self.settings.http_timeout_seconds, remaining)
            )
        except requests.RequestException as exc:
            logger.warning("Static fetch failed for %s: %s", identity.mobile_url, exc)
            return TierResult.failed("static", str(exc))

        try:
            signals = parse_markup(
                markup,
                embedded=Provenance.STATIC_EMBEDDED_JSON,
                regex=Provenance.STATIC_REGEX,
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception("Static parse failed for %s: %s", identity.place_id, exc)
            return TierResult.failed("static", f"parse error: {exc}")
        return TierResult.from_signals("static", signals)

    def dynamic_tier(self, identity: ListingIdentity, deadline: float) -> TierResult:
        remaining = _remaining(deadline)
        if remaining <= 0:
            return TierResult.failed("dynamic", "deadline exceeded")

        request = RenderRequest(
            url=identity.canonical_url,
            frame_selector=PLACE_FRAME_SELECTOR,
            ready_markers=READY_MARKERS,
            expand_selectors=EXPAND_SELECTORS,
            text_selectors=TEXT_SELECTORS,
        )
        try:
            page = self.renderer.render(request, timeout=remaining)
        except BrowserUnavailable as exc:
            logger.error("Browser unavailable for %s: %s", identity.place_id, exc)
            raise
        except ProviderUnavailable as exc:
            logger.warning("Dynamic render unavailable for %s: %s", identity.place_id, exc)
            return TierResult.failed("dynamic", str(exc))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Dynamic render failed for %s: %s", identity.place_id, exc)
            return TierResult.failed("dynamic", str(exc))

        try:
            signals = dom_signals(page.dom_text, page.title)
            signals.extend(
                parse_markup(
                    page.markup,
                    embedded=Provenance.DYNAMIC_EMBEDDED_JSON,
                    regex=Provenance.DYNAMIC_REGEX,
                )
            )
            signals.extend(parse_json_payloads(page.json_responses, Provenance.INTERCEPTED_NETWORK_JSON))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Dynamic parse failed for %s: %s", identity.place_id, exc)
            return TierResult.failed("dynamic", f"parse error: {exc}")
        return TierResult.from_signals("dynamic", signals)


def dom_signals(dom_text: dict, title: str = "") -> List[ExtractedSignal]:
    """Signals from rendered DOM text; placeholder name/address text is dropped."""
    found = dict(dom_text)
    if not found.get("name") and title:
        found["name"] = extract_title_text(title)

    signals: List[ExtractedSignal] = []
    for name, value in found.items():
        text = (value or "").strip()
        if not text:
            continue
        if name in DOM_GUARDED_FIELDS and is_placeholder(text):
            continue
        signals.append(ExtractedSignal(name, text, Provenance.DYNAMIC_DOM))
    return signals


def _remaining(deadline: float) -> float:
    return deadline - time.monotonic()
