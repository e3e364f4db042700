"""Resolve the many Naver Place URL shapes to one listing identity."""

import re
from typing import Optional
from urllib.parse import urlparse

from placediag.core.errors import IdentityError
from placediag.models import ListingIdentity

CANONICAL_URL_TEMPLATE = "https://map.naver.com/p/entry/place/{place_id}"

VALID_HOSTS = {
    "m.place.naver.com",
    "place.naver.com",
    "map.naver.com",
    "m.map.naver.com",
    "naver.me",
}

# Tried in order; the bare-digits fallback must stay last.
_ID_PATTERNS = (
    re.compile(r"/entry/place/(\d+)"),
    re.compile(r"m\.place\.naver\.com/(?:place|[^/?#]+)/(\d+)"),
    re.compile(r"place\.naver\.com/[^/?#]+/(\d+)"),
    re.compile(r"[?&]place=(\d+)"),
    re.compile(r"[?&]id=(\d{7,})"),
)
_DIGITS_FALLBACK = re.compile(r"(\d{7,})")


def extract_place_id(url: str, *, allow_fallback: bool = True) -> Optional[str]:
    """Return the listing id embedded in ``url`` or None."""
    text = (url or "").strip()
    if not text:
        return None
    for pattern in _ID_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)
    if allow_fallback:
        match = _DIGITS_FALLBACK.search(text)
        if match:
            return match.group(1)
    return None


def is_valid_place_url(url: str) -> bool:
    """True when ``url`` points at a known Naver host and carries a listing id."""
    try:
        parsed = urlparse((url or "").strip())
    except ValueError:
        return False
    host = (parsed.hostname or "").lower()
    if host not in VALID_HOSTS:
        return False
    return extract_place_id(url) is not None


def canonical_url(place_id: str) -> str:
    return CANONICAL_URL_TEMPLATE.format(place_id=place_id)


def resolve_identity(url: str) -> ListingIdentity:
    """Map any supported URL shape to its :class:`ListingIdentity`.

    Raises IdentityError when no identifier can be found; there is no default listing.
    """
    place_id = extract_place_id(url)
    if not place_id:
        raise IdentityError(f"Could not resolve a place id from {url!r}")
    return ListingIdentity(place_id=place_id, canonical_url=canonical_url(place_id))
