"""Plain HTTP access to Naver Place pages (no JavaScript)."""

import logging
from typing import Optional
from urllib.parse import quote

import requests

logger = logging.getLogger(__name__)

MOBILE_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_4 like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) "
    "Version/17.4 Mobile/15E148 Safari/604.1"
)
DEFAULT_HEADERS = {
    "User-Agent": MOBILE_USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "ko-KR,ko;q=0.9,en-US;q=0.8,en;q=0.7",
    "Referer": "https://m.place.naver.com/",
}
SEARCH_URL_TEMPLATE = "https://m.place.naver.com/place/list?query={query}"
DEFAULT_TIMEOUT = 10

_SESSION = requests.Session()
_SESSION.headers.update(DEFAULT_HEADERS)


def fetch_static(url: str, timeout: Optional[float] = DEFAULT_TIMEOUT) -> str:
    """GET ``url`` and return its markup.

    Raises requests.RequestException on transport failure or non-2xx status.
    """
    logger.info("Fetching static markup url=%s", url)
    response = _SESSION.get(url, timeout=timeout, allow_redirects=True)
    response.raise_for_status()
    if not response.encoding or response.encoding.lower() == "iso-8859-1":
        response.encoding = response.apparent_encoding or "utf-8"
    return response.text


def build_search_url(term: str) -> str:
    if not term or not term.strip():
        raise ValueError("Search term must be provided for competitor lookups.")
    return SEARCH_URL_TEMPLATE.format(query=quote(term.strip(), safe=""))


def fetch_search(term: str, timeout: Optional[float] = DEFAULT_TIMEOUT) -> str:
    """Markup of the listing search page for ``term``."""
    return fetch_static(build_search_url(term), timeout=timeout)
