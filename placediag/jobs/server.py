"""HTTP entrypoint exposing the listing diagnosis pipeline."""

from __future__ import annotations

import atexit
import logging
import signal
from typing import Any, Dict, Optional, Tuple

from flask import Flask, jsonify, request

from placediag.core.config import get_settings
from placediag.core.errors import IdentityError, ProviderUnavailable
from placediag.core.identity import is_valid_place_url
from placediag.core.place_extractor import PlaceExtractor
from placediag.models import Plan
from placediag.pipeline import run_analysis
from placediag.vendors.browser import close_browser_session, get_browser_session

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App ----------
app = Flask(__name__)
app.json.ensure_ascii = False
_extractor: Optional[PlaceExtractor] = None


def _get_extractor() -> PlaceExtractor:
    global _extractor
    if _extractor is None:
        _extractor = PlaceExtractor()
    return _extractor


def _error(status: int, error: str, message: str) -> Tuple[Any, int]:
    return jsonify({"error": error, "message": message}), status


# ---------- Routes ----------


@app.get("/health")
def healthcheck() -> Any:
    """Liveness only; never touches the browser session."""
    return jsonify({"status": "ok", "message": "Server is running"}), 200


@app.post("/analyze")
def analyze() -> Any:
    """
    Required JSON: input.placeUrl
    Optional: options.plan ("free" | "pro", default free), options.searchQuery
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    input_block = payload.get("input") or {}
    options = payload.get("options") or {}
    if not isinstance(input_block, dict) or not isinstance(options, dict):
        return _error(400, "invalid_request", "input and options must be objects")

    try:
        plan = Plan(str(options.get("plan") or Plan.FREE.value).lower())
    except ValueError:
        return _error(400, "invalid_plan", "plan must be 'free' or 'pro'")

    result = _run(input_block.get("placeUrl"), plan, options.get("searchQuery"))
    if isinstance(result, tuple):
        return result
    return jsonify(result), 200


@app.post("/diagnose/free")
def diagnose_free() -> Any:
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    result = _run(payload.get("placeUrl"), Plan.FREE, None)
    if isinstance(result, tuple):
        return result
    return jsonify({"success": True, "data": result}), 200


@app.post("/diagnose/paid")
def diagnose_paid() -> Any:
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    result = _run(payload.get("placeUrl"), Plan.PRO, payload.get("searchQuery"))
    if isinstance(result, tuple):
        return result
    return jsonify({"success": True, "data": result}), 200


@app.errorhandler(404)
def not_found(_exc) -> Any:
    return jsonify({"error": "Not found"}), 404


# ---------- Internals ----------


def _run(place_url: Any, plan: Plan, search_query: Any):
    """Run the pipeline and return the report dict, or a Flask error response tuple."""
    if not isinstance(place_url, str) or not place_url.strip():
        return _error(400, "invalid_request", "플레이스 URL을 입력해주세요")
    place_url = place_url.strip()
    if not is_valid_place_url(place_url):
        return _error(400, "invalid_url", "지원하지 않는 플레이스 URL입니다")

    query = search_query.strip() if isinstance(search_query, str) else None
    try:
        report = run_analysis(place_url, plan, query, extractor=_get_extractor())
    except IdentityError as exc:
        return _error(400, "invalid_url", str(exc))
    except ProviderUnavailable as exc:
        logger.error("Extraction failed for %s: %s", place_url, exc)
        return _error(500, "extraction_failed", str(exc))
    except Exception as exc:  # noqa: BLE001
        logger.exception("Analysis failed for %s: %s", place_url, exc)
        return _error(500, "internal_error", "진단 중 오류가 발생했습니다")
    return report.to_dict()


def _handle_sigterm(signum, _frame) -> None:
    logger.info("Received signal %s, shutting down", signum)
    raise SystemExit(0)


def main() -> None:
    settings = get_settings()
    atexit.register(close_browser_session)
    signal.signal(signal.SIGTERM, _handle_sigterm)

    if settings.enable_dynamic_tier and settings.browser_eager_start:
        try:
            get_browser_session().start()
        except ProviderUnavailable as exc:
            # Dynamic requests fail until a launch succeeds after the cool-down.
            logger.error("[BOOT] Browser session unavailable: %s", exc)

    logger.info("[BOOT] Binding on 0.0.0.0:%d", settings.port)
    app.run(host="0.0.0.0", port=settings.port, threaded=True)


if __name__ == "__main__":
    main()
