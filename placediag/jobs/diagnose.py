"""CLI job that diagnoses one listing and prints the report as JSON."""

import argparse
import json
import logging
import sys

from placediag.core.config import get_settings
from placediag.core.errors import IdentityError, ProviderUnavailable
from placediag.core.place_extractor import PlaceExtractor
from placediag.models import Plan
from placediag.pipeline import run_analysis
from placediag.vendors.browser import close_browser_session

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Diagnose a Naver Place listing")
    parser.add_argument("place_url", help="Listing URL, e.g. https://m.place.naver.com/place/1234567")
    parser.add_argument(
        "--plan",
        choices=[plan.value for plan in Plan],
        default=Plan.FREE.value,
        help="Report plan; free redacts improvement content",
    )
    parser.add_argument("--search", dest="search_query", help="Competitor search term (pro plan only)")
    parser.add_argument(
        "--static-only",
        dest="static_only",
        action="store_true",
        help="Skip the browser tier",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=get_settings().analysis_timeout_seconds,
        help="Overall extraction budget in seconds",
    )
    return parser


def run(args: argparse.Namespace) -> int:
    extractor = PlaceExtractor()
    try:
        report = run_analysis(
            args.place_url,
            args.plan,
            args.search_query,
            extractor=_BoundExtractor(extractor, dynamic=not args.static_only, timeout=args.timeout),
        )
    except IdentityError as exc:
        logger.error("Invalid listing URL: %s", exc)
        return 2
    except ProviderUnavailable as exc:
        logger.error("Extraction failed: %s", exc)
        return 1
    finally:
        close_browser_session()

    json.dump(report.to_dict(), sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")
    return 0


class _BoundExtractor:
    """Applies the CLI's tier and timeout choices to the primary listing only."""

    def __init__(self, extractor: PlaceExtractor, *, dynamic: bool, timeout: float) -> None:
        self._extractor = extractor
        self._dynamic = dynamic
        self._timeout = timeout

    def extract(self, identity, **kwargs):
        kwargs.setdefault("dynamic", self._dynamic)
        kwargs.setdefault("timeout", self._timeout)
        return self._extractor.extract(identity, **kwargs)


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    parser = build_parser()
    args = parser.parse_args()
    raise SystemExit(run(args))


if __name__ == "__main__":
    main()
