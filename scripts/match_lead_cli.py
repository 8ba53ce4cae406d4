"""CLI helper to match a single lead against the sample professionals."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from lead_matcher import LeadRequest, MatchingEngine, MatchOutcome  # noqa: E402  (import after path fix)
from lead_matcher.config import MatchingSettings  # noqa: E402
from lead_matcher.registry import InMemoryProfessionalRegistry, located_profiles  # noqa: E402
from lead_matcher.store import InMemoryLeadStore  # noqa: E402

LOGGER = logging.getLogger(__name__)


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Match one lead against the bundled sample professionals.")
    parser.add_argument("zip_code", nargs="?", default="80301", help="Lead ZIP code")
    parser.add_argument(
        "categories",
        nargs="*",
        default=["tiles"],
        help="Requested material categories",
    )
    parser.add_argument("--pro", dest="is_looking_for_pro", action="store_true", help="Also match trades")
    parser.add_argument("--message", help="Free-text message from the customer")
    parser.add_argument("--budget", type=float, help="Project budget in US dollars")
    parser.add_argument(
        "--category-mode",
        choices=["token", "substring"],
        default="token",
        help="How requested categories are compared with professional categories",
    )
    parser.add_argument(
        "--output-json",
        type=Path,
        help="Optional path to save the raw JSON result",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        help="Console log level",
    )
    return parser.parse_args(argv)


def configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level))


def run_match(args: argparse.Namespace) -> MatchOutcome:
    configure_logging(args.log_level)

    lead = LeadRequest(
        customer_name="Debug Customer",
        customer_email="debug@example.com",
        zip_code=args.zip_code,
        material_categories=list(args.categories),
        message=args.message,
        budget=args.budget,
        is_looking_for_pro=args.is_looking_for_pro,
    )

    settings = MatchingSettings(category_mode=args.category_mode)
    engine = MatchingEngine(
        InMemoryProfessionalRegistry(located_profiles(), category_mode=args.category_mode),
        InMemoryLeadStore(),
        settings=settings,
    )
    try:
        outcome = engine.submit(lead)
    finally:
        engine.close()

    pretty_print_outcome(outcome)

    if args.output_json:
        payload = {
            "lead": outcome.lead.as_dict(),
            "result": outcome.result.as_dict(),
        }
        args.output_json.write_text(json.dumps(payload, indent=2))
        LOGGER.info("Wrote result JSON to %s", args.output_json)
    return outcome


def pretty_print_outcome(outcome: MatchOutcome) -> None:
    lead = outcome.lead
    result = outcome.result
    print("Lead:")
    print(f"  {result.lead_id} in {lead.zip_code}: {', '.join(lead.categories) or '(no categories)'}")
    print(f"  Intent: {lead.intent_score} ({lead.urgency})")

    for label, matches in (("Vendors", result.matched_vendors), ("Trades", result.matched_trades)):
        if not matches:
            continue
        print(f"{label}:")
        for match in matches:
            print(
                f"  - {match.profile.display_name()} [{match.uid}] "
                f"{match.distance_miles:.1f} mi, rating {match.profile.rating:.1f}"
            )

    print(f"Status: {result.status} ({result.total_matches} matches, avg {result.average_distance:.1f} mi)")
    for item in outcome.degradations:
        print(f"  degraded: {item.component} {item.reason}")


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        run_match(args)
    except Exception as exc:  # pragma: no cover - CLI convenience
        LOGGER.exception("Matching failed: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
