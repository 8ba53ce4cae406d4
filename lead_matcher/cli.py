"""Command line interface for running the matching engine."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import ConfigurationError, load_configuration
from .factory import build_engine
from .ingestion.exporters import export_lead_index, export_match_results
from .ingestion.loaders import load_lead_requests

LOGGER = logging.getLogger(__name__)


def build_parser(prog: str | None = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog,
        description="Match building-materials leads with nearby vendors and trades",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (e.g. DEBUG, INFO, WARNING)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    match = subparsers.add_parser("match", help="Match every lead in a spreadsheet and export the results")
    match.add_argument("input", help="Path to the lead spreadsheet (CSV, TSV or XLSX)")
    match.add_argument("output", help="Path where the match results should be written")
    _add_config_argument(match)
    match.add_argument(
        "--mode",
        choices=["sequential", "concurrent"],
        default=None,
        help="Whether to match leads sequentially or concurrently (defaults to the configuration)",
    )
    match.add_argument(
        "--max-workers",
        type=int,
        default=None,
        help="Maximum number of workers to use in concurrent mode",
    )

    leads = subparsers.add_parser("leads", help="List the leads matched to a professional")
    leads.add_argument("professional", help="Professional id or registered email address")
    _add_config_argument(leads)
    leads.add_argument("--output", help="Write the lead list to a CSV/XLSX file instead of stdout")

    rematch = subparsers.add_parser("rematch", help="Re-run matching for a stored lead")
    rematch.add_argument("lead_id", help="Identifier of the stored lead")
    _add_config_argument(rematch)

    return parser


def _add_config_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        required=True,
        help="Path to the matching configuration file (YAML or JSON)",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    overrides = {}
    if getattr(args, "mode", None):
        overrides["concurrent"] = args.mode == "concurrent"
    if getattr(args, "max_workers", None):
        overrides["max_workers"] = args.max_workers

    try:
        config = load_configuration(args.config)
        engine = build_engine(config, base_dir=Path(args.config).resolve().parent, **overrides)
    except ConfigurationError as exc:
        LOGGER.error("%s", exc)
        return 1

    try:
        if args.command == "match":
            return _run_match(engine, args)
        if args.command == "leads":
            return _run_leads(engine, args)
        return _run_rematch(engine, args)
    finally:
        engine.close()


def _run_match(engine, args: argparse.Namespace) -> int:
    leads = load_lead_requests(args.input)
    if not leads:
        LOGGER.warning("No leads found in %s - nothing to do", args.input)
        return 0

    outcomes = engine.match_leads(leads)
    export_match_results(outcomes, args.output)
    degraded = sum(1 for outcome in outcomes if outcome.degraded)
    LOGGER.info("Matched %s leads (%s degraded)", len(outcomes), degraded)
    LOGGER.info("Match results written to %s", Path(args.output).resolve())
    return 0


def _run_leads(engine, args: argparse.Namespace) -> int:
    identifier = args.professional
    professional_id = identifier
    if "@" in identifier:
        profile = engine.registry.get_by_email(identifier)
        if profile is None:
            LOGGER.error("No professional is registered with %s", identifier)
            return 1
        professional_id = profile.uid

    entries = engine.store.get_matches_for_professional(professional_id)
    if args.output:
        export_lead_index(entries, args.output)
        LOGGER.info("Wrote %s leads for %s to %s", len(entries), professional_id, Path(args.output).resolve())
        return 0

    for entry in entries:
        print(
            "\t".join(
                [
                    entry.lead.lead_id,
                    entry.role,
                    entry.lead.zip_code,
                    ", ".join(entry.lead.categories),
                    f"{entry.distance_miles:.1f} mi",
                    entry.lead.urgency or "",
                ]
            )
        )
    return 0


def _run_rematch(engine, args: argparse.Namespace) -> int:
    try:
        outcome = engine.rematch(args.lead_id)
    except KeyError:
        LOGGER.error("Lead %s was not found", args.lead_id)
        return 1
    print(f"{outcome.result.lead_id}\t{outcome.result.status}\t{outcome.result.total_matches}")
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
