"""
interfaces/cli.py
──────────────────────────────────────────────────────────────────────────────
Command-line interface for the occupancy translator.

Usage:
  # Single description
  python -m occupancy_translator.interfaces.cli --query "Welding shop, 12m roof"

  # Batch file (one description per line, # comments skipped)
  python -m occupancy_translator.interfaces.cli --file descriptions.txt

  # JSON output
  python -m occupancy_translator.interfaces.cli -q "bakery" --json

  # Reseed the master list before classifying (or on its own)
  occupancy-classify --reload-master

Every classification is stored exactly as it would be through the API.

Exit codes:
  0 — success
  1 — runtime error (auth, DB, model failure, etc.)
  2 — argument error
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from occupancy_translator.domain.models import Analysis, AnalyzeResponse
from occupancy_translator.services.container import get_container

logger = logging.getLogger(__name__)


# ── Argument parser ────────────────────────────────────────────────────────

def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="occupancy-classify",
        description="Suggest insurance occupancy codes for a business description.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument(
        "--query", "-q",
        metavar="TEXT",
        help="Single business description to classify.",
    )
    p.add_argument(
        "--file", "-f",
        metavar="FILE",
        type=Path,
        help="Path to a text file with one description per line.",
    )
    p.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Output results as JSON.",
    )
    p.add_argument(
        "--reload-master",
        action="store_true",
        dest="reload_master",
        help="Reseed the occupancy master list from its source first.",
    )
    p.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging.",
    )
    return p


# ── Formatting helpers ─────────────────────────────────────────────────────

def _print_analysis_text(analysis: Analysis) -> None:
    print(f"\n{'─' * 60}")
    print(f"Description : {analysis.business_description}")
    print(f"Analysis id : {analysis.id}")
    print(f"{'─' * 60}")
    if not analysis.suggestions:
        print("  (no valid occupancy codes suggested)")
    for i, s in enumerate(analysis.suggestions, start=1):
        print(f"  #{i}  {s.occupancy}  [{s.display_confidence.value}]")
        print(f"       Reason: {s.reason}")
    print(f"\n  {analysis.overall_reasoning}\n")


def _print_analysis_json(analysis: Analysis) -> None:
    response = AnalyzeResponse.from_analysis(analysis)
    print(json.dumps(response.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False))


# ── Main logic ─────────────────────────────────────────────────────────────

def _load_queries_from_file(path: Path) -> list[str] | None:
    """Read descriptions one per line, skipping blank and comment lines."""
    if not path.exists():
        print(f"ERROR: File not found: {path}", file=sys.stderr)
        return None
    lines = path.read_text(encoding="utf-8").splitlines()
    return [l.strip() for l in lines if l.strip() and not l.startswith("#")]


def run(args: argparse.Namespace) -> int:
    """Execute the requested work.

    Returns:
        Exit code (0 = success, 1 = error, 2 = bad arguments).
    """
    queries: list[str] = []
    if args.query:
        queries = [args.query]
    elif args.file:
        loaded = _load_queries_from_file(args.file)
        if loaded is None:
            return 2
        queries = loaded

    try:
        container = get_container()
    except Exception as exc:
        logger.exception("Failed to initialise services")
        print(f"ERROR: Initialisation failed: {exc}", file=sys.stderr)
        return 1

    if args.reload_master:
        try:
            summary = container.registry.reload()
        except Exception as exc:
            logger.exception("Master list reload failed")
            print(f"ERROR: Reload failed: {exc}", file=sys.stderr)
            return 1
        print(
            f"{summary.message}: {summary.total_codes} codes "
            f"(inserted {summary.inserted}, skipped {summary.skipped})",
            file=sys.stderr,
        )

    printer = _print_analysis_json if args.json_output else _print_analysis_text
    exit_code = 0
    for query in queries:
        try:
            printer(container.classifier.classify(query))
        except Exception as exc:
            logger.exception("Classification failed for %r", query)
            print(f"ERROR [{query!r}]: {exc}", file=sys.stderr)
            exit_code = 1

    return exit_code


def main() -> None:
    """Entry point for the occupancy-classify console script."""
    parser = _build_parser()
    args = parser.parse_args()

    log_level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    )

    if not args.query and not args.file and not args.reload_master:
        parser.print_help()
        sys.exit(2)

    sys.exit(run(args))


if __name__ == "__main__":
    main()
