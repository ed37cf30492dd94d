#!/usr/bin/env python3
"""
run_assessment.py — Score, detect and assess one category from a JSON file.

Usage:
    python run_assessment.py items.json --category courts            # Full run
    python run_assessment.py items.json --category fiscal --no-ai    # Keyword-only
    python run_assessment.py items.json --category igs --store dw.db # Custom store
    python run_assessment.py items.json --category courts --json     # Payload only

The input file holds a JSON list of items (title, text/summary, agency,
url/link, published_at/pubDate, type).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import date
from pathlib import Path

from driftwatch.assessor import Assessor, to_payload
from driftwatch.config import settings
from driftwatch.errors import ValidationError
from driftwatch.keywords import CATEGORIES
from driftwatch.logging import setup_logging
from driftwatch.models import EvidenceItem
from driftwatch.pipeline import run_weekly
from driftwatch.store import ScoreStore


def main():
    parser = argparse.ArgumentParser(description="DriftWatch Assessment Runner")
    parser.add_argument("items", help="Path to a JSON list of evidence items")
    parser.add_argument(
        "--category",
        required=True,
        choices=CATEGORIES,
        help="Category to assess",
    )
    parser.add_argument(
        "--store",
        default=settings.STORE_PATH,
        help=f"SQLite store path (default: {settings.STORE_PATH})",
    )
    parser.add_argument(
        "--as-of",
        default=None,
        help="Assess as of this date, YYYY-MM-DD (default: today)",
    )
    parser.add_argument(
        "--no-ai",
        action="store_true",
        help="Keyword-only assessment, no provider calls",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output the assessment payload only",
    )
    args = parser.parse_args()

    setup_logging("json" if args.json else "text")

    path = Path(args.items)
    if not path.exists():
        print(f"Error: items file not found: {path}")
        sys.exit(1)

    raw = json.loads(path.read_text())
    if not isinstance(raw, list):
        print("Error: items file must hold a JSON list")
        sys.exit(1)
    try:
        items = [EvidenceItem.from_dict(r) for r in raw]
    except ValidationError as e:
        print(f"Error: {e}")
        sys.exit(1)
    as_of = date.fromisoformat(args.as_of) if args.as_of else None

    store = ScoreStore(args.store)
    aggregates, cumulative, anomalies = run_weekly(args.category, items, store, now=as_of)
    assessment = asyncio.run(
        Assessor().assess(
            args.category, items, use_ai=not args.no_ai, trend_anomalies=anomalies,
        )
    )
    payload = to_payload(assessment)

    if args.json:
        print(json.dumps(payload, indent=2, default=str))
        return

    print(f"Category:    {assessment.category}")
    print(f"Status:      {assessment.status.value}")
    print(f"Reason:      {assessment.reason}")
    print(f"Coverage:    {assessment.data_coverage:.2f} ({len(items)} items)")
    print(f"Weeks:       {len(aggregates)} updated, {cumulative.week_count} on record")
    print(f"Cumulative:  {cumulative.decay_weighted_score:.2f} "
          f"(half-life {cumulative.half_life_weeks:g} weeks)")
    if assessment.consensus_note:
        print(f"Consensus:   {assessment.consensus_note}")
    if assessment.debate is not None:
        d = assessment.debate
        line = d.outcome
        if d.verdict is not None:
            line += f", {d.verdict.verdict} ({d.verdict.agreement_level}/10)"
        print(f"Debate:      {line}")
    for a in anomalies:
        print(f"  [{a.severity}] {a.message}")


if __name__ == "__main__":
    main()
