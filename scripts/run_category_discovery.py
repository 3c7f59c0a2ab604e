#!/usr/bin/env python
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from catalog_backend.application import configure_discovery_engine, configure_job_service, get_store_repository
from catalog_backend.core.logging_config import configure_logging
from catalog_backend.core.settings import load_settings
from catalog_backend.domain import PotentialCategoryObservation
from catalog_backend.infrastructure import GeminiRankingOracle, configure_ranking_oracle


def _seed_stores(path: Path) -> int:
    """Load store snapshots (a JSON list) into the in-memory repository."""

    repository = get_store_repository()
    with path.open("r", encoding="utf-8") as fp:
        entries = json.load(fp)

    for entry in entries:
        potential = entry.get("potentialSoftCategories", entry.get("potential_soft_categories")) or {}
        repository.upsert(
            entry["email"],
            {
                "db_name": entry.get("dbName", entry.get("db_name")) or "",
                "categories": list(entry.get("categories") or []),
                "types": list(entry.get("type", entry.get("types")) or []),
                "soft_categories": list(entry.get("softCategories", entry.get("soft_categories")) or []),
                "potential_soft_categories": {
                    term: PotentialCategoryObservation.from_mapping(term, data)
                    for term, data in potential.items()
                },
            },
        )
    return len(entries)


async def _run(args: argparse.Namespace) -> dict:
    settings = load_settings()
    configure_logging(args.log_level or settings.log_level)
    if args.max_terms is not None:
        settings.discovery_max_terms = max(1, args.max_terms)
    if args.no_delay:
        settings.discovery_delay_seconds = 0.0
    if settings.ranking_oracle_configured and not args.fallback_only:
        configure_ranking_oracle(GeminiRankingOracle(api_key=settings.google_ai_api_key, model=settings.ranking_model))

    job_service = configure_job_service(settings)
    engine = configure_discovery_engine(settings)
    summary = await engine.run()
    for result in summary.results:
        await job_service.wait_for(result.db_name)
    return summary.to_dict()


def main() -> None:
    parser = argparse.ArgumentParser(description="Run one category discovery pass over a set of stores")
    parser.add_argument("--stores", required=True, help="JSON file with a list of store snapshots")
    parser.add_argument("--max-terms", type=int, default=None, help="Maximum new terms per store")
    parser.add_argument("--no-delay", action="store_true", help="Do not pause between stores")
    parser.add_argument("--fallback-only", action="store_true", help="Skip the ranking oracle and use local scoring")
    parser.add_argument("--log-level", default=None, help="Logging level, e.g. DEBUG")
    parser.add_argument("--output", default=None, help="Write the summary JSON to this path")
    args = parser.parse_args()

    count = _seed_stores(Path(args.stores))
    summary = asyncio.run(_run(args))

    text = json.dumps(summary, ensure_ascii=False, indent=2)
    if args.output:
        output = Path(args.output)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text, encoding="utf-8")
        print(f"Discovery summary for {count} stores written to: {output}")
    else:
        print(text)


if __name__ == "__main__":
    main()
