#!/usr/bin/env python3
"""
Resolve organization mentions in text and print them as JSON.

Resolves a single text span, or every non-empty line of a file, against the
seeded knowledge base. Configuration comes from ORG_RESOLVER_* environment
variables (or a .env file).

Usage:
    # Resolve one span
    python scripts/resolve_text.py "BlackRock Inc. manages $9 trillion in client assets."

    # Resolve each line of a file, one JSON object per line
    python scripts/resolve_text.py --file headlines.txt --site yahoo

    # Attach structural hints
    python scripts/resolve_text.py "Apple Inc. beats estimates" --hints '{"position_tags": ["headline"]}'

    # Include pipeline statistics at the end
    python scripts/resolve_text.py --file headlines.txt --stats
"""

import argparse
import json
import sys
from pathlib import Path

from tqdm import tqdm

from org_resolver.cli.logging import print_header, setup_logging
from org_resolver.config import get_settings
from org_resolver.resolution.knowledge_base import CompanyKnowledgeBase
from org_resolver.resolution.resolver import build_resolver


def load_knowledge_base(path: Path | None, logger) -> CompanyKnowledgeBase | None:
    """Load a knowledge base snapshot, or None for the seeded default."""
    if path is None:
        return None
    knowledge_base = CompanyKnowledgeBase(organizations=[])
    count = knowledge_base.import_state(path.read_text(encoding="utf-8"))
    logger.info(f"Loaded {count} organizations from {path}")
    return knowledge_base


def main():
    """Run the resolver over a string or a file."""
    parser = argparse.ArgumentParser(description="Resolve organization mentions in text")
    parser.add_argument("text", nargs="?", help="Text span to resolve")
    parser.add_argument("--file", type=Path, help="Resolve every non-empty line of this file")
    parser.add_argument("--site", default="generic", help="Site profile (default: generic)")
    parser.add_argument("--hints", help="Structural hints as a JSON object")
    parser.add_argument("--industry", help="Declared industry context, e.g. Finance")
    parser.add_argument(
        "--knowledge-base",
        type=Path,
        help="Knowledge base snapshot exported by export_knowledge_base.py",
    )
    parser.add_argument("--stats", action="store_true", help="Log performance statistics")
    args = parser.parse_args()

    if not args.text and not args.file:
        parser.error("provide TEXT or --file")

    settings = get_settings()
    logger = setup_logging("resolve_text", level=settings.log_level)

    hints = json.loads(args.hints) if args.hints else None
    context = {"industry": args.industry} if args.industry else None

    resolver = build_resolver(
        config=settings.to_resolver_config(),
        knowledge_base=load_knowledge_base(args.knowledge_base, logger),
    )

    if args.file:
        lines = [
            line.strip()
            for line in args.file.read_text(encoding="utf-8").splitlines()
            if line.strip()
        ]
        print_header(f"Resolving {len(lines)} lines from {args.file}", logger)
        for line in tqdm(lines, desc="Resolving", unit="line", file=sys.stderr):
            result = resolver.resolve(line, args.site, hints, context)
            print(json.dumps({"text": line, **result.to_dict()}, ensure_ascii=False))
    else:
        result = resolver.resolve(args.text, args.site, hints, context)
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))

    if args.stats:
        stats = resolver.get_performance_stats()
        logger.info("")
        logger.info(f"Processed: {stats['total_processed']}")
        logger.info(f"Cache hits: {stats['cache_hits']} ({stats['cache_hit_rate']:.0%})")
        logger.info(f"Extraction timeouts: {stats['extraction_timeouts']}")
        logger.info(f"Candidate failures: {stats['candidate_failures']}")
        logger.info(f"Average time: {stats['average_processing_ms']:.2f} ms")
        for level, count in stats["scoring"]["distribution_by_level"].items():
            logger.info(f"  {level}: {count}")


if __name__ == "__main__":
    main()
