#!/usr/bin/env python3
"""
Export or import the organization knowledge base.

Usage:
    # Write the seeded knowledge base to a JSON snapshot
    python scripts/export_knowledge_base.py export data/knowledge_base.json

    # Validate a snapshot and report what it contains
    python scripts/export_knowledge_base.py import data/knowledge_base.json
"""

import argparse
import sys
from pathlib import Path

from org_resolver.cli.logging import setup_logging
from org_resolver.config import get_settings
from org_resolver.exceptions import KnowledgeBaseImportError
from org_resolver.resolution.knowledge_base import CompanyKnowledgeBase


def export_snapshot(path: Path, logger) -> None:
    knowledge_base = CompanyKnowledgeBase()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(knowledge_base.export_state(), encoding="utf-8")
    logger.info(f"✓ Exported {len(knowledge_base)} organizations to {path}")


def import_snapshot(path: Path, logger) -> bool:
    knowledge_base = CompanyKnowledgeBase(organizations=[])
    try:
        count = knowledge_base.import_state(path.read_bytes())
    except KnowledgeBaseImportError as e:
        logger.error(f"✗ {path}: {e}")
        return False

    with_ticker = sum(1 for org in knowledge_base.organizations() if org.ticker)
    logger.info(f"✓ {path}: {count} organizations ({with_ticker} with tickers)")
    industries: dict[str, int] = {}
    for org in knowledge_base.organizations():
        industry = org.industry or "unknown"
        industries[industry] = industries.get(industry, 0) + 1
    for industry, industry_count in sorted(industries.items(), key=lambda x: -x[1]):
        logger.info(f"    {industry}: {industry_count}")
    return True


def main():
    """Run the export/import command."""
    parser = argparse.ArgumentParser(description="Export or import the knowledge base")
    parser.add_argument("command", choices=["export", "import"])
    parser.add_argument("path", type=Path, help="Snapshot file")
    args = parser.parse_args()

    logger = setup_logging("export_knowledge_base", level=get_settings().log_level)

    if args.command == "export":
        export_snapshot(args.path, logger)
    elif not import_snapshot(args.path, logger):
        sys.exit(1)


if __name__ == "__main__":
    main()
