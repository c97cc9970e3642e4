"""
Bulk-replace the remote products document from a local JSON file.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1] / "src"
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from gatekeeper.catalog import CatalogService
from gatekeeper.config import get_settings
from gatekeeper.dependencies import get_document_store
from gatekeeper.documents import JsonDocuments
from gatekeeper.errors import GatekeeperError

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Import products into the catalog")
    parser.add_argument("path", type=Path, help="JSON file holding a product array")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate and normalize without writing",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    settings = get_settings()
    catalog = CatalogService(
        JsonDocuments(get_document_store(), settings.conflict_retries), settings
    )

    try:
        candidates = json.loads(args.path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Could not read %s: %s", args.path, exc)
        return 1

    try:
        if args.dry_run:
            products = catalog.preview_replacement(candidates)
            logger.info("Dry run: %d products would be written", len(products))
        else:
            products = catalog.replace_all(candidates)
            logger.info("Wrote %d products to %s", len(products), catalog.path)
    except GatekeeperError as exc:
        logger.error("Import failed: %s", exc.message)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
