from __future__ import annotations

import argparse
import asyncio
import logging

from gunpla_search.settings import settings
from gunpla_search.app.index.client import MeiliSearchClient
from gunpla_search.app.services.index_sync import IndexSynchronizer
from gunpla_search.app.services.search_config import SearchConfig
from gunpla_search.persistence.catalog_db import CatalogDB


logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )


async def _run(db_path: str | None, clear: bool, configure: bool) -> None:
    config = SearchConfig.from_settings(settings)
    client = MeiliSearchClient.from_settings(settings)
    try:
        async with CatalogDB(db_path) as db:
            synchronizer = IndexSynchronizer(db.catalog, client, config)
            if configure:
                await synchronizer.configure_indexes()
            report = await synchronizer.sync(clear=clear)
    finally:
        await client.aclose()

    for collection, count in report.counts.items():
        logger.info("%s: %d documents", collection, count)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Push catalog rows from the database into the search index"
    )
    parser.add_argument("--db", dest="db_path", help="Path to sqlite database")
    parser.add_argument(
        "--clear",
        action="store_true",
        help="Delete existing documents before pushing",
    )
    parser.add_argument(
        "--skip-settings",
        action="store_true",
        help="Do not update filterable/sortable index settings",
    )
    parser.add_argument("--verbose", action="store_true", help="Verbose output")
    args = parser.parse_args()

    _configure_logging(args.verbose)
    asyncio.run(_run(args.db_path, args.clear, not args.skip_settings))


if __name__ == "__main__":
    main()
