"""
Insert sample items through the configured store.

Against MongoDB this goes through the connection manager, so it waits out a
database that is still starting up.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import random
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from catalog.config import get_settings
from catalog.dependencies import build_item_store
from catalog.errors import CatalogError
from catalog.schemas import ItemCreate

logger = logging.getLogger(__name__)

CATEGORIES = ("Electronics", "Books", "Kitchen", "Garden", "Toys")


def sample_item(index: int, category: str | None = None) -> ItemCreate:
    category = category or random.choice(CATEGORIES)
    return ItemCreate(
        name=f"{category} item {index}",
        description=f"Sample {category.lower()} item #{index} for local development.",
        price=round(random.uniform(1, 500), 2),
        category=category,
        in_stock=random.random() > 0.2,
    )


async def seed(count: int, category: str | None) -> int:
    settings = get_settings()
    store, connections = build_item_store(settings)
    created = 0
    try:
        for index in range(1, count + 1):
            record = await store.create_item(sample_item(index, category))
            logger.info("Created %s (%s)", record.name, record.item_id)
            created += 1
    finally:
        if connections is not None:
            await connections.close()
    return created


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed the catalog with sample items")
    parser.add_argument(
        "-n",
        "--count",
        type=int,
        default=10,
        help="How many items to create",
    )
    parser.add_argument(
        "-c",
        "--category",
        default=None,
        help="Use this category for every item instead of a random one",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    try:
        created = asyncio.run(seed(args.count, args.category))
    except CatalogError as exc:
        logger.error("Seeding failed: %s", exc.message)
        return 1
    logger.info("Created %d items", created)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
