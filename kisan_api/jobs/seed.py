"""CLI job that clears the dealer collection and loads the starter dealers."""

import argparse
import logging
from typing import Any, Dict, Iterable, List

from kisan_api.core.db import connect_database, disconnect_database, replace_all_dealers
from kisan_api.models import Dealer

logger = logging.getLogger(__name__)

SEED_DEALERS: List[Dealer] = [
    Dealer(
        name="AgroTech Solutions (Andheri)",
        rating=4.8,
        stock=["Fungicide X", "Urea", "Neem Oil"],
        longitude=72.8311,
        latitude=19.1136,
    ),
    Dealer(
        name="Kisan Seva Kendra (Juhu)",
        rating=4.5,
        stock=["Pesticide A", "Seeds"],
        longitude=72.8258,
        latitude=19.0968,
    ),
    Dealer(
        name="Green Leaf Supplies (Bandra)",
        rating=4.9,
        stock=["Organic Fertilizer", "Tools"],
        longitude=72.8407,
        latitude=19.0596,
    ),
    Dealer(
        name="FarmWise Co. (Goregaon)",
        rating=4.2,
        stock=["Fungicide X", "Sprayers"],
        longitude=72.8521,
        latitude=19.1663,
    ),
    Dealer(
        name="Rural Agrotis (Powai)",
        rating=4.6,
        stock=["Heavy Machinery", "Urea"],
        longitude=72.9051,
        latitude=19.1187,
    ),
]


def seed_dealers(dealers: Iterable[Dealer] = SEED_DEALERS, *, dry_run: bool = False) -> int:
    documents: List[Dict[str, Any]] = [dealer.to_document() for dealer in dealers]
    if dry_run:
        for document in documents:
            logger.info("Would insert %s at %s", document["name"], document["location"]["coordinates"])
        return len(documents)

    connect_database()
    try:
        inserted = replace_all_dealers(documents)
    finally:
        disconnect_database()
    logger.info("%d dealers added successfully", inserted)
    return inserted


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Reset the dealers collection to the starter set")
    parser.add_argument(
        "--dry-run",
        dest="dry_run",
        action="store_true",
        help="Log the dealers that would be inserted without touching the database",
    )
    return parser


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    parser = build_parser()
    args = parser.parse_args()

    seed_dealers(dry_run=args.dry_run)


if __name__ == "__main__":
    main()
