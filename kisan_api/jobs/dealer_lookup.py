"""Cache-aside dealer lookup: local geo store first, Google Places on a miss."""

import logging
from typing import Any, Dict, List, Optional

from kisan_api.core.config import get_settings
from kisan_api.core.db import SEARCH_RADIUS_METERS, find_dealers_near, upsert_dealer
from kisan_api.etl.transform import to_dealer_document
from kisan_api.vendors import google_places

logger = logging.getLogger(__name__)

MIN_LOCAL_RESULTS = 5
MAX_REMOTE_RESULTS = 10


def sync_from_places(lat: float, lng: float, product: Optional[str]) -> int:
    """Fetch nearby places and upsert them one by one; any failure aborts."""
    places = google_places.search_nearby(
        lat,
        lng,
        SEARCH_RADIUS_METERS,
        get_settings().google_maps_api_key,
        max_results=MAX_REMOTE_RESULTS,
    )

    synced = 0
    for place in places:
        document = to_dealer_document(place, product)
        if document is None:
            continue
        upsert_dealer(document)
        synced += 1

    logger.info("Synced %d of %d places into the local store", synced, len(places))
    return synced


def lookup_dealers(lat: float, lng: float, product: Optional[str] = None) -> List[Dict[str, Any]]:
    logger.info("Searching dealers near %s,%s", lat, lng)
    dealers = find_dealers_near(lat, lng, SEARCH_RADIUS_METERS)
    logger.info("Found %d dealers in local DB", len(dealers))

    if len(dealers) >= MIN_LOCAL_RESULTS:
        return dealers

    logger.info("Local data low; fetching from Google Places")
    sync_from_places(lat, lng, product)
    return find_dealers_near(lat, lng, SEARCH_RADIUS_METERS)
