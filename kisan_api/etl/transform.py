"""Utilities for transforming Google Places responses into dealer documents."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from kisan_api.models import Dealer

logger = logging.getLogger(__name__)

DEFAULT_STOCK = ("General Tools",)
FARM_SUPPLY_TYPE = "farm_supply_store"
FARM_SUPPLY_STOCK = ("Fertilizers", "Pesticides", "Seeds")


def is_valid_coordinate(lat: Any, lng: Any) -> bool:
    if isinstance(lat, bool) or isinstance(lng, bool):
        return False
    if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
        return False
    return -90 <= lat <= 90 and -180 <= lng <= 180


def build_stock(types: Optional[List[str]], product: Optional[str]) -> List[str]:
    """Tag stock from the caller's product and the provider types; duplicates are kept."""
    stock = list(DEFAULT_STOCK)
    if product:
        stock.append(product)
    if FARM_SUPPLY_TYPE in (types or []):
        stock.extend(FARM_SUPPLY_STOCK)
    return stock


def to_dealer(place: Dict[str, Any], product: Optional[str] = None) -> Optional[Dealer]:
    place_id = place.get("id")
    location = place.get("location") or {}
    lat = location.get("latitude")
    lng = location.get("longitude")

    if not place_id:
        logger.debug("Skipping place without id: %s", place)
        return None
    if not is_valid_coordinate(lat, lng):
        logger.debug("Skipping place %s with invalid location %s", place_id, location)
        return None

    display_name = place.get("displayName") or {}
    opening_hours = place.get("currentOpeningHours") or {}

    return Dealer(
        google_place_id=place_id,
        name=display_name.get("text") or "Unknown Shop",
        address=place.get("formattedAddress") or "No Address",
        phone_number=place.get("nationalPhoneNumber") or "No Phone",
        rating=place.get("rating") or 0,
        open_now=opening_hours.get("openNow"),
        stock=build_stock(place.get("types"), product),
        longitude=float(lng),
        latitude=float(lat),
    )


def to_dealer_document(place: Dict[str, Any], product: Optional[str] = None) -> Optional[Dict[str, Any]]:
    dealer = to_dealer(place, product)
    return dealer.to_document() if dealer else None


def serialize_dealer(document: Dict[str, Any]) -> Dict[str, Any]:
    """Make a stored dealer JSON-safe for the API response."""
    row = dict(document)
    if "_id" in row:
        row["_id"] = str(row["_id"])
    last_updated = row.get("last_updated")
    if isinstance(last_updated, datetime):
        row["last_updated"] = last_updated.isoformat()
    return row
