"""Client utilities for the Google Places API (New)."""

import logging
from typing import Any, Dict, List, Optional, Sequence

import requests

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_SEARCH_NEARBY_URL = "https://places.googleapis.com/v1/places:searchNearby"

DEALER_PLACE_TYPES = ("hardware_store", "home_improvement_store", "store")
FIELD_MASK = ",".join(
    (
        "places.id",
        "places.displayName",
        "places.formattedAddress",
        "places.location",
        "places.rating",
        "places.nationalPhoneNumber",
        "places.types",
        "places.currentOpeningHours.openNow",
    )
)


class GooglePlacesError(RuntimeError):
    """Raised when the Places API returns a non-successful response."""

    def __init__(self, message: str, payload: Any = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.payload = payload if payload is not None else message
        self.status_code = status_code


def _error_payload(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def search_nearby(
    lat: float,
    lng: float,
    radius_m: float,
    api_key: str,
    included_types: Sequence[str] = DEALER_PLACE_TYPES,
    max_results: int = 10,
) -> List[Dict[str, Any]]:
    if not api_key:
        raise GooglePlacesError("GOOGLE_MAPS_API_KEY is required")

    body = {
        "includedTypes": list(included_types),
        "maxResultCount": max_results,
        "locationRestriction": {
            "circle": {
                "center": {"latitude": lat, "longitude": lng},
                "radius": radius_m,
            }
        },
    }
    headers = {
        "Content-Type": "application/json",
        "X-Goog-Api-Key": api_key,
        "X-Goog-FieldMask": FIELD_MASK,
    }

    try:
        response = _SESSION.post(_SEARCH_NEARBY_URL, json=body, headers=headers, timeout=10)
    except requests.RequestException as exc:
        logger.error("search_nearby request failed: %s", exc)
        raise GooglePlacesError(str(exc)) from exc

    if not response.ok:
        payload = _error_payload(response)
        logger.error("search_nearby failed: status=%s, payload=%s", response.status_code, payload)
        raise GooglePlacesError(
            f"Places searchNearby returned HTTP {response.status_code}",
            payload=payload,
            status_code=response.status_code,
        )

    try:
        payload = response.json()
    except ValueError as exc:
        logger.error("search_nearby returned a non-JSON body: %.200s", response.text)
        raise GooglePlacesError(
            "Places searchNearby returned a non-JSON body",
            payload=response.text,
            status_code=response.status_code,
        ) from exc

    places = payload.get("places") or []
    logger.info("Google returned %d places near %s,%s", len(places), lat, lng)
    return places
