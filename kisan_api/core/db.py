"""Database helpers for the dealer cache."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from pymongo import GEOSPHERE, MongoClient, monitoring
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from kisan_api.core.config import ConfigError, get_settings

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "kisan"
DEALERS_COLLECTION = "dealers"
SEARCH_RADIUS_METERS = 5000

_client: Optional[MongoClient] = None
_is_connected = False


class _TopologyStateListener(monitoring.TopologyListener):
    """Tracks connectivity from the driver's topology view.

    Runs on pymongo's monitor threads; the flag it writes is advisory and
    never closes the client.
    """

    def opened(self, event):
        pass

    def description_changed(self, event):
        global _is_connected
        readable = event.new_description.has_readable_server()
        if readable != _is_connected:
            if readable:
                logger.info("MongoDB topology has a readable server; marking connected.")
            else:
                logger.error("MongoDB topology has no readable server; marking disconnected.")
        _is_connected = readable

    def closed(self, event):
        mark_disconnected()


def connect_database() -> MongoClient:
    """Return the shared client, establishing it on first use.

    A client that is marked disconnected is re-pinged rather than replaced,
    so collections handed out earlier stay usable.
    """
    global _client, _is_connected
    if _client is not None:
        if _is_connected:
            logger.debug("Reusing existing MongoDB connection.")
            return _client
        try:
            _client.admin.command("ping")
        except PyMongoError as exc:
            logger.error("MongoDB reconnect failed: %s", exc)
            _is_connected = False
            raise
        _is_connected = True
        logger.info("MongoDB reachable again; reusing client.")
        return _client

    settings = get_settings()
    if not settings.mongo_uri:
        raise ConfigError("MONGO_URI is required for database connections")

    logger.info("Connecting to MongoDB...")
    client = MongoClient(
        settings.mongo_uri,
        maxPoolSize=10,
        serverSelectionTimeoutMS=5000,
        socketTimeoutMS=45000,
        event_listeners=[_TopologyStateListener()],
    )
    try:
        client.admin.command("ping")
        _ensure_indexes(_dealers(client))
    except PyMongoError as exc:
        logger.error("MongoDB connection failed: %s", exc)
        client.close()
        _is_connected = False
        raise

    _client = client
    _is_connected = True
    logger.info("MongoDB connected successfully.")
    return _client


def disconnect_database() -> None:
    global _client, _is_connected
    if _client is not None:
        _client.close()
        logger.info("MongoDB connection closed.")
    _client = None
    _is_connected = False


def mark_disconnected() -> None:
    global _is_connected
    _is_connected = False


def is_connected() -> bool:
    return _client is not None and _is_connected


def _dealers(client: MongoClient) -> Collection:
    database = client.get_default_database(default=DEFAULT_DATABASE)
    return database[DEALERS_COLLECTION]


def _ensure_indexes(collection: Collection) -> None:
    collection.create_index([("location", GEOSPHERE)])
    collection.create_index("google_place_id", unique=True, sparse=True)


def get_dealers_collection() -> Collection:
    return _dealers(connect_database())


def _near_query(lat: float, lng: float, max_distance_m: float) -> Dict[str, Any]:
    return {
        "location": {
            "$near": {
                "$geometry": {"type": "Point", "coordinates": [lng, lat]},
                "$maxDistance": max_distance_m,
            }
        }
    }


def find_dealers_near(lat: float, lng: float, max_distance_m: float = SEARCH_RADIUS_METERS) -> List[Dict[str, Any]]:
    """Return dealers within ``max_distance_m`` metres, nearest first."""
    collection = get_dealers_collection()
    return list(collection.find(_near_query(lat, lng, max_distance_m)))


def upsert_dealer(document: Dict[str, Any]) -> None:
    """Insert or fully overwrite a dealer keyed by ``google_place_id``."""
    place_id = document.get("google_place_id")
    if not place_id:
        raise ValueError("google_place_id is required for upsert")

    replacement = {**document, "last_updated": datetime.now(timezone.utc)}
    collection = get_dealers_collection()
    collection.replace_one({"google_place_id": place_id}, replacement, upsert=True)
    logger.debug("Upserted dealer %s (%s)", replacement.get("name"), place_id)


def replace_all_dealers(documents: Iterable[Dict[str, Any]]) -> int:
    """Bulk-clear the collection and insert ``documents``; used for reseeding."""
    now = datetime.now(timezone.utc)
    rows = [{**document, "last_updated": now} for document in documents]

    collection = get_dealers_collection()
    deleted = collection.delete_many({})
    logger.info("Cleared %d existing dealers", deleted.deleted_count)
    if not rows:
        return 0
    result = collection.insert_many(rows)
    return len(result.inserted_ids)
