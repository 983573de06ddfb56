"""HTTP entrypoint for leaf diagnosis and dealer lookups."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from flask import Flask, jsonify, request
from pymongo.errors import OperationFailure, PyMongoError
from werkzeug.exceptions import HTTPException

from kisan_api.core.config import (
    ConfigError,
    get_defined_env_keys,
    get_settings,
    is_development,
    validate_config,
)
from kisan_api.core.db import connect_database, is_connected, mark_disconnected
from kisan_api.etl.transform import is_valid_coordinate, serialize_dealer
from kisan_api.jobs.dealer_lookup import lookup_dealers
from kisan_api.jobs.diagnose import diagnose_leaf
from kisan_api.vendors.google_places import GooglePlacesError

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App ----------
app = Flask(__name__)


def bootstrap(standalone: bool = False) -> Optional[ConfigError]:
    """Validate config, then try an eager database connection.

    Standalone runs re-raise a ConfigError so the process can exit. Hosted
    runs keep serving and let each request fail on its own; a failed eager
    connection is retried by the next request that needs the store.
    """
    config_error = None
    try:
        validate_config()
    except ConfigError as exc:
        if standalone:
            raise
        logger.error("Startup configuration invalid; requests will fail: %s", exc)
        config_error = exc

    try:
        connect_database()
    except (ConfigError, PyMongoError) as exc:
        logger.error("Initial database connection failed: %s", exc)

    return config_error


# ---------- Routes ----------


@app.get("/")
def root() -> Any:
    return jsonify({"status": "OK", "message": "Server is running"}), 200


@app.get("/api/health-check")
def health_check() -> Any:
    """Report configuration key presence and store connectivity; never fails."""
    return (
        jsonify(
            {
                "status": "OK",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "environment": get_settings().environment,
                "database": "connected" if is_connected() else "disconnected",
                "envVariables": get_defined_env_keys(),
            }
        ),
        200,
    )


@app.post("/api/diagnose")
def diagnose() -> Any:
    """
    Diagnose a single leaf image.
    Required multipart field: leaf_image
    """
    upload = request.files.get("leaf_image")
    image_bytes = upload.read() if upload is not None else b""
    if not image_bytes:
        return jsonify({"error": "No image uploaded"}), 400

    try:
        diagnosis = diagnose_leaf(image_bytes, upload.mimetype)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Diagnosis failed: %s", exc)
        return jsonify({"error": "Diagnosis failed", "details": str(exc) or "Auth failed"}), 500

    return jsonify(diagnosis.to_dict()), 200


@app.get("/api/dealers")
def dealers() -> Any:
    """
    Nearby dealers, synced from Google Places when the local cache is thin.
    Required query params: lat, long
    Optional: product (tags newly synced dealers)
    """
    lat_raw = (request.args.get("lat") or "").strip()
    long_raw = (request.args.get("long") or "").strip()
    if not lat_raw or not long_raw:
        return jsonify({"error": "Latitude and Longitude required"}), 400

    try:
        lat = float(lat_raw)
        lng = float(long_raw)
    except ValueError:
        lat = lng = None
    if not is_valid_coordinate(lat, lng):
        return jsonify({"error": "Latitude and Longitude must be valid coordinates"}), 400

    product = (request.args.get("product") or "").strip() or None

    try:
        results = lookup_dealers(lat, lng, product)
    except GooglePlacesError as exc:
        logger.error("Dealer API error from Google Places: %s", exc.payload)
        return jsonify({"error": "Google Maps API Failed", "details": exc.payload}), 500
    except OperationFailure as exc:
        logger.error("Dealer API store operation failed: %s", exc)
        return jsonify({"error": "Server Error", "details": str(exc)}), 500
    except (PyMongoError, ConfigError) as exc:
        logger.error("Dealer API store error: %s", exc)
        mark_disconnected()
        return jsonify({"error": "Server Error", "details": str(exc)}), 500

    return jsonify([serialize_dealer(row) for row in results]), 200


# ---------- Errors ----------


@app.errorhandler(404)
def not_found(exc: HTTPException) -> Any:
    if request.path.startswith("/api"):
        return jsonify({"error": "API endpoint not found"}), 404
    return exc


@app.errorhandler(Exception)
def unhandled_error(exc: Exception) -> Any:
    if isinstance(exc, HTTPException):
        return exc
    logger.exception("Unhandled error: %s", exc)
    message = str(exc) if is_development() else "Something went wrong"
    return jsonify({"error": "Internal Server Error", "message": message}), 500


def main() -> None:
    try:
        bootstrap(standalone=True)
    except ConfigError as exc:
        logger.error("Server startup aborted due to configuration error: %s", exc)
        raise SystemExit(1) from exc

    port = get_settings().port
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    logger.info("[BOOT] Health check: http://localhost:%d/api/health-check", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
