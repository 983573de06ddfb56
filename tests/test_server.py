import io
from datetime import datetime

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from kisan_api.core.config import ConfigError
from kisan_api.etl.diagnosis import DiagnosisParseError
from kisan_api.jobs import dealer_lookup, server
from kisan_api.models import Diagnosis, TreatmentStep
from kisan_api.vendors import google_places
from kisan_api.vendors.google_places import GooglePlacesError


@pytest.fixture
def client():
    return server.app.test_client()


@pytest.fixture
def diagnose_calls(monkeypatch):
    calls = []

    def fake_diagnose_leaf(image_bytes, mime_type):
        calls.append((image_bytes, mime_type))
        return Diagnosis(
            disease_name="Tomato Early Blight",
            confidence_score=97,
            timeline=[TreatmentStep(day="Day 1", title="Spray", detail="Copper Oxychloride 3g/liter")],
            recommended_product="Copper",
        )

    monkeypatch.setattr(server, "diagnose_leaf", fake_diagnose_leaf)
    return calls


@pytest.fixture
def lookup_calls(monkeypatch):
    calls = []

    def fake_lookup_dealers(lat, lng, product=None):
        calls.append((lat, lng, product))
        return [
            {
                "_id": ObjectId("64b7f0c2a1b2c3d4e5f60718"),
                "name": "AgroTech Solutions (Andheri)",
                "location": {"type": "Point", "coordinates": [72.8311, 19.1136]},
                "last_updated": datetime(2026, 10, 1, 8, 30),
            }
        ]

    monkeypatch.setattr(server, "lookup_dealers", fake_lookup_dealers)
    return calls


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.get_json()["status"] == "OK"


def test_health_check_reports_env_and_database(client, monkeypatch):
    monkeypatch.setenv("MONGO_URI", "mongodb://db")
    monkeypatch.setenv("APP_ENV", "staging")
    monkeypatch.setattr(server, "is_connected", lambda: False)

    response = client.get("/api/health-check")

    body = response.get_json()
    assert response.status_code == 200
    assert body["environment"] == "staging"
    assert body["database"] == "disconnected"
    assert body["envVariables"]["MONGO_URI"] == "defined"
    assert body["envVariables"]["GOOGLE_MAPS_API_KEY"] == "missing"
    assert "timestamp" in body


def test_health_check_connected(client, monkeypatch):
    monkeypatch.setattr(server, "is_connected", lambda: True)
    assert client.get("/api/health-check").get_json()["database"] == "connected"


def test_diagnose_requires_image(client, diagnose_calls):
    assert client.post("/api/diagnose", data={}).status_code == 400
    empty = {"leaf_image": (io.BytesIO(b""), "leaf.jpg")}
    response = client.post("/api/diagnose", data=empty, content_type="multipart/form-data")
    assert response.status_code == 400
    assert response.get_json() == {"error": "No image uploaded"}
    assert diagnose_calls == []


def test_diagnose_success(client, diagnose_calls):
    data = {"leaf_image": (io.BytesIO(b"\x89PNGleaf"), "leaf.png", "image/png")}

    response = client.post("/api/diagnose", data=data, content_type="multipart/form-data")

    assert response.status_code == 200
    body = response.get_json()
    assert body["disease_name"] == "Tomato Early Blight"
    assert body["recommended_product"] == "Copper"
    assert body["timeline"][0]["day"] == "Day 1"
    assert diagnose_calls == [(b"\x89PNGleaf", "image/png")]


@pytest.mark.parametrize(
    "error",
    [DiagnosisParseError("Model reply is not valid JSON"), ConfigError("Neither GCLOUD_PROJECT nor PROJECT_ID")],
)
def test_diagnose_failure_returns_details(client, monkeypatch, error):
    def failing(image_bytes, mime_type):
        raise error

    monkeypatch.setattr(server, "diagnose_leaf", failing)
    data = {"leaf_image": (io.BytesIO(b"img"), "leaf.jpg")}

    response = client.post("/api/diagnose", data=data, content_type="multipart/form-data")

    assert response.status_code == 500
    assert response.get_json() == {"error": "Diagnosis failed", "details": str(error)}


@pytest.mark.parametrize("query", ["", "?lat=19.1", "?long=72.8", "?lat=&long=72.8"])
def test_dealers_requires_coordinates(client, lookup_calls, query):
    response = client.get(f"/api/dealers{query}")
    assert response.status_code == 400
    assert response.get_json() == {"error": "Latitude and Longitude required"}
    assert lookup_calls == []


@pytest.mark.parametrize("query", ["?lat=abc&long=72.8", "?lat=19.1&long=200", "?lat=nan&long=72.8"])
def test_dealers_rejects_invalid_coordinates(client, lookup_calls, query):
    response = client.get(f"/api/dealers{query}")
    assert response.status_code == 400
    assert lookup_calls == []


def test_dealers_success(client, lookup_calls):
    response = client.get("/api/dealers?lat=19.1&long=72.8&product=Urea")

    assert response.status_code == 200
    rows = response.get_json()
    assert rows[0]["_id"] == "64b7f0c2a1b2c3d4e5f60718"
    assert rows[0]["last_updated"] == "2026-10-01T08:30:00"
    assert lookup_calls == [(19.1, 72.8, "Urea")]


def test_dealers_blank_product_is_ignored(client, lookup_calls):
    client.get("/api/dealers?lat=19.1&long=72.8&product=%20")
    assert lookup_calls == [(19.1, 72.8, None)]


def test_dealers_places_failure(client, monkeypatch):
    payload = {"error": {"code": 403, "message": "API key not valid"}}

    def failing(lat, lng, product=None):
        raise GooglePlacesError("denied", payload=payload, status_code=403)

    monkeypatch.setattr(server, "lookup_dealers", failing)

    response = client.get("/api/dealers?lat=19.1&long=72.8")

    assert response.status_code == 500
    assert response.get_json() == {"error": "Google Maps API Failed", "details": payload}


def test_dealers_store_failure_resets_connection(client, monkeypatch):
    resets = []

    def failing(lat, lng, product=None):
        raise ServerSelectionTimeoutError("no servers available")

    monkeypatch.setattr(server, "lookup_dealers", failing)
    monkeypatch.setattr(server, "mark_disconnected", lambda: resets.append(True))

    response = client.get("/api/dealers?lat=19.1&long=72.8")

    assert response.status_code == 500
    assert response.get_json()["error"] == "Server Error"
    assert resets == [True]


def test_dealers_duplicate_key_keeps_connection_flag(client, monkeypatch):
    resets = []

    def failing(lat, lng, product=None):
        raise DuplicateKeyError("E11000 duplicate key error collection: kisan.dealers")

    monkeypatch.setattr(server, "lookup_dealers", failing)
    monkeypatch.setattr(server, "mark_disconnected", lambda: resets.append(True))

    response = client.get("/api/dealers?lat=19.1&long=72.8")

    assert response.status_code == 500
    assert response.get_json()["error"] == "Server Error"
    assert "E11000" in response.get_json()["details"]
    assert resets == []


def test_dealers_places_non_json_body_returns_details(client, monkeypatch):
    class HtmlResponse:
        status_code = 200
        ok = True
        text = "<html>proxy</html>"

        def json(self):
            raise ValueError("Expecting value")

    class HtmlSession:
        def post(self, url, json=None, headers=None, timeout=None):
            return HtmlResponse()

    monkeypatch.setenv("GOOGLE_MAPS_API_KEY", "maps-key")
    monkeypatch.setattr(dealer_lookup, "find_dealers_near", lambda lat, lng, max_distance_m: [])
    monkeypatch.setattr(google_places, "_SESSION", HtmlSession())

    response = client.get("/api/dealers?lat=19.1&long=72.8")

    assert response.status_code == 500
    assert response.get_json() == {"error": "Google Maps API Failed", "details": "<html>proxy</html>"}


def test_unknown_api_route(client):
    response = client.get("/api/unknown")
    assert response.status_code == 404
    assert response.get_json() == {"error": "API endpoint not found"}


def test_unhandled_error_hides_message_outside_development(client, monkeypatch):
    def broken(lat, lng, product=None):
        raise KeyError("secret detail")

    monkeypatch.setattr(server, "lookup_dealers", broken)

    response = client.get("/api/dealers?lat=19.1&long=72.8")

    assert response.status_code == 500
    assert response.get_json() == {"error": "Internal Server Error", "message": "Something went wrong"}


def test_unhandled_error_shows_message_in_development(client, monkeypatch):
    monkeypatch.setenv("APP_ENV", "development")

    def broken(lat, lng, product=None):
        raise KeyError("secret detail")

    monkeypatch.setattr(server, "lookup_dealers", broken)

    response = client.get("/api/dealers?lat=19.1&long=72.8")

    assert response.status_code == 500
    assert "secret detail" in response.get_json()["message"]


def test_unset_environment_reports_development_but_hides_errors(client, monkeypatch):
    def broken(lat, lng, product=None):
        raise KeyError("secret detail")

    monkeypatch.setattr(server, "lookup_dealers", broken)

    assert client.get("/api/health-check").get_json()["environment"] == "development"
    response = client.get("/api/dealers?lat=19.1&long=72.8")
    assert response.get_json()["message"] == "Something went wrong"


def test_bootstrap_tolerates_failures_in_hosted_mode(monkeypatch):
    attempts = []

    def failing_connect():
        attempts.append(True)
        raise ServerSelectionTimeoutError("no servers")

    monkeypatch.setattr(server, "connect_database", failing_connect)

    error = server.bootstrap()

    assert isinstance(error, ConfigError)
    assert attempts == [True]


def test_bootstrap_raises_in_standalone_mode(monkeypatch):
    monkeypatch.setattr(server, "connect_database", lambda: None)

    with pytest.raises(ConfigError):
        server.bootstrap(standalone=True)


def test_main_exits_on_config_error(monkeypatch):
    monkeypatch.setattr(server, "connect_database", lambda: None)

    with pytest.raises(SystemExit) as excinfo:
        server.main()
    assert excinfo.value.code == 1
