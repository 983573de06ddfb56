import sys
from pathlib import Path

import pytest

# Ensure `kisan_api` is importable when running pytest from the repo root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from kisan_api.core import config  # noqa: E402

_ENV_KEYS = (
    "MONGO_URI",
    "SERVICE_ACCOUNT_JSON",
    "SERVICE_ACCOUNT_FILE",
    "GCLOUD_PROJECT",
    "PROJECT_ID",
    "GCLOUD_LOCATION",
    "GOOGLE_MAPS_API_KEY",
    "GEMINI_MODEL",
    "PORT",
    "APP_ENV",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(config, "load_dotenv", lambda: None)
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()
