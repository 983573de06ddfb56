"""Gemini on Vertex AI, configured explicitly from the environment."""

import json
import logging
import os
from typing import Optional

from google import genai
from google.genai import types
from google.genai.errors import APIError
from google.oauth2 import service_account

from kisan_api.core.config import ConfigError, get_settings

logger = logging.getLogger(__name__)

_SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]

_client: Optional[genai.Client] = None


class VertexAIError(RuntimeError):
    """Raised when the model call fails or returns no text."""


def _load_credentials(settings) -> service_account.Credentials:
    if settings.service_account_json:
        logger.info("Loading GCloud credentials from SERVICE_ACCOUNT_JSON")
        try:
            info = json.loads(settings.service_account_json)
        except ValueError as exc:
            raise ConfigError(f"SERVICE_ACCOUNT_JSON contains invalid JSON: {exc}") from exc
        return service_account.Credentials.from_service_account_info(info, scopes=_SCOPES)

    if os.path.isfile(settings.service_account_file):
        logger.info("Loading GCloud credentials from key file %s", settings.service_account_file)
        return service_account.Credentials.from_service_account_file(settings.service_account_file, scopes=_SCOPES)

    raise ConfigError(
        "Google credentials not found. Set SERVICE_ACCOUNT_JSON or provide "
        f"{settings.service_account_file} locally."
    )


def get_client() -> genai.Client:
    """Build the Vertex AI client once; the project is never auto-inferred."""
    global _client
    if _client is not None:
        return _client

    settings = get_settings()
    if not settings.gcloud_project:
        raise ConfigError("Neither GCLOUD_PROJECT nor PROJECT_ID is defined.")

    credentials = _load_credentials(settings)
    logger.info(
        "Initializing Vertex AI - project=%s location=%s",
        settings.gcloud_project,
        settings.gcloud_location,
    )
    _client = genai.Client(
        vertexai=True,
        project=settings.gcloud_project,
        location=settings.gcloud_location,
        credentials=credentials,
    )
    return _client


def reset_client() -> None:
    global _client
    _client = None


def generate_from_image(
    image_bytes: bytes,
    mime_type: str,
    prompt: str,
    *,
    temperature: float = 0.4,
    max_output_tokens: int = 1024,
) -> str:
    """Send one image plus prompt to the model and return the reply text."""
    client = get_client()
    model = get_settings().gemini_model
    logger.info("Sending %d byte image (%s) to %s", len(image_bytes), mime_type, model)

    try:
        response = client.models.generate_content(
            model=model,
            contents=[
                types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
                prompt,
            ],
            config=types.GenerateContentConfig(
                temperature=temperature,
                max_output_tokens=max_output_tokens,
            ),
        )
    except APIError as exc:
        logger.error("Vertex AI error: %s", exc)
        raise VertexAIError(exc.message or str(exc)) from exc

    text = response.text
    if not text:
        raise VertexAIError("Model returned an empty response")
    return text
