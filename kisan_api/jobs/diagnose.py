"""Leaf diagnosis via Gemini."""

import logging

from kisan_api.etl.diagnosis import DIAGNOSIS_PROMPT, parse_diagnosis
from kisan_api.models import Diagnosis
from kisan_api.vendors import vertex_ai

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/jpeg"


def resolve_mime_type(mime_type: str) -> str:
    if mime_type and mime_type.startswith("image/"):
        return mime_type
    return DEFAULT_MIME_TYPE


def diagnose_leaf(image_bytes: bytes, mime_type: str = DEFAULT_MIME_TYPE) -> Diagnosis:
    logger.info("Image received; sending to Gemini")
    text = vertex_ai.generate_from_image(
        image_bytes,
        resolve_mime_type(mime_type),
        DIAGNOSIS_PROMPT,
        temperature=0.4,
        max_output_tokens=1024,
    )
    diagnosis = parse_diagnosis(text)
    logger.info("Diagnosis: %s, prescribed: %s", diagnosis.disease_name, diagnosis.recommended_product)
    return diagnosis
