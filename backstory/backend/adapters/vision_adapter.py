from __future__ import annotations

import base64
import json
import logging
import os
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from openai import APIError, APIStatusError, OpenAI

from backstory.common.errors import ResponseParseError, ServiceUnavailableError
from backstory.common.models import AnnotatedImage
from backstory.common.paths import env_file

load_dotenv(dotenv_path=env_file())

logger = logging.getLogger(__name__)

# --- Configuration -----------------------------------------------------------
VISION_MODEL = os.getenv("VISION_MODEL", "gpt-4o-mini")  # low-cost vision-capable model
MAX_LABELS = int(os.getenv("MAX_LABELS", "10"))
SERVICE_NAME = "Vision provider"

_client: Optional[OpenAI] = None


def _get_client() -> OpenAI:
    global _client
    if _client is None:
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ServiceUnavailableError(SERVICE_NAME, "OPENAI_API_KEY missing. Put it in .env")
        _client = OpenAI(api_key=api_key)
    return _client


# --- Helpers -----------------------------------------------------------------
def _label_prompt(max_labels: int) -> str:
    return (
        "You are an image labeling service.\n\n"
        f"List up to {max_labels} short labels for the things visible in the image, "
        "most prominent first. Labels are lowercase common nouns, gerunds or adjectives "
        "(for example: 'dog', 'tree', 'running', 'golden retriever'). "
        "Also list any famous landmarks or named places you can recognize.\n\n"
        "OUTPUT FORMAT:\n"
        'Return ONLY valid JSON: {"labels": ["..."], "landmarks": ["..."]}'
    )


def _safe_json_load(raw_json: str) -> Dict[str, Any]:
    try:
        return json.loads(raw_json)
    except ValueError:
        start = raw_json.find("{")
        end = raw_json.rfind("}")
        if start != -1 and end != -1 and end > start:
            return json.loads(raw_json[start : end + 1])
        raise


def _clean_list(values: Any, limit: int) -> List[str]:
    if not isinstance(values, list):
        return []
    seen = set()
    cleaned = []
    for value in values:
        if not isinstance(value, str):
            continue
        text = " ".join(value.split())
        if text and text.lower() not in seen:
            seen.add(text.lower())
            cleaned.append(text)
    return cleaned[:limit]


def _normalize_annotations(data: Any, max_labels: int) -> AnnotatedImage:
    if not isinstance(data, dict) or not isinstance(data.get("labels"), list):
        raise ResponseParseError(SERVICE_NAME, "expected an object with a 'labels' list")
    return AnnotatedImage(
        labels=tuple(_clean_list(data.get("labels"), max_labels)),
        landmarks=tuple(_clean_list(data.get("landmarks"), max_labels)),
    )


# --- Public API --------------------------------------------------------------
def detect_labels(
    image_bytes: bytes,
    *,
    mime_type: str = "image/png",
    client: Optional[OpenAI] = None,
    max_labels: int = MAX_LABELS,
) -> AnnotatedImage:
    """
    Label the contents of an image. An empty label list is a valid result.
    """
    if not image_bytes:
        raise ValueError("Image data must be non-empty.")
    client = client or _get_client()

    data_url = f"data:{mime_type};base64,{base64.b64encode(image_bytes).decode('ascii')}"
    try:
        resp = client.chat.completions.create(
            model=VISION_MODEL,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": _label_prompt(max_labels)},
                        {"type": "image_url", "image_url": {"url": data_url}},
                    ],
                }
            ],
            response_format={"type": "json_object"},
            temperature=0,
        )
    except APIStatusError as e:
        raise ServiceUnavailableError(
            SERVICE_NAME, f"OpenAI API error ({e.status_code}): {e.message}"
        ) from e
    except APIError as e:
        raise ServiceUnavailableError(SERVICE_NAME, str(e)) from e

    try:
        raw_json = resp.choices[0].message.content or ""
        data = _safe_json_load(raw_json)
    except (IndexError, AttributeError, ValueError) as e:
        raise ResponseParseError(SERVICE_NAME, str(e)) from e

    annotated = _normalize_annotations(data, max_labels)
    logger.info(
        "Detected %d label(s) and %d landmark(s)", len(annotated.labels), len(annotated.landmarks)
    )
    return annotated
