from __future__ import annotations

import os
from typing import Any, Dict, Optional, Sequence

import httpx

from backstory.common.errors import ResponseParseError, ServiceUnavailableError

PERSPECTIVE_URL = os.getenv(
    "PERSPECTIVE_URL", "https://commentanalyzer.googleapis.com/v1alpha1/comments:analyze"
)
REQUEST_TIMEOUT = float(os.getenv("PERSPECTIVE_TIMEOUT", "30"))
SERVICE_NAME = "Perspective API"


def _request_body(text: str, attributes: Sequence[str]) -> Dict[str, Any]:
    return {
        "comment": {"text": text},
        "languages": ["en"],
        "requestedAttributes": {attr: {} for attr in attributes},
        "doNotStore": True,
    }


def _parse_scores(data: Any) -> Dict[str, float]:
    if not isinstance(data, dict) or not isinstance(data.get("attributeScores"), dict):
        raise ResponseParseError(SERVICE_NAME, "expected an 'attributeScores' object")
    scores: Dict[str, float] = {}
    for attr, payload in data["attributeScores"].items():
        try:
            scores[str(attr).upper()] = float(payload["summaryScore"]["value"])
        except (KeyError, TypeError, ValueError) as e:
            raise ResponseParseError(SERVICE_NAME, f"no summary score for {attr}") from e
    return scores


def score_text(
    text: str,
    attributes: Sequence[str],
    *,
    api_key: Optional[str] = None,
    client: Optional[httpx.Client] = None,
) -> Dict[str, float]:
    """Score ``text`` for each requested attribute; scores are probabilities in [0, 1]."""
    if not text:
        raise ValueError("Text to score cannot be empty.")
    if not attributes:
        raise ValueError("At least one attribute must be requested.")
    api_key = api_key if api_key is not None else os.getenv("PERSPECTIVE_API_KEY", "")
    if not api_key:
        raise ServiceUnavailableError(SERVICE_NAME, "PERSPECTIVE_API_KEY missing. Put it in .env")

    body = _request_body(text, attributes)
    params = {"key": api_key}
    try:
        if client is not None:
            resp = client.post(PERSPECTIVE_URL, params=params, json=body)
        else:
            with httpx.Client(timeout=REQUEST_TIMEOUT) as c:
                resp = c.post(PERSPECTIVE_URL, params=params, json=body)
        resp.raise_for_status()
    except httpx.HTTPError as e:
        raise ServiceUnavailableError(SERVICE_NAME, str(e)) from e

    try:
        data = resp.json()
    except ValueError as e:
        raise ResponseParseError(SERVICE_NAME, "body is not JSON") from e
    return _parse_scores(data)
