from __future__ import annotations

import logging
import os
import threading
from typing import Any, Dict, List, Optional, Sequence

import httpx

from backstory.common.errors import (
    GenerationFailedError,
    ResponseParseError,
    ServiceUnavailableError,
)

logger = logging.getLogger(__name__)

# --- Configuration -----------------------------------------------------------
TEXT_GEN_URLS = [
    u.strip()
    for u in os.getenv("TEXT_GEN_URLS", "http://127.0.0.1:8080").split(",")
    if u.strip()
]
TEXT_GEN_TIMEOUT = float(os.getenv("TEXT_GEN_TIMEOUT", "120"))
TEXT_GEN_AUTH_TOKEN = os.getenv("TEXT_GEN_AUTH_TOKEN", "")
SERVICE_NAME = "Text generation service"

MAX_GENERATION_ATTEMPTS = 3
MIN_LENGTH, MAX_LENGTH = 100, 1000
END_OF_TEXT = "<|endoftext|>"


class EndpointPool:
    """
    Round-robin pool of interchangeable generator endpoints. The index is
    shared by every request using the pool, so all access goes through a lock.
    """

    def __init__(self, urls: Sequence[str]) -> None:
        urls = [u for u in (urls or []) if u]
        if not urls:
            raise ValueError("Endpoint pool needs at least one URL.")
        self._urls = tuple(urls)
        self._index = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._urls)

    @property
    def urls(self) -> List[str]:
        return list(self._urls)

    @property
    def index(self) -> int:
        with self._lock:
            return self._index

    def current(self) -> str:
        with self._lock:
            return self._urls[self._index]

    def advance(self) -> int:
        with self._lock:
            self._index = (self._index + 1) % len(self._urls)
            return self._index

    def next_endpoint(self) -> str:
        """Return the current endpoint and move the pool on to the next one."""
        with self._lock:
            url = self._urls[self._index]
            self._index = (self._index + 1) % len(self._urls)
            return url


def validate_generation_params(max_length: int, temperature: float) -> None:
    if not MIN_LENGTH <= max_length <= MAX_LENGTH:
        raise ValueError(f"Maximum length must be between {MIN_LENGTH} and {MAX_LENGTH}.")
    if not 0 <= temperature <= 1:
        raise ValueError("Temperature must be between 0 and 1.")


class TextGenerator:
    """Requests generated text, retrying on the next endpoint after a failure."""

    def __init__(
        self,
        pool: EndpointPool,
        *,
        max_attempts: int = MAX_GENERATION_ATTEMPTS,
        client: Optional[httpx.Client] = None,
        timeout: float = TEXT_GEN_TIMEOUT,
        auth_token: str = TEXT_GEN_AUTH_TOKEN,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")
        self.pool = pool
        self.max_attempts = max_attempts
        self._client = client
        self._timeout = timeout
        self._auth_token = auth_token

    def generate_text(self, prompt: str, max_length: int, temperature: float) -> str:
        if not prompt:
            raise ValueError("Prompt cannot be empty.")
        validate_generation_params(max_length, temperature)

        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_attempts + 1):
            endpoint = self.pool.next_endpoint()
            try:
                return self.request_text(endpoint, prompt, max_length, temperature)
            except ServiceUnavailableError as e:
                logger.warning(
                    "Generation attempt %d/%d: %s unreachable: %s",
                    attempt, self.max_attempts, endpoint, e,
                )
                last_error = e
            except ResponseParseError as e:
                logger.warning(
                    "Generation attempt %d/%d: bad response from %s: %s",
                    attempt, self.max_attempts, endpoint, e,
                )
                last_error = e

        logger.error("Text generation gave up after %d attempts", self.max_attempts)
        raise GenerationFailedError(self.max_attempts, last_error)

    def request_text(self, endpoint: str, prompt: str, max_length: int, temperature: float) -> str:
        body = _request_body(prompt, max_length, temperature)
        headers = {"Content-Type": "application/json"}
        if self._auth_token:
            headers["Authorization"] = f"Bearer {self._auth_token}"
        try:
            if self._client is not None:
                resp = self._client.post(endpoint, json=body, headers=headers)
            else:
                with httpx.Client(timeout=self._timeout) as client:
                    resp = client.post(endpoint, json=body, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise ServiceUnavailableError(SERVICE_NAME, str(e)) from e

        try:
            data = resp.json()
        except ValueError as e:
            raise ResponseParseError(SERVICE_NAME, "body is not JSON") from e
        text = data.get("text") if isinstance(data, dict) else None
        if not isinstance(text, str) or not text.strip():
            raise ResponseParseError(SERVICE_NAME, 'missing or empty "text"')
        return text


def _request_body(prompt: str, max_length: int, temperature: float) -> Dict[str, Any]:
    return {
        "prefix": prompt,
        "length": int(max_length),
        "temperature": float(temperature),
        "truncate": END_OF_TEXT,
    }
