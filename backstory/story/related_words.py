from __future__ import annotations

import logging
import os
import random
from typing import Any, Dict, List, Optional

import httpx

from backstory.common.errors import ResponseParseError, ServiceUnavailableError
from backstory.common.models import RelatedWordType
from backstory.story.word_classifier import has_whitespace

logger = logging.getLogger(__name__)

# --- Configuration -----------------------------------------------------------
DATAMUSE_URL = os.getenv("DATAMUSE_URL", "https://api.datamuse.com/words")
REQUEST_TIMEOUT = float(os.getenv("DATAMUSE_TIMEOUT", "10"))
SERVICE_NAME = "Datamuse API"

# Topics used to bias related words toward storytelling vocabulary.
STORYTELLING_TOPICS = (
    "story",
    "fairytale",
    "narrative",
    "anecdote",
    "drama",
    "fantasy",
    "adventure",
    "poem",
    "grand",
)


def random_storytelling_topic(rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(STORYTELLING_TOPICS)


class RelatedWordFetcher:
    """Fetches words related to a noun from the Datamuse API."""

    def __init__(
        self,
        *,
        url: str = DATAMUSE_URL,
        client: Optional[httpx.Client] = None,
        timeout: float = REQUEST_TIMEOUT,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._url = url
        self._client = client
        self._timeout = timeout
        self._rng = rng or random.Random()

    def fetch_related_words(
        self, noun: str, word_type: RelatedWordType, cap: int, topic: str
    ) -> List[str]:
        """
        Return up to ``cap`` words of ``word_type`` related to ``noun``, most
        related first, then most relevant to ``topic`` ("" means no topic).
        """
        _validate_arguments(noun, word_type, cap, topic)

        params: Dict[str, Any] = {}
        if word_type == RelatedWordType.ADJECTIVE:
            params["rel_jjb"] = noun
        else:
            params["rel_jja"] = noun
            params["sp"] = "*ing"
        params["max"] = cap
        params["topics"] = topic

        return _parse_words(self._query(params))[:cap]

    def fetch_related_adjectives(self, noun: str, cap: int, shuffle: bool = False) -> List[str]:
        topic = random_storytelling_topic(self._rng)
        adjectives = self.fetch_related_words(noun, RelatedWordType.ADJECTIVE, cap, topic)
        if shuffle:
            self._rng.shuffle(adjectives)
        return adjectives

    def fetch_related_gerunds(self, noun: str, cap: int, shuffle: bool = False) -> List[str]:
        topic = random_storytelling_topic(self._rng)
        gerunds = self.fetch_related_words(noun, RelatedWordType.GERUND, cap, topic)
        if shuffle:
            self._rng.shuffle(gerunds)
        return gerunds

    def _query(self, params: Dict[str, Any]) -> Any:
        try:
            if self._client is not None:
                resp = self._client.get(self._url, params=params)
            else:
                with httpx.Client(timeout=self._timeout) as client:
                    resp = client.get(self._url, params=params)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise ServiceUnavailableError(SERVICE_NAME, str(e)) from e

        try:
            return resp.json()
        except ValueError as e:
            raise ResponseParseError(SERVICE_NAME, "body is not JSON") from e


def _validate_arguments(noun: str, word_type: RelatedWordType, cap: int, topic: str) -> None:
    if word_type is None:
        raise ValueError("Word type cannot be None.")
    if not isinstance(word_type, RelatedWordType):
        raise ValueError("Only adjective and gerund relations are supported.")
    if noun is None:
        raise ValueError("Noun cannot be None.")
    if has_whitespace(noun):
        raise ValueError("Noun cannot contain whitespace (must be one word).")
    if cap <= 0:
        raise ValueError("Cap must be greater than 0.")
    if topic is None:
        raise ValueError("Topic cannot be None.")


def _parse_words(data: Any) -> List[str]:
    if not isinstance(data, list):
        raise ResponseParseError(SERVICE_NAME, "expected a JSON array")
    words = []
    for item in data:
        if not isinstance(item, dict):
            raise ResponseParseError(SERVICE_NAME, "array did not hold JSON objects")
        word = item.get("word")
        if not isinstance(word, str):
            raise ResponseParseError(SERVICE_NAME, 'object had no string value for "word"')
        words.append(word)
    return words
