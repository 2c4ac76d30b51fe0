from __future__ import annotations

import logging
import os
import re
from typing import Any, Dict, List, Optional, Sequence

import httpx

from backstory.common.errors import ResponseParseError, ServiceUnavailableError
from backstory.common.models import (
    ClassificationFailed,
    ClassificationOk,
    ClassificationResult,
    ClassifiedKeywords,
    SyntaxToken,
    WordType,
)

logger = logging.getLogger(__name__)

# --- Configuration -----------------------------------------------------------
NL_API_URL = os.getenv(
    "NL_API_URL", "https://language.googleapis.com/v1/documents:analyzeSyntax"
)
REQUEST_TIMEOUT = float(os.getenv("NL_API_TIMEOUT", "15"))
SERVICE_NAME = "Natural Language API"

GERUND_SUFFIX = "ing"
_WHITESPACE = re.compile(r"\s")


def has_whitespace(text: str) -> bool:
    return bool(_WHITESPACE.search(text))


class SyntaxClient:
    """Part-of-speech tagging through the Cloud Natural Language REST API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        url: str = NL_API_URL,
        client: Optional[httpx.Client] = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self._api_key = api_key if api_key is not None else os.getenv("GOOGLE_API_KEY", "")
        self._url = url
        self._client = client
        self._timeout = timeout

    def _post(self, body: Dict[str, Any]) -> httpx.Response:
        params = {"key": self._api_key}
        if self._client is not None:
            return self._client.post(self._url, params=params, json=body)
        with httpx.Client(timeout=self._timeout) as client:
            return client.post(self._url, params=params, json=body)

    def analyze_syntax(self, text: str) -> List[SyntaxToken]:
        if not self._api_key:
            raise ServiceUnavailableError(SERVICE_NAME, "GOOGLE_API_KEY missing. Put it in .env")
        body = {
            "document": {"type": "PLAIN_TEXT", "content": text},
            "encodingType": "UTF8",
        }
        try:
            resp = self._post(body)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise ServiceUnavailableError(SERVICE_NAME, str(e)) from e

        try:
            data = resp.json()
        except ValueError as e:
            raise ResponseParseError(SERVICE_NAME, "body is not JSON") from e
        return _parse_tokens(data)


def _parse_tokens(data: Any) -> List[SyntaxToken]:
    if not isinstance(data, dict) or not isinstance(data.get("tokens", []), list):
        raise ResponseParseError(SERVICE_NAME, "expected an object with a 'tokens' list")
    tokens = []
    for raw in data.get("tokens", []):
        try:
            pos = raw["partOfSpeech"]
            tokens.append(
                SyntaxToken(
                    text=(raw.get("text") or {}).get("content", ""),
                    tag=str(pos["tag"]),
                    proper=pos.get("proper") == "PROPER",
                )
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ResponseParseError(SERVICE_NAME, f"malformed token {raw!r}") from e
    return tokens


class WordClassifier:
    """
    Groups image labels into WordType buckets.

    Labels with embedded whitespace are bucketed locally (a plain space makes a
    multi-word noun, any other whitespace makes the label unusable). Single
    words are tagged one at a time by the syntax service.
    """

    def __init__(self, syntax_client: Optional[SyntaxClient] = None) -> None:
        self._syntax = syntax_client if syntax_client is not None else SyntaxClient()

    def group_by_word_type(self, words: Sequence[str]) -> ClassifiedKeywords:
        if words is None:
            raise ValueError("Words cannot be None.")

        grouped = ClassifiedKeywords()
        single_words: List[str] = []
        for text in words:
            if not isinstance(text, str):
                raise ValueError(f"Keyword must be a string, got {type(text).__name__}.")
            if has_whitespace(text):
                if " " in text:
                    grouped.add(WordType.MULTIWORD_NOUN, text)
                else:
                    grouped.add(WordType.UNUSABLE, text)
            elif not text:
                grouped.add(WordType.UNUSABLE, text)
            else:
                single_words.append(text)

        for word in single_words:
            grouped.add(self._word_type(word), word)
        return grouped

    def classify(self, words: Sequence[str]) -> ClassificationResult:
        try:
            return ClassificationOk(self.group_by_word_type(words))
        except ServiceUnavailableError as e:
            logger.warning("Word classification unavailable: %s", e)
            return ClassificationFailed(str(e))
        except ResponseParseError as e:
            logger.warning("Word classification returned an unexpected payload: %s", e)
            return ClassificationFailed(str(e))

    def is_gerund(self, word: str) -> bool:
        if has_whitespace(word):
            return False
        if len(word) < len(GERUND_SUFFIX) or not word.endswith(GERUND_SUFFIX):
            return False

        # "running" alone may tag as a noun; "is running" tags it as a verb.
        tokens = self._syntax.analyze_syntax("is " + word)
        if len(tokens) < 2:
            raise ResponseParseError(SERVICE_NAME, f"expected 2 tokens for 'is {word}'")
        return tokens[1].tag == "VERB"

    def _word_type(self, word: str) -> WordType:
        tokens = self._syntax.analyze_syntax(word)
        if not tokens:
            raise ResponseParseError(SERVICE_NAME, f"no tokens returned for {word!r}")
        token = tokens[0]

        if token.tag in ("VERB", "NOUN") and self.is_gerund(word):
            return WordType.GERUND
        if token.tag == "NOUN":
            return WordType.PROPER_NOUN if token.proper else WordType.NOUN
        if token.tag == "ADJ":
            return WordType.ADJECTIVE
        return WordType.UNUSABLE
