from __future__ import annotations

import logging
import random
from typing import Optional, Sequence, Tuple

from backstory.common.errors import ResponseParseError, ServiceUnavailableError
from backstory.common.models import ClassificationFailed, WordType
from backstory.story.related_words import RelatedWordFetcher
from backstory.story.templates import (
    DOUBLE_ADJ_NOUN_SLOT,
    EMPTY_SCENE,
    GERUND_SLOT,
    SINGLE_ADJ_NOUN_SLOT,
    TemplateFamily,
    choose_template,
)
from backstory.story.word_classifier import WordClassifier, has_whitespace

logger = logging.getLogger(__name__)

# Minimum number of nouns needed for the descriptive body.
MINIMUM_NOUNS = 3

_FILL_FAILURES = (ServiceUnavailableError, ResponseParseError, ValueError, IndexError)


class _Cursor:
    """Hands out words front to back without touching the underlying tuple."""

    def __init__(self, words: Sequence[str], kind: str) -> None:
        self._words: Tuple[str, ...] = tuple(words)
        self._index = 0
        self._kind = kind

    def __len__(self) -> int:
        return len(self._words) - self._index

    def take(self) -> str:
        if self._index >= len(self._words):
            raise IndexError(f"No {self._kind} left to fill the template.")
        word = self._words[self._index]
        self._index += 1
        return word


class PromptBodyGenerator:
    """
    Builds the body of a story prompt from image keywords.

    With at least MINIMUM_NOUNS classified nouns the body is a pair of
    template sentences whose nouns are decorated with related adjectives.
    Otherwise, or when classification or enrichment fails, the keywords are
    simply listed. generate_body() never raises for service failures.
    """

    def __init__(
        self,
        keywords: Sequence[str],
        choose_randomly: bool = False,
        classifier: Optional[WordClassifier] = None,
        fetcher: Optional[RelatedWordFetcher] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        if keywords is None:
            raise ValueError("Keywords cannot be None.")
        for keyword in keywords:
            if not isinstance(keyword, str):
                raise ValueError(f"Keyword must be a string, got {type(keyword).__name__}.")
        self._keywords: Tuple[str, ...] = tuple(keywords)
        self._choose_randomly = choose_randomly
        self._classifier = classifier
        self._fetcher = fetcher
        self._rng = rng or random.Random()

    @property
    def classifier(self) -> WordClassifier:
        if self._classifier is None:
            self._classifier = WordClassifier()
        return self._classifier

    @property
    def fetcher(self) -> RelatedWordFetcher:
        if self._fetcher is None:
            self._fetcher = RelatedWordFetcher(rng=self._rng)
        return self._fetcher

    def generate_body(self) -> str:
        if not self._keywords:
            return self.make_list_body()

        result = self.classifier.classify(self._keywords)
        if isinstance(result, ClassificationFailed):
            logger.info("Classification failed, listing keywords instead: %s", result.reason)
            return self.make_list_body()

        buckets = result.buckets
        nouns = buckets.get(WordType.NOUN) + buckets.get(WordType.MULTIWORD_NOUN)
        gerunds = buckets.get(WordType.GERUND)

        if len(nouns) >= MINIMUM_NOUNS:
            return self.make_descriptive_body(nouns, gerunds)
        return self.make_list_body()

    def make_descriptive_body(self, nouns: Sequence[str], gerunds: Sequence[str] = ()) -> str:
        intro_family = (
            TemplateFamily.INTRO_WITH_GERUND if gerunds else TemplateFamily.INTRO_WITHOUT_GERUND
        )
        body = self._template(intro_family) + " " + self._template(TemplateFamily.SECOND_SENTENCE)

        noun_cursor = _Cursor(nouns, "nouns")
        gerund_cursor = _Cursor(gerunds, "gerunds")
        try:
            while True:
                if GERUND_SLOT in body:
                    body = body.replace(GERUND_SLOT, gerund_cursor.take(), 1)
                elif DOUBLE_ADJ_NOUN_SLOT in body:
                    filled = self._describe(noun_cursor.take(), 2)
                    body = body.replace(DOUBLE_ADJ_NOUN_SLOT, filled, 1)
                elif SINGLE_ADJ_NOUN_SLOT in body:
                    filled = self._describe(noun_cursor.take(), 1)
                    body = body.replace(SINGLE_ADJ_NOUN_SLOT, filled, 1)
                else:
                    break
        except ServiceUnavailableError as e:
            logger.warning("Adjective lookup unavailable, listing keywords instead: %s", e)
            return self.make_list_body()
        except _FILL_FAILURES as e:
            logger.warning("Could not fill descriptive template, listing keywords instead: %s", e)
            return self.make_list_body()
        return body

    def make_list_body(self) -> str:
        keywords = self._keywords
        if not keywords:
            return EMPTY_SCENE
        if len(keywords) == 1:
            return f"a {keywords[0]} was present."

        ending = self._template(TemplateFamily.SIMPLE_ENDING)
        if len(keywords) == 2:
            return f"a {keywords[0]} as well as a {keywords[1]} {ending}"

        listed = "".join(f"{keyword}, " for keyword in keywords[:-1])
        return f"{listed}as well as a {keywords[-1]} {ending}"

    def _describe(self, noun: str, count: int) -> str:
        # Multi-word nouns are looked up by their last word ("golden retriever" -> "retriever").
        query = noun.split()[-1] if has_whitespace(noun) else noun
        adjectives = self.fetcher.fetch_related_adjectives(
            query, count, shuffle=self._choose_randomly
        )
        if len(adjectives) < count:
            raise IndexError(f"Needed {count} adjective(s) for {noun!r}, got {len(adjectives)}.")
        return " ".join(list(adjectives[:count]) + [noun])

    def _template(self, family: TemplateFamily) -> str:
        return choose_template(family, self._choose_randomly, self._rng)


def generate_body(
    keywords: Sequence[str],
    choose_randomly: bool = False,
    classifier: Optional[WordClassifier] = None,
    fetcher: Optional[RelatedWordFetcher] = None,
) -> str:
    return PromptBodyGenerator(keywords, choose_randomly, classifier, fetcher).generate_body()
