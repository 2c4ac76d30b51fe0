from __future__ import annotations

from typing import Optional, Sequence

from backstory.story.body_generator import PromptBodyGenerator
from backstory.story.related_words import RelatedWordFetcher
from backstory.story.word_classifier import WordClassifier

PROMPT_OPENER = "Once upon a time"


def format_location(locations: Optional[Sequence[str]]) -> str:
    """
    " at the castle" for "The castle", " near Paris" for "Paris", "" when
    there is no location. Only the first location is used.
    """
    if not locations:
        return ""
    location = (locations[0] or "").strip()
    if not location:
        return ""
    article = "the "
    if len(location) > len(article) and location[: len(article)].lower() == article:
        return " at " + article + location[len(article):]
    return " near " + location


class PromptManager:
    def __init__(
        self,
        keywords: Sequence[str],
        locations: Optional[Sequence[str]] = None,
        *,
        randomize: bool = True,
        classifier: Optional[WordClassifier] = None,
        fetcher: Optional[RelatedWordFetcher] = None,
    ) -> None:
        if keywords is None:
            raise ValueError("Keywords cannot be None.")
        self.keywords = list(keywords)
        self.locations = list(locations or [])
        self.randomize = randomize
        self.classifier = classifier
        self.fetcher = fetcher

    def generate_prompt(self) -> str:
        generator = PromptBodyGenerator(
            self.keywords,
            choose_randomly=self.randomize,
            classifier=self.classifier,
            fetcher=self.fetcher,
        )
        return f"{PROMPT_OPENER}{format_location(self.locations)}, {generator.generate_body()}"


def generate_prompt(
    keywords: Sequence[str],
    locations: Optional[Sequence[str]] = None,
    *,
    randomize: bool = False,
    classifier: Optional[WordClassifier] = None,
    fetcher: Optional[RelatedWordFetcher] = None,
) -> str:
    return PromptManager(
        keywords,
        locations,
        randomize=randomize,
        classifier=classifier,
        fetcher=fetcher,
    ).generate_prompt()
