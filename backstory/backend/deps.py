"""Shared FastAPI dependencies: the collaborators each route talks to."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Callable

from backstory.backend.adapters.perspective_adapter import score_text
from backstory.backend.adapters.vision_adapter import detect_labels
from backstory.common.models import AnnotatedImage
from backstory.story.generation import TEXT_GEN_URLS, EndpointPool, TextGenerator
from backstory.story.pipeline import ScoreText
from backstory.story.related_words import RelatedWordFetcher
from backstory.story.word_classifier import WordClassifier


@dataclass
class Services:
    detect_labels: Callable[..., AnnotatedImage]
    score_text: ScoreText
    generator: TextGenerator
    classifier: WordClassifier
    fetcher: RelatedWordFetcher


@lru_cache(maxsize=1)
def get_services() -> Services:
    # One pool per process so every request advances the same rotation.
    return Services(
        detect_labels=detect_labels,
        score_text=score_text,
        generator=TextGenerator(EndpointPool(TEXT_GEN_URLS)),
        classifier=WordClassifier(),
        fetcher=RelatedWordFetcher(),
    )
