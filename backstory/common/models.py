from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple, Union


# -----------------------------
# Word classification
# -----------------------------
class WordType(str, Enum):
    """
    Grammatical category of an image label. UNUSABLE covers labels the
    prompt templates cannot place in a sentence.
    """

    NOUN = "noun"
    PROPER_NOUN = "proper_noun"
    MULTIWORD_NOUN = "multiword_noun"
    GERUND = "gerund"
    ADJECTIVE = "adjective"
    UNUSABLE = "unusable"


class RelatedWordType(str, Enum):
    ADJECTIVE = "adjective"
    GERUND = "gerund"


class ClassifiedKeywords:
    """Keywords bucketed by WordType, keeping insertion order inside each bucket."""

    def __init__(self) -> None:
        self._buckets: Dict[WordType, List[str]] = {}

    def add(self, word_type: WordType, keyword: str) -> None:
        self._buckets.setdefault(word_type, []).append(keyword)

    def get(self, word_type: WordType) -> Tuple[str, ...]:
        return tuple(self._buckets.get(word_type, ()))

    def types(self) -> List[WordType]:
        return list(self._buckets.keys())

    def as_dict(self) -> Dict[str, List[str]]:
        return {wt.value: list(words) for wt, words in self._buckets.items()}

    def __contains__(self, word_type: object) -> bool:
        return word_type in self._buckets

    def __iter__(self) -> Iterator[WordType]:
        return iter(self._buckets)

    def __len__(self) -> int:
        return sum(len(words) for words in self._buckets.values())

    def __repr__(self) -> str:
        return f"ClassifiedKeywords({self.as_dict()!r})"


@dataclass(frozen=True)
class ClassificationOk:
    buckets: ClassifiedKeywords


@dataclass(frozen=True)
class ClassificationFailed:
    reason: str


ClassificationResult = Union[ClassificationOk, ClassificationFailed]


@dataclass(frozen=True)
class SyntaxToken:
    text: str
    tag: str
    proper: bool = False


# -----------------------------
# Images & stories
# -----------------------------
@dataclass(frozen=True)
class AnnotatedImage:
    labels: Tuple[str, ...]
    landmarks: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Backstory:
    id: str
    prompt: str
    text: str
    created_at: str
    image_url: Optional[str] = None
    labels: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "image_url": self.image_url,
            "labels": list(self.labels),
            "prompt": self.prompt,
            "text": self.text,
            "created_at": self.created_at,
        }
