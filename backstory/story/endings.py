from __future__ import annotations

import random
from typing import Optional

# One sentence each; every line ends with sentence-ending punctuation.
ENDINGS = (
    "The End.",
    "They lived happily ever after.",
    "Then, everything went horribly wrong.",
    "And--- that's a wrap.",
    "Goodbye!",
    'Then the director screamed "CUT!".',
    "With that, our story draws to a close.",
    "We'll never know what happened next.",
)

SENTENCE_ENDERS = (".", "?", "!")


def _require_story(story: Optional[str]) -> str:
    if story is None:
        raise ValueError("Story should not be None.")
    return story


def remove_sentence_fragment_at_end(story: str) -> str:
    """
    Cut the story right after its last ".", "?" or "!". Generated text often
    stops mid-sentence; a story with no sentence-ending punctuation at all
    becomes "".
    """
    story = _require_story(story)
    if story.endswith(SENTENCE_ENDERS):
        return story
    last_ender = max(story.rfind(ender) for ender in SENTENCE_ENDERS)
    return story[: last_ender + 1]


def add_ending(story: str, rng: Optional[random.Random] = None) -> str:
    story = _require_story(story)
    ending = (rng or random).choice(ENDINGS)
    if not story:
        return ending
    return f"{story} {ending}"


def end_story(story: str, rng: Optional[random.Random] = None) -> str:
    return add_ending(remove_sentence_fragment_at_end(story), rng)
