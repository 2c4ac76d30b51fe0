"""Entry points used by the request layer: prompt in, filtered story out."""

from __future__ import annotations

import logging
from typing import Callable, Mapping, Sequence

from backstory.common.errors import InappropriateStoryError
from backstory.story.endings import end_story
from backstory.story.generation import TextGenerator
from backstory.story.prompt_manager import generate_prompt
from backstory.story.toxicity import REQUESTED_ATTRIBUTES, is_appropriate

logger = logging.getLogger(__name__)

ScoreText = Callable[[str, Sequence[str]], Mapping[str, float]]

__all__ = ["generate_prompt", "generate_final_story", "is_appropriate"]


def generate_final_story(
    prompt: str,
    max_length: int,
    temperature: float,
    *,
    generator: TextGenerator,
    scorer: ScoreText,
) -> str:
    """
    Generate a story for ``prompt``, reject it if the toxicity gate fails and
    otherwise return it with a clean ending.

    Raises GenerationFailedError when every attempt fails and
    InappropriateStoryError when the story is rejected.
    """
    raw = generator.generate_text(prompt, max_length, temperature)
    scores = scorer(raw, REQUESTED_ATTRIBUTES)
    if not is_appropriate(scores):
        raise InappropriateStoryError(scores)
    story = end_story(raw)
    logger.info("Generated story of %d characters", len(story))
    return story
