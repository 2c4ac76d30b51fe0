from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional

logger = logging.getLogger(__name__)

TOXICITY = "TOXICITY"

# A story is rejected when any attribute reaches its threshold.
REJECT_THRESHOLDS: Dict[str, float] = {
    TOXICITY: 0.70,
    "SEXUALLY_EXPLICIT": 0.60,
    "PROFANITY": 0.80,
    "IDENTITY_ATTACK": 0.80,
    "OBSCENE": 0.80,
}

# Attributes requested from the scoring service for every story.
REQUESTED_ATTRIBUTES = (
    "ATTACK_ON_AUTHOR",
    "ATTACK_ON_COMMENTER",
    "FLIRTATION",
    "IDENTITY_ATTACK",
    "INCOHERENT",
    "INSULT",
    "LIKELY_TO_REJECT",
    "OBSCENE",
    "PROFANITY",
    "SEVERE_TOXICITY",
    "SEXUALLY_EXPLICIT",
    "SPAM",
    "THREAT",
    "TOXICITY",
    "UNSUBSTANTIAL",
)


def _normalize(scores: Optional[Mapping[str, float]]) -> Dict[str, float]:
    if scores is None:
        raise ValueError("Scores cannot be None.")
    normalized = {}
    for name, value in scores.items():
        try:
            normalized[str(name).upper()] = float(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Score for {name} is not a number: {value!r}") from e
    if TOXICITY not in normalized:
        raise ValueError("Scores do not contain a toxicity score.")
    return normalized


def failed_attributes(scores: Mapping[str, float]) -> Dict[str, float]:
    """Attributes whose score reached the reject threshold."""
    normalized = _normalize(scores)
    return {
        name: normalized[name]
        for name, threshold in REJECT_THRESHOLDS.items()
        if name in normalized and normalized[name] >= threshold
    }


def is_appropriate(scores: Mapping[str, float]) -> bool:
    failed = failed_attributes(scores)
    if failed:
        logger.info("Story rejected by toxicity gate: %s", failed)
    return not failed
