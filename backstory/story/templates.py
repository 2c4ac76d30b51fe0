from __future__ import annotations

import random
from enum import Enum
from typing import Dict, Optional, Tuple

# Placeholders, listed in the order they are filled.
GERUND_SLOT = "<gerund>"
DOUBLE_ADJ_NOUN_SLOT = "<adj> <adj> <noun>"
SINGLE_ADJ_NOUN_SLOT = "<adj> <noun>"
PLACEHOLDERS = (GERUND_SLOT, DOUBLE_ADJ_NOUN_SLOT, SINGLE_ADJ_NOUN_SLOT)

EMPTY_SCENE = "a hectic, unrecognizable scene took place."


class TemplateFamily(str, Enum):
    INTRO_WITH_GERUND = "intro_with_gerund"
    INTRO_WITHOUT_GERUND = "intro_without_gerund"
    SECOND_SENTENCE = "second_sentence"
    SIMPLE_ENDING = "simple_ending"


TEMPLATES: Dict[TemplateFamily, Tuple[str, ...]] = {
    TemplateFamily.INTRO_WITHOUT_GERUND: (
        "a <adj> <noun> as well as a <adj> <noun> decided to come together.",
        "a <adj> <adj> <noun> and a <adj> <adj> <noun> appeared all at once.",
    ),
    TemplateFamily.INTRO_WITH_GERUND: (
        "there was a <adj> <adj> <noun> <gerund> alongside a <adj> <noun>.",
        "a <adj> <noun> as well as a <gerund> <adj> <noun> were together.",
    ),
    TemplateFamily.SECOND_SENTENCE: (
        "A <adj> <noun> was also present, quite an interesting scene.",
        "One must not forget the <adj> <noun>, which simply cannot be ignored.",
    ),
    TemplateFamily.SIMPLE_ENDING: (
        "were all really quite interesting.",
        "all came together in one place.",
        "were all together at once.",
    ),
}


def choose_template(
    family: TemplateFamily,
    choose_randomly: bool = False,
    rng: Optional[random.Random] = None,
) -> str:
    """First template of the family, or a uniformly random one."""
    templates = TEMPLATES[family]
    if not choose_randomly:
        return templates[0]
    return (rng or random).choice(templates)


def has_placeholders(text: str) -> bool:
    return any(slot in text for slot in PLACEHOLDERS)
