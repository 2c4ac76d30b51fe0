"""Tests for the toxicity gate."""

import pytest

from backstory.story.toxicity import (
    REJECT_THRESHOLDS,
    REQUESTED_ATTRIBUTES,
    failed_attributes,
    is_appropriate,
)


class TestIsAppropriate:
    @pytest.mark.parametrize("score, expected", [(0.69, True), (0.70, False), (0.71, False)])
    def test_toxicity_threshold(self, score, expected):
        assert is_appropriate({"TOXICITY": score}) is expected

    def test_other_attributes_have_their_own_thresholds(self):
        assert is_appropriate({"TOXICITY": 0.1, "SEXUALLY_EXPLICIT": 0.59})
        assert not is_appropriate({"TOXICITY": 0.1, "SEXUALLY_EXPLICIT": 0.60})
        assert not is_appropriate({"TOXICITY": 0.1, "PROFANITY": 0.85})

    def test_attributes_outside_the_gate_are_ignored(self):
        assert is_appropriate({"TOXICITY": 0.1, "SPAM": 0.99, "INCOHERENT": 0.99})

    def test_names_are_case_insensitive(self):
        assert not is_appropriate({"toxicity": 0.9})

    def test_missing_toxicity_is_rejected_as_invalid(self):
        with pytest.raises(ValueError):
            is_appropriate({"PROFANITY": 0.1})

    def test_none_is_invalid(self):
        with pytest.raises(ValueError):
            is_appropriate(None)

    @pytest.mark.parametrize("value", [None, "high", [0.9]])
    def test_non_numeric_score_is_invalid(self, value):
        with pytest.raises(ValueError):
            is_appropriate({"TOXICITY": value})


class TestFailedAttributes:
    def test_lists_every_attribute_over_its_threshold(self):
        failed = failed_attributes({"TOXICITY": 0.75, "OBSCENE": 0.9, "PROFANITY": 0.2})
        assert failed == {"TOXICITY": 0.75, "OBSCENE": 0.9}

    def test_gated_attributes_are_requested(self):
        assert set(REJECT_THRESHOLDS) <= set(REQUESTED_ATTRIBUTES)
