"""Tests for the Datamuse related-word fetcher."""

import random

import httpx
import pytest

from backstory.common.errors import ResponseParseError, ServiceUnavailableError
from backstory.common.models import RelatedWordType
from backstory.story.related_words import (
    STORYTELLING_TOPICS,
    RelatedWordFetcher,
    random_storytelling_topic,
)


def _fetcher(handler, seed=7):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return RelatedWordFetcher(url="https://words.test/words", client=client, rng=random.Random(seed))


def _words(*words):
    return [{"word": w, "score": 100 - i} for i, w in enumerate(words)]


class TestFetchRelatedWords:
    def test_adjective_query(self):
        seen = {}

        def handler(request):
            seen.update(request.url.params)
            return httpx.Response(200, json=_words("loyal", "small"))

        words = _fetcher(handler).fetch_related_words("dog", RelatedWordType.ADJECTIVE, 2, "story")

        assert words == ["loyal", "small"]
        assert seen["rel_jjb"] == "dog"
        assert seen["max"] == "2"
        assert seen["topics"] == "story"
        assert "sp" not in seen

    def test_gerund_query_restricts_spelling(self):
        seen = {}

        def handler(request):
            seen.update(request.url.params)
            return httpx.Response(200, json=_words("barking"))

        words = _fetcher(handler).fetch_related_words("dog", RelatedWordType.GERUND, 1, "")

        assert words == ["barking"]
        assert seen["rel_jja"] == "dog"
        assert seen["sp"] == "*ing"

    def test_results_are_capped(self):
        handler = lambda request: httpx.Response(200, json=_words("a", "b", "c", "d"))
        assert _fetcher(handler).fetch_related_words("dog", RelatedWordType.ADJECTIVE, 2, "") == ["a", "b"]

    def test_no_results_is_an_empty_list(self):
        handler = lambda request: httpx.Response(200, json=[])
        assert _fetcher(handler).fetch_related_words("zzz", RelatedWordType.ADJECTIVE, 3, "") == []

    @pytest.mark.parametrize(
        "noun, word_type, cap, topic",
        [
            ("golden retriever", RelatedWordType.ADJECTIVE, 2, ""),
            ("dog", RelatedWordType.ADJECTIVE, 0, ""),
            ("dog", None, 2, ""),
            ("dog", "noun", 2, ""),
            (None, RelatedWordType.ADJECTIVE, 2, ""),
            ("dog", RelatedWordType.ADJECTIVE, 2, None),
        ],
    )
    def test_invalid_arguments(self, noun, word_type, cap, topic):
        def handler(request):
            raise AssertionError("no request expected")

        with pytest.raises(ValueError):
            _fetcher(handler).fetch_related_words(noun, word_type, cap, topic)


class TestFailures:
    def test_error_status_is_unavailable(self):
        handler = lambda request: httpx.Response(500)
        with pytest.raises(ServiceUnavailableError):
            _fetcher(handler).fetch_related_adjectives("dog", 2)

    def test_non_array_is_parse_error(self):
        handler = lambda request: httpx.Response(200, json={"word": "big"})
        with pytest.raises(ResponseParseError):
            _fetcher(handler).fetch_related_adjectives("dog", 2)

    def test_item_without_word_is_parse_error(self):
        handler = lambda request: httpx.Response(200, json=[{"score": 3}])
        with pytest.raises(ResponseParseError):
            _fetcher(handler).fetch_related_adjectives("dog", 2)

    def test_non_json_is_parse_error(self):
        handler = lambda request: httpx.Response(200, text="oops")
        with pytest.raises(ResponseParseError):
            _fetcher(handler).fetch_related_gerunds("dog", 2)


class TestConvenienceWrappers:
    def test_adjectives_use_a_storytelling_topic(self):
        seen = {}

        def handler(request):
            seen.update(request.url.params)
            return httpx.Response(200, json=_words("big"))

        _fetcher(handler).fetch_related_adjectives("dog", 1)
        assert seen["topics"] in STORYTELLING_TOPICS

    def test_shuffle_keeps_the_same_words(self):
        handler = lambda request: httpx.Response(200, json=_words("a", "b", "c", "d", "e"))
        words = _fetcher(handler).fetch_related_adjectives("dog", 5, shuffle=True)
        assert sorted(words) == ["a", "b", "c", "d", "e"]

    def test_random_topic_comes_from_the_list(self):
        rng = random.Random(1)
        assert all(random_storytelling_topic(rng) in STORYTELLING_TOPICS for _ in range(20))
