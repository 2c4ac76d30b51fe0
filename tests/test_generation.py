"""Tests for endpoint rotation and generation retries."""

import json
import threading

import httpx
import pytest

from backstory.common.errors import GenerationFailedError, ResponseParseError
from backstory.story.generation import (
    MAX_GENERATION_ATTEMPTS,
    EndpointPool,
    TextGenerator,
    validate_generation_params,
)

URLS = ["http://gen-0.test/", "http://gen-1.test/", "http://gen-2.test/"]


class TestEndpointPool:
    def test_empty_pool_is_rejected(self):
        with pytest.raises(ValueError):
            EndpointPool([])

    def test_next_endpoint_rotates_in_order(self):
        pool = EndpointPool(URLS)
        assert [pool.next_endpoint() for _ in range(4)] == URLS + URLS[:1]

    @pytest.mark.parametrize("rounds", [1, 2, 5])
    def test_k_advances_return_to_start(self, rounds):
        pool = EndpointPool(URLS)
        start = pool.current()
        for _ in range(rounds * len(pool)):
            pool.advance()
        assert pool.current() == start
        assert pool.index == 0

    def test_concurrent_advances_are_not_lost(self):
        threads_count, per_thread = 8, 250
        total = threads_count * per_thread
        # Larger than the number of advances so the index never wraps.
        pool = EndpointPool([f"http://gen-{i}.test/" for i in range(total + 1)])
        barrier = threading.Barrier(threads_count)
        seen = [[] for _ in range(threads_count)]

        def worker(out):
            barrier.wait()
            for _ in range(per_thread):
                out.append(pool.advance())

        threads = [threading.Thread(target=worker, args=(out,)) for out in seen]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        returned = sorted(i for out in seen for i in out)
        assert returned == list(range(1, total + 1))
        assert pool.index == total


class TestValidation:
    @pytest.mark.parametrize("max_length, temperature", [(99, 0.5), (1001, 0.5), (200, -0.1), (200, 1.1)])
    def test_out_of_range(self, max_length, temperature):
        with pytest.raises(ValueError):
            validate_generation_params(max_length, temperature)

    @pytest.mark.parametrize("max_length, temperature", [(100, 0.0), (1000, 1.0), (200, 0.7)])
    def test_in_range(self, max_length, temperature):
        validate_generation_params(max_length, temperature)

    def test_empty_prompt(self):
        with pytest.raises(ValueError):
            TextGenerator(EndpointPool(URLS)).generate_text("", 200, 0.7)


def _generator(handler, urls=URLS, **kwargs):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return TextGenerator(EndpointPool(urls), client=client, **kwargs)


class TestTextGenerator:
    def test_request_body(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, json={"text": "The dog barked."})

        text = _generator(handler, auth_token="tok").generate_text("Once upon a time", 200, 0.7)

        assert text == "The dog barked."
        assert seen["url"] == URLS[0]
        assert seen["body"] == {
            "prefix": "Once upon a time",
            "length": 200,
            "temperature": 0.7,
            "truncate": "<|endoftext|>",
        }
        assert seen["auth"] == "Bearer tok"

    def test_stops_at_first_success(self):
        calls = []

        def handler(request):
            calls.append(str(request.url))
            return httpx.Response(200, json={"text": "ok."})

        _generator(handler).generate_text("prompt", 200, 0.7)
        assert calls == [URLS[0]]

    def test_retries_on_next_endpoint(self):
        calls = []

        def handler(request):
            calls.append(str(request.url))
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, json={"text": "Third time lucky."})

        text = _generator(handler).generate_text("prompt", 200, 0.7)
        assert text == "Third time lucky."
        assert calls == URLS

    def test_gives_up_after_max_attempts(self):
        calls = []

        def handler(request):
            calls.append(str(request.url))
            return httpx.Response(200, json={"error": "busy"})

        with pytest.raises(GenerationFailedError) as excinfo:
            _generator(handler).generate_text("prompt", 200, 0.7)

        assert len(calls) == MAX_GENERATION_ATTEMPTS
        assert excinfo.value.attempts == MAX_GENERATION_ATTEMPTS
        assert isinstance(excinfo.value.last_error, ResponseParseError)

    def test_connection_errors_are_retried(self):
        def handler(request):
            if "gen-0" in str(request.url):
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, json={"text": "Made it."})

        assert _generator(handler).generate_text("prompt", 200, 0.7) == "Made it."

    def test_empty_text_counts_as_failure(self):
        responses = iter([{"text": "   "}, {"text": "Real story."}])
        handler = lambda request: httpx.Response(200, json=next(responses))
        assert _generator(handler).generate_text("prompt", 200, 0.7) == "Real story."

    def test_pool_is_shared_across_calls(self):
        calls = []

        def handler(request):
            calls.append(str(request.url))
            return httpx.Response(200, json={"text": "ok."})

        generator = _generator(handler)
        for _ in range(4):
            generator.generate_text("prompt", 200, 0.7)
        assert calls == URLS + URLS[:1]

    def test_attempts_must_be_positive(self):
        with pytest.raises(ValueError):
            TextGenerator(EndpointPool(URLS), max_attempts=0)
