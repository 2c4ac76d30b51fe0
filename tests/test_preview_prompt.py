"""Tests for the prompt preview command line script."""

import importlib.util
from pathlib import Path

import pytest

from tests.fixtures.fakes import FakeGenerator, FakeScorer

SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "preview_prompt.py"


@pytest.fixture
def preview(monkeypatch):
    spec = importlib.util.spec_from_file_location("preview_prompt", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    monkeypatch.setattr(module, "generate_prompt", lambda *args, **kwargs: "Once upon a time, ")
    monkeypatch.setattr(module, "EndpointPool", lambda urls: None)
    return module


def _use(monkeypatch, preview, generator, scorer):
    monkeypatch.setattr(preview, "TextGenerator", lambda pool: generator)
    monkeypatch.setattr(preview, "score_text", scorer)


class TestPreviewPrompt:
    def test_prompt_only(self, preview, capsys):
        assert preview.main(["dog"]) == 0
        assert capsys.readouterr().out.strip() == "Prompt: Once upon a time,"

    def test_generated_story_is_scored_and_ended(self, monkeypatch, preview, capsys):
        scorer = FakeScorer({"TOXICITY": 0.05})
        _use(monkeypatch, preview, FakeGenerator("The dog ran home. And then"), scorer)

        assert preview.main(["dog", "--generate"]) == 0
        out = capsys.readouterr().out
        assert "The dog ran home. " in out
        assert "And then" not in out
        assert scorer.calls[0][0] == "The dog ran home. And then"

    def test_toxic_story_is_not_printed(self, monkeypatch, preview, capsys):
        _use(monkeypatch, preview, FakeGenerator("A rude story."), FakeScorer({"TOXICITY": 0.95}))

        assert preview.main(["dog", "--generate"]) == 1
        out = capsys.readouterr().out
        assert "rejected by the toxicity gate" in out
        assert "A rude story." not in out
