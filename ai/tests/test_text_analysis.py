"""Tests for the OpenAI-backed analyze_text collaborator."""

import asyncio
from datetime import date
from types import SimpleNamespace

import pytest

from stress_engine import EnhancedEntry, EmotionCategory, classify_async
from wellness_api.text_analysis import OpenAITextAnalyzer, TextAnalysisError, bounded


def _completion(content):
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class _FakeCompletions:
    def __init__(self, content):
        self.content = content
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        return _completion(self.content)


def _analyzer(content):
    analyzer = OpenAITextAnalyzer(api_key="test-key", model="test-model")
    completions = _FakeCompletions(content)
    analyzer._async_client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return analyzer, completions


def test_async_analyze_parses_json_mode_reply():
    analyzer, completions = _analyzer('{"sentiment": "negative", "topics": ["work"], "confidence": 0.9}')
    data = asyncio.run(analyzer.aanalyze_text("deadline again"))
    assert data["sentiment"] == "negative"
    assert completions.kwargs["model"] == "test-model"
    assert completions.kwargs["response_format"] == {"type": "json_object"}


def test_non_json_reply_raises():
    analyzer, _ = _analyzer("I think you are stressed")
    with pytest.raises(TextAnalysisError):
        asyncio.run(analyzer.aanalyze_text("deadline again"))


def test_bounded_times_out():
    async def slow(_text):
        await asyncio.sleep(1)

    with pytest.raises(asyncio.TimeoutError):
        asyncio.run(bounded(slow, 0.01)("hello"))


def test_analyzer_plugs_into_classifier():
    analyzer, _ = _analyzer('{"sentiment": "negative", "topics": ["finances"], "confidence": 0.6}')
    entry = EnhancedEntry(date=date(2025, 10, 6), primary_emotion=EmotionCategory.CALM, notes="rent is due")
    a = asyncio.run(classify_async(entry, [], bounded(analyzer.aanalyze_text, 1.0)))
    assert a.stress_level == 3
    assert a.triggers == ["finances"]
