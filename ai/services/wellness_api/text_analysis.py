# -*- coding: utf-8 -*-
"""text_analysis.py

analyze_text collaborator backed by OpenAI
------------------------------------------

The classifier consumes one opaque capability:

    analyze_text(notes) -> {"sentiment": positive|neutral|negative,
                            "topics": [str, ...],
                            "confidence": float}

This module provides it with the OpenAI chat completions API in JSON mode.
Every failure (network, API error, non-JSON content) is raised as
TextAnalysisError; the classifier turns that into "no text signal". Timeouts
are the caller's job: wrap the async variant with ``bounded``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from openai import AsyncOpenAI, OpenAI, OpenAIError

from . import settings

logger = logging.getLogger("text_analysis")

SYSTEM_PROMPT = (
    "You analyze short personal wellness journal notes. "
    "Respond with strict JSON with keys: "
    "sentiment (one of positive, neutral, negative), "
    "topics (array of at most 5 lowercase single-word stress topics such as work, finances, "
    "relationships, health, family; empty when none), "
    "confidence (number between 0 and 1). Do not add any other keys."
)


class TextAnalysisError(RuntimeError):
    """Raised when the text analysis call fails or returns unusable content."""


def _parse_content(content: Optional[str]) -> Dict[str, Any]:
    if not content:
        raise TextAnalysisError("Empty response from text analysis model")
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise TextAnalysisError(f"Invalid JSON from text analysis model: {exc}") from exc
    if not isinstance(data, dict):
        raise TextAnalysisError("Text analysis response is not a JSON object")
    return data


def _messages(text: str):
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": text},
    ]


class OpenAITextAnalyzer:
    """Sync and async analyze_text over the OpenAI API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_chars: int = 2000,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.model = model or settings.TEXT_ANALYSIS_MODEL
        self.max_chars = max_chars
        self._client: Optional[OpenAI] = None
        self._async_client: Optional[AsyncOpenAI] = None

    def _sync(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def _async(self) -> AsyncOpenAI:
        if self._async_client is None:
            self._async_client = AsyncOpenAI(api_key=self.api_key)
        return self._async_client

    def analyze_text(self, text: str) -> Dict[str, Any]:
        try:
            completion = self._sync().chat.completions.create(
                model=self.model,
                messages=_messages(text[: self.max_chars]),
                temperature=0.2,
                response_format={"type": "json_object"},
            )
        except OpenAIError as exc:
            raise TextAnalysisError(f"OpenAI request failed: {exc}") from exc
        return _parse_content(completion.choices[0].message.content)

    async def aanalyze_text(self, text: str) -> Dict[str, Any]:
        try:
            completion = await self._async().chat.completions.create(
                model=self.model,
                messages=_messages(text[: self.max_chars]),
                temperature=0.2,
                response_format={"type": "json_object"},
            )
        except OpenAIError as exc:
            raise TextAnalysisError(f"OpenAI request failed: {exc}") from exc
        data = _parse_content(completion.choices[0].message.content)
        logger.debug("text analysis ok: sentiment=%s topics=%d", data.get("sentiment"), len(data.get("topics") or []))
        return data


def bounded(
    fn: Callable[[str], Awaitable[Any]],
    timeout_seconds: float,
) -> Callable[[str], Awaitable[Any]]:
    """Wrap an async analyze_text so it raises TimeoutError after timeout_seconds."""

    async def _call(text: str) -> Any:
        return await asyncio.wait_for(fn(text), timeout=timeout_seconds)

    return _call


def build_default_analyzer() -> Optional[Callable[[str], Awaitable[Any]]]:
    """The async analyze_text used by the API, or None when disabled."""
    if not settings.TEXT_ANALYSIS_ENABLED or not settings.OPENAI_API_KEY:
        return None
    analyzer = OpenAITextAnalyzer()
    return bounded(analyzer.aanalyze_text, settings.TEXT_ANALYSIS_TIMEOUT_SECONDS)
