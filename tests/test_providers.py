from __future__ import annotations

import pytest

from oralmarks.errors import ProviderUnconfigured
from oralmarks.grading.gemini_scorer import GeminiScorer
from oralmarks.grading.openai_scorer import OpenAIScorer
from oralmarks.pipeline.providers import resolve_providers
from oralmarks.settings import Settings
from oralmarks.transcription.gemini_provider import GeminiTranscriber
from oralmarks.transcription.openai_provider import OpenAITranscriber


def test_openai_only_has_no_reviewer(monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

    providers = resolve_providers(Settings())

    assert isinstance(providers.transcriber, OpenAITranscriber)
    assert isinstance(providers.scorer, OpenAIScorer)
    assert providers.reviewer is None
    providers.ensure_configured()


def test_gemini_reviews_openai_when_enabled(monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("ENABLE_GEMINI", "1")
    monkeypatch.setenv("GOOGLE_API_KEY", "google-test")

    providers = resolve_providers(Settings())

    assert isinstance(providers.scorer, OpenAIScorer)
    assert isinstance(providers.reviewer, GeminiScorer)


def test_review_can_be_disabled(monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("ENABLE_GEMINI", "true")
    monkeypatch.setenv("GEMINI_API_KEY", "google-test")
    monkeypatch.setenv("ORALMARKS_REVIEW_ENABLED", "false")

    providers = resolve_providers(Settings())

    assert providers.reviewer is None


def test_gemini_alone_becomes_primary(monkeypatch) -> None:
    monkeypatch.setenv("ENABLE_GEMINI", "1")
    monkeypatch.setenv("GOOGLE_API_KEY", "google-test")

    providers = resolve_providers(Settings())

    assert isinstance(providers.transcriber, GeminiTranscriber)
    assert isinstance(providers.scorer, GeminiScorer)
    assert providers.reviewer is None


def test_gemini_key_without_flag_is_ignored(monkeypatch) -> None:
    monkeypatch.setenv("GOOGLE_API_KEY", "google-test")

    providers = resolve_providers(Settings())

    with pytest.raises(ProviderUnconfigured) as exc_info:
        providers.ensure_configured()

    assert "ENABLE_GEMINI" in str(exc_info.value)


def test_blank_openai_key_is_unconfigured(monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "   ")

    providers = resolve_providers(Settings())

    assert providers.transcriber is None
    assert providers.scorer is None
