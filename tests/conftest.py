"""
Shared fixtures: fake provider adapters and a wired GatewayService.

The fakes record every call so tests can assert that no provider was
reached (validation, caches, corrections) or that exactly one was.
"""
from __future__ import annotations

import asyncio
import os
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import AsyncMock

import pytest

# Tests must not pick up a developer's settings file or keys
os.environ.setdefault("TRANSVOX_NO_COLOR", "1")
os.environ.setdefault("TRANSVOX_SETTINGS", "config/__missing_for_tests__.yaml")

from transvox.collaborators import build_in_memory_collaborators
from transvox.core.config import GatewayConfig, Settings
from transvox.core.errors import ProviderError
from transvox.services.gateway import GatewayService
from transvox.speech.base import BaseSpeechAdapter, SpeechCall, SpeechResult
from transvox.speech.routing import SpeechRouter
from transvox.translation.cache import EphemeralCache
from transvox.translation.providers import (
    AdapterRegistry,
    BaseTranslationAdapter,
    ProviderFamily,
    TranslationCall,
    TranslationOutput,
)


class FakeTranslationAdapter(BaseTranslationAdapter):
    """
    Scriptable translation adapter.

    Args:
        name: Provider name reported by the adapter.
        family: Provider family it serves.
        responder: call -> TranslationOutput; defaults to a bracketed echo.
        delay: Seconds to sleep before answering.
        error: Exception raised instead of answering.
    """

    def __init__(
        self,
        name: str,
        family: ProviderFamily,
        responder: Optional[Callable[[TranslationCall], TranslationOutput]] = None,
        delay: float = 0.0,
        error: Optional[BaseException] = None,
    ):
        self.name = name
        self.family = family
        self.responder = responder or (lambda call: TranslationOutput(
            translation=f"[{call.target_language}] {call.text}",
            pronunciation="헬로 월드" if call.pronunciation else "",
        ))
        self.delay = delay
        self.error = error
        self.calls: List[TranslationCall] = []

    async def translate(self, call: TranslationCall) -> TranslationOutput:
        self.calls.append(call)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.responder(call)


class FakeSpeechAdapter(BaseSpeechAdapter):
    def __init__(self, name: str, audio: bytes = b"ID3fake-mp3", error: Optional[BaseException] = None):
        self.name = name
        self.audio = audio
        self.error = error
        self.calls: List[SpeechCall] = []

    async def synthesize(self, call: SpeechCall) -> SpeechResult:
        self.calls.append(call)
        if self.error is not None:
            raise self.error
        return SpeechResult(audio=self.audio, provider=self.name, voice=call.voice_name or call.voice)


class FakeOpenAIClient:
    """
    Stand-in for AsyncOpenAI: chat and speech ``create`` mocks plus the async
    context manager protocol. ``closed`` flips when the adapter leaves the block.
    """

    def __init__(self, chat_create: Optional[AsyncMock] = None, speech_create: Optional[AsyncMock] = None):
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=chat_create or AsyncMock()))
        self.audio = SimpleNamespace(speech=SimpleNamespace(create=speech_create or AsyncMock()))
        self.closed = False

    async def __aenter__(self) -> "FakeOpenAIClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.closed = True


def make_config(**sections: Dict[str, Any]) -> GatewayConfig:
    """GatewayConfig with fast retries, keys for both providers and a short fast timeout."""
    raw: Dict[str, Any] = {
        "environment": "test",
        "retry": {"translation_base_delay_s": 0.0, "speech_base_delay_s": 0.0, "jitter_s": 0.0},
        "routing": {"fast_timeout_s": 0.2},
        "providers": {"openai_api_key": "sk-system", "gemini_api_key": "gm-system"},
        "logging": {"level": 1},
    }
    for name, values in sections.items():
        raw.setdefault(name, {})
        if isinstance(values, dict):
            raw[name].update(values)
        else:
            raw[name] = values
    return Settings(raw=raw).get_gateway_config()


@pytest.fixture
def config() -> GatewayConfig:
    return make_config()


@pytest.fixture
def fast_adapter() -> FakeTranslationAdapter:
    return FakeTranslationAdapter("google", ProviderFamily.FAST)


@pytest.fixture
def deep_adapter() -> FakeTranslationAdapter:
    def respond(call: TranslationCall) -> TranslationOutput:
        return TranslationOutput(
            translation=f"[{call.target_language}] {call.text}",
            pronunciation="헬로 월드" if call.pronunciation else "",
            model=call.model.value,
        )
    return FakeTranslationAdapter("openai", ProviderFamily.DEEP, respond)


@pytest.fixture
def google_speech() -> FakeSpeechAdapter:
    return FakeSpeechAdapter("google", audio=b"google-mp3")


@pytest.fixture
def openai_speech() -> FakeSpeechAdapter:
    return FakeSpeechAdapter("openai", audio=b"openai-mp3")


@pytest.fixture
def collaborators():
    return build_in_memory_collaborators(
        tokens={"tok-alice": "alice"},
        user_api_keys={"alice": {"openai": "sk-alice"}},
    )


@pytest.fixture
def make_service(config, fast_adapter, deep_adapter, google_speech, openai_speech, collaborators):
    """Factory so tests can swap config or adapters before wiring."""

    def _make(
        cfg: Optional[GatewayConfig] = None,
        fast: Optional[BaseTranslationAdapter] = None,
        deep: Optional[BaseTranslationAdapter] = None,
    ) -> GatewayService:
        cfg = cfg or config
        registry = AdapterRegistry({
            ProviderFamily.FAST: fast or fast_adapter,
            ProviderFamily.DEEP: deep or deep_adapter,
        })
        speech = SpeechRouter(google_speech, openai_speech, fallback_voice=cfg.speech.openai_voice)
        return GatewayService(
            cfg,
            collaborators,
            EphemeralCache(cfg.cache.ttl_seconds, cfg.cache.max_items),
            registry=registry,
            speech=speech,
        )

    return _make


@pytest.fixture
def service(make_service) -> GatewayService:
    return make_service()


def provider_error(provider: str = "google") -> ProviderError:
    return ProviderError("boom", provider, status_code=500)
