"""
Tests for GatewayService orchestration.

Tests cover:
- Validation before any store or provider call
- Model selection and the fast-path timeout/error/credential fallbacks
- Public and ephemeral caches
- Correction overrides (exact and similar)
- Terminology post-processing
- Speech routing, chunked speech and fallbacks
- Usage tracking and caller resolution
"""
import asyncio
from unittest.mock import AsyncMock

import pytest

from conftest import FakeTranslationAdapter, make_config, provider_error
from transvox.core.errors import (
    AuthRequiredError,
    CredentialError,
    ErrorCode,
    GatewayError,
    ProviderError,
    ValidationError,
)
from transvox.services.gateway import (
    CallerCredentials,
    SpeechRequest,
    TranslationRequest,
    select_model,
)
from transvox.core.config import RoutingConfig
from transvox.translation.providers import ModelId, ProviderFamily


def _run(coro):
    return asyncio.run(coro)


def _request(text="Hello world.", target="Korean", **kwargs):
    return TranslationRequest(text=text, target_language=target, **kwargs)


class TestSelectModel:
    """auto resolves by length and Gemini key availability."""

    def test_short_with_gemini_key(self):
        assert select_model(ModelId.AUTO, "a" * 99, RoutingConfig(), "gm") is ModelId.GEMINI_FLASH

    def test_short_without_gemini_key(self):
        assert select_model(ModelId.AUTO, "a" * 99, RoutingConfig(), None) is ModelId.GPT_4O_MINI

    def test_medium_and_long(self):
        assert select_model(ModelId.AUTO, "a" * 100, RoutingConfig(), "gm") is ModelId.GPT_4O_MINI
        assert select_model(ModelId.AUTO, "a" * 499, RoutingConfig(), "gm") is ModelId.GPT_4O_MINI
        assert select_model(ModelId.AUTO, "a" * 500, RoutingConfig(), "gm") is ModelId.GPT_4O

    def test_explicit_passes_through(self):
        assert select_model(ModelId.GPT_4O, "hi", RoutingConfig(), "gm") is ModelId.GPT_4O


class TestValidation:
    """Rejected input never reaches a provider."""

    def test_over_length(self, service, fast_adapter, deep_adapter):
        with pytest.raises(ValidationError) as exc:
            _run(service.translate(_request(text="a" * 6001)))
        assert exc.value.code == ErrorCode.TEXT_TOO_LONG
        assert fast_adapter.calls == []
        assert deep_adapter.calls == []

    def test_blank_text(self, service, fast_adapter):
        with pytest.raises(ValidationError) as exc:
            _run(service.translate(_request(text="   ")))
        assert exc.value.code == ErrorCode.TEXT_REQUIRED
        assert fast_adapter.calls == []

    def test_missing_target(self, service):
        with pytest.raises(ValidationError) as exc:
            _run(service.translate(_request(target="")))
        assert exc.value.code == ErrorCode.FIELD_REQUIRED

    def test_bad_quality(self, service):
        with pytest.raises(ValidationError):
            _run(service.translate(_request(quality_level=9)))

    def test_unknown_model(self, service, deep_adapter):
        with pytest.raises(ValidationError) as exc:
            _run(service.translate(_request(model="gpt-9")))
        assert exc.value.code == ErrorCode.UNKNOWN_MODEL
        assert deep_adapter.calls == []


class TestFastPath:
    """Short texts go to the fast adapter; any failure falls back to gpt-4o-mini."""

    def test_hello_world_korean(self, service, fast_adapter, deep_adapter):
        result = _run(service.translate(_request(quality_level=3, pronunciation=True)))
        assert result.translation
        assert result.pronunciation
        assert result.used_model == "gemini-1.5-flash"
        assert result.model_provider == "google"
        assert result.source == "live"
        assert len(fast_adapter.calls) == 1
        assert deep_adapter.calls == []
        assert fast_adapter.calls[0].api_key == "gm-system"

    @pytest.mark.slow
    def test_timeout_falls_back(self, make_service, deep_adapter):
        slow = FakeTranslationAdapter("google", ProviderFamily.FAST, delay=1.0)
        service = make_service(fast=slow)
        result = _run(service.translate(_request()))
        assert result.used_model == "gpt-4o-mini"
        assert result.model_provider == "openai"
        assert deep_adapter.calls[0].model is ModelId.GPT_4O_MINI

    def test_error_falls_back(self, make_service, deep_adapter):
        broken = FakeTranslationAdapter("google", ProviderFamily.FAST, error=provider_error())
        result = _run(make_service(fast=broken).translate(_request()))
        assert result.used_model == "gpt-4o-mini"
        assert len(deep_adapter.calls) == 1

    def test_credential_error_falls_back(self, make_service):
        rejected = FakeTranslationAdapter(
            "google", ProviderFamily.FAST, error=CredentialError("bad key", "google", kind="invalid_credential"))
        result = _run(make_service(fast=rejected).translate(_request()))
        assert result.model_provider == "openai"

    def test_no_gemini_key_skips_fast(self, make_service, fast_adapter, deep_adapter):
        cfg = make_config(providers={"gemini_api_key": ""})
        result = _run(make_service(cfg=cfg).translate(_request()))
        assert fast_adapter.calls == []
        assert result.used_model == "gpt-4o-mini"

    def test_explicit_gemini_without_key_falls_back(self, make_service, fast_adapter):
        cfg = make_config(providers={"gemini_api_key": ""})
        result = _run(make_service(cfg=cfg).translate(_request(model="gemini-1.5-flash")))
        assert fast_adapter.calls == []
        assert result.used_model == "gpt-4o-mini"

    def test_user_gemini_key_reported(self, service, fast_adapter):
        result = _run(service.translate(_request(credentials=CallerCredentials(google="gm-user"))))
        assert fast_adapter.calls[0].api_key == "gm-user"
        assert result.used_user_key is True


class TestDeepPath:
    def test_long_text_uses_gpt_4o(self, service, deep_adapter, fast_adapter):
        text = "This sentence is long enough. " * 20
        result = _run(service.translate(_request(text=text)))
        assert fast_adapter.calls == []
        assert deep_adapter.calls[0].model is ModelId.GPT_4O
        assert result.used_model == "gpt-4o"
        assert len(result.chunks) > 1

    def test_legacy_alias(self, service, deep_adapter):
        _run(service.translate(_request(model="gpt-4.1")))
        assert deep_adapter.calls[0].model is ModelId.GPT_4O

    def test_user_openai_key(self, service, deep_adapter):
        result = _run(service.translate(_request(
            model="gpt-4o-mini", credentials=CallerCredentials(openai="sk-user"))))
        assert deep_adapter.calls[0].api_key == "sk-user"
        assert result.used_user_key is True

    def test_deep_error_surfaces(self, make_service):
        deep = FakeTranslationAdapter("openai", ProviderFamily.DEEP, error=provider_error("openai"))
        with pytest.raises(ProviderError):
            _run(make_service(deep=deep).translate(_request(model="gpt-4o")))

    def test_unexpected_error_wrapped(self, make_service):
        deep = FakeTranslationAdapter("openai", ProviderFamily.DEEP, error=RuntimeError("kaboom"))
        with pytest.raises(GatewayError) as exc:
            _run(make_service(deep=deep).translate(_request(model="gpt-4o")))
        assert exc.value.code == ErrorCode.INTERNAL_ERROR

    def test_no_openai_key(self, make_service):
        cfg = make_config(providers={"openai_api_key": "", "gemini_api_key": ""})
        with pytest.raises(CredentialError) as exc:
            _run(make_service(cfg=cfg).translate(_request()))
        assert exc.value.code == ErrorCode.CREDENTIAL_MISSING


class TestContextualMode:
    def test_instruction_and_quality(self, service, deep_adapter):
        result = _run(service.translate(_request(
            model="gpt-4o", use_ai_context=True, contextual_prompt="Formal tone", quality_level=5)))
        call = deep_adapter.calls[0]
        assert call.instruction == "Formal tone"
        assert call.quality_level == 5
        assert result.is_ai_translation is True
        assert result.to_dict()["qualityLevel"] == 5

    def test_domain_preamble_joined(self, service, deep_adapter):
        _run(service.translate(_request(
            model="gpt-4o", domain="manufacturing", use_ai_context=True, contextual_prompt="Be brief")))
        instruction = deep_adapter.calls[0].instruction
        assert instruction.startswith("You are an expert translator specializing in MANUFACTURING")
        assert instruction.endswith("\n\nBe brief")

    def test_domain_preamble_alone(self, service, deep_adapter):
        _run(service.translate(_request(model="gpt-4o", domain="manufacturing")))
        assert "MANUFACTURING" in deep_adapter.calls[0].instruction

    def test_plain_has_no_instruction(self, service, deep_adapter):
        _run(service.translate(_request(model="gpt-4o")))
        assert deep_adapter.calls[0].instruction is None


class TestCaches:
    def test_second_call_is_cached(self, service, fast_adapter):
        first = _run(service.translate(_request()))
        second = _run(service.translate(_request()))
        assert first.cache_hit is False
        assert second.cache_hit is True
        assert second.translation == first.translation
        assert len(fast_adapter.calls) == 1

    def test_public_cache_hit(self, service, fast_adapter):
        _run(service.translate(_request()))
        result = _run(service.translate(_request()))
        assert result.source == "public-cache"
        assert result.used_model == "cache"
        assert result.model_provider == "public-cache"

    def test_public_entry_without_pronunciation(self, service, fast_adapter):
        _run(service.translate(_request(pronunciation=False)))
        result = _run(service.translate(_request(pronunciation=True)))
        assert result.source == "live"
        assert result.pronunciation
        assert len(fast_adapter.calls) == 2

    def test_contextual_uses_ephemeral_cache(self, service, deep_adapter):
        req = dict(model="gpt-4o", use_ai_context=True, contextual_prompt="Formal")
        _run(service.translate(_request(**req)))
        result = _run(service.translate(_request(**req)))
        assert result.source == "cache"
        assert result.used_model == "gpt-4o"
        assert len(deep_adapter.calls) == 1
        assert len(service.collaborators.public_cache) == 0

    def test_different_quality_misses(self, service, deep_adapter):
        req = dict(model="gpt-4o", use_ai_context=True, contextual_prompt="Formal")
        _run(service.translate(_request(quality_level=2, **req)))
        _run(service.translate(_request(quality_level=4, **req)))
        assert len(deep_adapter.calls) == 2

    def test_public_cache_write_failure_ignored(self, service, collaborators):
        collaborators.public_cache.set = AsyncMock(side_effect=RuntimeError("store down"))
        result = _run(service.translate(_request()))
        assert result.source == "live"


class TestTerminology:
    def test_smd_feeder_loss_vietnamese(self, service):
        result = _run(service.translate(_request(
            text="SMD feeder loss", target="Vietnamese", domain="manufacturing")))
        assert result.translation == "[Vietnamese] SMD Feeder Thất thoát"
        assert result.chunks == ["[Vietnamese] SMD Feeder Thất thoát"]

    def test_applied_once_on_cache_hit(self, service):
        req = dict(text="SMD check", target="Korean", domain="manufacturing")
        first = _run(service.translate(_request(**req)))
        second = _run(service.translate(_request(**req)))
        assert second.source == "cache"
        assert first.translation == second.translation == "[Korean] SMD (에스엠디) check"


class TestCorrections:
    def _save(self, service, text="Stop the line", corrected="Dừng chuyền", target="Vietnamese"):
        return _run(service.save_feedback("alice", text, "Dừng dòng", corrected, target))

    def test_exact_correction_short_circuits(self, service, fast_adapter, deep_adapter):
        self._save(service)
        result = _run(service.translate(_request(
            text="Stop the line", target="Vietnamese", user_id="alice", quality_level=5, domain="manufacturing")))
        assert result.translation == "Dừng chuyền"
        assert result.used_model == "feedback"
        assert result.model_provider == "user-feedback"
        assert result.feedback_match_type == "exact"
        assert result.pronunciation == ""
        assert fast_adapter.calls == []
        assert deep_adapter.calls == []

    def test_correction_not_rewritten_by_terminology(self, service):
        self._save(service, text="feeder loss", corrected="feeder loss kept")
        result = _run(service.translate(_request(
            text="feeder loss", target="Vietnamese", user_id="alice", domain="manufacturing")))
        assert result.translation == "feeder loss kept"

    def test_similar_correction(self, service, fast_adapter):
        self._save(service, text="stop the pump now", corrected="Dừng bơm ngay")
        result = _run(service.translate(_request(
            text="stop the pump later", target="Vietnamese", user_id="alice")))
        assert result.feedback_match_type == "similar"
        assert result.translation == "Dừng bơm ngay"
        assert fast_adapter.calls == []

    def test_guest_never_gets_corrections(self, service, fast_adapter):
        self._save(service)
        result = _run(service.translate(_request(text="Stop the line", target="Vietnamese")))
        assert result.source == "live"
        assert len(fast_adapter.calls) == 1

    def test_other_target_not_matched(self, service):
        self._save(service)
        result = _run(service.translate(_request(text="Stop the line", target="Korean", user_id="alice")))
        assert result.source == "live"


class TestFeedback:
    def test_guest_rejected(self, service):
        with pytest.raises(AuthRequiredError):
            _run(service.save_feedback(None, "a", "b", "c", "Korean"))

    def test_missing_fields(self, service):
        with pytest.raises(ValidationError) as exc:
            _run(service.save_feedback("alice", "a", "", None, "Korean"))
        assert exc.value.details["fields"] == ["originalTranslation", "correctedTranslation"]

    def test_resave_replaces(self, service, collaborators):
        _run(service.save_feedback("alice", "Hi", "b", "first", "Korean"))
        _run(service.save_feedback("alice", "Hi", "b", "second", "Korean"))
        assert len(collaborators.corrections) == 1
        result = _run(service.translate(_request(text="Hi", user_id="alice")))
        assert result.translation == "second"


class TestUsage:
    def test_translation_usage_for_user(self, service, collaborators):
        _run(service.translate(_request(user_id="alice")))
        records = collaborators.usage.records
        assert len(records) == 1
        assert records[0].kind == "translation"
        assert records[0].provider == "google"
        assert records[0].count == len("Hello world.")
        assert records[0].cost > 0

    def test_no_usage_for_guests(self, service, collaborators):
        _run(service.translate(_request()))
        assert collaborators.usage.records == []

    def test_no_usage_on_cache_hit(self, service, collaborators):
        _run(service.translate(_request(user_id="alice")))
        _run(service.translate(_request(user_id="alice")))
        assert len(collaborators.usage.records) == 1

    def test_ledger_failure_ignored(self, service, collaborators):
        collaborators.usage.track_usage = AsyncMock(side_effect=RuntimeError("ledger down"))
        result = _run(service.translate(_request(user_id="alice")))
        assert result.source == "live"


class TestCaller:
    def test_guest(self, service):
        caller = _run(service.resolve_caller(None))
        assert caller.authenticated is False

    def test_known_token(self, service):
        caller = _run(service.resolve_caller("tok-alice"))
        assert caller.user_id == "alice"
        assert caller.credentials.openai == "sk-alice"
        assert caller.credentials.google is None

    def test_unknown_token_is_guest(self, service):
        caller = _run(service.resolve_caller("tok-mallory"))
        assert caller.user_id is None


class TestSpeech:
    def test_short_text_prefers_google(self, service, google_speech, openai_speech):
        result = _run(service.speak(SpeechRequest(text="Xin chào", language="Vietnamese")))
        assert result.audio == b"google-mp3"
        assert google_speech.calls[0].locale == "vi-VN"
        assert openai_speech.calls == []

    def test_long_text_uses_openai(self, service, google_speech):
        result = _run(service.speak(SpeechRequest(text="word " * 20)))
        assert result.provider == "openai"
        assert google_speech.calls == []

    def test_google_failure_falls_back_with_nova(self, service, google_speech, openai_speech):
        google_speech.error = provider_error()
        result = _run(service.speak(SpeechRequest(text="Hi", voice="alloy")))
        assert result.audio == b"openai-mp3"
        assert openai_speech.calls[0].voice == "nova"

    def test_explicit_openai_falls_back_to_google(self, service, openai_speech):
        openai_speech.error = provider_error("openai")
        result = _run(service.speak(SpeechRequest(text="word " * 20, use_google_tts=False)))
        assert result.provider == "google"

    def test_empty_audio_is_error(self, service, openai_speech):
        openai_speech.audio = b""
        with pytest.raises(ProviderError) as exc:
            _run(service.speak(SpeechRequest(text="word " * 20)))
        assert exc.value.code == ErrorCode.EMPTY_AUDIO

    def test_tts_usage_tracked_for_openai(self, service, collaborators):
        _run(service.speak(SpeechRequest(text="word " * 20, user_id="alice")))
        assert collaborators.usage.records[0].kind == "tts"

    def test_blank_text(self, service):
        with pytest.raises(ValidationError):
            _run(service.speak(SpeechRequest(text="")))


class TestSpeakChunk:
    @pytest.fixture
    def chunked(self, make_service):
        return make_service(cfg=make_config(chunking={"max_chars": 25}))

    def test_second_chunk(self, chunked, google_speech):
        req = SpeechRequest(text="First sentence here. Second sentence here.", use_google_tts=True)
        result = _run(chunked.speak_chunk(req, 1))
        assert result.total_chunks == 2
        assert result.text == "Second sentence here."
        assert result.audio == b"google-mp3"
        assert result.to_dict()["chunkIndex"] == 1

    def test_default_route_is_openai(self, chunked, openai_speech):
        req = SpeechRequest(text="First sentence here. Second sentence here.")
        result = _run(chunked.speak_chunk(req, 0))
        assert result.provider == "openai"
        assert result.text == "First sentence here."
        assert openai_speech.calls[0].voice == "alloy"

    def test_chunk_voice_from_request(self, chunked, openai_speech):
        req = SpeechRequest(text="First sentence here. Second sentence here.", voice="echo")
        _run(chunked.speak_chunk(req, 0))
        assert openai_speech.calls[0].voice == "echo"

    def test_past_end_completes_without_speech(self, chunked, google_speech, openai_speech):
        req = SpeechRequest(text="First sentence here. Second sentence here.")
        result = _run(chunked.speak_chunk(req, 2))
        assert result.completed is True
        assert result.to_dict() == {"completed": True, "totalChunks": 2}
        assert google_speech.calls == []
        assert openai_speech.calls == []

    def test_negative_index(self, chunked):
        with pytest.raises(ValidationError):
            _run(chunked.speak_chunk(SpeechRequest(text="Hi."), -1))


class TestConcurrency:
    def test_parallel_translations(self, service, fast_adapter):
        async def run_all():
            return await asyncio.gather(*(
                service.translate(_request(text=f"Sentence number {i}.")) for i in range(10)
            ))

        results = _run(run_all())
        assert [r.translation for r in results] == [f"[Korean] Sentence number {i}." for i in range(10)]
        assert len(fast_adapter.calls) == 10
