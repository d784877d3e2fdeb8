"""
Tests for translation provider adapters.

Tests cover:
- Model normalization and the two-stage JSON decoder
- Provider status mapping onto the error taxonomy
- Prompt construction for both adapters
- GeminiAdapter over httpx.MockTransport
- OpenAIChatAdapter with a mocked AsyncOpenAI client
"""
import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import openai
import pytest

from conftest import FakeOpenAIClient, FakeTranslationAdapter, make_config
from transvox.core.errors import CredentialError, ErrorCode, ParseError, ProviderError, ValidationError
from transvox.translation.budget import effective_max_tokens, get_quality_profile
from transvox.translation.providers import (
    AdapterRegistry,
    GeminiAdapter,
    ModelId,
    OpenAIChatAdapter,
    ProviderFamily,
    TranslationCall,
    decode_json_object,
    normalize_fields,
    normalize_model,
)
from transvox.translation.providers.base import raise_for_status
from transvox.translation.providers.deep import map_openai_error
from transvox.translation.providers.prompts import (
    contextual_system_message,
    contextual_user_message,
    fast_prompt,
    plain_system_message,
)


def _call(model=ModelId.GEMINI_FLASH, pronunciation=True, api_key="key", text="Hello world.", **kwargs):
    return TranslationCall(
        text=text,
        source_language="English",
        target_language="Korean",
        pronunciation=pronunciation,
        model=model,
        api_key=api_key,
        **kwargs,
    )


class TestNormalizeModel:
    @pytest.mark.parametrize("name,expected", [
        (None, ModelId.AUTO),
        ("", ModelId.AUTO),
        ("auto", ModelId.AUTO),
        (" GPT-4o ", ModelId.GPT_4O),
        ("gpt-4o-mini", ModelId.GPT_4O_MINI),
        ("gpt-4.1", ModelId.GPT_4O),
        ("gpt-4.1-mini", ModelId.GPT_4O_MINI),
        ("gemini-2.0-flash", ModelId.GEMINI_FLASH),
        ("gemini-1.5-flash", ModelId.GEMINI_FLASH),
    ])
    def test_known(self, name, expected):
        assert normalize_model(name) is expected

    def test_unknown(self):
        with pytest.raises(ValidationError) as exc:
            normalize_model("claude-9")
        assert exc.value.code == ErrorCode.UNKNOWN_MODEL


class TestDecoder:
    def test_strict(self):
        assert decode_json_object('{"translation": "x"}') == {"translation": "x"}

    def test_embedded_object(self):
        text = 'Sure!\n```json\n{"translation": "안녕", "pronunciation_hangul": "안녕"}\n```'
        assert decode_json_object(text)["translation"] == "안녕"

    def test_first_object_ignores_trailing_braces(self):
        text = '{"translation": "a"} note {x}'
        assert decode_json_object(text) is None
        assert decode_json_object(text, first_object=True) == {"translation": "a"}

    def test_first_object_braces_inside_strings(self):
        text = 'Result: {"translation": "a } b", "pronunciation": "{c}"} done'
        assert decode_json_object(text, first_object=True) == {"translation": "a } b", "pronunciation": "{c}"}

    @pytest.mark.parametrize("text", ["not json", "{broken", "[1, 2]", "} {", ""])
    def test_rejected(self, text):
        assert decode_json_object(text) is None

    def test_synonyms(self):
        out = normalize_fields({"translated_text": "xin chào", "pron": "신 짜오"})
        assert out.translation == "xin chào"
        assert out.pronunciation == "신 짜오"

    def test_missing_fields_are_empty(self):
        out = normalize_fields({})
        assert out.translation == ""
        assert out.pronunciation == ""


class TestRaiseForStatus:
    def test_success(self):
        raise_for_status(200, "", "google")

    @pytest.mark.parametrize("status", [401, 403])
    def test_credentials(self, status):
        with pytest.raises(CredentialError) as exc:
            raise_for_status(status, "denied", "google")
        assert exc.value.code == ErrorCode.CREDENTIAL_INVALID

    def test_rate_limited(self):
        with pytest.raises(ProviderError) as exc:
            raise_for_status(429, "", "google")
        assert exc.value.kind == "rate_limited"
        assert exc.value.code == ErrorCode.RATE_LIMITED

    def test_server_error(self):
        with pytest.raises(ProviderError) as exc:
            raise_for_status(503, "x" * 1000, "google")
        assert exc.value.status_code == 503
        assert len(exc.value.message) < 400


class TestPrompts:
    def test_fast_prompt_modes(self):
        assert "pronunciation_hangul" in fast_prompt("Hi", "English", "Korean", True)
        assert "ONLY the translated text" in fast_prompt("Hi", "English", "Korean", False)

    def test_plain_system_message(self):
        assert "empty string" in plain_system_message("English", "Korean", False)
        assert "한글 표기" in plain_system_message("English", "Vietnamese", True)

    def test_contextual_tiers(self):
        assert "PREMIUM QUALITY" in contextual_system_message("English", "Korean", 4, True)
        assert "HIGH QUALITY" in contextual_system_message("English", "Korean", 3, True)
        tier_two = contextual_system_message("English", "Korean", 2, True)
        assert "PREMIUM" not in tier_two and "HIGH QUALITY" not in tier_two

    def test_contextual_user_message(self):
        assert contextual_user_message("Hi", "English", "Korean", None).startswith("Translate this English")
        assert contextual_user_message("Hi", "English", "Korean", 'Say "Hi" politely') == 'Say "Hi" politely'
        assert contextual_user_message("Hi", "English", "Korean", "Formal").endswith('Text: """Hi"""')


class TestRegistry:
    def test_missing_family(self):
        with pytest.raises(ValueError):
            AdapterRegistry({ProviderFamily.FAST: FakeTranslationAdapter("google", ProviderFamily.FAST)})

    def test_for_model(self):
        fast = FakeTranslationAdapter("google", ProviderFamily.FAST)
        deep = FakeTranslationAdapter("openai", ProviderFamily.DEEP)
        registry = AdapterRegistry({ProviderFamily.FAST: fast, ProviderFamily.DEEP: deep})
        assert registry.for_model(ModelId.GEMINI_FLASH) is fast
        assert registry.for_model(ModelId.GPT_4O) is deep


def _gemini_body(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class _Responder:
    """httpx.MockTransport handler that replays (status, body) pairs."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        return httpx.Response(status, json=body)


def _gemini(responder) -> GeminiAdapter:
    cfg = make_config()
    return GeminiAdapter(cfg.providers, cfg.retry, transport=httpx.MockTransport(responder))


class TestGeminiAdapter:
    def test_json_reply(self):
        responder = _Responder((200, _gemini_body(
            json.dumps({"translation": "안녕하세요 세계", "pronunciation_hangul": "안녕하세요 세계"}))))
        out = asyncio.run(_gemini(responder).translate(_call()))
        assert out.translation == "안녕하세요 세계"
        assert out.pronunciation == "안녕하세요 세계"

        request = responder.requests[0]
        assert request.url.path.endswith("/models/gemini-1.5-flash:generateContent")
        assert request.url.params["key"] == "key"
        payload = json.loads(request.content)
        assert payload["generationConfig"] == {"temperature": 0.1, "maxOutputTokens": 2000}

    def test_plain_reply(self):
        responder = _Responder((200, _gemini_body("  Xin chào thế giới \n")))
        out = asyncio.run(_gemini(responder).translate(_call(pronunciation=False)))
        assert out.translation == "Xin chào thế giới"
        assert out.pronunciation == ""

    def test_reply_with_trailing_object(self):
        reply = '{"translation": "Xin chào", "pronunciation_hangul": "신 짜오"} (note: {tone})'
        responder = _Responder((200, _gemini_body(reply)))
        out = asyncio.run(_gemini(responder).translate(_call()))
        assert out.translation == "Xin chào"
        assert out.pronunciation == "신 짜오"

    def test_undecodable_reply_is_translation(self):
        responder = _Responder((200, _gemini_body("Xin chào")))
        out = asyncio.run(_gemini(responder).translate(_call()))
        assert out.translation == "Xin chào"
        assert out.pronunciation == ""

    def test_rejected_key_not_retried(self):
        responder = _Responder((401, {"error": "bad key"}))
        with pytest.raises(CredentialError):
            asyncio.run(_gemini(responder).translate(_call()))
        assert len(responder.requests) == 1

    def test_server_error_retried(self):
        responder = _Responder((500, {"error": "oops"}), (200, _gemini_body("Xin chào")))
        out = asyncio.run(_gemini(responder).translate(_call(pronunciation=False)))
        assert out.translation == "Xin chào"
        assert len(responder.requests) == 2

    def test_server_error_exhausts_retries(self):
        responder = _Responder((500, {"error": "oops"}))
        with pytest.raises(ProviderError):
            asyncio.run(_gemini(responder).translate(_call()))
        assert len(responder.requests) == 3

    def test_missing_key(self):
        responder = _Responder((200, _gemini_body("x")))
        with pytest.raises(CredentialError):
            asyncio.run(_gemini(responder).translate(_call(api_key=None)))
        assert responder.requests == []


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _openai(create: AsyncMock, clients=None) -> OpenAIChatAdapter:
    cfg = make_config()

    def factory(api_key):
        client = FakeOpenAIClient(chat_create=create)
        if clients is not None:
            clients.append(client)
        return client

    return OpenAIChatAdapter(cfg.providers, cfg.retry, client_factory=factory)


def _status_error(cls, status):
    response = httpx.Response(status, request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))
    return cls("error", response=response, body=None)


class TestOpenAIChatAdapter:
    def test_plain_request(self):
        adapter = OpenAIChatAdapter()
        request = adapter.build_request(_call(model=ModelId.GPT_4O_MINI))
        assert request["model"] == "gpt-4o-mini"
        assert request["temperature"] == 0.0
        assert request["max_tokens"] == 500
        assert request["response_format"] == {"type": "json_object"}
        assert [m["role"] for m in request["messages"]] == ["system", "user"]

    def test_contextual_request_uses_profile(self):
        adapter = OpenAIChatAdapter()
        call = _call(model=ModelId.GPT_4O_MINI, instruction="Formal tone", quality_level=5, text="a" * 900)
        request = adapter.build_request(call)
        profile = get_quality_profile(5)
        assert request["model"] == profile.model
        assert request["temperature"] == profile.temperature
        assert request["max_tokens"] == effective_max_tokens(profile, 900)
        assert request["messages"][1]["content"].startswith("Formal tone")

    def test_contextual_request_keeps_pinned_model(self):
        """A fallback or explicit model overrides the tier model; tier tuning stays."""
        adapter = OpenAIChatAdapter()
        call = _call(model=ModelId.GPT_4O_MINI, instruction="Formal tone", quality_level=3, pin_model=True)
        request = adapter.build_request(call)
        profile = get_quality_profile(3)
        assert profile.model == "gpt-4o"
        assert request["model"] == "gpt-4o-mini"
        assert request["temperature"] == profile.temperature

    def test_translate(self):
        create = AsyncMock(return_value=_completion(
            '{"translation": "안녕하세요", "pronunciation_hangul": "안녕하세요"}'))
        clients = []
        out = asyncio.run(_openai(create, clients).translate(_call(model=ModelId.GPT_4O)))
        assert out.translation == "안녕하세요"
        assert out.model == "gpt-4o"
        assert create.await_args.kwargs["model"] == "gpt-4o"
        assert len(clients) == 1 and clients[0].closed

    def test_parse_failure(self):
        create = AsyncMock(return_value=_completion("I cannot do that"))
        with pytest.raises(ParseError):
            asyncio.run(_openai(create).translate(_call(model=ModelId.GPT_4O)))

    def test_empty_completion(self):
        create = AsyncMock(return_value=_completion(""))
        with pytest.raises(ProviderError):
            asyncio.run(_openai(create).translate(_call(model=ModelId.GPT_4O)))
        assert create.await_count == 3

    def test_auth_error_not_retried(self):
        create = AsyncMock(side_effect=_status_error(openai.AuthenticationError, 401))
        with pytest.raises(CredentialError):
            asyncio.run(_openai(create).translate(_call(model=ModelId.GPT_4O)))
        assert create.await_count == 1

    def test_transient_error_retried(self):
        create = AsyncMock(side_effect=[
            _status_error(openai.InternalServerError, 500),
            _completion('{"translation": "ok"}'),
        ])
        out = asyncio.run(_openai(create).translate(_call(model=ModelId.GPT_4O)))
        assert out.translation == "ok"

    def test_missing_key(self):
        create = AsyncMock()
        with pytest.raises(CredentialError):
            asyncio.run(_openai(create).translate(_call(model=ModelId.GPT_4O, api_key=None)))
        create.assert_not_awaited()

    def test_rate_limit_mapping(self):
        err = map_openai_error(_status_error(openai.RateLimitError, 429))
        assert err.code == ErrorCode.RATE_LIMITED
        assert err.status_code == 429
