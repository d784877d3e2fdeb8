"""
Fast Translation Adapter (Gemini generateContent).

A single-shot call with a role-less prompt:

    POST {base}/models/{model}:generateContent?key=...
    {"contents": [{"parts": [{"text": prompt}]}],
     "generationConfig": {"temperature": 0.1, "maxOutputTokens": 2000}}

The reply text lives at candidates[0].content.parts[0].text. With
pronunciation requested the prompt asks for a two-field JSON object; output
that does not decode becomes the translation as-is, with an empty
pronunciation, rather than an error.

The gateway bounds this adapter with its fast-path timeout, so every
failure here ends in a fallback to the deep adapter, never in a response.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from transvox.core.config import Defaults, ProvidersConfig, RetryConfig
from transvox.core.errors import CredentialError, ProviderError
from transvox.core.logging import get_logger, verbose
from transvox.translation.providers.base import (
    BaseTranslationAdapter,
    ProviderFamily,
    TranslationCall,
    TranslationOutput,
    decode_json_object,
    normalize_fields,
    raise_for_status,
)
from transvox.translation.providers.prompts import fast_prompt
from transvox.utils.retry import retry_with_backoff
from transvox.utils.timeit import timeit

_LOG = get_logger("transvox.providers.gemini")

GENERATION_CONFIG = {"temperature": 0.1, "maxOutputTokens": 2000}


def extract_text(data: Dict[str, Any]) -> str:
    """Text of the first candidate part, or "" when the shape is missing."""
    try:
        return data["candidates"][0]["content"]["parts"][0]["text"] or ""
    except (KeyError, IndexError, TypeError):
        return ""


class GeminiAdapter(BaseTranslationAdapter):
    name = "google"
    family = ProviderFamily.FAST

    def __init__(
        self,
        providers: Optional[ProvidersConfig] = None,
        retry: Optional[RetryConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._providers = providers or ProvidersConfig()
        self._retry = retry or RetryConfig()
        self._transport = transport

    def endpoint(self, model: str) -> str:
        base = (self._providers.gemini_base_url or Defaults.GEMINI_BASE_URL).rstrip("/")
        return f"{base}/models/{model}:generateContent"

    async def _post(self, url: str, api_key: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        async with httpx.AsyncClient(
            timeout=self._providers.http_timeout_s,
            transport=self._transport,
        ) as client:
            try:
                resp = await client.post(url, params={"key": api_key}, json=payload)
            except httpx.HTTPError as e:
                raise ProviderError(f"Gemini request failed: {e}", self.name) from e
        raise_for_status(resp.status_code, resp.text, self.name)
        try:
            return resp.json()
        except ValueError as e:
            raise ProviderError("Gemini returned a non-JSON body", self.name) from e

    async def translate(self, call: TranslationCall) -> TranslationOutput:
        if not call.api_key:
            raise CredentialError("Gemini API key not configured", self.name)

        payload = {
            "contents": [{"parts": [{"text": fast_prompt(
                call.text, call.source_language, call.target_language, call.pronunciation)}]}],
            "generationConfig": dict(GENERATION_CONFIG),
        }
        url = self.endpoint(call.model.value)

        with timeit("gemini_call") as t:
            data = await retry_with_backoff(
                lambda: self._post(url, call.api_key, payload),
                attempts=self._retry.translation_attempts,
                base_delay=self._retry.translation_base_delay_s,
                jitter=self._retry.jitter_s,
            )
        verbose(_LOG, "provider_call", provider=self.name, model=call.model.value,
                seconds=round(t.seconds, 3))

        text = extract_text(data)
        if not call.pronunciation:
            return TranslationOutput(translation=text.strip())

        decoded = decode_json_object(text, first_object=True)
        if decoded is None:
            return TranslationOutput(translation=text.strip())
        return normalize_fields(decoded)
