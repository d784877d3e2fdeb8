"""
Deep Translation Adapter (OpenAI chat completions).

Two modes, chosen by whether the call carries an instruction:

    plain       model as selected, temperature 0.0,
                max_tokens = estimate_max_tokens(len(text))
    contextual  temperature and token ceiling from the quality tier's
                QualityProfile, ceiling tightened by the estimator; the
                tier's model unless the call pins its own

Both request ``response_format={"type": "json_object"}`` and decode the
reply with the two-stage decoder; a reply that survives neither stage is a
ParseError. The SDK's own retries are disabled (max_retries=0) so that the
gateway's backoff policy is the only one in effect.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from transvox.core.config import ProvidersConfig, RetryConfig
from transvox.core.errors import CredentialError, ProviderError
from transvox.core.logging import debug, get_logger, verbose
from transvox.translation.budget import effective_max_tokens, estimate_max_tokens, get_quality_profile
from transvox.translation.providers.base import (
    BaseTranslationAdapter,
    ProviderFamily,
    TranslationCall,
    TranslationOutput,
    decode_or_raise,
)
from transvox.translation.providers.prompts import (
    contextual_system_message,
    contextual_user_message,
    plain_system_message,
    plain_user_message,
)
from transvox.utils.retry import retry_with_backoff
from transvox.utils.timeit import timeit

_LOG = get_logger("transvox.providers.openai")

ClientFactory = Callable[[str], AsyncOpenAI]


def map_openai_error(e: openai.OpenAIError, provider: str = "openai") -> ProviderError:
    """Translate an SDK exception into the gateway error taxonomy."""
    if isinstance(e, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return CredentialError("OpenAI rejected the API key", provider,
                               kind="invalid_credential", status_code=e.status_code)
    if isinstance(e, openai.RateLimitError):
        return ProviderError("OpenAI rate limit exceeded", provider,
                             kind="rate_limited", status_code=e.status_code)
    if isinstance(e, openai.APIStatusError):
        return ProviderError(f"OpenAI API error {e.status_code}: {e.message}", provider,
                             status_code=e.status_code)
    return ProviderError(f"OpenAI request failed: {e}", provider)


class OpenAIChatAdapter(BaseTranslationAdapter):
    name = "openai"
    family = ProviderFamily.DEEP

    def __init__(
        self,
        providers: Optional[ProvidersConfig] = None,
        retry: Optional[RetryConfig] = None,
        client_factory: Optional[ClientFactory] = None,
    ):
        self._providers = providers or ProvidersConfig()
        self._retry = retry or RetryConfig()
        self._client_factory = client_factory or self._default_client

    def _default_client(self, api_key: str) -> AsyncOpenAI:
        return AsyncOpenAI(
            api_key=api_key,
            base_url=self._providers.openai_base_url,
            timeout=self._providers.http_timeout_s,
            max_retries=0,
        )

    def build_request(self, call: TranslationCall) -> Dict[str, Any]:
        """Chat completion kwargs for a call (no I/O)."""
        if call.instruction is None:
            system = plain_system_message(call.source_language, call.target_language, call.pronunciation)
            user = plain_user_message(call.text)
            model = call.model.value
            temperature = 0.0
            max_tokens = estimate_max_tokens(len(call.text))
        else:
            profile = get_quality_profile(call.quality_level)
            system = contextual_system_message(
                call.source_language, call.target_language, call.quality_level, call.pronunciation)
            user = contextual_user_message(
                call.text, call.source_language, call.target_language, call.instruction)
            model = call.model.value if call.pin_model else profile.model
            temperature = profile.temperature
            max_tokens = effective_max_tokens(profile, len(call.text))

        messages: List[Dict[str, str]] = [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ]
        return {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "response_format": {"type": "json_object"},
        }

    async def _complete(self, client: AsyncOpenAI, request: Dict[str, Any]) -> TranslationOutput:
        try:
            response = await client.chat.completions.create(**request)
        except openai.OpenAIError as e:
            raise map_openai_error(e, self.name) from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ProviderError("OpenAI returned an empty completion", self.name)
        return decode_or_raise(content, self.name)

    async def translate(self, call: TranslationCall) -> TranslationOutput:
        if not call.api_key:
            raise CredentialError("OpenAI API key not configured", self.name)

        request = self.build_request(call)
        debug(_LOG, "request_built", model=request["model"], max_tokens=request["max_tokens"],
              contextual=call.instruction is not None)

        async with self._client_factory(call.api_key) as client:
            with timeit("openai_call") as t:
                output = await retry_with_backoff(
                    lambda: self._complete(client, request),
                    attempts=self._retry.translation_attempts,
                    base_delay=self._retry.translation_base_delay_s,
                    jitter=self._retry.jitter_s,
                )
        verbose(_LOG, "provider_call", provider=self.name, model=request["model"],
                seconds=round(t.seconds, 3))

        output.model = request["model"]
        return output
