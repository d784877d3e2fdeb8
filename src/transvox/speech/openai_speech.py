"""
OpenAI speech adapter (audio.speech, tts-1-hd, MP3).

Input longer than ``speech.max_chars`` (4000) is truncated. Calls run
through the backoff retrier with the speech policy (3 attempts, 0.4 s
base); a rejected key is not retried.
"""
from __future__ import annotations

from typing import Callable, Optional

import openai
from openai import AsyncOpenAI

from transvox.core.config import ProvidersConfig, RetryConfig, SpeechConfig
from transvox.core.errors import CredentialError
from transvox.core.logging import get_logger, verbose
from transvox.speech.base import BaseSpeechAdapter, SpeechCall, SpeechResult, empty_audio_error
from transvox.translation.providers.deep import map_openai_error
from transvox.utils.retry import retry_with_backoff
from transvox.utils.timeit import timeit

_LOG = get_logger("transvox.speech.openai")


class OpenAISpeechAdapter(BaseSpeechAdapter):
    name = "openai"

    def __init__(
        self,
        providers: Optional[ProvidersConfig] = None,
        speech: Optional[SpeechConfig] = None,
        retry: Optional[RetryConfig] = None,
        client_factory: Optional[Callable[[str], AsyncOpenAI]] = None,
    ):
        self._providers = providers or ProvidersConfig()
        self._speech = speech or SpeechConfig()
        self._retry = retry or RetryConfig()
        self._client_factory = client_factory or self._default_client

    def _default_client(self, api_key: str) -> AsyncOpenAI:
        return AsyncOpenAI(
            api_key=api_key,
            base_url=self._providers.openai_base_url,
            timeout=self._providers.http_timeout_s,
            max_retries=0,
        )

    def truncate(self, text: str) -> str:
        return text[:self._speech.max_chars]

    async def _create(self, client: AsyncOpenAI, text: str, voice: str) -> bytes:
        try:
            response = await client.audio.speech.create(
                model=self._speech.openai_model,
                voice=voice,
                input=text,
                response_format="mp3",
            )
        except openai.OpenAIError as e:
            raise map_openai_error(e, self.name) from e
        return response.content

    async def synthesize(self, call: SpeechCall) -> SpeechResult:
        api_key = call.api_key or self._providers.openai_api_key
        if not api_key:
            raise CredentialError("OpenAI API key not configured", self.name)

        text = self.truncate(call.text)
        voice = call.voice or self._speech.openai_voice

        async with self._client_factory(api_key) as client:
            with timeit("openai_tts") as t:
                audio = await retry_with_backoff(
                    lambda: self._create(client, text, voice),
                    attempts=self._retry.speech_attempts,
                    base_delay=self._retry.speech_base_delay_s,
                    jitter=self._retry.jitter_s,
                )
        if not audio:
            raise empty_audio_error(self.name)

        verbose(_LOG, "provider_call", provider=self.name, voice=voice, chars=len(text),
                bytes=len(audio), seconds=round(t.seconds, 3))
        return SpeechResult(audio=audio, provider=self.name, voice=voice)
