"""
Google Cloud Text-to-Speech adapter.

Credentials come from the service-account JSON in
``providers.google_service_account_json`` (env GOOGLE_SERVICE_ACCOUNT_JSON).
Audio config is fixed: MP3, configured speaking rate, pitch 0, +10 dB gain.

This adapter never retries; the gateway composes it with the OpenAI speech
adapter as fallback partner (see routing.py).
"""
from __future__ import annotations

import json
from typing import Any, Callable, Dict, Optional

from google.api_core import exceptions as google_exceptions
from google.cloud import texttospeech
from google.oauth2 import service_account

from transvox.core.config import ProvidersConfig, SpeechConfig
from transvox.core.errors import CredentialError, ProviderError
from transvox.core.logging import get_logger, verbose
from transvox.speech.base import BaseSpeechAdapter, SpeechCall, SpeechResult, empty_audio_error
from transvox.speech.voices import resolve_voice
from transvox.utils.timeit import timeit

_LOG = get_logger("transvox.speech.google")

ClientFactory = Callable[[Dict[str, Any]], texttospeech.TextToSpeechAsyncClient]


def default_client_factory(info: Dict[str, Any]) -> texttospeech.TextToSpeechAsyncClient:
    credentials = service_account.Credentials.from_service_account_info(info)
    return texttospeech.TextToSpeechAsyncClient(credentials=credentials)


class GoogleSpeechAdapter(BaseSpeechAdapter):
    name = "google"

    def __init__(
        self,
        providers: Optional[ProvidersConfig] = None,
        speech: Optional[SpeechConfig] = None,
        client_factory: Optional[ClientFactory] = None,
    ):
        self._providers = providers or ProvidersConfig()
        self._speech = speech or SpeechConfig()
        self._client_factory = client_factory or default_client_factory

    def _service_account_info(self) -> Dict[str, Any]:
        raw = self._providers.google_service_account_json
        if not raw:
            raise CredentialError("GOOGLE_SERVICE_ACCOUNT_JSON is not configured", self.name)
        try:
            info = json.loads(raw)
        except ValueError as e:
            raise CredentialError("GOOGLE_SERVICE_ACCOUNT_JSON is not valid JSON", self.name,
                                  kind="invalid_credential") from e
        if not isinstance(info, dict):
            raise CredentialError("GOOGLE_SERVICE_ACCOUNT_JSON must be a JSON object", self.name,
                                  kind="invalid_credential")
        return info

    def build_request(self, call: SpeechCall) -> Dict[str, Any]:
        voice = resolve_voice(call.locale, call.voice_name)
        return {
            "input": texttospeech.SynthesisInput(text=call.text),
            "voice": texttospeech.VoiceSelectionParams(language_code=call.locale, name=voice),
            "audio_config": texttospeech.AudioConfig(
                audio_encoding=texttospeech.AudioEncoding.MP3,
                speaking_rate=call.speaking_rate or self._speech.speaking_rate,
                pitch=0.0,
                volume_gain_db=self._speech.volume_gain_db,
            ),
        }

    async def synthesize(self, call: SpeechCall) -> SpeechResult:
        client = self._client_factory(self._service_account_info())
        request = self.build_request(call)
        voice = request["voice"].name

        # Leaving the block closes the gRPC channel.
        async with client:
            with timeit("google_tts") as t:
                try:
                    response = await client.synthesize_speech(**request)
                except google_exceptions.GoogleAPIError as e:
                    raise ProviderError(f"Google TTS failed: {e}", self.name) from e

        audio = response.audio_content
        if not audio:
            raise empty_audio_error(self.name)

        verbose(_LOG, "provider_call", provider=self.name, voice=voice,
                bytes=len(audio), seconds=round(t.seconds, 3))
        return SpeechResult(audio=audio, provider=self.name, voice=voice)
