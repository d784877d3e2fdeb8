"""
transvox Speech Layer.

    - base.py: SpeechCall / SpeechResult and the adapter contract
    - voices.py: Google voice resolution per locale
    - google_speech.py: Google Cloud Text-to-Speech (adapter A)
    - openai_speech.py: OpenAI audio.speech (adapter B)
    - routing.py: Route selection and FallbackSpeech composition
"""
from __future__ import annotations

from transvox.core.config import GatewayConfig
from transvox.speech.base import BaseSpeechAdapter, SpeechCall, SpeechResult
from transvox.speech.google_speech import GoogleSpeechAdapter
from transvox.speech.openai_speech import OpenAISpeechAdapter
from transvox.speech.routing import FallbackSpeech, SpeechRoute, SpeechRouter, select_speech_route
from transvox.speech.voices import resolve_voice


def build_speech_router(config: GatewayConfig) -> SpeechRouter:
    return SpeechRouter(
        google=GoogleSpeechAdapter(config.providers, config.speech),
        openai=OpenAISpeechAdapter(config.providers, config.speech, config.retry),
        fallback_voice=config.speech.openai_voice,
    )


__all__ = [
    "BaseSpeechAdapter",
    "FallbackSpeech",
    "GoogleSpeechAdapter",
    "OpenAISpeechAdapter",
    "SpeechCall",
    "SpeechResult",
    "SpeechRoute",
    "SpeechRouter",
    "build_speech_router",
    "resolve_voice",
    "select_speech_route",
]
