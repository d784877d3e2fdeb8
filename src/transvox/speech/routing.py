"""
Speech provider routing.

Selection policy (select_speech_route):

    use_google_tts=True   -> Google, falling back to OpenAI
    use_google_tts=False  -> OpenAI, falling back to Google
    unset, short text     -> Google, falling back to OpenAI
    unset, longer text    -> OpenAI only

"Short" is ``len(text) < routing.speech_short_max_chars`` (50). The split is
a latency/cost trade-off: Google is cheaper per character for short phrases.

FallbackSpeech composes two adapters. Any failure of the primary (missing
credential, provider error, empty audio, unexpected exception) is logged and
the partner is tried; only the partner's error can reach the caller.
"""
from __future__ import annotations

from dataclasses import replace
from enum import Enum
from typing import Any, Dict, Optional

from transvox.core.logging import get_logger, warn
from transvox.core.metrics import metrics
from transvox.speech.base import BaseSpeechAdapter, SpeechCall, SpeechResult

_LOG = get_logger("transvox.speech")


class SpeechRoute(str, Enum):
    GOOGLE_WITH_FALLBACK = "google>openai"
    OPENAI_WITH_FALLBACK = "openai>google"
    OPENAI = "openai"


def select_speech_route(
    text: str,
    use_google_tts: Optional[bool],
    short_max_chars: int = 50,
) -> SpeechRoute:
    if use_google_tts is True:
        return SpeechRoute.GOOGLE_WITH_FALLBACK
    if use_google_tts is False:
        return SpeechRoute.OPENAI_WITH_FALLBACK
    if len(text) < short_max_chars:
        return SpeechRoute.GOOGLE_WITH_FALLBACK
    return SpeechRoute.OPENAI


class FallbackSpeech(BaseSpeechAdapter):
    """
    Primary adapter with a fallback partner.

    Args:
        primary: Adapter tried first.
        partner: Adapter tried when the primary fails.
        partner_overrides: SpeechCall fields replaced for the partner call,
            e.g. {"voice": "nova"} when Google falls back to OpenAI.
    """

    def __init__(
        self,
        primary: BaseSpeechAdapter,
        partner: BaseSpeechAdapter,
        partner_overrides: Optional[Dict[str, Any]] = None,
    ):
        self.primary = primary
        self.partner = partner
        self._overrides = dict(partner_overrides or {})
        self.name = f"{primary.name}>{partner.name}"

    async def synthesize(self, call: SpeechCall) -> SpeechResult:
        try:
            return await self.primary.synthesize(call)
        except Exception as e:
            warn(_LOG, "speech_fallback", provider=self.primary.name, partner=self.partner.name,
                 error_type=type(e).__name__, error=str(e)[:200])
            metrics.record_speech(self.primary.name, "error")
            metrics.record_fallback(f"speech_{self.primary.name}")

        return await self.partner.synthesize(replace(call, **self._overrides))


class SpeechRouter:
    """Builds the adapter chain for each SpeechRoute."""

    def __init__(self, google: BaseSpeechAdapter, openai: BaseSpeechAdapter, fallback_voice: str = "nova"):
        self.google = google
        self.openai = openai
        self._chains = {
            SpeechRoute.GOOGLE_WITH_FALLBACK: FallbackSpeech(google, openai, {"voice": fallback_voice}),
            SpeechRoute.OPENAI_WITH_FALLBACK: FallbackSpeech(openai, google),
            SpeechRoute.OPENAI: openai,
        }

    def adapter_for(self, route: SpeechRoute) -> BaseSpeechAdapter:
        return self._chains[route]
