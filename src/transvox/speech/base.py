"""
Speech Adapter Base.

Both speech backends implement BaseSpeechAdapter.synthesize(call) and return
MP3 bytes. An adapter that produces no audio raises ProviderError with the
EMPTY_AUDIO code instead of returning an empty result.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from transvox.core.errors import ErrorCode, ProviderError


@dataclass
class SpeechCall:
    """
    One synthesis invocation.

    Attributes:
        text: Text to speak.
        locale: BCP-47 locale, e.g. "ko-KR".
        voice: OpenAI voice ("nova", "alloy", ...).
        voice_name: Google voice name, e.g. "vi-VN-Standard-B".
        api_key: OpenAI credential for this call.
        speaking_rate: Google speaking rate.
    """
    text: str
    locale: str
    voice: str
    voice_name: Optional[str] = None
    api_key: Optional[str] = None
    speaking_rate: float = 1.0


@dataclass
class SpeechResult:
    audio: bytes
    provider: str
    voice: str = ""


class BaseSpeechAdapter(ABC):
    name: str = "base"

    @abstractmethod
    async def synthesize(self, call: SpeechCall) -> SpeechResult:
        """
        Synthesize ``call.text`` to MP3.

        Raises:
            CredentialError: Missing or rejected credential.
            ProviderError: Provider failure or empty audio.
        """


def empty_audio_error(provider: str) -> ProviderError:
    return ProviderError(f"{provider} returned empty audio", provider, code=ErrorCode.EMPTY_AUDIO)
