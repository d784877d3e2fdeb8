"""
Google voice resolution.

    resolve_voice("ko-KR", None)                 -> "ko-KR-Standard-A"
    resolve_voice("vi-VN", "ko-KR-Standard-D")   -> "vi-VN-Standard-B"
    resolve_voice("ko-KR", "vi-VN-Standard-C")   -> "ko-KR-Standard-C"

A voice whose 5-character language prefix differs from the requested
locale is replaced by a same-language voice. For vi-VN and ko-KR the
replacement keeps the requested voice's rough variant (B/D for Vietnamese,
C/D for Korean); other locales get their default voice.
"""
from __future__ import annotations

from typing import Optional

DEFAULT_VOICES = {
    "vi-VN": "vi-VN-Standard-A",
    "ko-KR": "ko-KR-Standard-A",
    "en-US": "en-US-Standard-C",
}


def default_voice(locale: str) -> str:
    if locale.startswith("vi"):
        return DEFAULT_VOICES["vi-VN"]
    if locale.startswith("ko"):
        return DEFAULT_VOICES["ko-KR"]
    return DEFAULT_VOICES["en-US"]


def _has_variant(voice_name: Optional[str], *variants: str) -> bool:
    return bool(voice_name) and any(v in voice_name for v in variants)


def resolve_voice(locale: str, voice_name: Optional[str] = None) -> str:
    selected = voice_name or default_voice(locale)
    requested = locale[:5]
    if selected[:5] == requested:
        return selected

    if requested == "vi-VN":
        return "vi-VN-Standard-B" if _has_variant(voice_name, "-B", "-D") else "vi-VN-Standard-A"
    if requested == "ko-KR":
        return "ko-KR-Standard-C" if _has_variant(voice_name, "-C", "-D") else "ko-KR-Standard-A"
    return DEFAULT_VOICES.get(requested, f"{requested}-Standard-A")
