"""
Source-language detection and speech locale mapping.

The gateway serves Korean, Vietnamese and English users, so detection is a
script check rather than a statistical model: any Hangul syllable means
Korean, any Vietnamese-specific diacritic means Vietnamese, anything else is
treated as English.
"""
from __future__ import annotations

import re
from typing import Optional

_HANGUL = re.compile(r"[가-힣]")
_VIETNAMESE = re.compile(
    r"[àáạảãâầấậẩẫăằắặẳẵèéẹẻẽêềếệểễìíịỉĩòóọỏõôồốộổỗơờớợởỡùúụủũưừứựửữỳýỵỷỹđ]",
    re.IGNORECASE,
)

# Language name -> speech locale; unknown names use Vietnamese
SPEECH_LOCALES = {
    "Korean": "ko-KR",
    "English": "en-US",
    "Vietnamese": "vi-VN",
}
DEFAULT_SPEECH_LOCALE = "vi-VN"


def detect_source_language(text: str) -> str:
    if _HANGUL.search(text):
        return "Korean"
    if _VIETNAMESE.search(text):
        return "Vietnamese"
    return "English"


def speech_locale(language: Optional[str]) -> str:
    """Locale code used by the speech providers for a language name."""
    return SPEECH_LOCALES.get(language or "", DEFAULT_SPEECH_LOCALE)
