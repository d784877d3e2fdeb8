"""
Tests for source-language detection, speech locales and voice resolution.
"""
import pytest

from transvox.speech.voices import default_voice, resolve_voice
from transvox.translation.language import detect_source_language, speech_locale


class TestDetectSourceLanguage:
    @pytest.mark.parametrize("text,expected", [
        ("안녕하세요", "Korean"),
        ("Hello 안녕", "Korean"),
        ("Xin chào bạn", "Vietnamese"),
        ("Hello world.", "English"),
        ("12345", "English"),
    ])
    def test_detection(self, text, expected):
        assert detect_source_language(text) == expected


class TestSpeechLocale:
    def test_known_languages(self):
        assert speech_locale("Korean") == "ko-KR"
        assert speech_locale("English") == "en-US"
        assert speech_locale("Vietnamese") == "vi-VN"

    def test_unknown_defaults_to_vietnamese(self):
        assert speech_locale(None) == "vi-VN"
        assert speech_locale("Klingon") == "vi-VN"


class TestResolveVoice:
    """Google voice resolution per locale."""

    def test_defaults(self):
        assert resolve_voice("ko-KR") == "ko-KR-Standard-A"
        assert resolve_voice("vi-VN") == "vi-VN-Standard-A"
        assert default_voice("en-US") == "en-US-Standard-C"

    def test_matching_voice_kept(self):
        assert resolve_voice("ko-KR", "ko-KR-Wavenet-D") == "ko-KR-Wavenet-D"

    def test_mismatch_vietnamese_keeps_variant(self):
        assert resolve_voice("vi-VN", "ko-KR-Standard-D") == "vi-VN-Standard-B"
        assert resolve_voice("vi-VN", "ko-KR-Standard-A") == "vi-VN-Standard-A"

    def test_mismatch_korean_keeps_variant(self):
        assert resolve_voice("ko-KR", "vi-VN-Standard-C") == "ko-KR-Standard-C"
        assert resolve_voice("ko-KR", "vi-VN-Standard-B") == "ko-KR-Standard-A"

    def test_mismatch_other_locale_uses_default(self):
        assert resolve_voice("en-US", "ko-KR-Standard-D") == "en-US-Standard-C"
        assert resolve_voice("ja-JP", "ko-KR-Standard-D") == "ja-JP-Standard-A"
