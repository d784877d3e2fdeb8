"""
Translation Provider Base.

Every translation backend implements BaseTranslationAdapter:

    output = await adapter.translate(call)   # TranslationOutput

Provider identifiers are a closed enum. Legacy and versioned model names are
mapped onto it once, at ingress, by normalize_model(); nothing downstream
compares model strings.

    ModelId.AUTO          -> chosen per request by the gateway
    ModelId.GEMINI_FLASH  -> fast family   (Gemini generateContent)
    ModelId.GPT_4O_MINI   -> deep family   (OpenAI chat, cheap)
    ModelId.GPT_4O        -> deep family   (OpenAI chat, premium)

Structured output is decoded in two stages (decode_json_object):
    1. strict json.loads of the whole text
    2. deep replies: json.loads of the substring between the first "{" and
       the last "}"; fast replies (first_object=True): the first complete
       object starting at the first "{", trailing text ignored
Nothing broader is attempted.
"""
from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from transvox.core.errors import CredentialError, ErrorCode, ParseError, ProviderError, ValidationError


class ModelId(str, Enum):
    AUTO = "auto"
    GEMINI_FLASH = "gemini-1.5-flash"
    GPT_4O_MINI = "gpt-4o-mini"
    GPT_4O = "gpt-4o"


class ProviderFamily(str, Enum):
    FAST = "fast"
    DEEP = "deep"


MODEL_FAMILY: Mapping[ModelId, ProviderFamily] = {
    ModelId.GEMINI_FLASH: ProviderFamily.FAST,
    ModelId.GPT_4O_MINI: ProviderFamily.DEEP,
    ModelId.GPT_4O: ProviderFamily.DEEP,
}

# Provider name reported to callers and used for usage costs
FAMILY_PROVIDER: Mapping[ProviderFamily, str] = {
    ProviderFamily.FAST: "google",
    ProviderFamily.DEEP: "openai",
}

MODEL_ALIASES: Mapping[str, ModelId] = {
    "gpt-4.1": ModelId.GPT_4O,
    "gpt-4.1-mini": ModelId.GPT_4O_MINI,
    "gemini-2.0-flash": ModelId.GEMINI_FLASH,
    "gemini-2.0-flash-001": ModelId.GEMINI_FLASH,
}


def normalize_model(name: Optional[str]) -> ModelId:
    """
    Map a requested model name onto ModelId.

    None or "" means AUTO. Unknown names are rejected so a typo never
    silently falls through to a different model.

    Raises:
        ValidationError: UNKNOWN_MODEL for names outside the table.
    """
    if not name:
        return ModelId.AUTO
    key = name.strip().lower()
    if key in MODEL_ALIASES:
        return MODEL_ALIASES[key]
    try:
        return ModelId(key)
    except ValueError:
        raise ValidationError(f"Unknown model: '{name}'", ErrorCode.UNKNOWN_MODEL,
                              {"model": name, "supported": [m.value for m in ModelId]})


@dataclass
class TranslationCall:
    """
    One provider invocation.

    Attributes:
        text: Source text.
        source_language: Detected or declared source language name.
        target_language: Target language name.
        pronunciation: Ask for Korean-Hangul phonetic guidance.
        model: Model to call.
        api_key: Credential for this call.
        instruction: Contextual instruction (deep contextual mode only).
        quality_level: Tier 1-5 (deep contextual mode only).
        pin_model: Contextual mode keeps ``model`` instead of the tier's model
            (set on fast-path fallback and for explicit model choices).
    """
    text: str
    source_language: str
    target_language: str
    pronunciation: bool
    model: ModelId
    api_key: Optional[str] = None
    instruction: Optional[str] = None
    quality_level: int = 3
    pin_model: bool = False


@dataclass
class TranslationOutput:
    """
    Provider result; text fields are never None.

    Attributes:
        translation: Translated text.
        pronunciation: Hangul phonetic guidance, "" when not requested.
        model: Model that actually served the call, when the adapter chose it.
    """
    translation: str
    pronunciation: str = ""
    model: str = ""


class BaseTranslationAdapter(ABC):
    """Uniform translate() contract for one provider family."""

    name: str = "base"
    family: ProviderFamily = ProviderFamily.DEEP

    @abstractmethod
    async def translate(self, call: TranslationCall) -> TranslationOutput:
        """
        Translate ``call.text``.

        Raises:
            CredentialError: No usable key, or the provider rejected it.
            ProviderError: Non-success response or unusable output.
        """


def decode_json_object(content: str, first_object: bool = False) -> Optional[Dict[str, Any]]:
    """
    Decode a JSON object from provider output.

    Args:
        content: Raw provider text.
        first_object: Stage 2 takes the first complete object instead of
            the span from the first "{" to the last "}".

    Returns:
        The decoded object, or None when neither stage yields a dict.
    """
    try:
        parsed = json.loads(content)
    except (TypeError, ValueError):
        start = content.find("{")
        if start == -1:
            return None
        try:
            if first_object:
                parsed, _ = json.JSONDecoder().raw_decode(content, start)
            else:
                end = content.rfind("}")
                if end <= start:
                    return None
                parsed = json.loads(content[start:end + 1])
        except ValueError:
            return None
    return parsed if isinstance(parsed, dict) else None


def _field(data: Mapping[str, Any], *names: str) -> str:
    for name in names:
        value = data.get(name)
        if value:
            return str(value)
    return ""


def normalize_fields(data: Mapping[str, Any]) -> TranslationOutput:
    """Resolve known key synonyms; missing fields become empty strings."""
    return TranslationOutput(
        translation=_field(data, "translation", "translated_text"),
        pronunciation=_field(data, "pronunciation_hangul", "pronunciation", "pron"),
    )


def decode_or_raise(content: str, provider: str) -> TranslationOutput:
    data = decode_json_object(content)
    if data is None:
        raise ParseError("Provider response could not be parsed as JSON", provider)
    return normalize_fields(data)


def raise_for_status(status_code: int, body: str, provider: str) -> None:
    """Map a non-2xx provider status onto the error taxonomy."""
    if 200 <= status_code < 300:
        return
    snippet = body[:300]
    if status_code in (401, 403):
        raise CredentialError(f"{provider} rejected the API key ({status_code})", provider,
                              kind="invalid_credential", status_code=status_code)
    if status_code == 429:
        raise ProviderError(f"{provider} rate limit exceeded", provider,
                            kind="rate_limited", status_code=status_code)
    raise ProviderError(f"{provider} API error {status_code}: {snippet}", provider,
                        status_code=status_code)
