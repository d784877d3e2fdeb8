"""
Input Validation for the Gateway Service.

Validation happens before any cache, store or provider call, so a rejected
request never costs anything.

Validation Rules:
    - Text: Required (not blank), max ``limits.max_input_chars`` (6000)
    - Target language: Required for translation
    - Quality level: Integer 1-5, default 3
    - Chunk index: Non-negative integer, default 0
    - Feedback: originalText, originalTranslation, correctedTranslation
      and feedbackTargetLang all required

All functions raise ValidationError (core/errors.py) with a code from
ErrorCode, which the HTTP layer maps to 400.

Usage:
    from transvox.services.validators import validate_text, validate_quality_level

    text = validate_text(request.text, max_length=6000)
    level = validate_quality_level(request.quality_level)
"""
from __future__ import annotations

from typing import Any, Mapping, Optional

from transvox.core.config import Defaults
from transvox.core.errors import ErrorCode, ValidationError


def validate_text(text: Optional[str], max_length: int = Defaults.MAX_INPUT_CHARS) -> str:
    """
    Validate input text.

    Args:
        text: Input text
        max_length: Maximum allowed length

    Returns:
        The text, unchanged

    Raises:
        ValidationError: If the text is blank or too long
    """
    if not text or not text.strip():
        raise ValidationError("inputText is required", ErrorCode.TEXT_REQUIRED)

    if len(text) > max_length:
        raise ValidationError(
            f"Text exceeds maximum length ({len(text)} > {max_length})",
            ErrorCode.TEXT_TOO_LONG,
            {"length": len(text), "max_length": max_length},
        )

    return text


def validate_target_language(target: Optional[str]) -> str:
    if not target or not target.strip():
        raise ValidationError("targetLang is required", ErrorCode.FIELD_REQUIRED, {"field": "targetLang"})
    return target.strip()


def validate_quality_level(level: Any, default: int = Defaults.DEFAULT_QUALITY_LEVEL) -> int:
    """
    Validate a quality tier.

    Returns:
        The tier as int; ``default`` when None

    Raises:
        ValidationError: Non-integer or outside 1-5
    """
    if level is None:
        return default
    if isinstance(level, bool):
        raise ValidationError("qualityLevel must be an integer between 1 and 5", ErrorCode.INVALID_INPUT)
    try:
        value = int(level)
    except (TypeError, ValueError):
        raise ValidationError("qualityLevel must be an integer between 1 and 5", ErrorCode.INVALID_INPUT)
    if value != level and not isinstance(level, str):
        raise ValidationError("qualityLevel must be an integer between 1 and 5", ErrorCode.INVALID_INPUT)
    if not 1 <= value <= 5:
        raise ValidationError(
            f"qualityLevel must be between 1 and 5, got {value}",
            ErrorCode.INVALID_INPUT,
        )
    return value


def validate_chunk_index(index: Any) -> int:
    if index is None:
        return 0
    try:
        value = int(index)
    except (TypeError, ValueError):
        raise ValidationError("chunkIndex must be a non-negative integer", ErrorCode.INVALID_INPUT)
    if value < 0:
        raise ValidationError("chunkIndex must be a non-negative integer", ErrorCode.INVALID_INPUT)
    return value


def validate_feedback_fields(fields: Mapping[str, Optional[str]]) -> None:
    """
    Check that every feedback field is present and not blank.

    Args:
        fields: Wire field name -> value

    Raises:
        ValidationError: FIELD_REQUIRED naming the missing fields
    """
    missing = [name for name, value in fields.items() if not value or not str(value).strip()]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            ErrorCode.FIELD_REQUIRED,
            {"fields": missing},
        )
