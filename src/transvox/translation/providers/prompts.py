"""
Prompt builders for the translation adapters.

The fast adapter gets a single role-less prompt. The deep adapter gets a
system/user pair in one of two modes:

    plain       concise translator persona, user message is the text block
    contextual  elite persona + tier-gated guidance, user message is the
                caller's instruction (or a default "translate this" line)

All deep prompts demand a JSON object with "translation" and
"pronunciation_hangul".
"""
from __future__ import annotations

from typing import List, Optional

_JSON_KEYS = (
    'The JSON MUST contain exactly two keys: "translation" (string), '
    '"pronunciation_hangul" (string).'
)


def fast_prompt(text: str, source_language: str, target_language: str, pronunciation: bool) -> str:
    if pronunciation:
        return (
            f"Translate the following {source_language} text to {target_language}. "
            'Return ONLY valid JSON with exactly two keys: "translation" (the translated text) '
            f'and "pronunciation_hangul" (Korean phonetic transcription of the {target_language} '
            "translation).\n\n"
            f'Text to translate: "{text}"'
        )
    return (
        f"Translate the following {source_language} text to {target_language}. "
        "Return ONLY the translated text without any explanation or formatting.\n\n"
        f'Text to translate: "{text}"'
    )


def plain_system_message(source_language: str, target_language: str, pronunciation: bool) -> str:
    lines: List[str] = [
        "You are a professional, consistent translator. ALWAYS return only valid JSON (no extra commentary).",
        _JSON_KEYS,
        "Rules:",
        f"- Translate the given {source_language} text to {target_language}.",
        "- Preserve named entities, product codes, and email/URLs as-is.",
        "- Maintain formality: if the input is formal, use formal polite tone; otherwise neutral.",
        "- Keep translation concise and natural.",
    ]
    if pronunciation:
        lines.append(
            f'- Provide "pronunciation_hangul" as a Korean-readable transcription of the translated '
            f"{target_language} text (for Vietnamese: 한글 표기)."
        )
    else:
        lines.append('- Set "pronunciation_hangul" to an empty string.')
    lines.append("- Return only JSON (no markdown, no explanation).")
    return "\n".join(lines)


def plain_user_message(text: str) -> str:
    return f'Text: """{text}"""'


def contextual_system_message(
    source_language: str,
    target_language: str,
    quality_level: int,
    pronunciation: bool,
) -> str:
    lines: List[str] = [
        "You are an elite professional translator with deep cultural understanding and linguistic expertise.",
        "ALWAYS return only valid JSON (no extra commentary, no markdown).",
        _JSON_KEYS,
        "",
        "Core Translation Rules:",
        f"- Source language: {source_language} → Target language: {target_language}",
        "- Preserve named entities, proper nouns, product codes, and URLs exactly as-is",
        "- Maintain appropriate formality level based on context",
        "- Ensure natural, fluent expression in target language",
    ]
    if quality_level >= 4:
        lines += [
            "- PREMIUM QUALITY: Consider cultural nuances, idiomatic expressions, and regional variations",
            "- Apply advanced linguistic analysis for context-appropriate translations",
            "- Ensure perfect grammar and natural flow",
        ]
    elif quality_level >= 3:
        lines += [
            "- HIGH QUALITY: Focus on accuracy and natural expression",
            "- Consider context and maintain consistency",
        ]

    if pronunciation:
        lines += [
            f'- Provide "pronunciation_hangul" as accurate Korean phonetic transcription of the '
            f"translated {target_language} text",
            "- For Vietnamese: use Korean characters to represent Vietnamese pronunciation (한글 표기)",
            "- For English: use Korean characters to represent English pronunciation",
        ]
    else:
        lines.append('- Set "pronunciation_hangul" to an empty string')
    lines.append("- Output format: Return ONLY valid JSON, no other text")
    return "\n".join(lines)


def contextual_user_message(
    text: str,
    source_language: str,
    target_language: str,
    instruction: Optional[str],
) -> str:
    """
    User message for contextual mode.

    An instruction that does not quote the source text gets it appended, so
    a domain preamble on its own still carries something to translate.
    """
    if not instruction or not instruction.strip():
        return f'Translate this {source_language} text to {target_language}: """{text}"""'
    if text in instruction:
        return instruction
    return f'{instruction}\n\nText: """{text}"""'
