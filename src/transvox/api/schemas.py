"""
API Request/Response Schemas.

The gateway speaks the camelCase JSON contract of its web and mobile
clients. One request model covers every action; which fields matter depends
on ``action``:

    translate      inputText, targetLang, getPronunciation, useAIContext,
                   contextualPrompt, qualityLevel, model, domain
    speak          inputText, language, voice, voiceName, useGoogleTTS
    speak-chunk    as speak, plus chunkIndex
    save-feedback  originalText, originalTranslation, correctedTranslation,
                   feedbackTargetLang

Example Request:
    {
        "action": "translate",
        "inputText": "Hello world.",
        "targetLang": "Korean",
        "qualityLevel": 3,
        "getPronunciation": true
    }

Field-level checks (required text, length, quality range) are done by
services/validators.py so that every entry point, HTTP or CLI, rejects the
same inputs with the same error codes.
"""
from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

ACTIONS = ("translate", "speak", "speak-chunk", "save-feedback")


class GatewayRequest(BaseModel):
    """
    Gateway request body.

    Attributes use snake_case in Python and camelCase on the wire.
    Unknown fields are ignored.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore", protected_namespaces=())

    action: Optional[str] = Field(default=None, description="One of: " + ", ".join(ACTIONS))
    input_text: Optional[str] = Field(default=None, alias="inputText")
    target_lang: Optional[str] = Field(default=None, alias="targetLang")

    # Speech
    voice: Optional[str] = Field(default=None, description="OpenAI voice, e.g. 'nova'")
    language: Optional[str] = Field(default=None, description="Speech language name, e.g. 'Korean'")
    chunk_index: Optional[Union[int, str]] = Field(default=None, alias="chunkIndex")
    use_google_tts: Optional[bool] = Field(default=None, alias="useGoogleTTS")
    voice_name: Optional[str] = Field(default=None, alias="voiceName")

    # Translation
    get_pronunciation: bool = Field(default=True, alias="getPronunciation")
    use_ai_context: bool = Field(default=False, alias="useAIContext")
    contextual_prompt: Optional[str] = Field(default=None, alias="contextualPrompt")
    quality_level: Optional[Union[int, str]] = Field(default=None, alias="qualityLevel")
    model: Optional[str] = Field(default="auto", description="auto, gpt-4o, gpt-4o-mini, gemini-1.5-flash")
    domain: Optional[str] = Field(default="general", description="general or manufacturing")

    # Feedback
    original_text: Optional[str] = Field(default=None, alias="originalText")
    original_translation: Optional[str] = Field(default=None, alias="originalTranslation")
    corrected_translation: Optional[str] = Field(default=None, alias="correctedTranslation")
    feedback_target_lang: Optional[str] = Field(default=None, alias="feedbackTargetLang")


class FeedbackAck(BaseModel):
    success: bool = True
