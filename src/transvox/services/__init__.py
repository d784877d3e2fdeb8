"""
transvox Services Layer.

This package provides the business logic layer between the API/CLI and the
translation and speech layers.

Components:
    - gateway.py: GatewayService (translation and speech orchestrator)
    - validators.py: Input validation functions
"""
from .gateway import (
    CallerContext,
    CallerCredentials,
    GatewayService,
    SpeechChunkResult,
    SpeechRequest,
    TranslationRequest,
    TranslationResult,
)

__all__ = [
    "GatewayService",
    "TranslationRequest",
    "TranslationResult",
    "SpeechRequest",
    "SpeechChunkResult",
    "CallerContext",
    "CallerCredentials",
]
