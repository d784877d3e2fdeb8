"""
transvox: Multi-provider Translation and Speech Gateway.

A gateway that turns text into translated text, pronunciation guidance and
speech audio by orchestrating third-party AI providers behind one JSON API.

Providers:
    - Gemini (fast family): short texts under a strict time budget
    - OpenAI chat (deep family): gpt-4o-mini / gpt-4o, contextual mode
    - Google Cloud Text-to-Speech and OpenAI speech, each the other's fallback

Key Features:
    - Single action endpoint: translate, speak, speak-chunk, save-feedback
    - User corrections applied before any provider call
    - Public cross-user cache plus an in-process TTL cache
    - Domain terminology (manufacturing) enforced after translation
    - Sentence chunks for progressive playback
    - Prometheus metrics support

Example Usage:
    >>> from transvox.core.config import Settings
    >>> from transvox.collaborators import build_in_memory_collaborators
    >>> from transvox.services import GatewayService, TranslationRequest
    >>> from transvox.translation.cache import EphemeralCache
    >>>
    >>> config = Settings(raw={}).get_gateway_config()
    >>> service = GatewayService(config, build_in_memory_collaborators(), EphemeralCache())
    >>> result = await service.translate(TranslationRequest("Hello world.", "Korean"))
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
