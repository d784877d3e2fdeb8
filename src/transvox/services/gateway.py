"""
GatewayService - Translation and Speech Orchestrator.

This module provides GatewayService, the single entry point behind every
gateway action (translate, speak, speak-chunk, save-feedback). The HTTP
layer and the CLI both call it.

Translation lifecycle:
    Validate → CorrectionCheck → CacheCheck → ModelSelect
             → ProviderAttempt(primary) → [TimeoutOrError] → ProviderAttempt(fallback)
             → PostProcess → Cache/Respond

Key Components:
    - CorrectionResolver: exact/similar user corrections (no provider call)
    - PublicCache: cross-user cache, plain requests only
    - EphemeralCache: in-process TTL cache, injected by the app factory
    - AdapterRegistry: fast (Gemini) and deep (OpenAI chat) adapters
    - SpeechRouter: Google/OpenAI speech with fallback partners

Error Handling:
    - The fast provider is raced against ``routing.fast_timeout_s``. A
      timeout, an error or a missing credential falls back to the deep
      adapter with gpt-4o-mini; the failure is logged and counted only.
    - Deep-provider and speech errors surface after retries/fallbacks.
    - Unexpected exceptions are wrapped in GatewayError(INTERNAL_ERROR).
    - Usage-ledger and public-cache write failures are logged, not raised.

Example:
    >>> service = GatewayService(config, collaborators, EphemeralCache())
    >>> result = await service.translate(
    ...     TranslationRequest(text="Hello world.", target_language="Korean"))
    >>> result.to_dict()["usedModel"]
    'gemini-1.5-flash'
"""
from __future__ import annotations

import asyncio
import base64
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from transvox.collaborators.base import CorrectionRecord, Collaborators
from transvox.core.config import GatewayConfig, RoutingConfig
from transvox.core.errors import CredentialError, ErrorCode, GatewayError, AuthRequiredError
from transvox.core.logging import debug, fail, get_logger, info, success, verbose, warn
from transvox.core.metrics import metrics
from transvox.services.validators import (
    validate_chunk_index,
    validate_feedback_fields,
    validate_quality_level,
    validate_target_language,
    validate_text,
)
from transvox.speech import SpeechCall, SpeechResult, SpeechRoute, SpeechRouter, build_speech_router, select_speech_route
from transvox.speech.base import empty_audio_error
from transvox.translation.cache import EphemeralCache, make_key
from transvox.translation.chunker import split_into_sentences
from transvox.translation.corrections import CorrectionMatch, CorrectionResolver
from transvox.translation.language import detect_source_language, speech_locale
from transvox.translation.providers import (
    FAMILY_PROVIDER,
    MODEL_FAMILY,
    AdapterRegistry,
    ModelId,
    ProviderFamily,
    TranslationCall,
    TranslationOutput,
    build_registry,
    normalize_model,
)
from transvox.translation.terminology import apply_terminology, domain_preamble
from transvox.utils.timeit import timeit

_LOG = get_logger("transvox.gateway")

# Model the fast path falls back to
FALLBACK_MODEL = ModelId.GPT_4O_MINI


# =============================================================================
# Request/Response Dataclasses
# =============================================================================

@dataclass
class CallerCredentials:
    """Provider keys supplied by the authenticated caller (each optional)."""
    openai: Optional[str] = None
    google: Optional[str] = None


@dataclass
class CallerContext:
    """
    Who is calling.

    Attributes:
        user_id: Verified user id, None for guests.
        credentials: The user's own provider keys.
    """
    user_id: Optional[str] = None
    credentials: CallerCredentials = field(default_factory=CallerCredentials)

    @property
    def authenticated(self) -> bool:
        return self.user_id is not None


@dataclass
class TranslationRequest:
    """
    Request for translation.

    Attributes:
        text: Text to translate (required, at most limits.max_input_chars).
        target_language: Target language name, e.g. "Korean" (required).
        source_language: Source language name; detected when None.
        quality_level: Tier 1-5 for contextual mode.
        pronunciation: Ask for Korean-Hangul phonetic guidance.
        contextual_prompt: Caller instruction, used with use_ai_context.
        use_ai_context: Enable contextual mode with contextual_prompt.
        domain: Domain tag ("general", "manufacturing").
        model: "auto", a ModelId, or a legacy alias.
        user_id: Authenticated user, enables corrections and usage tracking.
        credentials: Caller-supplied provider keys.
    """
    text: str
    target_language: str
    source_language: Optional[str] = None
    quality_level: Optional[int] = None
    pronunciation: bool = True
    contextual_prompt: Optional[str] = None
    use_ai_context: bool = False
    domain: str = "general"
    model: Union[ModelId, str, None] = ModelId.AUTO
    user_id: Optional[str] = None
    credentials: CallerCredentials = field(default_factory=CallerCredentials)


@dataclass
class TranslationResult:
    """
    Result of translation.

    Attributes:
        translation: Translated text (terminology applied).
        pronunciation: Hangul guidance, "" when not requested.
        chunks: Sentence-bounded chunks of the translation.
        used_model: Model that served the request ("feedback"/"cache" for overrides).
        model_provider: "google", "openai", "user-feedback" or "public-cache".
        used_user_key: Whether a caller-supplied key was used.
        source: "live", "cache", "public-cache" or "correction".
        feedback_match_type: "exact"/"similar" for corrections, else None.
        is_ai_translation: Request asked for contextual mode.
        quality_level: Tier the request ran at.
        seconds: Time spent in the orchestrator.
    """
    translation: str
    pronunciation: str
    chunks: List[str]
    used_model: str
    model_provider: str
    used_user_key: bool
    source: str = "live"
    feedback_match_type: Optional[str] = None
    is_ai_translation: bool = False
    quality_level: int = 3
    seconds: float = 0.0

    @property
    def cache_hit(self) -> bool:
        return self.source in ("cache", "public-cache")

    def to_dict(self) -> Dict[str, Any]:
        """Outbound JSON contract of the translate action."""
        body: Dict[str, Any] = {
            "translation": self.translation,
            "pronunciation_hangul": self.pronunciation,
            "chunks": list(self.chunks),
            "usedModel": self.used_model,
            "modelProvider": self.model_provider,
            "usedUserKey": self.used_user_key,
            "cacheHit": self.cache_hit,
        }
        if self.is_ai_translation:
            body["isAITranslation"] = True
            body["qualityLevel"] = self.quality_level
        if self.source == "correction":
            body["feedbackApplied"] = True
            body["feedbackMatchType"] = self.feedback_match_type
        return body


@dataclass
class SpeechRequest:
    """
    Request for speech synthesis.

    Attributes:
        text: Text to speak.
        language: Language name ("Korean", "English", "Vietnamese").
        voice: OpenAI voice; defaults to speech.openai_voice (speech.chunk_voice
            for speak_chunk).
        voice_name: Google voice name; resolved per locale when None.
        use_google_tts: Explicit engine choice; None lets the router pick.
        user_id: Authenticated user, enables usage tracking.
        credentials: Caller-supplied provider keys.
    """
    text: str
    language: Optional[str] = None
    voice: Optional[str] = None
    voice_name: Optional[str] = None
    use_google_tts: Optional[bool] = None
    user_id: Optional[str] = None
    credentials: CallerCredentials = field(default_factory=CallerCredentials)


@dataclass
class SpeechChunkResult:
    total_chunks: int
    completed: bool
    chunk_index: Optional[int] = None
    text: Optional[str] = None
    audio: Optional[bytes] = None
    provider: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.completed:
            return {"completed": True, "totalChunks": self.total_chunks}
        return {
            "audio": base64.b64encode(self.audio or b"").decode("ascii"),
            "chunkIndex": self.chunk_index,
            "totalChunks": self.total_chunks,
            "text": self.text,
            "completed": False,
        }


def select_model(requested: ModelId, text: str, routing: RoutingConfig, gemini_key: Optional[str]) -> ModelId:
    """
    Resolve ``auto`` to a concrete model.

    Short texts go to the fast family when a Gemini key exists, medium texts
    to gpt-4o-mini, long texts to gpt-4o. Explicit models pass through.
    """
    if requested is not ModelId.AUTO:
        return requested
    if len(text) < routing.fast_max_chars and gemini_key:
        return ModelId.GEMINI_FLASH
    if len(text) < routing.cheap_max_chars:
        return ModelId.GPT_4O_MINI
    return ModelId.GPT_4O


def _consume_abandoned(task: "asyncio.Task[Any]") -> None:
    """Done-callback for a fast-provider task that lost its timeout race."""
    if task.cancelled():
        debug(_LOG, "abandoned_call_cancelled")
        return
    exc = task.exception()
    if exc is not None:
        warn(_LOG, "abandoned_call_failed", error_type=type(exc).__name__, error=str(exc)[:200])
    else:
        debug(_LOG, "abandoned_call_discarded")


# =============================================================================
# Main Service Class
# =============================================================================

class GatewayService:
    """
    Orchestrates translation and speech across providers.

    Usage:
        config = load_settings().get_gateway_config()
        service = GatewayService(config, build_in_memory_collaborators(), EphemeralCache())
        result = await service.translate(TranslationRequest(text="Hi", target_language="Korean"))
    """

    def __init__(
        self,
        config: GatewayConfig,
        collaborators: Collaborators,
        cache: EphemeralCache,
        registry: Optional[AdapterRegistry] = None,
        speech: Optional[SpeechRouter] = None,
    ):
        """
        Args:
            config: Validated gateway configuration.
            collaborators: Auth, credential, usage, public-cache and correction stores.
            cache: Ephemeral cache owned by the application.
            registry: Translation adapters; built from config when None.
            speech: Speech router; built from config when None.
        """
        self._config = config
        self._collab = collaborators
        self._cache = cache
        self._registry = registry or build_registry(config)
        self._speech = speech or build_speech_router(config)
        self._corrections = CorrectionResolver(collaborators.corrections, config.corrections)
        self._text_preview_chars = config.logging.text_preview_chars

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def config(self) -> GatewayConfig:
        return self._config

    @property
    def cache(self) -> EphemeralCache:
        return self._cache

    @property
    def collaborators(self) -> Collaborators:
        return self._collab

    def get_health_info(self) -> Dict[str, Any]:
        providers = self._config.providers
        return {
            "status": "ok",
            "environment": self._config.environment,
            "cache": self._cache.stats(),
            "providers": {
                "openai": bool(providers.openai_api_key),
                "gemini": bool(providers.gemini_api_key),
                "google_tts": bool(providers.google_service_account_json),
            },
        }

    # =========================================================================
    # Caller resolution
    # =========================================================================

    async def resolve_caller(self, token: Optional[str]) -> CallerContext:
        """
        Verify a bearer token and load the user's provider keys.

        An unknown or failed token yields a guest context; it is not an error.
        """
        if not token:
            return CallerContext()

        check = await self._collab.auth.verify_token(token)
        if not check.success or not check.user_id:
            info(_LOG, "auth_rejected")
            return CallerContext()

        openai_key, google_key = await asyncio.gather(
            self._collab.credentials.get_user_api_key(check.user_id, "openai"),
            self._collab.credentials.get_user_api_key(check.user_id, "google"),
        )
        credentials = CallerCredentials(
            openai=openai_key.api_key if openai_key.success else None,
            google=google_key.api_key if google_key.success else None,
        )
        verbose(_LOG, "caller_resolved", user_id=check.user_id,
                openai_key=bool(credentials.openai), google_key=bool(credentials.google))
        return CallerContext(user_id=check.user_id, credentials=credentials)

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _preview(self, text: str) -> str:
        return text[:self._text_preview_chars] if self._text_preview_chars > 0 else ""

    def _chunks(self, text: str) -> List[str]:
        return split_into_sentences(text, self._config.chunking.max_chars)

    def _instruction(self, request: TranslationRequest) -> Optional[str]:
        """
        Effective contextual instruction, or None for plain mode.

        The domain preamble is prepended to the caller's instruction when
        use_ai_context is on, and used alone otherwise.
        """
        preamble = domain_preamble(request.domain)
        prompt = (request.contextual_prompt or "").strip()
        if request.use_ai_context and (prompt or preamble):
            return "\n\n".join(p for p in (preamble, prompt) if p)
        if preamble:
            return preamble
        return None

    def _select_model(self, requested: ModelId, text: str, gemini_key: Optional[str]) -> ModelId:
        return select_model(requested, text, self._config.routing, gemini_key)

    async def _track_usage(self, user_id: Optional[str], kind: str, chars: int, provider: str) -> None:
        if not user_id:
            return
        cost = self._config.usage.cost_for(provider, chars)
        try:
            await self._collab.usage.track_usage(user_id, kind, chars, cost, provider)
            verbose(_LOG, "usage_tracked", kind=kind, chars=chars, provider=provider, cost=round(cost, 6))
        except Exception as e:
            warn(_LOG, "usage_track_failed", error=str(e), error_type=type(e).__name__)

    async def _store_public(self, text: str, target: str, output: TranslationOutput) -> None:
        try:
            await self._collab.public_cache.set(text, target, output.translation, output.pronunciation)
        except Exception as e:
            warn(_LOG, "public_cache_store_failed", error=str(e), error_type=type(e).__name__)

    # =========================================================================
    # Fast path: timeout race
    # =========================================================================

    async def _race_fast(self, call: TranslationCall) -> Tuple[Optional[TranslationOutput], Optional[str]]:
        """
        Run the fast adapter under ``routing.fast_timeout_s``.

        Returns:
            (output, None) on success, (None, reason) when the caller must
            fall back. On timeout the task is cancelled; a done-callback
            consumes whatever it ends with.
        """
        adapter = self._registry.get(ProviderFamily.FAST)
        timeout_s = self._config.routing.fast_timeout_s
        task = asyncio.ensure_future(adapter.translate(call))
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout_s)
        except asyncio.CancelledError:
            task.cancel()
            task.add_done_callback(_consume_abandoned)
            raise

        if not done:
            task.cancel()
            task.add_done_callback(_consume_abandoned)
            return None, "timeout"

        exc = task.exception()
        if exc is None:
            output = task.result()
            if not output.translation.strip():
                debug(_LOG, "fast_call_empty")
                return None, "error"
            return output, None
        if isinstance(exc, CredentialError):
            return None, "credential"
        debug(_LOG, "fast_call_failed", error_type=type(exc).__name__, error=str(exc)[:200])
        return None, "error"

    # =========================================================================
    # Public API: translate()
    # =========================================================================

    async def translate(self, request: TranslationRequest) -> TranslationResult:
        """
        Translate text (main API method).

        Raises:
            ValidationError: Bad input; raised before any store or provider call.
            CredentialError: No OpenAI key for the deep adapter.
            ProviderError: Deep provider failed after retries.
            GatewayError: Unexpected failure (INTERNAL_ERROR).
        """
        text = validate_text(request.text, self._config.limits.max_input_chars)
        target = validate_target_language(request.target_language)
        quality = validate_quality_level(request.quality_level, self._config.limits.default_quality_level)
        model = request.model if isinstance(request.model, ModelId) else normalize_model(request.model)

        info(_LOG, "translate", chars=len(text), target=target, model=model.value,
             domain=request.domain, text_preview=self._preview(text))

        try:
            with timeit("translate_total") as total_t:
                result = await self._translate(request, text, target, quality, model)
        except GatewayError as e:
            fail(_LOG, "translate_failed", code=e.code, error=e.message)
            metrics.record_translation("none", "live", "error")
            raise
        except Exception as e:
            fail(_LOG, "translate_failed", error=str(e), error_type=type(e).__name__)
            metrics.record_translation("none", "live", "error")
            raise GatewayError(f"Translation failed: {e}", ErrorCode.INTERNAL_ERROR,
                               {"error_type": type(e).__name__})

        result.seconds = total_t.seconds
        metrics.record_translation(result.model_provider, result.source, "success", result.seconds)
        success(_LOG, "done", source=result.source, model=result.used_model,
                provider=result.model_provider, chunks=len(result.chunks),
                seconds=round(result.seconds, 3))
        return result

    async def _translate(
        self,
        request: TranslationRequest,
        text: str,
        target: str,
        quality: int,
        model: ModelId,
    ) -> TranslationResult:
        creds = request.credentials
        providers = self._config.providers

        # ─────────────────────────────────────────────────────────────────────
        # Stage 1: User corrections
        # ─────────────────────────────────────────────────────────────────────
        if request.user_id:
            match = await self._corrections.resolve(text, target, request.user_id)
            if match is not None:
                return self._correction_result(match, quality, bool(creds.openai))

        # ─────────────────────────────────────────────────────────────────────
        # Stage 2: Caches
        # ─────────────────────────────────────────────────────────────────────
        instruction = self._instruction(request)
        contextual = instruction is not None
        key = make_key("ai_tr" if contextual else "tr", target, text, quality,
                       request.pronunciation, instruction)

        with timeit("cache_lookup") as t_cache:
            cached = await self._check_caches(key, text, target, request.pronunciation, contextual)
        verbose(_LOG, "stage", event="cache_lookup", seconds=round(t_cache.seconds, 4),
                cache=cached[0] if cached else "miss")

        if cached is not None:
            source, value = cached
            translation = apply_terminology(value["translation"], request.domain, target)
            return TranslationResult(
                translation=translation,
                pronunciation=value["pronunciation"] if request.pronunciation else "",
                chunks=self._chunks(translation),
                used_model=value["model"],
                model_provider=value["provider"],
                used_user_key=bool(creds.openai),
                source=source,
                is_ai_translation=request.use_ai_context,
                quality_level=quality,
            )

        # ─────────────────────────────────────────────────────────────────────
        # Stage 3: Model selection
        # ─────────────────────────────────────────────────────────────────────
        gemini_key = creds.google or providers.gemini_api_key
        openai_key = creds.openai or providers.openai_api_key
        selected = self._select_model(model, text, gemini_key)
        # Contextual calls use the tier model unless the model was chosen or forced
        pinned = model is not ModelId.AUTO
        source_language = request.source_language or detect_source_language(text)
        verbose(_LOG, "model_selected", requested=model.value, selected=selected.value,
                chars=len(text), contextual=contextual)

        # ─────────────────────────────────────────────────────────────────────
        # Stage 4: Fast provider under a time budget
        # ─────────────────────────────────────────────────────────────────────
        output: Optional[TranslationOutput] = None
        provider = used_model = ""
        used_user_key = bool(creds.openai)
        if MODEL_FAMILY[selected] is ProviderFamily.FAST:
            reason: Optional[str] = "credential"
            if gemini_key:
                with timeit("fast_attempt") as t_fast:
                    output, reason = await self._race_fast(TranslationCall(
                        text=text,
                        source_language=source_language,
                        target_language=target,
                        pronunciation=request.pronunciation,
                        model=selected,
                        api_key=gemini_key,
                    ))
                verbose(_LOG, "stage", event="fast_attempt", seconds=round(t_fast.seconds, 4),
                        ok=output is not None)
            if output is None:
                warn(_LOG, "fallback", reason=reason, model=FALLBACK_MODEL.value)
                metrics.record_fallback(reason or "error")
                selected = FALLBACK_MODEL
                pinned = True
            else:
                provider = FAMILY_PROVIDER[ProviderFamily.FAST]
                used_model = selected.value
                used_user_key = bool(creds.google)

        # ─────────────────────────────────────────────────────────────────────
        # Stage 5: Deep provider
        # ─────────────────────────────────────────────────────────────────────
        if output is None:
            if not openai_key:
                raise CredentialError("OpenAI API key not configured", "openai")
            with timeit("deep_attempt") as t_deep:
                output = await self._registry.get(ProviderFamily.DEEP).translate(TranslationCall(
                    text=text,
                    source_language=source_language,
                    target_language=target,
                    pronunciation=request.pronunciation,
                    model=selected,
                    api_key=openai_key,
                    instruction=instruction,
                    quality_level=quality,
                    pin_model=pinned,
                ))
            verbose(_LOG, "stage", event="deep_attempt", seconds=round(t_deep.seconds, 4))
            provider = FAMILY_PROVIDER[ProviderFamily.DEEP]
            used_model = output.model or selected.value

        # ─────────────────────────────────────────────────────────────────────
        # Stage 6: Store, track usage, post-process
        # ─────────────────────────────────────────────────────────────────────
        self._cache.set(key, {
            "translation": output.translation,
            "pronunciation": output.pronunciation,
            "model": used_model,
            "provider": provider,
        })
        if not contextual:
            await self._store_public(text, target, output)
        await self._track_usage(request.user_id, "translation", len(text), provider)

        translation = apply_terminology(output.translation, request.domain, target)
        return TranslationResult(
            translation=translation,
            pronunciation=output.pronunciation if request.pronunciation else "",
            chunks=self._chunks(translation),
            used_model=used_model,
            model_provider=provider,
            used_user_key=used_user_key,
            source="live",
            is_ai_translation=request.use_ai_context,
            quality_level=quality,
        )

    def _correction_result(self, match: CorrectionMatch, quality: int, used_user_key: bool) -> TranslationResult:
        metrics.record_correction(match.kind)
        info(_LOG, "correction_applied", kind=match.kind, score=round(match.score, 3))
        return TranslationResult(
            translation=match.translation,
            pronunciation="",
            chunks=self._chunks(match.translation),
            used_model="feedback",
            model_provider="user-feedback",
            used_user_key=used_user_key,
            source="correction",
            feedback_match_type=match.kind,
            quality_level=quality,
        )

    async def _check_caches(
        self,
        key: str,
        text: str,
        target: str,
        pronunciation: bool,
        contextual: bool,
    ) -> Optional[Tuple[str, Dict[str, str]]]:
        """
        Look up the public cache (plain requests only), then the ephemeral cache.

        A public entry without pronunciation does not satisfy a request that
        asks for one.
        """
        if not contextual:
            hit = await self._collab.public_cache.get(text, target)
            if hit is not None and (hit.pronunciation or not pronunciation):
                metrics.record_cache("hit", tier="public")
                return "public-cache", {
                    "translation": hit.translation,
                    "pronunciation": hit.pronunciation,
                    "model": "cache",
                    "provider": "public-cache",
                }

        value = self._cache.get(key)
        if value is not None:
            metrics.record_cache("hit", tier="memory")
            return "cache", value

        metrics.record_cache("miss")
        return None

    # =========================================================================
    # Public API: speak() / speak_chunk()
    # =========================================================================

    async def _synthesize(
        self,
        text: str,
        request: SpeechRequest,
        route: SpeechRoute,
        default_voice: Optional[str] = None,
    ) -> SpeechResult:
        speech_cfg = self._config.speech
        call = SpeechCall(
            text=text,
            locale=speech_locale(request.language),
            voice=request.voice or default_voice or speech_cfg.openai_voice,
            voice_name=request.voice_name,
            api_key=request.credentials.openai or self._config.providers.openai_api_key,
            speaking_rate=speech_cfg.speaking_rate,
        )
        adapter = self._speech.adapter_for(route)
        verbose(_LOG, "speech_route", route=route.value, locale=call.locale, chars=len(text))

        try:
            with timeit("speech") as t:
                result = await adapter.synthesize(call)
        except GatewayError as e:
            fail(_LOG, "speak_failed", route=route.value, code=e.code, error=e.message)
            metrics.record_speech(route.value.split(">")[-1], "error")
            raise
        except Exception as e:
            fail(_LOG, "speak_failed", route=route.value, error=str(e), error_type=type(e).__name__)
            metrics.record_speech(route.value.split(">")[-1], "error")
            raise GatewayError(f"Speech synthesis failed: {e}", ErrorCode.INTERNAL_ERROR,
                               {"error_type": type(e).__name__})

        if not result.audio:
            raise empty_audio_error(result.provider)

        metrics.record_speech(result.provider, "success", len(result.audio))
        success(_LOG, "speak_done", provider=result.provider, voice=result.voice,
                bytes=len(result.audio), seconds=round(t.seconds, 3))
        if result.provider == "openai":
            await self._track_usage(request.user_id, "tts", len(text), "openai")
        return result

    async def speak(self, request: SpeechRequest) -> SpeechResult:
        """
        Synthesize MP3 audio for ``request.text``.

        Raises:
            ValidationError: Blank or oversized text.
            ProviderError: Every adapter on the route failed or returned no audio.
        """
        text = validate_text(request.text, self._config.limits.max_input_chars)
        route = select_speech_route(text, request.use_google_tts,
                                    self._config.routing.speech_short_max_chars)
        info(_LOG, "speak", chars=len(text), language=request.language, route=route.value)
        return await self._synthesize(text, request, route)

    async def speak_chunk(self, request: SpeechRequest, chunk_index: Any = 0) -> SpeechChunkResult:
        """
        Synthesize one sentence chunk of ``request.text``.

        An index past the last chunk reports completion without synthesis.
        Chunks go to Google (with OpenAI fallback) only when asked for
        explicitly; otherwise to OpenAI.
        """
        text = validate_text(request.text, self._config.limits.max_input_chars)
        idx = validate_chunk_index(chunk_index)
        chunks = self._chunks(text)

        if idx >= len(chunks):
            verbose(_LOG, "speak_chunk_completed", total=len(chunks))
            return SpeechChunkResult(total_chunks=len(chunks), completed=True)

        route = (SpeechRoute.GOOGLE_WITH_FALLBACK if request.use_google_tts is True
                 else SpeechRoute.OPENAI)
        info(_LOG, "speak_chunk", index=idx, total=len(chunks), route=route.value)
        result = await self._synthesize(chunks[idx], request, route, self._config.speech.chunk_voice)
        return SpeechChunkResult(
            total_chunks=len(chunks),
            completed=False,
            chunk_index=idx,
            text=chunks[idx],
            audio=result.audio,
            provider=result.provider,
        )

    # =========================================================================
    # Public API: save_feedback()
    # =========================================================================

    async def save_feedback(
        self,
        user_id: Optional[str],
        original_text: Optional[str],
        original_translation: Optional[str],
        corrected_translation: Optional[str],
        target_language: Optional[str],
    ) -> CorrectionRecord:
        """
        Store a user's correction of a translation.

        Raises:
            AuthRequiredError: No authenticated user.
            ValidationError: A field is missing.
        """
        if not user_id:
            raise AuthRequiredError("Login required to save feedback")

        validate_feedback_fields({
            "originalText": original_text,
            "originalTranslation": original_translation,
            "correctedTranslation": corrected_translation,
            "feedbackTargetLang": target_language,
        })
        validate_text(original_text, self._config.limits.max_input_chars)

        record = await self._collab.corrections.save(CorrectionRecord(
            original_text=original_text,
            target_language=target_language,
            original_translation=original_translation,
            corrected_translation=corrected_translation,
            user_id=user_id,
            created_at=time.time(),
        ))
        info(_LOG, "feedback_saved", target=target_language, chars=len(original_text))
        return record
