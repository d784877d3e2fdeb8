"""
Configuration Management for transvox.

This module provides centralized configuration handling with:
    - Default values (Defaults class)
    - Dataclass-based configuration objects
    - YAML file loading with environment variable overrides
    - Validation with meaningful error messages

Configuration Hierarchy (highest priority first):
    1. Environment variables (OPENAI_API_KEY, TRANSVOX_ENV, etc.)
    2. YAML config file (config/settings.yaml)
    3. Defaults class values

Example settings.yaml:
    limits:
      max_input_chars: 6000

    routing:
      fast_timeout_s: 5.0
      fast_max_chars: 100

    cache:
      ttl_seconds: 3600

    logging:
      level: 2  # NORMAL
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional
import os
import yaml


class ConfigValidationError(Exception):
    """
    Raised when configuration validation fails.

    This exception is thrown when a configuration value is outside
    acceptable bounds or of the wrong type.
    """
    pass


class Defaults:
    """
    Centralized default configuration values.

    Sections:
        - Limits: Request size bounds
        - Cache: In-process TTL cache
        - Retry: Backoff parameters per operation kind
        - Routing: Model selection and the fast-provider timeout
        - Chunking: Sentence chunk size for progressive playback
        - Corrections: Similar-correction matching policy
        - Speech: Speech synthesis defaults
        - Usage: Per-character cost used for the usage ledger
        - Providers: Endpoints and request timeouts
        - Logging: Log level and formatting
    """

    # ─────────────────────────────────────────────────────────────────────────
    # Limits
    # ─────────────────────────────────────────────────────────────────────────
    MAX_INPUT_CHARS = 6000              # Longest accepted input text
    DEFAULT_QUALITY_LEVEL = 3           # Quality tier when none is given

    # ─────────────────────────────────────────────────────────────────────────
    # Cache Settings
    # ─────────────────────────────────────────────────────────────────────────
    CACHE_TTL_SECONDS = 3600            # Entry lifetime (1 hour)
    CACHE_MAX_ITEMS = 1024              # LRU capacity

    # ─────────────────────────────────────────────────────────────────────────
    # Retry
    # ─────────────────────────────────────────────────────────────────────────
    RETRY_TRANSLATION_ATTEMPTS = 3
    RETRY_TRANSLATION_BASE_DELAY_S = 0.3
    RETRY_SPEECH_ATTEMPTS = 3
    RETRY_SPEECH_BASE_DELAY_S = 0.4
    RETRY_JITTER_S = 0.2                # Upper bound of uniform jitter

    # ─────────────────────────────────────────────────────────────────────────
    # Routing
    # ─────────────────────────────────────────────────────────────────────────
    ROUTING_FAST_TIMEOUT_S = 5.0        # Budget for the fast provider
    ROUTING_FAST_MAX_CHARS = 100        # auto: below this prefer fast family
    ROUTING_CHEAP_MAX_CHARS = 500       # auto: below this prefer cheap model
    ROUTING_SPEECH_SHORT_MAX_CHARS = 50 # auto speech: below this prefer Google

    # ─────────────────────────────────────────────────────────────────────────
    # Chunking
    # ─────────────────────────────────────────────────────────────────────────
    CHUNKING_MAX_CHARS = 200

    # ─────────────────────────────────────────────────────────────────────────
    # Corrections
    # ─────────────────────────────────────────────────────────────────────────
    CORRECTIONS_SIMILARITY_THRESHOLD = 0.5
    CORRECTIONS_RECENT_LIMIT = 50

    # ─────────────────────────────────────────────────────────────────────────
    # Speech
    # ─────────────────────────────────────────────────────────────────────────
    SPEECH_MAX_CHARS = 4000             # OpenAI speech input limit
    SPEECH_OPENAI_MODEL = "tts-1-hd"
    SPEECH_OPENAI_VOICE = "nova"
    SPEECH_CHUNK_VOICE = "alloy"
    SPEECH_SPEAKING_RATE = 1.0
    SPEECH_VOLUME_GAIN_DB = 10.0

    # ─────────────────────────────────────────────────────────────────────────
    # Usage
    # ─────────────────────────────────────────────────────────────────────────
    USAGE_COST_PER_CHAR_GOOGLE = 0.000005
    USAGE_COST_PER_CHAR_OPENAI = 0.000015

    # ─────────────────────────────────────────────────────────────────────────
    # Providers
    # ─────────────────────────────────────────────────────────────────────────
    GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
    PROVIDER_HTTP_TIMEOUT_S = 30.0

    # ─────────────────────────────────────────────────────────────────────────
    # Logging
    # ─────────────────────────────────────────────────────────────────────────
    LOGGING_TEXT_PREVIEW_CHARS = 80
    LOGGING_LEVEL = 2                   # 1=MINIMAL, 2=NORMAL, 3=VERBOSE, 4=DEBUG

    ENVIRONMENT = "production"


@dataclass
class LimitsConfig:
    """Request size bounds applied before any provider call."""
    max_input_chars: int = Defaults.MAX_INPUT_CHARS
    default_quality_level: int = Defaults.DEFAULT_QUALITY_LEVEL


@dataclass
class CacheConfig:
    """
    In-process cache configuration.

    The cache de-duplicates identical translation requests within the TTL.
    """
    ttl_seconds: int = Defaults.CACHE_TTL_SECONDS
    max_items: int = Defaults.CACHE_MAX_ITEMS


@dataclass
class RetryConfig:
    """Backoff parameters for translation and speech provider calls."""
    translation_attempts: int = Defaults.RETRY_TRANSLATION_ATTEMPTS
    translation_base_delay_s: float = Defaults.RETRY_TRANSLATION_BASE_DELAY_S
    speech_attempts: int = Defaults.RETRY_SPEECH_ATTEMPTS
    speech_base_delay_s: float = Defaults.RETRY_SPEECH_BASE_DELAY_S
    jitter_s: float = Defaults.RETRY_JITTER_S


@dataclass
class RoutingConfig:
    """
    Model selection thresholds.

    Short inputs go to the fast provider family when a credential exists,
    medium inputs to the cheap deep model, long inputs to the premium one.
    """
    fast_timeout_s: float = Defaults.ROUTING_FAST_TIMEOUT_S
    fast_max_chars: int = Defaults.ROUTING_FAST_MAX_CHARS
    cheap_max_chars: int = Defaults.ROUTING_CHEAP_MAX_CHARS
    speech_short_max_chars: int = Defaults.ROUTING_SPEECH_SHORT_MAX_CHARS


@dataclass
class ChunkingConfig:
    max_chars: int = Defaults.CHUNKING_MAX_CHARS


@dataclass
class CorrectionsConfig:
    """Policy for accepting a similar (non-exact) user correction."""
    similarity_threshold: float = Defaults.CORRECTIONS_SIMILARITY_THRESHOLD
    recent_limit: int = Defaults.CORRECTIONS_RECENT_LIMIT


@dataclass
class SpeechConfig:
    max_chars: int = Defaults.SPEECH_MAX_CHARS
    openai_model: str = Defaults.SPEECH_OPENAI_MODEL
    openai_voice: str = Defaults.SPEECH_OPENAI_VOICE
    chunk_voice: str = Defaults.SPEECH_CHUNK_VOICE
    speaking_rate: float = Defaults.SPEECH_SPEAKING_RATE
    volume_gain_db: float = Defaults.SPEECH_VOLUME_GAIN_DB


@dataclass
class UsageConfig:
    """Per-character cost by provider, reported to the usage ledger."""
    cost_per_char: Dict[str, float] = field(default_factory=lambda: {
        "google": Defaults.USAGE_COST_PER_CHAR_GOOGLE,
        "openai": Defaults.USAGE_COST_PER_CHAR_OPENAI,
    })

    def cost_for(self, provider: str, chars: int) -> float:
        rate = self.cost_per_char.get(provider, Defaults.USAGE_COST_PER_CHAR_OPENAI)
        return chars * rate


@dataclass
class ProvidersConfig:
    """
    System-wide provider credentials and transport settings.

    Credentials supplied by a caller take precedence over these at
    request time.
    """
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    gemini_api_key: Optional[str] = None
    gemini_base_url: str = Defaults.GEMINI_BASE_URL
    google_service_account_json: Optional[str] = None
    http_timeout_s: float = Defaults.PROVIDER_HTTP_TIMEOUT_S


@dataclass
class LoggingConfig:
    """
    Logging configuration.

    Log levels:
        1 = MINIMAL: Startup, shutdown, critical errors only
        2 = NORMAL: Request lifecycle, cache status (default)
        3 = VERBOSE: Per-stage timing, detailed flow
        4 = DEBUG: Internal state, full tracing
    """
    text_preview_chars: int = Defaults.LOGGING_TEXT_PREVIEW_CHARS
    level: int = Defaults.LOGGING_LEVEL


@dataclass
class GatewayConfig:
    """
    Validated configuration for GatewayService.

    Usage:
        settings = load_settings("config/settings.yaml")
        config = GatewayConfig.from_settings(settings)
        print(config.routing.fast_timeout_s)
    """
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    routing: RoutingConfig = field(default_factory=RoutingConfig)
    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)
    corrections: CorrectionsConfig = field(default_factory=CorrectionsConfig)
    speech: SpeechConfig = field(default_factory=SpeechConfig)
    usage: UsageConfig = field(default_factory=UsageConfig)
    providers: ProvidersConfig = field(default_factory=ProvidersConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    environment: str = Defaults.ENVIRONMENT

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_settings(cls, settings: "Settings") -> "GatewayConfig":
        """
        Create GatewayConfig from Settings with validation.

        Args:
            settings: Raw Settings object loaded from YAML.

        Returns:
            Validated GatewayConfig instance.

        Raises:
            ConfigValidationError: If any value fails validation.
        """
        raw = settings.raw

        # ─────────────────────────────────────────────────────────────────────
        # Limits
        # ─────────────────────────────────────────────────────────────────────
        limits_raw = raw.get("limits", {})
        limits = LimitsConfig(
            max_input_chars=int(limits_raw.get("max_input_chars", Defaults.MAX_INPUT_CHARS)),
            default_quality_level=int(limits_raw.get("default_quality_level", Defaults.DEFAULT_QUALITY_LEVEL)),
        )
        cls._validate_positive("limits.max_input_chars", limits.max_input_chars)
        cls._validate_range("limits.default_quality_level", limits.default_quality_level, 1, 5)

        # ─────────────────────────────────────────────────────────────────────
        # Cache
        # ─────────────────────────────────────────────────────────────────────
        cache_raw = raw.get("cache", {})
        cache = CacheConfig(
            ttl_seconds=int(cache_raw.get("ttl_seconds", Defaults.CACHE_TTL_SECONDS)),
            max_items=int(cache_raw.get("max_items", Defaults.CACHE_MAX_ITEMS)),
        )
        cls._validate_positive("cache.ttl_seconds", cache.ttl_seconds)
        cls._validate_positive("cache.max_items", cache.max_items)

        # ─────────────────────────────────────────────────────────────────────
        # Retry
        # ─────────────────────────────────────────────────────────────────────
        retry_raw = raw.get("retry", {})
        retry = RetryConfig(
            translation_attempts=int(retry_raw.get("translation_attempts", Defaults.RETRY_TRANSLATION_ATTEMPTS)),
            translation_base_delay_s=float(retry_raw.get("translation_base_delay_s", Defaults.RETRY_TRANSLATION_BASE_DELAY_S)),
            speech_attempts=int(retry_raw.get("speech_attempts", Defaults.RETRY_SPEECH_ATTEMPTS)),
            speech_base_delay_s=float(retry_raw.get("speech_base_delay_s", Defaults.RETRY_SPEECH_BASE_DELAY_S)),
            jitter_s=float(retry_raw.get("jitter_s", Defaults.RETRY_JITTER_S)),
        )
        cls._validate_positive("retry.translation_attempts", retry.translation_attempts)
        cls._validate_non_negative("retry.translation_base_delay_s", retry.translation_base_delay_s)
        cls._validate_positive("retry.speech_attempts", retry.speech_attempts)
        cls._validate_non_negative("retry.speech_base_delay_s", retry.speech_base_delay_s)
        cls._validate_non_negative("retry.jitter_s", retry.jitter_s)

        # ─────────────────────────────────────────────────────────────────────
        # Routing
        # ─────────────────────────────────────────────────────────────────────
        routing_raw = raw.get("routing", {})
        routing = RoutingConfig(
            fast_timeout_s=float(routing_raw.get("fast_timeout_s", Defaults.ROUTING_FAST_TIMEOUT_S)),
            fast_max_chars=int(routing_raw.get("fast_max_chars", Defaults.ROUTING_FAST_MAX_CHARS)),
            cheap_max_chars=int(routing_raw.get("cheap_max_chars", Defaults.ROUTING_CHEAP_MAX_CHARS)),
            speech_short_max_chars=int(routing_raw.get("speech_short_max_chars", Defaults.ROUTING_SPEECH_SHORT_MAX_CHARS)),
        )
        cls._validate_positive("routing.fast_timeout_s", routing.fast_timeout_s)
        cls._validate_non_negative("routing.fast_max_chars", routing.fast_max_chars)
        cls._validate_non_negative("routing.cheap_max_chars", routing.cheap_max_chars)
        cls._validate_non_negative("routing.speech_short_max_chars", routing.speech_short_max_chars)

        # ─────────────────────────────────────────────────────────────────────
        # Chunking and corrections
        # ─────────────────────────────────────────────────────────────────────
        chunking_raw = raw.get("chunking", {})
        chunking = ChunkingConfig(
            max_chars=int(chunking_raw.get("max_chars", Defaults.CHUNKING_MAX_CHARS)),
        )
        cls._validate_positive("chunking.max_chars", chunking.max_chars)

        corrections_raw = raw.get("corrections", {})
        corrections = CorrectionsConfig(
            similarity_threshold=float(corrections_raw.get(
                "similarity_threshold", Defaults.CORRECTIONS_SIMILARITY_THRESHOLD)),
            recent_limit=int(corrections_raw.get("recent_limit", Defaults.CORRECTIONS_RECENT_LIMIT)),
        )
        cls._validate_range("corrections.similarity_threshold", corrections.similarity_threshold, 0.0, 1.0)
        cls._validate_positive("corrections.recent_limit", corrections.recent_limit)

        # ─────────────────────────────────────────────────────────────────────
        # Speech
        # ─────────────────────────────────────────────────────────────────────
        speech_raw = raw.get("speech", {})
        speech = SpeechConfig(
            max_chars=int(speech_raw.get("max_chars", Defaults.SPEECH_MAX_CHARS)),
            openai_model=str(speech_raw.get("openai_model", Defaults.SPEECH_OPENAI_MODEL)),
            openai_voice=str(speech_raw.get("openai_voice", Defaults.SPEECH_OPENAI_VOICE)),
            chunk_voice=str(speech_raw.get("chunk_voice", Defaults.SPEECH_CHUNK_VOICE)),
            speaking_rate=float(speech_raw.get("speaking_rate", Defaults.SPEECH_SPEAKING_RATE)),
            volume_gain_db=float(speech_raw.get("volume_gain_db", Defaults.SPEECH_VOLUME_GAIN_DB)),
        )
        cls._validate_positive("speech.max_chars", speech.max_chars)
        cls._validate_range("speech.speaking_rate", speech.speaking_rate, 0.25, 4.0)

        # ─────────────────────────────────────────────────────────────────────
        # Usage costs
        # ─────────────────────────────────────────────────────────────────────
        usage = UsageConfig()
        for provider, rate in (raw.get("usage", {}).get("cost_per_char", {}) or {}).items():
            usage.cost_per_char[str(provider)] = float(rate)
            cls._validate_non_negative(f"usage.cost_per_char.{provider}", float(rate))

        # ─────────────────────────────────────────────────────────────────────
        # Providers (credentials usually arrive through the environment)
        # ─────────────────────────────────────────────────────────────────────
        providers_raw = raw.get("providers", {})
        providers = ProvidersConfig(
            openai_api_key=providers_raw.get("openai_api_key") or None,
            openai_base_url=providers_raw.get("openai_base_url") or None,
            gemini_api_key=providers_raw.get("gemini_api_key") or None,
            gemini_base_url=str(providers_raw.get("gemini_base_url", Defaults.GEMINI_BASE_URL)),
            google_service_account_json=providers_raw.get("google_service_account_json") or None,
            http_timeout_s=float(providers_raw.get("http_timeout_s", Defaults.PROVIDER_HTTP_TIMEOUT_S)),
        )
        cls._validate_positive("providers.http_timeout_s", providers.http_timeout_s)

        # ─────────────────────────────────────────────────────────────────────
        # Logging
        # ─────────────────────────────────────────────────────────────────────
        logging_raw = raw.get("logging", {})
        log_level_raw = logging_raw.get("level", Defaults.LOGGING_LEVEL)

        # Handle string log levels (e.g., "INFO", "DEBUG")
        if isinstance(log_level_raw, str):
            level_map = {
                "MINIMAL": 1, "1": 1,
                "NORMAL": 2, "INFO": 2, "2": 2,
                "VERBOSE": 3, "3": 3,
                "DEBUG": 4, "TRACE": 4, "4": 4,
            }
            log_level = level_map.get(log_level_raw.upper(), Defaults.LOGGING_LEVEL)
        else:
            log_level = int(log_level_raw)

        logging_cfg = LoggingConfig(
            text_preview_chars=int(logging_raw.get("text_preview_chars", Defaults.LOGGING_TEXT_PREVIEW_CHARS)),
            level=log_level,
        )
        cls._validate_non_negative("logging.text_preview_chars", logging_cfg.text_preview_chars)
        cls._validate_range("logging.level", logging_cfg.level, 1, 4)

        return cls(
            limits=limits,
            cache=cache,
            retry=retry,
            routing=routing,
            chunking=chunking,
            corrections=corrections,
            speech=speech,
            usage=usage,
            providers=providers,
            logging=logging_cfg,
            environment=str(raw.get("environment", Defaults.ENVIRONMENT)),
        )

    @staticmethod
    def _validate_positive(name: str, value: int | float) -> None:
        """Validate that a value is positive (> 0)."""
        if value <= 0:
            raise ConfigValidationError(f"{name} must be positive, got {value}")

    @staticmethod
    def _validate_non_negative(name: str, value: int | float) -> None:
        """Validate that a value is non-negative (>= 0)."""
        if value < 0:
            raise ConfigValidationError(f"{name} must be non-negative, got {value}")

    @staticmethod
    def _validate_range(name: str, value: int | float, min_val: int | float, max_val: int | float) -> None:
        """Validate that a value is within a range [min_val, max_val]."""
        if not (min_val <= value <= max_val):
            raise ConfigValidationError(f"{name} must be between {min_val} and {max_val}, got {value}")


@dataclass(frozen=True)
class Settings:
    """
    Immutable settings container loaded from YAML.

    This is the raw settings object before validation. Use
    get_gateway_config() to get a validated GatewayConfig.
    """
    raw: Dict[str, Any]

    @property
    def environment(self) -> str:
        return str(self.raw.get("environment", Defaults.ENVIRONMENT))

    @property
    def auth_tokens(self) -> Dict[str, str]:
        """Static bearer token -> user id map used by the in-memory verifier."""
        return dict(self.raw.get("auth", {}).get("tokens", {}) or {})

    @property
    def user_api_keys(self) -> Dict[str, Dict[str, str]]:
        """Per-user provider credentials seeded into the in-memory store."""
        return dict(self.raw.get("auth", {}).get("user_api_keys", {}) or {})

    def get_gateway_config(self) -> GatewayConfig:
        """
        Get validated GatewayConfig from these settings.

        Raises:
            ConfigValidationError: If validation fails.
        """
        return GatewayConfig.from_settings(self)


# Environment variable -> (section, key) overrides applied by load_settings()
_ENV_OVERRIDES = {
    "OPENAI_API_KEY": ("providers", "openai_api_key"),
    "OPENAI_BASE_URL": ("providers", "openai_base_url"),
    "GEMINI_API_KEY": ("providers", "gemini_api_key"),
    "GOOGLE_SERVICE_ACCOUNT_JSON": ("providers", "google_service_account_json"),
}


def apply_env_overrides(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply environment variable overrides to a raw settings dict in place.

    Environment variable overrides:
        - OPENAI_API_KEY, OPENAI_BASE_URL, GEMINI_API_KEY,
          GOOGLE_SERVICE_ACCOUNT_JSON: provider credentials
        - TRANSVOX_ENV: deployment environment ("production" hides stack traces)
    """
    for env_name, (section, key) in _ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            raw.setdefault(section, {})[key] = value

    env = os.getenv("TRANSVOX_ENV")
    if env:
        raw["environment"] = env
    return raw


def load_settings(path: str = "config/settings.yaml") -> Settings:
    """
    Load settings from a YAML configuration file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Settings object with loaded configuration.

    Raises:
        FileNotFoundError: If the settings file doesn't exist.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"settings file not found: {p.resolve()}")

    with p.open("r", encoding="utf-8") as f:
        raw: Dict[str, Any] = yaml.safe_load(f) or {}

    return Settings(raw=apply_env_overrides(raw))
