"""
Translation provider adapters.

Adapters are looked up by ProviderFamily through AdapterRegistry, which the
gateway builds once at startup:

    registry = build_registry(config)
    adapter = registry.for_model(ModelId.GPT_4O_MINI)   # OpenAIChatAdapter
"""
from __future__ import annotations

from typing import Dict, Mapping

from transvox.core.config import GatewayConfig
from transvox.translation.providers.base import (
    FAMILY_PROVIDER,
    MODEL_ALIASES,
    MODEL_FAMILY,
    BaseTranslationAdapter,
    ModelId,
    ProviderFamily,
    TranslationCall,
    TranslationOutput,
    decode_json_object,
    normalize_fields,
    normalize_model,
)
from transvox.translation.providers.deep import OpenAIChatAdapter
from transvox.translation.providers.fast import GeminiAdapter


class AdapterRegistry:
    """ProviderFamily -> adapter table."""

    def __init__(self, adapters: Mapping[ProviderFamily, BaseTranslationAdapter]):
        missing = [f.value for f in ProviderFamily if f not in adapters]
        if missing:
            raise ValueError(f"No adapter registered for: {', '.join(missing)}")
        self._adapters: Dict[ProviderFamily, BaseTranslationAdapter] = dict(adapters)

    def get(self, family: ProviderFamily) -> BaseTranslationAdapter:
        return self._adapters[family]

    def for_model(self, model: ModelId) -> BaseTranslationAdapter:
        return self._adapters[MODEL_FAMILY[model]]


def build_registry(config: GatewayConfig) -> AdapterRegistry:
    return AdapterRegistry({
        ProviderFamily.FAST: GeminiAdapter(config.providers, config.retry),
        ProviderFamily.DEEP: OpenAIChatAdapter(config.providers, config.retry),
    })


__all__ = [
    "AdapterRegistry",
    "BaseTranslationAdapter",
    "FAMILY_PROVIDER",
    "GeminiAdapter",
    "MODEL_ALIASES",
    "MODEL_FAMILY",
    "ModelId",
    "OpenAIChatAdapter",
    "ProviderFamily",
    "TranslationCall",
    "TranslationOutput",
    "build_registry",
    "decode_json_object",
    "normalize_fields",
    "normalize_model",
]
