"""
Token Budgets and Quality Profiles.

Two pieces decide how many output tokens a deep-provider call may use:

    estimate_max_tokens(n)  = clamp(3 * n, 500, 2500)
    effective_max_tokens()  = min(profile.max_tokens, estimate_max_tokens(n))

The quality tier sets the ceiling; the estimator tightens it for short
inputs so a one-line request is not provisioned for a page of output.

Quality tiers:
    1  gpt-4o-mini  temperature 0.3  1000 tokens
    2  gpt-4o-mini  temperature 0.1  1200 tokens
    3  gpt-4o       temperature 0.0  1500 tokens  (default)
    4  gpt-4o       temperature 0.0  2000 tokens
    5  gpt-4o       temperature 0.0  2500 tokens
"""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

MIN_TOKENS = 500
MAX_TOKENS = 2500
TOKENS_PER_CHAR = 3
DEFAULT_QUALITY_LEVEL = 3


@dataclass(frozen=True)
class QualityProfile:
    model: str
    temperature: float
    max_tokens: int


QUALITY_PROFILES: Mapping[int, QualityProfile] = MappingProxyType({
    1: QualityProfile(model="gpt-4o-mini", temperature=0.3, max_tokens=1000),
    2: QualityProfile(model="gpt-4o-mini", temperature=0.1, max_tokens=1200),
    3: QualityProfile(model="gpt-4o", temperature=0.0, max_tokens=1500),
    4: QualityProfile(model="gpt-4o", temperature=0.0, max_tokens=2000),
    5: QualityProfile(model="gpt-4o", temperature=0.0, max_tokens=2500),
})

# Cheaper models rank lower; tiers may never step down within a family
MODEL_RANK = {"gpt-4o-mini": 0, "gpt-4o": 1}


def get_quality_profile(level: int) -> QualityProfile:
    """Profile for a tier; unknown tiers use the default tier 3 profile."""
    return QUALITY_PROFILES.get(level, QUALITY_PROFILES[DEFAULT_QUALITY_LEVEL])


def estimate_max_tokens(input_length: int) -> int:
    return min(max(input_length * TOKENS_PER_CHAR, MIN_TOKENS), MAX_TOKENS)


def effective_max_tokens(profile: QualityProfile, input_length: int) -> int:
    return min(profile.max_tokens, estimate_max_tokens(input_length))
