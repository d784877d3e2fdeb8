"""
Collaborator Interfaces.

Every collaborator is async and keyed by plain values; none of them holds
orchestration logic. Matching of *similar* corrections is done by the
gateway (translation/corrections.py) on top of CorrectionStore.recent().
"""
from __future__ import annotations

import hashlib
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional


def content_hash(text: str, target_language: str) -> str:
    """sha256 of ``"{text}:{target_language}"``, the key shared by both stores."""
    return hashlib.sha256(f"{text}:{target_language}".encode("utf-8")).hexdigest()


@dataclass
class TokenCheck:
    success: bool
    user_id: Optional[str] = None


@dataclass
class KeyLookup:
    success: bool
    api_key: Optional[str] = None


@dataclass
class UsageRecord:
    user_id: str
    kind: str          # "translation" or "tts"
    count: int         # characters
    cost: float
    provider: str
    created_at: float = field(default_factory=time.time)


@dataclass
class CachedTranslation:
    translation: str
    pronunciation: str = ""


@dataclass
class CorrectionRecord:
    """
    A human correction of an earlier translation.

    Attributes:
        original_text: Source text that was translated.
        target_language: Target language name.
        original_translation: What the provider returned.
        corrected_translation: The user's replacement.
        user_id: Owner of the correction.
        created_at: Last update time (recency ordering).
    """
    original_text: str
    target_language: str
    original_translation: str
    corrected_translation: str
    user_id: Optional[str] = None
    created_at: float = field(default_factory=time.time)

    @property
    def content_hash(self) -> str:
        return content_hash(self.original_text, self.target_language)


class AuthVerifier(ABC):
    @abstractmethod
    async def verify_token(self, token: str) -> TokenCheck:
        """Resolve a bearer token to a user id."""


class CredentialStore(ABC):
    @abstractmethod
    async def get_user_api_key(self, user_id: str, provider: str) -> KeyLookup:
        """Return the user's key for ``provider`` ("openai" or "google")."""


class UsageLedger(ABC):
    @abstractmethod
    async def track_usage(self, user_id: str, kind: str, count: int, cost: float, provider: str) -> None:
        """Append a usage record; nothing is read back by the gateway."""


class PublicCache(ABC):
    """Cross-user translation cache keyed by content_hash(text, target)."""

    @abstractmethod
    async def get(self, text: str, target_language: str) -> Optional[CachedTranslation]:
        ...

    @abstractmethod
    async def set(self, text: str, target_language: str, translation: str, pronunciation: str) -> None:
        ...


class CorrectionStore(ABC):
    """Per-user corrections keyed by content_hash(text, target) and user."""

    @abstractmethod
    async def save(self, record: CorrectionRecord) -> CorrectionRecord:
        """Insert or replace the record with the same hash and user."""

    @abstractmethod
    async def find_exact(
        self, text: str, target_language: str, user_id: Optional[str]
    ) -> Optional[CorrectionRecord]:
        ...

    @abstractmethod
    async def recent(
        self, target_language: str, user_id: Optional[str], limit: int
    ) -> List[CorrectionRecord]:
        """Most recent records first."""


@dataclass
class Collaborators:
    """Bundle handed to the gateway service."""
    auth: AuthVerifier
    credentials: CredentialStore
    usage: UsageLedger
    public_cache: PublicCache
    corrections: CorrectionStore
