"""
In-memory collaborator implementations.

These back local runs, the CLI and the test suite. State lives for the life
of the process; production deployments replace them with database-backed
implementations of the same interfaces.
"""
from __future__ import annotations

import threading
import time
from typing import Dict, List, Mapping, Optional, Tuple

from transvox.collaborators.base import (
    AuthVerifier,
    CachedTranslation,
    Collaborators,
    CorrectionRecord,
    CorrectionStore,
    CredentialStore,
    KeyLookup,
    PublicCache,
    TokenCheck,
    UsageLedger,
    UsageRecord,
    content_hash,
)


class StaticTokenVerifier(AuthVerifier):
    """Accepts a fixed set of bearer tokens, each mapped to a user id."""

    def __init__(self, tokens: Optional[Mapping[str, str]] = None):
        self._tokens = dict(tokens or {})

    async def verify_token(self, token: str) -> TokenCheck:
        user_id = self._tokens.get(token)
        return TokenCheck(success=user_id is not None, user_id=user_id)


class InMemoryCredentialStore(CredentialStore):
    """
    Per-user provider keys.

    ``keys`` maps user id -> {provider -> api key}.
    """

    def __init__(self, keys: Optional[Mapping[str, Mapping[str, str]]] = None):
        self._keys: Dict[str, Dict[str, str]] = {u: dict(k) for u, k in (keys or {}).items()}

    def put(self, user_id: str, provider: str, api_key: str) -> None:
        self._keys.setdefault(user_id, {})[provider] = api_key

    async def get_user_api_key(self, user_id: str, provider: str) -> KeyLookup:
        key = self._keys.get(user_id, {}).get(provider)
        return KeyLookup(success=key is not None, api_key=key)


class InMemoryUsageLedger(UsageLedger):
    def __init__(self):
        self.records: List[UsageRecord] = []
        self._lock = threading.Lock()

    async def track_usage(self, user_id: str, kind: str, count: int, cost: float, provider: str) -> None:
        with self._lock:
            self.records.append(UsageRecord(user_id, kind, count, cost, provider))


class InMemoryPublicCache(PublicCache):
    def __init__(self):
        self._d: Dict[str, CachedTranslation] = {}
        self._lock = threading.Lock()

    async def get(self, text: str, target_language: str) -> Optional[CachedTranslation]:
        with self._lock:
            return self._d.get(content_hash(text, target_language))

    async def set(self, text: str, target_language: str, translation: str, pronunciation: str) -> None:
        with self._lock:
            self._d[content_hash(text, target_language)] = CachedTranslation(translation, pronunciation)

    def __len__(self) -> int:
        with self._lock:
            return len(self._d)


class InMemoryCorrectionStore(CorrectionStore):
    """Corrections keyed by (content hash, user id); saves upsert."""

    def __init__(self):
        self._d: Dict[Tuple[str, Optional[str]], CorrectionRecord] = {}
        self._lock = threading.Lock()

    async def save(self, record: CorrectionRecord) -> CorrectionRecord:
        record.created_at = time.time()
        with self._lock:
            self._d[(record.content_hash, record.user_id)] = record
        return record

    async def find_exact(
        self, text: str, target_language: str, user_id: Optional[str]
    ) -> Optional[CorrectionRecord]:
        h = content_hash(text, target_language)
        with self._lock:
            if user_id is not None:
                return self._d.get((h, user_id))
            matches = [r for (rh, _), r in self._d.items() if rh == h]
        return max(matches, key=lambda r: r.created_at) if matches else None

    async def recent(
        self, target_language: str, user_id: Optional[str], limit: int
    ) -> List[CorrectionRecord]:
        with self._lock:
            records = [
                r for r in self._d.values()
                if r.target_language == target_language
                and (user_id is None or r.user_id == user_id)
            ]
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records[:limit]

    def __len__(self) -> int:
        with self._lock:
            return len(self._d)


def build_in_memory_collaborators(
    tokens: Optional[Mapping[str, str]] = None,
    user_api_keys: Optional[Mapping[str, Mapping[str, str]]] = None,
) -> Collaborators:
    return Collaborators(
        auth=StaticTokenVerifier(tokens),
        credentials=InMemoryCredentialStore(user_api_keys),
        usage=InMemoryUsageLedger(),
        public_cache=InMemoryPublicCache(),
        corrections=InMemoryCorrectionStore(),
    )
