"""
External collaborators consumed by the gateway.

Identity verification, per-user credential storage, the usage ledger, the
cross-user translation cache and the correction store are owned by other
systems. This package defines their interfaces (base.py) and in-memory
implementations (memory.py) used for local runs and tests.
"""
from .base import (
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
from .memory import (
    InMemoryCorrectionStore,
    InMemoryCredentialStore,
    InMemoryPublicCache,
    InMemoryUsageLedger,
    StaticTokenVerifier,
    build_in_memory_collaborators,
)

__all__ = [
    "AuthVerifier",
    "CachedTranslation",
    "Collaborators",
    "CorrectionRecord",
    "CorrectionStore",
    "CredentialStore",
    "KeyLookup",
    "PublicCache",
    "TokenCheck",
    "UsageLedger",
    "UsageRecord",
    "content_hash",
    "InMemoryCorrectionStore",
    "InMemoryCredentialStore",
    "InMemoryPublicCache",
    "InMemoryUsageLedger",
    "StaticTokenVerifier",
    "build_in_memory_collaborators",
]
