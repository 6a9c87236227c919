"""DID Registry -- signature-gated identity registry.

Binds a human-readable username and an optional KYC attestation hash to
an Ed25519 public key.  Every mutation is authorized by a signature over
a canonical message and a strictly increasing per-identity nonce.

Layers
------
* Core types, errors, config and store interfaces (:mod:`did_registry.core`)
* Canonical messages, authorization and the ledger (:mod:`did_registry.identity`)
* Tamper-evident history (:mod:`did_registry.audit`)
* JSON / HTTP binding (:mod:`did_registry.wire`)
"""
from __future__ import annotations

__version__ = "1.0.0a1"

# ---------------------------------------------------------------------------
# Audit history
# ---------------------------------------------------------------------------
from did_registry.audit import HistoryChain, LedgerEvent, verify_history

# ---------------------------------------------------------------------------
# Core types, errors, config, interfaces
# ---------------------------------------------------------------------------
from did_registry.core.config import RegistryConfig
from did_registry.core.errors import (
    AlreadyRevoked,
    AuthorizationError,
    BadNonce,
    BadSignature,
    DuplicateIdentity,
    InvalidField,
    InvalidKey,
    MalformedMessage,
    NotFound,
    RegistryError,
    RevokedIdentity,
    RouteNotFound,
    StateError,
    TransportError,
    UnsupportedMediaType,
    UsernameTaken,
    ValidationError,
    error_from_code,
)
from did_registry.core.interfaces import (
    EventStore,
    InMemoryEventStore,
    InMemoryRecordStore,
    RecordStore,
)
from did_registry.core.types import (
    ABSENT,
    Action,
    IdentityKey,
    LifecycleState,
    OptionalText,
    RegisterParams,
    RegistrationRecord,
    RejectionReason,
    RevokeParams,
    UpdateParams,
    identity_key_from_bytes,
    identity_key_to_bytes,
    is_present,
)

# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------
from did_registry.identity import (
    AuthorizationVerifier,
    Authorized,
    IdentityLedger,
    Rejected,
    RequestSigner,
    build_canonical_message,
)

# ---------------------------------------------------------------------------
# Wire
# ---------------------------------------------------------------------------
from did_registry.wire import RegistryClient, create_http_handler

__all__ = [
    "__version__",
    # Config
    "RegistryConfig",
    # Errors
    "RegistryError",
    "ValidationError",
    "StateError",
    "AuthorizationError",
    "TransportError",
    "InvalidKey",
    "InvalidField",
    "UsernameTaken",
    "DuplicateIdentity",
    "NotFound",
    "RevokedIdentity",
    "AlreadyRevoked",
    "BadNonce",
    "BadSignature",
    "MalformedMessage",
    "UnsupportedMediaType",
    "RouteNotFound",
    "error_from_code",
    # Types
    "ABSENT",
    "Action",
    "IdentityKey",
    "LifecycleState",
    "OptionalText",
    "RegisterParams",
    "UpdateParams",
    "RevokeParams",
    "RegistrationRecord",
    "RejectionReason",
    "identity_key_from_bytes",
    "identity_key_to_bytes",
    "is_present",
    # Interfaces
    "RecordStore",
    "EventStore",
    "InMemoryRecordStore",
    "InMemoryEventStore",
    # Identity
    "AuthorizationVerifier",
    "Authorized",
    "Rejected",
    "IdentityLedger",
    "RequestSigner",
    "build_canonical_message",
    # Audit
    "HistoryChain",
    "LedgerEvent",
    "verify_history",
    # Wire
    "RegistryClient",
    "create_http_handler",
]
