"""DID Registry identity subpackage -- canonical messages, authorization and the ledger.

This subpackage provides:

* **Canonical messages** -- the exact bytes each action signs
  (:mod:`~did_registry.identity.canonical`).
* **Authorization** -- nonce and Ed25519 signature checks
  (:mod:`~did_registry.identity.verifier`).
* **Ledger** -- the register / update / revoke state machine and its
  queries (:mod:`~did_registry.identity.ledger`).
* **Signing** -- client-side request construction
  (:mod:`~did_registry.identity.signing`).
"""
from __future__ import annotations

from did_registry.identity.canonical import (
    FIELD_LABELS,
    build_canonical_message,
    message_digest,
)
from did_registry.identity.ledger import IdentityLedger
from did_registry.identity.signing import RequestSigner, public_key_to_identity_key
from did_registry.identity.verifier import (
    AuthorizationResult,
    AuthorizationVerifier,
    Authorized,
    Rejected,
)

__all__ = [
    # Canonical messages
    "FIELD_LABELS",
    "build_canonical_message",
    "message_digest",
    # Authorization
    "AuthorizationResult",
    "AuthorizationVerifier",
    "Authorized",
    "Rejected",
    # Ledger
    "IdentityLedger",
    # Signing
    "RequestSigner",
    "public_key_to_identity_key",
]
