"""DID Registry audit subpackage -- tamper-evident mutation history.

Every committed register, update and revoke can be appended to a SHA-256
hash chain (:mod:`~did_registry.audit.chain`) and verified later.
"""
from __future__ import annotations

from did_registry.audit.chain import (
    GENESIS_PREV_HASH,
    HistoryChain,
    HistoryVerificationResult,
    LedgerEvent,
    build_canonical_input,
    compute_hash,
    verify_history,
)

__all__ = [
    "GENESIS_PREV_HASH",
    "HistoryChain",
    "HistoryVerificationResult",
    "LedgerEvent",
    "build_canonical_input",
    "compute_hash",
    "verify_history",
]
