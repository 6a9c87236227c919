"""Shared fixtures for the DID Registry test suite."""
from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from did_registry.audit.chain import HistoryChain
from did_registry.core.interfaces import InMemoryEventStore, InMemoryRecordStore
from did_registry.core.types import (
    ABSENT,
    Action,
    OptionalText,
    RegisterParams,
    RegistrationRecord,
    RevokeParams,
    UpdateParams,
)
from did_registry.identity.ledger import IdentityLedger
from did_registry.identity.signing import RequestSigner

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


class FixedClock:
    """Deterministic clock that advances one second per call."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + timedelta(seconds=1)
        return current


@pytest.fixture()
def alice() -> RequestSigner:
    """Signer K1, from a fixed seed."""
    return RequestSigner.from_seed(bytes([1]) * 32)


@pytest.fixture()
def bob() -> RequestSigner:
    """Signer K2, from a fixed seed."""
    return RequestSigner.from_seed(bytes([2]) * 32)


@pytest.fixture()
def store() -> InMemoryRecordStore:
    """A fresh in-memory record store for each test."""
    return InMemoryRecordStore()


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture()
def history() -> HistoryChain:
    """A history chain over a fresh in-memory event store."""
    return HistoryChain(InMemoryEventStore())


@pytest.fixture()
def ledger(
    store: InMemoryRecordStore, clock: FixedClock, history: HistoryChain
) -> IdentityLedger:
    """A ledger with default limits, a fixed clock and history enabled."""
    return IdentityLedger(store, clock=clock, history=history)


# ======================================================================
# Signed-call helpers
# ======================================================================

async def register(
    ledger: IdentityLedger,
    signer: RequestSigner,
    username: str = "alice",
    kyc_hash: OptionalText = ABSENT,
    *,
    nonce: int = 1,
) -> RegistrationRecord:
    """Sign and submit a register request."""
    params = RegisterParams(username=username, kyc_hash=kyc_hash)
    signature = signer.sign(Action.REGISTER, params, nonce)
    return await ledger.register(signer.identity_key, username, kyc_hash, nonce, signature)


async def update(
    ledger: IdentityLedger,
    signer: RequestSigner,
    new_username: OptionalText = ABSENT,
    new_kyc_hash: OptionalText = ABSENT,
    *,
    nonce: int,
) -> RegistrationRecord:
    """Sign and submit an update request."""
    params = UpdateParams(new_username=new_username, new_kyc_hash=new_kyc_hash)
    signature = signer.sign(Action.UPDATE, params, nonce)
    return await ledger.update(
        signer.identity_key, new_username, new_kyc_hash, nonce, signature
    )


async def revoke(
    ledger: IdentityLedger, signer: RequestSigner, *, nonce: int
) -> RegistrationRecord:
    """Sign and submit a revoke request."""
    signature = signer.sign(Action.REVOKE, RevokeParams(), nonce)
    return await ledger.revoke(signer.identity_key, nonce, signature)
