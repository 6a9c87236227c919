"""SHA-256 hash chain over committed ledger mutations.

Registration records are retained forever for audit purposes, but a
record only shows its latest state.  The history chain keeps one event per
committed mutation, each linking to the hash of the previous event, so the
full sequence of registrations, updates and revocations is tamper-evident.

The hash is calculated over a canonical input string::

    <sequence>\\n<timestamp>\\n<action>\\n<owner>\\n<nonce>\\n<username>\\n<kyc_hash>\\n<active>\\n<prev_hash>

where ``kyc_hash`` is rendered as ``-`` when absent and ``=<value>``
otherwise, so an empty hash and an absent one hash differently.
"""
from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from did_registry.core.interfaces import EventStore
from did_registry.core.types import (
    Action,
    IdentityKey,
    RegistrationRecord,
    is_present,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

GENESIS_PREV_HASH = "sha256:" + "0" * 64
"""The ``previous_hash`` value for the first event in any history."""

HASH_PREFIX = "sha256:"


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class LedgerEvent(BaseModel):
    """One committed mutation in the history chain."""

    model_config = ConfigDict(strict=True, frozen=True)

    sequence: int = Field(ge=1)
    action: Action
    owner: IdentityKey
    nonce: int = Field(ge=0)
    username: str
    kyc_hash: str | None = None
    is_active: bool
    timestamp: datetime
    previous_hash: str
    event_hash: str


@dataclass
class HistoryVerificationResult:
    """Outcome of :func:`verify_history`."""

    valid: bool
    events_checked: int = 0
    errors: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Hash computation
# ---------------------------------------------------------------------------

def compute_hash(canonical_input: str) -> str:
    """Compute the SHA-256 hex digest of *canonical_input*, prefixed."""
    digest = hashlib.sha256(canonical_input.encode("utf-8")).hexdigest()
    return f"{HASH_PREFIX}{digest}"


def build_canonical_input(
    *,
    sequence: int,
    timestamp: str,
    action: str,
    owner: int,
    nonce: int,
    username: str,
    kyc_hash: str | None,
    is_active: bool,
    prev_hash: str,
) -> str:
    """Join the event fields with ``\\n`` in the fixed order."""
    return "\n".join([
        str(sequence),
        timestamp,
        action,
        str(owner),
        str(nonce),
        username,
        "-" if kyc_hash is None else f"={kyc_hash}",
        "1" if is_active else "0",
        prev_hash,
    ])


def _event_hash(event: LedgerEvent) -> str:
    return compute_hash(
        build_canonical_input(
            sequence=event.sequence,
            timestamp=event.timestamp.isoformat(),
            action=event.action.value,
            owner=event.owner,
            nonce=event.nonce,
            username=event.username,
            kyc_hash=event.kyc_hash,
            is_active=event.is_active,
            prev_hash=event.previous_hash,
        )
    )


# ---------------------------------------------------------------------------
# Chain manager
# ---------------------------------------------------------------------------

class HistoryChain:
    """Appends hash-linked events to an :class:`EventStore`.

    Parameters
    ----------
    store:
        Backend that persists events in append order.
    """

    def __init__(self, store: EventStore) -> None:
        self._store = store

    @property
    def store(self) -> EventStore:
        """The underlying event store."""
        return self._store

    async def append(self, action: Action, record: RegistrationRecord) -> LedgerEvent:
        """Record that *action* produced *record*, and return the event."""
        latest = await self._store.get_latest()
        sequence = 1 if latest is None else latest.sequence + 1
        prev_hash = GENESIS_PREV_HASH if latest is None else latest.event_hash
        kyc_hash = record.kyc_hash if is_present(record.kyc_hash) else None

        canonical = build_canonical_input(
            sequence=sequence,
            timestamp=record.updated_at.isoformat(),
            action=action.value,
            owner=record.owner,
            nonce=record.nonce,
            username=record.username,
            kyc_hash=kyc_hash,
            is_active=record.is_active,
            prev_hash=prev_hash,
        )
        event = LedgerEvent(
            sequence=sequence,
            action=action,
            owner=record.owner,
            nonce=record.nonce,
            username=record.username,
            kyc_hash=kyc_hash,
            is_active=record.is_active,
            timestamp=record.updated_at,
            previous_hash=prev_hash,
            event_hash=compute_hash(canonical),
        )
        await self._store.append(event)
        logger.debug("history event %d: %s %s", sequence, action.value, record.owner)
        return event

    async def events_for(self, owner: IdentityKey) -> list[LedgerEvent]:
        """Return every event recorded for *owner*, oldest first."""
        return await self._store.list_events(owner)

    async def verify(self) -> HistoryVerificationResult:
        """Verify the full stored chain."""
        return verify_history(await self._store.list_events())


def verify_history(events: list[LedgerEvent]) -> HistoryVerificationResult:
    """Check sequence continuity, hash links and per-event hashes."""
    errors: list[str] = []
    expected_prev = GENESIS_PREV_HASH
    for index, event in enumerate(events, start=1):
        if event.sequence != index:
            errors.append(f"event {index}: sequence is {event.sequence}")
        if event.previous_hash != expected_prev:
            errors.append(f"event {index}: broken link to previous event")
        if _event_hash(event) != event.event_hash:
            errors.append(f"event {index}: hash mismatch")
        expected_prev = event.event_hash
    return HistoryVerificationResult(
        valid=not errors,
        events_checked=len(events),
        errors=errors,
    )
