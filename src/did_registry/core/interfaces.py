"""DID Registry abstract interfaces and in-memory implementations.

This module defines the *structural* interfaces (``typing.Protocol``) for
the backend stores consumed by the identity ledger and the audit history,
plus in-memory implementations suitable for testing and local development.

Every Protocol class is decorated with ``@runtime_checkable`` so that
``isinstance`` checks work at run-time in addition to static analysis.

In-memory implementations are **not** thread-safe.  The ledger serializes
mutations itself; production backends must make ``insert`` and
``replace`` single atomic writes.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from did_registry.core.errors import DuplicateIdentity, NotFound
from did_registry.core.types import IdentityKey, RegistrationRecord

if TYPE_CHECKING:
    from did_registry.audit.chain import LedgerEvent

# ===================================================================
# Protocol (interface) definitions
# ===================================================================

@runtime_checkable
class RecordStore(Protocol):
    """Durable mapping from identity key to registration record."""

    async def get(self, key: IdentityKey) -> RegistrationRecord | None:
        """Return the record for *key*, or ``None`` if never registered."""
        ...

    async def insert(self, record: RegistrationRecord) -> int:
        """Store a new record and return the new total identity count.

        Raises :class:`DuplicateIdentity` if a record already exists.
        """
        ...

    async def replace(self, record: RegistrationRecord) -> None:
        """Replace the existing record for ``record.owner``.

        Raises :class:`NotFound` if no record exists.
        """
        ...

    async def count(self) -> int:
        """Return the number of identities ever registered."""
        ...

    async def find_active_by_username(
        self, username: str
    ) -> RegistrationRecord | None:
        """Return the active record holding *username*, if any."""
        ...


@runtime_checkable
class EventStore(Protocol):
    """Backend for the append-only ledger history."""

    async def append(self, event: LedgerEvent) -> int:
        """Append *event* and return its sequence number."""
        ...

    async def get_latest(self) -> LedgerEvent | None:
        """Return the most recent event, or ``None`` for an empty history."""
        ...

    async def list_events(
        self, owner: IdentityKey | None = None
    ) -> list[LedgerEvent]:
        """Return events in append order, optionally for one identity."""
        ...


# ===================================================================
# In-memory implementations (testing / development)
# ===================================================================

class InMemoryRecordStore:
    """In-memory record store for testing and development."""

    def __init__(self) -> None:
        self._records: dict[int, RegistrationRecord] = {}
        self._total = 0

    async def get(self, key: IdentityKey) -> RegistrationRecord | None:
        """Return the record for *key*, or ``None``."""
        return self._records.get(key)

    async def insert(self, record: RegistrationRecord) -> int:
        """Store a new record and bump the identity counter."""
        if record.owner in self._records:
            raise DuplicateIdentity(
                f"Identity already registered: {record.owner}",
                details={"identity_key": str(record.owner)},
            )
        self._records[record.owner] = record
        self._total += 1
        return self._total

    async def replace(self, record: RegistrationRecord) -> None:
        """Replace the existing record for ``record.owner``."""
        if record.owner not in self._records:
            raise NotFound(
                f"No record for identity key: {record.owner}",
                details={"identity_key": str(record.owner)},
            )
        self._records[record.owner] = record

    async def count(self) -> int:
        """Return the number of identities ever registered."""
        return self._total

    async def find_active_by_username(
        self, username: str
    ) -> RegistrationRecord | None:
        """Linear scan; fine for development-sized tables."""
        for record in self._records.values():
            if record.is_active and record.username == username:
                return record
        return None


class InMemoryEventStore:
    """In-memory event store.  Events are kept in append order."""

    def __init__(self) -> None:
        self._events: list[LedgerEvent] = []

    async def append(self, event: LedgerEvent) -> int:
        """Append *event* and return its sequence number."""
        self._events.append(event)
        return event.sequence

    async def get_latest(self) -> LedgerEvent | None:
        """Return the most recent event, or ``None``."""
        if not self._events:
            return None
        return self._events[-1]

    async def list_events(
        self, owner: IdentityKey | None = None
    ) -> list[LedgerEvent]:
        """Return events in append order, optionally for one identity."""
        if owner is None:
            return list(self._events)
        return [e for e in self._events if e.owner == owner]
