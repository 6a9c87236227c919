"""Identity ledger -- the registration record state machine.

Owns the durable mapping from identity key to registration record, the
per-identity nonces and the total identity counter.  Every mutation is
checked structurally, authorized by the :class:`AuthorizationVerifier`,
and only then committed with a single store write.

The per-key state machine is:

.. code-block:: text

    UNREGISTERED ──register──> ACTIVE ──revoke──> REVOKED (terminal)
                                 |  ^
                                 update

No record is ever deleted and no transition leaves ``REVOKED``.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from did_registry.core.config import RegistryConfig
from did_registry.core.errors import (
    AlreadyRevoked,
    DuplicateIdentity,
    InvalidField,
    InvalidKey,
    NotFound,
    RegistryError,
    RevokedIdentity,
    UsernameTaken,
)
from did_registry.core.interfaces import InMemoryRecordStore, RecordStore
from did_registry.core.types import (
    ABSENT,
    Action,
    ActionParams,
    IdentityKey,
    LifecycleState,
    OptionalText,
    RegisterParams,
    RegistrationRecord,
    RevokeParams,
    UpdateParams,
    is_present,
    is_valid_identity_key,
)
from did_registry.identity.verifier import AuthorizationVerifier

if TYPE_CHECKING:
    from did_registry.audit.chain import HistoryChain

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class IdentityLedger:
    """Applies register, update and revoke atomically and answers queries.

    Parameters
    ----------
    store:
        Record backend.  A fresh :class:`InMemoryRecordStore` when omitted,
        so every ledger instance is independent.
    config:
        Field-length limits and nonce lookahead.
    verifier:
        Authorization verifier; built from *config* when omitted.
    clock:
        Source of ``created_at`` / ``updated_at`` timestamps.
    history:
        Optional :class:`HistoryChain` that receives one event per commit.
        Append failures are logged and do not fail the committed mutation.
    """

    def __init__(
        self,
        store: RecordStore | None = None,
        *,
        config: RegistryConfig | None = None,
        verifier: AuthorizationVerifier | None = None,
        clock: Clock | None = None,
        history: HistoryChain | None = None,
    ) -> None:
        self._config = config or RegistryConfig()
        self._store: RecordStore = store if store is not None else InMemoryRecordStore()
        self._verifier = verifier or AuthorizationVerifier(self._config)
        self._clock: Clock = clock or _utcnow
        self._history = history
        self._write_lock = asyncio.Lock()

    @property
    def config(self) -> RegistryConfig:
        """The active configuration."""
        return self._config

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def register(
        self,
        signer_key: IdentityKey,
        username: str,
        kyc_hash: OptionalText,
        claimed_nonce: int,
        signature: bytes,
    ) -> RegistrationRecord:
        """Create the record for *signer_key* (UNREGISTERED -> ACTIVE).

        Returns
        -------
        RegistrationRecord
            The committed record.

        Raises
        ------
        InvalidKey
            *signer_key* is zero or out of range.
        DuplicateIdentity
            A record already exists, active or revoked.
        InvalidField
            Username or KYC hash out of bounds.
        UsernameTaken
            Unique usernames are enforced and an active record holds it.
        BadNonce, BadSignature
            Authorization failed.
        """
        async with self._write_lock:
            try:
                self._check_key(signer_key)
                if await self._store.get(signer_key) is not None:
                    raise DuplicateIdentity(
                        f"Identity already registered: {signer_key}",
                        details={"identity_key": str(signer_key)},
                    )
                self._check_username(username, "username")
                self._check_kyc_hash(kyc_hash, "kyc_hash")
                await self._check_username_free(username, signer_key)

                params = RegisterParams(username=username, kyc_hash=kyc_hash)
                self._authorize(Action.REGISTER, params, signer_key, claimed_nonce, 0, signature)

                now = self._clock()
                record = RegistrationRecord(
                    owner=signer_key,
                    username=username,
                    kyc_hash=kyc_hash,
                    is_active=True,
                    created_at=now,
                    updated_at=now,
                    nonce=claimed_nonce,
                )
                total = await self._store.insert(record)
            except RegistryError as exc:
                self._log_rejection(Action.REGISTER, signer_key, exc)
                raise

            logger.info(
                "registered identity %s (nonce=%d, total=%d)",
                signer_key, claimed_nonce, total,
            )
            await self._append_history(Action.REGISTER, record)
            return record

    async def update(
        self,
        signer_key: IdentityKey,
        new_username: OptionalText,
        new_kyc_hash: OptionalText,
        claimed_nonce: int,
        signature: bytes,
    ) -> RegistrationRecord:
        """Replace the supplied fields of an active record (ACTIVE -> ACTIVE).

        Absent fields keep their previous values.

        Raises
        ------
        InvalidKey
            *signer_key* is zero or out of range.
        NotFound
            No record exists.
        RevokedIdentity
            The record has been revoked.
        InvalidField
            Neither field supplied, or a supplied field is out of bounds.
        UsernameTaken
            Unique usernames are enforced and an active record holds it.
        BadNonce, BadSignature
            Authorization failed.
        """
        async with self._write_lock:
            try:
                self._check_key(signer_key)
                current = await self._require_record(signer_key)
                if not current.is_active:
                    raise RevokedIdentity(
                        f"Identity {signer_key} has been revoked",
                        details={"identity_key": str(signer_key)},
                    )
                if not (is_present(new_username) or is_present(new_kyc_hash)):
                    raise InvalidField(
                        "Update must supply a new username or a new KYC hash",
                        details={"identity_key": str(signer_key)},
                    )
                if is_present(new_username):
                    self._check_username(new_username, "new_username")
                    await self._check_username_free(new_username, signer_key)
                self._check_kyc_hash(new_kyc_hash, "new_kyc_hash")

                params = UpdateParams(new_username=new_username, new_kyc_hash=new_kyc_hash)
                self._authorize(
                    Action.UPDATE, params, signer_key, claimed_nonce, current.nonce, signature
                )

                changes: dict[str, object] = {
                    "updated_at": self._clock(),
                    "nonce": claimed_nonce,
                }
                if is_present(new_username):
                    changes["username"] = new_username
                if is_present(new_kyc_hash):
                    changes["kyc_hash"] = new_kyc_hash
                record = current.model_copy(update=changes)
                await self._store.replace(record)
            except RegistryError as exc:
                self._log_rejection(Action.UPDATE, signer_key, exc)
                raise

            logger.info("updated identity %s (nonce=%d)", signer_key, claimed_nonce)
            await self._append_history(Action.UPDATE, record)
            return record

    async def revoke(
        self,
        signer_key: IdentityKey,
        claimed_nonce: int,
        signature: bytes,
    ) -> RegistrationRecord:
        """Permanently deactivate a record (ACTIVE -> REVOKED).

        Raises
        ------
        InvalidKey
            *signer_key* is zero or out of range.
        NotFound
            No record exists.
        AlreadyRevoked
            The record is already revoked.
        BadNonce, BadSignature
            Authorization failed.
        """
        async with self._write_lock:
            try:
                self._check_key(signer_key)
                current = await self._require_record(signer_key)
                if not current.is_active:
                    raise AlreadyRevoked(
                        f"Identity {signer_key} is already revoked",
                        details={"identity_key": str(signer_key)},
                    )
                self._authorize(
                    Action.REVOKE, RevokeParams(), signer_key,
                    claimed_nonce, current.nonce, signature,
                )
                record = current.model_copy(
                    update={
                        "is_active": False,
                        "updated_at": self._clock(),
                        "nonce": claimed_nonce,
                    }
                )
                await self._store.replace(record)
            except RegistryError as exc:
                self._log_rejection(Action.REVOKE, signer_key, exc)
                raise

            logger.info("revoked identity %s (nonce=%d)", signer_key, claimed_nonce)
            await self._append_history(Action.REVOKE, record)
            return record

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_record(self, key: IdentityKey) -> RegistrationRecord | None:
        """Return the full record, including revoked ones."""
        if not is_valid_identity_key(key):
            return None
        return await self._store.get(key)

    async def get_state(self, key: IdentityKey) -> LifecycleState:
        """Return the lifecycle state of *key*."""
        record = await self.get_record(key)
        if record is None:
            return LifecycleState.UNREGISTERED
        return record.state

    async def is_active(self, key: IdentityKey) -> bool:
        """Return ``True`` only for a registered, unrevoked key."""
        record = await self.get_record(key)
        return record is not None and record.is_active

    async def get_username(self, key: IdentityKey) -> OptionalText:
        """Username of an active record, else :data:`ABSENT`."""
        record = await self._active_record(key)
        return ABSENT if record is None else record.username

    async def get_kyc_hash(self, key: IdentityKey) -> OptionalText:
        """KYC hash of an active record, else :data:`ABSENT`."""
        record = await self._active_record(key)
        return ABSENT if record is None else record.kyc_hash

    async def get_created_at(self, key: IdentityKey) -> datetime | None:
        """Creation time of an active record, else ``None``."""
        record = await self._active_record(key)
        return None if record is None else record.created_at

    async def get_nonce(self, key: IdentityKey) -> int:
        """Last consumed nonce, ``0`` if never registered."""
        record = await self.get_record(key)
        return 0 if record is None else record.nonce

    async def total_identities(self) -> int:
        """Number of identities ever registered (revoked ones included)."""
        return await self._store.count()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _active_record(self, key: IdentityKey) -> RegistrationRecord | None:
        record = await self.get_record(key)
        if record is None or not record.is_active:
            return None
        return record

    async def _require_record(self, key: IdentityKey) -> RegistrationRecord:
        record = await self._store.get(key)
        if record is None:
            raise NotFound(
                f"No record for identity key: {key}",
                details={"identity_key": str(key)},
            )
        return record

    def _authorize(
        self,
        action: Action,
        params: ActionParams,
        signer_key: IdentityKey,
        claimed_nonce: int,
        current_nonce: int,
        signature: bytes,
    ) -> None:
        self._verifier.ensure_authorized(
            action, params, signer_key, claimed_nonce, current_nonce, signature
        )

    @staticmethod
    def _check_key(key: IdentityKey) -> None:
        if not is_valid_identity_key(key):
            raise InvalidKey(
                "Identity key must be a non-zero 256-bit integer",
                details={"identity_key": str(key)},
            )

    def _check_username(self, username: object, field_name: str) -> None:
        limit = self._config.max_username_length
        if not isinstance(username, str) or not 1 <= len(username) <= limit:
            raise InvalidField(
                f"{field_name} must be 1-{limit} characters",
                details={"field": field_name, "max_length": limit},
            )

    def _check_kyc_hash(self, kyc_hash: OptionalText, field_name: str) -> None:
        if not is_present(kyc_hash):
            return
        limit = self._config.max_kyc_hash_length
        if not isinstance(kyc_hash, str) or len(kyc_hash) > limit:
            raise InvalidField(
                f"{field_name} must be at most {limit} characters",
                details={"field": field_name, "max_length": limit},
            )

    async def _check_username_free(self, username: str, signer_key: IdentityKey) -> None:
        if not self._config.enforce_unique_usernames:
            return
        holder = await self._store.find_active_by_username(username)
        if holder is not None and holder.owner != signer_key:
            raise UsernameTaken(
                f"Username {username!r} is held by another active identity",
                details={"username": username},
            )

    async def _append_history(self, action: Action, record: RegistrationRecord) -> None:
        # The record is already committed here.
        if self._history is None:
            return
        try:
            await self._history.append(action, record)
        except Exception:
            logger.exception(
                "history append failed for %s of identity %s (nonce=%d)",
                action.value, record.owner, record.nonce,
            )

    @staticmethod
    def _log_rejection(action: Action, key: IdentityKey, exc: RegistryError) -> None:
        logger.info("rejected %s for identity %s: %s", action.value, key, exc.code)
