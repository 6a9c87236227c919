"""DID Registry shared domain types.

This module defines every value type, enum, and Pydantic model shared
across the registry implementation.

Key design decisions:
* ``IdentityKey`` is a ``NewType`` over ``int``: the 32 raw bytes of an
  Ed25519 public key read big-endian.  The same value indexes storage and
  is decoded back into a public key for signature verification.
* Optional text fields use the ``OptionalText`` sum type (``str`` or the
  ``ABSENT`` marker) rather than ``None``, so that an absent field and an
  empty string are never confused when building canonical messages.
* Records are frozen Pydantic models; a mutation produces a new record.
"""
from __future__ import annotations

import enum
from datetime import UTC, datetime
from typing import Any, NewType, TypeGuard

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from did_registry.core.errors import InvalidKey

# ---------------------------------------------------------------------------
# Identity keys
# ---------------------------------------------------------------------------

IdentityKey = NewType("IdentityKey", int)
"""Ed25519 public key as a non-negative integer (big-endian bytes)."""

IDENTITY_KEY_BYTES: int = 32
_KEY_LIMIT: int = 1 << (8 * IDENTITY_KEY_BYTES)


def is_valid_identity_key(key: object) -> bool:
    """Return ``True`` if *key* is an integer in ``(0, 2**256)``."""
    if isinstance(key, bool) or not isinstance(key, int):
        return False
    return 0 < key < _KEY_LIMIT


def identity_key_from_bytes(raw: bytes) -> IdentityKey:
    """Convert 32 raw public-key bytes into an :data:`IdentityKey`.

    Raises
    ------
    InvalidKey
        If *raw* is not exactly 32 bytes or encodes the zero key.
    """
    if len(raw) != IDENTITY_KEY_BYTES:
        raise InvalidKey(
            f"Public key must be {IDENTITY_KEY_BYTES} bytes, got {len(raw)}",
            details={"length": len(raw)},
        )
    key = int.from_bytes(raw, "big")
    if key == 0:
        raise InvalidKey("Zero public key is not a valid identity key")
    return IdentityKey(key)


def identity_key_to_bytes(key: int) -> bytes:
    """Convert an :data:`IdentityKey` back into 32 raw public-key bytes.

    Raises
    ------
    InvalidKey
        If *key* is zero, negative, or wider than 256 bits.
    """
    if not is_valid_identity_key(key):
        raise InvalidKey(
            "Identity key must be an integer in (0, 2**256)",
            details={"identity_key": str(key)},
        )
    return key.to_bytes(IDENTITY_KEY_BYTES, "big")


# ---------------------------------------------------------------------------
# Optional text -- explicit present / absent sum type
# ---------------------------------------------------------------------------

class Absent(enum.Enum):
    """Marker for an optional text field that was not supplied.

    ``ABSENT`` is distinct from ``""``: an empty KYC hash is a present
    value and appears in the canonical message, an absent one does not.
    """

    ABSENT = "absent"

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT = Absent.ABSENT

OptionalText = str | Absent
"""Either a present string or :data:`ABSENT`."""


def is_present(value: OptionalText) -> TypeGuard[str]:
    """Return ``True`` if *value* carries a string."""
    return not isinstance(value, Absent)


def optional_text(value: str | None) -> OptionalText:
    """Map a nullable wire value onto :data:`OptionalText`."""
    return ABSENT if value is None else value


def text_or_none(value: OptionalText) -> str | None:
    """Map :data:`OptionalText` onto a nullable wire value."""
    return value if is_present(value) else None


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Action(enum.StrEnum):
    """Mutating actions.  The value is the canonical-message prefix."""

    REGISTER = "register"
    UPDATE = "update"
    REVOKE = "revoke"


class LifecycleState(enum.StrEnum):
    """Per-key lifecycle: UNREGISTERED -> ACTIVE -> REVOKED (terminal)."""

    UNREGISTERED = "unregistered"
    ACTIVE = "active"
    REVOKED = "revoked"


class RejectionReason(enum.StrEnum):
    """Why the authorization verifier rejected a request."""

    BAD_NONCE = "bad_nonce"
    BAD_SIGNATURE = "bad_signature"
    MALFORMED_PARAMETERS = "malformed_parameters"


# ---------------------------------------------------------------------------
# Pydantic helper -- UTC-aware datetime default
# ---------------------------------------------------------------------------

def _utcnow() -> datetime:
    """Return the current UTC datetime with timezone information."""
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Canonical parameters per action
# ---------------------------------------------------------------------------

class RegisterParams(BaseModel):
    """Fields signed by a register request (besides key and nonce)."""

    model_config = ConfigDict(strict=True, frozen=True)

    username: str
    kyc_hash: OptionalText = ABSENT


class UpdateParams(BaseModel):
    """Fields signed by an update request.  Absent fields are unchanged."""

    model_config = ConfigDict(strict=True, frozen=True)

    new_username: OptionalText = ABSENT
    new_kyc_hash: OptionalText = ABSENT

    @property
    def is_noop(self) -> bool:
        """``True`` when neither field is present."""
        return not (is_present(self.new_username) or is_present(self.new_kyc_hash))


class RevokeParams(BaseModel):
    """A revoke request signs nothing but its nonce."""

    model_config = ConfigDict(strict=True, frozen=True)


ActionParams = RegisterParams | UpdateParams | RevokeParams

PARAMS_FOR_ACTION: dict[Action, type[BaseModel]] = {
    Action.REGISTER: RegisterParams,
    Action.UPDATE: UpdateParams,
    Action.REVOKE: RevokeParams,
}


# ---------------------------------------------------------------------------
# Registration record
# ---------------------------------------------------------------------------

class RegistrationRecord(BaseModel):
    """The stored identity data for one identity key.

    Records are never deleted.  ``owner`` and ``created_at`` never change;
    ``is_active`` only ever goes from ``True`` to ``False``.
    """

    model_config = ConfigDict(strict=True, frozen=True)

    owner: IdentityKey
    username: str
    kyc_hash: OptionalText = ABSENT
    is_active: bool = True
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    nonce: int = Field(ge=0)

    @property
    def state(self) -> LifecycleState:
        """Lifecycle state of this record."""
        return LifecycleState.ACTIVE if self.is_active else LifecycleState.REVOKED

    @field_serializer("kyc_hash")
    def _serialize_kyc_hash(self, value: OptionalText) -> str | None:
        return text_or_none(value)

    @field_serializer("owner")
    def _serialize_owner(self, value: int) -> str:
        # Keys exceed the JSON safe-integer range; render base-10 text.
        return str(value)

    def to_wire(self) -> dict[str, Any]:
        """Return a JSON-compatible view of the record."""
        return self.model_dump(mode="json")
