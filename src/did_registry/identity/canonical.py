"""Canonical signed-message construction.

The signed payload for each action is built with a fixed field order and
literal labels::

    register::publicKey:{signerKey}username:{username}[kycHash:{kycHash}]nonce:{nonce}
    update::[newUsername:{newUsername}][newKycHash:{newKycHash}]nonce:{nonce}
    revoke::nonce:{nonce}

Bracketed segments appear only when the field is present.  Integers are
rendered base-10 and strings verbatim, then the UTF-8 bytes are hashed
with SHA-256.  The signature covers the digest, not the raw message.

Text fields may not contain any of the field labels.  With that rule the
labels act as unambiguous delimiters, so two distinct parameter sets can
never produce the same message.
"""
from __future__ import annotations

import hashlib

from did_registry.core.errors import InvalidField
from did_registry.core.types import (
    Action,
    ActionParams,
    IdentityKey,
    PARAMS_FOR_ACTION,
    OptionalText,
    RegisterParams,
    UpdateParams,
    identity_key_to_bytes,
    is_present,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

ACTION_SEPARATOR = "::"

FIELD_LABELS: tuple[str, ...] = (
    "publicKey:",
    "username:",
    "kycHash:",
    "newUsername:",
    "newKycHash:",
    "nonce:",
)
"""Literal labels of the grammar.  Reserved inside text fields."""


def _check_text(field_name: str, value: str) -> None:
    for label in FIELD_LABELS:
        if label in value:
            raise InvalidField(
                f"Field '{field_name}' may not contain the reserved label {label!r}",
                details={"field": field_name, "label": label},
            )


def _segment(label: str, field_name: str, value: OptionalText) -> str:
    if not is_present(value):
        return ""
    _check_text(field_name, value)
    return f"{label}{value}"


def build_canonical_message(
    action: Action,
    params: ActionParams,
    *,
    signer_key: IdentityKey,
    nonce: int,
) -> bytes:
    """Build the exact bytes that a request for *action* must sign.

    Raises
    ------
    InvalidField
        If *params* does not belong to *action*, a text field contains a
        reserved label, or the nonce is negative.
    InvalidKey
        If *signer_key* is not a valid identity key (register only).
    """
    if isinstance(nonce, bool) or not isinstance(nonce, int) or nonce < 0:
        raise InvalidField(
            "Nonce must be a non-negative integer",
            details={"nonce": repr(nonce)},
        )

    expected = PARAMS_FOR_ACTION[action]
    if not isinstance(params, expected):
        raise InvalidField(
            f"Parameters of type {type(params).__name__} do not match "
            f"action '{action.value}'",
            details={"action": action.value, "params": type(params).__name__},
        )

    parts = [f"{action.value}{ACTION_SEPARATOR}"]
    if isinstance(params, RegisterParams):
        identity_key_to_bytes(signer_key)
        _check_text("username", params.username)
        parts.append(f"publicKey:{int(signer_key)}")
        parts.append(f"username:{params.username}")
        parts.append(_segment("kycHash:", "kyc_hash", params.kyc_hash))
    elif isinstance(params, UpdateParams):
        parts.append(_segment("newUsername:", "new_username", params.new_username))
        parts.append(_segment("newKycHash:", "new_kyc_hash", params.new_kyc_hash))
    parts.append(f"nonce:{nonce}")
    return "".join(parts).encode("utf-8")


def message_digest(message: bytes) -> bytes:
    """Return the SHA-256 digest that is actually signed."""
    return hashlib.sha256(message).digest()
