"""DID Registry error-code hierarchy.

Every rejection the registry can produce is a concrete exception class
carrying a stable ``DR-Exxx`` code, a recommended HTTP status, and a
human-readable message.

Hierarchy
---------
::

    RegistryError
    +-- ValidationError      (DR-E1xx)
    +-- StateError           (DR-E2xx)
    +-- AuthorizationError   (DR-E3xx)
    +-- TransportError       (DR-E8xx)

Usage
-----
Raise concrete subclasses directly::

    raise NotFound("No record for identity key 42")

Catch by category::

    try:
        ...
    except StateError:
        # handles DuplicateIdentity, NotFound, RevokedIdentity, AlreadyRevoked
        ...

All rejections are synchronous and non-retryable by the ledger itself.
A caller may resubmit with corrected parameters and a fresh nonce.
"""
from __future__ import annotations

from typing import Any

# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

class RegistryError(Exception):
    """Base exception for all DID Registry errors.

    Attributes
    ----------
    code : str
        Registry error code, e.g. ``"DR-E200"``.
    http_status : int
        Recommended HTTP status code for this error.
    message : str
        Human-readable description.
    details : dict[str, Any]
        Machine-readable context specific to the error instance.
    resolution : str
        Suggested action for the caller.
    """

    code: str = "DR-E000"
    http_status: int = 500
    message: str = "Unknown registry error"
    resolution: str = ""

    def __init__(
        self,
        message: str | None = None,
        *,
        details: dict[str, Any] | None = None,
        resolution: str | None = None,
    ) -> None:
        self.details: dict[str, Any] = details or {}
        if message is not None:
            self.message = message
        if resolution is not None:
            self.resolution = resolution
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialise the error to the wire error format."""
        payload: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            payload["detail"] = self.details
        if self.resolution:
            payload["resolution"] = self.resolution
        return {"error": payload}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


# ===================================================================
# Category base classes
# ===================================================================

class ValidationError(RegistryError):
    """DR-E1xx -- Structurally invalid keys or fields."""

    code = "DR-E1XX"
    http_status = 400


class StateError(RegistryError):
    """DR-E2xx -- Request conflicts with the record's lifecycle state."""

    code = "DR-E2XX"
    http_status = 409


class AuthorizationError(RegistryError):
    """DR-E3xx -- Nonce or signature checks failed."""

    code = "DR-E3XX"
    http_status = 401


class TransportError(RegistryError):
    """DR-E8xx -- Malformed or unroutable wire requests."""

    code = "DR-E8XX"
    http_status = 400


# ===================================================================
# DR-E1xx  Validation Errors
# ===================================================================

class InvalidKey(ValidationError):
    """DR-E100 -- The identity key fails basic validity (e.g. zero key)."""

    code = "DR-E100"
    http_status = 400
    message = "Identity key is not a valid Ed25519 public key"
    resolution = "Submit the signer's 32-byte Ed25519 public key as an integer."


class InvalidField(ValidationError):
    """DR-E101 -- A username or KYC hash is out of bounds, or nothing to update."""

    code = "DR-E101"
    http_status = 400
    message = "Request field is missing or out of bounds"
    resolution = "Check the username and KYC hash length limits."


class UsernameTaken(ValidationError):
    """DR-E102 -- Another active identity already holds the username."""

    code = "DR-E102"
    http_status = 409
    message = "Username is held by another active identity"
    resolution = "Choose a different username."


# ===================================================================
# DR-E2xx  State Errors
# ===================================================================

class DuplicateIdentity(StateError):
    """DR-E200 -- Register called for an already-registered key."""

    code = "DR-E200"
    http_status = 409
    message = "Identity key is already registered"
    resolution = (
        "Use update to change an active record. Revoked keys cannot be "
        "registered again."
    )


class NotFound(StateError):
    """DR-E201 -- No record exists for the identity key."""

    code = "DR-E201"
    http_status = 404
    message = "No record exists for this identity key"
    resolution = "Register the identity key first."


class RevokedIdentity(StateError):
    """DR-E202 -- Update attempted on a revoked record."""

    code = "DR-E202"
    http_status = 409
    message = "Identity has been revoked"
    resolution = "Revocation is permanent; register a new key."


class AlreadyRevoked(StateError):
    """DR-E203 -- Revoke attempted on a record that is already revoked."""

    code = "DR-E203"
    http_status = 409
    message = "Identity is already revoked"
    resolution = "No action needed; revocation is permanent."


# ===================================================================
# DR-E3xx  Authorization Errors
# ===================================================================

class BadNonce(AuthorizationError):
    """DR-E300 -- Claimed nonce is not exactly ``current + 1``."""

    code = "DR-E300"
    http_status = 401
    message = "Nonce is not the next expected value"
    resolution = "Query the current nonce and sign again with current + 1."


class BadSignature(AuthorizationError):
    """DR-E301 -- Signature does not verify against the identity key."""

    code = "DR-E301"
    http_status = 401
    message = "Signature does not verify against the identity key"
    resolution = (
        "Sign the SHA-256 digest of the canonical message with the private "
        "key matching the identity key."
    )


# ===================================================================
# DR-E8xx  Transport Errors
# ===================================================================

class MalformedMessage(TransportError):
    """DR-E800 -- Request body is not valid JSON or fails validation."""

    code = "DR-E800"
    http_status = 400
    message = "Malformed request message"
    resolution = "Check the request body against the request schema."


class UnsupportedMediaType(TransportError):
    """DR-E801 -- Content-Type is not ``application/json``."""

    code = "DR-E801"
    http_status = 415
    message = "Unsupported Content-Type"
    resolution = "Send request bodies as application/json."


class RouteNotFound(TransportError):
    """DR-E802 -- No handler for the requested method and path."""

    code = "DR-E802"
    http_status = 404
    message = "No such endpoint"
    resolution = "Check the request method and path."


# ---------------------------------------------------------------------------
# Lookup helper
# ---------------------------------------------------------------------------

_CODE_MAP: dict[str, type[RegistryError]] = {
    cls.code: cls
    for cls in [
        # E1xx
        InvalidKey,
        InvalidField,
        UsernameTaken,
        # E2xx
        DuplicateIdentity,
        NotFound,
        RevokedIdentity,
        AlreadyRevoked,
        # E3xx
        BadNonce,
        BadSignature,
        # E8xx
        MalformedMessage,
        UnsupportedMediaType,
        RouteNotFound,
    ]
}


def error_from_code(code: str, message: str | None = None) -> RegistryError:
    """Instantiate the correct exception class for a registry error code.

    Raises
    ------
    KeyError
        If *code* is not a recognised registry error code.
    """
    cls = _CODE_MAP[code]
    return cls(message) if message else cls()
