"""DID Registry wire message models and helpers.

This module provides:

* **Request models** -- :class:`RegisterRequest`, :class:`UpdateRequest`
  and :class:`RevokeRequest`, the JSON bodies of the mutating endpoints.
* **Parsing / serialisation** helpers shared by the HTTP handler and
  client.
* **Content-Type validation** for incoming requests.

On the wire, identity keys travel as base-10 strings (they exceed the
JSON safe-integer range) although plain integers are also accepted.
Signatures are hex encoded.  Optional text is ``null`` or omitted when
absent.

All helpers are *synchronous* and side-effect-free.
"""
from __future__ import annotations

import json
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from did_registry.core.errors import (
    MalformedMessage,
    RegistryError,
    UnsupportedMediaType,
)
from did_registry.core.types import (
    IdentityKey,
    RegisterParams,
    UpdateParams,
    optional_text,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

CONTENT_TYPE: str = "application/json"
"""The only accepted request media type."""

API_PREFIX: str = "/v1"

_HEX_PATTERN = r"^(?:[0-9a-fA-F]{2})*$"


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class _SignedRequest(BaseModel):
    """Fields shared by every mutating request."""

    model_config = ConfigDict(strict=True, frozen=True)

    signer_key: int = Field(description="Identity key, base-10.")
    nonce: int = Field(description="Claimed nonce (current + 1).")
    signature: str = Field(
        pattern=_HEX_PATTERN,
        description="Hex-encoded Ed25519 signature over the message digest.",
    )

    @field_validator("signer_key", mode="before")
    @classmethod
    def _decimal_key(cls, value: Any) -> Any:
        if isinstance(value, str) and value.isascii() and value.isdigit():
            return int(value)
        return value

    @property
    def identity_key(self) -> IdentityKey:
        """The signer key as an :data:`IdentityKey`."""
        return IdentityKey(self.signer_key)

    @property
    def signature_bytes(self) -> bytes:
        """The decoded signature."""
        return bytes.fromhex(self.signature)

    def to_json(self) -> str:
        """Compact JSON body with the key rendered as a decimal string."""
        data = self.model_dump()
        data["signer_key"] = str(self.signer_key)
        return serialize(data)


class RegisterRequest(_SignedRequest):
    """Body of ``POST /v1/identities/register``."""

    username: str
    kyc_hash: str | None = None

    def params(self) -> RegisterParams:
        """Canonical parameters for signature verification."""
        return RegisterParams(username=self.username, kyc_hash=optional_text(self.kyc_hash))


class UpdateRequest(_SignedRequest):
    """Body of ``POST /v1/identities/update``."""

    new_username: str | None = None
    new_kyc_hash: str | None = None

    def params(self) -> UpdateParams:
        """Canonical parameters for signature verification."""
        return UpdateParams(
            new_username=optional_text(self.new_username),
            new_kyc_hash=optional_text(self.new_kyc_hash),
        )


class RevokeRequest(_SignedRequest):
    """Body of ``POST /v1/identities/revoke``."""


RequestT = TypeVar("RequestT", bound=_SignedRequest)


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def serialize(data: dict[str, Any]) -> str:
    """Serialise a response or request body to compact JSON."""
    return json.dumps(data, separators=(",", ":"), sort_keys=True)


def parse_request(raw: str | bytes, model: type[RequestT]) -> RequestT:
    """Parse a raw JSON body into *model*.

    Raises
    ------
    MalformedMessage
        If the input is empty, not a JSON object, or fails validation.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedMessage(f"Body is not UTF-8: {exc}") from exc

    raw = raw.strip()
    if not raw:
        raise MalformedMessage("Empty message")

    try:
        data = json.loads(raw)
    except (ValueError, RecursionError) as exc:
        # JSONDecodeError, integer digit limits and excessive nesting
        raise MalformedMessage(f"Invalid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise MalformedMessage("Message must be a JSON object")

    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise MalformedMessage(
            f"{model.__name__} validation failed: {exc.error_count()} error(s)",
            details={
                "errors": [
                    {"loc": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]}
                    for err in exc.errors()
                ],
            },
        ) from exc


def format_error(error: RegistryError) -> str:
    """Serialise *error* as a JSON error body."""
    return serialize(error.to_dict())


# ---------------------------------------------------------------------------
# Content-Type validation
# ---------------------------------------------------------------------------

def validate_content_type(content_type: str) -> None:
    """Validate the ``Content-Type`` header of an incoming request.

    Raises
    ------
    UnsupportedMediaType
        If the media type is not ``application/json``.
    """
    base = content_type.split(";")[0].strip().lower()
    if base != CONTENT_TYPE:
        raise UnsupportedMediaType(
            f"Unsupported Content-Type: {content_type!r}",
            details={"received": content_type, "accepted": [CONTENT_TYPE]},
        )
