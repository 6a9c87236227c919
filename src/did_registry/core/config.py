"""DID Registry configuration.

Defines the validated configuration model consumed by the verifier, the
ledger and the HTTP handler.  The module-level constants are the defaults
and may be imported directly by callers that only need the limits.
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

MAX_USERNAME_LENGTH: int = 64
"""Maximum username length in characters."""

MAX_KYC_HASH_LENGTH: int = 128
"""Maximum KYC attestation hash length in characters."""

MAX_NONCE_LOOKAHEAD: int = 100
"""Largest distance from the expected nonce that is even considered."""


class RegistryConfig(BaseModel):
    """Configuration for a registry instance.

    All fields carry defaults so that ``RegistryConfig()`` is a complete
    configuration for development and tests.
    """

    model_config = ConfigDict(strict=True, frozen=True)

    registry_id: str = Field(
        default="did-registry",
        description="Identifier for this registry instance.",
    )
    max_username_length: int = Field(
        default=MAX_USERNAME_LENGTH,
        ge=1,
        description="Maximum username length in characters.",
    )
    max_kyc_hash_length: int = Field(
        default=MAX_KYC_HASH_LENGTH,
        ge=0,
        description="Maximum KYC hash length in characters.",
    )
    max_nonce_lookahead: int = Field(
        default=MAX_NONCE_LOOKAHEAD,
        ge=0,
        description=(
            "Requests whose nonce is further than this from the expected "
            "nonce are rejected before any other check."
        ),
    )
    enforce_unique_usernames: bool = Field(
        default=False,
        description=(
            "When True, a username may be held by at most one active "
            "identity.  Revoked identities never reserve a username."
        ),
    )
