"""Authorization verifier for registry mutations.

Decides whether a claimed mutation is authorized purely from public
information plus a signature.  The checks run in a fixed order:

1. **Lookahead ceiling** -- a nonce further than ``max_nonce_lookahead``
   from ``current_nonce + 1`` (or below 1) is rejected before anything
   else is computed.
2. **Canonicalization** -- parameters must match the action and contain
   no reserved labels.
3. **Gapless nonce** -- the claimed nonce must equal ``current_nonce + 1``.
4. **Signature** -- Ed25519 over the SHA-256 digest of the canonical
   message, under the public key encoded by the signer's identity key.

The verifier never mutates a nonce or a record.  The ledger persists the
new nonce only once it decides to commit.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import ed25519

from did_registry.core.config import RegistryConfig
from did_registry.core.errors import (
    BadNonce,
    BadSignature,
    InvalidField,
    RegistryError,
    ValidationError,
)
from did_registry.core.types import (
    Action,
    ActionParams,
    IdentityKey,
    RejectionReason,
    identity_key_to_bytes,
)
from did_registry.identity.canonical import build_canonical_message, message_digest

SIGNATURE_BYTES: int = 64


@dataclass(frozen=True)
class Authorized:
    """The request is authorized."""

    authorized: Literal[True] = True


@dataclass(frozen=True)
class Rejected:
    """The request is not authorized, with the first failing check."""

    reason: RejectionReason
    detail: str = ""
    authorized: Literal[False] = False

    def to_error(self) -> RegistryError:
        """Return the registry error corresponding to :attr:`reason`."""
        details = {"reason": self.reason.value}
        if self.reason is RejectionReason.BAD_NONCE:
            return BadNonce(self.detail or None, details=details)
        if self.reason is RejectionReason.BAD_SIGNATURE:
            return BadSignature(self.detail or None, details=details)
        return InvalidField(self.detail or None, details=details)


AuthorizationResult = Authorized | Rejected


class AuthorizationVerifier:
    """Stateless nonce and signature checks for mutating requests.

    Parameters
    ----------
    config:
        Supplies ``max_nonce_lookahead``.  Defaults to
        :class:`RegistryConfig` defaults.
    """

    def __init__(self, config: RegistryConfig | None = None) -> None:
        self._config = config or RegistryConfig()

    @property
    def max_nonce_lookahead(self) -> int:
        """The configured lookahead ceiling."""
        return self._config.max_nonce_lookahead

    def authorize(
        self,
        action: Action,
        params: ActionParams,
        signer_key: IdentityKey,
        claimed_nonce: int,
        current_nonce: int,
        signature: bytes,
    ) -> AuthorizationResult:
        """Decide whether the request is authorized.

        Parameters
        ----------
        action:
            The mutation being requested.
        params:
            The canonical parameters for *action*.
        signer_key:
            The identity key that claims to have signed the request.
        claimed_nonce:
            The nonce asserted by the request.
        current_nonce:
            The nonce on file for *signer_key* (``0`` if unregistered).
        signature:
            Raw 64-byte Ed25519 signature.

        Returns
        -------
        AuthorizationResult
            :class:`Authorized`, or :class:`Rejected` naming the first
            check that failed.
        """
        expected = current_nonce + 1

        # Step 1: cheap ceiling before any hashing or curve arithmetic
        if isinstance(claimed_nonce, bool) or not isinstance(claimed_nonce, int):
            return Rejected(
                RejectionReason.BAD_NONCE,
                f"Nonce must be an integer, got {type(claimed_nonce).__name__}",
            )
        if claimed_nonce < 1 or abs(claimed_nonce - expected) > self.max_nonce_lookahead:
            return Rejected(
                RejectionReason.BAD_NONCE,
                f"Nonce {claimed_nonce} is outside the permitted window "
                f"around {expected}",
            )

        # Step 2: canonicalization
        try:
            message = build_canonical_message(
                action, params, signer_key=signer_key, nonce=claimed_nonce
            )
        except ValidationError as exc:
            return Rejected(RejectionReason.MALFORMED_PARAMETERS, exc.message)

        # Step 3: strict, gapless ordering
        if claimed_nonce != expected:
            return Rejected(
                RejectionReason.BAD_NONCE,
                f"Expected nonce {expected}, got {claimed_nonce}",
            )

        # Step 4: signature over the digest
        if not isinstance(signature, bytes) or len(signature) != SIGNATURE_BYTES:
            return Rejected(
                RejectionReason.BAD_SIGNATURE,
                f"Signature must be {SIGNATURE_BYTES} bytes",
            )
        try:
            public_key = ed25519.Ed25519PublicKey.from_public_bytes(
                identity_key_to_bytes(signer_key)
            )
            public_key.verify(signature, message_digest(message))
        except (InvalidSignature, ValueError, ValidationError):
            return Rejected(
                RejectionReason.BAD_SIGNATURE,
                "Signature does not verify against the identity key",
            )

        return Authorized()

    def ensure_authorized(
        self,
        action: Action,
        params: ActionParams,
        signer_key: IdentityKey,
        claimed_nonce: int,
        current_nonce: int,
        signature: bytes,
    ) -> None:
        """Like :meth:`authorize` but raise on rejection.

        Raises
        ------
        BadNonce
            Nonce outside the window or not ``current_nonce + 1``.
        InvalidField
            Parameters could not be canonicalized.
        BadSignature
            Signature missing, malformed or not verifying.
        """
        result = self.authorize(
            action, params, signer_key, claimed_nonce, current_nonce, signature
        )
        if isinstance(result, Rejected):
            raise result.to_error()
