"""Client-side request signing.

Wallets and off-chain services hold the private key; the registry only
ever sees the identity key and a signature.  :class:`RequestSigner` builds
the canonical message for an action, signs its SHA-256 digest with
Ed25519, and wraps the result in a wire request ready to submit.
"""
from __future__ import annotations

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from did_registry.core.types import (
    ABSENT,
    Action,
    ActionParams,
    IdentityKey,
    OptionalText,
    RegisterParams,
    RevokeParams,
    UpdateParams,
    identity_key_from_bytes,
    text_or_none,
)
from did_registry.identity.canonical import build_canonical_message, message_digest
from did_registry.wire.messages import RegisterRequest, RevokeRequest, UpdateRequest


def public_key_to_identity_key(public_key: ed25519.Ed25519PublicKey) -> IdentityKey:
    """Return the identity key for an Ed25519 public key."""
    raw = public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return identity_key_from_bytes(raw)


class RequestSigner:
    """Signs registry requests with one Ed25519 private key.

    Usage
    -----
    ::

        signer = RequestSigner.generate()
        request = signer.register_request("alice", nonce=1)
        record = await ledger.register(
            request.identity_key, "alice", ABSENT, 1, request.signature_bytes
        )
    """

    def __init__(self, private_key: ed25519.Ed25519PrivateKey) -> None:
        self._private_key = private_key
        self._identity_key = public_key_to_identity_key(private_key.public_key())

    @classmethod
    def generate(cls) -> RequestSigner:
        """Create a signer with a freshly generated key."""
        return cls(ed25519.Ed25519PrivateKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> RequestSigner:
        """Create a signer from a 32-byte Ed25519 seed."""
        return cls(ed25519.Ed25519PrivateKey.from_private_bytes(seed))

    @property
    def identity_key(self) -> IdentityKey:
        """The identity key that records are stored under."""
        return self._identity_key

    def sign(self, action: Action, params: ActionParams, nonce: int) -> bytes:
        """Return the raw signature for *action* with *params* at *nonce*."""
        message = build_canonical_message(
            action, params, signer_key=self._identity_key, nonce=nonce
        )
        return self._private_key.sign(message_digest(message))

    def register_request(
        self,
        username: str,
        kyc_hash: OptionalText = ABSENT,
        *,
        nonce: int = 1,
    ) -> RegisterRequest:
        """Build a signed register request."""
        params = RegisterParams(username=username, kyc_hash=kyc_hash)
        signature = self.sign(Action.REGISTER, params, nonce)
        return RegisterRequest(
            signer_key=self._identity_key,
            username=username,
            kyc_hash=text_or_none(kyc_hash),
            nonce=nonce,
            signature=signature.hex(),
        )

    def update_request(
        self,
        new_username: OptionalText = ABSENT,
        new_kyc_hash: OptionalText = ABSENT,
        *,
        nonce: int,
    ) -> UpdateRequest:
        """Build a signed update request."""
        params = UpdateParams(new_username=new_username, new_kyc_hash=new_kyc_hash)
        signature = self.sign(Action.UPDATE, params, nonce)
        return UpdateRequest(
            signer_key=self._identity_key,
            new_username=text_or_none(new_username),
            new_kyc_hash=text_or_none(new_kyc_hash),
            nonce=nonce,
            signature=signature.hex(),
        )

    def revoke_request(self, *, nonce: int) -> RevokeRequest:
        """Build a signed revoke request."""
        signature = self.sign(Action.REVOKE, RevokeParams(), nonce)
        return RevokeRequest(
            signer_key=self._identity_key,
            nonce=nonce,
            signature=signature.hex(),
        )
