"""Tests for client-side request signing."""
from __future__ import annotations

from cryptography.hazmat.primitives.asymmetric import ed25519

from did_registry.core.types import ABSENT, Action, RegisterParams, UpdateParams
from did_registry.identity.canonical import build_canonical_message, message_digest
from did_registry.identity.signing import RequestSigner, public_key_to_identity_key
from did_registry.identity.verifier import AuthorizationVerifier, Authorized


class TestRequestSigner:
    def test_same_seed_same_key(self) -> None:
        seed = bytes([9]) * 32
        assert RequestSigner.from_seed(seed).identity_key == (
            RequestSigner.from_seed(seed).identity_key
        )

    def test_distinct_keys(self, alice: RequestSigner, bob: RequestSigner) -> None:
        assert alice.identity_key != bob.identity_key

    def test_identity_key_matches_public_key(self) -> None:
        private_key = ed25519.Ed25519PrivateKey.generate()
        signer = RequestSigner(private_key)
        assert signer.identity_key == public_key_to_identity_key(private_key.public_key())

    def test_signature_covers_digest(self, alice: RequestSigner) -> None:
        params = RegisterParams(username="alice")
        signature = alice.sign(Action.REGISTER, params, 1)
        message = build_canonical_message(
            Action.REGISTER, params, signer_key=alice.identity_key, nonce=1
        )
        public_key = ed25519.Ed25519PublicKey.from_public_bytes(
            alice.identity_key.to_bytes(32, "big")
        )
        public_key.verify(signature, message_digest(message))

    def test_register_request_verifies(self, alice: RequestSigner) -> None:
        request = alice.register_request("alice", "h1")
        result = AuthorizationVerifier().authorize(
            Action.REGISTER,
            request.params(),
            request.identity_key,
            request.nonce,
            0,
            request.signature_bytes,
        )
        assert isinstance(result, Authorized)

    def test_update_request_fields(self, alice: RequestSigner) -> None:
        request = alice.update_request(new_username="bob", nonce=4)
        assert request.new_username == "bob"
        assert request.new_kyc_hash is None
        assert request.params() == UpdateParams(new_username="bob", new_kyc_hash=ABSENT)

    def test_generated_signers_differ(self) -> None:
        assert RequestSigner.generate().identity_key != RequestSigner.generate().identity_key
