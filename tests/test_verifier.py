"""Tests for the authorization verifier.

Covers:
1. Valid requests for each action.
2. Check ordering: lookahead ceiling, canonicalization, gapless nonce,
   signature.
3. Signature failures (wrong key, tampered parameters, bad length).
4. ``ensure_authorized`` error mapping.
"""
from __future__ import annotations

import pytest

from did_registry.core.config import RegistryConfig
from did_registry.core.errors import BadNonce, BadSignature, InvalidField
from did_registry.core.types import (
    Action,
    RegisterParams,
    RejectionReason,
    RevokeParams,
    UpdateParams,
)
from did_registry.identity.signing import RequestSigner
from did_registry.identity.verifier import AuthorizationVerifier, Authorized, Rejected


@pytest.fixture()
def verifier() -> AuthorizationVerifier:
    return AuthorizationVerifier()


def _register_sig(signer: RequestSigner, username: str = "alice", nonce: int = 1) -> bytes:
    return signer.sign(Action.REGISTER, RegisterParams(username=username), nonce)


class TestAuthorized:
    def test_register(self, verifier: AuthorizationVerifier, alice: RequestSigner) -> None:
        result = verifier.authorize(
            Action.REGISTER,
            RegisterParams(username="alice"),
            alice.identity_key,
            1,
            0,
            _register_sig(alice),
        )
        assert isinstance(result, Authorized)
        assert result.authorized is True

    def test_update(self, verifier: AuthorizationVerifier, alice: RequestSigner) -> None:
        params = UpdateParams(new_username="alice2")
        sig = alice.sign(Action.UPDATE, params, 4)
        result = verifier.authorize(Action.UPDATE, params, alice.identity_key, 4, 3, sig)
        assert isinstance(result, Authorized)

    def test_revoke(self, verifier: AuthorizationVerifier, alice: RequestSigner) -> None:
        sig = alice.sign(Action.REVOKE, RevokeParams(), 2)
        result = verifier.authorize(Action.REVOKE, RevokeParams(), alice.identity_key, 2, 1, sig)
        assert isinstance(result, Authorized)


class TestNonce:
    def test_beyond_lookahead(self, verifier: AuthorizationVerifier, alice: RequestSigner) -> None:
        result = verifier.authorize(
            Action.REGISTER,
            RegisterParams(username="alice"),
            alice.identity_key,
            200,
            0,
            b"\x00" * 64,
        )
        assert isinstance(result, Rejected)
        assert result.reason is RejectionReason.BAD_NONCE

    def test_lookahead_checked_before_parameters(
        self, verifier: AuthorizationVerifier, alice: RequestSigner
    ) -> None:
        result = verifier.authorize(
            Action.REGISTER,
            RegisterParams(username="bad nonce:1"),
            alice.identity_key,
            200,
            0,
            b"",
        )
        assert isinstance(result, Rejected)
        assert result.reason is RejectionReason.BAD_NONCE

    def test_parameters_checked_before_gap(
        self, verifier: AuthorizationVerifier, alice: RequestSigner
    ) -> None:
        result = verifier.authorize(
            Action.REGISTER,
            RegisterParams(username="bad nonce:1"),
            alice.identity_key,
            2,
            0,
            b"",
        )
        assert isinstance(result, Rejected)
        assert result.reason is RejectionReason.MALFORMED_PARAMETERS

    def test_gap_within_window(self, verifier: AuthorizationVerifier, alice: RequestSigner) -> None:
        result = verifier.authorize(
            Action.REGISTER,
            RegisterParams(username="alice"),
            alice.identity_key,
            5,
            0,
            _register_sig(alice, nonce=5),
        )
        assert isinstance(result, Rejected)
        assert result.reason is RejectionReason.BAD_NONCE

    def test_replay(self, verifier: AuthorizationVerifier, alice: RequestSigner) -> None:
        sig = alice.sign(Action.REVOKE, RevokeParams(), 2)
        result = verifier.authorize(Action.REVOKE, RevokeParams(), alice.identity_key, 2, 2, sig)
        assert isinstance(result, Rejected)
        assert result.reason is RejectionReason.BAD_NONCE

    @pytest.mark.parametrize("nonce", [0, -1])
    def test_non_positive(
        self, verifier: AuthorizationVerifier, alice: RequestSigner, nonce: int
    ) -> None:
        result = verifier.authorize(
            Action.REVOKE, RevokeParams(), alice.identity_key, nonce, 0, b"\x00" * 64
        )
        assert isinstance(result, Rejected)
        assert result.reason is RejectionReason.BAD_NONCE

    def test_zero_lookahead_still_accepts_next(self, alice: RequestSigner) -> None:
        verifier = AuthorizationVerifier(RegistryConfig(max_nonce_lookahead=0))
        result = verifier.authorize(
            Action.REGISTER,
            RegisterParams(username="alice"),
            alice.identity_key,
            1,
            0,
            _register_sig(alice),
        )
        assert isinstance(result, Authorized)


class TestSignature:
    def test_signed_by_other_key(
        self, verifier: AuthorizationVerifier, alice: RequestSigner, bob: RequestSigner
    ) -> None:
        result = verifier.authorize(
            Action.REGISTER,
            RegisterParams(username="alice"),
            alice.identity_key,
            1,
            0,
            _register_sig(bob),
        )
        assert isinstance(result, Rejected)
        assert result.reason is RejectionReason.BAD_SIGNATURE

    def test_tampered_username(
        self, verifier: AuthorizationVerifier, alice: RequestSigner
    ) -> None:
        result = verifier.authorize(
            Action.REGISTER,
            RegisterParams(username="mallory"),
            alice.identity_key,
            1,
            0,
            _register_sig(alice),
        )
        assert isinstance(result, Rejected)
        assert result.reason is RejectionReason.BAD_SIGNATURE

    def test_signature_for_other_action(
        self, verifier: AuthorizationVerifier, alice: RequestSigner
    ) -> None:
        sig = alice.sign(Action.REVOKE, RevokeParams(), 2)
        params = UpdateParams(new_username="x")
        result = verifier.authorize(Action.UPDATE, params, alice.identity_key, 2, 1, sig)
        assert isinstance(result, Rejected)
        assert result.reason is RejectionReason.BAD_SIGNATURE

    @pytest.mark.parametrize("signature", [b"", b"\x01" * 63, b"\x01" * 65])
    def test_wrong_length(
        self, verifier: AuthorizationVerifier, alice: RequestSigner, signature: bytes
    ) -> None:
        result = verifier.authorize(
            Action.REVOKE, RevokeParams(), alice.identity_key, 1, 0, signature
        )
        assert isinstance(result, Rejected)
        assert result.reason is RejectionReason.BAD_SIGNATURE


class TestEnsureAuthorized:
    def test_passes(self, verifier: AuthorizationVerifier, alice: RequestSigner) -> None:
        verifier.ensure_authorized(
            Action.REGISTER,
            RegisterParams(username="alice"),
            alice.identity_key,
            1,
            0,
            _register_sig(alice),
        )

    def test_bad_nonce(self, verifier: AuthorizationVerifier, alice: RequestSigner) -> None:
        with pytest.raises(BadNonce):
            verifier.ensure_authorized(
                Action.REVOKE, RevokeParams(), alice.identity_key, 3, 0, b"\x00" * 64
            )

    def test_bad_signature(self, verifier: AuthorizationVerifier, alice: RequestSigner) -> None:
        with pytest.raises(BadSignature):
            verifier.ensure_authorized(
                Action.REVOKE, RevokeParams(), alice.identity_key, 1, 0, b"\x00" * 64
            )

    def test_malformed_parameters(
        self, verifier: AuthorizationVerifier, alice: RequestSigner
    ) -> None:
        with pytest.raises(InvalidField):
            verifier.ensure_authorized(
                Action.UPDATE,
                UpdateParams(new_username="x username:y"),
                alice.identity_key,
                1,
                0,
                b"\x00" * 64,
            )
