"""Property-based tests for HitPay webhook signature verification.

Tests that:
- A signature computed with the configured salt always verifies
- Any change to the body or the salt makes verification fail
- Missing inputs never verify
"""

import string

from hypothesis import given, settings, strategies as st, assume

from paygate.modules.payment_gateway.gateways.hitpay import (
    HitPayGateway,
    compute_signature,
    verify_signature,
)


body_strategy = st.binary(min_size=1, max_size=2048)

salt_strategy = st.text(
    alphabet=string.ascii_letters + string.digits,
    min_size=8,
    max_size=64,
)


class TestHitPaySignature:
    """Property tests for the HMAC-SHA256 webhook check."""

    @given(body=body_strategy, salt=salt_strategy)
    @settings(max_examples=100)
    def test_signature_with_same_salt_verifies(self, body: bytes, salt: str) -> None:
        signature = compute_signature(body, salt)

        assert len(signature) == 64
        assert verify_signature(body, signature, salt)

    @given(body=body_strategy, salt=salt_strategy)
    @settings(max_examples=100)
    def test_signature_case_and_whitespace_are_tolerated(self, body: bytes, salt: str) -> None:
        signature = compute_signature(body, salt)

        assert verify_signature(body, f" {signature.upper()}\n", salt)

    @given(body=body_strategy, other=body_strategy, salt=salt_strategy)
    @settings(max_examples=100)
    def test_signature_does_not_transfer_to_other_body(
        self, body: bytes, other: bytes, salt: str
    ) -> None:
        assume(body != other)

        assert not verify_signature(other, compute_signature(body, salt), salt)

    @given(body=body_strategy, salt=salt_strategy, other_salt=salt_strategy)
    @settings(max_examples=100)
    def test_signature_does_not_verify_under_other_salt(
        self, body: bytes, salt: str, other_salt: str
    ) -> None:
        assume(salt != other_salt)

        assert not verify_signature(body, compute_signature(body, salt), other_salt)

    @given(body=body_strategy, salt=salt_strategy)
    @settings(max_examples=50)
    def test_missing_inputs_never_verify(self, body: bytes, salt: str) -> None:
        signature = compute_signature(body, salt)

        assert not verify_signature(b"", signature, salt)
        assert not verify_signature(body, None, salt)
        assert not verify_signature(body, "", salt)
        assert not verify_signature(body, signature, None)

    @given(body=body_strategy, salt=salt_strategy)
    @settings(max_examples=50)
    def test_gateway_without_salt_rejects_everything(self, body: bytes, salt: str) -> None:
        gateway = HitPayGateway("key", api_url="https://api.hitpay.test", webhook_secret=None)

        assert not gateway.verify_signature(body, compute_signature(body, salt))
