"""
Unit tests for webhook signature verification.

The authenticator must accept exactly the HMAC-SHA256 of the raw body under
the shared secret, reject any single-bit change to body or signature, and
fail closed when no secret is configured.
"""

import hashlib
import hmac
import json

import pytest

from marketplace.infrastructure.payments.webhook_authenticator import (
    WebhookVerification,
    compute_signature,
    verify,
)


SECRET = "whsec_unit"
BODY = json.dumps({"event": "payment.captured", "payload": {}}).encode()


def _flip_bit(data: bytes, index: int, bit: int = 0) -> bytes:
    mutated = bytearray(data)
    mutated[index] ^= 1 << bit
    return bytes(mutated)


class TestWebhookAuthenticator:
    """Tests for verify()."""

    def test_matching_signature_is_authentic(self):
        signature = hmac.new(SECRET.encode(), BODY, hashlib.sha256).hexdigest()
        assert verify(BODY, signature, SECRET) == WebhookVerification.AUTHENTIC

    def test_compute_signature_is_hex_hmac_sha256(self):
        expected = hmac.new(SECRET.encode(), BODY, hashlib.sha256).hexdigest()
        assert compute_signature(BODY, SECRET) == expected
        assert len(expected) == 64

    @pytest.mark.parametrize("index", [0, 10, len(BODY) - 1])
    @pytest.mark.parametrize("bit", [0, 7])
    def test_body_bit_flip_is_forged(self, index, bit):
        signature = compute_signature(BODY, SECRET)
        assert verify(_flip_bit(BODY, index, bit), signature, SECRET) == WebhookVerification.FORGED

    @pytest.mark.parametrize("index", range(64))
    @pytest.mark.parametrize("bit", range(8))
    def test_signature_bit_flip_is_forged(self, index, bit):
        signature = compute_signature(BODY, SECRET).encode()
        tampered = _flip_bit(signature, index, bit).decode("latin-1")
        assert verify(BODY, tampered, SECRET) == WebhookVerification.FORGED

    def test_uppercased_hex_letter_is_forged(self):
        """Bit 5 separates 'b' from 'B'; the header is compared byte for byte."""
        signature = compute_signature(BODY, SECRET)
        index = next(i for i, ch in enumerate(signature) if ch in "abcdef")
        tampered = signature[:index] + signature[index].upper() + signature[index + 1:]
        assert verify(BODY, tampered, SECRET) == WebhookVerification.FORGED
        assert verify(BODY, signature.upper(), SECRET) == WebhookVerification.FORGED

    @pytest.mark.parametrize("padding", [" {}", "{} ", "{}\n", "\t{}"])
    def test_padded_signature_is_forged(self, padding):
        signature = compute_signature(BODY, SECRET)
        assert verify(BODY, padding.format(signature), SECRET) == WebhookVerification.FORGED

    def test_wrong_secret_is_forged(self):
        signature = compute_signature(BODY, "another-secret")
        assert verify(BODY, signature, SECRET) == WebhookVerification.FORGED

    def test_reserialized_body_is_forged(self):
        """Signature covers raw bytes, not the JSON value."""
        signature = compute_signature(BODY, SECRET)
        reformatted = json.dumps(json.loads(BODY), indent=2).encode()
        assert verify(reformatted, signature, SECRET) == WebhookVerification.FORGED

    @pytest.mark.parametrize("signature", [None, ""])
    def test_missing_signature(self, signature):
        assert verify(BODY, signature, SECRET) == WebhookVerification.MISSING_SIGNATURE

    @pytest.mark.parametrize("secret", [None, ""])
    def test_missing_secret_fails_closed(self, secret):
        """Missing secret wins even over a missing signature."""
        assert verify(BODY, compute_signature(BODY, "x"), secret) == WebhookVerification.NOT_CONFIGURED
        assert verify(BODY, None, secret) == WebhookVerification.NOT_CONFIGURED
