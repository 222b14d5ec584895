"""Tests for the uniqueness and replay guard."""

from __future__ import annotations

from quorum_sign.guard import GuardConflict, admit, find_conflict
from quorum_sign.models import SignatureRecord


def _sig(signer: str, signature: str, nonce: str) -> SignatureRecord:
    return SignatureRecord(
        signer=signer, signature=signature, message="m", timestamp=0, nonce=nonce
    )


EXISTING = [_sig("0xaaa", "0x01", "n1"), _sig("0xbbb", "0x02", "n2")]


def test_fresh_signature_is_admitted() -> None:
    """A new signer, signature and nonce pass the guard."""
    assert admit(_sig("0xccc", "0x03", "n3"), EXISTING)
    assert admit(_sig("0xccc", "0x03", "n3"), [])


def test_same_signer_rejected_even_with_new_nonce() -> None:
    """A second signature from one signer conflicts."""
    new = _sig("0xAAA", "0x09", "n9")
    assert find_conflict(new, EXISTING) is GuardConflict.SIGNER_ALREADY_SIGNED
    assert not admit(new, EXISTING)


def test_reused_signature_bytes_rejected_regardless_of_prefix_or_case() -> None:
    """Signature comparison ignores case and the 0x prefix."""
    assert find_conflict(_sig("0xccc", "01", "n3"), EXISTING) is GuardConflict.SIGNATURE_REUSED
    existing = [_sig("0xaaa", "0xABCD", "n1")]
    assert find_conflict(_sig("0xccc", "0xabcd", "n3"), existing) is GuardConflict.SIGNATURE_REUSED


def test_reused_nonce_rejected_for_a_different_signer() -> None:
    """A nonce is single use across signers."""
    new = _sig("0xccc", "0x03", "n1")
    assert find_conflict(new, EXISTING) is GuardConflict.NONCE_REUSED
