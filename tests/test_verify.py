"""Tests for personal-message signature verification."""

from __future__ import annotations

import pytest

from quorum_sign.verify import PersonalSigner, recover_signer, verify_signature


def test_sign_and_verify_round_trip() -> None:
    """A signer's signature verifies against its address."""
    signer = PersonalSigner(bytes(range(1, 33)))
    message = "SquadTrust Project Approval\n\nProject ID: p1"
    signature = signer.sign(message)

    result = verify_signature(message, signature, signer.address)
    assert result.is_valid
    assert result.recovered_signer == signer.address
    assert result.error is None


def test_claimed_signer_comparison_is_case_insensitive() -> None:
    """Claimed addresses are compared in lowercase."""
    signer = PersonalSigner(ephemeral=True)
    signature = signer.sign("hello")
    claimed = "0x" + signer.address[2:].upper()
    assert verify_signature("hello", signature, claimed).is_valid


def test_bare_hex_and_raw_bytes_are_accepted() -> None:
    """Signatures may omit 0x or be raw bytes."""
    signer = PersonalSigner(ephemeral=True)
    signature = signer.sign("hello")
    assert verify_signature("hello", signature[2:], signer.address).is_valid
    assert verify_signature("hello", bytes.fromhex(signature[2:]), signer.address).is_valid


def test_wrong_signer_reports_recovered_address() -> None:
    """A mismatch reports who actually signed."""
    alice = PersonalSigner(ephemeral=True)
    bob = PersonalSigner(ephemeral=True)
    signature = alice.sign("pay 10 ETH")

    result = verify_signature("pay 10 ETH", signature, bob.address)
    assert not result.is_valid
    assert result.recovered_signer == alice.address
    assert result.error


def test_tampered_message_does_not_verify() -> None:
    """Editing the message breaks verification."""
    signer = PersonalSigner(ephemeral=True)
    signature = signer.sign("Amount: 1 ETH")
    assert not verify_signature("Amount: 100 ETH", signature, signer.address).is_valid


@pytest.mark.parametrize(
    "signature",
    ["", "0x", "not-hex", "0x1234", "0x" + "00" * 64, "0x" + "ab" * 66, "0x" + "00" * 65],
)
def test_malformed_signatures_never_raise(signature: str) -> None:
    """Malformed input is reported, not raised."""
    signer = PersonalSigner(ephemeral=True)
    result = verify_signature("hello", signature, signer.address)
    assert not result.is_valid
    assert result.error


def test_empty_message_or_signer_is_invalid() -> None:
    """Empty message or signer is invalid."""
    signer = PersonalSigner(ephemeral=True)
    signature = signer.sign("hello")
    assert not verify_signature("", signature, signer.address).is_valid
    assert not verify_signature("hello", signature, "").is_valid


def test_recover_signer_raises_value_error_on_bad_length() -> None:
    """Direct recovery raises on a wrong-length signature."""
    with pytest.raises(ValueError):
        recover_signer("hello", "0x1234")


def test_personal_signer_requires_key_unless_ephemeral() -> None:
    """A key is required unless an ephemeral one is requested."""
    with pytest.raises(ValueError):
        PersonalSigner()
    assert PersonalSigner(ephemeral=True).address.startswith("0x")


def test_personal_signer_accepts_hex_key() -> None:
    """Hex keys are accepted as well as bytes."""
    key = bytes(range(1, 33))
    assert PersonalSigner(key).address == PersonalSigner("0x" + key.hex()).address
