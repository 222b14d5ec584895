"""Tests for the signature report read-model."""

from __future__ import annotations

import pytest

from quorum_sign.models import SignatureRecord
from quorum_sign.report import build_report
from quorum_sign.verify import PersonalSigner


def _signed(signer: PersonalSigner, nonce: str) -> SignatureRecord:
    message = f"approve\nNonce: {nonce}"
    return SignatureRecord(
        signer=signer.address,
        signature=signer.sign(message),
        message=message,
        timestamp=0,
        nonce=nonce,
    )


def test_report_counts_and_missing_voters(members: list[PersonalSigner]) -> None:
    """Summary counts and missing voters for a half-signed roster."""
    voters = [member.address for member in members]
    signatures = [_signed(members[0], "a"), _signed(members[1], "b")]

    report = build_report(signatures, voters, len(voters))
    summary = report["summary"]
    assert summary == {
        "total_signatures": 2,
        "valid_signatures": 2,
        "required_signatures": 2,
        "percentage_complete": 50.0,
        "is_approved": True,
    }
    assert report["details"]["missing_voters"] == voters[2:]
    assert report["details"]["invalid_signatures"] == []


def test_signatures_from_removed_members_are_invalid(
    members: list[PersonalSigner], outsider: PersonalSigner
) -> None:
    """Signers outside the roster count as invalid."""
    voters = [member.address for member in members]
    report = build_report([_signed(outsider, "x")], voters, len(voters))
    assert report["summary"]["valid_signatures"] == 0
    assert report["summary"]["total_signatures"] == 1
    assert len(report["details"]["invalid_signatures"]) == 1
    assert report["details"]["missing_voters"] == voters


def test_tampered_stored_signature_is_invalid(members: list[PersonalSigner]) -> None:
    """A stored message edited after signing no longer verifies."""
    good = _signed(members[0], "a")
    tampered = SignatureRecord(
        signer=good.signer,
        signature=good.signature,
        message=good.message + " (edited)",
        timestamp=0,
        nonce="a",
    )
    report = build_report([tampered], [members[0].address], 1)
    assert report["details"]["invalid_signatures"] == [tampered]
    assert not report["summary"]["is_approved"]


def test_missing_voters_are_matched_case_insensitively(members: list[PersonalSigner]) -> None:
    """Roster case does not hide a valid signature."""
    voters = ["0x" + members[0].address[2:].upper(), members[1].address]
    report = build_report([_signed(members[0], "a")], voters, 2)
    assert report["details"]["missing_voters"] == [members[1].address]


def test_empty_voter_set_has_zero_percentage() -> None:
    """An empty roster reports 0 percent."""
    report = build_report([], [], 0)
    assert report["summary"]["percentage_complete"] == 0
    assert report["summary"]["required_signatures"] == 0


@pytest.mark.parametrize(("signed", "expected"), [(1, 25.0), (3, 75.0), (4, 100.0)])
def test_percentage_complete(members: list[PersonalSigner], signed: int, expected: float) -> None:
    """Percentage is valid signatures over roster size."""
    voters = [member.address for member in members]
    signatures = [_signed(member, str(index)) for index, member in enumerate(members[:signed])]
    report = build_report(signatures, voters, len(voters))
    assert report["summary"]["percentage_complete"] == pytest.approx(expected)


def test_empty_voter_set_is_never_approved(members: list[PersonalSigner]) -> None:
    """Stored signatures do not satisfy a quorum over zero voters."""
    report = build_report([_signed(members[0], "a")], [], 0)
    assert report["summary"]["required_signatures"] == 0
    assert report["summary"]["valid_signatures"] == 0
    assert not report["summary"]["is_approved"]
