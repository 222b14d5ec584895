"""Read-model summarizing signature collection progress."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence

from .models import SignatureRecord, normalize_address
from .quorum import DEFAULT_RATIO, is_approved, required_count
from .types import ReportDetails, ReportSummary, SignatureReport
from .verify import VerificationResult, verify_signature

Verifier = Callable[[str, str, str], VerificationResult]


def partition_signatures(
    signatures: Iterable[SignatureRecord],
    voters: Sequence[str],
    verifier: Verifier = verify_signature,
) -> tuple[list[SignatureRecord], list[SignatureRecord]]:
    """Split stored signatures into valid and invalid lists.

    A signature is valid when it still verifies against its message and its
    signer is in the current voter set.
    """

    roster = {normalize_address(voter) for voter in voters}
    valid: list[SignatureRecord] = []
    invalid: list[SignatureRecord] = []
    for signature in signatures:
        result = verifier(signature.message, signature.signature, signature.signer)
        if result.is_valid and normalize_address(signature.signer) in roster:
            valid.append(signature)
        else:
            invalid.append(signature)
    return valid, invalid


def build_report(
    signatures: Sequence[SignatureRecord],
    voters: Sequence[str],
    voter_set_size: int,
    *,
    verifier: Verifier = verify_signature,
    ratio: float = DEFAULT_RATIO,
) -> SignatureReport:
    """Project stored signatures into a progress report.

    ``percentage_complete`` is ``valid / voter_set_size * 100`` and ``0`` for
    an empty voter set, which is never approved. ``missing_voters`` lists
    voters without a valid signature, in roster order. Pure; safe to call
    concurrently.
    """

    valid, invalid = partition_signatures(signatures, voters, verifier)
    signed = {normalize_address(sig.signer) for sig in valid}
    missing = [voter for voter in voters if normalize_address(voter) not in signed]
    percentage = (len(valid) / voter_set_size * 100) if voter_set_size > 0 else 0.0

    summary: ReportSummary = {
        "total_signatures": len(signatures),
        "valid_signatures": len(valid),
        "required_signatures": required_count(voter_set_size, ratio),
        "percentage_complete": percentage,
        "is_approved": voter_set_size > 0
        and is_approved(len(valid), voter_set_size, ratio),
    }
    details: ReportDetails = {
        "valid_signatures": valid,
        "invalid_signatures": invalid,
        "missing_voters": missing,
    }
    return {"summary": summary, "details": details}
