"""Transitions of the approval record.

``PENDING`` is the initial state and the state after any removal.
``APPROVED`` is reached the moment the signature count meets quorum.
``REJECTED`` exists for subject-specific reject actions and is never produced
by these transitions.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime

from .models import (
    ApprovalRecord,
    ApprovalStatus,
    SignatureRecord,
    Subject,
    normalize_address,
)
from .quorum import DEFAULT_RATIO, is_approved, required_count


@dataclass(frozen=True, slots=True)
class Transition:
    """New record version plus whether this step flipped it to approved."""

    record: ApprovalRecord
    newly_approved: bool


def empty_record(
    subject: Subject, voter_count: int, now: datetime, ratio: float = DEFAULT_RATIO
) -> ApprovalRecord:
    """Return the record a subject has before its first accepted signature."""

    return ApprovalRecord(
        subject_id=subject.subject_id,
        subject_kind=subject.kind,
        total_voters=voter_count,
        required_signatures=required_count(voter_count, ratio),
        signatures=(),
        status=ApprovalStatus.PENDING,
        created_at=now,
        updated_at=now,
        parent_ids=dict(subject.parent_ids),
        payment=subject.payment,
    )


def apply_submission(
    record: ApprovalRecord | None,
    subject: Subject,
    signature: SignatureRecord,
    voter_count: int,
    now: datetime,
    ratio: float = DEFAULT_RATIO,
) -> Transition:
    """Append an admitted signature and recompute the status.

    The caller is responsible for authorization, verification and the
    uniqueness guard; this function only applies the transition. Voter count
    and required signatures are refreshed from the current roster.
    """

    base = record or empty_record(subject, voter_count, now, ratio)
    signatures = (*base.signatures, signature)
    approved = is_approved(len(signatures), voter_count, ratio)
    if approved:
        status = ApprovalStatus.APPROVED
    elif base.status is ApprovalStatus.REJECTED:
        status = ApprovalStatus.REJECTED
    else:
        status = ApprovalStatus.PENDING

    updated = replace(
        base,
        signatures=signatures,
        total_voters=voter_count,
        required_signatures=required_count(voter_count, ratio),
        status=status,
        updated_at=now,
    )
    newly_approved = approved and base.status is not ApprovalStatus.APPROVED
    return Transition(record=updated, newly_approved=newly_approved)


def apply_removal(
    record: ApprovalRecord,
    signer: str,
    voter_count: int,
    now: datetime,
    ratio: float = DEFAULT_RATIO,
) -> Transition:
    """Drop ``signer``'s signature and force the record back to ``PENDING``.

    The reset happens even when the remaining signatures still meet quorum,
    so any change requires re-confirmation.
    """

    target = normalize_address(signer)
    remaining = tuple(sig for sig in record.signatures if sig.signer != target)
    updated = replace(
        record,
        signatures=remaining,
        total_voters=voter_count,
        required_signatures=required_count(voter_count, ratio),
        status=ApprovalStatus.PENDING,
        updated_at=now,
    )
    return Transition(record=updated, newly_approved=False)
