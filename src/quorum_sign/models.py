"""Domain types for subjects, collected signatures and approval records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import StrEnum
from typing import ClassVar

__all__ = [
    "SubjectKind",
    "ApprovalStatus",
    "PaymentTerms",
    "ProjectSubject",
    "TaskSubject",
    "FundingPaymentSubject",
    "MilestonePaymentSubject",
    "Subject",
    "SignatureRecord",
    "ApprovalRecord",
    "format_amount",
    "normalize_address",
]


class SubjectKind(StrEnum):
    """Discriminator for the entities whose approval is gated."""

    PROJECT = "project"
    TASK = "task"
    FUNDING_PAYMENT = "funding_payment"
    MILESTONE_PAYMENT = "milestone_payment"

    @property
    def is_payment(self) -> bool:
        return self in (SubjectKind.FUNDING_PAYMENT, SubjectKind.MILESTONE_PAYMENT)


class ApprovalStatus(StrEnum):
    """Lifecycle status of an approval record."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


def normalize_address(address: str) -> str:
    """Return the canonical (trimmed, lowercase) form of a wallet address."""

    return address.strip().lower()


def format_amount(amount: Decimal) -> str:
    """Render ``amount`` without exponent or trailing zeros (``100``, ``1.5``)."""

    return format(amount.normalize(), "f")


@dataclass(frozen=True, slots=True)
class PaymentTerms:
    """Amount and currency attached to payment subjects and their signatures."""

    amount: Decimal
    currency: str

    @classmethod
    def of(cls, amount: object, currency: str) -> PaymentTerms:
        """Build terms from loosely typed input.

        Raises:
            ValueError: If ``amount`` is not a finite decimal number.
        """

        if isinstance(amount, bool):
            raise ValueError("Payment amount must be a number")
        try:
            value = Decimal(str(amount).strip())
        except InvalidOperation as exc:
            raise ValueError(f"Payment amount is not a number: {amount!r}") from exc
        if not value.is_finite():
            raise ValueError(f"Payment amount is not finite: {amount!r}")
        return cls(amount=value, currency=currency.strip().upper())

    def matches(self, other: PaymentTerms) -> bool:
        """Compare terms numerically and case-insensitively."""

        return self.amount == other.amount and self.currency == other.currency.upper()

    def label(self) -> str:
        return f"{format_amount(self.amount)} {self.currency}"


@dataclass(frozen=True, slots=True)
class ProjectSubject:
    """Project completion sign-off by the owning team."""

    kind: ClassVar[SubjectKind] = SubjectKind.PROJECT

    subject_id: str
    team_id: str
    title: str

    @property
    def parent_ids(self) -> dict[str, str]:
        return {"team_id": self.team_id}

    @property
    def payment(self) -> PaymentTerms | None:
        return None


@dataclass(frozen=True, slots=True)
class TaskSubject:
    """Task or milestone completion sign-off by the project team."""

    kind: ClassVar[SubjectKind] = SubjectKind.TASK

    subject_id: str
    project_id: str
    team_id: str
    title: str

    @property
    def parent_ids(self) -> dict[str, str]:
        return {"project_id": self.project_id, "team_id": self.team_id}

    @property
    def payment(self) -> PaymentTerms | None:
        return None


@dataclass(frozen=True, slots=True)
class FundingPaymentSubject:
    """Investor release of a funding payment for a project.

    ``title`` is the title of the funded project.
    """

    kind: ClassVar[SubjectKind] = SubjectKind.FUNDING_PAYMENT

    subject_id: str
    project_id: str
    team_id: str
    title: str
    terms: PaymentTerms

    @property
    def parent_ids(self) -> dict[str, str]:
        return {"project_id": self.project_id, "team_id": self.team_id}

    @property
    def payment(self) -> PaymentTerms | None:
        return self.terms


@dataclass(frozen=True, slots=True)
class MilestonePaymentSubject:
    """Investor release of the payment attached to a milestone.

    ``title`` is the milestone title; ``project_title`` names the parent
    project in the signed message.
    """

    kind: ClassVar[SubjectKind] = SubjectKind.MILESTONE_PAYMENT

    subject_id: str
    project_id: str
    team_id: str
    title: str
    project_title: str
    terms: PaymentTerms

    @property
    def parent_ids(self) -> dict[str, str]:
        return {"project_id": self.project_id, "team_id": self.team_id}

    @property
    def payment(self) -> PaymentTerms | None:
        return self.terms


Subject = ProjectSubject | TaskSubject | FundingPaymentSubject | MilestonePaymentSubject


@dataclass(frozen=True, slots=True)
class SignatureRecord:
    """One accepted signature. Immutable once accepted."""

    signer: str
    signature: str
    message: str
    timestamp: int
    nonce: str
    payment: PaymentTerms | None = None

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "signer": self.signer,
            "signature": self.signature,
            "message": self.message,
            "timestamp": self.timestamp,
            "nonce": self.nonce,
        }
        if self.payment is not None:
            data["amount"] = format_amount(self.payment.amount)
            data["currency"] = self.payment.currency
        return data


@dataclass(frozen=True, slots=True)
class ApprovalRecord:
    """Quorum-tracking aggregate for one subject.

    Instances are replaced, never edited; :mod:`quorum_sign.state_machine`
    is the only producer of new versions.
    """

    subject_id: str
    subject_kind: SubjectKind
    total_voters: int
    required_signatures: int
    signatures: tuple[SignatureRecord, ...]
    status: ApprovalStatus
    created_at: datetime
    updated_at: datetime
    parent_ids: dict[str, str] = field(default_factory=dict)
    payment: PaymentTerms | None = None

    @property
    def signers(self) -> tuple[str, ...]:
        return tuple(sig.signer for sig in self.signatures)
