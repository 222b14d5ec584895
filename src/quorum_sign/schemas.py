"""Pydantic models describing the persisted approval record layout."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .models import (
    ApprovalRecord,
    ApprovalStatus,
    PaymentTerms,
    SignatureRecord,
    SubjectKind,
    format_amount,
)

SchemaVersionLiteral = Literal["1.0.0"]
CURRENT_RECORD_SCHEMA_VERSION: SchemaVersionLiteral = "1.0.0"


class StoredSignature(BaseModel):
    """One signature as serialized inside an approval record."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    signer: str = Field(..., min_length=1, description="Lowercase signer address.")
    signature: str = Field(..., min_length=1, description="Hex signature bytes.")
    message: str = Field(..., description="Exact text that was signed.")
    timestamp: int = Field(..., ge=0, description="Acceptance time, epoch ms.")
    nonce: str = Field(..., min_length=1, description="Nonce embedded in the message.")
    amount: str | None = Field(
        default=None, description="Payment amount attested by the signer."
    )
    currency: str | None = Field(
        default=None, description="Payment currency attested by the signer."
    )

    @classmethod
    def from_domain(cls, record: SignatureRecord) -> StoredSignature:
        payment = record.payment
        return cls(
            signer=record.signer,
            signature=record.signature,
            message=record.message,
            timestamp=record.timestamp,
            nonce=record.nonce,
            amount=format_amount(payment.amount) if payment else None,
            currency=payment.currency if payment else None,
        )

    def to_domain(self) -> SignatureRecord:
        payment = (
            PaymentTerms(amount=Decimal(self.amount), currency=self.currency)
            if self.amount is not None and self.currency is not None
            else None
        )
        return SignatureRecord(
            signer=self.signer,
            signature=self.signature,
            message=self.message,
            timestamp=self.timestamp,
            nonce=self.nonce,
            payment=payment,
        )


class StoredApprovalRecord(BaseModel):
    """Versioned on-disk schema for one subject's approval record."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    schema_version: SchemaVersionLiteral = Field(
        default=CURRENT_RECORD_SCHEMA_VERSION,
        description="Semantic version of the stored record schema.",
    )
    subject_id: str = Field(..., min_length=1)
    subject_kind: SubjectKind
    parent_ids: dict[str, str] = Field(
        default_factory=dict,
        description="Foreign keys linking the record to its team and project.",
    )
    signatures: list[StoredSignature] = Field(
        default_factory=list, description="Accepted signatures in arrival order."
    )
    required_signatures: int = Field(..., ge=0)
    total_voters: int = Field(..., ge=0)
    status: ApprovalStatus
    amount: str | None = None
    currency: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, record: ApprovalRecord) -> StoredApprovalRecord:
        payment = record.payment
        return cls(
            subject_id=record.subject_id,
            subject_kind=record.subject_kind,
            parent_ids=dict(record.parent_ids),
            signatures=[StoredSignature.from_domain(sig) for sig in record.signatures],
            required_signatures=record.required_signatures,
            total_voters=record.total_voters,
            status=record.status,
            amount=format_amount(payment.amount) if payment else None,
            currency=payment.currency if payment else None,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    def to_domain(self) -> ApprovalRecord:
        payment = (
            PaymentTerms(amount=Decimal(self.amount), currency=self.currency)
            if self.amount is not None and self.currency is not None
            else None
        )
        return ApprovalRecord(
            subject_id=self.subject_id,
            subject_kind=self.subject_kind,
            total_voters=self.total_voters,
            required_signatures=self.required_signatures,
            signatures=tuple(sig.to_domain() for sig in self.signatures),
            status=self.status,
            created_at=self.created_at,
            updated_at=self.updated_at,
            parent_ids=dict(self.parent_ids),
            payment=payment,
        )


def load_record_json(text: str) -> ApprovalRecord:
    """Parse a stored JSON document into an :class:`ApprovalRecord`.

    Raises:
        RuntimeError: If the document violates :class:`StoredApprovalRecord`.
    """

    try:
        return StoredApprovalRecord.model_validate_json(text).to_domain()
    except ValidationError as exc:
        raise RuntimeError(
            "Approval record integrity failure: stored document violates the schema."
        ) from exc


def dump_record_json(record: ApprovalRecord) -> str:
    """Serialize ``record`` to the stored JSON document."""

    return StoredApprovalRecord.from_domain(record).model_dump_json(indent=2)
