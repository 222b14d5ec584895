"""Rejection taxonomy shared by the approval engine and its callers."""

from __future__ import annotations

from enum import StrEnum

__all__ = [
    "RejectionReason",
    "SubjectNotFoundError",
    "ApprovalRecordNotFoundError",
]


class RejectionReason(StrEnum):
    """Why a submission was refused.

    Every member is recoverable at the call site and is reported to the end
    user as a rejection with a reason string.
    """

    INVALID_INPUT = "invalid_input"
    UNAUTHORIZED = "unauthorized"
    INVALID_SIGNATURE = "invalid_signature"
    DUPLICATE_SIGNATURE = "duplicate_signature"
    SUBJECT_NOT_FOUND = "subject_not_found"
    VOTER_SET_EMPTY = "voter_set_empty"


class SubjectNotFoundError(LookupError):
    """Raised when the subject catalog cannot resolve a subject identifier."""

    reason = RejectionReason.SUBJECT_NOT_FOUND

    def __init__(self, subject_id: str, message: str | None = None) -> None:
        super().__init__(message or f"Subject '{subject_id}' not found")
        self.subject_id = subject_id


class ApprovalRecordNotFoundError(SubjectNotFoundError):
    """Raised when an operation needs an approval record that was never created."""

    def __init__(self, subject_id: str) -> None:
        super().__init__(
            subject_id, f"No signatures have been collected for '{subject_id}'"
        )
