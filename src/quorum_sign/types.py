"""Type definitions for approval read-models."""

from __future__ import annotations

from typing import TypedDict

from .models import SignatureRecord


class ReportSummary(TypedDict):
    """Aggregate progress figures for one subject."""

    total_signatures: int
    valid_signatures: int
    required_signatures: int
    percentage_complete: float
    is_approved: bool


class ReportDetails(TypedDict):
    """Per-signature breakdown backing a :class:`ReportSummary`."""

    valid_signatures: list[SignatureRecord]
    invalid_signatures: list[SignatureRecord]
    missing_voters: list[str]


class SignatureReport(TypedDict):
    """Complete signature report for a subject."""

    summary: ReportSummary
    details: ReportDetails
