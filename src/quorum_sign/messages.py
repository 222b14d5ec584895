"""Human-readable attestation messages that wallets are asked to sign.

Every field that participates in authorization (subject and parent
identifiers, titles, payment amount and currency, nonce) is rendered as a
``Label: value`` header line so a signature cannot be replayed against a
different subject, amount or currency, and so a wallet's confirmation dialog
shows exactly what is being approved.
"""

from __future__ import annotations

import hashlib
import json
import time
from collections.abc import Mapping
from decimal import Decimal
from typing import NamedTuple

from .models import (
    MilestonePaymentSubject,
    PaymentTerms,
    Subject,
    SubjectKind,
    format_amount,
)

__all__ = [
    "DEFAULT_BRAND",
    "SUBJECT_ID_LABELS",
    "build_message",
    "message_header",
    "message_headline",
    "build_subject_message",
    "parse_message_fields",
    "single_line",
    "subject_digest",
]

DEFAULT_BRAND = "SquadTrust"


class _Template(NamedTuple):
    action: str
    id_label: str
    statement: str
    confirmations: tuple[str, ...]


_TEMPLATES: dict[SubjectKind, _Template] = {
    SubjectKind.PROJECT: _Template(
        action="Project Approval",
        id_label="Project ID",
        statement="I approve this project for completion and delivery.",
        confirmations=(
            "I am a member of the team",
            "I have reviewed the project deliverables",
            "I approve the project for completion",
            "This signature is valid only for this specific project and timestamp",
        ),
    ),
    SubjectKind.TASK: _Template(
        action="Task Completion",
        id_label="Task ID",
        statement="I confirm this task has been completed satisfactorily.",
        confirmations=(
            "I am a member of the team",
            "I have reviewed the task completion",
            "I approve the task as completed",
            "This signature is valid only for this specific task and timestamp",
        ),
    ),
    SubjectKind.FUNDING_PAYMENT: _Template(
        action="Investor Payment Approval",
        id_label="Funding ID",
        statement="I approve this payment for project funding.",
        confirmations=(
            "I am an authorized investor for this project",
            "I have reviewed the project deliverables and milestones",
            "I approve the payment of {amount} for this project",
            "This signature is valid only for this specific payment and timestamp",
            "I understand this payment will be processed upon signature approval",
        ),
    ),
    SubjectKind.MILESTONE_PAYMENT: _Template(
        action="Milestone Payment Approval",
        id_label="Milestone ID",
        statement="I approve this payment for milestone completion.",
        confirmations=(
            "I am an authorized investor for this project",
            "I have reviewed the milestone completion criteria",
            "I approve the payment of {amount} for this milestone",
            "This signature is valid only for this specific milestone payment and timestamp",
            "I understand this payment will be processed upon signature approval",
        ),
    ),
}

SUBJECT_ID_LABELS: dict[SubjectKind, str] = {
    kind: template.id_label for kind, template in _TEMPLATES.items()
}

# Parent identifiers rendered after the subject identifier, in this order.
_PARENT_LABELS: tuple[tuple[str, str], ...] = (
    ("project_id", "Project ID"),
    ("team_id", "Team ID"),
)


def single_line(value: str) -> str:
    """Return ``value`` as it is rendered in a header line."""

    return value.replace("\r", " ").replace("\n", " ").strip()


def message_header(kind: SubjectKind, brand: str = DEFAULT_BRAND) -> str:
    """Return the first line of messages for ``kind``, e.g. ``"SquadTrust Task Completion"``."""

    return f"{single_line(brand)} {_TEMPLATES[kind].action}"


def message_headline(message: str) -> str:
    """Return the first non-blank line of ``message``, stripped."""

    for raw in message.splitlines():
        line = raw.strip()
        if line:
            return line
    return ""


def _header_lines(
    kind: SubjectKind,
    subject_id: str,
    parent_ids: Mapping[str, str],
    title: str,
    *,
    amount: Decimal | None,
    currency: str | None,
    project_title: str | None,
) -> list[tuple[str, str]]:
    template = _TEMPLATES[kind]
    lines: list[tuple[str, str]] = [(template.id_label, subject_id)]
    for key, label in _PARENT_LABELS:
        if label == template.id_label:
            continue
        value = parent_ids.get(key)
        if value:
            lines.append((label, value))

    if kind is SubjectKind.PROJECT:
        lines.append(("Project Title", title))
    elif kind is SubjectKind.TASK:
        lines.append(("Task Title", title))
    elif kind is SubjectKind.FUNDING_PAYMENT:
        lines.append(("Project Title", title))
    else:
        lines.append(("Project Title", project_title or ""))
        lines.append(("Milestone Title", title))

    if kind.is_payment:
        if amount is None or not currency:
            raise ValueError(f"{kind.value} messages require an amount and currency")
        lines.append(("Amount", f"{format_amount(amount)} {currency.upper()}"))
    return lines


def build_message(
    kind: SubjectKind,
    subject_id: str,
    parent_ids: Mapping[str, str],
    title: str,
    nonce: str,
    *,
    amount: Decimal | None = None,
    currency: str | None = None,
    project_title: str | None = None,
    timestamp: int | None = None,
    brand: str = DEFAULT_BRAND,
) -> str:
    """Build the exact text a wallet must sign to approve a subject.

    Args:
        kind: Subject kind selecting the template.
        subject_id: Identifier of the subject being approved.
        parent_ids: Linking identifiers (``project_id``, ``team_id``).
        title: Subject title (project, task or milestone title).
        nonce: Fresh token from :func:`quorum_sign.nonce.generate_nonce`.
        amount: Payment amount, required for payment kinds.
        currency: Payment currency code, required for payment kinds.
        project_title: Parent project title, used by milestone payments.
        timestamp: Epoch milliseconds; defaults to the current time.
        brand: Product name shown in the header line.

    Returns:
        The multi-line message. Identical inputs (including ``timestamp``)
        yield identical output.

    Raises:
        ValueError: If a payment kind is missing its amount or currency.
    """

    if timestamp is None:
        timestamp = int(time.time() * 1000)
    template = _TEMPLATES[kind]
    header = _header_lines(
        kind,
        subject_id,
        parent_ids,
        title,
        amount=amount,
        currency=currency,
        project_title=project_title,
    )
    header.append(("Nonce", nonce))
    header.append(("Timestamp", str(timestamp)))

    amount_label = (
        f"{format_amount(amount)} {currency.upper()}"
        if amount is not None and currency
        else ""
    )
    confirmations = [
        f"{index}. {line.format(amount=amount_label)}"
        for index, line in enumerate(template.confirmations, start=1)
    ]
    parts = [
        message_header(kind, brand),
        "",
        *(f"{label}: {single_line(value)}" for label, value in header),
        "",
        template.statement,
        "",
        "By signing this message, I confirm that:",
        *confirmations,
    ]
    return "\n".join(parts)


def build_subject_message(
    subject: Subject,
    nonce: str,
    *,
    timestamp: int | None = None,
    brand: str = DEFAULT_BRAND,
) -> str:
    """Render :func:`build_message` for a resolved subject."""

    terms: PaymentTerms | None = subject.payment
    project_title = (
        subject.project_title if isinstance(subject, MilestonePaymentSubject) else None
    )
    return build_message(
        subject.kind,
        subject.subject_id,
        subject.parent_ids,
        subject.title,
        nonce,
        amount=terms.amount if terms else None,
        currency=terms.currency if terms else None,
        project_title=project_title,
        timestamp=timestamp,
        brand=brand,
    )


def parse_message_fields(message: str) -> dict[str, str]:
    """Return the ``Label: value`` header fields of a signed message.

    Parsing stops at the first blank line following the header block, so the
    attestation text below it never shadows a header field. The first
    occurrence of a label wins. Values may be empty (``Project Title:``).
    """

    fields: dict[str, str] = {}
    in_header = False
    for raw in message.splitlines():
        line = raw.strip()
        if not line:
            if in_header:
                break
            continue
        label, sep, value = line.partition(":")
        if not sep or not label or label[0].isdigit():
            if in_header:
                break
            continue
        in_header = True
        fields.setdefault(label, value.strip())
    return fields


def subject_digest(subject: Subject, *, timestamp: int | None = None) -> str:
    """Return a SHA-256 digest over the subject's authorization fields.

    The digest is a compact fingerprint suitable for anchoring an approved
    subject elsewhere (for example in an on-chain call made by the caller).
    """

    data: dict[str, object] = {
        "kind": subject.kind.value,
        "subject_id": subject.subject_id,
        "title": subject.title,
        **subject.parent_ids,
        "timestamp": int(time.time() * 1000) if timestamp is None else timestamp,
    }
    if subject.payment is not None:
        data["amount"] = format_amount(subject.payment.amount)
        data["currency"] = subject.payment.currency
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=True)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

