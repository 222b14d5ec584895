"""Pytest configuration and fixtures."""

from __future__ import annotations

import os
import sys
from datetime import datetime, timezone
from decimal import Decimal

import pytest

# Ensure src/ is on sys.path for tests so the src layout is used during test runs
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from quorum_sign.engine import ApprovalEngine  # noqa: E402
from quorum_sign.models import (  # noqa: E402
    FundingPaymentSubject,
    MilestonePaymentSubject,
    PaymentTerms,
    ProjectSubject,
    TaskSubject,
)
from quorum_sign.repository import InMemoryApprovalRepository  # noqa: E402
from quorum_sign.settings import QuorumSettings  # noqa: E402
from quorum_sign.verify import PersonalSigner  # noqa: E402
from quorum_sign.voters import InMemorySubjectCatalog  # noqa: E402

# Deterministic test keys; never use outside tests.
MEMBER_KEYS = [bytes([index]) * 32 for index in range(1, 6)]
OUTSIDER_KEY = bytes([0x42]) * 32
FIXED_NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def members() -> list[PersonalSigner]:
    """Four team members with deterministic keys."""

    return [PersonalSigner(key) for key in MEMBER_KEYS[:4]]


@pytest.fixture
def outsider() -> PersonalSigner:
    return PersonalSigner(OUTSIDER_KEY)


@pytest.fixture
def settings() -> QuorumSettings:
    return QuorumSettings()


@pytest.fixture
def catalog(members: list[PersonalSigner]) -> InMemorySubjectCatalog:
    """Catalog with one team and a subject of every kind."""

    catalog = InMemorySubjectCatalog()
    # Mixed case checks that rosters are canonicalized.
    catalog.set_team("team-1", [member.address.upper().replace("0X", "0x") for member in members])
    catalog.set_team("team-empty", [])
    catalog.add_subject(ProjectSubject(subject_id="proj-1", team_id="team-1", title="Wallet"))
    catalog.add_subject(
        TaskSubject(subject_id="task-1", project_id="proj-1", team_id="team-1", title="API")
    )
    catalog.add_subject(
        FundingPaymentSubject(
            subject_id="fund-1",
            project_id="proj-1",
            team_id="team-1",
            title="Wallet",
            terms=PaymentTerms(amount=Decimal("1.5"), currency="ETH"),
        )
    )
    catalog.add_subject(
        MilestonePaymentSubject(
            subject_id="ms-1",
            project_id="proj-1",
            team_id="team-1",
            title="Beta release",
            project_title="Wallet",
            terms=PaymentTerms(amount=Decimal("250"), currency="USDC"),
        )
    )
    catalog.add_subject(ProjectSubject(subject_id="proj-empty", team_id="team-empty", title="Ghost"))
    return catalog


@pytest.fixture
def repository() -> InMemoryApprovalRepository:
    return InMemoryApprovalRepository()


@pytest.fixture
def approved_events() -> list[tuple[str, int]]:
    return []


@pytest.fixture
def engine(
    catalog: InMemorySubjectCatalog,
    repository: InMemoryApprovalRepository,
    settings: QuorumSettings,
    approved_events: list[tuple[str, int]],
) -> ApprovalEngine:
    """Engine whose approval hook records ``(subject_id, signature_count)``."""

    return ApprovalEngine(
        catalog,
        repository,
        settings=settings,
        on_approved=lambda subject, record: approved_events.append(
            (subject.subject_id, len(record.signatures))
        ),
        clock=lambda: FIXED_NOW,
    )
