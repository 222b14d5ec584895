"""Voter set resolution for approval subjects."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Protocol, runtime_checkable

from .models import Subject, SubjectKind, normalize_address

LOGGER = logging.getLogger(__name__)


@runtime_checkable
class SubjectCatalog(Protocol):
    """Storage collaborator that knows subjects and team rosters."""

    def get_subject(self, subject_id: str) -> Subject | None:
        """Return the subject, or ``None`` when it does not exist."""

    def team_members(self, team_id: str) -> Iterable[str]:
        """Return the wallet addresses of the team's current members."""


def canonicalize_voters(addresses: Iterable[str]) -> tuple[str, ...]:
    """Lowercase and de-duplicate addresses, keeping first-seen order.

    Blank entries (members without a linked wallet) are dropped.
    """

    seen: dict[str, None] = {}
    for address in addresses:
        if not address or not address.strip():
            continue
        seen.setdefault(normalize_address(address), None)
    return tuple(seen)


class VoterSetResolver(ABC):
    """Produce the identities entitled to sign for a subject."""

    @abstractmethod
    def _raw_voters(self, subject: Subject) -> Iterable[str]:
        """Return the roster as supplied by storage, unnormalized."""

    def resolve_voters(self, subject: Subject) -> tuple[str, ...]:
        """Return the ordered, de-duplicated, lowercase voter set.

        Called on every read and write so quorum tracks the current roster.
        """

        voters = canonicalize_voters(self._raw_voters(subject))
        LOGGER.debug(
            "Resolved voter set",
            extra={
                "resolver": type(self).__name__,
                "subject_id": subject.subject_id,
                "voter_count": len(voters),
            },
        )
        return voters


class TeamVoterSetResolver(VoterSetResolver):
    """Voters are the current members of the subject's team."""

    def __init__(self, catalog: SubjectCatalog) -> None:
        self._catalog = catalog

    def _raw_voters(self, subject: Subject) -> Iterable[str]:
        return self._catalog.team_members(subject.team_id)


class InvestorVoterSetResolver(TeamVoterSetResolver):
    """Authorized investors for payment subjects.

    There is no investor registry yet, so the team roster stands in for the
    investor roster. Pass a different resolver for the payment kinds to
    :class:`~quorum_sign.engine.ApprovalEngine` once one exists.
    """


class StaticVoterSetResolver(VoterSetResolver):
    """Fixed voter lists keyed by subject identifier."""

    def __init__(self, voters_by_subject: Mapping[str, Iterable[str]]) -> None:
        self._voters = {key: tuple(value) for key, value in voters_by_subject.items()}

    def _raw_voters(self, subject: Subject) -> Iterable[str]:
        return self._voters.get(subject.subject_id, ())


def default_resolvers(catalog: SubjectCatalog) -> dict[SubjectKind, VoterSetResolver]:
    """Return the resolver used for each subject kind."""

    team = TeamVoterSetResolver(catalog)
    investors = InvestorVoterSetResolver(catalog)
    return {
        SubjectKind.PROJECT: team,
        SubjectKind.TASK: team,
        SubjectKind.FUNDING_PAYMENT: investors,
        SubjectKind.MILESTONE_PAYMENT: investors,
    }


class InMemorySubjectCatalog:
    """Dictionary-backed :class:`SubjectCatalog` for development and tests."""

    def __init__(self) -> None:
        self._subjects: dict[str, Subject] = {}
        self._teams: dict[str, list[str]] = {}

    def add_subject(self, subject: Subject) -> None:
        self._subjects[subject.subject_id] = subject

    def remove_subject(self, subject_id: str) -> None:
        self._subjects.pop(subject_id, None)

    def set_team(self, team_id: str, members: Iterable[str]) -> None:
        self._teams[team_id] = list(members)

    def add_member(self, team_id: str, address: str) -> None:
        self._teams.setdefault(team_id, []).append(address)

    def remove_member(self, team_id: str, address: str) -> None:
        target = normalize_address(address)
        self._teams[team_id] = [
            member
            for member in self._teams.get(team_id, [])
            if normalize_address(member) != target
        ]

    def get_subject(self, subject_id: str) -> Subject | None:
        return self._subjects.get(subject_id)

    def team_members(self, team_id: str) -> Iterable[str]:
        return tuple(self._teams.get(team_id, ()))
