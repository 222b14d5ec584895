"""Tests for voter set resolution."""

from __future__ import annotations

from quorum_sign.models import ProjectSubject, SubjectKind
from quorum_sign.voters import (
    InMemorySubjectCatalog,
    InvestorVoterSetResolver,
    StaticVoterSetResolver,
    SubjectCatalog,
    TeamVoterSetResolver,
    canonicalize_voters,
    default_resolvers,
)


def test_canonicalize_lowercases_dedupes_and_keeps_order() -> None:
    """Canonical rosters are lowercase, unique and ordered."""
    voters = canonicalize_voters(["0xBB", "0xaa", " 0xbb ", "", "0xAA", "0xcc"])
    assert voters == ("0xbb", "0xaa", "0xcc")


def test_team_resolver_reads_current_roster() -> None:
    """The team resolver sees roster changes immediately."""
    catalog = InMemorySubjectCatalog()
    catalog.set_team("t", ["0xA", "0xB"])
    subject = ProjectSubject(subject_id="p", team_id="t", title="x")
    resolver = TeamVoterSetResolver(catalog)

    assert resolver.resolve_voters(subject) == ("0xa", "0xb")
    catalog.add_member("t", "0xC")
    catalog.remove_member("t", "0xa")
    assert resolver.resolve_voters(subject) == ("0xb", "0xc")


def test_unknown_team_resolves_to_empty_set() -> None:
    """Unknown teams have no voters."""
    subject = ProjectSubject(subject_id="p", team_id="missing", title="x")
    assert TeamVoterSetResolver(InMemorySubjectCatalog()).resolve_voters(subject) == ()


def test_default_resolvers_use_investor_resolver_for_payments() -> None:
    """Payment kinds default to the investor resolver."""
    resolvers = default_resolvers(InMemorySubjectCatalog())
    assert isinstance(resolvers[SubjectKind.FUNDING_PAYMENT], InvestorVoterSetResolver)
    assert isinstance(resolvers[SubjectKind.MILESTONE_PAYMENT], InvestorVoterSetResolver)
    assert not isinstance(resolvers[SubjectKind.PROJECT], InvestorVoterSetResolver)


def test_static_resolver() -> None:
    """The static resolver serves a fixed mapping."""
    resolver = StaticVoterSetResolver({"p": ["0xAB", "0xab"]})
    subject = ProjectSubject(subject_id="p", team_id="t", title="x")
    assert resolver.resolve_voters(subject) == ("0xab",)


def test_in_memory_catalog_satisfies_protocol() -> None:
    """The in-memory catalog is a SubjectCatalog."""
    assert isinstance(InMemorySubjectCatalog(), SubjectCatalog)
