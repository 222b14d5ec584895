"""Threshold signature approval engine.

One engine serves every subject kind. Callers resolve a subject, ask
:meth:`ApprovalEngine.build_message` for the exact text to sign, obtain a
wallet signature out of band, then call :meth:`ApprovalEngine.submit`. The
engine verifies the signature, checks the signer against the current voter
set, applies the uniqueness guard under the repository's per-subject lock,
appends the signature and reports whether quorum was newly reached.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .errors import ApprovalRecordNotFoundError, RejectionReason, SubjectNotFoundError
from .guard import find_conflict
from .logging_pipeline import subject_logger
from .messages import (
    SUBJECT_ID_LABELS,
    build_subject_message,
    message_header,
    message_headline,
    parse_message_fields,
    single_line,
)
from .models import (
    ApprovalRecord,
    ApprovalStatus,
    PaymentTerms,
    SignatureRecord,
    Subject,
    SubjectKind,
    normalize_address,
)
from .nonce import generate_nonce
from .payments import validate_payment_terms
from .quorum import required_count
from .report import Verifier, build_report
from .repository import ApprovalRepository
from .settings import QuorumSettings, get_settings
from .state_machine import apply_removal, apply_submission
from .types import SignatureReport
from .verify import verify_signature
from .voters import SubjectCatalog, VoterSetResolver, default_resolvers

LOGGER = logging.getLogger(__name__)

ApprovalHook = Callable[[Subject, ApprovalRecord], None]


@dataclass(frozen=True, slots=True)
class ApprovalProjection:
    """Read-model returned by :meth:`ApprovalEngine.status` and friends.

    ``status`` is the stored lifecycle status; ``report["summary"]
    ["is_approved"]`` is recomputed from the signatures that still verify
    against the current roster. Before the first signature the projection
    describes a virtual empty record with ``exists`` set to ``False``.
    ``signatures`` holds every stored signature; ``valid_signatures`` only
    those counted toward quorum.
    """

    subject_id: str
    subject_kind: SubjectKind
    parent_ids: dict[str, str]
    status: ApprovalStatus
    total_voters: int
    required_signatures: int
    voters: tuple[str, ...]
    report: SignatureReport
    payment: PaymentTerms | None = None
    exists: bool = True
    signatures: tuple[SignatureRecord, ...] = ()

    @property
    def is_approved(self) -> bool:
        return self.report["summary"]["is_approved"]

    @property
    def percentage_complete(self) -> float:
        return self.report["summary"]["percentage_complete"]

    @property
    def valid_signatures(self) -> tuple[SignatureRecord, ...]:
        return tuple(self.report["details"]["valid_signatures"])

    @property
    def missing_voters(self) -> tuple[str, ...]:
        return tuple(self.report["details"]["missing_voters"])


@dataclass(frozen=True, slots=True)
class SubmissionResult:
    """Outcome of :meth:`ApprovalEngine.submit`.

    Rejections carry a :class:`~quorum_sign.errors.RejectionReason` and a
    human-readable ``detail``; the stored record is untouched in that case.
    """

    accepted: bool
    projection: ApprovalProjection
    reason: RejectionReason | None = None
    detail: str | None = None
    newly_approved: bool = False
    signature: SignatureRecord | None = field(default=None, repr=False)


class ApprovalEngine:
    """Collect signatures for subjects and gate approval on quorum.

    Args:
        catalog: Storage collaborator resolving subjects and team rosters.
        repository: Approval record storage providing per-subject locking.
        resolvers: Voter set resolver per subject kind; defaults to team
            rosters for every kind (investor subjects reuse the team roster).
        settings: Engine configuration; read from the environment if omitted.
        verifier: Signature verification function.
        on_approved: Called once, after commit, when a submission flips a
            record to ``APPROVED``. It must be idempotent; see the module
            docstring of :mod:`quorum_sign.repository`.
        clock: Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        catalog: SubjectCatalog,
        repository: ApprovalRepository,
        *,
        resolvers: Mapping[SubjectKind, VoterSetResolver] | None = None,
        settings: QuorumSettings | None = None,
        verifier: Verifier = verify_signature,
        on_approved: ApprovalHook | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._catalog = catalog
        self._repository = repository
        self._resolvers = dict(default_resolvers(catalog))
        if resolvers:
            self._resolvers.update(resolvers)
        self._settings = settings or get_settings()
        self._verifier = verifier
        self._on_approved = on_approved
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def settings(self) -> QuorumSettings:
        return self._settings

    # -- lookups -----------------------------------------------------------

    def _subject(self, subject_id: str) -> Subject:
        subject = self._catalog.get_subject(subject_id)
        if subject is None:
            raise SubjectNotFoundError(subject_id)
        return subject

    def resolve_voters(self, subject: Subject) -> tuple[str, ...]:
        """Return the current voter set for ``subject``."""

        return self._resolvers[subject.kind].resolve_voters(subject)

    def _project(
        self,
        subject: Subject,
        record: ApprovalRecord | None,
        voters: tuple[str, ...],
    ) -> ApprovalProjection:
        ratio = self._settings.quorum_ratio
        report = build_report(
            record.signatures if record else (),
            voters,
            len(voters),
            verifier=self._verifier,
            ratio=ratio,
        )
        return ApprovalProjection(
            subject_id=subject.subject_id,
            subject_kind=subject.kind,
            parent_ids=dict(subject.parent_ids),
            status=record.status if record else ApprovalStatus.PENDING,
            total_voters=len(voters),
            required_signatures=required_count(len(voters), ratio),
            voters=voters,
            report=report,
            payment=subject.payment,
            exists=record is not None,
            signatures=record.signatures if record else (),
        )

    # -- public operations -------------------------------------------------

    def status(self, subject_id: str) -> ApprovalProjection:
        """Return the current projection for ``subject_id``.

        Raises:
            SubjectNotFoundError: If the catalog does not know the subject.
        """

        subject = self._subject(subject_id)
        voters = self.resolve_voters(subject)
        return self._project(subject, self._repository.get(subject_id), voters)

    def build_message(
        self,
        subject_id: str,
        nonce: str | None = None,
        *,
        timestamp: int | None = None,
    ) -> str:
        """Return the text a voter's wallet must sign for ``subject_id``.

        A fresh nonce is generated when none is given.

        Raises:
            SubjectNotFoundError: If the catalog does not know the subject.
        """

        subject = self._subject(subject_id)
        return build_subject_message(
            subject,
            nonce or generate_nonce(self._settings.nonce_length),
            timestamp=timestamp,
            brand=self._settings.message_brand,
        )

    def submit(
        self,
        subject_id: str,
        signer: str,
        signature: str,
        message: str,
        *,
        amount: object | None = None,
        currency: str | None = None,
    ) -> SubmissionResult:
        """Verify and record one voter's signature.

        Raises:
            SubjectNotFoundError: If the catalog does not know the subject.
        """

        log = subject_logger(LOGGER, subject_id)

        def reject(
            reason: RejectionReason,
            detail: str,
            projection: ApprovalProjection,
        ) -> SubmissionResult:
            log.info(
                "Signature rejected",
                extra={"signer": signer, "reason": reason.value, "detail": detail},
            )
            return SubmissionResult(
                accepted=False, projection=projection, reason=reason, detail=detail
            )

        subject = self._subject(subject_id)
        voters = self.resolve_voters(subject)

        def current() -> ApprovalProjection:
            return self._project(subject, self._repository.get(subject_id), voters)

        if not signer or not signature or not message:
            return reject(
                RejectionReason.INVALID_INPUT,
                "Missing required fields: signer, signature, message",
                current(),
            )

        terms: PaymentTerms | None = None
        if subject.kind.is_payment:
            if amount is None or not currency:
                return reject(
                    RejectionReason.INVALID_INPUT,
                    "Missing required fields: amount, currency",
                    current(),
                )
            validation = validate_payment_terms(
                amount, currency, self._settings.supported_currencies
            )
            if not validation.is_valid or validation.terms is None:
                return reject(
                    RejectionReason.INVALID_INPUT,
                    validation.error or "Invalid payment terms",
                    current(),
                )
            terms = validation.terms
            expected = subject.payment
            if expected is not None and not expected.matches(terms):
                return reject(
                    RejectionReason.INVALID_INPUT,
                    f"Payment terms {terms.label()} do not match {expected.label()}",
                    current(),
                )

        canonical_signer = normalize_address(signer)
        if canonical_signer not in voters:
            if not voters:
                return reject(
                    RejectionReason.UNAUTHORIZED,
                    f"{RejectionReason.VOTER_SET_EMPTY.value}: subject has no authorized voters",
                    current(),
                )
            return reject(
                RejectionReason.UNAUTHORIZED,
                "Signer is not in the voter set for this subject",
                current(),
            )

        fields = parse_message_fields(message)
        binding_error = self._check_binding(subject, message, fields, terms)
        if binding_error is not None:
            return reject(RejectionReason.INVALID_INPUT, binding_error, current())

        verification = self._verifier(message, signature, canonical_signer)
        if not verification.is_valid:
            return reject(
                RejectionReason.INVALID_SIGNATURE,
                verification.error or "Invalid signature",
                current(),
            )

        candidate = SignatureRecord(
            signer=canonical_signer,
            signature=signature.strip(),
            message=message,
            timestamp=int(self._clock().timestamp() * 1000),
            nonce=fields["Nonce"],
            payment=terms,
        )

        with self._repository.locked(subject_id):
            record = self._repository.get(subject_id)
            conflict = find_conflict(candidate, record.signatures if record else ())
            if conflict is not None:
                projection = self._project(subject, record, voters)
                return reject(
                    RejectionReason.DUPLICATE_SIGNATURE,
                    f"Signature already exists or signer has already signed ({conflict.value})",
                    projection,
                )
            transition = apply_submission(
                record,
                subject,
                candidate,
                len(voters),
                self._clock(),
                self._settings.quorum_ratio,
            )
            self._repository.save(transition.record)

        log.info(
            "Signature accepted",
            extra={
                "signer": canonical_signer,
                "signature_count": len(transition.record.signatures),
                "required_signatures": transition.record.required_signatures,
                "status": transition.record.status.value,
            },
        )
        if transition.newly_approved:
            log.info("Quorum reached", extra={"subject_kind": subject.kind.value})
            if self._on_approved is not None:
                self._on_approved(subject, transition.record)

        return SubmissionResult(
            accepted=True,
            projection=self._project(subject, transition.record, voters),
            newly_approved=transition.newly_approved,
            signature=candidate,
        )

    def remove(self, subject_id: str, signer: str) -> ApprovalProjection:
        """Remove ``signer``'s signature and reset the record to ``PENDING``.

        Administrative operation; the caller decides who may invoke it.

        Raises:
            SubjectNotFoundError: If the catalog does not know the subject.
            ApprovalRecordNotFoundError: If no signatures were ever collected.
            ValueError: If ``signer`` is empty.
        """

        if not signer or not signer.strip():
            raise ValueError("Missing wallet address")
        subject = self._subject(subject_id)
        voters = self.resolve_voters(subject)
        with self._repository.locked(subject_id):
            record = self._repository.get(subject_id)
            if record is None:
                raise ApprovalRecordNotFoundError(subject_id)
            transition = apply_removal(
                record,
                signer,
                len(voters),
                self._clock(),
                self._settings.quorum_ratio,
            )
            self._repository.save(transition.record)

        subject_logger(LOGGER, subject_id).info(
            "Signature removed",
            extra={
                "signer": normalize_address(signer),
                "signature_count": len(transition.record.signatures),
            },
        )
        return self._project(subject, transition.record, voters)

    # -- helpers -----------------------------------------------------------

    def _check_binding(
        self,
        subject: Subject,
        message: str,
        fields: Mapping[str, str],
        terms: PaymentTerms | None,
    ) -> str | None:
        """Return why ``message`` does not bind to ``subject``, or ``None``."""

        header = message_header(subject.kind, self._settings.message_brand)
        if message_headline(message) != header:
            return f"Signed message is not a {header} message"
        id_label = SUBJECT_ID_LABELS[subject.kind]
        # Parent links reuse "Project ID"; every other kind's ID label is foreign.
        for kind, label in SUBJECT_ID_LABELS.items():
            if kind is not subject.kind and label != id_label and label != "Project ID":
                if label in fields:
                    return f"Signed message references {label} {fields[label]}"
        subject_id = single_line(subject.subject_id)
        if fields.get(id_label) != subject_id:
            return f"Signed message does not reference {id_label} {subject_id}"
        for key, label in (("project_id", "Project ID"), ("team_id", "Team ID")):
            expected = single_line(subject.parent_ids.get(key) or "")
            if label == id_label or not expected:
                continue
            if fields.get(label) != expected:
                return f"Signed message does not reference {label} {expected}"
        if not fields.get("Nonce"):
            return "Signed message does not carry a nonce"
        if terms is not None:
            attested = fields.get("Amount", "")
            amount_text, _, currency_text = attested.partition(" ")
            try:
                message_terms = PaymentTerms.of(amount_text, currency_text)
            except ValueError:
                return "Signed message does not state a valid amount"
            if not message_terms.matches(terms):
                return (
                    f"Signed message attests {message_terms.label()}, "
                    f"submission claims {terms.label()}"
                )
        return None
