"""Uniqueness and replay checks for incoming signatures."""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum

from .models import SignatureRecord, normalize_address


class GuardConflict(StrEnum):
    """Which uniqueness rule an incoming signature violates."""

    SIGNATURE_REUSED = "signature_reused"
    SIGNER_ALREADY_SIGNED = "signer_already_signed"
    NONCE_REUSED = "nonce_reused"


def _signature_key(signature: str) -> str:
    text = signature.strip().lower()
    return text[2:] if text.startswith("0x") else text


def find_conflict(
    new: SignatureRecord, existing: Iterable[SignatureRecord]
) -> GuardConflict | None:
    """Return the first rule ``new`` breaks against ``existing``, if any.

    Rules, checked in order:

    1. the exact signature bytes were already accepted;
    2. the signer already signed (one signer, one signature, ever);
    3. the nonce was already used, even by a different signer.
    """

    existing = tuple(existing)
    new_key = _signature_key(new.signature)
    if any(_signature_key(sig.signature) == new_key for sig in existing):
        return GuardConflict.SIGNATURE_REUSED
    signer = normalize_address(new.signer)
    if any(normalize_address(sig.signer) == signer for sig in existing):
        return GuardConflict.SIGNER_ALREADY_SIGNED
    if any(sig.nonce == new.nonce for sig in existing):
        return GuardConflict.NONCE_REUSED
    return None


def admit(new: SignatureRecord, existing: Iterable[SignatureRecord]) -> bool:
    """Return ``True`` when ``new`` may be appended to ``existing``."""

    return find_conflict(new, existing) is None
