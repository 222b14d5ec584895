"""Validation of amount and currency for payment sign-offs."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .models import PaymentTerms
from .settings import DEFAULT_CURRENCIES


@dataclass(frozen=True, slots=True)
class PaymentValidation:
    """Result of :func:`validate_payment_terms`; ``terms`` is set when valid."""

    is_valid: bool
    terms: PaymentTerms | None = None
    error: str | None = None


def validate_payment_terms(
    amount: object,
    currency: object,
    supported: Iterable[str] = DEFAULT_CURRENCIES,
) -> PaymentValidation:
    """Validate a submitted amount/currency pair.

    The amount must be a positive decimal and the currency a non-empty code
    from ``supported`` (compared case-insensitively).
    """

    if not isinstance(currency, str) or not currency.strip():
        return PaymentValidation(False, error="Currency is required")
    try:
        terms = PaymentTerms.of(amount, currency)
    except ValueError as exc:
        return PaymentValidation(False, error=str(exc))
    if terms.amount <= 0:
        return PaymentValidation(False, error="Payment amount must be greater than 0")
    if terms.currency not in {code.upper() for code in supported}:
        return PaymentValidation(False, error=f"Unsupported currency: {currency}")
    return PaymentValidation(True, terms=terms)
