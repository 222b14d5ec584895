"""
Personal-message signature verification and signing helpers.

Signatures follow the EIP-191 "personal sign" scheme used by wallets: the
message is prefixed with ``"\\x19Ethereum Signed Message:\\n<len>"`` before
hashing, and the signer's address is recovered from the 65-byte
``r || s || v`` signature.

Provides:
- verify_signature(message, signature, claimed_signer): recover and compare
- recover_signer(message, signature): recover the lowercase address
- PersonalSigner(private_key): sign messages the way a wallet would
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from eth_account import Account
from eth_account.messages import encode_defunct

from .models import normalize_address

logger = logging.getLogger(__name__)

SIGNATURE_LENGTH = 65


@dataclass(frozen=True, slots=True)
class VerificationResult:
    """Outcome of a signature check.

    ``recovered_signer`` is the lowercase recovered address, or ``""`` when
    recovery failed; ``error`` explains failures and is ``None`` otherwise.
    """

    is_valid: bool
    recovered_signer: str
    error: str | None = None


def signature_bytes(signature: str | bytes) -> bytes:
    """Decode a ``0x``-prefixed (or bare) hex signature into raw bytes.

    Raises:
        ValueError: If the signature is not hex or not 65 bytes long.
        TypeError: If the signature is neither text nor bytes.
    """

    if isinstance(signature, (bytes, bytearray)):
        raw = bytes(signature)
    elif not isinstance(signature, str):
        raise TypeError("Signature must be a hex string or bytes")
    else:
        text = signature.strip()
        if text.startswith(("0x", "0X")):
            text = text[2:]
        try:
            raw = bytes.fromhex(text)
        except ValueError as exc:
            raise ValueError("Signature is not valid hex") from exc
    if len(raw) != SIGNATURE_LENGTH:
        raise ValueError(
            f"Signature must be {SIGNATURE_LENGTH} bytes, got {len(raw)}"
        )
    return raw


def recover_signer(message: str, signature: str | bytes) -> str:
    """Recover the lowercase address that signed ``message``.

    Raises:
        ValueError: If the signature is malformed or recovery fails.
    """

    raw = signature_bytes(signature)
    try:
        recovered = Account.recover_message(encode_defunct(text=message), signature=raw)
    except Exception as exc:
        raise ValueError(f"Signature recovery failed: {exc}") from exc
    return normalize_address(recovered)


def verify_signature(
    message: str, signature: str | bytes, claimed_signer: str
) -> VerificationResult:
    """
    Check that ``signature`` over ``message`` was produced by ``claimed_signer``.

    Never raises: malformed input, wrong length and recovery failures are
    reported through :class:`VerificationResult`.
    """
    if not isinstance(message, str) or not message:
        return VerificationResult(False, "", "Message is empty")
    if not isinstance(claimed_signer, str) or not claimed_signer.strip():
        return VerificationResult(False, "", "Claimed signer is empty")
    try:
        recovered = recover_signer(message, signature)
    except (ValueError, TypeError) as exc:
        logger.debug("Signature recovery failed", extra={"error": str(exc)})
        return VerificationResult(False, "", str(exc))

    if recovered != normalize_address(claimed_signer):
        return VerificationResult(
            False, recovered, "Recovered signer does not match claimed signer"
        )
    return VerificationResult(True, recovered)


class PersonalSigner:
    """
    Produce personal-message signatures from a secp256k1 private key.

    Args:
    ----
        private_key: 32-byte key as bytes or hex string. When ``None`` a
            random key is generated if ``ephemeral=True``; otherwise a
            :class:`ValueError` is raised.
        ephemeral: Allow generating a throwaway key, for tests and demos.

    Attributes:
    ----------
        address: Lowercase address of the key.

    """

    def __init__(
        self, private_key: bytes | str | None = None, ephemeral: bool = False
    ) -> None:
        if private_key is None:
            if not ephemeral:
                raise ValueError(
                    "private_key is required. Set ephemeral=True to generate a throwaway key."
                )
            account = Account.create()
        else:
            account = Account.from_key(private_key)
        self._account = account
        self.address = normalize_address(account.address)

    def sign(self, message: str) -> str:
        """Return the ``0x``-prefixed hex signature of ``message``."""

        signed = self._account.sign_message(encode_defunct(text=message))
        return "0x" + bytes(signed.signature).hex()
