"""Environment-backed settings primitives for :mod:`quorum_sign`."""

from __future__ import annotations

import logging
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

__all__ = ["QuorumSettings", "get_settings", "DEFAULT_CURRENCIES"]

DEFAULT_CURRENCIES: tuple[str, ...] = ("ETH", "USDC", "USDT", "DAI", "WETH")


class QuorumSettings(BaseSettings):
    """Expose environment-derived configuration knobs for the approval engine.

    Attributes:
        quorum_ratio: Fraction of the voter set whose signatures are required.
            The required count is ``ceil(voters * quorum_ratio)``.
        message_brand: Product name rendered in the header of signed messages.
        nonce_length: Number of hex characters kept from the nonce digest.
        supported_currencies: Currencies accepted for payment sign-offs.
        storage_dir: Directory opened by
            :meth:`JsonFileApprovalRepository.from_settings`. When unset
            callers must pass a root to the repository explicitly.
        log_level: Name of the logging level applied by the CLI.
    """

    quorum_ratio: float = Field(default=0.5, alias="QUORUM_SIGN_RATIO")
    message_brand: str = Field(default="SquadTrust", alias="QUORUM_SIGN_MESSAGE_BRAND")
    nonce_length: int = Field(default=16, alias="QUORUM_SIGN_NONCE_LENGTH")
    supported_currencies: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_CURRENCIES, alias="QUORUM_SIGN_CURRENCIES"
    )
    storage_dir: str | None = Field(default=None, alias="QUORUM_SIGN_STORAGE_DIR")
    log_level: str = Field(default="INFO", alias="QUORUM_SIGN_LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=None, extra="ignore", populate_by_name=True
    )

    @field_validator("quorum_ratio", mode="before")
    @classmethod
    def _parse_ratio(cls, value: object) -> float:
        """Parse the quorum ratio, falling back to a simple majority.

        Args:
            value: Raw environment value.

        Returns:
            A ratio in ``(0, 1]``; ``0.5`` when the input is malformed or
            out of range.
        """

        parsed: float | None = None
        if isinstance(value, (int, float)):
            parsed = float(value)
        elif isinstance(value, str):
            try:
                parsed = float(value.strip())
            except ValueError:
                parsed = None
        if parsed is None or not 0.0 < parsed <= 1.0:
            return 0.5
        return parsed

    @field_validator("nonce_length", mode="before")
    @classmethod
    def _parse_nonce_length(cls, value: object) -> int:
        """Parse the nonce length while tolerating malformed input."""

        parsed: int | None = None
        if isinstance(value, int):
            parsed = value
        elif isinstance(value, str):
            try:
                parsed = int(value.strip())
            except ValueError:
                parsed = None
        if parsed is None or not 8 <= parsed <= 64:
            return 16
        return parsed

    @field_validator("supported_currencies", mode="before")
    @classmethod
    def _parse_currencies(cls, value: object) -> tuple[str, ...]:
        """Accept a comma separated string or an iterable of currency codes."""

        if value is None or value == "":
            return DEFAULT_CURRENCIES
        if isinstance(value, str):
            items = value.split(",")
        elif isinstance(value, (list, tuple, set, frozenset)):
            items = [str(item) for item in value]
        else:
            return DEFAULT_CURRENCIES
        codes = tuple(item.strip().upper() for item in items if item.strip())
        return codes or DEFAULT_CURRENCIES

    @property
    def log_level_number(self) -> int:
        """Return the numeric logging level, defaulting to ``INFO``."""

        level = logging.getLevelName(self.log_level.strip().upper())
        return level if isinstance(level, int) else logging.INFO


def get_settings() -> QuorumSettings:
    """Return a :class:`QuorumSettings` instance.

    Returns:
        Settings parsed from environment variables.
    """

    return QuorumSettings()
