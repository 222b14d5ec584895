"""Quorum Sign - threshold signature approval for team and investor sign-offs."""

from __future__ import annotations

from importlib import import_module
from typing import Any, TYPE_CHECKING

__all__ = [
    "ApprovalEngine",
    "ApprovalProjection",
    "SubmissionResult",
    "ApprovalRecord",
    "ApprovalStatus",
    "SubjectKind",
    "RejectionReason",
    "SubjectNotFoundError",
    "InMemoryApprovalRepository",
    "JsonFileApprovalRepository",
    "build_message",
    "generate_nonce",
    "verify_signature",
]

if TYPE_CHECKING:
    from .engine import ApprovalEngine, ApprovalProjection, SubmissionResult
    from .errors import RejectionReason, SubjectNotFoundError
    from .messages import build_message
    from .models import ApprovalRecord, ApprovalStatus, SubjectKind
    from .nonce import generate_nonce
    from .repository import InMemoryApprovalRepository, JsonFileApprovalRepository
    from .verify import verify_signature


def __getattr__(name: str) -> Any:
    """Lazily import modules so ``eth_account`` loads only when needed."""

    module_map = {
        "ApprovalEngine": "engine",
        "ApprovalProjection": "engine",
        "SubmissionResult": "engine",
        "ApprovalRecord": "models",
        "ApprovalStatus": "models",
        "SubjectKind": "models",
        "RejectionReason": "errors",
        "SubjectNotFoundError": "errors",
        "InMemoryApprovalRepository": "repository",
        "JsonFileApprovalRepository": "repository",
        "build_message": "messages",
        "generate_nonce": "nonce",
        "verify_signature": "verify",
    }

    if name not in module_map:
        raise AttributeError(name)

    module = import_module(f".{module_map[name]}", __name__)
    return getattr(module, name)
