"""
Approval record storage with a per-subject serialization point.

The engine performs check-then-append sequences (uniqueness guard, then
write) inside :meth:`ApprovalRepository.locked`, so two concurrent
submissions for the same subject never both pass the guard. Operations on
different subjects do not contend.

:class:`JsonFileApprovalRepository` keeps one JSON document per subject and
uses an exclusive ``portalocker`` lock on a sibling ``.lock`` file, so the
serialization point also holds across processes. Documents are replaced
atomically through a temporary file, ``fsync`` and ``os.replace``.
"""

from __future__ import annotations

import hashlib
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import portalocker

from .models import ApprovalRecord
from .schemas import dump_record_json, load_record_json
from .settings import QuorumSettings, get_settings

logger = logging.getLogger(__name__)


class ApprovalRepository(ABC):
    """Persistence boundary for :class:`ApprovalRecord` aggregates."""

    @abstractmethod
    def get(self, subject_id: str) -> ApprovalRecord | None:
        """Return the stored record or ``None`` when none exists yet."""

    @abstractmethod
    def save(self, record: ApprovalRecord) -> None:
        """Persist ``record``, replacing any previous version."""

    @abstractmethod
    def delete(self, subject_id: str) -> None:
        """Drop the record; called when the owning subject is destroyed."""

    @abstractmethod
    @contextmanager
    def locked(self, subject_id: str) -> Iterator[None]:
        """Hold the per-subject serialization point for the ``with`` block."""


class InMemoryApprovalRepository(ApprovalRepository):
    """Process-local repository with one re-entrant lock per subject."""

    def __init__(self) -> None:
        self._records: dict[str, ApprovalRecord] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, subject_id: str) -> threading.RLock:
        with self._registry_lock:
            return self._locks.setdefault(subject_id, threading.RLock())

    def get(self, subject_id: str) -> ApprovalRecord | None:
        return self._records.get(subject_id)

    def save(self, record: ApprovalRecord) -> None:
        self._records[record.subject_id] = record

    def delete(self, subject_id: str) -> None:
        self._records.pop(subject_id, None)

    @contextmanager
    def locked(self, subject_id: str) -> Iterator[None]:
        with self._lock_for(subject_id):
            yield


def _fsync_directory(path: Path) -> None:
    """Durably flush directory metadata when supported by the platform."""
    if os.name == "nt":  # pragma: no cover - Windows does not need dir fsync
        return
    flags = getattr(os, "O_DIRECTORY", None)
    if flags is None:  # pragma: no cover - platform without O_DIRECTORY
        return
    fd = os.open(str(path), flags)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


class JsonFileApprovalRepository(ApprovalRepository):
    """One JSON document per subject under ``root``.

    File names are the SHA-256 of the subject identifier, so arbitrary
    identifiers never escape ``root``.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)
        # portalocker locks are per open file; threads in this process also
        # need to serialize against each other.
        self._thread_locks: dict[str, threading.RLock] = {}
        self._registry_lock = threading.Lock()
        self._held = threading.local()

    @classmethod
    def from_settings(
        cls, settings: QuorumSettings | None = None
    ) -> JsonFileApprovalRepository:
        """Open the repository at ``QUORUM_SIGN_STORAGE_DIR``.

        Raises:
            ValueError: If no storage directory is configured.
        """

        settings = settings or get_settings()
        if not settings.storage_dir or not settings.storage_dir.strip():
            raise ValueError(
                "No storage directory configured. Set QUORUM_SIGN_STORAGE_DIR."
            )
        return cls(Path(settings.storage_dir.strip()).expanduser())

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, subject_id: str) -> Path:
        digest = hashlib.sha256(subject_id.encode("utf-8")).hexdigest()
        return self._root / f"{digest}.json"

    def get(self, subject_id: str) -> ApprovalRecord | None:
        path = self.path_for(subject_id)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        return load_record_json(text)

    def save(self, record: ApprovalRecord) -> None:
        path = self.path_for(record.subject_id)
        temp_path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=str(self._root), delete=False, suffix=".tmp"
            ) as tmp:
                temp_path = Path(tmp.name)
                tmp.write(dump_record_json(record))
                tmp.flush()
                try:
                    os.fsync(tmp.fileno())
                except OSError as exc:
                    logger.warning(
                        "Failed to fsync approval record temp file",
                        extra={"error": str(exc), "subject_id": record.subject_id},
                    )
            os.replace(temp_path, path)
        except Exception:
            if temp_path is not None and temp_path.exists():
                temp_path.unlink(missing_ok=True)
            raise

        try:
            _fsync_directory(self._root)
        except OSError as exc:
            logger.warning(
                "Failed to fsync approval record directory",
                extra={"error": str(exc)},
            )

    def delete(self, subject_id: str) -> None:
        self.path_for(subject_id).unlink(missing_ok=True)

    def _thread_lock_for(self, subject_id: str) -> threading.RLock:
        with self._registry_lock:
            return self._thread_locks.setdefault(subject_id, threading.RLock())

    @contextmanager
    def locked(self, subject_id: str) -> Iterator[None]:
        held: set[str] = getattr(self._held, "subjects", None) or set()
        self._held.subjects = held
        with self._thread_lock_for(subject_id):
            if subject_id in held:
                # Re-entered on this thread; the file lock is already ours.
                yield
                return
            path = self.path_for(subject_id)
            lock_path = path.with_suffix(path.suffix + ".lock")
            with lock_path.open("a+b") as lock_fp:
                portalocker.lock(lock_fp, portalocker.LOCK_EX)
                held.add(subject_id)
                try:
                    yield
                finally:
                    held.discard(subject_id)
                    portalocker.unlock(lock_fp)
