"""
Append-only storage for waitlist signups.

Every backend exposes the same small surface so the signup workflow does not
care where records land. Callers wrap the duplicate check, the capacity check
and the append in ``locked()``; inside it no other writer (thread or process)
can interleave.
"""
import csv
import fcntl
import logging
import os
import shutil
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from kenz_waitlist.core.config import settings
from kenz_waitlist.core.database import Base, get_engine
from kenz_waitlist.core.exceptions import DuplicateSignupError
from kenz_waitlist.models.waitlist_entry import WaitlistEntry
from kenz_waitlist.schemas.waitlist import LEDGER_COLUMNS, SignupRecord

logger = logging.getLogger(__name__)


class LedgerStore(ABC):
    """Interface shared by all ledger backends."""

    @abstractmethod
    def locked(self):
        """Context manager holding the ledger's exclusive write lock."""

    @abstractmethod
    def exists(self, email: str) -> bool:
        ...

    @abstractmethod
    def append(self, record: SignupRecord) -> int:
        """Persist ``record`` and return its 1-based position."""

    @abstractmethod
    def count(self) -> int:
        ...

    @abstractmethod
    def size_bytes(self) -> int:
        ...


class CsvLedger(LedgerStore):
    """Ledger kept as a CSV file with a header row.

    Writers are serialized by a thread lock plus ``flock`` on a sidecar
    ``.lock`` file, so separate worker processes sharing the file are safe too.
    """

    def __init__(self, path):
        self.path = Path(path)
        self.lock_path = self.path.with_name(self.path.name + ".lock")
        self._thread_lock = threading.Lock()

    @contextmanager
    def locked(self) -> Iterator["CsvLedger"]:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._thread_lock:
            with open(self.lock_path, "a") as lock_file:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
                try:
                    yield self
                finally:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _rows(self) -> List[List[str]]:
        if not self.path.exists():
            return []
        with open(self.path, newline="", encoding="utf-8") as fh:
            rows = [row for row in csv.reader(fh) if row]
        if rows and rows[0] == LEDGER_COLUMNS:
            rows = rows[1:]
        return rows

    def exists(self, email: str) -> bool:
        return any(row[0] == email for row in self._rows())

    def count(self) -> int:
        return len(self._rows())

    def size_bytes(self) -> int:
        try:
            return self.path.stat().st_size
        except FileNotFoundError:
            return 0

    def append(self, record: SignupRecord) -> int:
        write_header = self.size_bytes() == 0
        with open(self.path, "a", newline="", encoding="utf-8") as fh:
            writer = csv.writer(fh)
            if write_header:
                writer.writerow(LEDGER_COLUMNS)
            writer.writerow(record.to_row())
            fh.flush()
            os.fsync(fh.fileno())
        return self.count()

    def rotate(self, archive_dir) -> Optional[Path]:
        """Move the current ledger into ``archive_dir``; returns the archive path.

        Returns None when there is nothing to archive. The next signup starts a
        fresh file with a new header.
        """
        archive_dir = Path(archive_dir)
        with self.locked():
            if self.count() == 0:
                return None
            archive_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
            target = archive_dir / f"{self.path.stem}-{stamp}{self.path.suffix}"
            suffix = 1
            while target.exists():
                target = archive_dir / f"{self.path.stem}-{stamp}-{suffix}{self.path.suffix}"
                suffix += 1
            shutil.move(str(self.path), str(target))
        logger.info(f"Archived waitlist ledger to {target}")
        return target


class SqlLedger(LedgerStore):
    """Ledger kept in the ``waitlist_entries`` table.

    The unique email constraint backs up the in-process lock when several
    processes write to the same database.
    """

    def __init__(self, engine=None):
        engine = engine if engine is not None else get_engine()
        Base.metadata.create_all(bind=engine, tables=[WaitlistEntry.__table__])
        self._session_factory = sessionmaker(autoflush=False, bind=engine)
        self._lock = threading.Lock()

    @contextmanager
    def locked(self) -> Iterator["SqlLedger"]:
        with self._lock:
            yield self

    def exists(self, email: str) -> bool:
        with self._session_factory() as db:
            return db.query(WaitlistEntry.id).filter(WaitlistEntry.email == email).first() is not None

    def count(self) -> int:
        with self._session_factory() as db:
            return db.query(func.count(WaitlistEntry.id)).scalar() or 0

    def size_bytes(self) -> int:
        row_length = (
            func.length(WaitlistEntry.email)
            + func.length(WaitlistEntry.timestamp)
            + func.length(WaitlistEntry.source)
            + func.length(WaitlistEntry.ip_address)
            + func.length(WaitlistEntry.user_agent)
        )
        with self._session_factory() as db:
            return int(db.query(func.coalesce(func.sum(row_length), 0)).scalar())

    def append(self, record: SignupRecord) -> int:
        with self._session_factory() as db:
            db.add(WaitlistEntry(
                email=record.email,
                timestamp=record.submitted_at,
                source=record.source,
                ip_address=record.client_address,
                user_agent=record.agent_string,
            ))
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                raise DuplicateSignupError(record.email)
        return self.count()


_ledger: Optional[LedgerStore] = None


def build_ledger(backend: str = None) -> LedgerStore:
    backend = (backend or settings.LEDGER_BACKEND).lower()
    if backend == "csv":
        return CsvLedger(settings.LEDGER_PATH)
    if backend == "sql":
        return SqlLedger()
    raise ValueError(f"Unknown ledger backend: {backend}")


def get_ledger() -> LedgerStore:
    """Process-wide ledger for the configured backend."""
    global _ledger
    if _ledger is None:
        _ledger = build_ledger()
        logger.info(f"Waitlist ledger backend: {type(_ledger).__name__}")
    return _ledger
