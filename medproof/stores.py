"""
Storage for study commitments and generated proofs.

Stores are passed explicitly to the services that need them; the core
commitment and proof operations never touch storage.

Two implementations:
- InMemory*: process-local dictionaries guarded by an RLock
- Sqlite*: SQLite file with thread-local connections, WAL journal
"""

import json
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .commitment import CommitmentRecord
from .proof import Proof


class CommitmentStore(ABC):

    @abstractmethod
    def put(self, record: CommitmentRecord) -> None:
        ...

    @abstractmethod
    def get(self, commitment: str) -> Optional[CommitmentRecord]:
        ...


class ProofStore(ABC):

    @abstractmethod
    def put(self, proof: Proof) -> None:
        ...

    @abstractmethod
    def get(self, proof_hash: str) -> Optional[Proof]:
        ...

    @abstractmethod
    def list_hashes(self) -> List[str]:
        """Stored proof hashes, oldest first."""


def _record_from_dict(data: Dict[str, Any]) -> CommitmentRecord:
    return CommitmentRecord(
        commitment=data["commitment"],
        canonical_study=data["canonicalStudy"],
        timestamp=data["timestamp"],
        version=data["version"],
        study_id=data.get("studyId"),
    )


class InMemoryCommitmentStore(CommitmentStore):

    def __init__(self):
        self._lock = threading.RLock()
        self._records: Dict[str, CommitmentRecord] = {}

    def put(self, record: CommitmentRecord) -> None:
        with self._lock:
            self._records[record.commitment] = record

    def get(self, commitment: str) -> Optional[CommitmentRecord]:
        with self._lock:
            return self._records.get(commitment)


class InMemoryProofStore(ProofStore):

    def __init__(self):
        self._lock = threading.RLock()
        self._proofs: Dict[str, Proof] = {}

    def put(self, proof: Proof) -> None:
        with self._lock:
            self._proofs[proof.proof_hash] = proof

    def get(self, proof_hash: str) -> Optional[Proof]:
        with self._lock:
            return self._proofs.get(proof_hash)

    def list_hashes(self) -> List[str]:
        with self._lock:
            return list(self._proofs)


class _SqliteBase:
    """
    Thread-local SQLite connections over one database file.
    Connections are reused within the same thread.
    """

    SCHEMA: str = ""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._local = threading.local()
        with self._transaction() as conn:
            conn.executescript(self.SCHEMA)

    def _get_connection(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.path), check_same_thread=False)
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
            conn.row_factory = sqlite3.Row
            self._local.conn = conn
        return conn

    @contextmanager
    def _transaction(self):
        """Commits on success, rolls back on failure."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def close(self) -> None:
        """Close this thread's connection."""
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            conn.close()
            self._local.conn = None


class SqliteCommitmentStore(_SqliteBase, CommitmentStore):

    SCHEMA = """
    CREATE TABLE IF NOT EXISTS commitments (
        commitment TEXT PRIMARY KEY,
        study_id TEXT,
        record_json TEXT NOT NULL,
        created_at INTEGER DEFAULT (strftime('%s', 'now'))
    );
    CREATE INDEX IF NOT EXISTS idx_commitments_study ON commitments(study_id);
    """

    def put(self, record: CommitmentRecord) -> None:
        with self._transaction() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO commitments(commitment, study_id, record_json) VALUES(?,?,?)",
                (record.commitment, record.study_id, json.dumps(record.to_dict(), sort_keys=True))
            )

    def get(self, commitment: str) -> Optional[CommitmentRecord]:
        row = self._get_connection().execute(
            "SELECT record_json FROM commitments WHERE commitment=?",
            (commitment,)
        ).fetchone()
        if not row:
            return None
        return _record_from_dict(json.loads(row["record_json"]))


class SqliteProofStore(_SqliteBase, ProofStore):

    SCHEMA = """
    CREATE TABLE IF NOT EXISTS proofs (
        seq INTEGER PRIMARY KEY AUTOINCREMENT,
        proof_hash TEXT NOT NULL UNIQUE,
        overall_valid INTEGER NOT NULL,
        proof_json TEXT NOT NULL,
        created_at INTEGER DEFAULT (strftime('%s', 'now'))
    );
    """

    def put(self, proof: Proof) -> None:
        with self._transaction() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO proofs(proof_hash, overall_valid, proof_json) VALUES(?,?,?)",
                (proof.proof_hash, proof.overall_valid, json.dumps(proof.to_dict(), sort_keys=True))
            )

    def get(self, proof_hash: str) -> Optional[Proof]:
        row = self._get_connection().execute(
            "SELECT proof_json FROM proofs WHERE proof_hash=?",
            (proof_hash,)
        ).fetchone()
        if not row:
            return None
        return Proof.from_dict(json.loads(row["proof_json"]))

    def list_hashes(self) -> List[str]:
        rows = self._get_connection().execute(
            "SELECT proof_hash FROM proofs ORDER BY seq"
        ).fetchall()
        return [r["proof_hash"] for r in rows]
