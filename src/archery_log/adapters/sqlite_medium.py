"""SQLite-backed durable key-value medium."""

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from archery_log.domain.errors import StorageError
from archery_log.services.local_store import KeyValueMedium

_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_entries (
    namespace TEXT NOT NULL,
    key TEXT NOT NULL,
    value TEXT NOT NULL,
    PRIMARY KEY (namespace, key)
)
"""


@dataclass
class SqliteMedium(KeyValueMedium):
    """Stores namespaced values in a single SQLite file."""

    path: Path

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.execute(_SCHEMA)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self.path)
        except sqlite3.Error as exc:
            raise StorageError(f"Local storage unavailable: {exc}") from exc
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise StorageError(f"Local storage operation failed: {exc}") from exc
        finally:
            conn.close()

    def get(self, namespace: str, key: str) -> str | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM kv_entries WHERE namespace = ? AND key = ?",
                (namespace, key),
            ).fetchone()
        return row[0] if row else None

    def put(self, namespace: str, key: str, value: str) -> None:
        with self._connect() as conn:
            conn.execute(
                """INSERT INTO kv_entries (namespace, key, value) VALUES (?, ?, ?)
                   ON CONFLICT(namespace, key) DO UPDATE SET value = excluded.value""",
                (namespace, key, value),
            )

    def delete(self, namespace: str, key: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM kv_entries WHERE namespace = ? AND key = ?",
                (namespace, key),
            )

    def items(self, namespace: str) -> list[tuple[str, str]]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT key, value FROM kv_entries WHERE namespace = ? ORDER BY key",
                (namespace,),
            ).fetchall()
        return [(row[0], row[1]) for row in rows]
