from __future__ import annotations

import sqlite3
import unittest
from typing import Any

from tumblr_archive.errors import InvariantViolation, StorageError
from tumblr_archive.transaction import transaction


class _FailingRollbackConnection:
    """Delegates to a real connection but refuses to roll back."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self.statements: list[str] = []

    @property
    def in_transaction(self) -> bool:
        return self._conn.in_transaction

    def execute(self, sql: str, params: Any = ()) -> sqlite3.Cursor:
        self.statements.append(sql)
        if sql == "ROLLBACK":
            raise sqlite3.OperationalError("disk I/O error")
        return self._conn.execute(sql, params)


def _connect() -> sqlite3.Connection:
    conn = sqlite3.connect(":memory:", isolation_level=None)
    conn.execute("CREATE TABLE items (id INTEGER PRIMARY KEY, name TEXT NOT NULL)")
    return conn


def _count(conn: sqlite3.Connection) -> int:
    return int(conn.execute("SELECT COUNT(1) FROM items").fetchone()[0])


class TestTransaction(unittest.TestCase):
    def test_commits_on_success(self) -> None:
        conn = _connect()
        with transaction(conn):
            conn.execute("INSERT INTO items (name) VALUES ('a')")
            self.assertTrue(conn.in_transaction)

        self.assertFalse(conn.in_transaction)
        self.assertEqual(_count(conn), 1)

    def test_driver_error_becomes_storage_error_and_rolls_back(self) -> None:
        conn = _connect()
        with self.assertRaises(StorageError) as ctx:
            with transaction(conn, operation="put"):
                conn.execute("INSERT INTO items (name) VALUES ('a')")
                conn.execute("INSERT INTO items (name) VALUES (NULL)")

        self.assertIsInstance(ctx.exception.__cause__, sqlite3.IntegrityError)
        self.assertIsNone(ctx.exception.rollback_error)
        self.assertIn("put", str(ctx.exception))
        self.assertFalse(conn.in_transaction)
        self.assertEqual(_count(conn), 0)

    def test_other_errors_propagate_unchanged(self) -> None:
        conn = _connect()
        with self.assertRaises(InvariantViolation):
            with transaction(conn):
                conn.execute("INSERT INTO items (name) VALUES ('a')")
                raise InvariantViolation("impossible")

        self.assertEqual(_count(conn), 0)

    def test_rollback_failure_is_attached_to_original(self) -> None:
        real = _connect()
        conn = _FailingRollbackConnection(real)

        with self.assertRaises(StorageError) as ctx:
            with transaction(conn):  # type: ignore[arg-type]
                conn.execute("INSERT INTO items (name) VALUES (NULL)")

        self.assertIsInstance(ctx.exception.__cause__, sqlite3.IntegrityError)
        self.assertIsInstance(ctx.exception.rollback_error, sqlite3.OperationalError)
        self.assertEqual(conn.statements.count("ROLLBACK"), 1)
        self.assertNotIn("COMMIT", conn.statements)
        real.execute("ROLLBACK")

    def test_rollback_failure_is_noted_on_non_storage_errors(self) -> None:
        real = _connect()
        conn = _FailingRollbackConnection(real)

        with self.assertRaises(ValueError) as ctx:
            with transaction(conn):  # type: ignore[arg-type]
                raise ValueError("boom")

        self.assertEqual(str(ctx.exception), "boom")
        self.assertIsInstance(getattr(ctx.exception, "rollback_error"), sqlite3.OperationalError)
        self.assertTrue(any("Rollback also failed" in n for n in ctx.exception.__notes__))
        real.execute("ROLLBACK")

    def test_begin_failure_is_storage_error(self) -> None:
        conn = _connect()
        conn.execute("BEGIN")
        with self.assertRaises(StorageError):
            with transaction(conn):
                pass
        conn.execute("ROLLBACK")


if __name__ == "__main__":
    unittest.main()
