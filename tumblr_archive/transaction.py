from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator

from .errors import StorageError

if TYPE_CHECKING:
    from .run_log import RunLogger


@contextmanager
def transaction(
    conn: sqlite3.Connection,
    *,
    operation: str = "transaction",
    logger: "RunLogger | None" = None,
) -> Iterator[sqlite3.Connection]:
    """
    Run the body of the ``with`` block as one SQLite transaction.

    The connection must be in autocommit mode (``isolation_level=None``) so that BEGIN,
    COMMIT and ROLLBACK are issued only here. Commits when the block returns. On any
    exception, rolls back and re-raises the original exception; driver errors are re-raised
    as StorageError chained to the driver error. A failed rollback never replaces the
    original error: it is attached as ``rollback_error``.
    """
    try:
        conn.execute("BEGIN")
    except sqlite3.Error as e:
        raise StorageError(f"Failed to begin {operation}: {e}") from e

    try:
        yield conn
        conn.execute("COMMIT")
    except BaseException as exc:
        rollback_error = _rollback(conn)

        if logger is not None:
            logger.exception(
                "transaction_rolled_back",
                exc=exc,
                operation=operation,
                rollback_failed=rollback_error is not None,
            )

        if isinstance(exc, sqlite3.Error):
            raise StorageError(
                f"{operation} failed: {exc}", rollback_error=rollback_error
            ) from exc

        if rollback_error is not None:
            _attach_rollback_error(exc, rollback_error)
        raise


def _rollback(conn: sqlite3.Connection) -> BaseException | None:
    # SQLite rolls back on its own after some errors (e.g. SQLITE_FULL).
    if not conn.in_transaction:
        return None

    try:
        conn.execute("ROLLBACK")
    except sqlite3.Error as e:
        return e
    return None


def _attach_rollback_error(exc: BaseException, rollback_error: BaseException) -> None:
    exc.add_note(f"Rollback also failed: {rollback_error!r}")
    if getattr(exc, "rollback_error", None) is None:
        exc.rollback_error = rollback_error  # type: ignore[attr-defined]
