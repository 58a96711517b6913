from __future__ import annotations

import sqlite3
from typing import Any, Iterable, Iterator

# SQLite's historical default for SQLITE_MAX_VARIABLE_NUMBER.
MAX_PARAMS_PER_QUERY = 999


def placeholders(count: int) -> str:
    """Return ``?, ?, ...`` with exactly ``count`` placeholders."""
    if count <= 0:
        raise ValueError("count must be positive")
    return ", ".join("?" * count)


def partition(values: Iterable[Any], size: int) -> Iterator[list[Any]]:
    if size <= 0:
        raise ValueError("size must be positive")

    group: list[Any] = []
    for value in values:
        group.append(value)
        if len(group) == size:
            yield group
            group = []
    if group:
        yield group


class ChunkedQuery:
    """
    Run one parameterized statement per bounded-size group of values.

    ``sql_template`` holds a ``{params}`` marker where the placeholder list goes, e.g.
    ``SELECT id FROM posts WHERE id IN ({params})``. Iterating yields the rows of each group
    in turn; the object is single-pass. The rendered SQL only changes when the group size
    changes (at most once, for the final shorter group), so the connection's statement cache
    keeps reusing the same prepared statement for all full groups.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        sql_template: str,
        values: Iterable[Any],
        *,
        chunk_size: int = MAX_PARAMS_PER_QUERY,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")

        self._conn = conn
        self._template = sql_template
        self._groups = partition(values, chunk_size)
        self._sql: str | None = None
        self._group_size = -1
        self.statements_rendered = 0

    def __iter__(self) -> "ChunkedQuery":
        return self

    def __next__(self) -> list[sqlite3.Row]:
        group = next(self._groups)
        return self._execute(group).fetchall()

    def execute_all(self) -> int:
        """Run every remaining group for its side effects; return the total affected row count."""
        total = 0
        for group in self._groups:
            cur = self._execute(group)
            if cur.rowcount > 0:
                total += cur.rowcount
        return total

    def _execute(self, group: list[Any]) -> sqlite3.Cursor:
        if self._sql is None or len(group) != self._group_size:
            self._sql = self._template.format(params=placeholders(len(group)))
            self._group_size = len(group)
            self.statements_rendered += 1
        return self._conn.execute(self._sql, group)


def select_chunked(
    conn: sqlite3.Connection,
    sql_template: str,
    values: Iterable[Any],
    *,
    chunk_size: int = MAX_PARAMS_PER_QUERY,
) -> Iterator[sqlite3.Row]:
    """Flatten the row batches of a ChunkedQuery into one row stream."""
    for rows in ChunkedQuery(conn, sql_template, values, chunk_size=chunk_size):
        yield from rows


def execute_chunked(
    conn: sqlite3.Connection,
    sql_template: str,
    values: Iterable[Any],
    *,
    chunk_size: int = MAX_PARAMS_PER_QUERY,
) -> int:
    return ChunkedQuery(conn, sql_template, values, chunk_size=chunk_size).execute_all()
