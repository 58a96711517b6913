from __future__ import annotations

import sqlite3
from contextlib import AbstractContextManager
from pathlib import Path
from typing import Iterable

from .chunked import select_chunked
from .config_schema import StoreConfig
from .errors import StorageError
from .mapper import (
    ALL_POSTS_SQL,
    POST_BY_ID_SQL,
    POSTS_BY_IDS_SQL,
    delete_posts,
    read_posts,
    write_posts,
)
from .post import Post
from .run_log import RunLogger
from .storage_schema import initialize_sqlite
from .transaction import transaction


def _as_path(value: str | Path) -> str:
    return str(value)


class SQLitePostStore:
    """
    Persists posts in a normalized SQLite database and reads them back in full.

    Every public operation runs in exactly one transaction on the store's single
    connection. The store is not synchronized: share it across threads only with external
    locking, or open one store per thread on the same file.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        *,
        config: StoreConfig | None = None,
        logger: RunLogger | None = None,
    ) -> None:
        self._conn = conn
        self._conn.row_factory = sqlite3.Row
        # Transactions are issued explicitly by transaction().
        self._conn.isolation_level = None
        self._config = config or StoreConfig()
        self._chunk_size = self._config.max_params_per_query
        self._logger = logger

    @classmethod
    def open(
        cls,
        path: str | Path,
        *,
        config: StoreConfig | None = None,
        logger: RunLogger | None = None,
    ) -> "SQLitePostStore":
        cfg = config or StoreConfig()
        db_path = _as_path(path)
        if db_path != ":memory:":
            p = Path(db_path)
            p.parent.mkdir(parents=True, exist_ok=True)

        try:
            conn = sqlite3.connect(
                db_path,
                isolation_level=None,
                cached_statements=cfg.statement_cache_size,
            )
        except sqlite3.Error as e:
            raise StorageError(f"Failed to open sqlite database: {db_path}: {e}") from e

        try:
            initialize_sqlite(
                conn,
                busy_timeout_ms=cfg.busy_timeout_ms,
                journal_mode=cfg.journal_mode,
            )
        except Exception as e:
            conn.close()
            raise StorageError(f"Failed to initialize sqlite schema: {e}") from e

        if logger is not None:
            logger.bind_store(db_path)
            logger.info("store_opened", journal_mode=cfg.journal_mode)

        return cls(conn, config=cfg, logger=logger)

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "SQLitePostStore":
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.close()

    @property
    def conn(self) -> sqlite3.Connection:
        return self._conn

    def get(self, post_id: int) -> Post | None:
        pid = int(post_id)
        with self._transaction("get"):
            rows = self._conn.execute(POST_BY_ID_SQL, (pid,)).fetchall()
            posts = read_posts(self._conn, rows, chunk_size=self._chunk_size)
        return posts.get(pid)

    def get_many(self, post_ids: Iterable[int]) -> dict[int, Post]:
        """Return the stored posts among ``post_ids``, keyed by id. Missing ids are left out."""
        ids = list(dict.fromkeys(int(i) for i in post_ids))
        if not ids:
            return {}

        with self._transaction("get_many"):
            rows = list(
                select_chunked(self._conn, POSTS_BY_IDS_SQL, ids, chunk_size=self._chunk_size)
            )
            posts = read_posts(self._conn, rows, chunk_size=self._chunk_size)
        return posts

    def get_all(self) -> list[Post]:
        with self._transaction("get_all"):
            rows = self._conn.execute(ALL_POSTS_SQL).fetchall()
            posts = read_posts(self._conn, rows, chunk_size=self._chunk_size)
        return list(posts.values())

    def put(self, posts: Post | Iterable[Post]) -> None:
        """
        Insert or fully replace one post or a batch of posts.

        An empty batch returns without touching the database.
        """
        batch = [posts] if isinstance(posts, Post) else list(posts)
        if not batch:
            return

        with self._transaction("put"):
            summary = write_posts(self._conn, batch, chunk_size=self._chunk_size)

        if self._logger is not None:
            self._logger.info(
                "posts_put",
                post_id=batch[0].id if summary.posts == 1 else None,
                count=summary.posts,
                by_type=summary.posts_by_type,
                distinct_tags=summary.distinct_tags,
            )

    def delete(self, post_id: int) -> None:
        """Delete one post. Deleting a post that does not exist is a no-op."""
        self.delete_many([post_id])

    def delete_many(self, post_ids: Iterable[int]) -> int:
        ids = list(dict.fromkeys(int(i) for i in post_ids))
        if not ids:
            return 0

        with self._transaction("delete"):
            removed = delete_posts(self._conn, ids, chunk_size=self._chunk_size)

        if self._logger is not None:
            self._logger.info(
                "posts_deleted",
                post_id=ids[0] if len(ids) == 1 else None,
                requested=len(ids),
                removed=removed,
            )
        return removed

    def post_ids(self) -> set[int]:
        rows = self._conn.execute("SELECT id FROM posts").fetchall()
        return {int(r["id"]) for r in rows}

    def post_count(self) -> int:
        row = self._conn.execute("SELECT COUNT(1) AS n FROM posts").fetchone()
        return int(row["n"]) if row is not None else 0

    def tag_count(self) -> int:
        row = self._conn.execute("SELECT COUNT(1) AS n FROM tags").fetchone()
        return int(row["n"]) if row is not None else 0

    def _transaction(self, operation: str) -> AbstractContextManager[sqlite3.Connection]:
        return transaction(self._conn, operation=operation, logger=self._logger)
