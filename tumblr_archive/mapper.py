from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Iterable, Sequence

from .chunked import MAX_PARAMS_PER_QUERY, execute_chunked
from .errors import InvariantViolation
from .post import Post, PostDraft, PostType
from .tags import delete_post_tags, fetch_post_tags, write_post_tags
from .variants import VARIANT_MAPPERS

_POSTS_SQL = (
    "SELECT posts.id, posts.blogName, posts.postUrl, posts.postedTimestamp, "
    "posts.retrievedTimestamp, postTypes.type "
    "FROM posts JOIN postTypes ON posts.postTypeId = postTypes.id"
)
POST_BY_ID_SQL = _POSTS_SQL + " WHERE posts.id = ?"
POSTS_BY_IDS_SQL = _POSTS_SQL + " WHERE posts.id IN ({params})"
ALL_POSTS_SQL = _POSTS_SQL

_POST_INSERT_SQL = (
    "INSERT INTO posts (id, blogName, postUrl, postedTimestamp, retrievedTimestamp, postTypeId) "
    "SELECT ?, ?, ?, ?, ?, id FROM postTypes WHERE type = ?"
)
_DELETE_POSTS_SQL = "DELETE FROM posts WHERE id IN ({params})"


@dataclass(frozen=True)
class WriteSummary:
    posts: int
    posts_by_type: dict[str, int]
    distinct_tags: int


def read_posts(
    conn: sqlite3.Connection,
    rows: Iterable[sqlite3.Row],
    *,
    chunk_size: int = MAX_PARAMS_PER_QUERY,
) -> dict[int, Post]:
    """
    Assemble complete posts from parent-table rows.

    Rows must carry the columns selected by ``POST_BY_ID_SQL``. Variant fields, nested
    lists and tags are fetched per variant in chunked batches. The result keeps row order.
    """
    drafts: dict[int, PostDraft] = {}
    drafts_by_type: dict[PostType, dict[int, PostDraft]] = {}

    for row in rows:
        post_id = int(row["id"])
        raw_type = row["type"]
        try:
            post_type = PostType(raw_type)
        except ValueError as e:
            raise InvariantViolation(f"Post {post_id} has impossible type {raw_type!r}") from e

        draft = PostDraft(
            id=post_id,
            type=post_type,
            blog_name=str(row["blogName"]),
            post_url=str(row["postUrl"]),
            posted_ms=int(row["postedTimestamp"]),
            retrieved_ms=int(row["retrievedTimestamp"]),
        )
        drafts[post_id] = draft
        drafts_by_type.setdefault(post_type, {})[post_id] = draft

    if not drafts:
        return {}

    fetch_post_tags(conn, drafts, chunk_size=chunk_size)
    for post_type, group in drafts_by_type.items():
        VARIANT_MAPPERS[post_type].fetch(conn, group, chunk_size=chunk_size)

    posts: dict[int, Post] = {}
    for post_id, draft in drafts.items():
        try:
            posts[post_id] = draft.build()
        except TypeError as e:
            raise InvariantViolation(
                f"Post {post_id} has no complete {draft.type.value} row: {e}"
            ) from e
    return posts


def write_posts(
    conn: sqlite3.Connection,
    posts: Sequence[Post],
    *,
    chunk_size: int = MAX_PARAMS_PER_QUERY,
) -> WriteSummary:
    """
    Replace every post in ``posts`` with its new value.

    Existing rows for the batch's ids are deleted first, whatever variant they had. When
    the batch repeats an id, the last occurrence wins. Must run inside a transaction.
    """
    post_by_id: dict[int, Post] = {}
    for post in posts:
        post_by_id[post.id] = post

    posts_by_type: dict[PostType, list[Post]] = {}
    for post in post_by_id.values():
        post_type = getattr(post.content, "TYPE", None)
        if post_type not in VARIANT_MAPPERS:
            raise InvariantViolation(
                f"Post {post.id} has unsupported content {type(post.content).__name__}"
            )
        posts_by_type.setdefault(post_type, []).append(post)

    delete_posts(conn, list(post_by_id), chunk_size=chunk_size)

    cur = conn.executemany(
        _POST_INSERT_SQL,
        [
            (
                post.id,
                post.blog_name,
                post.post_url,
                int(post.posted_ms),
                int(post.retrieved_ms),
                post.type.value,
            )
            for post in post_by_id.values()
        ],
    )
    if cur.rowcount != len(post_by_id):
        raise InvariantViolation("postTypes lookup table is missing one or more post types")

    for post_type, group in posts_by_type.items():
        VARIANT_MAPPERS[post_type].write(conn, group, chunk_size=chunk_size)

    distinct_tags = write_post_tags(conn, post_by_id.values(), chunk_size=chunk_size)

    return WriteSummary(
        posts=len(post_by_id),
        posts_by_type={t.value: len(group) for t, group in posts_by_type.items()},
        distinct_tags=distinct_tags,
    )


def delete_posts(
    conn: sqlite3.Connection,
    post_ids: Sequence[int],
    *,
    chunk_size: int = MAX_PARAMS_PER_QUERY,
) -> int:
    """
    Remove every row belonging to ``post_ids``, children before parents.

    Returns the number of parent rows removed. Tags themselves are kept even when no post
    references them anymore.
    """
    if not post_ids:
        return 0

    for mapper in VARIANT_MAPPERS.values():
        mapper.delete(conn, post_ids, chunk_size=chunk_size)
    delete_post_tags(conn, post_ids, chunk_size=chunk_size)
    return execute_chunked(conn, _DELETE_POSTS_SQL, post_ids, chunk_size=chunk_size)
