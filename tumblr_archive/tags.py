from __future__ import annotations

import sqlite3
from typing import Iterable, Mapping

from .chunked import MAX_PARAMS_PER_QUERY, execute_chunked, select_chunked
from .post import Post, PostDraft

_TAG_IDS_BY_NAME_SQL = "SELECT id, tag FROM tags WHERE tag IN ({params})"
_TAG_INSERT_SQL = "INSERT INTO tags (tag) VALUES (?)"
_POST_TAG_INSERT_SQL = "INSERT INTO postTags (postId, tagId, tagIndex) VALUES (?, ?, ?)"
_POST_TAGS_SQL = (
    "SELECT postTags.postId, tags.tag FROM postTags "
    "JOIN tags ON postTags.tagId = tags.id "
    "WHERE postTags.postId IN ({params}) "
    "ORDER BY postTags.tagIndex"
)
_DELETE_POST_TAGS_SQL = "DELETE FROM postTags WHERE postId IN ({params})"


def intern_tags(
    conn: sqlite3.Connection,
    tags: Iterable[str],
    *,
    chunk_size: int = MAX_PARAMS_PER_QUERY,
) -> dict[str, int]:
    """
    Map every distinct tag string to its row id in ``tags``, inserting missing ones.

    Two writers interning the same new tag at once are not arbitrated here: the UNIQUE
    constraint on ``tags.tag`` makes the loser fail with a write error.
    """
    wanted = list(dict.fromkeys(tags))
    if not wanted:
        return {}

    id_by_tag: dict[str, int] = {}
    for row in select_chunked(conn, _TAG_IDS_BY_NAME_SQL, wanted, chunk_size=chunk_size):
        id_by_tag[str(row["tag"])] = int(row["id"])

    for tag in wanted:
        if tag in id_by_tag:
            continue
        cur = conn.execute(_TAG_INSERT_SQL, (tag,))
        id_by_tag[tag] = int(cur.lastrowid)

    return id_by_tag


def write_post_tags(
    conn: sqlite3.Connection,
    posts: Iterable[Post],
    *,
    chunk_size: int = MAX_PARAMS_PER_QUERY,
) -> int:
    """Intern the batch's tags and link each post to them in list order. Returns the distinct tag count."""
    posts = list(posts)
    id_by_tag = intern_tags(
        conn, (tag for post in posts for tag in post.tags), chunk_size=chunk_size
    )
    if not id_by_tag:
        return 0

    conn.executemany(
        _POST_TAG_INSERT_SQL,
        [
            (post.id, id_by_tag[tag], index)
            for post in posts
            for index, tag in enumerate(post.tags)
        ],
    )
    return len(id_by_tag)


def fetch_post_tags(
    conn: sqlite3.Connection,
    drafts: Mapping[int, PostDraft],
    *,
    chunk_size: int = MAX_PARAMS_PER_QUERY,
) -> None:
    if not drafts:
        return

    for row in select_chunked(conn, _POST_TAGS_SQL, drafts.keys(), chunk_size=chunk_size):
        drafts[int(row["postId"])].tags.append(str(row["tag"]))


def delete_post_tags(
    conn: sqlite3.Connection,
    post_ids: Iterable[int],
    *,
    chunk_size: int = MAX_PARAMS_PER_QUERY,
) -> int:
    return execute_chunked(conn, _DELETE_POST_TAGS_SQL, post_ids, chunk_size=chunk_size)
