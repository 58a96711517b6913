from __future__ import annotations

import sqlite3

from .post import PostType
from .transaction import transaction

_JOURNAL_MODES = frozenset({"WAL", "DELETE", "MEMORY"})


def initialize_sqlite(
    conn: sqlite3.Connection,
    *,
    busy_timeout_ms: int = 5000,
    journal_mode: str = "WAL",
) -> None:
    """
    Create the post tables, lookup rows and indexes if they do not exist yet.

    This function is idempotent: it can be called on every open. All DDL runs in a single
    transaction, so a failure leaves an existing database untouched.
    """
    _configure_connection(conn, busy_timeout_ms=busy_timeout_ms, journal_mode=journal_mode)

    with transaction(conn, operation="schema setup"):
        for statement in _SCHEMA:
            conn.execute(statement)
        conn.executemany(
            "INSERT OR IGNORE INTO postTypes (type) VALUES (?)",
            [(t.value,) for t in PostType],
        )
        for statement in _INDEXES:
            conn.execute(statement)


def _configure_connection(
    conn: sqlite3.Connection, *, busy_timeout_ms: int, journal_mode: str
) -> None:
    # foreign_keys is a no-op inside a transaction; it must be set first.
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)}")

    mode = journal_mode.upper()
    if mode not in _JOURNAL_MODES:
        raise ValueError(f"Unsupported journal_mode: {journal_mode}")

    # WAL is best-effort (e.g., in-memory DBs won't use it).
    try:
        conn.execute(f"PRAGMA journal_mode = {mode}")
        conn.execute("PRAGMA synchronous = NORMAL")
    except sqlite3.DatabaseError:
        pass


_SCHEMA: tuple[str, ...] = (
    # Variant lookup.
    "CREATE TABLE IF NOT EXISTS postTypes("
    "id INTEGER PRIMARY KEY AUTOINCREMENT, type STRING UNIQUE NOT NULL)",
    # Main post tables.
    "CREATE TABLE IF NOT EXISTS posts("
    "id INTEGER PRIMARY KEY, blogName TEXT NOT NULL, postUrl TEXT NOT NULL, "
    "postedTimestamp INTEGER NOT NULL, retrievedTimestamp INTEGER NOT NULL, "
    "postTypeId INTEGER NOT NULL REFERENCES postTypes(id))",
    "CREATE TABLE IF NOT EXISTS textPosts("
    "id INTEGER PRIMARY KEY REFERENCES posts(id), title TEXT NOT NULL, body TEXT NOT NULL)",
    "CREATE TABLE IF NOT EXISTS photoPosts("
    "id INTEGER PRIMARY KEY REFERENCES posts(id), caption TEXT NOT NULL, "
    "width INTEGER, height INTEGER)",
    "CREATE TABLE IF NOT EXISTS quotePosts("
    "id INTEGER PRIMARY KEY REFERENCES posts(id), text TEXT NOT NULL, source TEXT NOT NULL)",
    "CREATE TABLE IF NOT EXISTS linkPosts("
    "id INTEGER PRIMARY KEY REFERENCES posts(id), title TEXT NOT NULL, url TEXT NOT NULL, "
    "description TEXT NOT NULL)",
    "CREATE TABLE IF NOT EXISTS chatPosts("
    "id INTEGER PRIMARY KEY REFERENCES posts(id), title TEXT NOT NULL, body TEXT NOT NULL)",
    "CREATE TABLE IF NOT EXISTS audioPosts("
    "id INTEGER PRIMARY KEY REFERENCES posts(id), caption TEXT NOT NULL, "
    "player TEXT NOT NULL, plays INTEGER NOT NULL, albumArt TEXT NOT NULL, "
    "artist TEXT NOT NULL, album TEXT NOT NULL, trackName TEXT NOT NULL, "
    "trackNumber INTEGER NOT NULL, year INTEGER NOT NULL)",
    "CREATE TABLE IF NOT EXISTS videoPosts("
    "id INTEGER PRIMARY KEY REFERENCES posts(id), caption TEXT NOT NULL)",
    "CREATE TABLE IF NOT EXISTS answerPosts("
    "id INTEGER PRIMARY KEY REFERENCES posts(id), askingName TEXT NOT NULL, "
    "askingUrl TEXT NOT NULL, question TEXT NOT NULL, answer TEXT NOT NULL)",
    # Tags.
    "CREATE TABLE IF NOT EXISTS tags("
    "id INTEGER PRIMARY KEY AUTOINCREMENT, tag TEXT UNIQUE NOT NULL)",
    "CREATE TABLE IF NOT EXISTS postTags("
    "postId INTEGER NOT NULL REFERENCES posts(id), tagId INTEGER NOT NULL REFERENCES tags(id), "
    "tagIndex INTEGER NOT NULL, PRIMARY KEY(postId, tagIndex))",
    # Photo posts.
    "CREATE TABLE IF NOT EXISTS photos("
    "id INTEGER PRIMARY KEY AUTOINCREMENT, caption TEXT NOT NULL)",
    "CREATE TABLE IF NOT EXISTS photoSizes("
    "id INTEGER PRIMARY KEY AUTOINCREMENT, width INTEGER NOT NULL, height INTEGER NOT NULL, "
    "url TEXT NOT NULL)",
    "CREATE TABLE IF NOT EXISTS photoPostPhotos("
    "postId INTEGER NOT NULL REFERENCES photoPosts(id), "
    "photoId INTEGER NOT NULL REFERENCES photos(id), photoIndex INTEGER NOT NULL, "
    "PRIMARY KEY(postId, photoId))",
    "CREATE TABLE IF NOT EXISTS photoPhotoSizes("
    "photoId INTEGER NOT NULL REFERENCES photos(id), "
    "photoSizeId INTEGER NOT NULL REFERENCES photoSizes(id), photoSizeIndex INTEGER NOT NULL, "
    "PRIMARY KEY(photoId, photoSizeId))",
    # Chat posts.
    "CREATE TABLE IF NOT EXISTS dialogue("
    "id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL, label TEXT NOT NULL, "
    "phrase TEXT NOT NULL)",
    "CREATE TABLE IF NOT EXISTS chatPostDialogue("
    "postId INTEGER NOT NULL REFERENCES chatPosts(id), "
    "dialogueId INTEGER NOT NULL REFERENCES dialogue(id), dialogueIndex INTEGER NOT NULL, "
    "PRIMARY KEY(postId, dialogueId))",
    # Video posts.
    "CREATE TABLE IF NOT EXISTS videos("
    "id INTEGER PRIMARY KEY AUTOINCREMENT, width INTEGER NOT NULL, embedCode TEXT NOT NULL)",
    "CREATE TABLE IF NOT EXISTS videoPostVideos("
    "postId INTEGER NOT NULL REFERENCES videoPosts(id), "
    "videoId INTEGER NOT NULL REFERENCES videos(id), videoIndex INTEGER NOT NULL, "
    "PRIMARY KEY(postId, videoId))",
)

_INDEXES: tuple[str, ...] = (
    "CREATE INDEX IF NOT EXISTS postsPostTypeIdIndex ON posts(postTypeId)",
    "CREATE INDEX IF NOT EXISTS postTagsPostIdIndex ON postTags(postId)",
    "CREATE INDEX IF NOT EXISTS postTagsTagIdIndex ON postTags(tagId)",
    "CREATE INDEX IF NOT EXISTS tagsTagIndex ON tags(tag)",
    "CREATE INDEX IF NOT EXISTS photoPostPhotosPostIdIndex ON photoPostPhotos(postId)",
    "CREATE INDEX IF NOT EXISTS photoPostPhotosPhotoIdIndex ON photoPostPhotos(photoId)",
    "CREATE INDEX IF NOT EXISTS photoPhotoSizesPhotoIdIndex ON photoPhotoSizes(photoId)",
    "CREATE INDEX IF NOT EXISTS photoPhotoSizesPhotoSizeIdIndex ON photoPhotoSizes(photoSizeId)",
    "CREATE INDEX IF NOT EXISTS chatPostDialoguePostIdIndex ON chatPostDialogue(postId)",
    "CREATE INDEX IF NOT EXISTS chatPostDialogueDialogueIdIndex ON chatPostDialogue(dialogueId)",
    "CREATE INDEX IF NOT EXISTS videoPostVideosPostIdIndex ON videoPostVideos(postId)",
    "CREATE INDEX IF NOT EXISTS videoPostVideosVideoIdIndex ON videoPostVideos(videoId)",
    "CREATE UNIQUE INDEX IF NOT EXISTS postTypesTypeIndex ON postTypes(type)",
)
