from __future__ import annotations

import sqlite3
from typing import Any, Iterable, Mapping, Sequence

from .chunked import MAX_PARAMS_PER_QUERY, execute_chunked, select_chunked
from .post import Dialogue, Photo, PhotoSize, Player, Post, PostDraft, PostType


class VariantMapper:
    """
    Reads, writes and deletes the rows of one post variant.

    The base class handles the variant table keyed by post id, whose columns hold the
    variant's scalar fields. ``columns`` pairs each column name with the content field it
    stores. Variants with nested lists extend the three operations.
    """

    def __init__(
        self,
        post_type: PostType,
        table: str,
        columns: Sequence[tuple[str, str]],
    ) -> None:
        self.post_type = post_type
        self.table = table
        self.columns = tuple(columns)

        column_list = ", ".join(column for column, _ in self.columns)
        value_list = ", ".join("?" * (len(self.columns) + 1))
        self._select_sql = f"SELECT id, {column_list} FROM {table} WHERE id IN ({{params}})"
        self._insert_sql = f"INSERT INTO {table} (id, {column_list}) VALUES ({value_list})"
        self._delete_sql = f"DELETE FROM {table} WHERE id IN ({{params}})"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.post_type.value}, table={self.table!r})"

    def fetch(
        self,
        conn: sqlite3.Connection,
        drafts: Mapping[int, PostDraft],
        *,
        chunk_size: int = MAX_PARAMS_PER_QUERY,
    ) -> None:
        for row in select_chunked(conn, self._select_sql, drafts.keys(), chunk_size=chunk_size):
            fields = drafts[int(row["id"])].fields
            for column, name in self.columns:
                fields[name] = row[column]

    def write(
        self,
        conn: sqlite3.Connection,
        posts: Sequence[Post],
        *,
        chunk_size: int = MAX_PARAMS_PER_QUERY,
    ) -> None:
        conn.executemany(
            self._insert_sql,
            [
                (post.id, *(getattr(post.content, name) for _, name in self.columns))
                for post in posts
            ],
        )

    def delete(
        self,
        conn: sqlite3.Connection,
        post_ids: Sequence[int],
        *,
        chunk_size: int = MAX_PARAMS_PER_QUERY,
    ) -> None:
        execute_chunked(conn, self._delete_sql, post_ids, chunk_size=chunk_size)


def _child_ids(
    conn: sqlite3.Connection,
    sql_template: str,
    parent_ids: Iterable[Any],
    *,
    chunk_size: int,
) -> list[int]:
    return [int(row[0]) for row in select_chunked(conn, sql_template, parent_ids, chunk_size=chunk_size)]


class ChatMapper(VariantMapper):
    _DIALOGUE_SQL = (
        "SELECT chatPostDialogue.postId, dialogue.name, dialogue.label, dialogue.phrase "
        "FROM chatPostDialogue JOIN dialogue ON dialogue.id = chatPostDialogue.dialogueId "
        "WHERE chatPostDialogue.postId IN ({params}) "
        "ORDER BY chatPostDialogue.dialogueIndex"
    )
    _DIALOGUE_INSERT_SQL = "INSERT INTO dialogue (name, label, phrase) VALUES (?, ?, ?)"
    _JUNCTION_INSERT_SQL = (
        "INSERT INTO chatPostDialogue (postId, dialogueId, dialogueIndex) VALUES (?, ?, ?)"
    )
    _DIALOGUE_IDS_SQL = "SELECT dialogueId FROM chatPostDialogue WHERE postId IN ({params})"
    _DELETE_JUNCTION_SQL = "DELETE FROM chatPostDialogue WHERE postId IN ({params})"
    _DELETE_DIALOGUE_SQL = "DELETE FROM dialogue WHERE id IN ({params})"

    def __init__(self) -> None:
        super().__init__(PostType.CHAT, "chatPosts", (("title", "title"), ("body", "body")))

    def fetch(
        self,
        conn: sqlite3.Connection,
        drafts: Mapping[int, PostDraft],
        *,
        chunk_size: int = MAX_PARAMS_PER_QUERY,
    ) -> None:
        super().fetch(conn, drafts, chunk_size=chunk_size)

        dialogue_by_id: dict[int, list[Dialogue]] = {post_id: [] for post_id in drafts}
        for row in select_chunked(conn, self._DIALOGUE_SQL, drafts.keys(), chunk_size=chunk_size):
            dialogue_by_id[int(row["postId"])].append(
                Dialogue(name=row["name"], label=row["label"], phrase=row["phrase"])
            )

        for post_id, draft in drafts.items():
            draft.fields["dialogue"] = tuple(dialogue_by_id[post_id])

    def write(
        self,
        conn: sqlite3.Connection,
        posts: Sequence[Post],
        *,
        chunk_size: int = MAX_PARAMS_PER_QUERY,
    ) -> None:
        super().write(conn, posts, chunk_size=chunk_size)

        links: list[tuple[int, int, int]] = []
        for post in posts:
            for index, entry in enumerate(post.content.dialogue):
                cur = conn.execute(
                    self._DIALOGUE_INSERT_SQL, (entry.name, entry.label, entry.phrase)
                )
                links.append((post.id, int(cur.lastrowid), index))

        if links:
            conn.executemany(self._JUNCTION_INSERT_SQL, links)

    def delete(
        self,
        conn: sqlite3.Connection,
        post_ids: Sequence[int],
        *,
        chunk_size: int = MAX_PARAMS_PER_QUERY,
    ) -> None:
        dialogue_ids = _child_ids(conn, self._DIALOGUE_IDS_SQL, post_ids, chunk_size=chunk_size)
        execute_chunked(conn, self._DELETE_JUNCTION_SQL, post_ids, chunk_size=chunk_size)
        execute_chunked(conn, self._DELETE_DIALOGUE_SQL, dialogue_ids, chunk_size=chunk_size)
        super().delete(conn, post_ids, chunk_size=chunk_size)


class VideoMapper(VariantMapper):
    _PLAYERS_SQL = (
        "SELECT videoPostVideos.postId, videos.width, videos.embedCode "
        "FROM videoPostVideos JOIN videos ON videos.id = videoPostVideos.videoId "
        "WHERE videoPostVideos.postId IN ({params}) "
        "ORDER BY videoPostVideos.videoIndex"
    )
    _VIDEO_INSERT_SQL = "INSERT INTO videos (width, embedCode) VALUES (?, ?)"
    _JUNCTION_INSERT_SQL = (
        "INSERT INTO videoPostVideos (postId, videoId, videoIndex) VALUES (?, ?, ?)"
    )
    _VIDEO_IDS_SQL = "SELECT videoId FROM videoPostVideos WHERE postId IN ({params})"
    _DELETE_JUNCTION_SQL = "DELETE FROM videoPostVideos WHERE postId IN ({params})"
    _DELETE_VIDEOS_SQL = "DELETE FROM videos WHERE id IN ({params})"

    def __init__(self) -> None:
        super().__init__(PostType.VIDEO, "videoPosts", (("caption", "caption"),))

    def fetch(
        self,
        conn: sqlite3.Connection,
        drafts: Mapping[int, PostDraft],
        *,
        chunk_size: int = MAX_PARAMS_PER_QUERY,
    ) -> None:
        super().fetch(conn, drafts, chunk_size=chunk_size)

        players_by_id: dict[int, list[Player]] = {post_id: [] for post_id in drafts}
        for row in select_chunked(conn, self._PLAYERS_SQL, drafts.keys(), chunk_size=chunk_size):
            players_by_id[int(row["postId"])].append(
                Player(width=int(row["width"]), embed_code=row["embedCode"])
            )

        for post_id, draft in drafts.items():
            draft.fields["players"] = tuple(players_by_id[post_id])

    def write(
        self,
        conn: sqlite3.Connection,
        posts: Sequence[Post],
        *,
        chunk_size: int = MAX_PARAMS_PER_QUERY,
    ) -> None:
        super().write(conn, posts, chunk_size=chunk_size)

        links: list[tuple[int, int, int]] = []
        for post in posts:
            for index, player in enumerate(post.content.players):
                cur = conn.execute(self._VIDEO_INSERT_SQL, (player.width, player.embed_code))
                links.append((post.id, int(cur.lastrowid), index))

        if links:
            conn.executemany(self._JUNCTION_INSERT_SQL, links)

    def delete(
        self,
        conn: sqlite3.Connection,
        post_ids: Sequence[int],
        *,
        chunk_size: int = MAX_PARAMS_PER_QUERY,
    ) -> None:
        video_ids = _child_ids(conn, self._VIDEO_IDS_SQL, post_ids, chunk_size=chunk_size)
        execute_chunked(conn, self._DELETE_JUNCTION_SQL, post_ids, chunk_size=chunk_size)
        execute_chunked(conn, self._DELETE_VIDEOS_SQL, video_ids, chunk_size=chunk_size)
        super().delete(conn, post_ids, chunk_size=chunk_size)


class PhotoMapper(VariantMapper):
    """Photo posts nest two levels deep: post -> photos -> photo sizes."""

    _PHOTOS_SQL = (
        "SELECT photoPostPhotos.postId, photoPostPhotos.photoId, photos.caption "
        "FROM photoPostPhotos JOIN photos ON photos.id = photoPostPhotos.photoId "
        "WHERE photoPostPhotos.postId IN ({params}) "
        "ORDER BY photoPostPhotos.photoIndex"
    )
    _PHOTO_SIZES_SQL = (
        "SELECT photoPhotoSizes.photoId, photoSizes.width, photoSizes.height, photoSizes.url "
        "FROM photoPostPhotos "
        "JOIN photoPhotoSizes ON photoPhotoSizes.photoId = photoPostPhotos.photoId "
        "JOIN photoSizes ON photoSizes.id = photoPhotoSizes.photoSizeId "
        "WHERE photoPostPhotos.postId IN ({params}) "
        "ORDER BY photoPhotoSizes.photoSizeIndex"
    )
    _PHOTO_INSERT_SQL = "INSERT INTO photos (caption) VALUES (?)"
    _PHOTO_SIZE_INSERT_SQL = "INSERT INTO photoSizes (width, height, url) VALUES (?, ?, ?)"
    _POST_PHOTO_INSERT_SQL = (
        "INSERT INTO photoPostPhotos (postId, photoId, photoIndex) VALUES (?, ?, ?)"
    )
    _PHOTO_SIZE_LINK_INSERT_SQL = (
        "INSERT INTO photoPhotoSizes (photoId, photoSizeId, photoSizeIndex) VALUES (?, ?, ?)"
    )
    _PHOTO_IDS_SQL = "SELECT photoId FROM photoPostPhotos WHERE postId IN ({params})"
    _PHOTO_SIZE_IDS_SQL = "SELECT photoSizeId FROM photoPhotoSizes WHERE photoId IN ({params})"
    _DELETE_PHOTO_SIZE_LINKS_SQL = "DELETE FROM photoPhotoSizes WHERE photoId IN ({params})"
    _DELETE_PHOTO_SIZES_SQL = "DELETE FROM photoSizes WHERE id IN ({params})"
    _DELETE_POST_PHOTOS_SQL = "DELETE FROM photoPostPhotos WHERE postId IN ({params})"
    _DELETE_PHOTOS_SQL = "DELETE FROM photos WHERE id IN ({params})"

    def __init__(self) -> None:
        super().__init__(
            PostType.PHOTO,
            "photoPosts",
            (("caption", "caption"), ("width", "width"), ("height", "height")),
        )

    def fetch(
        self,
        conn: sqlite3.Connection,
        drafts: Mapping[int, PostDraft],
        *,
        chunk_size: int = MAX_PARAMS_PER_QUERY,
    ) -> None:
        super().fetch(conn, drafts, chunk_size=chunk_size)

        sizes_by_photo_id: dict[int, list[PhotoSize]] = {}
        for row in select_chunked(
            conn, self._PHOTO_SIZES_SQL, drafts.keys(), chunk_size=chunk_size
        ):
            sizes_by_photo_id.setdefault(int(row["photoId"]), []).append(
                PhotoSize(width=int(row["width"]), height=int(row["height"]), url=row["url"])
            )

        photos_by_id: dict[int, list[Photo]] = {post_id: [] for post_id in drafts}
        for row in select_chunked(conn, self._PHOTOS_SQL, drafts.keys(), chunk_size=chunk_size):
            photo_id = int(row["photoId"])
            photos_by_id[int(row["postId"])].append(
                Photo(caption=row["caption"], sizes=sizes_by_photo_id.get(photo_id, ()))
            )

        for post_id, draft in drafts.items():
            draft.fields["photos"] = tuple(photos_by_id[post_id])

    def write(
        self,
        conn: sqlite3.Connection,
        posts: Sequence[Post],
        *,
        chunk_size: int = MAX_PARAMS_PER_QUERY,
    ) -> None:
        super().write(conn, posts, chunk_size=chunk_size)

        photo_links: list[tuple[int, int, int]] = []
        size_links: list[tuple[int, int, int]] = []
        for post in posts:
            for photo_index, photo in enumerate(post.content.photos):
                cur = conn.execute(self._PHOTO_INSERT_SQL, (photo.caption,))
                photo_id = int(cur.lastrowid)
                photo_links.append((post.id, photo_id, photo_index))

                for size_index, size in enumerate(photo.sizes):
                    cur = conn.execute(
                        self._PHOTO_SIZE_INSERT_SQL, (size.width, size.height, size.url)
                    )
                    size_links.append((photo_id, int(cur.lastrowid), size_index))

        if photo_links:
            conn.executemany(self._POST_PHOTO_INSERT_SQL, photo_links)
        if size_links:
            conn.executemany(self._PHOTO_SIZE_LINK_INSERT_SQL, size_links)

    def delete(
        self,
        conn: sqlite3.Connection,
        post_ids: Sequence[int],
        *,
        chunk_size: int = MAX_PARAMS_PER_QUERY,
    ) -> None:
        photo_ids = _child_ids(conn, self._PHOTO_IDS_SQL, post_ids, chunk_size=chunk_size)
        size_ids = _child_ids(conn, self._PHOTO_SIZE_IDS_SQL, photo_ids, chunk_size=chunk_size)

        execute_chunked(conn, self._DELETE_PHOTO_SIZE_LINKS_SQL, photo_ids, chunk_size=chunk_size)
        execute_chunked(conn, self._DELETE_PHOTO_SIZES_SQL, size_ids, chunk_size=chunk_size)
        execute_chunked(conn, self._DELETE_POST_PHOTOS_SQL, post_ids, chunk_size=chunk_size)
        execute_chunked(conn, self._DELETE_PHOTOS_SQL, photo_ids, chunk_size=chunk_size)
        super().delete(conn, post_ids, chunk_size=chunk_size)


VARIANT_MAPPERS: dict[PostType, VariantMapper] = {
    PostType.TEXT: VariantMapper(PostType.TEXT, "textPosts", (("title", "title"), ("body", "body"))),
    PostType.QUOTE: VariantMapper(
        PostType.QUOTE, "quotePosts", (("text", "text"), ("source", "source"))
    ),
    PostType.LINK: VariantMapper(
        PostType.LINK,
        "linkPosts",
        (("title", "title"), ("url", "url"), ("description", "description")),
    ),
    PostType.ANSWER: VariantMapper(
        PostType.ANSWER,
        "answerPosts",
        (
            ("askingName", "asking_name"),
            ("askingUrl", "asking_url"),
            ("question", "question"),
            ("answer", "answer"),
        ),
    ),
    PostType.VIDEO: VideoMapper(),
    PostType.AUDIO: VariantMapper(
        PostType.AUDIO,
        "audioPosts",
        (
            ("caption", "caption"),
            ("player", "player"),
            ("plays", "plays"),
            ("albumArt", "album_art"),
            ("artist", "artist"),
            ("album", "album"),
            ("trackName", "track_name"),
            ("trackNumber", "track_number"),
            ("year", "year"),
        ),
    ),
    PostType.PHOTO: PhotoMapper(),
    PostType.CHAT: ChatMapper(),
}
