from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, ClassVar, Sequence, Union


class PostType(str, Enum):
    """Post variants. Values are the names persisted in the ``postTypes`` lookup table."""

    TEXT = "TEXT"
    QUOTE = "QUOTE"
    LINK = "LINK"
    ANSWER = "ANSWER"
    VIDEO = "VIDEO"
    AUDIO = "AUDIO"
    PHOTO = "PHOTO"
    CHAT = "CHAT"


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def ms_from_datetime(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH) // timedelta(milliseconds=1)


def datetime_from_ms(value: int) -> datetime:
    return _EPOCH + timedelta(milliseconds=value)


@dataclass(frozen=True)
class Player:
    width: int
    embed_code: str


@dataclass(frozen=True)
class Dialogue:
    name: str
    label: str
    phrase: str


@dataclass(frozen=True)
class PhotoSize:
    width: int
    height: int
    url: str


@dataclass(frozen=True)
class Photo:
    caption: str
    sizes: Sequence[PhotoSize] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "sizes", tuple(self.sizes))


@dataclass(frozen=True)
class TextContent:
    TYPE: ClassVar[PostType] = PostType.TEXT

    title: str
    body: str


@dataclass(frozen=True)
class QuoteContent:
    TYPE: ClassVar[PostType] = PostType.QUOTE

    text: str
    source: str


@dataclass(frozen=True)
class LinkContent:
    TYPE: ClassVar[PostType] = PostType.LINK

    title: str
    url: str
    description: str


@dataclass(frozen=True)
class AnswerContent:
    TYPE: ClassVar[PostType] = PostType.ANSWER

    asking_name: str
    asking_url: str
    question: str
    answer: str


@dataclass(frozen=True)
class VideoContent:
    TYPE: ClassVar[PostType] = PostType.VIDEO

    caption: str
    players: Sequence[Player] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "players", tuple(self.players))


@dataclass(frozen=True)
class AudioContent:
    TYPE: ClassVar[PostType] = PostType.AUDIO

    caption: str
    player: str
    plays: int
    album_art: str
    artist: str
    album: str
    track_name: str
    track_number: int
    year: int


@dataclass(frozen=True)
class ChatContent:
    TYPE: ClassVar[PostType] = PostType.CHAT

    title: str
    body: str
    dialogue: Sequence[Dialogue] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "dialogue", tuple(self.dialogue))


@dataclass(frozen=True)
class PhotoContent:
    TYPE: ClassVar[PostType] = PostType.PHOTO

    caption: str
    photos: Sequence[Photo] = ()
    width: int | None = None
    height: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "photos", tuple(self.photos))


PostContent = Union[
    TextContent,
    QuoteContent,
    LinkContent,
    AnswerContent,
    VideoContent,
    AudioContent,
    ChatContent,
    PhotoContent,
]

CONTENT_TYPES: dict[PostType, type] = {
    cls.TYPE: cls
    for cls in (
        TextContent,
        QuoteContent,
        LinkContent,
        AnswerContent,
        VideoContent,
        AudioContent,
        ChatContent,
        PhotoContent,
    )
}


@dataclass(frozen=True)
class Post:
    """
    A blog post as archived: the fields every variant shares plus one variant payload.

    ``posted_ms`` and ``retrieved_ms`` are milliseconds since the Unix epoch. Tag order is
    part of the value; repeated tags are kept.
    """

    id: int
    blog_name: str
    post_url: str
    posted_ms: int
    retrieved_ms: int
    content: PostContent
    tags: Sequence[str] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "tags", tuple(self.tags))

    @property
    def type(self) -> PostType:
        return self.content.TYPE

    @property
    def posted_at(self) -> datetime:
        return datetime_from_ms(self.posted_ms)

    @property
    def retrieved_at(self) -> datetime:
        return datetime_from_ms(self.retrieved_ms)


@dataclass
class PostDraft:
    """Mutable accumulator for a post being read back; finalized once with ``build``."""

    id: int
    type: PostType
    blog_name: str
    post_url: str
    posted_ms: int
    retrieved_ms: int
    tags: list[str] = field(default_factory=list)
    fields: dict[str, Any] = field(default_factory=dict)

    def build(self) -> Post:
        content_cls = CONTENT_TYPES[self.type]
        return Post(
            id=self.id,
            blog_name=self.blog_name,
            post_url=self.post_url,
            posted_ms=self.posted_ms,
            retrieved_ms=self.retrieved_ms,
            content=content_cls(**self.fields),
            tags=tuple(self.tags),
        )
