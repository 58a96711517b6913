from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Annotated, Any, Iterable, Iterator, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .errors import PostFormatError
from .post import (
    AnswerContent,
    AudioContent,
    ChatContent,
    Dialogue,
    LinkContent,
    Photo,
    PhotoContent,
    PhotoSize,
    Player,
    Post,
    PostContent,
    QuoteContent,
    TextContent,
    VideoContent,
)

# SQLite INTEGER PRIMARY KEY is a signed 64-bit value.
PostId = Annotated[int, Field(ge=-(2**63), le=2**63 - 1)]


class _Record(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class PlayerRecord(_Record):
    width: int
    embed_code: str


class DialogueRecord(_Record):
    name: str
    label: str
    phrase: str


class PhotoSizeRecord(_Record):
    width: int
    height: int
    url: str


class PhotoRecord(_Record):
    caption: str
    sizes: list[PhotoSizeRecord] = Field(default_factory=list)


class _PostRecord(_Record):
    id: PostId
    blog_name: str
    post_url: str
    posted_ms: int
    retrieved_ms: int
    tags: list[str] = Field(default_factory=list)

    def to_post(self) -> Post:
        return Post(
            id=self.id,
            blog_name=self.blog_name,
            post_url=self.post_url,
            posted_ms=self.posted_ms,
            retrieved_ms=self.retrieved_ms,
            content=self.content(),
            tags=tuple(self.tags),
        )

    def content(self) -> PostContent:
        raise NotImplementedError


class TextPostRecord(_PostRecord):
    type: Literal["text"]
    title: str
    body: str

    def content(self) -> PostContent:
        return TextContent(title=self.title, body=self.body)


class QuotePostRecord(_PostRecord):
    type: Literal["quote"]
    text: str
    source: str

    def content(self) -> PostContent:
        return QuoteContent(text=self.text, source=self.source)


class LinkPostRecord(_PostRecord):
    type: Literal["link"]
    title: str
    url: str
    description: str

    def content(self) -> PostContent:
        return LinkContent(title=self.title, url=self.url, description=self.description)


class AnswerPostRecord(_PostRecord):
    type: Literal["answer"]
    asking_name: str
    asking_url: str
    question: str
    answer: str

    def content(self) -> PostContent:
        return AnswerContent(
            asking_name=self.asking_name,
            asking_url=self.asking_url,
            question=self.question,
            answer=self.answer,
        )


class VideoPostRecord(_PostRecord):
    type: Literal["video"]
    caption: str
    players: list[PlayerRecord] = Field(default_factory=list)

    def content(self) -> PostContent:
        return VideoContent(
            caption=self.caption,
            players=tuple(Player(width=p.width, embed_code=p.embed_code) for p in self.players),
        )


class AudioPostRecord(_PostRecord):
    type: Literal["audio"]
    caption: str
    player: str
    plays: int
    album_art: str
    artist: str
    album: str
    track_name: str
    track_number: int
    year: int

    def content(self) -> PostContent:
        return AudioContent(
            caption=self.caption,
            player=self.player,
            plays=self.plays,
            album_art=self.album_art,
            artist=self.artist,
            album=self.album,
            track_name=self.track_name,
            track_number=self.track_number,
            year=self.year,
        )


class ChatPostRecord(_PostRecord):
    type: Literal["chat"]
    title: str
    body: str
    dialogue: list[DialogueRecord] = Field(default_factory=list)

    def content(self) -> PostContent:
        return ChatContent(
            title=self.title,
            body=self.body,
            dialogue=tuple(
                Dialogue(name=d.name, label=d.label, phrase=d.phrase) for d in self.dialogue
            ),
        )


class PhotoPostRecord(_PostRecord):
    type: Literal["photo"]
    caption: str
    photos: list[PhotoRecord] = Field(default_factory=list)
    width: int | None = None
    height: int | None = None

    def content(self) -> PostContent:
        return PhotoContent(
            caption=self.caption,
            photos=tuple(
                Photo(
                    caption=photo.caption,
                    sizes=tuple(
                        PhotoSize(width=s.width, height=s.height, url=s.url) for s in photo.sizes
                    ),
                )
                for photo in self.photos
            ),
            width=self.width,
            height=self.height,
        )


PostRecord = Annotated[
    Union[
        TextPostRecord,
        QuotePostRecord,
        LinkPostRecord,
        AnswerPostRecord,
        VideoPostRecord,
        AudioPostRecord,
        ChatPostRecord,
        PhotoPostRecord,
    ],
    Field(discriminator="type"),
]

_POST_RECORD: TypeAdapter[Any] = TypeAdapter(PostRecord)


def post_from_json(data: str | bytes | dict[str, Any]) -> Post:
    """
    Validate one post record (a JSON document or an already-decoded mapping).

    Raises PostFormatError listing every field that does not match the post data model.
    """
    try:
        if isinstance(data, dict):
            record = _POST_RECORD.validate_python(data)
        else:
            record = _POST_RECORD.validate_json(data)
    except ValidationError as e:
        raise PostFormatError(_format_validation_errors(e)) from e
    return record.to_post()


def post_to_dict(post: Post) -> dict[str, Any]:
    out: dict[str, Any] = {
        "type": post.type.value.lower(),
        "id": post.id,
        "blog_name": post.blog_name,
        "post_url": post.post_url,
        "posted_ms": post.posted_ms,
        "retrieved_ms": post.retrieved_ms,
        "tags": list(post.tags),
    }
    out.update(asdict(post.content))
    return out


def post_to_json(post: Post) -> str:
    return json.dumps(
        post_to_dict(post),
        ensure_ascii=False,
        sort_keys=True,
        separators=(",", ":"),
    )


def read_posts_jsonl(path: str | Path) -> Iterator[Post]:
    p = Path(path)
    with p.open("r", encoding="utf-8") as fp:
        for line_no, line in enumerate(fp, start=1):
            text = line.strip()
            if not text:
                continue
            try:
                yield post_from_json(text)
            except PostFormatError as e:
                raise PostFormatError(f"{p}:{line_no}: {e}") from e


def write_posts_jsonl(path: str | Path, posts: Iterable[Post]) -> int:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    count = 0
    with p.open("w", encoding="utf-8", newline="\n") as fp:
        for post in posts:
            fp.write(post_to_json(post) + "\n")
            count += 1
    return count


def _format_validation_errors(err: ValidationError) -> str:
    lines: list[str] = ["Invalid post record:"]
    for item in err.errors():
        loc = ".".join(str(part) for part in item.get("loc", [])) or "<root>"
        msg = item.get("msg", "invalid value")
        lines.append(f"- {loc}: {msg}")
    return "\n".join(lines)
