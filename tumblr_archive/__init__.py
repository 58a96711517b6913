from __future__ import annotations

from .config import load_config, resolve_store_path
from .config_schema import AppConfig, StoreConfig
from .errors import ConfigError, InvariantViolation, PostFormatError, StorageError
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
    PostType,
    QuoteContent,
    TextContent,
    VideoContent,
)
from .storage import SQLitePostStore

__all__ = [
    "AnswerContent",
    "AppConfig",
    "AudioContent",
    "ChatContent",
    "ConfigError",
    "Dialogue",
    "InvariantViolation",
    "LinkContent",
    "Photo",
    "PhotoContent",
    "PhotoSize",
    "Player",
    "Post",
    "PostFormatError",
    "PostType",
    "QuoteContent",
    "SQLitePostStore",
    "StorageError",
    "StoreConfig",
    "TextContent",
    "VideoContent",
    "load_config",
    "resolve_store_path",
]
