from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .chunked import MAX_PARAMS_PER_QUERY

PositiveInt = Annotated[int, Field(ge=1)]
NonNegativeInt = Annotated[int, Field(ge=0)]

# Upper bound of SQLITE_MAX_VARIABLE_NUMBER on SQLite >= 3.32.
_SQLITE_MAX_VARIABLES = 32766


class StoreConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    path: str = "archive.sqlite"
    max_params_per_query: int = Field(MAX_PARAMS_PER_QUERY, ge=1, le=_SQLITE_MAX_VARIABLES)
    busy_timeout_ms: NonNegativeInt = 5000
    journal_mode: Literal["WAL", "DELETE", "MEMORY"] = "WAL"
    statement_cache_size: PositiveInt = 128

    @field_validator("path")
    @classmethod
    def _path_must_be_non_empty(cls, v: str) -> str:
        path = (v or "").strip()
        if not path:
            raise ValueError("must be a non-empty path")
        return path

    @field_validator("journal_mode", mode="before")
    @classmethod
    def _upper_journal_mode(cls, v: object) -> object:
        return v.strip().upper() if isinstance(v, str) else v


class LogConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    path: str = "archive.log"
    overwrite: bool = False


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    store: StoreConfig = Field(default_factory=StoreConfig)
    log: LogConfig = Field(default_factory=LogConfig)
