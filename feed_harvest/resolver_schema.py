from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        v = value.strip()
        return v or None
    return value


class ResolverData(BaseModel):
    """The `data` object returned by the resolver API for one post."""

    # The upstream returns many more fields (stats, author, music_info, ...).
    model_config = ConfigDict(extra="ignore", frozen=True)

    title: str | None = None
    play: str | None = None
    hdplay: str | None = None
    images: list[str] = Field(default_factory=list)
    music: str | None = None

    @field_validator("title", "play", "hdplay", "music", mode="before")
    @classmethod
    def _strip_strings(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("images", mode="before")
    @classmethod
    def _drop_blank_images(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, list):
            return [s.strip() for s in v if isinstance(s, str) and s.strip()]
        return v


class ResolverResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    code: int | None = None
    msg: str | None = None
    data: ResolverData | None = None
