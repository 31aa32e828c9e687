from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

PositiveInt = Annotated[int, Field(ge=1)]
NonNegativeInt = Annotated[int, Field(ge=0)]
PositiveFloat = Annotated[float, Field(gt=0)]
NonNegativeFloat = Annotated[float, Field(ge=0)]


def _non_empty(value: str, *, what: str) -> str:
    v = (value or "").strip()
    if not v:
        raise ValueError(f"{what} must be a non-empty string")
    return v


class ResolverConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    api_url: str = "https://www.tikwm.com/api/"
    timeout_seconds: PositiveFloat = 15.0
    # The upstream's certificate chain does not validate everywhere.
    verify_tls: bool = False

    @field_validator("api_url")
    @classmethod
    def _api_url_must_be_set(cls, v: str) -> str:
        return _non_empty(v, what="api_url")


class TransferConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    timeout_seconds: PositiveFloat = 60.0
    chunk_size: PositiveInt = 64 * 1024
    verify_tls: bool = False


class SlideshowConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    ffmpeg_bin: str = "ffmpeg"
    ffprobe_bin: str = "ffprobe"
    default_duration_seconds: PositiveFloat = 15.0
    audio_bitrate: str = "192k"

    @field_validator("ffmpeg_bin", "ffprobe_bin")
    @classmethod
    def _binary_must_be_set(cls, v: str) -> str:
        return _non_empty(v, what="binary")


class RetryPolicyConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    max_retries: NonNegativeInt = 2
    base_delay_seconds: NonNegativeFloat = 1.0


class DiscoveryConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    profile_url_template: str = "https://www.tiktok.com/{handle}"
    post_selector: str = 'a[href*="/video/"], a[href*="/photo/"]'
    default_target_count: PositiveInt = 50
    max_iterations: PositiveInt = 100
    max_stagnant_iterations: PositiveInt = 5
    settle_timeout_ms: PositiveInt = 5000
    settle_fallback_ms: NonNegativeInt = 2000
    stagnant_pause_ms: NonNegativeInt = 3000

    headless: bool = False
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    viewport_width: PositiveInt = 1280
    viewport_height: PositiveInt = 720
    cookies_path: str | None = None

    @model_validator(mode="after")
    def _template_has_handle(self) -> "DiscoveryConfig":
        if "{handle}" not in self.profile_url_template:
            raise ValueError("profile_url_template must contain '{handle}'")
        return self


class OutputConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    root: str = "~/Downloads"
    discovery_file: str = "videos.json"
    failure_log: str = "download-failures.log"
    run_log: str = "run.log"

    @field_validator("root", "discovery_file", "failure_log", "run_log")
    @classmethod
    def _path_must_be_set(cls, v: str) -> str:
        return _non_empty(v, what="path")


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    transfer: TransferConfig = Field(default_factory=TransferConfig)
    slideshow: SlideshowConfig = Field(default_factory=SlideshowConfig)
    retry: RetryPolicyConfig = Field(default_factory=RetryPolicyConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
