from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Any, Sequence

import requests
from pydantic import ValidationError
from urllib3.exceptions import InsecureRequestWarning

from .config_schema import ResolverConfig
from .errors import ResolutionError
from .post import is_photo_post
from .resolver_schema import ResolverData, ResolverResponse


@dataclass(frozen=True)
class ResolvedMedia:
    """Direct media locations for one post."""

    title: str | None = None
    video_url: str | None = None
    image_urls: Sequence[str] = ()
    audio_url: str | None = None

    @property
    def is_photo_set(self) -> bool:
        return bool(self.image_urls)


def media_from_payload(data: ResolverData, *, photo: bool) -> ResolvedMedia:
    if photo:
        if not data.images:
            raise ResolutionError("No photo data returned")
        return ResolvedMedia(
            title=data.title,
            image_urls=tuple(data.images),
            audio_url=data.music,
        )

    video_url = data.hdplay or data.play
    if not video_url:
        raise ResolutionError("No video URL available")
    return ResolvedMedia(title=data.title, video_url=video_url)


class ResolverClient:
    """
    Thin client for the content-resolution API.

    One GET per post, always asking for the HD variant. Retrying is left to the caller.
    """

    def __init__(
        self,
        *,
        config: ResolverConfig | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._cfg = config or ResolverConfig()
        self._session = session or requests.Session()

    def resolve(self, post_url: str) -> ResolvedMedia:
        url = (post_url or "").strip()
        if not url:
            raise ResolutionError("post_url must be a non-empty string")

        body = self._get_json(url)

        try:
            parsed = ResolverResponse.model_validate(body)
        except ValidationError as e:
            raise ResolutionError(f"Unexpected resolver payload for {url}: {e}") from e

        if parsed.data is None:
            detail = f" ({parsed.msg})" if parsed.msg else ""
            kind = "photo" if is_photo_post(url) else "video"
            raise ResolutionError(f"No {kind} data returned{detail}")

        return media_from_payload(parsed.data, photo=is_photo_post(url))

    def _get_json(self, url: str) -> Any:
        try:
            with warnings.catch_warnings():
                if not self._cfg.verify_tls:
                    warnings.simplefilter("ignore", InsecureRequestWarning)
                resp = self._session.get(
                    self._cfg.api_url,
                    params={"url": url, "hd": 1},
                    timeout=self._cfg.timeout_seconds,
                    verify=self._cfg.verify_tls,
                )
                resp.raise_for_status()
                return resp.json()
        except requests.RequestException as e:
            raise ResolutionError(f"Resolver request failed for {url}: {e}") from e
        except ValueError as e:
            raise ResolutionError(f"Resolver returned invalid JSON for {url}: {e}") from e
