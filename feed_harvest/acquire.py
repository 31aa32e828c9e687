from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Protocol, Sequence

from .errors import ExhaustedRetriesError, ResolutionError, TransferError
from .failure_log import FailureLog
from .naming import build_output_filename, find_existing_output, partial_output_path
from .post import PostReference
from .resolver import ResolvedMedia
from .retry import RetryConfig, RetryEvent, SleepFn, call_with_retries
from .run_log import RunLogger
from .slideshow import SlideshowAssembler
from .staging import working_area

AcquisitionStatus = Literal["downloaded", "skipped", "failed"]


class Resolver(Protocol):
    def resolve(self, post_url: str) -> ResolvedMedia: ...


class Fetcher(Protocol):
    def fetch(self, url: str, destination: str | Path) -> int: ...


@dataclass(frozen=True)
class AcquisitionOutcome:
    status: AcquisitionStatus
    url: str
    output_path: Path | None = None
    error: str | None = None
    attempts: int = 0


def _mb(size: int) -> str:
    return f"{size / 1024 / 1024:.2f} MB"


class PostAcquirer:
    """
    Downloads one post end to end: skip check, resolve, fetch, assemble, finalize.

    Everything after the skip check runs inside the retry policy. Each attempt of a
    photo post gets its own working area, so nothing from a failed attempt leaks
    into the next one. Media is written to a `.part.mp4` sibling and renamed into
    place only when complete. Failures are recorded in the failure log and reported as an
    outcome; they never propagate to the caller.
    """

    def __init__(
        self,
        *,
        resolver: Resolver,
        fetcher: Fetcher,
        assembler: SlideshowAssembler,
        failure_log: FailureLog,
        retry: RetryConfig | None = None,
        logger: RunLogger | None = None,
        sleep_fn: SleepFn | None = None,
        scratch_dir: str | Path | None = None,
    ) -> None:
        self._resolver = resolver
        self._fetcher = fetcher
        self._assembler = assembler
        self._failure_log = failure_log
        self._retry = retry or RetryConfig()
        self._log = logger or RunLogger.null()
        self._sleep_fn = sleep_fn
        self._scratch_dir = scratch_dir

    @property
    def assembler(self) -> SlideshowAssembler:
        return self._assembler

    def acquire(
        self,
        ref: PostReference,
        output_root: str | Path,
        *,
        index: int = 0,
        total: int = 1,
    ) -> AcquisitionOutcome:
        tag = f"[{index + 1}/{total}]"
        out_dir = Path(output_root) / ref.owner_handle
        out_dir.mkdir(parents=True, exist_ok=True)

        if ref.post_id_synthesized:
            self._log.warning("post_id_synthesized", url=ref.url, post_id=ref.post_id)

        existing = find_existing_output(out_dir, ref.short_id)
        if existing is not None:
            label = " (slideshow)" if ref.is_photo else ""
            self._log.progress(
                "post_skipped",
                f"{tag} Already exists: {ref.post_id}{label}",
                url=ref.url,
                path=str(existing),
            )
            return AcquisitionOutcome(status="skipped", url=ref.url, output_path=existing)

        attempts = 0

        def _attempt() -> Path:
            nonlocal attempts
            attempts += 1
            if ref.is_photo:
                return self._acquire_photo_set(ref, out_dir, tag)
            return self._acquire_video(ref, out_dir)

        def _on_retry(ev: RetryEvent) -> None:
            self._log.progress(
                "post_retry",
                f"{tag} Retry {ev.failure_attempt}/{ev.max_attempts - 1} for {ref.url}",
                level="WARN",
                url=ref.url,
                error_type=ev.error_type,
                error_message=ev.error_message,
                delay_seconds=ev.delay_seconds,
            )

        try:
            path = call_with_retries(
                _attempt,
                cfg=self._retry,
                operation=f"acquire.{ref.kind}",
                on_retry=_on_retry,
                sleep_fn=self._sleep_fn,
                context_url=ref.url,
            )
        except ExhaustedRetriesError as e:
            message = (str(e.last_error) or "").strip() or type(e.last_error).__name__
            self._failure_log.append(ref.url, message)
            self._log.progress(
                "post_failed",
                f"{tag} Failed after {self._retry.max_retries} retries: {ref.url} - {message}",
                level="ERROR",
                url=ref.url,
                attempts=attempts,
            )
            return AcquisitionOutcome(status="failed", url=ref.url, error=message, attempts=attempts)

        size = path.stat().st_size if path.exists() else 0
        what = "Created slideshow video" if ref.is_photo else "Downloaded"
        self._log.progress(
            "post_downloaded",
            f"{tag} {what}: {path.name} ({_mb(size)})",
            url=ref.url,
            path=str(path),
            size_bytes=size,
            attempts=attempts,
        )
        return AcquisitionOutcome(status="downloaded", url=ref.url, output_path=path, attempts=attempts)

    def _acquire_video(self, ref: PostReference, out_dir: Path) -> Path:
        media = self._resolver.resolve(ref.url)
        if not media.video_url:
            raise ResolutionError("No video URL available")

        filename = build_output_filename(media.title, ref.short_id, default_caption="video")
        dest = out_dir / filename
        part = partial_output_path(dest)

        try:
            self._fetcher.fetch(media.video_url, part)
        except Exception:
            part.unlink(missing_ok=True)
            raise
        part.replace(dest)
        return dest

    def _acquire_photo_set(self, ref: PostReference, out_dir: Path, tag: str) -> Path:
        media = self._resolver.resolve(ref.url)
        if not media.image_urls:
            raise ResolutionError("No photo data returned")

        filename = build_output_filename(media.title, ref.short_id, default_caption="slideshow")
        dest = out_dir / filename

        with working_area(base_dir=self._scratch_dir) as work:
            self._log.progress(
                "photo_set_download_started",
                f"{tag} Downloading {len(media.image_urls)} images from slideshow...",
                url=ref.url,
                images=len(media.image_urls),
            )
            images = self._fetch_images(media.image_urls, work)

            audio: Path | None = None
            duration = float(self._assembler.config.default_duration_seconds)
            if media.audio_url:
                candidate = work / "audio.mp3"
                try:
                    self._fetcher.fetch(media.audio_url, candidate)
                except TransferError as e:
                    candidate.unlink(missing_ok=True)
                    self._log.progress(
                        "audio_download_failed",
                        f"Could not download audio: {e}",
                        level="WARN",
                        url=ref.url,
                    )
                else:
                    audio = candidate
                    duration = self._assembler.probe_duration(candidate)
                    self._log.progress(
                        "audio_downloaded",
                        f"Downloaded audio ({duration:.1f}s)",
                        url=ref.url,
                        duration_seconds=duration,
                    )

            part = partial_output_path(dest)
            self._assembler.assemble(images, audio, part, duration_seconds=duration)
            part.replace(dest)

        return dest

    def _fetch_images(self, urls: Sequence[str], work: Path) -> list[Path]:
        images: list[Path] = []
        for i, url in enumerate(urls, start=1):
            path = work / f"img_{i:03d}.jpg"
            try:
                self._fetcher.fetch(url, path)
            except TransferError as e:
                raise TransferError(f"Image {i} failed: {e}") from e
            images.append(path)
        return images
