from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any, Callable, Sequence

from .config_schema import SlideshowConfig
from .errors import AssemblyError, PreconditionError

RunFn = Callable[..., "subprocess.CompletedProcess[str]"]

MANIFEST_NAME = "concat.txt"


def probe_audio_duration(
    audio_path: str | Path,
    *,
    ffprobe_bin: str = "ffprobe",
    default: float = 15.0,
    runner: RunFn | None = None,
) -> float:
    """
    Return the audio duration in seconds, or `default` when ffprobe cannot tell.

    Duration accuracy is best-effort; a probe failure never fails the post.
    """
    run = runner or subprocess.run
    try:
        result = run(
            [
                ffprobe_bin,
                "-v",
                "error",
                "-show_entries",
                "format=duration",
                "-of",
                "default=noprint_wrappers=1:nokey=1",
                str(audio_path),
            ],
            capture_output=True,
            text=True,
            check=True,
        )
        seconds = float((result.stdout or "").strip())
    except (OSError, ValueError, subprocess.SubprocessError):
        return float(default)

    if not seconds > 0:
        return float(default)
    return seconds


def segment_durations(total_seconds: float, count: int) -> list[float]:
    """
    Split `total_seconds` into `count` display durations, in whole milliseconds.

    The parts sum to the total exactly and differ from each other by at most 1 ms.
    """
    if count <= 0:
        raise ValueError("count must be positive")

    total_ms = max(0, int(round(float(total_seconds) * 1000)))
    base, remainder = divmod(total_ms, count)
    return [(base + (1 if i < remainder else 0)) / 1000.0 for i in range(count)]


def _quote_concat_path(name: str) -> str:
    return "'" + name.replace("'", "'\\''") + "'"


def build_concat_manifest(image_names: Sequence[str], durations: Sequence[float]) -> str:
    if not image_names:
        raise ValueError("at least one image is required")
    if len(image_names) != len(durations):
        raise ValueError("image_names and durations must have the same length")

    lines: list[str] = []
    for name, seconds in zip(image_names, durations):
        lines.append(f"file {_quote_concat_path(name)}")
        lines.append(f"duration {seconds:.3f}")
    # The concat demuxer ignores the last duration unless the final file is repeated.
    lines.append(f"file {_quote_concat_path(image_names[-1])}")
    return "\n".join(lines) + "\n"


def ensure_encoder_available(ffmpeg_bin: str = "ffmpeg", *, runner: RunFn | None = None) -> None:
    run = runner or subprocess.run
    try:
        run([ffmpeg_bin, "-version"], capture_output=True, text=True, check=True)
    except (OSError, subprocess.SubprocessError) as e:
        raise PreconditionError(
            f"{ffmpeg_bin} is not installed or not in PATH. "
            "Install FFmpeg (Windows: choco install ffmpeg, macOS: brew install ffmpeg, "
            "Linux: sudo apt install ffmpeg)."
        ) from e


def _stderr_tail(text: Any, *, limit: int = 2000) -> str:
    s = str(text or "").strip()
    return s[-limit:] if len(s) > limit else s


class SlideshowAssembler:
    """Turns ordered images plus optional audio into one H.264 video with ffmpeg."""

    def __init__(self, *, config: SlideshowConfig | None = None, runner: RunFn | None = None) -> None:
        self._cfg = config or SlideshowConfig()
        self._run = runner or subprocess.run

    @property
    def config(self) -> SlideshowConfig:
        return self._cfg

    def ensure_encoder(self) -> None:
        ensure_encoder_available(self._cfg.ffmpeg_bin, runner=self._run)

    def probe_duration(self, audio_path: str | Path) -> float:
        return probe_audio_duration(
            audio_path,
            ffprobe_bin=self._cfg.ffprobe_bin,
            default=self._cfg.default_duration_seconds,
            runner=self._run,
        )

    def build_command(self, manifest: Path, audio: Path | None, output: Path) -> list[str]:
        cmd = [self._cfg.ffmpeg_bin, "-f", "concat", "-safe", "0", "-i", str(manifest)]
        if audio is not None:
            cmd.extend(["-i", str(audio)])
        cmd.extend(["-c:v", "libx264", "-tune", "stillimage"])
        if audio is not None:
            cmd.extend(["-c:a", "aac", "-b:a", self._cfg.audio_bitrate])
        cmd.extend(["-pix_fmt", "yuv420p"])
        if audio is not None:
            cmd.append("-shortest")
        cmd.extend(["-y", str(output)])
        return cmd

    def assemble(
        self,
        images: Sequence[str | Path],
        audio: str | Path | None,
        output: str | Path,
        *,
        duration_seconds: float | None = None,
    ) -> Path:
        """
        Encode `images` (in order) into `output`, each shown for duration / N.

        The total timeline equals `duration_seconds`, or the configured default when
        it is unknown. On success the inputs are deleted; the manifest never
        outlives this call. Raises AssemblyError with ffmpeg's stderr on failure.
        """
        image_paths = [Path(p) for p in images]
        if not image_paths:
            raise AssemblyError("No images to assemble")

        total = float(duration_seconds) if duration_seconds and duration_seconds > 0 else float(
            self._cfg.default_duration_seconds
        )

        work_dir = image_paths[0].parent
        manifest = work_dir / MANIFEST_NAME
        audio_path = Path(audio) if audio is not None else None
        out = Path(output)

        durations = segment_durations(total, len(image_paths))
        manifest.write_text(
            build_concat_manifest([p.name for p in image_paths], durations),
            encoding="utf-8",
        )

        try:
            out.parent.mkdir(parents=True, exist_ok=True)
            self._run(
                self.build_command(manifest, audio_path, out),
                cwd=str(work_dir),
                capture_output=True,
                text=True,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            out.unlink(missing_ok=True)
            raise AssemblyError(f"FFmpeg failed: {_stderr_tail(e.stderr) or e}") from e
        except OSError as e:
            out.unlink(missing_ok=True)
            raise AssemblyError(f"FFmpeg failed: {e}") from e
        finally:
            manifest.unlink(missing_ok=True)

        for p in image_paths:
            p.unlink(missing_ok=True)
        if audio_path is not None:
            audio_path.unlink(missing_ok=True)

        return out
