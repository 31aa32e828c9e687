from __future__ import annotations

import subprocess
import tempfile
import unittest
from pathlib import Path
from typing import Any

from feed_harvest.config_schema import SlideshowConfig
from feed_harvest.errors import AssemblyError, PreconditionError
from feed_harvest.slideshow import (
    MANIFEST_NAME,
    SlideshowAssembler,
    build_concat_manifest,
    ensure_encoder_available,
    probe_audio_duration,
    segment_durations,
)


class _FakeFfmpeg:
    """Stands in for subprocess.run for ffmpeg/ffprobe invocations."""

    def __init__(self, *, probe_stdout: str = "12.0\n", fail_encode: bool = False) -> None:
        self.probe_stdout = probe_stdout
        self.fail_encode = fail_encode
        self.commands: list[list[str]] = []
        self.manifests: list[str] = []
        self.cwds: list[Any] = []

    def __call__(self, cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        self.commands.append(list(cmd))
        if cmd[1] == "-version":
            return subprocess.CompletedProcess(cmd, 0, "ffmpeg version 6.1", "")
        if cmd[1] == "-v":
            return subprocess.CompletedProcess(cmd, 0, self.probe_stdout, "")

        self.cwds.append(kwargs.get("cwd"))
        manifest = Path(cmd[cmd.index("-i") + 1])
        self.manifests.append(manifest.read_text(encoding="utf-8"))
        Path(cmd[-1]).write_bytes(b"partial")
        if self.fail_encode:
            raise subprocess.CalledProcessError(1, cmd, output="", stderr="concat.txt: Invalid data found")
        Path(cmd[-1]).write_bytes(b"\x00\x00\x00\x18ftypmp42")
        return subprocess.CompletedProcess(cmd, 0, "", "")


def _raise_missing(cmd: list[str], **kwargs: Any) -> Any:
    raise FileNotFoundError(cmd[0])


def _images(work: Path, n: int) -> list[Path]:
    out = []
    for i in range(1, n + 1):
        p = work / f"img_{i:03d}.jpg"
        p.write_bytes(b"jpg")
        out.append(p)
    return out


class TestSegmentDurations(unittest.TestCase):
    def test_total_is_preserved_for_any_image_count(self) -> None:
        for total in (15.0, 9.87, 30.5, 0.5):
            for n in range(1, 60):
                parts = segment_durations(total, n)
                self.assertEqual(len(parts), n)
                self.assertAlmostEqual(sum(parts), round(total, 3), places=6)
                self.assertLessEqual(max(parts) - min(parts), 0.001 + 1e-9)

    def test_rejects_zero_images(self) -> None:
        with self.assertRaises(ValueError):
            segment_durations(15.0, 0)


class TestManifest(unittest.TestCase):
    def test_manifest_repeats_last_image(self) -> None:
        text = build_concat_manifest(["img_001.jpg", "img_002.jpg"], [7.5, 7.5])
        self.assertEqual(
            text,
            "file 'img_001.jpg'\nduration 7.500\n"
            "file 'img_002.jpg'\nduration 7.500\n"
            "file 'img_002.jpg'\n",
        )

    def test_manifest_quotes_apostrophes(self) -> None:
        text = build_concat_manifest(["it's.jpg"], [1.0])
        self.assertIn("file 'it'\\''s.jpg'", text)


class TestProbe(unittest.TestCase):
    def test_probe_reads_duration(self) -> None:
        self.assertEqual(probe_audio_duration("a.mp3", runner=_FakeFfmpeg(probe_stdout="12.5\n")), 12.5)

    def test_probe_falls_back_to_default(self) -> None:
        self.assertEqual(probe_audio_duration("a.mp3", runner=_raise_missing), 15.0)
        self.assertEqual(probe_audio_duration("a.mp3", runner=_FakeFfmpeg(probe_stdout="N/A")), 15.0)
        self.assertEqual(probe_audio_duration("a.mp3", runner=_FakeFfmpeg(probe_stdout="0")), 15.0)
        self.assertEqual(probe_audio_duration("a.mp3", default=9.0, runner=_raise_missing), 9.0)


class TestEncoderCheck(unittest.TestCase):
    def test_missing_encoder_is_a_precondition_error(self) -> None:
        with self.assertRaises(PreconditionError):
            ensure_encoder_available("ffmpeg", runner=_raise_missing)
        ensure_encoder_available("ffmpeg", runner=_FakeFfmpeg())


class TestSlideshowAssembler(unittest.TestCase):
    def test_assembles_and_cleans_inputs(self) -> None:
        ffmpeg = _FakeFfmpeg()
        assembler = SlideshowAssembler(runner=ffmpeg)

        with tempfile.TemporaryDirectory() as td:
            work = Path(td) / "work"
            work.mkdir()
            images = _images(work, 3)
            audio = work / "audio.mp3"
            audio.write_bytes(b"mp3")
            output = Path(td) / "out" / "trip_12345678.mp4"

            result = assembler.assemble(images, audio, output, duration_seconds=12.0)

            self.assertEqual(result, output)
            self.assertTrue(output.exists())
            self.assertEqual(list(work.iterdir()), [])

        cmd = ffmpeg.commands[-1]
        self.assertEqual(cmd[:7], ["ffmpeg", "-f", "concat", "-safe", "0", "-i", str(work / MANIFEST_NAME)])
        self.assertIn("-shortest", cmd)
        self.assertIn("aac", cmd)
        self.assertEqual(ffmpeg.cwds[-1], str(work))
        self.assertEqual(ffmpeg.manifests[-1].count("duration 4.000"), 3)

    def test_without_audio_uses_default_duration(self) -> None:
        ffmpeg = _FakeFfmpeg()
        assembler = SlideshowAssembler(config=SlideshowConfig(default_duration_seconds=15), runner=ffmpeg)

        with tempfile.TemporaryDirectory() as td:
            work = Path(td)
            images = _images(work, 2)
            assembler.assemble(images, None, work / "out.mp4")

        cmd = ffmpeg.commands[-1]
        self.assertNotIn("-shortest", cmd)
        self.assertNotIn("-c:a", cmd)
        self.assertEqual(cmd.count("-i"), 1)
        self.assertEqual(ffmpeg.manifests[-1].count("duration 7.500"), 2)

    def test_failure_raises_with_encoder_message(self) -> None:
        assembler = SlideshowAssembler(runner=_FakeFfmpeg(fail_encode=True))

        with tempfile.TemporaryDirectory() as td:
            work = Path(td)
            images = _images(work, 2)
            output = work / "out.mp4"

            with self.assertRaises(AssemblyError) as ctx:
                assembler.assemble(images, None, output, duration_seconds=10)

            self.assertIn("Invalid data found", str(ctx.exception))
            self.assertFalse((work / MANIFEST_NAME).exists())
            self.assertFalse(output.exists())
            # Inputs stay for the caller's working-area teardown.
            self.assertTrue(all(p.exists() for p in images))

    def test_no_images_is_an_error(self) -> None:
        with self.assertRaises(AssemblyError):
            SlideshowAssembler(runner=_FakeFfmpeg()).assemble([], None, "out.mp4")


if __name__ == "__main__":
    unittest.main()
