from __future__ import annotations

import unittest

from feed_harvest.post import (
    FallbackIdSource,
    PostReference,
    extract_owner_handle,
    extract_post_id,
    is_photo_post,
)


class TestPostReference(unittest.TestCase):
    def test_parses_video_url(self) -> None:
        ref = PostReference.from_url("https://www.tiktok.com/@alice/video/7301234567890123456")
        self.assertEqual(ref.owner_handle, "@alice")
        self.assertEqual(ref.post_id, "7301234567890123456")
        self.assertEqual(ref.kind, "video")
        self.assertEqual(ref.short_id, "90123456")
        self.assertFalse(ref.post_id_synthesized)

    def test_parses_photo_url(self) -> None:
        ref = PostReference.from_url(" https://www.tiktok.com/@bob.b/photo/7300000000000000042?lang=en ")
        self.assertEqual(ref.url, "https://www.tiktok.com/@bob.b/photo/7300000000000000042?lang=en")
        self.assertEqual(ref.owner_handle, "@bob.b")
        self.assertTrue(ref.is_photo)
        self.assertEqual(ref.short_id, "00000042")

    def test_unparseable_id_falls_back_to_clock(self) -> None:
        ref = PostReference.from_url("https://www.tiktok.com/@alice/live", clock=lambda: 1700000000123)
        self.assertEqual(ref.post_id, "1700000000123")
        self.assertTrue(ref.post_id_synthesized)
        self.assertEqual(ref.short_id, "00000123")

    def test_fallback_ids_never_repeat_within_one_millisecond(self) -> None:
        ids = FallbackIdSource(clock=lambda: 1700000000123)
        refs = [
            PostReference.from_url(f"https://www.tiktok.com/@alice/video/{slug}", clock=ids)
            for slug in ("abc", "def", "ghi")
        ]

        self.assertEqual([r.post_id for r in refs], ["1700000000123", "1700000000124", "1700000000125"])
        self.assertEqual(len({r.short_id for r in refs}), 3)
        self.assertTrue(all(r.post_id_synthesized for r in refs))

    def test_helpers(self) -> None:
        self.assertEqual(extract_owner_handle("https://example.com/video/1"), "unknown")
        self.assertIsNone(extract_post_id("https://www.tiktok.com/@a/video/abc"))
        self.assertTrue(is_photo_post("https://www.tiktok.com/@a/photo/1"))
        self.assertFalse(is_photo_post("https://www.tiktok.com/@a/video/1"))


if __name__ == "__main__":
    unittest.main()
