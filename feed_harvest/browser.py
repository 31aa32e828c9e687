from __future__ import annotations

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator
from urllib.parse import urlsplit

from playwright.sync_api import Page, sync_playwright
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from .config_schema import DiscoveryConfig
from .errors import ConfigError


def load_cookies(path: str | Path) -> list[dict[str, Any]]:
    """
    Read browser cookies exported as a JSON list or as `{"cookies": [...]}`.

    Browser-extension exports use `expirationDate`; Playwright wants `expires`.
    """
    p = Path(path)
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigError(f"Failed to read cookies file {p}: {e}") from e

    items: Any = raw
    if isinstance(raw, dict):
        items = raw.get("cookies")
    if not isinstance(items, list):
        raise ConfigError(f"Cookies file {p} must hold a list of cookies")

    cookies: list[dict[str, Any]] = []
    for item in items:
        if not isinstance(item, dict) or not item.get("name"):
            continue
        expires = item.get("expires")
        if expires is None and item.get("expirationDate") is not None:
            expires = int(float(item["expirationDate"]))
        cookies.append(
            {
                "name": str(item["name"]),
                "value": str(item.get("value") or ""),
                "domain": item.get("domain"),
                "path": item.get("path") or "/",
                "secure": bool(item.get("secure")),
                "httpOnly": bool(item.get("httpOnly")),
                "expires": expires if expires is not None else -1,
            }
        )
    return cookies


def _origin(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}/"


class PlaywrightFeedPage:
    """FeedPage backed by a Playwright page."""

    def __init__(self, page: Page, *, post_selector: str) -> None:
        self._page = page
        self._selector = post_selector

    def open_profile(self, url: str) -> None:
        self._page.goto(url, wait_until="domcontentloaded", referer=_origin(url))

    def wait_for_first_post(self) -> None:
        # timeout=0 waits forever.
        self._page.wait_for_selector(self._selector, timeout=0)

    def post_links(self) -> list[str]:
        hrefs = self._page.eval_on_selector_all(self._selector, "els => els.map(el => el.href)")
        return [h for h in hrefs if isinstance(h, str) and h]

    def scroll_to_end(self) -> None:
        self._page.evaluate("() => window.scrollTo(0, document.body.scrollHeight)")

    def wait_for_settle(self, timeout_ms: int) -> bool:
        try:
            self._page.wait_for_load_state("networkidle", timeout=timeout_ms)
        except PlaywrightTimeoutError:
            return False
        return True

    def pause(self, ms: int) -> None:
        if ms > 0:
            self._page.wait_for_timeout(ms)


@contextmanager
def open_feed_page(config: DiscoveryConfig) -> Iterator[PlaywrightFeedPage]:
    """Launch Chromium and yield a feed page; the browser closes on exit."""
    cookies = load_cookies(config.cookies_path) if config.cookies_path else []

    with sync_playwright() as p:
        browser = p.chromium.launch(headless=config.headless)
        try:
            context = browser.new_context(
                user_agent=config.user_agent,
                viewport={"width": config.viewport_width, "height": config.viewport_height},
            )
            if cookies:
                context.add_cookies(cookies)
            page = context.new_page()
            yield PlaywrightFeedPage(page, post_selector=config.post_selector)
        finally:
            browser.close()
