from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Protocol, Sequence

from .config_schema import DiscoveryConfig
from .dedupe import OrderedLinkSet
from .run_log import RunLogger
from .stagnation import StagnationTracker

DiscoveryStatus = Literal["target_reached", "stagnated", "max_iterations"]


class FeedPage(Protocol):
    """The handful of browser operations discovery needs."""

    def open_profile(self, url: str) -> None: ...

    def wait_for_first_post(self) -> None: ...

    def post_links(self) -> Sequence[str]: ...

    def scroll_to_end(self) -> None: ...

    def wait_for_settle(self, timeout_ms: int) -> bool: ...

    def pause(self, ms: int) -> None: ...


@dataclass(frozen=True)
class DiscoveryResult:
    links: list[str]
    status: DiscoveryStatus
    iterations: int
    collected: int


def normalize_handle(handle: str) -> str:
    h = (handle or "").strip()
    if h.startswith("@"):
        h = h[1:].strip()
    if not h:
        raise ValueError("owner handle must be a non-empty string")
    return f"@{h}"


class LinkDiscoverer:
    """
    Scrolls a profile feed until enough unique post links are rendered.

    Stops when the target is met, when the feed stops growing for
    `max_stagnant_iterations` rounds, or after `max_iterations` rounds. Waiting for
    the first post has no timeout, so a slow manual page interaction is tolerated.
    """

    def __init__(
        self,
        page: FeedPage,
        *,
        config: DiscoveryConfig | None = None,
        logger: RunLogger | None = None,
    ) -> None:
        self._page = page
        self._cfg = config or DiscoveryConfig()
        self._log = logger or RunLogger.null()

    def discover(self, handle: str, target_count: int) -> list[str]:
        return self.run(handle, target_count).links

    def run(self, handle: str, target_count: int) -> DiscoveryResult:
        if target_count <= 0:
            raise ValueError("target_count must be positive")

        owner = normalize_handle(handle)
        profile_url = self._cfg.profile_url_template.format(handle=owner)

        self._log.progress(
            "discovery_started",
            f"Starting discovery for {owner}...",
            url=profile_url,
            target_count=target_count,
        )
        self._page.open_profile(profile_url)
        self._page.wait_for_first_post()

        links = OrderedLinkSet()
        stagnation = StagnationTracker(
            window_size=self._cfg.max_stagnant_iterations,
            min_new_total=1,
        )
        status: DiscoveryStatus = "max_iterations"
        iterations = 0

        for _ in range(self._cfg.max_iterations):
            iterations += 1
            added = links.update(self._page.post_links())

            if len(links) >= target_count:
                status = "target_reached"
                self._log.progress("discovery_target_reached", "Target reached!", collected=len(links))
                break

            if stagnation.push(added):
                status = "stagnated"
                self._log.progress(
                    "discovery_stagnated",
                    "No more posts loading after multiple attempts, stopping scroll",
                    collected=len(links),
                )
                break

            if added == 0:
                self._log.progress(
                    "discovery_idle",
                    f"No new content ({stagnation.idle_streak()}/{self._cfg.max_stagnant_iterations} attempts)",
                    collected=len(links),
                )
                self._page.pause(self._cfg.stagnant_pause_ms)

            self._page.scroll_to_end()
            if not self._page.wait_for_settle(self._cfg.settle_timeout_ms):
                self._page.pause(self._cfg.settle_fallback_ms)

        # The feed renders newest first; keep the newest `target_count`, oldest first.
        found = links.as_list()[:target_count]
        found.reverse()

        self._log.progress(
            "discovery_completed",
            f"Found {len(found)} video/photo URLs",
            status=status,
            iterations=iterations,
            collected=len(links),
        )
        return DiscoveryResult(links=found, status=status, iterations=iterations, collected=len(links))
