from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Sequence

from .acquire import AcquisitionStatus, PostAcquirer
from .archive import archive_filename, package_directories
from .config_schema import AppConfig
from .failure_log import FailureLog
from .post import PostReference
from .resolver import ResolverClient
from .retry import RetryConfig, SleepFn
from .run_log import RunLogger
from .slideshow import SlideshowAssembler
from .staging import create_staging_root, remove_tree
from .transfer import MediaFetcher


@dataclass
class RunStatistics:
    downloaded: int = 0
    skipped: int = 0
    failed: int = 0
    archive_path: Path | None = None
    archive_size_bytes: int | None = None

    @property
    def processed(self) -> int:
        return self.downloaded + self.skipped + self.failed

    def record(self, status: AcquisitionStatus) -> None:
        if status == "downloaded":
            self.downloaded += 1
        elif status == "skipped":
            self.skipped += 1
        elif status == "failed":
            self.failed += 1
        else:
            raise ValueError(f"Unknown acquisition status: {status}")


def shared_owner_label(references: Sequence[PostReference]) -> str | None:
    owners = {r.owner_handle for r in references}
    if len(owners) == 1:
        return next(iter(owners))
    return None


class BatchRunner:
    """
    Runs every post through the acquirer, strictly one after another.

    In archive mode the posts land in a private staging root; once all of them are
    done the owner folders are zipped into one archive under the output root and
    the staging root is deleted.
    """

    def __init__(
        self,
        acquirer: PostAcquirer,
        *,
        failure_log: FailureLog,
        output_root: str | Path,
        logger: RunLogger | None = None,
        encoder_check: Callable[[], None] | None = None,
        staging_dir: str | Path | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._acquirer = acquirer
        self._failure_log = failure_log
        self._output_root = Path(output_root)
        self._log = logger or RunLogger.null()
        self._encoder_check = encoder_check or acquirer.assembler.ensure_encoder
        self._staging_dir = staging_dir
        self._clock = clock or datetime.now

    def run(
        self,
        references: Sequence[str | PostReference],
        *,
        package_as_archive: bool = False,
        owner_label: str | None = None,
        output_root: str | Path | None = None,
    ) -> RunStatistics:
        # Fatal for the whole run: raises PreconditionError before any post is touched.
        self._encoder_check()

        self._failure_log.reset()

        permanent_root = Path(output_root) if output_root is not None else self._output_root
        refs = [r if isinstance(r, PostReference) else PostReference.from_url(r) for r in references]
        stats = RunStatistics()

        target_root = permanent_root
        if package_as_archive:
            target_root = create_staging_root(base_dir=self._staging_dir)
        else:
            permanent_root.mkdir(parents=True, exist_ok=True)

        self._log.progress(
            "batch_started",
            f"Starting batch download of {len(refs)} posts",
            output_root=str(permanent_root),
            staging_root=str(target_root) if package_as_archive else None,
            archive=package_as_archive,
        )

        try:
            total = len(refs)
            for i, ref in enumerate(refs):
                outcome = self._acquirer.acquire(ref, target_root, index=i, total=total)
                stats.record(outcome.status)

            if package_as_archive:
                name = archive_filename(owner_label, now=self._clock())
                info = package_directories(target_root, permanent_root / name)
                stats.archive_path = info.path
                stats.archive_size_bytes = info.size_bytes
                self._log.progress(
                    "archive_created",
                    f"Created archive {info.path} ({info.size_bytes / 1024 / 1024:.2f} MB)",
                    path=str(info.path),
                    size_bytes=info.size_bytes,
                    files=info.file_count,
                )
        finally:
            if package_as_archive:
                remove_tree(target_root)

        self._log.info(
            "batch_completed",
            downloaded=stats.downloaded,
            skipped=stats.skipped,
            failed=stats.failed,
        )
        return stats


def build_batch_runner(
    config: AppConfig,
    *,
    output_root: str | Path,
    logger: RunLogger | None = None,
    sleep_fn: SleepFn | None = None,
) -> BatchRunner:
    """Wire the production resolver, fetcher and assembler from config."""
    failure_log = FailureLog(config.output.failure_log)
    acquirer = PostAcquirer(
        resolver=ResolverClient(config=config.resolver),
        fetcher=MediaFetcher(config=config.transfer),
        assembler=SlideshowAssembler(config=config.slideshow),
        failure_log=failure_log,
        retry=RetryConfig(
            max_retries=config.retry.max_retries,
            base_delay_seconds=config.retry.base_delay_seconds,
        ),
        logger=logger,
        sleep_fn=sleep_fn,
    )
    return BatchRunner(
        acquirer,
        failure_log=failure_log,
        output_root=output_root,
        logger=logger,
    )
