from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from .batch import build_batch_runner, shared_owner_label
from .config import config_sha256, load_config, resolve_output_root
from .config_schema import AppConfig
from .discovery import LinkDiscoverer, normalize_handle
from .errors import ConfigError, PreconditionError
from .failure_report import build_run_summary, format_run_summary
from .post import PostReference
from .run_log import RunLogger
from .slideshow import SlideshowAssembler
from .storage import load_discovered_links, save_discovered_links


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="feed-harvest",
        epilog=(
            "examples:\n"
            "  feed-harvest run johndoe 150\n"
            "  feed-harvest run --existing-list --archive"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser(
        "run",
        help="Discover a profile's posts and download them, or download a saved list.",
    )
    run.add_argument(
        "owner",
        nargs="?",
        help="Profile handle to discover (with or without a leading @).",
    )
    run.add_argument(
        "count",
        nargs="?",
        type=int,
        help="How many posts to discover (default from config, 50).",
    )
    run.add_argument(
        "--existing-list",
        action="store_true",
        help="Skip discovery and download the URLs in the saved discovery file.",
    )
    run.add_argument(
        "--archive",
        action="store_true",
        help="Package everything into a single zip under the output directory.",
    )
    run.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file (defaults apply when omitted).",
    )
    run.add_argument(
        "--out",
        default=None,
        help="Output root directory (default: output.root from config).",
    )
    run.add_argument(
        "--discovery-file",
        default=None,
        help="Discovery result file (default: output.discovery_file from config).",
    )
    run.set_defaults(_handler=_cmd_run)

    return parser


def _eprint(message: str) -> None:
    print(message, file=sys.stderr)


def _validate_run_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    if args.existing_list:
        if args.owner is not None or args.count is not None:
            parser.error("--existing-list does not take a profile handle or count")
        return

    if not (args.owner or "").strip().lstrip("@"):
        parser.error("a profile handle is required (or use --existing-list)")
    if args.count is not None and args.count <= 0:
        parser.error("count must be a positive integer")


def _discover(cfg: AppConfig, owner: str, count: int, discovery_file: Path, log: RunLogger) -> list[str]:
    from .browser import open_feed_page

    with open_feed_page(cfg.discovery) as page:
        links = LinkDiscoverer(page, config=cfg.discovery, logger=log).discover(owner, count)

    save_discovered_links(discovery_file, links)
    log.progress(
        "discovery_saved",
        f"Saved {len(links)} URLs to {discovery_file}",
        path=str(discovery_file),
        count=len(links),
    )
    return links


def _cmd_run(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    output_root = resolve_output_root(cfg, args.out)
    discovery_file = Path(args.discovery_file or cfg.output.discovery_file)

    with RunLogger.open(cfg.output.run_log, overwrite=True, console=sys.stdout) as log:
        log.info(
            "run_command_started",
            config_path=str(args.config) if args.config else None,
            config_sha256=config_sha256(cfg),
            output_root=str(output_root),
            existing_list=bool(args.existing_list),
            archive=bool(args.archive),
        )

        try:
            if args.existing_list:
                links = load_discovered_links(discovery_file)
                log.progress(
                    "discovery_loaded",
                    f"Found {len(links)} video links in {discovery_file}",
                    path=str(discovery_file),
                    count=len(links),
                )
                refs = [PostReference.from_url(u) for u in links]
                owner_label = shared_owner_label(refs)
            else:
                owner = normalize_handle(args.owner)
                count = args.count or cfg.discovery.default_target_count
                # Fail before spending minutes in the browser.
                SlideshowAssembler(config=cfg.slideshow).ensure_encoder()
                links = _discover(cfg, owner, count, discovery_file, log)
                refs = [PostReference.from_url(u) for u in links]
                owner_label = owner

            runner = build_batch_runner(cfg, output_root=output_root, logger=log)
            stats = runner.run(refs, package_as_archive=bool(args.archive), owner_label=owner_label)

            report = build_run_summary(stats, failure_log_path=cfg.output.failure_log)
            log.info("run_summary", **report)
            print()
            print(format_run_summary(report))
            print(f"run_log={cfg.output.run_log}")
            return 0
        except Exception as e:
            log.exception("run_command_failed", exc=e)
            raise


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    if args.command == "run":
        _validate_run_args(parser, args)

    try:
        handler = getattr(args, "_handler")
        return int(handler(args))
    except (ConfigError, PreconditionError) as e:
        _eprint(str(e))
        return 2
    except KeyboardInterrupt:
        _eprint("Interrupted")
        return 130
    except Exception as e:
        _eprint(f"Unexpected error: {e}")
        return 1
