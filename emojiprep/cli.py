"""CLI entrypoint for the emoji asset tools.

Usage:
    python -m emojiprep fetch
    python -m emojiprep fetch --url https://github.com/googlefonts/noto-emoji/tree/main/svg
    python -m emojiprep convert
    python -m emojiprep convert --input-dir ./svg --format png --size 64
    python -m emojiprep convert --options '{"quality": 80, "method": 6}'
    python -m emojiprep unicode --data-dir ./data

Defaults come from the environment (INPUT_DIR, OUTPUT_DIR, OUTPUT_FORMAT,
OUTPUT_EXT, OUTPUT_SIZE, OUTPUT_OPTIONS, GITHUB_SVG_URLS, OUT_DIR,
GITHUB_TOKEN, DATA_DIR); flags override them.
"""

from __future__ import annotations

import argparse
import logging
from logging.handlers import RotatingFileHandler
import sys
import threading
from pathlib import Path

import requests

from .errors import ConfigError, DispatchError
from .models import Aggregate, ConvertConfig, ProgressSnapshot
from .utils import (
    DEFAULT_DATA_DIR,
    DEFAULT_GITHUB_SVG_URLS,
    DEFAULT_INPUT_DIR,
    DEFAULT_OUTPUT_FORMAT,
    DEFAULT_OUTPUT_SIZE,
    DEFAULT_UNICODE_VERSION,
    default_output_options,
    env_list,
    env_str,
    normalize_ext,
    parse_output_options,
)

log = logging.getLogger(__name__)

EXIT_FATAL = 1
EXIT_CONFIG = 2


def _setup_logging(
    *,
    verbose: bool,
    detailed_logging: bool,
    log_file: Path | None,
) -> None:
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    root_level = logging.DEBUG if verbose else logging.INFO
    root_logger.setLevel(root_level)

    console_fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    detailed_fmt = (
        "%(asctime)s | %(levelname)-8s | %(name)s | "
        "%(threadName)s | %(filename)s:%(lineno)d | %(message)s"
    )
    formatter = logging.Formatter(
        detailed_fmt if detailed_logging else console_fmt,
        "%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(root_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=20 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(detailed_fmt, "%Y-%m-%d %H:%M:%S"))
        root_logger.addHandler(file_handler)

    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Fetch, rasterize and catalog emoji assets"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--detailed-logging",
        action="store_true",
        help="Enable detailed logging (thread, file/line)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Optional rotating log file path",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    # --- fetch ---
    fetch = commands.add_parser("fetch", help="Download SVG icon sets from GitHub")
    fetch.add_argument(
        "--url",
        dest="urls",
        action="append",
        default=None,
        help="GitHub directory URL (repeatable; default: $GITHUB_SVG_URLS or Noto emoji)",
    )
    fetch.add_argument(
        "--out-dir",
        type=Path,
        default=Path(env_str("OUT_DIR", "./svg")),
        help="Destination directory, cleared first (default: $OUT_DIR or ./svg)",
    )
    fetch.add_argument(
        "--token",
        default=env_str("GITHUB_TOKEN"),
        help="GitHub token (default: $GITHUB_TOKEN)",
    )
    fetch.add_argument(
        "--max-workers",
        type=int,
        default=4,
        help="Concurrent source downloads",
    )

    # --- convert ---
    convert = commands.add_parser("convert", help="Convert SVGs to raster images")
    convert.add_argument(
        "--input-dir",
        type=Path,
        default=Path(env_str("INPUT_DIR", DEFAULT_INPUT_DIR)),
        help="Directory of source images (default: $INPUT_DIR or ./svg)",
    )
    convert.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Destination directory, cleared first (default: $OUTPUT_DIR or ./<format>)",
    )
    convert.add_argument(
        "--format",
        dest="output_format",
        default=env_str("OUTPUT_FORMAT", DEFAULT_OUTPUT_FORMAT),
        help="Output format (default: $OUTPUT_FORMAT or webp)",
    )
    convert.add_argument(
        "--ext",
        dest="output_ext",
        default=env_str("OUTPUT_EXT"),
        help="Output file extension (default: $OUTPUT_EXT or the format)",
    )
    convert.add_argument(
        "--size",
        dest="output_size",
        type=int,
        default=env_str("OUTPUT_SIZE", str(DEFAULT_OUTPUT_SIZE)),
        help="Square output size in pixels (default: $OUTPUT_SIZE or 32)",
    )
    convert.add_argument(
        "--options",
        dest="output_options",
        default=env_str("OUTPUT_OPTIONS"),
        help="JSON object of encoder options merged over the defaults",
    )
    convert.add_argument(
        "--input-ext",
        default=".svg",
        help="Extension of input files to pick up (default: .svg)",
    )
    convert.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Worker threads (default: one per CPU)",
    )
    convert.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-file conversion timeout in seconds",
    )
    convert.add_argument(
        "--report",
        type=Path,
        default=None,
        help="Write a JSON run report to this path",
    )
    convert.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable the progress bar",
    )

    # --- unicode ---
    uni = commands.add_parser("unicode", help="Build emoji XML/JSON catalogs")
    uni.add_argument(
        "--data-dir",
        type=Path,
        default=Path(env_str("DATA_DIR", DEFAULT_DATA_DIR)),
        help="Output directory for emojis.xml/emojis.json (default: ./data)",
    )
    uni.add_argument(
        "--unicode-version",
        default=DEFAULT_UNICODE_VERSION,
        help="Unicode emoji version (default: 15.0)",
    )
    uni.add_argument(
        "--pretty",
        action="store_true",
        help="Indent the XML output",
    )

    args = parser.parse_args(argv)
    if args.command == "fetch" and not args.urls:
        args.urls = env_list("GITHUB_SVG_URLS", DEFAULT_GITHUB_SVG_URLS)
    return args


def build_convert_config(args: argparse.Namespace) -> ConvertConfig:
    """Turn parsed ``convert`` arguments into a :class:`ConvertConfig`."""
    output_format = normalize_ext(args.output_format or DEFAULT_OUTPUT_FORMAT)
    output_dir = args.output_dir or Path(env_str("OUTPUT_DIR", f"./{output_format}"))
    options = parse_output_options(
        args.output_options,
        base=default_output_options(output_format),
    )
    return ConvertConfig(
        input_dir=args.input_dir,
        output_dir=output_dir,
        output_ext=normalize_ext(args.output_ext or output_format),
        output_size=args.output_size,
        output_format=output_format,
        output_options=options,
        input_ext=args.input_ext,
    )


def _log_summary(aggregate: Aggregate) -> None:
    log.info("=" * 60)
    log.info("CONVERSION COMPLETE")
    log.info(f"  Total:     {aggregate.total}")
    log.info(f"  Succeeded: {aggregate.success}")
    log.info(f"  Failed:    {aggregate.failed}")
    log.info(f"  Time:      {aggregate.elapsed_s:.2f}s")
    if aggregate.errors:
        log.warning("Failed files:")
        for message in aggregate.errors:
            log.warning(f"  - {message[:200]}")


def run_convert(args: argparse.Namespace) -> Aggregate:
    from tqdm import tqdm

    from .dispatcher import convert_directory
    from .utils import save_report

    config = build_convert_config(args)
    log.info(
        "Converting %s -> %s [format: %s] [size: %sx%s] options=%s",
        config.input_dir,
        config.output_dir,
        config.output_format,
        config.output_size,
        config.output_size,
        config.output_options,
    )

    bar = tqdm(desc="Converting", unit="file", disable=args.no_progress)
    bar_lock = threading.Lock()

    def on_progress(snapshot: ProgressSnapshot) -> None:
        with bar_lock:
            bar.total = snapshot.total
            bar.update(1)
            bar.set_postfix(ok=snapshot.success, failed=snapshot.failed)

    try:
        aggregate = convert_directory(
            config,
            workers=args.workers,
            on_progress=on_progress,
            timeout=args.timeout,
        )
    finally:
        bar.close()

    _log_summary(aggregate)
    if args.report is not None:
        report_path = save_report(args.report, aggregate, config)
        log.info("Report written to %s", report_path)
    return aggregate


def run_fetch(args: argparse.Namespace) -> None:
    from .sources import GitHubClient, fetch_icon_sets

    client = GitHubClient(args.token)
    summary = fetch_icon_sets(
        args.urls,
        args.out_dir,
        client,
        max_workers=args.max_workers,
    )
    log.info(
        "Done! downloaded=%s expected=%s success=%s failed=%s (%.2fs)",
        summary.downloaded,
        summary.expected,
        summary.success,
        summary.failed,
        summary.elapsed_s,
    )


def run_unicode(args: argparse.Namespace) -> None:
    from .unicode_data import build_catalogs

    build_catalogs(args.data_dir, args.unicode_version, pretty=args.pretty)


def main(argv: list[str] | None = None) -> None:
    """Dispatch to the selected subcommand."""
    args = parse_args(argv)
    _setup_logging(
        verbose=args.verbose,
        detailed_logging=args.detailed_logging,
        log_file=args.log_file,
    )

    try:
        if args.command == "fetch":
            run_fetch(args)
        elif args.command == "convert":
            run_convert(args)
        else:
            run_unicode(args)
    except ConfigError as exc:
        log.error("Configuration error: %s", exc)
        sys.exit(EXIT_CONFIG)
    except DispatchError as exc:
        log.error("Run failed: %s", exc)
        sys.exit(EXIT_FATAL)
    except requests.RequestException as exc:
        log.error("Download failed: %s", exc)
        sys.exit(EXIT_FATAL)
