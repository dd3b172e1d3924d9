"""Emoji asset preparation: GitHub SVG fetch, parallel rasterization, Unicode catalogs.

Public API -- all symbols that tests and external code import live here.
Internally the code is split across focused submodules; this file
re-exports the stable public surface so ``from emojiprep import X`` works.
"""

from .conversion import (
    convert_image,
    create_converter,
    encoder_options,
    normalize_format,
    supported_formats,
)
from .dispatcher import (
    Aggregator,
    PendingQueue,
    build_work_items,
    convert_directory,
    default_worker_count,
    process_item,
    run_pool,
    worker_loop,
)
from .errors import ConfigError, DispatchError, EmojiPrepError, GitHubError
from .models import (
    Aggregate,
    ConversionResult,
    ConvertConfig,
    EmojiRecord,
    FetchSummary,
    OutputInfo,
    ProgressSnapshot,
    WorkItem,
)
from .sources import (
    GitHubClient,
    GitHubLocation,
    discover_inputs,
    extract_entries,
    fetch_icon_sets,
    is_symbolic_link,
    parse_github_url,
    svg_entries,
)
from .unicode_data import (
    build_catalogs,
    build_document,
    parse_emoji_test,
    parse_ordering,
    render_xml,
    to_json_catalog,
)
from .utils import (
    default_output_options,
    parse_output_options,
    prepare_output_dir,
    save_report,
    validate_config,
)

__all__ = [
    # Models
    "WorkItem",
    "OutputInfo",
    "ConversionResult",
    "Aggregate",
    "ProgressSnapshot",
    "ConvertConfig",
    "EmojiRecord",
    "FetchSummary",
    # Errors
    "EmojiPrepError",
    "ConfigError",
    "DispatchError",
    "GitHubError",
    # Utils
    "default_output_options",
    "parse_output_options",
    "prepare_output_dir",
    "validate_config",
    "save_report",
    # Conversion
    "supported_formats",
    "normalize_format",
    "convert_image",
    "create_converter",
    "encoder_options",
    # Dispatcher
    "PendingQueue",
    "Aggregator",
    "process_item",
    "worker_loop",
    "default_worker_count",
    "run_pool",
    "build_work_items",
    "convert_directory",
    # Sources
    "discover_inputs",
    "GitHubLocation",
    "GitHubClient",
    "parse_github_url",
    "is_symbolic_link",
    "svg_entries",
    "extract_entries",
    "fetch_icon_sets",
    # Unicode catalogs
    "parse_ordering",
    "parse_emoji_test",
    "build_document",
    "render_xml",
    "to_json_catalog",
    "build_catalogs",
]
