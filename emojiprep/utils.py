"""Cross-cutting helpers: constants, environment, path utilities, report I/O."""

from __future__ import annotations

import json
import os
import shutil
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from .errors import ConfigError
from .models import Aggregate, ConvertConfig

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_INPUT_DIR = "./svg"
DEFAULT_OUTPUT_FORMAT = "webp"
DEFAULT_OUTPUT_SIZE = 32
DEFAULT_DATA_DIR = "./data"
DEFAULT_UNICODE_VERSION = "15.0"
DEFAULT_GITHUB_SVG_URLS = [
    "https://github.com/googlefonts/noto-emoji/tree/main/svg",
    "https://github.com/googlefonts/noto-emoji/tree/main/third_party/region-flags/waved-svg",
]

# Pillow's ``method`` is the WebP encoder effort (0 = fast, 6 = slowest/best).
DEFAULT_OUTPUT_OPTIONS: dict[str, dict[str, Any]] = {
    "webp": {"quality": 90, "method": 5},
    "png": {"optimize": True},
    "jpeg": {"quality": 90},
    "avif": {"quality": 90},
}

RECENT_ERROR_LIMIT = 5


# ---------------------------------------------------------------------------
# Environment helpers
# ---------------------------------------------------------------------------


def env_str(name: str, default: str | None = None) -> str | None:
    """Return a non-empty environment variable or *default*."""
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def env_list(name: str, default: list[str]) -> list[str]:
    """Split a comma-separated environment variable into a list."""
    raw = env_str(name)
    if raw is None:
        return list(default)
    return [part.strip() for part in raw.split(",") if part.strip()]


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------


def normalize_ext(ext: str) -> str:
    """Return *ext* without a leading dot, e.g. ``".webp" -> "webp"``."""
    return ext.strip().lstrip(".")


def prepare_output_dir(output_dir: Path) -> Path:
    """Remove *output_dir* if present and recreate it empty."""
    if output_dir.is_symlink() or output_dir.is_file():
        output_dir.unlink()
    elif output_dir.exists():
        shutil.rmtree(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def default_output_options(output_format: str) -> dict[str, Any]:
    """Encoder defaults for *output_format* (empty for unknown formats)."""
    key = normalize_ext(output_format).lower()
    if key == "jpg":
        key = "jpeg"
    return dict(DEFAULT_OUTPUT_OPTIONS.get(key, {}))


def parse_output_options(
    raw: str | None,
    base: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Merge a JSON object of encoder options over *base*.

    Raises:
        ConfigError: if *raw* is not valid JSON or not a JSON object.
    """
    options = dict(base or {})
    if raw is None or not raw.strip():
        return options
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid output options: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ConfigError(
            f"Invalid output options: expected a JSON object, got {type(parsed).__name__}"
        )
    options.update(parsed)
    return options


def validate_config(config: ConvertConfig) -> ConvertConfig:
    """Check a :class:`ConvertConfig` and normalise its extensions in place."""
    if isinstance(config.output_size, bool) or not isinstance(config.output_size, int):
        raise ConfigError(f"Output size must be an integer, got {config.output_size!r}")
    if config.output_size <= 0:
        raise ConfigError(f"Output size must be positive, got {config.output_size}")
    if not isinstance(config.output_options, Mapping):
        raise ConfigError("Output options must be a mapping")
    if not normalize_ext(config.output_format):
        raise ConfigError("Output format must not be empty")

    config.output_ext = normalize_ext(config.output_ext or config.output_format)
    if not config.output_ext:
        raise ConfigError("Output extension must not be empty")
    input_ext = normalize_ext(config.input_ext)
    if not input_ext:
        raise ConfigError("Input extension must not be empty")
    config.input_ext = f".{input_ext}"

    config.input_dir = Path(config.input_dir)
    config.output_dir = Path(config.output_dir)
    if not config.input_dir.is_dir():
        raise ConfigError(f"Input directory not found: {config.input_dir}")
    input_root = config.input_dir.resolve()
    output_root = config.output_dir.resolve()
    if input_root == output_root:
        raise ConfigError("Input and output directories must differ")
    # The output directory is wiped before each run.
    if input_root.is_relative_to(output_root):
        raise ConfigError(
            f"Output directory {config.output_dir} contains the input directory"
        )
    return config


# ---------------------------------------------------------------------------
# Report I/O
# ---------------------------------------------------------------------------


def save_report(path: Path, aggregate: Aggregate, config: ConvertConfig) -> Path:
    """Write a JSON summary of a conversion run and return its path."""
    report: dict[str, Any] = {
        "input_dir": str(config.input_dir),
        "output_dir": str(config.output_dir),
        "format": config.output_format,
        "extension": config.output_ext,
        "size": config.output_size,
        "options": dict(config.output_options),
        "total": aggregate.total,
        "success": aggregate.success,
        "failed": aggregate.failed,
        "elapsed_s": round(aggregate.elapsed_s, 2),
        "errors": list(aggregate.errors),
        "failures": [
            {"input": str(r.item.input_path), "error": r.error}
            for r in aggregate.results
            if not r.ok
        ],
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(report, fh, indent=2, ensure_ascii=False, default=str)
    return path
