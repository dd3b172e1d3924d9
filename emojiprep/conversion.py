"""Single-file raster conversion built on cairosvg and Pillow."""

from __future__ import annotations

import io
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Callable

from PIL import Image, ImageOps

from .errors import ConfigError
from .models import OutputInfo, WorkItem

log = logging.getLogger(__name__)

_FORMAT_ALIASES = {"JPG": "JPEG", "TIF": "TIFF"}
_NO_ALPHA_FORMATS = {"JPEG", "BMP", "PPM"}

# Option names from other encoders that Pillow spells differently.
_OPTION_ALIASES = {"WEBP": {"effort": "method"}}

# Keyword arguments Pillow's encoders read; anything else is silently dropped.
_ENCODER_OPTIONS = {
    "WEBP": {
        "lossless", "quality", "method", "exact", "alpha_quality",
        "minimize_size", "kmin", "kmax", "allow_mixed", "icc_profile",
        "exif", "xmp",
    },
    "PNG": {
        "optimize", "compress_level", "compress_type", "bits", "dpi",
        "icc_profile", "exif", "pnginfo", "transparency",
    },
    "JPEG": {
        "quality", "optimize", "progressive", "subsampling", "qtables",
        "dpi", "icc_profile", "exif", "keep_rgb",
    },
}


def supported_formats() -> list[str]:
    """Return the output formats Pillow can save in this environment."""
    Image.init()
    return sorted(Image.SAVE)


def normalize_format(output_format: str) -> str:
    """Map a user-supplied format name (``webp``, ``.jpg``) to Pillow's name.

    Raises:
        ConfigError: if Pillow has no encoder for the format.
    """
    name = output_format.strip().lstrip(".").upper()
    name = _FORMAT_ALIASES.get(name, name)
    if name not in supported_formats():
        raise ConfigError(f"Unsupported output format: {output_format!r}")
    return name


def encoder_options(fmt: str, options: Mapping[str, Any] | None) -> dict[str, Any]:
    """Translate option aliases for *fmt* and warn about keys Pillow ignores.

    ``effort`` becomes WebP's ``method`` unless ``method`` is also given.
    """
    aliases = _OPTION_ALIASES.get(fmt, {})
    known = _ENCODER_OPTIONS.get(fmt)
    translated: dict[str, Any] = {}
    for key, value in (options or {}).items():
        target = aliases.get(key)
        if target is not None:
            if target in (options or {}):
                log.warning("Ignoring %r: %r is already set", key, target)
                continue
            log.info("Encoder option %r mapped to %r for %s", key, target, fmt)
            key = target
        if known is not None and key not in known:
            log.warning("Encoder option %r is not used by Pillow's %s encoder", key, fmt)
        translated[key] = value
    return translated


def _load_rgba(input_path: Path, size: int) -> Image.Image:
    if input_path.suffix.lower() == ".svg":
        import cairosvg

        png_bytes = cairosvg.svg2png(url=str(input_path), output_width=size)
        image = Image.open(io.BytesIO(png_bytes))
    else:
        image = Image.open(input_path)
    image.load()
    return image.convert("RGBA")


def _fit_contain(image: Image.Image, size: int) -> Image.Image:
    """Scale *image* to fit a transparent ``size x size`` square, centred."""
    fitted = ImageOps.contain(image, (size, size), method=Image.Resampling.LANCZOS)
    canvas = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    offset = ((size - fitted.width) // 2, (size - fitted.height) // 2)
    canvas.paste(fitted, offset, fitted)
    return canvas


def convert_image(
    input_path: Path,
    output_path: Path,
    size: int,
    output_format: str,
    options: Mapping[str, Any] | None = None,
) -> OutputInfo:
    """Resize one image to a transparent square and encode it.

    SVG inputs are rasterized with cairosvg first; anything else Pillow can
    open is read directly. Raises on unreadable input or encoder failure.
    """
    fmt = normalize_format(output_format)
    image = _fit_contain(_load_rgba(Path(input_path), size), size)
    if fmt in _NO_ALPHA_FORMATS:
        background = Image.new("RGB", image.size, (255, 255, 255))
        background.paste(image, mask=image.getchannel("A"))
        image = background

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    image.save(output_path, format=fmt, **dict(options or {}))

    info = OutputInfo(
        format=fmt.lower(),
        width=image.width,
        height=image.height,
        channels=len(image.getbands()),
        size_bytes=output_path.stat().st_size,
    )
    log.debug(
        "convert_image: %s -> %s (%sx%s, %s bytes)",
        input_path,
        output_path,
        info.width,
        info.height,
        info.size_bytes,
    )
    return info


def create_converter(
    size: int,
    output_format: str,
    options: Mapping[str, Any] | None = None,
) -> Callable[[WorkItem], OutputInfo]:
    """Bind size/format/options into a ``convert(item)`` callable for the pool.

    The format is checked here so a bad value fails before any worker starts.
    """
    fmt = normalize_format(output_format)
    frozen_options = encoder_options(fmt, options)

    def convert(item: WorkItem) -> OutputInfo:
        return convert_image(item.input_path, item.output_path, size, fmt, frozen_options)

    return convert
