"""Shared fixtures for the emoji asset test suite.

Inputs are generated per test under ``tmp_path``: small PNGs drawn with
Pillow and hand-written SVG documents.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest
from PIL import Image

# ---------------------------------------------------------------------------
# Configure verbose logging for test debugging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
    force=True,
)
log = logging.getLogger("conftest")

SQUARE_SVG = """<svg xmlns="http://www.w3.org/2000/svg" width="64" height="64" viewBox="0 0 64 64">
  <circle cx="32" cy="32" r="30" fill="#ffcc00"/>
</svg>
"""

WIDE_SVG = """<svg xmlns="http://www.w3.org/2000/svg" width="128" height="64" viewBox="0 0 128 64">
  <rect x="0" y="0" width="128" height="64" fill="#3366ff"/>
</svg>
"""


@pytest.fixture
def make_png():
    """Return a factory writing a solid RGBA PNG of the given size."""

    def _make(path: Path, size: tuple[int, int] = (48, 48), color=(255, 0, 0, 255)) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.new("RGBA", size, color).save(path, format="PNG")
        return path

    return _make


@pytest.fixture
def png_dir(tmp_path: Path, make_png) -> Path:
    """Directory holding a.png, b.png, c.png plus a non-image file."""
    folder = tmp_path / "png_in"
    for name in ("a", "b", "c"):
        make_png(folder / f"{name}.png")
    (folder / "notes.txt").write_text("not an image", encoding="utf-8")
    return folder


@pytest.fixture
def svg_dir(tmp_path: Path) -> Path:
    """Directory holding a.svg, b.svg, c.svg and a README."""
    folder = tmp_path / "svg"
    folder.mkdir()
    (folder / "a.svg").write_text(SQUARE_SVG, encoding="utf-8")
    (folder / "b.svg").write_text(WIDE_SVG, encoding="utf-8")
    (folder / "c.svg").write_text(SQUARE_SVG, encoding="utf-8")
    (folder / "README.md").write_text("# icons", encoding="utf-8")
    return folder


@pytest.fixture(scope="session")
def cairosvg_module():
    """cairosvg, or skip when the cairo system library cannot be loaded."""
    try:
        import cairosvg
    except (ImportError, OSError) as exc:
        pytest.skip(f"cairosvg unavailable: {exc}")
    return cairosvg


@pytest.fixture
def tmp_output(tmp_path: Path) -> Path:
    """Return a temporary output directory for a single test."""
    return tmp_path / "output"
