"""Shared data models for the emoji asset tools."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional


@dataclass(frozen=True)
class WorkItem:
    """One input file paired with the path its converted image is written to."""

    input_path: Path
    output_path: Path


@dataclass(frozen=True)
class OutputInfo:
    """Metadata about a written raster image."""

    format: str
    width: int
    height: int
    channels: int
    size_bytes: int


@dataclass(frozen=True)
class ConversionResult:
    """Outcome of converting a single :class:`WorkItem`."""

    item: WorkItem
    ok: bool
    error: Optional[str] = None
    info: Optional[OutputInfo] = None
    duration_s: float = 0.0


@dataclass
class Aggregate:
    """Running tally of outcomes for one dispatcher run."""

    total: int = 0
    success: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)
    results: list[ConversionResult] = field(default_factory=list)
    elapsed_s: float = 0.0

    @property
    def remaining(self) -> int:
        return self.total - self.success - self.failed


@dataclass(frozen=True)
class ProgressSnapshot:
    """Point-in-time view of a run, handed to progress callbacks."""

    total: int
    success: int
    failed: int
    remaining: int
    elapsed_s: float
    recent_errors: tuple[str, ...] = ()
    last: Optional[ConversionResult] = None


@dataclass
class ConvertConfig:
    """Settings shared read-only by every worker of a conversion run."""

    input_dir: Path
    output_dir: Path
    output_ext: str
    output_size: int
    output_format: str
    output_options: dict[str, Any] = field(default_factory=dict)
    input_ext: str = ".svg"


@dataclass
class EmojiRecord:
    """A fully-qualified emoji parsed from ``emoji-test.txt``."""

    emoji: str
    codes: str
    group: int
    description: str
    version: str
    shortcodes: list[str] = field(default_factory=list)
    emoticons: list[str] = field(default_factory=list)
    skin_tones: list["EmojiRecord"] = field(default_factory=list)


@dataclass
class FetchSummary:
    """Counts reported after downloading icon sets from GitHub."""

    sources: int = 0
    expected: int = 0
    downloaded: int = 0
    success: int = 0
    failed: int = 0
    elapsed_s: float = 0.0
