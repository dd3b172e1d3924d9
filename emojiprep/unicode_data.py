"""Unicode emoji metadata scraper producing XML and JSON catalogs.

Combines the Unicode ``emoji-test.txt`` listing (groups, code points,
descriptions, versions) with the shortcodes and emoticons from Google's
``emoji-metadata`` ordering file.

Usage:
    from emojiprep.unicode_data import build_catalogs

    xml_path, json_path = build_catalogs(Path("data"))
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

import requests

from .models import EmojiRecord
from .utils import DEFAULT_UNICODE_VERSION

log = logging.getLogger(__name__)

EMOJI_TEST_URL = "https://unicode.org/Public/emoji/{version}/emoji-test.txt"
ORDERING_URL = (
    "https://raw.githubusercontent.com/googlefonts/emoji-metadata/main/"
    "emoji_{version_tag}_ordering.json"
)
REQUEST_TIMEOUT_S = 60

_LINE_RE = re.compile(r"^(.+?)\s+;\s+(.+?)\s+#\s+(.+?)\s*E(.+?)\s(.+)$")
_XML_ESCAPES = [
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&apos;"),
]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def format_codepoints(codepoints: Iterable[int]) -> str:
    """``[0x1F600, 0x200D] -> "1F600 200D"`` (upper-case, at least 4 digits)."""
    return " ".join(f"{cp:04X}" for cp in codepoints)


def parse_ordering(groups: list[dict[str, Any]]) -> dict[str, dict[str, Any]]:
    """Index the emoji-metadata ordering file by space-joined code points."""
    result: dict[str, dict[str, Any]] = {}
    for group in groups:
        for emoji in group.get("emoji", []):
            codes = format_codepoints(emoji.get("base", []))
            if codes in result:
                continue
            result[codes] = {
                "shortcodes": [s[1:-1] for s in emoji.get("shortcodes", [])],
                "emoticons": list(emoji.get("emoticons", [])),
                "animated": bool(emoji.get("animated", False)),
            }
    return result


def parse_emoji_test(
    lines: Iterable[str],
    ordering: dict[str, dict[str, Any]] | None = None,
) -> tuple[list[str], list[EmojiRecord]]:
    """Parse ``emoji-test.txt`` into group names and base emoji records.

    Only fully-qualified entries are kept. Skin-tone variants are attached to
    the base emoji that precedes them.
    """
    ordering = ordering or {}
    groups: list[str] = []
    emojis: list[EmojiRecord] = []
    last: EmojiRecord | None = None

    for raw in lines:
        line = raw.rstrip("\r\n")
        if line.startswith("# group:"):
            group = line[9:].strip()
            if group != "Component":
                groups.append(group)
            continue
        if not line or line.startswith("#"):
            continue

        match = _LINE_RE.match(line)
        if not match:
            log.warning("parse_emoji_test: skipping unparseable line %r", line)
            continue
        codes, status, emoji, version, description = (
            part.strip() for part in match.groups()
        )
        if status != "fully-qualified":
            continue

        meta = ordering.get(codes, {})
        record = EmojiRecord(
            emoji=emoji,
            codes=codes,
            group=len(groups) - 1,
            description=description,
            version=version,
            shortcodes=list(meta.get("shortcodes", [])),
            emoticons=list(meta.get("emoticons", [])),
        )
        if "skin tone" in description and last is not None:
            last.skin_tones.append(record)
        else:
            last = record
            emojis.append(record)

    return groups, emojis


# ---------------------------------------------------------------------------
# XML document
# ---------------------------------------------------------------------------


@dataclass
class XmlNode:
    name: str
    attrs: dict[str, str] = field(default_factory=dict)
    children: list["XmlNode"] = field(default_factory=list)


def group_id(name: str) -> str:
    """``"Smileys & Emotion" -> "smileys_and_emotion"``."""
    return re.sub(r"\s+", "_", name.lower()).replace("&", "and")


def emoji_node(record: EmojiRecord) -> XmlNode:
    children = [XmlNode("shortcode", {"text": s}) for s in record.shortcodes]
    children.extend(XmlNode("emoticon", {"text": e}) for e in record.emoticons)
    if record.skin_tones:
        children.append(
            XmlNode(
                "alternate",
                {"type": "skin-tone"},
                [emoji_node(tone) for tone in record.skin_tones],
            )
        )
    return XmlNode(
        "emoji",
        {
            "id": record.codes.replace(" ", "_"),
            "text": record.emoji,
            "desc": record.description,
            "version": record.version,
        },
        children,
    )


def build_document(
    groups: list[str],
    emojis: list[EmojiRecord],
    version: str = DEFAULT_UNICODE_VERSION,
) -> XmlNode:
    return XmlNode(
        "emoji-data",
        {"unicode-version": version},
        [
            XmlNode(
                "group",
                {"id": group_id(name)},
                [emoji_node(e) for e in emojis if e.group == index],
            )
            for index, name in enumerate(groups)
        ],
    )


def escape_attr(value: str) -> str:
    for char, entity in _XML_ESCAPES:
        value = value.replace(char, entity)
    return value


def render_xml(document: XmlNode, *, pretty: bool = True) -> str:
    """Serialise *document* with an XML declaration.

    In pretty mode children are indented two spaces per level and elements
    with four or more attributes list one attribute per line.
    """
    parts: list[str] = ['<?xml version="1.0" encoding="UTF-8" standalone="no" ?>\n']

    def br(depth: int) -> None:
        if pretty:
            parts.append("\n" + "  " * depth)

    def render(node: XmlNode, depth: int) -> None:
        parts.append(f"<{node.name}")
        attrs = list(node.attrs.items())
        if not pretty or len(attrs) < 4:
            for key, value in attrs:
                parts.append(f' {key}="{escape_attr(str(value))}"')
        else:
            for key, value in attrs:
                br(depth + 1)
                parts.append(f'{key}="{escape_attr(str(value))}"')
            br(depth)

        if not node.children:
            parts.append("/>")
            return
        parts.append(">")
        for child in node.children:
            br(depth + 1)
            render(child, depth + 1)
        br(depth)
        parts.append(f"</{node.name}>")

    render(document, 0)
    return "".join(parts)


# ---------------------------------------------------------------------------
# JSON catalog
# ---------------------------------------------------------------------------


def to_json_catalog(groups: list[str], emojis: list[EmojiRecord]) -> list[dict[str, Any]]:
    """Flatten records into the compact JSON catalog (empty lists omitted)."""
    catalog: list[dict[str, Any]] = []
    for record in emojis:
        entry: dict[str, Any] = {
            "emoji": record.emoji,
            "category": groups[record.group] if 0 <= record.group < len(groups) else None,
        }
        if record.shortcodes:
            entry["shortcodes"] = record.shortcodes
        if record.emoticons:
            entry["emoticons"] = record.emoticons
        if record.skin_tones:
            tones = []
            for tone in record.skin_tones:
                tone_entry: dict[str, Any] = {"emoji": tone.emoji}
                if tone.shortcodes:
                    tone_entry["aliases"] = tone.shortcodes
                tones.append(tone_entry)
            entry["skin_tones"] = tones
        catalog.append(entry)
    return catalog


# ---------------------------------------------------------------------------
# Fetch & write
# ---------------------------------------------------------------------------


def fetch_sources(
    version: str = DEFAULT_UNICODE_VERSION,
    session: requests.Session | None = None,
) -> tuple[str, list[dict[str, Any]]]:
    """Download ``emoji-test.txt`` and the ordering JSON for *version*."""
    http = session or requests.Session()
    test_url = EMOJI_TEST_URL.format(version=version)
    ordering_url = ORDERING_URL.format(version_tag=version.replace(".", "_"))

    log.info("Downloading %s", test_url)
    response = http.get(test_url, timeout=REQUEST_TIMEOUT_S)
    response.raise_for_status()
    test_text = response.text

    log.info("Downloading %s", ordering_url)
    response = http.get(ordering_url, timeout=REQUEST_TIMEOUT_S)
    response.raise_for_status()
    return test_text, response.json()


def build_catalogs(
    data_dir: Path,
    version: str = DEFAULT_UNICODE_VERSION,
    session: requests.Session | None = None,
    *,
    pretty: bool = False,
) -> tuple[Path, Path]:
    """Fetch, parse and write ``emojis.xml`` and ``emojis.json``."""
    test_text, ordering_data = fetch_sources(version, session)
    ordering = parse_ordering(ordering_data)
    groups, emojis = parse_emoji_test(test_text.splitlines(), ordering)
    log.info(
        "Parsed %s emojis (%s skin-tone variants) in %s groups",
        len(emojis),
        sum(len(e.skin_tones) for e in emojis),
        len(groups),
    )

    data_dir.mkdir(parents=True, exist_ok=True)
    xml_path = data_dir / "emojis.xml"
    json_path = data_dir / "emojis.json"
    xml_path.write_text(
        render_xml(build_document(groups, emojis, version), pretty=pretty),
        encoding="utf-8",
    )
    json_path.write_text(
        json.dumps(
            to_json_catalog(groups, emojis),
            ensure_ascii=False,
            separators=(",", ":"),
        ),
        encoding="utf-8",
    )
    log.info("Wrote %s and %s", xml_path, json_path)
    return xml_path, json_path
