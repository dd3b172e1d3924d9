from __future__ import annotations

import json
import xml.etree.ElementTree as ET

import pytest

from emojiprep import (
    build_catalogs,
    build_document,
    parse_emoji_test,
    parse_ordering,
    render_xml,
    to_json_catalog,
)
from emojiprep.unicode_data import XmlNode, escape_attr, format_codepoints, group_id

EMOJI_TEST = """\
# emoji-test.txt
# Version: 15.0

# group: Smileys & Emotion

# subgroup: face-smiling
1F600                                                  ; fully-qualified     # 😀 E1.0 grinning face
263A FE0F                                              ; fully-qualified     # ☺️ E0.6 smiling face
263A                                                   ; unqualified         # ☺ E0.6 smiling face

# group: People & Body

# subgroup: hand-fingers-open
1F44B                                                  ; fully-qualified     # 👋 E0.6 waving hand
1F44B 1F3FB                                            ; fully-qualified     # 👋🏻 E1.0 waving hand: light skin tone
1F44B 1F3FC                                            ; fully-qualified     # 👋🏼 E1.0 waving hand: medium-light skin tone

# group: Component

# subgroup: skin-tone
1F3FB                                                  ; component           # 🏻 E1.0 light skin tone

# group: Flags

1F3F4 E0067 E0062 E0065 E006E E0067 E007F              ; fully-qualified     # 🏴󠁧󠁢󠁥󠁮󠁧󠁿 E5.0 flag: England
this line is garbage
"""

ORDERING = [
    {
        "group": "Smileys and emotions",
        "emoji": [
            {
                "base": [0x1F600],
                "alternates": [],
                "emoticons": [":D"],
                "shortcodes": [":grinning_face:", ":grinning:"],
                "animated": True,
            },
            {
                "base": [0x1F600],
                "alternates": [],
                "emoticons": [],
                "shortcodes": [":duplicate:"],
                "animated": False,
            },
        ],
    },
    {
        "group": "People",
        "emoji": [
            {
                "base": [0x1F44B],
                "alternates": [],
                "emoticons": [],
                "shortcodes": [":waving_hand:"],
            },
            {
                "base": [0x1F44B, 0x1F3FB],
                "emoticons": [],
                "shortcodes": [":waving_hand_light:"],
            },
        ],
    },
]


@pytest.fixture
def parsed():
    ordering = parse_ordering(ORDERING)
    return parse_emoji_test(EMOJI_TEST.splitlines(), ordering)


class TestParseOrdering:
    def test_keys_are_padded_upper_hex(self):
        assert format_codepoints([0x263A, 0xFE0F]) == "263A FE0F"
        assert format_codepoints([0xA9]) == "00A9"

    def test_strips_colons_and_keeps_first(self):
        ordering = parse_ordering(ORDERING)
        assert ordering["1F600"]["shortcodes"] == ["grinning_face", "grinning"]
        assert ordering["1F600"]["emoticons"] == [":D"]
        assert ordering["1F600"]["animated"] is True
        assert ordering["1F44B 1F3FB"]["shortcodes"] == ["waving_hand_light"]


class TestParseEmojiTest:
    def test_groups_exclude_component(self, parsed):
        groups, _ = parsed
        assert groups == ["Smileys & Emotion", "People & Body", "Flags"]

    def test_only_fully_qualified(self, parsed):
        _, emojis = parsed
        descs = [e.description for e in emojis]
        assert descs == ["grinning face", "smiling face", "waving hand", "flag: England"]

    def test_fields(self, parsed):
        _, emojis = parsed
        grinning = emojis[0]
        assert grinning.emoji == "😀"
        assert grinning.codes == "1F600"
        assert grinning.version == "1.0"
        assert grinning.group == 0
        assert grinning.shortcodes == ["grinning_face", "grinning"]
        assert grinning.emoticons == [":D"]

    def test_skin_tones_attach_to_base(self, parsed):
        _, emojis = parsed
        wave = emojis[2]
        assert wave.group == 1
        assert [t.codes for t in wave.skin_tones] == ["1F44B 1F3FB", "1F44B 1F3FC"]
        assert wave.skin_tones[0].shortcodes == ["waving_hand_light"]
        assert wave.skin_tones[1].shortcodes == []

    def test_flag_after_component_group(self, parsed):
        _, emojis = parsed
        assert emojis[-1].group == 2

    def test_skin_tone_without_base_is_kept(self):
        lines = [
            "# group: People & Body",
            "1F44B 1F3FB ; fully-qualified # 👋🏻 E1.0 waving hand: light skin tone",
        ]
        _, emojis = parse_emoji_test(lines)
        assert len(emojis) == 1


class TestXml:
    def test_group_ids(self):
        assert group_id("Smileys & Emotion") == "smileys_and_emotion"
        assert group_id("Travel  Places") == "travel_places"

    def test_escape(self):
        assert escape_attr("<a & 'b' \"c\">") == "&lt;a &amp; &apos;b&apos; &quot;c&quot;&gt;"

    def test_compact_render_is_valid_xml(self, parsed):
        groups, emojis = parsed
        text = render_xml(build_document(groups, emojis, "15.0"), pretty=False)
        assert text.startswith('<?xml version="1.0" encoding="UTF-8" standalone="no" ?>\n')
        assert "\n" not in text.split("\n", 1)[1]

        root = ET.fromstring(text.split("\n", 1)[1])
        assert root.tag == "emoji-data"
        assert root.get("unicode-version") == "15.0"
        assert [g.get("id") for g in root] == [
            "smileys_and_emotion",
            "people_and_body",
            "flags",
        ]
        wave = root.find("group[@id='people_and_body']/emoji")
        assert wave.get("id") == "1F44B"
        alternate = wave.find("alternate")
        assert alternate.get("type") == "skin-tone"
        assert [e.get("id") for e in alternate] == ["1F44B_1F3FB", "1F44B_1F3FC"]

        grinning = root.find("group/emoji")
        assert [s.get("text") for s in grinning.findall("shortcode")] == [
            "grinning_face",
            "grinning",
        ]
        assert grinning.find("emoticon").get("text") == ":D"

    def test_multi_codepoint_ids_use_underscores(self, parsed):
        groups, emojis = parsed
        root = ET.fromstring(render_xml(build_document(groups, emojis), pretty=False).split("\n", 1)[1])
        flag = root.find("group[@id='flags']/emoji")
        assert flag.get("id") == "1F3F4_E0067_E0062_E0065_E006E_E0067_E007F"

    def test_pretty_render_layout(self):
        doc = XmlNode(
            "root",
            {"a": "1"},
            [XmlNode("leaf", {"w": "1", "x": "2", "y": "3", "z": "4"})],
        )
        assert render_xml(doc, pretty=True) == (
            '<?xml version="1.0" encoding="UTF-8" standalone="no" ?>\n'
            '<root a="1">\n'
            "  <leaf\n"
            '    w="1"\n'
            '    x="2"\n'
            '    y="3"\n'
            '    z="4"\n'
            "  />\n"
            "</root>"
        )

    def test_childless_element_self_closes(self):
        assert render_xml(XmlNode("empty"), pretty=False).endswith("<empty/>")


class TestJsonCatalog:
    def test_empty_lists_are_omitted(self, parsed):
        groups, emojis = parsed
        catalog = to_json_catalog(groups, emojis)
        smiling = catalog[1]
        assert smiling == {"emoji": "☺️", "category": "Smileys & Emotion"}

    def test_skin_tones_listed(self, parsed):
        groups, emojis = parsed
        wave = to_json_catalog(groups, emojis)[2]
        assert wave["category"] == "People & Body"
        assert wave["shortcodes"] == ["waving_hand"]
        assert wave["skin_tones"] == [
            {"emoji": "👋🏻", "aliases": ["waving_hand_light"]},
            {"emoji": "👋🏼"},
        ]


class _FakeResponse:
    def __init__(self, text="", payload=None):
        self.text = text
        self._payload = payload

    def raise_for_status(self):
        return None

    def json(self):
        return self._payload


class _FakeSession:
    def __init__(self):
        self.urls = []

    def get(self, url, timeout=None):
        self.urls.append(url)
        if url.endswith("emoji-test.txt"):
            return _FakeResponse(text=EMOJI_TEST)
        return _FakeResponse(payload=ORDERING)


def test_build_catalogs_writes_both_files(tmp_path):
    session = _FakeSession()
    xml_path, json_path = build_catalogs(tmp_path / "data", "15.0", session)

    assert session.urls == [
        "https://unicode.org/Public/emoji/15.0/emoji-test.txt",
        "https://raw.githubusercontent.com/googlefonts/emoji-metadata/main/emoji_15_0_ordering.json",
    ]
    assert xml_path.name == "emojis.xml"
    root = ET.fromstring(xml_path.read_text(encoding="utf-8").split("\n", 1)[1])
    assert len(root.findall("group")) == 3

    data = json.loads(json_path.read_text(encoding="utf-8"))
    assert [e["emoji"] for e in data] == ["😀", "☺️", "👋", "🏴󠁧󠁢󠁥󠁮󠁧󠁿"]
    assert ", " not in json_path.read_text(encoding="utf-8")
