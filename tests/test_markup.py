from __future__ import annotations

from datetime import UTC, datetime
from types import SimpleNamespace

import allure
from telethon.tl import types

from channel_mirror.mirror.models import EntityKind, MarkupEntity
from channel_mirror.sources.markup import render_markdown
from channel_mirror.sources.telegram import build_content, to_markup_entities

pytestmark = [
    allure.epic("Live Events"),
    allure.feature("Rich Text Markup"),
]


def test_renders_each_entity_kind() -> None:
    text = "bold italic code link"
    entities = [
        MarkupEntity(EntityKind.BOLD, 0, 4),
        MarkupEntity(EntityKind.ITALIC, 5, 6),
        MarkupEntity(EntityKind.CODE, 12, 4),
        MarkupEntity(EntityKind.TEXT_URL, 17, 4, url="https://example.com"),
    ]

    assert render_markdown(text, entities) == (
        "**bold** *italic* `code` [link](https://example.com)"
    )


def test_renders_pre_block_with_language() -> None:
    entity = MarkupEntity(EntityKind.PRE, 0, 7, language="python")

    assert render_markdown("print()", [entity]) == "```python\nprint()```"


def test_unordered_entities_do_not_shift_offsets() -> None:
    text = "a b c"
    entities = [
        MarkupEntity(EntityKind.STRIKE, 4, 1),
        MarkupEntity(EntityKind.UNDERLINE, 0, 1),
        MarkupEntity(EntityKind.URL, 2, 1),
    ]

    assert render_markdown(text, entities) == "__a__ [b](b) ~~c~~"


def test_custom_emoji_and_out_of_bounds_entities_keep_text() -> None:
    entities = [
        MarkupEntity(EntityKind.CUSTOM_EMOJI, 0, 2),
        MarkupEntity(EntityKind.BOLD, 3, 50),
    ]

    assert render_markdown("hi there", entities) == "hi there"


def test_blockquote_ends_with_newline() -> None:
    assert render_markdown("quote", [MarkupEntity(EntityKind.BLOCKQUOTE, 0, 5)]) == "> quote\n"


def test_maps_telegram_entities_to_variants() -> None:
    entities = [
        types.MessageEntityBold(offset=0, length=4),
        types.MessageEntityTextUrl(offset=5, length=4, url="https://example.com"),
        types.MessageEntityPre(offset=10, length=3, language="sh"),
        types.MessageEntityMention(offset=14, length=5),
    ]

    assert to_markup_entities(entities) == [
        MarkupEntity(EntityKind.BOLD, 0, 4),
        MarkupEntity(EntityKind.TEXT_URL, 5, 4, url="https://example.com"),
        MarkupEntity(EntityKind.PRE, 10, 3, language="sh"),
    ]


def test_build_content_renders_markdown_and_keeps_dates() -> None:
    created = datetime(2026, 10, 1, 9, 30, tzinfo=UTC)
    edited = datetime(2026, 10, 1, 10, 0, tzinfo=UTC)
    message = SimpleNamespace(
        id=15,
        message="Hello world",
        entities=[types.MessageEntityBold(offset=6, length=5)],
        date=created,
        edit_date=edited,
    )

    content = build_content(message, image="data:image/webp;base64,AAAA")  # type: ignore[arg-type]

    assert content.text == "Hello **world**"
    assert content.image == "data:image/webp;base64,AAAA"
    assert content.create_date == created
    assert content.edit_date == edited
    assert content.entities == [MarkupEntity(EntityKind.BOLD, 6, 5)]


def test_offsets_count_utf16_units_after_emoji() -> None:
    entities = [MarkupEntity(EntityKind.BOLD, 3, 4)]

    assert render_markdown("😀 bold", entities) == "😀 **bold**"


def test_entity_covering_emoji_keeps_it_whole() -> None:
    text = "see 🚀 launch"
    entities = [
        MarkupEntity(EntityKind.ITALIC, 4, 2),
        MarkupEntity(EntityKind.TEXT_URL, 7, 6, url="https://example.com/🚀"),
    ]

    assert render_markdown(text, entities) == "see *🚀* [launch](https://example.com/🚀)"
