"""Render message formatting entities as Markdown."""

from __future__ import annotations

from collections.abc import Sequence

from telethon.helpers import add_surrogate, del_surrogate

from channel_mirror.mirror.models import EntityKind, MarkupEntity


def render_entity(entity: MarkupEntity, text: str) -> str | None:
    """Markdown replacement for one entity span, ``None`` to keep the text as is."""

    kind = entity.kind
    if kind is EntityKind.URL:
        return f"[{text}]({text})"
    if kind is EntityKind.TEXT_URL:
        return f"[{text}]({entity.url or text})"
    if kind is EntityKind.BOLD:
        return f"**{text}**"
    if kind is EntityKind.ITALIC:
        return f"*{text}*"
    if kind is EntityKind.CODE:
        return f"`{text}`"
    if kind is EntityKind.PRE:
        return f"```{entity.language or ''}\n{text}```"
    if kind is EntityKind.UNDERLINE:
        return f"__{text}__"
    if kind is EntityKind.STRIKE:
        return f"~~{text}~~"
    if kind is EntityKind.BLOCKQUOTE:
        return f"> {text}\n"
    # TODO: render custom emoji once the reader can show sticker documents.
    return None


def render_markdown(text: str, entities: Sequence[MarkupEntity]) -> str:
    """Splice entity markup into ``text`` in one pass.

    Spans are applied from the highest offset down so earlier offsets stay
    valid while replacements change the string length. When two entities
    start at the same offset only the first one is applied. Offsets count
    UTF-16 code units, so the text is spliced in its surrogate-pair form.
    """

    text = add_surrogate(text)
    replacements: dict[int, tuple[int, str]] = {}
    for entity in entities:
        if entity.offset in replacements:
            continue
        if entity.offset < 0 or entity.length <= 0 or entity.offset + entity.length > len(text):
            continue
        span = text[entity.offset : entity.offset + entity.length]
        rendered = render_entity(entity, span)
        if rendered is not None:
            replacements[entity.offset] = (entity.length, rendered)

    result = text
    for offset in sorted(replacements, reverse=True):
        length, rendered = replacements[offset]
        result = result[:offset] + rendered + result[offset + length :]
    return del_surrogate(result)
