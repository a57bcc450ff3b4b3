"""Domain models for the mirror store, backfill, and live mutation stages."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum


class EntityKind(str, Enum):
    """Rich-text formatting variants carried by channel messages."""

    URL = "url"
    TEXT_URL = "text_url"
    BOLD = "bold"
    ITALIC = "italic"
    CODE = "code"
    PRE = "pre"
    UNDERLINE = "underline"
    STRIKE = "strike"
    BLOCKQUOTE = "blockquote"
    CUSTOM_EMOJI = "custom_emoji"


class ReconcilerState(str, Enum):
    """Lifecycle states for the backfill reconciler."""

    IDLE = "idle"
    RECONCILING = "reconciling"


class MutationKind(str, Enum):
    """Kinds of live events applied to the store."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(slots=True, frozen=True)
class MarkupEntity:
    """One formatting span over message text."""

    kind: EntityKind
    offset: int
    length: int
    url: str | None = None
    language: str | None = None

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "kind": self.kind.value,
            "offset": self.offset,
            "length": self.length,
        }
        if self.url is not None:
            payload["url"] = self.url
        if self.language is not None:
            payload["language"] = self.language
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, object]) -> MarkupEntity:
        url = payload.get("url")
        language = payload.get("language")
        return cls(
            kind=EntityKind(str(payload["kind"])),
            offset=int(payload["offset"]),  # type: ignore[arg-type]
            length=int(payload["length"]),  # type: ignore[arg-type]
            url=str(url) if url is not None else None,
            language=str(language) if language is not None else None,
        )


@dataclass(slots=True)
class MessageContent:
    """Structured payload of one mirrored message."""

    text: str
    create_date: datetime
    image: str = ""
    entities: list[MarkupEntity] = field(default_factory=list)
    edit_date: datetime | None = None

    def to_json(self) -> str:
        return json.dumps(
            {
                "text": self.text,
                "image": self.image,
                "entities": [entity.to_dict() for entity in self.entities],
                "create_date": self.create_date.isoformat(),
                "edit_date": self.edit_date.isoformat() if self.edit_date else None,
            },
            ensure_ascii=False,
        )

    @classmethod
    def from_json(cls, raw: str) -> MessageContent:
        payload = json.loads(raw)
        edit_date = payload.get("edit_date")
        return cls(
            text=str(payload.get("text", "")),
            image=str(payload.get("image") or ""),
            entities=[MarkupEntity.from_dict(item) for item in payload.get("entities") or []],
            create_date=datetime.fromisoformat(payload["create_date"]),
            edit_date=datetime.fromisoformat(edit_date) if edit_date else None,
        )


@dataclass(slots=True)
class RawRecord:
    """Message fetched from the source, already shaped as store content."""

    message_id: int
    content: MessageContent


@dataclass(slots=True)
class StoredMessage:
    """Message row as read back from the store."""

    message_id: int
    content: str
    created_at: int
    updated_at: int
    last_synced_at: int

    @property
    def payload(self) -> MessageContent:
        return MessageContent.from_json(self.content)

    def to_dict(self) -> dict[str, object]:
        data = asdict(self)
        data["content"] = json.loads(self.content)
        return data


@dataclass(slots=True)
class ChannelProfile:
    """Cached channel profile served next to the message list."""

    title: str
    description: str = ""
    photo: str = ""

    def to_json(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str) -> ChannelProfile:
        payload = json.loads(raw)
        return cls(
            title=str(payload.get("title", "")),
            description=str(payload.get("description") or ""),
            photo=str(payload.get("photo") or ""),
        )


@dataclass(slots=True)
class PageResult:
    """One newest-first page of stored messages."""

    data: list[StoredMessage]
    pages: int

    def to_dict(self) -> dict[str, object]:
        return {"data": [message.to_dict() for message in self.data], "pages": self.pages}


@dataclass(slots=True)
class MutationEvent:
    """Out-of-band insert, update, or delete notification."""

    kind: MutationKind
    message_ids: tuple[int, ...]


@dataclass(slots=True)
class BackfillSummary:
    """Counters of one reconciliation run."""

    local_max_id: int = 0
    remote_latest_id: int = 0
    batches_total: int = 0
    batches_failed: int = 0
    fetched: int = 0
    inserted: int = 0
    skipped_existing: int = 0
    skipped_invalid: int = 0
    unfilled_ranges: list[tuple[int, int]] = field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return self.batches_total == 0


@dataclass(slots=True)
class MirrorStatus:
    """Snapshot of store-level counters."""

    channel: str
    schema_version: int
    message_count: int
    latest_id: int
