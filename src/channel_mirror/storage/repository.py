"""SQLModel-backed record store for mirrored channel messages."""

from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, delete, select

from channel_mirror.mirror.errors import (
    DeleteRaceLostError,
    IdentityMismatchError,
    RecordExistsError,
    RecordNotFoundError,
)
from channel_mirror.mirror.models import ChannelProfile, MirrorStatus, StoredMessage
from channel_mirror.storage.alembic_runner import upgrade_head
from channel_mirror.storage.codec import DEFAULT_MAX_CONTENT_BYTES, ContentCodec
from channel_mirror.storage.common import (
    build_sqlite_engine,
    connect_sqlite_with_policy,
    epoch_millis,
    now_millis,
    now_seconds,
)
from channel_mirror.storage.retry import StorageRetrier
from channel_mirror.storage.sqlmodel_models import (
    CONFIG_ROW_ID,
    SCHEMA_VERSION,
    ChannelConfig,
    MessageRow,
)

logger = logging.getLogger(__name__)

MAX_MESSAGE_ID = 2**63 - 1


class MessageRepository:
    """Facade that persists mirrored messages using SQLModel and Alembic.

    Every public operation runs through the shared ``StorageRetrier`` under a
    key naming the operation and, where there is one, the message id.
    Each mutation is one session and one commit, so a row and its derived
    timestamps change together or not at all.
    """

    def __init__(
        self,
        db_path: Path,
        *,
        channel: str,
        codec: ContentCodec | None = None,
        retrier: StorageRetrier | None = None,
        busy_timeout_ms: int = 5_000,
    ) -> None:
        self.db_path = db_path
        self.channel = channel
        self.codec = codec or ContentCodec(max_content_bytes=DEFAULT_MAX_CONTENT_BYTES)
        self.retrier = retrier or StorageRetrier()

        self.engine = build_sqlite_engine(db_path=db_path, busy_timeout_ms=busy_timeout_ms)

        # Keep low-level connection for tests and ad-hoc debugging queries.
        self._connection = connect_sqlite_with_policy(
            db_path=db_path,
            busy_timeout_ms=busy_timeout_ms,
        )

    def close(self) -> None:
        self._connection.close()
        self.engine.dispose()

    def init_schema(self) -> None:
        """Migrate to head and create or verify the channel identity row."""

        upgrade_head(self.db_path)
        self.retrier.call("init_config", self._ensure_channel_config)

    def exists(self, message_id: int) -> bool:
        _validate_message_id(message_id)

        def _operation() -> bool:
            with Session(self.engine) as session:
                return session.get(MessageRow, message_id) is not None

        return self.retrier.call(f"exists_{message_id}", _operation)

    def get(self, message_id: int) -> StoredMessage | None:
        _validate_message_id(message_id)

        def _operation() -> StoredMessage | None:
            with Session(self.engine) as session:
                row = session.get(MessageRow, message_id)
                if row is None:
                    return None
                return self._to_stored(row)

        return self.retrier.call(f"get_{message_id}", _operation)

    def list_messages(self) -> list[StoredMessage]:
        def _operation() -> list[StoredMessage]:
            with Session(self.engine) as session:
                rows = session.exec(
                    select(MessageRow).order_by(col(MessageRow.message_id).desc()),
                ).all()
                return [self._to_stored(row) for row in rows]

        return self.retrier.call("list_messages", _operation)

    def fetch_window(self, *, offset: int, limit: int) -> tuple[list[StoredMessage], int]:
        """Return one newest-first slice and the total row count from one query."""

        if offset < 0 or limit <= 0:
            raise ValueError("offset must be >= 0 and limit must be > 0")

        def _operation() -> tuple[list[StoredMessage], int]:
            with Session(self.engine) as session:
                rows = session.exec(
                    select(MessageRow, func.count().over())
                    .order_by(col(MessageRow.message_id).desc())
                    .offset(offset)
                    .limit(limit),
                ).all()
                if rows:
                    return [self._to_stored(row) for row, _ in rows], int(rows[0][1])
                total = session.exec(select(func.count()).select_from(MessageRow)).one()
                return [], int(total)

        return self.retrier.call(f"fetch_window_{offset}_{limit}", _operation)

    def count(self) -> int:
        def _operation() -> int:
            with Session(self.engine) as session:
                return int(session.exec(select(func.count()).select_from(MessageRow)).one())

        return self.retrier.call("count", _operation)

    def latest_id(self) -> int:
        """Highest stored message id, or 0 for an empty store."""

        def _operation() -> int:
            with Session(self.engine) as session:
                value = session.exec(select(func.max(MessageRow.message_id))).one()
                return int(value or 0)

        return self.retrier.call("latest_id", _operation)

    def insert(self, message_id: int, content: str) -> None:
        _validate_message_id(message_id)
        parsed = self.codec.validate(content)
        created_at = epoch_millis(parsed.create_date)
        updated_at = max(created_at, epoch_millis(parsed.edit_date or parsed.create_date))
        compressed = self.codec.compress(content)

        def _operation() -> None:
            with Session(self.engine) as session:
                if session.get(MessageRow, message_id) is not None:
                    raise RecordExistsError(message_id)
                session.add(
                    MessageRow(
                        message_id=message_id,
                        content=compressed,
                        created_at=created_at,
                        updated_at=updated_at,
                        last_synced_at=now_seconds(),
                    ),
                )
                try:
                    session.commit()
                except IntegrityError as error:
                    session.rollback()
                    raise RecordExistsError(message_id) from error

        self.retrier.call(f"insert_{message_id}", _operation)
        logger.debug("Inserted message %s.", message_id)

    def update(self, message_id: int, content: str) -> None:
        _validate_message_id(message_id)
        self.codec.validate(content)
        compressed = self.codec.compress(content)

        def _operation() -> None:
            with Session(self.engine) as session:
                row = session.get(MessageRow, message_id)
                if row is None:
                    raise RecordNotFoundError(message_id)
                row.content = compressed
                row.updated_at = max(row.created_at, now_millis())
                row.last_synced_at = now_seconds()
                session.add(row)
                session.commit()

        self.retrier.call(f"update_{message_id}", _operation)
        logger.debug("Updated message %s.", message_id)

    def delete(self, message_id: int) -> None:
        """Remove a message; absent ids are a no-op."""

        _validate_message_id(message_id)

        def _operation() -> None:
            with Session(self.engine) as session:
                if session.get(MessageRow, message_id) is None:
                    return
                result = session.exec(
                    delete(MessageRow).where(col(MessageRow.message_id) == message_id),
                )
                session.commit()
                if result.rowcount == 0:
                    raise DeleteRaceLostError(message_id)
                logger.debug("Deleted message %s.", message_id)

        self.retrier.call(f"delete_{message_id}", _operation)

    def get_profile(self) -> ChannelProfile | None:
        def _operation() -> ChannelProfile | None:
            with Session(self.engine) as session:
                config = session.get(ChannelConfig, CONFIG_ROW_ID)
                if config is None or not config.data:
                    return None
                return ChannelProfile.from_json(config.data)

        return self.retrier.call("get_profile", _operation)

    def update_profile(self, profile: ChannelProfile) -> None:
        def _operation() -> None:
            with Session(self.engine) as session:
                config = session.get(ChannelConfig, CONFIG_ROW_ID)
                if config is None:
                    raise RuntimeError("Channel config row is missing; run init_schema first.")
                config.data = profile.to_json()
                session.add(config)
                session.commit()

        self.retrier.call("update_profile", _operation)

    def status(self) -> MirrorStatus:
        def _operation() -> MirrorStatus:
            with Session(self.engine) as session:
                config = session.get(ChannelConfig, CONFIG_ROW_ID)
                total = session.exec(select(func.count()).select_from(MessageRow)).one()
                latest = session.exec(select(func.max(MessageRow.message_id))).one()
                return MirrorStatus(
                    channel=config.channel if config else self.channel,
                    schema_version=config.version if config else SCHEMA_VERSION,
                    message_count=int(total),
                    latest_id=int(latest or 0),
                )

        return self.retrier.call("status", _operation)

    def _ensure_channel_config(self) -> None:
        with Session(self.engine) as session:
            config = session.get(ChannelConfig, CONFIG_ROW_ID)
            if config is None:
                session.add(
                    ChannelConfig(id=CONFIG_ROW_ID, channel=self.channel, version=SCHEMA_VERSION),
                )
                session.commit()
                logger.info("Initialized mirror store for channel %s.", self.channel)
                return
            if config.channel != self.channel:
                raise IdentityMismatchError(stored=config.channel, configured=self.channel)

    def _to_stored(self, row: MessageRow) -> StoredMessage:
        return StoredMessage(
            message_id=int(row.message_id),
            content=self.codec.decompress(row.content),
            created_at=int(row.created_at),
            updated_at=int(row.updated_at),
            last_synced_at=int(row.last_synced_at),
        )


def _validate_message_id(message_id: int) -> None:
    if (
        isinstance(message_id, bool)
        or not isinstance(message_id, int)
        or message_id <= 0
        or message_id > MAX_MESSAGE_ID
    ):
        raise ValueError("Invalid message ID: must be a positive integer within safe range")
