"""SQLModel ORM tables for the mirror store."""

from __future__ import annotations

from sqlalchemy import BigInteger, Column, LargeBinary, Text
from sqlmodel import Field, SQLModel

CONFIG_ROW_ID = 1
SCHEMA_VERSION = 1


class MessageRow(SQLModel, table=True):
    __tablename__ = "messages"  # type: ignore[bad-override]

    message_id: int = Field(
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
    )
    content: bytes = Field(sa_column=Column(LargeBinary, nullable=False))
    created_at: int = Field(sa_column=Column(BigInteger, nullable=False))
    updated_at: int = Field(sa_column=Column(BigInteger, nullable=False))
    last_synced_at: int = Field(sa_column=Column(BigInteger, nullable=False))


class ChannelConfig(SQLModel, table=True):
    __tablename__ = "config"  # type: ignore[bad-override]

    id: int = Field(default=CONFIG_ROW_ID, primary_key=True)
    channel: str
    version: int = SCHEMA_VERSION
    data: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
