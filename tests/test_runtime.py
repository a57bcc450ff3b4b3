from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import allure
import pytest

from channel_mirror.config import BackfillSettings, ReadSettings, Settings
from channel_mirror.mirror.errors import IdentityMismatchError
from channel_mirror.mirror.models import ChannelProfile, MutationEvent, MutationKind, RawRecord
from channel_mirror.mirror.runtime import open_mirror

pytestmark = [
    allure.epic("Backfill"),
    allure.feature("Startup Wiring"),
]


class ChannelSource:
    name = "fake"

    def __init__(self, records: Sequence[RawRecord]) -> None:
        self.records = {record.message_id: record for record in records}
        self.profile_calls = 0

    def fetch_latest_id(self) -> int:
        return max(self.records, default=0)

    def fetch_range(self, min_id: int, max_id: int) -> list[RawRecord]:
        return [record for mid, record in self.records.items() if min_id < mid < max_id]

    def fetch_by_ids(self, message_ids: Sequence[int]) -> list[RawRecord]:
        return [self.records[mid] for mid in message_ids if mid in self.records]

    def find_missing_ids(self, message_ids: Sequence[int]) -> list[int]:
        return [mid for mid in message_ids if mid not in self.records]

    def fetch_profile(self) -> ChannelProfile:
        self.profile_calls += 1
        return ChannelProfile(title="Example", description="Channel about examples")


def _settings(db_path: Path, channel: str = "example_channel") -> Settings:
    return Settings(
        db_path=db_path,
        channel=channel,
        backfill=BackfillSettings(batch_size=2),
        read=ReadSettings(page_size=2),
    )


def test_startup_sync_refreshes_profile_and_backfills(tmp_path: Path, content_for) -> None:
    source = ChannelSource(
        [RawRecord(message_id=mid, content=content_for(mid)) for mid in range(1, 6)],
    )
    runtime = open_mirror(_settings(tmp_path / "nested" / "mirror.db"), source)
    try:
        summary = runtime.startup_sync()

        assert source.profile_calls == 1
        assert runtime.profile.current() == ChannelProfile(
            title="Example",
            description="Channel about examples",
        )
        assert summary.inserted == 5
        assert summary.batches_total == 3
        assert runtime.repository.latest_id() == 5
        page = runtime.paginator.page(1)
        assert [message.message_id for message in page.data] == [5, 4]
        assert page.pages == 3
    finally:
        runtime.close()


def test_second_startup_is_noop(tmp_path: Path, content_for) -> None:
    db_path = tmp_path / "mirror.db"
    source = ChannelSource([RawRecord(message_id=1, content=content_for(1))])
    first = open_mirror(_settings(db_path), source)
    first.startup_sync()
    first.close()

    second = open_mirror(_settings(db_path), source)
    try:
        summary = second.startup_sync()
        assert summary.is_noop
        assert second.repository.count() == 1
    finally:
        second.close()


def test_live_applier_shares_the_runtime_store(tmp_path: Path, content_for) -> None:
    source = ChannelSource([])
    runtime = open_mirror(_settings(tmp_path / "mirror.db"), source)
    try:
        assert runtime.applier is not None
        source.records[3] = RawRecord(message_id=3, content=content_for(3))

        assert runtime.applier.apply(MutationEvent(MutationKind.INSERT, (3,))) is True
        assert runtime.repository.exists(3) is True
    finally:
        runtime.close()


def test_read_only_runtime_has_no_sync_components(tmp_path: Path) -> None:
    runtime = open_mirror(_settings(tmp_path / "mirror.db"))
    try:
        assert runtime.reconciler is None
        assert runtime.applier is None
        with pytest.raises(RuntimeError, match="needs a message source"):
            runtime.startup_sync()
    finally:
        runtime.close()


def test_open_mirror_refuses_store_of_other_channel(tmp_path: Path) -> None:
    db_path = tmp_path / "mirror.db"
    open_mirror(_settings(db_path, channel="alpha")).close()

    with pytest.raises(IdentityMismatchError):
        open_mirror(_settings(db_path, channel="beta"))
