"""
Tests for TimelineStore.

Tests cover:
1. Storing events and timestamp normalization
2. Day and range queries with stats
3. Full detail expansion and lazy loading
4. Partial updates and deletion
5. Summaries and type counts
"""

from datetime import datetime, timezone

import pytest

from chronicle.models.timeline import TimelineEventInput, TimelineEventUpdate, TimelineQuery
from chronicle.utils.exceptions import NotFoundError, ValidationError


def ms(iso: str) -> int:
    """Epoch milliseconds of a naive ISO string read as UTC."""
    return int(datetime.fromisoformat(iso).replace(tzinfo=timezone.utc).timestamp() * 1000)


@pytest.mark.asyncio
class TestStoreEvent:
    """Tests for storing and fetching events."""

    async def test_journal_entry_scenario(self, timeline_store):
        """Store an ISO-timestamped event and find it by its date."""
        event_id = await timeline_store.store_event(
            {
                "type": "journal_entry",
                "timestamp": "2024-03-15T10:00:00Z",
                "title": "Morning thoughts",
            }
        )

        response = await timeline_store.get_timeline({"date": "2024-03-15"})

        assert event_id.startswith("evt_")
        assert [event.id for event in response.events] == [event_id]
        assert response.stats.total == 1
        assert response.stats.by_type == {"journal_entry": 1}

    async def test_stored_fields(self, timeline_store, clock):
        event_id = await timeline_store.store_event(
            TimelineEventInput(
                timestamp=ms("2024-03-15T23:59:59"),
                type="listening",
                title="Song",
                metadata={"artist": "Björk"},
                namespace="music",
            )
        )

        event = await timeline_store.get_event(event_id)

        assert event.timestamp == ms("2024-03-15T23:59:59")
        assert event.date == "2024-03-15"
        assert event.metadata == {"artist": "Björk"}
        assert event.namespace == "music"
        assert event.full_data_key is None
        assert event.created_at == event.updated_at == clock.current

    async def test_date_is_utc_calendar_date(self, timeline_store):
        # 2024-03-15T23:30:00-05:00 is already the 16th in UTC
        event_id = await timeline_store.store_event(
            {"type": "t", "timestamp": "2024-03-15T23:30:00-05:00"}
        )

        event = await timeline_store.get_event(event_id)

        assert event.date == "2024-03-16"

    async def test_timestamp_formats(self, timeline_store):
        expected = ms("2024-03-15T10:00:00")

        for value in (expected, float(expected), str(expected), "2024-03-15T10:00:00"):
            event_id = await timeline_store.store_event({"type": "t", "timestamp": value})
            event = await timeline_store.get_event(event_id)
            assert event.timestamp == expected

    async def test_invalid_timestamp_rejected(self, timeline_store):
        for value in ("not a date", float("nan"), float("inf")):
            with pytest.raises(ValidationError):
                await timeline_store.store_event({"type": "t", "timestamp": value})

    async def test_missing_type_rejected(self, timeline_store):
        with pytest.raises(ValidationError):
            await timeline_store.store_event({"type": "", "timestamp": 0})

        with pytest.raises(ValidationError):
            await timeline_store.store_event({"timestamp": 0})

    async def test_get_missing_event(self, timeline_store):
        with pytest.raises(NotFoundError):
            await timeline_store.get_event("evt_missing")


@pytest.mark.asyncio
class TestTimelineQueries:
    """Tests for day and range queries."""

    async def test_events_ordered_by_timestamp(self, timeline_store):
        late = await timeline_store.store_event(
            {"type": "a", "timestamp": "2024-03-15T18:00:00Z"}
        )
        early = await timeline_store.store_event(
            {"type": "b", "timestamp": "2024-03-15T08:00:00Z"}
        )
        tie = await timeline_store.store_event({"type": "a", "timestamp": "2024-03-15T18:00:00Z"})

        response = await timeline_store.get_timeline(TimelineQuery(date="2024-03-15"))

        assert [event.id for event in response.events] == [early, late, tie]
        assert response.stats.by_type == {"a": 2, "b": 1}

    async def test_type_filter_and_limit(self, timeline_store):
        for hour in range(5):
            await timeline_store.store_event(
                {"type": "song", "timestamp": f"2024-03-15T0{hour}:00:00Z"}
            )
        await timeline_store.store_event({"type": "other", "timestamp": "2024-03-15T12:00:00Z"})

        response = await timeline_store.get_timeline(
            {"date": "2024-03-15", "type": "song", "limit": 3}
        )

        assert len(response.events) == 3
        assert response.stats.total == 3
        assert response.stats.by_type == {"song": 3}

    async def test_malformed_date_rejected(self, timeline_store):
        for date in ("2024-3-15", "15/03/2024", "2024-03-15T00:00:00", ""):
            with pytest.raises(ValidationError):
                await timeline_store.get_timeline({"date": date})

    async def test_range_boundaries_inclusive(self, timeline_store):
        ids = {}
        for date in ("2023-12-31", "2024-01-01", "2024-01-02", "2024-01-03", "2024-01-04"):
            ids[date] = await timeline_store.store_event(
                {"type": "t", "timestamp": f"{date}T12:00:00Z"}
            )

        response = await timeline_store.get_timeline_range("2024-01-01", "2024-01-03")

        assert [event.id for event in response.events] == [
            ids["2024-01-01"],
            ids["2024-01-02"],
            ids["2024-01-03"],
        ]
        assert response.stats.total == 3

    async def test_range_type_filter(self, timeline_store):
        await timeline_store.store_event({"type": "a", "timestamp": "2024-01-01T00:00:00Z"})
        wanted = await timeline_store.store_event(
            {"type": "b", "timestamp": "2024-01-02T00:00:00Z"}
        )

        response = await timeline_store.get_timeline_range(
            "2024-01-01", "2024-01-31", event_type="b"
        )

        assert [event.id for event in response.events] == [wanted]

    async def test_range_validates_dates(self, timeline_store):
        with pytest.raises(ValidationError):
            await timeline_store.get_timeline_range("2024-01-01", "January")

    async def test_summary_and_event_types(self, timeline_store):
        for event_type in ("song", "song", "journal_entry"):
            await timeline_store.store_event(
                {"type": event_type, "timestamp": "2024-03-15T10:00:00Z"}
            )
        await timeline_store.store_event({"type": "song", "timestamp": "2024-03-16T10:00:00Z"})

        summary = await timeline_store.get_timeline_summary("2024-03-15")
        types = await timeline_store.get_event_types()

        assert summary.total == 3
        assert summary.by_type == {"song": 2, "journal_entry": 1}
        assert list(types.items()) == [("song", 3), ("journal_entry", 1)]

    async def test_empty_day(self, timeline_store):
        response = await timeline_store.get_timeline({"date": "2020-01-01"})
        summary = await timeline_store.get_timeline_summary("2020-01-01")

        assert response.events == []
        assert response.stats.total == 0
        assert summary.total == 0


@pytest.mark.asyncio
class TestFullDetails:
    """Tests for lazy full detail expansion."""

    async def test_expand_round_trip(self, timeline_store):
        event_id = await timeline_store.store_event(
            {"type": "journal_entry", "timestamp": "2024-03-15T10:00:00Z"}
        )
        payload = {"text": "long entry", "tags": ["a", "b"], "nested": {"n": 1}}

        event = await timeline_store.expand_event(event_id, payload)
        details = await timeline_store.get_full_details(event.full_data_key)

        assert event.full_data_key == f"journal_entry:{event_id}:full"
        assert details.data == payload

    async def test_expand_replaces_payload(self, timeline_store):
        event_id = await timeline_store.store_event({"type": "t", "timestamp": 0})

        first = await timeline_store.expand_event(event_id, {"v": 1})
        second = await timeline_store.expand_event(event_id, {"v": 2})

        assert first.full_data_key == second.full_data_key
        assert (await timeline_store.get_full_details(second.full_data_key)).data == {"v": 2}

    async def test_expand_updates_timestamp(self, timeline_store, clock):
        event_id = await timeline_store.store_event({"type": "t", "timestamp": 0})
        clock.advance(seconds=10)

        event = await timeline_store.expand_event(event_id, {"v": 1})

        assert event.updated_at == clock.current
        assert event.created_at < event.updated_at

    async def test_expand_missing_event(self, timeline_store):
        with pytest.raises(NotFoundError):
            await timeline_store.expand_event("evt_missing", {"v": 1})

    async def test_expand_requires_object(self, timeline_store):
        event_id = await timeline_store.store_event({"type": "t", "timestamp": 0})

        with pytest.raises(ValidationError):
            await timeline_store.expand_event(event_id, ["not", "an", "object"])

    async def test_get_full_details_bumps_accessed_at(self, timeline_store, database, clock):
        event_id = await timeline_store.store_event({"type": "t", "timestamp": 0})
        event = await timeline_store.expand_event(event_id, {"v": 1})
        clock.advance(seconds=60)

        details = await timeline_store.get_full_details(event.full_data_key)
        row = await database.query_one(
            "SELECT accessed_at FROM full_details WHERE key = ?", (event.full_data_key,)
        )

        assert details.accessed_at == clock.current
        assert row["accessed_at"] == clock.current

    async def test_get_full_details_missing(self, timeline_store):
        with pytest.raises(NotFoundError):
            await timeline_store.get_full_details("t:evt_missing:full")

    async def test_event_with_full_details(self, timeline_store):
        event_id = await timeline_store.store_event({"type": "t", "timestamp": 0})
        await timeline_store.expand_event(event_id, {"body": "x"})

        result = await timeline_store.get_event_with_full_details(event_id)

        assert result.id == event_id
        assert result.full_data == {"body": "x"}

    async def test_event_without_details(self, timeline_store):
        event_id = await timeline_store.store_event({"type": "t", "timestamp": 0})

        result = await timeline_store.get_event_with_full_details(event_id)

        assert result.full_data is None

    async def test_dangling_detail_degrades_to_bare_event(self, timeline_store, database):
        event_id = await timeline_store.store_event({"type": "t", "timestamp": 0})
        event = await timeline_store.expand_event(event_id, {"body": "x"})

        # Simulate a detail lost outside the store
        await database.execute("PRAGMA foreign_keys = OFF")
        await database.execute("DELETE FROM full_details WHERE key = ?", (event.full_data_key,))
        await database.execute("PRAGMA foreign_keys = ON")

        result = await timeline_store.get_event_with_full_details(event_id)

        assert result.full_data_key == event.full_data_key
        assert result.full_data is None


@pytest.mark.asyncio
class TestUpdateAndDelete:
    """Tests for partial updates and deletion."""

    async def test_partial_update(self, timeline_store, clock):
        event_id = await timeline_store.store_event(
            {"type": "t", "timestamp": 0, "title": "old", "metadata": {"k": 1}}
        )
        clock.advance(seconds=1)

        event = await timeline_store.update_event(event_id, {"title": "new"})

        assert event.title == "new"
        assert event.metadata == {"k": 1}
        assert event.updated_at == clock.current

    async def test_update_timestamp_recomputes_date(self, timeline_store):
        event_id = await timeline_store.store_event(
            {"type": "t", "timestamp": "2024-03-15T10:00:00Z"}
        )

        event = await timeline_store.update_event(
            event_id, TimelineEventUpdate(timestamp="2024-04-01T08:00:00Z")
        )

        assert event.date == "2024-04-01"
        assert event.timestamp == ms("2024-04-01T08:00:00")

    async def test_update_can_clear_field(self, timeline_store):
        event_id = await timeline_store.store_event(
            {"type": "t", "timestamp": 0, "namespace": "work"}
        )

        event = await timeline_store.update_event(event_id, {"namespace": None})

        assert event.namespace is None

    async def test_empty_update_is_noop(self, timeline_store, clock):
        event_id = await timeline_store.store_event({"type": "t", "timestamp": 0})
        before = await timeline_store.get_event(event_id)
        clock.advance(seconds=5)

        after = await timeline_store.update_event(event_id, {})

        assert after == before

    async def test_update_missing_event(self, timeline_store):
        with pytest.raises(NotFoundError):
            await timeline_store.update_event("evt_missing", {"title": "x"})

    async def test_delete_removes_event_and_details(self, timeline_store, database):
        event_id = await timeline_store.store_event({"type": "t", "timestamp": 0})
        event = await timeline_store.expand_event(event_id, {"v": 1})

        assert await timeline_store.delete_event(event_id) is True

        with pytest.raises(NotFoundError):
            await timeline_store.get_event(event_id)
        with pytest.raises(NotFoundError):
            await timeline_store.get_full_details(event.full_data_key)

    async def test_second_delete_not_found(self, timeline_store):
        event_id = await timeline_store.store_event({"type": "t", "timestamp": 0})
        await timeline_store.delete_event(event_id)

        with pytest.raises(NotFoundError):
            await timeline_store.delete_event(event_id)
