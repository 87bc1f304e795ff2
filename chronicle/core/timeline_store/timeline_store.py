"""
Timeline store - temporal event log with lazily attached full details.

Events carry lightweight metadata inline. Large payloads are stored out of
line in `full_details` and only loaded when explicitly requested.
"""

import sqlite3
from collections.abc import Mapping
from typing import Any

from chronicle.core.database import Database, Transaction
from chronicle.models.timeline import (
    FullDetail,
    TimelineEvent,
    TimelineEventInput,
    TimelineEventUpdate,
    TimelineEventWithDetails,
    TimelineQuery,
    TimelineResponse,
    TimelineSummary,
)
from chronicle.utils.documents import dump_document, dump_optional_document, load_document
from chronicle.utils.exceptions import NotFoundError, ValidationError
from chronicle.utils.id_generator import generate_event_id, generate_full_data_key
from chronicle.utils.logger import get_logger
from chronicle.utils.timestamps import date_for_timestamp, normalize_timestamp, validate_date
from chronicle.utils.validation import coerce_input, require_text

logger = get_logger(__name__)

DEFAULT_RANGE_LIMIT = 10000

EVENT_COLUMNS = (
    "id, timestamp, date, type, namespace, title, metadata, full_data_key, created_at, updated_at"
)


def row_to_event(row: sqlite3.Row) -> TimelineEvent:
    """Convert a timeline_events row to TimelineEvent."""
    return TimelineEvent(
        id=row["id"],
        timestamp=row["timestamp"],
        date=row["date"],
        type=row["type"],
        namespace=row["namespace"],
        title=row["title"],
        metadata=load_document(row["metadata"]),
        full_data_key=row["full_data_key"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class TimelineStore:
    """
    Store for timeline events and their full detail payloads.

    Ordering: events come back by ascending timestamp; equal timestamps keep
    insertion (rowid) order.
    """

    def __init__(self, database: Database):
        """
        Initialize timeline store.

        Args:
            database: Shared persistence engine
        """
        self.db = database

    # ═══════════════════════════════════════════════════════════
    # EVENT OPERATIONS
    # ═══════════════════════════════════════════════════════════

    async def store_event(self, event: TimelineEventInput | Mapping[str, Any]) -> str:
        """
        Store a timeline event.

        Args:
            event: Event input (timestamp as epoch ms or ISO string)

        Returns:
            New event ID

        Raises:
            ValidationError: If type is empty or timestamp is invalid
        """
        event = coerce_input(TimelineEventInput, event)
        require_text(event.type, "Event type is required")
        timestamp = normalize_timestamp(event.timestamp)

        event_id = generate_event_id()
        now = self.db.now()

        await self.db.execute(
            f"""
            INSERT INTO timeline_events ({EVENT_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, NULL, ?, ?)
            """,
            (
                event_id,
                timestamp,
                date_for_timestamp(timestamp),
                event.type,
                event.namespace,
                event.title,
                dump_optional_document(event.metadata),
                now,
                now,
            ),
        )

        logger.debug(f"Stored event {event_id} ({event.type})")
        return event_id

    async def get_event(self, event_id: str) -> TimelineEvent:
        """
        Get a single event by ID.

        Raises:
            NotFoundError: If the event doesn't exist
        """
        row = await self.db.query_one(
            f"SELECT {EVENT_COLUMNS} FROM timeline_events WHERE id = ?", (event_id,)
        )
        if not row:
            raise NotFoundError(f"Event not found: {event_id}", {"event_id": event_id})
        return row_to_event(row)

    async def update_event(
        self, event_id: str, updates: TimelineEventUpdate | Mapping[str, Any]
    ) -> TimelineEvent:
        """
        Apply a partial update to an event.

        Only supplied fields change. A new timestamp also recomputes `date`.
        An update with no fields returns the event unchanged.

        Raises:
            NotFoundError: If the event doesn't exist
            ValidationError: If the new timestamp is invalid
        """
        updates = coerce_input(TimelineEventUpdate, updates)
        supplied = updates.model_fields_set

        assignments: list[str] = []
        params: list[Any] = []

        if "title" in supplied:
            assignments.append("title = ?")
            params.append(updates.title)

        if "metadata" in supplied:
            assignments.append("metadata = ?")
            params.append(dump_optional_document(updates.metadata))

        if "namespace" in supplied:
            assignments.append("namespace = ?")
            params.append(updates.namespace)

        if "timestamp" in supplied:
            timestamp = normalize_timestamp(updates.timestamp)
            assignments.extend(["timestamp = ?", "date = ?"])
            params.extend([timestamp, date_for_timestamp(timestamp)])

        if not assignments:
            return await self.get_event(event_id)

        assignments.append("updated_at = ?")
        params.extend([self.db.now(), event_id])

        changed = await self.db.execute(
            f"UPDATE timeline_events SET {', '.join(assignments)} WHERE id = ?", params
        )
        if changed == 0:
            raise NotFoundError(f"Event not found: {event_id}", {"event_id": event_id})

        logger.debug(f"Updated event {event_id}: {sorted(supplied)}")
        return await self.get_event(event_id)

    async def delete_event(self, event_id: str) -> bool:
        """
        Delete an event together with its full details.

        Raises:
            NotFoundError: If the event doesn't exist
        """

        async def _delete(tx: Transaction) -> None:
            row = await tx.query_one(
                "SELECT full_data_key FROM timeline_events WHERE id = ?", (event_id,)
            )
            if not row:
                raise NotFoundError(f"Event not found: {event_id}", {"event_id": event_id})

            await tx.execute("DELETE FROM timeline_events WHERE id = ?", (event_id,))
            if row["full_data_key"]:
                await tx.execute("DELETE FROM full_details WHERE key = ?", (row["full_data_key"],))

        await self.db.run_in_transaction(_delete)
        logger.info(f"Deleted event {event_id}")
        return True

    # ═══════════════════════════════════════════════════════════
    # FULL DETAILS
    # ═══════════════════════════════════════════════════════════

    async def expand_event(self, event_id: str, full_data: dict[str, Any]) -> TimelineEvent:
        """
        Attach (or replace) the full detail payload of an event.

        The detail upsert and the event's key update commit together.

        Returns:
            The refreshed event

        Raises:
            NotFoundError: If the event doesn't exist
        """
        if not isinstance(full_data, Mapping):
            raise ValidationError("full_data must be a JSON object", {"event_id": event_id})
        payload = dump_document(full_data)

        async def _expand(tx: Transaction) -> TimelineEvent:
            row = await tx.query_one(
                f"SELECT {EVENT_COLUMNS} FROM timeline_events WHERE id = ?", (event_id,)
            )
            if not row:
                raise NotFoundError(f"Event not found: {event_id}", {"event_id": event_id})

            full_data_key = row["full_data_key"] or generate_full_data_key(row["type"], event_id)
            now = self.db.now()

            await tx.execute(
                """
                INSERT INTO full_details (key, data, created_at, accessed_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    data = excluded.data,
                    created_at = excluded.created_at,
                    accessed_at = excluded.accessed_at
                """,
                (full_data_key, payload, now, now),
            )
            await tx.execute(
                "UPDATE timeline_events SET full_data_key = ?, updated_at = ? WHERE id = ?",
                (full_data_key, now, event_id),
            )

            refreshed = await tx.query_one(
                f"SELECT {EVENT_COLUMNS} FROM timeline_events WHERE id = ?", (event_id,)
            )
            return row_to_event(refreshed)

        event = await self.db.run_in_transaction(_expand)
        logger.debug(f"Expanded event {event_id} -> {event.full_data_key}")
        return event

    async def get_full_details(self, full_data_key: str) -> FullDetail:
        """
        Load a full detail payload.

        Side effect: `accessed_at` is set to now on every successful read. It is
        bookkeeping only; nothing evicts details based on it.

        Raises:
            NotFoundError: If no detail exists under this key
        """
        now = self.db.now()

        async def _load(tx: Transaction) -> FullDetail:
            row = await tx.query_one(
                "SELECT key, data, created_at FROM full_details WHERE key = ?", (full_data_key,)
            )
            if not row:
                raise NotFoundError(
                    f"Full details not found: {full_data_key}", {"key": full_data_key}
                )
            await tx.execute(
                "UPDATE full_details SET accessed_at = ? WHERE key = ?", (now, full_data_key)
            )
            return FullDetail(
                key=row["key"],
                data=load_document(row["data"]),
                created_at=row["created_at"],
                accessed_at=now,
            )

        return await self.db.run_in_transaction(_load)

    async def get_event_with_full_details(self, event_id: str) -> TimelineEventWithDetails:
        """
        Load an event and attach its full payload when it has one.

        A dangling `full_data_key` degrades to the bare event.

        Raises:
            NotFoundError: If the event itself doesn't exist
        """
        event = await self.get_event(event_id)
        result = TimelineEventWithDetails(**event.model_dump())

        if event.full_data_key:
            try:
                details = await self.get_full_details(event.full_data_key)
            except NotFoundError:
                logger.warning(
                    f"Event {event_id} references missing full details {event.full_data_key}"
                )
            else:
                result.full_data = details.data

        return result

    # ═══════════════════════════════════════════════════════════
    # QUERIES
    # ═══════════════════════════════════════════════════════════

    async def get_timeline(self, query: TimelineQuery | Mapping[str, Any]) -> TimelineResponse:
        """
        Get the events of one day.

        Raises:
            ValidationError: If the date isn't YYYY-MM-DD
        """
        query = coerce_input(TimelineQuery, query)
        validate_date(query.date)

        sql = f"SELECT {EVENT_COLUMNS} FROM timeline_events WHERE date = ?"
        params: list[Any] = [query.date]

        if query.type:
            sql += " AND type = ?"
            params.append(query.type)

        sql += " ORDER BY timestamp ASC, rowid ASC LIMIT ?"
        params.append(query.limit)

        rows = await self.db.query(sql, params)
        return TimelineResponse.from_events([row_to_event(row) for row in rows])

    async def get_timeline_range(
        self,
        start_date: str,
        end_date: str,
        event_type: str | None = None,
        limit: int | None = None,
    ) -> TimelineResponse:
        """
        Get events between two dates, both inclusive.

        Raises:
            ValidationError: If either date isn't YYYY-MM-DD
        """
        validate_date(start_date, "start_date")
        validate_date(end_date, "end_date")

        sql = f"SELECT {EVENT_COLUMNS} FROM timeline_events WHERE date BETWEEN ? AND ?"
        params: list[Any] = [start_date, end_date]

        if event_type:
            sql += " AND type = ?"
            params.append(event_type)

        sql += " ORDER BY timestamp ASC, rowid ASC LIMIT ?"
        params.append(limit or DEFAULT_RANGE_LIMIT)

        rows = await self.db.query(sql, params)
        return TimelineResponse.from_events([row_to_event(row) for row in rows])

    async def get_timeline_summary(self, date: str) -> TimelineSummary:
        """Per-type counts for one day without loading events."""
        validate_date(date)

        rows = await self.db.query(
            """
            SELECT type, COUNT(*) AS count
            FROM timeline_events
            WHERE date = ?
            GROUP BY type
            """,
            (date,),
        )

        by_type = {row["type"]: row["count"] for row in rows}
        return TimelineSummary(date=date, total=sum(by_type.values()), by_type=by_type)

    async def get_event_types(self) -> dict[str, int]:
        """All event types with counts, most frequent first."""
        rows = await self.db.query(
            "SELECT type, COUNT(*) AS count FROM timeline_events GROUP BY type ORDER BY count DESC"
        )
        return {row["type"]: row["count"] for row in rows}
