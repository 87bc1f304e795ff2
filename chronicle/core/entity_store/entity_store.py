"""
Entity store - versioned named entities and typed directed relations.

Every property change appends an immutable snapshot to `entity_versions`.
Deleting an entity cascades (via foreign keys) to its versions and to every
relation that touches it.
"""

import sqlite3
from collections.abc import Mapping
from typing import Any

from chronicle.core.database import Database, Transaction
from chronicle.core.timeline_store.timeline_store import EVENT_COLUMNS, row_to_event
from chronicle.models.entity import (
    Entity,
    EntityInput,
    EntityVersion,
    Relation,
    RelationDirection,
    RelationInput,
)
from chronicle.models.timeline import TimelineEvent
from chronicle.utils.documents import dump_document, dump_optional_document, load_document
from chronicle.utils.exceptions import NotFoundError, ValidationError
from chronicle.utils.id_generator import generate_entity_id, generate_relation_id
from chronicle.utils.logger import get_logger
from chronicle.utils.patterns import contains_pattern
from chronicle.utils.validation import coerce_input, require_text

logger = get_logger(__name__)

DEFAULT_ACTOR = "system"
INITIAL_VERSION_REASON = "Initial creation"

_ENTITY_COLUMNS = "id, type, name, properties, created_at, updated_at"
_VERSION_COLUMNS = (
    "id, entity_id, version, properties, changed_by, changed_at, change_reason"
)
_RELATION_COLUMNS = (
    "id, from_entity_id, relation_type, to_entity_id, properties, created_at"
)


class EntityStore:
    """
    Store for entities, their version history and relations.

    Entities are addressed by id or by name; names are unique, and an id
    match wins if some other entity happens to be named like that id.
    """

    def __init__(self, database: Database):
        """
        Initialize entity store.

        Args:
            database: Shared persistence engine
        """
        self.db = database

    # ═══════════════════════════════════════════════════════════
    # ENTITY OPERATIONS
    # ═══════════════════════════════════════════════════════════

    async def create_entity(
        self, entity: EntityInput | Mapping[str, Any], actor: str = DEFAULT_ACTOR
    ) -> Entity:
        """
        Create an entity with its initial version.

        Args:
            entity: Entity input (type, name, optional properties)
            actor: Recorded as `changed_by` on version 1

        Returns:
            The created entity

        Raises:
            ValidationError: If type/name are empty or the name is taken
        """
        entity = coerce_input(EntityInput, entity)
        require_text(entity.type, "Entity type is required")
        require_text(entity.name, "Entity name is required")

        entity_id = generate_entity_id()
        now = self.db.now()
        properties = dump_document(entity.properties)

        async def _create(tx: Transaction) -> None:
            existing = await tx.query_one("SELECT id FROM entities WHERE name = ?", (entity.name,))
            if existing:
                raise ValidationError(
                    f"Entity already exists with name: {entity.name}", {"name": entity.name}
                )

            await tx.execute(
                f"INSERT INTO entities ({_ENTITY_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
                (entity_id, entity.type, entity.name, properties, now, now),
            )
            await tx.execute(
                """
                INSERT INTO entity_versions
                    (entity_id, version, properties, changed_by, changed_at, change_reason)
                VALUES (?, 1, ?, ?, ?, ?)
                """,
                (entity_id, properties, actor, now, INITIAL_VERSION_REASON),
            )

        await self.db.run_in_transaction(_create)
        logger.info(f"Created entity {entity_id} ({entity.type}: {entity.name})")

        return Entity(
            id=entity_id,
            type=entity.type,
            name=entity.name,
            properties=entity.properties,
            created_at=now,
            updated_at=now,
        )

    async def get_entity(self, id_or_name: str) -> Entity:
        """
        Get an entity by id or name.

        Raises:
            NotFoundError: If neither matches
        """
        return self._row_to_entity(await self._find(self.db, id_or_name))

    async def list_entities_by_type(self, entity_type: str, limit: int = 1000) -> list[Entity]:
        """Entities of one type, ordered by name."""
        rows = await self.db.query(
            f"SELECT {_ENTITY_COLUMNS} FROM entities WHERE type = ? ORDER BY name ASC LIMIT ?",
            (entity_type, limit),
        )
        return [self._row_to_entity(row) for row in rows]

    async def list_all_entities(self, limit: int = 1000) -> list[Entity]:
        """All entities, ordered by type then name."""
        rows = await self.db.query(
            f"SELECT {_ENTITY_COLUMNS} FROM entities ORDER BY type ASC, name ASC LIMIT ?",
            (limit,),
        )
        return [self._row_to_entity(row) for row in rows]

    async def update_entity(
        self,
        id_or_name: str,
        properties: dict[str, Any],
        actor: str = DEFAULT_ACTOR,
        reason: str | None = None,
    ) -> Entity:
        """
        Replace an entity's properties and record a new version.

        Properties are replaced wholesale, not merged.

        Returns:
            The updated entity

        Raises:
            NotFoundError: If the entity doesn't exist
            ValidationError: If properties is not a mapping
        """
        if not isinstance(properties, Mapping):
            raise ValidationError("Entity properties must be a JSON object")
        serialized = dump_document(dict(properties))

        async def _update(tx: Transaction) -> Entity:
            row = await self._find(tx, id_or_name)
            entity_id = row["id"]

            version_row = await tx.query_one(
                "SELECT MAX(version) AS max_version FROM entity_versions WHERE entity_id = ?",
                (entity_id,),
            )
            new_version = (version_row["max_version"] or 0) + 1
            now = self.db.now()

            await tx.execute(
                "UPDATE entities SET properties = ?, updated_at = ? WHERE id = ?",
                (serialized, now, entity_id),
            )
            await tx.execute(
                """
                INSERT INTO entity_versions
                    (entity_id, version, properties, changed_by, changed_at, change_reason)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (entity_id, new_version, serialized, actor, now, reason),
            )

            logger.debug(f"Entity {entity_id} now at version {new_version}")
            return self._row_to_entity(await self._find(tx, entity_id))

        return await self.db.run_in_transaction(_update)

    async def delete_entity(self, id_or_name: str) -> bool:
        """
        Delete an entity; versions and relations are removed by cascade.

        Raises:
            NotFoundError: If the entity doesn't exist
        """

        async def _delete(tx: Transaction) -> str:
            row = await self._find(tx, id_or_name)
            await tx.execute("DELETE FROM entities WHERE id = ?", (row["id"],))
            return row["id"]

        entity_id = await self.db.run_in_transaction(_delete)
        logger.info(f"Deleted entity {entity_id}")
        return True

    async def get_entity_versions(self, id_or_name: str, limit: int = 100) -> list[EntityVersion]:
        """
        Version history of an entity, newest first.

        Raises:
            NotFoundError: If the entity doesn't exist
        """
        entity = await self.get_entity(id_or_name)
        rows = await self.db.query(
            f"""
            SELECT {_VERSION_COLUMNS} FROM entity_versions
            WHERE entity_id = ?
            ORDER BY version DESC
            LIMIT ?
            """,
            (entity.id, limit),
        )
        return [self._row_to_version(row) for row in rows]

    # ═══════════════════════════════════════════════════════════
    # RELATION OPERATIONS
    # ═══════════════════════════════════════════════════════════

    async def create_relation(self, relation: RelationInput | Mapping[str, Any]) -> Relation:
        """
        Create a directed relation between two existing entities.

        Raises:
            ValidationError: If from, relation or to is missing
            NotFoundError: If either endpoint doesn't exist
        """
        relation = coerce_input(RelationInput, relation)
        for value in (relation.from_, relation.relation, relation.to):
            require_text(value, "From entity, relation type, and to entity are required")

        relation_id = generate_relation_id()
        now = self.db.now()

        async def _create(tx: Transaction) -> Relation:
            source = await self._find(tx, relation.from_)
            target = await self._find(tx, relation.to)

            await tx.execute(
                f"INSERT INTO relations ({_RELATION_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
                (
                    relation_id,
                    source["id"],
                    relation.relation,
                    target["id"],
                    dump_optional_document(relation.properties),
                    now,
                ),
            )
            return Relation(
                id=relation_id,
                from_entity_id=source["id"],
                relation_type=relation.relation,
                to_entity_id=target["id"],
                properties=relation.properties,
                created_at=now,
            )

        created = await self.db.run_in_transaction(_create)
        logger.debug(
            f"Created relation {relation_id}: "
            f"{created.from_entity_id} -[{created.relation_type}]-> {created.to_entity_id}"
        )
        return created

    async def get_relation(self, relation_id: str) -> Relation:
        """
        Get a relation by ID.

        Raises:
            NotFoundError: If the relation doesn't exist
        """
        row = await self.db.query_one(
            f"SELECT {_RELATION_COLUMNS} FROM relations WHERE id = ?", (relation_id,)
        )
        if not row:
            raise NotFoundError(f"Relation not found: {relation_id}", {"relation_id": relation_id})
        return self._row_to_relation(row)

    async def get_entity_relations(
        self,
        id_or_name: str,
        direction: RelationDirection | str = RelationDirection.BOTH,
        relation_type: str | None = None,
    ) -> list[Relation]:
        """
        Relations touching an entity, newest first.

        Args:
            id_or_name: Entity id or name
            direction: "from" (outgoing), "to" (incoming) or "both"
            relation_type: Optional exact relation type filter

        Raises:
            ValidationError: If direction is not one of from/to/both
            NotFoundError: If the entity doesn't exist
        """
        try:
            direction = RelationDirection(direction)
        except ValueError as e:
            raise ValidationError(
                f"Invalid direction: {direction}", {"allowed": [d.value for d in RelationDirection]}
            ) from e

        entity = await self.get_entity(id_or_name)

        if direction == RelationDirection.FROM:
            where = "from_entity_id = ?"
            params: list[Any] = [entity.id]
        elif direction == RelationDirection.TO:
            where = "to_entity_id = ?"
            params = [entity.id]
        else:
            where = "(from_entity_id = ? OR to_entity_id = ?)"
            params = [entity.id, entity.id]

        if relation_type:
            where += " AND relation_type = ?"
            params.append(relation_type)

        rows = await self.db.query(
            f"""
            SELECT {_RELATION_COLUMNS} FROM relations
            WHERE {where}
            ORDER BY created_at DESC, rowid DESC
            """,
            params,
        )
        return [self._row_to_relation(row) for row in rows]

    async def delete_relation(self, relation_id: str) -> bool:
        """
        Delete a relation.

        Returns:
            True if a row was removed, False if it didn't exist
        """
        deleted = await self.db.execute("DELETE FROM relations WHERE id = ?", (relation_id,))
        return deleted > 0

    # ═══════════════════════════════════════════════════════════
    # SEARCH & STATS
    # ═══════════════════════════════════════════════════════════

    async def get_entity_timeline(self, id_or_name: str, limit: int = 100) -> list[TimelineEvent]:
        """
        Timeline events whose metadata mentions the entity's name.

        Best effort only: this is a literal substring match over serialized
        metadata, not a reference. Short or common names produce false
        positives, and events that mention the entity only in title or full
        details are missed.

        Raises:
            NotFoundError: If the entity doesn't exist
        """
        entity = await self.get_entity(id_or_name)
        rows = await self.db.query(
            f"""
            SELECT {EVENT_COLUMNS} FROM timeline_events
            WHERE metadata LIKE ? ESCAPE '\\'
            ORDER BY timestamp DESC
            LIMIT ?
            """,
            (contains_pattern(entity.name), limit),
        )
        return [row_to_event(row) for row in rows]

    async def search_entities(
        self, term: str, entity_type: str | None = None, limit: int = 100
    ) -> list[Entity]:
        """Entities whose name or serialized properties contain `term`."""
        pattern = contains_pattern(term)
        sql = f"""
            SELECT {_ENTITY_COLUMNS} FROM entities
            WHERE (name LIKE ? ESCAPE '\\' OR properties LIKE ? ESCAPE '\\')
        """
        params: list[Any] = [pattern, pattern]

        if entity_type:
            sql += " AND type = ?"
            params.append(entity_type)

        sql += " ORDER BY name ASC LIMIT ?"
        params.append(limit)

        rows = await self.db.query(sql, params)
        return [self._row_to_entity(row) for row in rows]

    async def get_entity_type_stats(self) -> dict[str, int]:
        """Entity counts per type."""
        rows = await self.db.query("SELECT type, COUNT(*) AS count FROM entities GROUP BY type")
        return {row["type"]: row["count"] for row in rows}

    # ═══════════════════════════════════════════════════════════
    # HELPER METHODS
    # ═══════════════════════════════════════════════════════════

    async def _find(self, source: Database | Transaction, id_or_name: str) -> sqlite3.Row:
        """Resolve an entity row by id or name, preferring an id match."""
        row = await source.query_one(
            f"""
            SELECT {_ENTITY_COLUMNS} FROM entities
            WHERE id = ? OR name = ?
            ORDER BY (id = ?) DESC
            LIMIT 1
            """,
            (id_or_name, id_or_name, id_or_name),
        )
        if not row:
            raise NotFoundError(f"Entity not found: {id_or_name}", {"entity": id_or_name})
        return row

    def _row_to_entity(self, row: sqlite3.Row) -> Entity:
        """Convert database row to Entity."""
        return Entity(
            id=row["id"],
            type=row["type"],
            name=row["name"],
            properties=load_document(row["properties"]) or {},
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _row_to_version(self, row: sqlite3.Row) -> EntityVersion:
        """Convert database row to EntityVersion."""
        return EntityVersion(
            id=row["id"],
            entity_id=row["entity_id"],
            version=row["version"],
            properties=load_document(row["properties"]) or {},
            changed_by=row["changed_by"],
            changed_at=row["changed_at"],
            change_reason=row["change_reason"],
        )

    def _row_to_relation(self, row: sqlite3.Row) -> Relation:
        """Convert database row to Relation."""
        return Relation(
            id=row["id"],
            from_entity_id=row["from_entity_id"],
            relation_type=row["relation_type"],
            to_entity_id=row["to_entity_id"],
            properties=load_document(row["properties"]),
            created_at=row["created_at"],
        )
