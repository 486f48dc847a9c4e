"""Document store schema management (code-first approach)."""

import logging
from typing import Any

from src.core.db_client import get_connection


logger = logging.getLogger(__name__)


# Central list of all collections in the schema
COLLECTIONS = [
    "tasks",
    "comments",
]

_COLUMN_TYPES = {
    "text": "TEXT",
    "bool": "INTEGER",
    "number": "REAL",
}


def _get_collection_schema(*, collection_name: str) -> dict[str, Any]:
    """Get the expected schema for a collection.

    Every collection has a store-assigned text ``id`` and a server-assigned
    ``created`` timestamp (epoch seconds); only the remaining fields are listed.
    """
    schemas = {
        "tasks": {
            "name": "tasks",
            "fields": [
                {"name": "title", "type": "text", "required": True},
                {"name": "description", "type": "text", "required": False},
                {"name": "user", "type": "text", "required": True},
                {"name": "is_public", "type": "bool", "required": False},
            ],
            "indexes": [
                "CREATE INDEX IF NOT EXISTS idx_tasks_user_created ON tasks (user, created DESC)",
            ],
        },
        "comments": {
            "name": "comments",
            # taskId is a plain reference: comments may outlive their task
            "fields": [
                {"name": "comment", "type": "text", "required": True},
                {"name": "user", "type": "text", "required": True},
                {"name": "name", "type": "text", "required": True},
                {"name": "taskId", "type": "text", "required": True},
            ],
            "indexes": [
                "CREATE INDEX IF NOT EXISTS idx_comments_task ON comments (taskId)",
            ],
        },
    }
    return schemas[collection_name]


def _column_definition(field: dict[str, Any]) -> str:
    column_type = _COLUMN_TYPES[field["type"]]
    not_null = " NOT NULL" if field.get("required") else ""
    return f"{field['name']} {column_type}{not_null}"


def _create_table_sql(schema: dict[str, Any]) -> str:
    """Build the CREATE TABLE statement for a collection schema."""
    columns = ["id TEXT PRIMARY KEY", "created REAL NOT NULL"]
    columns.extend(_column_definition(field) for field in schema["fields"])
    return f"CREATE TABLE IF NOT EXISTS {schema['name']} ({', '.join(columns)})"


def _missing_fields(schema: dict[str, Any], existing_columns: set[str]) -> list[dict[str, Any]]:
    """Return schema fields that have no column yet."""
    return [field for field in schema["fields"] if field["name"] not in existing_columns]


async def init_db(*, db_path: str | None = None) -> None:
    """Create collections and indexes, adding columns that are missing (idempotent)."""
    logger.info("Starting schema sync...")
    conn = await get_connection(db_path=db_path)

    for collection_name in COLLECTIONS:
        schema = _get_collection_schema(collection_name=collection_name)
        await conn.execute(_create_table_sql(schema))

        cursor = await conn.execute(f"PRAGMA table_info({collection_name})")
        existing_columns = {row[1] for row in await cursor.fetchall()}

        added = []
        for field in _missing_fields(schema, existing_columns):
            # SQLite cannot add NOT NULL columns without a default
            column_type = _COLUMN_TYPES[field["type"]]
            await conn.execute(f"ALTER TABLE {collection_name} ADD COLUMN {field['name']} {column_type}")
            added.append(field["name"])

        for index_sql in schema.get("indexes", []):
            await conn.execute(index_sql)

        if added:
            logger.info("Updated collection %s: added %s", collection_name, added)
        else:
            logger.info("Collection %s schema is already up to date", collection_name)

    await conn.commit()
    logger.info("Schema sync complete")
