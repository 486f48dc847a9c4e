"""SQLite document store client with CRUD operations and change publication."""

import asyncio
import json
import logging
import re
import secrets
import string
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from src.core.change_feed import ChangeAction, change_feed
from src.core.config import Constants, settings


logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits
_ID_LENGTH = 15


class DatabaseError(RuntimeError):
    """Raised when a store operation fails."""


class RecordNotFoundError(KeyError):
    """Raised when a record does not exist in its collection."""


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def sanitize_param(value: str | int | float | bool | None) -> str:
    """Escape a value for safe embedding in filter queries via json.dumps."""
    return json.dumps(str(value))[1:-1]


def generate_record_id() -> str:
    """Generate an opaque record identifier."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


def _parse_value(value: str, *, is_like: bool = False) -> str | bool:
    """Parse a quoted filter value. Only boolean literals change type; digit strings stay text."""
    if is_like:
        return value.replace("%", "\\%").replace("_", "\\_")

    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False

    return value


def _get_sql_operator(op: str) -> str:
    """Map filter operator to SQL operator."""
    op_map = {
        "=": "=",
        "!=": "!=",
        ">": ">",
        "<": "<",
        ">=": ">=",
        "<=": "<=",
        "~": "LIKE",
    }
    sql_op = op_map.get(op)
    if not sql_op:
        msg = f"Unsupported operator: {op}"
        raise ValueError(msg)
    return sql_op


def _unescape(raw_value: str, quote: str) -> str:
    """Undo the escaping applied by sanitize_param (or a hand-escaped single quote)."""
    if quote == '"':
        try:
            return json.loads(f'"{raw_value}"')
        except json.JSONDecodeError as e:
            msg = f"Invalid escape sequence in filter value: {raw_value}"
            raise ValueError(msg) from e
    return re.sub(r"\\(.)", r"\1", raw_value)


# A comparison is `field <op> "value"`; quoted values may contain escaped quotes
_COMPARISON = r"""(?P<field>\w+)\s*(?P<op>!=|>=|<=|=|>|<|~)\s*(?P<quote>['"])(?P<value>(?:\\.|(?!(?P=quote))[^\\])*)(?P=quote)"""
_COMPARISON_RE = re.compile(rf"^\s*{_COMPARISON}\s*$")
_FILTER_TOKEN_RE = re.compile(rf"\s*(?:{_COMPARISON}|&&|\|\||[()])")

FilterParam = str | int | float | bool | None


def _parse_single_comparison(comparison: str) -> tuple[str, FilterParam]:
    """Parse a single comparison expression into a SQL condition and parameter."""
    match = _COMPARISON_RE.match(comparison)
    if not match:
        msg = f"Invalid filter syntax: {comparison}"
        raise ValueError(msg)

    field = match.group("field")
    raw_value = _unescape(match.group("value"), match.group("quote"))

    sql_op = _get_sql_operator(match.group("op"))
    if sql_op == "LIKE":
        return f"{field} LIKE ? ESCAPE '\\'", f"%{_parse_value(raw_value, is_like=True)}%"

    return f"{field} {sql_op} ?", _parse_value(raw_value)


def _tokenize_filter(filter_query: str) -> list[str]:
    """Split a filter into comparisons, `&&`, `||` and parentheses.

    Operators inside quoted values stay part of their comparison.
    """
    text = filter_query.strip()
    tokens = []
    pos = 0
    while pos < len(text):
        match = _FILTER_TOKEN_RE.match(text, pos)
        if not match:
            msg = f"Invalid filter syntax: {filter_query}"
            raise ValueError(msg)
        tokens.append(match.group(0).strip())
        pos = match.end()
    return tokens


def _split_tokens(tokens: list[str], separator: str) -> list[list[str]]:
    """Split a token list on ``separator`` outside parentheses."""
    groups: list[list[str]] = [[]]
    depth = 0
    for token in tokens:
        if token == "(":
            depth += 1
        elif token == ")":
            depth -= 1
        if token == separator and depth == 0:
            groups.append([])
        else:
            groups[-1].append(token)
    return groups


def _is_comparison(group: list[str]) -> bool:
    return len(group) == 1 and group[0] not in {"(", ")", "&&", "||"}


def parse_filter(filter_query: str) -> tuple[str, list[FilterParam]]:
    """Parse filter syntax into a SQL WHERE clause and parameter list.

    Supports comparisons joined by `&&`, where each operand may also be a
    parenthesised group of comparisons joined by `||`.
    """
    if not filter_query or not filter_query.strip():
        return "", []

    conditions = []
    params: list[FilterParam] = []

    for group in _split_tokens(_tokenize_filter(filter_query), "&&"):
        if _is_comparison(group):
            cond, value = _parse_single_comparison(group[0])
            conditions.append(cond)
            params.append(value)
            continue

        or_parts = _split_tokens(group[1:-1], "||") if group[:1] == ["("] and group[-1:] == [")"] else []
        if not or_parts or not all(_is_comparison(part) for part in or_parts):
            msg = f"Invalid filter syntax: {filter_query}"
            raise ValueError(msg)

        parsed = [_parse_single_comparison(part[0]) for part in or_parts]
        conditions.append(f"({' OR '.join(cond for cond, _ in parsed)})")
        params.extend(value for _, value in parsed)

    return " AND ".join(conditions), params


def parse_sort(sort: str) -> str:
    """Translate ``-field`` / ``+field`` / ``field [ASC|DESC]`` into an ORDER BY clause.

    Ties are broken by insertion order in the same direction.
    """
    if not sort:
        return "rowid ASC"

    sort = sort.strip()
    direction = "ASC"
    if sort[0] in "+-":
        direction = "DESC" if sort[0] == "-" else "ASC"
        sort = sort[1:]

    match = re.match(r"^([A-Za-z_][A-Za-z0-9_]*)\s*(ASC|DESC)?$", sort, re.IGNORECASE)
    if not match:
        logger.warning("Invalid sort parameter, using default", extra={"sort": sort})
        return "rowid ASC"

    field = match.group(1)
    if match.group(2):
        direction = match.group(2).upper()
    return f"{field} {direction}, rowid {direction}"


def _serialize_value(val: Any) -> Any:  # noqa: ANN401
    if isinstance(val, datetime):
        return val.isoformat()
    if isinstance(val, dict | list):
        return json.dumps(val)
    return val


def _row_to_record(cursor: aiosqlite.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    columns = [description[0] for description in cursor.description]
    return dict(zip(columns, row, strict=True))


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_db_lock = asyncio.Lock()


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop = asyncio.get_running_loop()
    loop_id = id(loop)
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    if cache_key in _db_connections:
        return _db_connections[cache_key]

    async with _db_lock:
        # Double-check after acquiring lock
        if cache_key in _db_connections:
            return _db_connections[cache_key]

        path.parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(str(path))
        await conn.execute("PRAGMA journal_mode = WAL")

        _db_connections[cache_key] = conn

        logger.info(
            "Created new SQLite connection",
            extra={"db_path": str(path), "thread_id": thread_id, "loop_id": loop_id},
        )
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop_id = id(asyncio.get_running_loop())
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    if cache_key not in _db_connections:
        return

    try:
        async with _db_lock:
            conn = _db_connections.pop(cache_key, None)
            if conn is not None:
                await conn.close()
                logger.info(
                    "Closed SQLite connection",
                    extra={"thread_id": thread_id, "loop_id": loop_id, "db_path": str(path)},
                )
    except Exception as e:
        logger.warning(
            "Error closing SQLite connection",
            extra={"error": str(e), "thread_id": thread_id, "loop_id": loop_id},
        )


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema by delegating to schema.init_db()."""
    from src.core import schema  # noqa: PLC0415 - schema imports this module

    await schema.init_db(db_path=db_path)


@contextmanager
def _store_errors(action: str, collection: str, record_id: str | None = None) -> Iterator[None]:
    """Re-raise driver and query failures as DatabaseError; not-found errors pass through."""
    try:
        yield
    except KeyError:
        raise
    except Exception as e:
        logger.error(
            "store_operation_failed",
            extra={"action": action, "collection": collection, "record_id": record_id, "error": str(e)},
        )
        if isinstance(e, aiosqlite.OperationalError) and "no such table" in str(e):
            msg = f"Table '{collection}' does not exist. Call init_db() first."
        else:
            msg = f"Failed to {action} {collection}: {e}"
        raise DatabaseError(msg) from e


def _where_clause(filter_query: str) -> tuple[str, list[Any]]:
    condition, params = parse_filter(filter_query)
    return (f" WHERE {condition}", list(params)) if condition else ("", [])


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a new record and return it with its assigned id and created timestamp."""
    with _store_errors("create record in", collection):
        _validate_collection_name(collection)
        conn = await get_connection()

        record = {"id": generate_record_id(), "created": time.time(), **data}
        columns = ", ".join(record)
        placeholders = ", ".join("?" * len(record))
        await conn.execute(
            f"INSERT INTO {collection} ({columns}) VALUES ({placeholders})",  # noqa: S608 - collection is validated
            [_serialize_value(value) for value in record.values()],
        )
        await conn.commit()

        result = await get_record(collection=collection, record_id=record["id"])

    logger.info("Created record", extra={"collection": collection, "record_id": result["id"]})
    change_feed.publish(collection, ChangeAction.CREATE, result)
    return result


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch a single record by ID.

    Raises:
        RecordNotFoundError: If no record has this ID
        DatabaseError: If the store cannot be read
    """
    with _store_errors("get record from", collection, record_id):
        _validate_collection_name(collection)
        conn = await get_connection()

        cursor = await conn.execute(f"SELECT * FROM {collection} WHERE id = ?", (record_id,))  # noqa: S608
        row = await cursor.fetchone()
        if row is None:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        return _row_to_record(cursor, row)


async def update_record(*, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Update fields of a record and return the stored result."""
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    with _store_errors("update record in", collection, record_id):
        _validate_collection_name(collection)
        conn = await get_connection()

        assignments = ", ".join(f"{key} = ?" for key in data)
        cursor = await conn.execute(
            f"UPDATE {collection} SET {assignments} WHERE id = ?",  # noqa: S608 - collection is validated
            [*(_serialize_value(value) for value in data.values()), record_id],
        )
        await conn.commit()
        if cursor.rowcount == 0:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        result = await get_record(collection=collection, record_id=record_id)

    logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
    change_feed.publish(collection, ChangeAction.UPDATE, result)
    return result


async def delete_record(*, collection: str, record_id: str) -> None:
    """Delete a record by ID, raising RecordNotFoundError if it does not exist."""
    with _store_errors("delete record from", collection, record_id):
        # Subscribers filter on the deleted record's fields, so read it first
        record = await get_record(collection=collection, record_id=record_id)
        conn = await get_connection()

        await conn.execute(f"DELETE FROM {collection} WHERE id = ?", (record_id,))  # noqa: S608
        await conn.commit()

    logger.info("Deleted record", extra={"collection": collection, "record_id": record_id})
    change_feed.publish(collection, ChangeAction.DELETE, record)


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int = 50,
    filter_query: str = "",
    sort: str = "",
) -> list[dict[str, Any]]:
    """List records with optional filtering, sorting, and pagination."""
    with _store_errors("list records from", collection):
        _validate_collection_name(collection)
        conn = await get_connection()

        where, params = _where_clause(filter_query)
        cursor = await conn.execute(
            f"SELECT * FROM {collection}{where} ORDER BY {parse_sort(sort)} LIMIT ? OFFSET ?",  # noqa: S608
            [*params, per_page, (page - 1) * per_page],
        )
        records = [_row_to_record(cursor, row) for row in await cursor.fetchall()]

    logger.debug("Listed records", extra={"collection": collection, "count": len(records)})
    return records


async def count_records(*, collection: str, filter_query: str = "") -> int:
    """Count records in a collection, optionally filtered."""
    with _store_errors("count records in", collection):
        _validate_collection_name(collection)
        conn = await get_connection()

        where, params = _where_clause(filter_query)
        cursor = await conn.execute(f"SELECT COUNT(*) FROM {collection}{where}", params)  # noqa: S608
        row = await cursor.fetchone()

    return int(row[0]) if row else 0


async def list_all_records(
    *,
    collection: str,
    filter_query: str = "",
    sort: str = "",
    per_page: int = Constants.MAX_PER_PAGE_LIMIT,
) -> list[dict[str, Any]]:
    """List every matching record, reading page after page until a short page comes back."""
    records: list[dict[str, Any]] = []
    page = 1
    while True:
        batch = await list_records(
            collection=collection,
            page=page,
            per_page=per_page,
            filter_query=filter_query,
            sort=sort,
        )
        records.extend(batch)
        if len(batch) < per_page:
            return records

        page += 1
        logger.debug("Fetching next page", extra={"collection": collection, "page": page})
