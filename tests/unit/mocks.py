"""Pure Python in-memory document store for unit testing."""

import copy
import itertools
import time
from typing import Any

from src.core.change_feed import ChangeAction, change_feed
from src.core.db_client import DatabaseError, RecordNotFoundError


class InMemoryDBClient:
    """Pure Python in-memory store for unit testing.

    Mirrors the src.core.db_client functions (including change publication)
    without touching SQLite. Supports the filter and sort syntax the services use.
    """

    def __init__(self):
        """Initialize empty in-memory database."""
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._id_counter = itertools.count(1000)
        self._last_created = 0.0
        self.fail_writes = False

    def _next_created(self) -> float:
        # Strictly increasing so "newest first" is deterministic within a test
        self._last_created = max(time.time(), self._last_created + 0.001)
        return self._last_created

    def records(self, collection: str) -> list[dict[str, Any]]:
        """All stored records of a collection, in insertion order."""
        return [copy.deepcopy(r) for r in self._collections.get(collection, {}).values()]

    async def create_record(self, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        """Create a new record with an id and created timestamp."""
        if not isinstance(data, dict):
            raise DatabaseError(f"Data must be a dictionary, got {type(data)}")
        if self.fail_writes:
            raise DatabaseError(f"Failed to create record in {collection}: store unavailable")

        record = {"id": f"rec{next(self._id_counter)}", "created": self._next_created(), **data}
        self._collections.setdefault(collection, {})[record["id"]] = record

        change_feed.publish(collection, ChangeAction.CREATE, record)
        return copy.deepcopy(record)

    async def get_record(self, collection: str, record_id: str) -> dict[str, Any]:
        """Get a record by ID, raising RecordNotFoundError if missing."""
        if not isinstance(record_id, str):
            raise DatabaseError(f"Record ID must be a string, got {type(record_id)}")

        try:
            return copy.deepcopy(self._collections[collection][record_id])
        except KeyError:
            raise RecordNotFoundError(f"Record not found in {collection}: {record_id}") from None

    async def update_record(self, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Update an existing record."""
        if self.fail_writes:
            raise DatabaseError(f"Failed to update record in {collection}: store unavailable")
        if record_id not in self._collections.get(collection, {}):
            raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")

        record = self._collections[collection][record_id]
        record.update(data)

        change_feed.publish(collection, ChangeAction.UPDATE, record)
        return copy.deepcopy(record)

    async def delete_record(self, collection: str, record_id: str) -> None:
        """Delete a record, raising RecordNotFoundError if missing."""
        if self.fail_writes:
            raise DatabaseError(f"Failed to delete record from {collection}: store unavailable")
        if record_id not in self._collections.get(collection, {}):
            raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")

        record = self._collections[collection].pop(record_id)
        change_feed.publish(collection, ChangeAction.DELETE, record)

    async def list_records(
        self,
        collection: str,
        page: int = 1,
        per_page: int = 50,
        filter_query: str = "",
        sort: str = "",
    ) -> list[dict[str, Any]]:
        """List records with optional filtering, sorting and pagination."""
        records = list(self._collections.get(collection, {}).values())

        if filter_query:
            records = [r for r in records if self._parse_filter(filter_query, r)]

        if sort:
            records = self._apply_sort(records, sort)

        start_idx = (page - 1) * per_page
        return [copy.deepcopy(r) for r in records[start_idx : start_idx + per_page]]

    async def count_records(self, collection: str, filter_query: str = "") -> int:
        records = self._collections.get(collection, {}).values()
        return sum(1 for r in records if self._parse_filter(filter_query, r))

    def _parse_filter(self, filter_str: str, record: dict[str, Any]) -> bool:
        """Evaluate a filter expression (=, != and && only) against a record."""
        if not filter_str:
            return True

        if "&&" in filter_str:
            return all(self._parse_filter(cond.strip(), record) for cond in filter_str.split("&&"))

        for op in ("!=", "="):
            if op in filter_str:
                field, raw_value = (part.strip() for part in filter_str.split(op, 1))
                value = raw_value.strip("'\"")
                if value.lower() in ("true", "false"):
                    matches = record.get(field) == (value.lower() == "true")
                else:
                    matches = str(record.get(field, "")) == value
                return matches if op == "=" else not matches

        raise DatabaseError(f"Invalid filter syntax (no operator found): {filter_str}")

    def _apply_sort(self, records: list[dict], sort: str) -> list[dict]:
        """Sort records by field (prefix with - for descending)."""
        reverse = sort.startswith("-")
        field = sort.lstrip("+-")
        ordered = list(reversed(records)) if reverse else records
        return sorted(ordered, key=lambda r: r.get(field, ""), reverse=reverse)
