"""Row-store clients for the hosted backend."""

import copy
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Protocol

import requests

from moneymate.errors import NotFoundError, RowStoreError

logger = logging.getLogger(__name__)

Row = dict[str, Any]


class RowStore(Protocol):
    """Minimal create/read/update/delete interface over named collections."""

    def fetch_all(
        self,
        table: str,
        user_id: str,
        order_by: str = "created_at",
        descending: bool = True,
    ) -> list[Row]: ...

    def insert(self, table: str, row: Row) -> Row: ...

    def update(self, table: str, row_id: str, changes: Row) -> Row: ...

    def delete(self, table: str, row_id: str) -> None: ...


class RestRowStore:
    """Client for a PostgREST-style backend (e.g. a Supabase project)."""

    DEFAULT_TIMEOUT = 10.0

    def __init__(self, base_url: str, api_key: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        """Initialize client with the REST endpoint and API key."""
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._session = requests.Session()
        self._session.headers.update({
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        })

    def _request(
        self,
        method: str,
        table: str,
        operation: str,
        params: dict[str, str] | None = None,
        json: Any = None,
        representation: bool = False,
    ) -> Any:
        """Make an API request, converting failures to RowStoreError."""
        url = f"{self.base_url}/{table}"
        headers = {"Prefer": "return=representation"} if representation else None
        try:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, table, e)
            raise RowStoreError(table, operation, str(e)) from e

        try:
            return response.json()
        except ValueError as e:
            raise RowStoreError(table, operation, "invalid JSON in response") from e

    def fetch_all(
        self,
        table: str,
        user_id: str,
        order_by: str = "created_at",
        descending: bool = True,
    ) -> list[Row]:
        """Fetch all rows owned by a user."""
        direction = "desc" if descending else "asc"
        result = self._request(
            "GET",
            table,
            "fetch",
            params={
                "select": "*",
                "user_id": f"eq.{user_id}",
                "order": f"{order_by}.{direction}",
            },
        )
        if not isinstance(result, list):
            raise RowStoreError(table, "fetch", "expected a list of rows")
        return result

    def insert(self, table: str, row: Row) -> Row:
        """Insert one row and return it as stored."""
        result = self._request("POST", table, "insert", json=[row], representation=True)
        if not result:
            raise RowStoreError(table, "insert", "no row returned")
        return result[0]  # type: ignore[no-any-return]

    def update(self, table: str, row_id: str, changes: Row) -> Row:
        """Update one row by id and return it as stored."""
        result = self._request(
            "PATCH",
            table,
            "update",
            params={"id": f"eq.{row_id}"},
            json=changes,
            representation=True,
        )
        if not result:
            raise NotFoundError(table, row_id)
        return result[0]  # type: ignore[no-any-return]

    def delete(self, table: str, row_id: str) -> None:
        """Delete one row by id."""
        result = self._request(
            "DELETE",
            table,
            "delete",
            params={"id": f"eq.{row_id}"},
            representation=True,
        )
        if not result:
            raise NotFoundError(table, row_id)


class MemoryRowStore:
    """In-process row store with the same interface as RestRowStore.

    Rows are copied on the way in and out, so callers never share state
    with the store.
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._tables: dict[str, dict[str, Row]] = {}

    def _table(self, table: str) -> dict[str, Row]:
        return self._tables.setdefault(table, {})

    def fetch_all(
        self,
        table: str,
        user_id: str,
        order_by: str = "created_at",
        descending: bool = True,
    ) -> list[Row]:
        """Fetch all rows owned by a user."""
        rows = [
            copy.deepcopy(row) for row in self._table(table).values()
            if row.get("user_id") == user_id
        ]
        return sorted(rows, key=lambda row: str(row.get(order_by) or ""), reverse=descending)

    def insert(self, table: str, row: Row) -> Row:
        """Insert one row, assigning an id and timestamps."""
        stored = copy.deepcopy(row)
        now = datetime.now(timezone.utc).isoformat()
        stored.setdefault("id", str(uuid.uuid4()))
        stored.setdefault("created_at", now)
        stored["updated_at"] = now
        self._table(table)[stored["id"]] = stored
        return copy.deepcopy(stored)

    def update(self, table: str, row_id: str, changes: Row) -> Row:
        """Update one row by id."""
        rows = self._table(table)
        if row_id not in rows:
            raise NotFoundError(table, row_id)
        rows[row_id].update(copy.deepcopy(changes))
        rows[row_id]["updated_at"] = datetime.now(timezone.utc).isoformat()
        return copy.deepcopy(rows[row_id])

    def delete(self, table: str, row_id: str) -> None:
        """Delete one row by id."""
        rows = self._table(table)
        if row_id not in rows:
            raise NotFoundError(table, row_id)
        del rows[row_id]
