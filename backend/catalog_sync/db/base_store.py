"""
Base store — shared Supabase client access for all stores.

Base Supabase store with shared CRUD helpers.

All domain-specific stores inherit from this class to get
standardised insert / upsert / select / update / delete primitives.
Supabase errors (API and transport) are re-raised as DatabaseTransientError so callers
(and Celery autoretry) can treat them as retryable.
Version: 1.0.0
"""

import logging
from typing import Any, Dict, List

import httpx
from postgrest.exceptions import APIError

from catalog_sync.core.config import settings
from catalog_sync.core.exceptions import DatabaseTransientError
from catalog_sync.clients.supabase_client import SupabaseClient

logger = logging.getLogger("base_store")

PAGE_SIZE = 1000

# postgrest raises httpx errors when Supabase is unreachable
SUPABASE_ERRORS = (APIError, httpx.HTTPError)


class BaseStore:
    """Base class for all Supabase stores providing shared CRUD operations."""

    def __init__(self, supabase_client: SupabaseClient | None = None) -> None:
        self._supabase_client = supabase_client or SupabaseClient(settings)

    @property
    def _client(self):
        """Get the Supabase client instance."""
        return self._supabase_client.client

    def _fail(self, action: str, table: str, e: Exception) -> DatabaseTransientError:
        logger.info("supabase error table=%s detail=%s", table, str(e))
        return DatabaseTransientError(f"Supabase {action} {table} failed: {e}")

    async def _insert(self, table: str, rows: List[Dict[str, Any]]) -> None:
        """Insert rows into a table."""
        if not rows:
            return
        try:
            self._client.table(table).insert(rows).execute()
        except SUPABASE_ERRORS as e:
            raise self._fail("insert into", table, e)

    async def _upsert(
        self, table: str, rows: List[Dict[str, Any]], on_conflict: str | None = None
    ) -> None:
        """Upsert rows into a table (insert or update on conflict)."""
        if not rows:
            return
        try:
            if on_conflict:
                self._client.table(table).upsert(rows, on_conflict=on_conflict).execute()
            else:
                self._client.table(table).upsert(rows).execute()
        except SUPABASE_ERRORS as e:
            raise self._fail("upsert into", table, e)

    async def _select(
        self, table: str, columns: str = "*", filters: Dict[str, Any] | None = None
    ) -> List[Dict[str, Any]]:
        """Select rows from a table with optional filters."""
        try:
            query = self._client.table(table).select(columns)
            if filters:
                for key, value in filters.items():
                    query = query.eq(key, value)
            response = query.execute()
            return response.data or []
        except SUPABASE_ERRORS as e:
            raise self._fail("select from", table, e)

    async def _select_all(
        self, table: str, columns: str = "*", filters: Dict[str, Any] | None = None
    ) -> List[Dict[str, Any]]:
        """Select every matching row, paging past the PostgREST row cap."""
        rows: List[Dict[str, Any]] = []
        offset = 0
        try:
            while True:
                query = self._client.table(table).select(columns)
                if filters:
                    for key, value in filters.items():
                        query = query.eq(key, value)
                response = query.order("id").range(offset, offset + PAGE_SIZE - 1).execute()
                page = response.data or []
                rows.extend(page)
                if len(page) < PAGE_SIZE:
                    return rows
                offset += PAGE_SIZE
        except SUPABASE_ERRORS as e:
            raise self._fail("select from", table, e)

    async def _update(
        self, table: str, filters: Dict[str, Any], payload: Dict[str, Any]
    ) -> None:
        """Update rows in a table matching the filters."""
        try:
            query = self._client.table(table).update(payload)
            for key, value in filters.items():
                query = query.eq(key, value)
            query.execute()
        except SUPABASE_ERRORS as e:
            raise self._fail("update", table, e)

    async def _delete(self, table: str, filters: Dict[str, Any]) -> None:
        """Delete rows in a table matching the filters."""
        try:
            query = self._client.table(table).delete()
            for key, value in filters.items():
                query = query.eq(key, value)
            query.execute()
        except SUPABASE_ERRORS as e:
            raise self._fail("delete from", table, e)
