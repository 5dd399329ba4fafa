"""Hosted backend store for time entries.

Talks to a PostgREST-style REST API (as exposed by Supabase) for the
``time_entries`` and ``tasks`` tables, and to its auth endpoint for the
signed-in user.
"""

import logging
from datetime import datetime, timezone
from typing import Any

import httpx
from pydantic import ValidationError

from taskery.time_tracking.errors import NotFound, StoreError, Unauthenticated
from taskery.time_tracking.store import TimeEntryStore
from taskery.time_tracking.types import TaskRef, TimeEntry

logger = logging.getLogger(__name__)

ENTRY_COLUMNS = "id,task_id,user_id,started_at,ended_at,duration"


def _iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat()


class RestTimeEntryStore(TimeEntryStore):
    """Time entry store backed by a hosted REST API.

    Example:
        store = RestTimeEntryStore(
            base_url="https://xyz.supabase.co",
            api_key="public-anon-key",
            access_token=session_token,
        )
        entries = await store.list_entries_for_user(user_id)
        await store.aclose()
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        access_token: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            base_url: Backend base URL
            api_key: Public API key sent with every request
            access_token: Signed-in user's access token (empty when signed out)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used in tests)
        """
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self._user_id: str | None = None
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers=self._get_headers(api_key),
            transport=transport,
        )

    def _get_headers(self, api_key: str) -> dict[str, str]:
        """Get headers for backend requests."""
        bearer = self.access_token or api_key
        return {
            "apikey": api_key,
            "Authorization": f"Bearer {bearer}",
            "Accept": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> Any:
        """Send a request and decode the JSON body.

        Raises:
            Unauthenticated: On 401/403 responses
            StoreError: On any other HTTP or connection failure
        """
        headers = {"Prefer": prefer} if prefer else None
        try:
            response = await self._client.request(
                method, path, params=params, json=json, headers=headers
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status in (401, 403):
                raise Unauthenticated() from e
            logger.error(f"Backend {method} {path} failed: HTTP {status}")
            raise StoreError(f"HTTP {status}: {e.response.text[:200]}") from e
        except httpx.RequestError as e:
            logger.error(f"Backend {method} {path} failed: {e}")
            raise StoreError(f"Connection error: {e}") from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Backend {method} {path} returned invalid JSON")
            raise StoreError(f"Invalid response body: {e}") from e

    @staticmethod
    def _entry(row: dict[str, Any]) -> TimeEntry:
        try:
            return TimeEntry.model_validate(row)
        except ValidationError as e:
            raise StoreError(f"Malformed time entry: {e}") from e

    async def get_user_id(self) -> str | None:
        if not self.access_token:
            return None
        if self._user_id is None:
            try:
                user = await self._request("GET", "/auth/v1/user")
            except Unauthenticated:
                return None
            self._user_id = (user or {}).get("id")
        return self._user_id

    async def create_open_entry(self, task_id: str, user_id: str, started_at: datetime) -> TimeEntry:
        rows = await self._request(
            "POST",
            "/rest/v1/time_entries",
            params={"select": ENTRY_COLUMNS},
            json={"task_id": task_id, "user_id": user_id, "started_at": _iso(started_at)},
            prefer="return=representation",
        )
        if not rows:
            raise StoreError("Failed to start time entry")
        return self._entry(rows[0])

    async def close_entry(self, entry_id: str, ended_at: datetime, duration: int) -> None:
        rows = await self._request(
            "PATCH",
            "/rest/v1/time_entries",
            params={"id": f"eq.{entry_id}", "select": "id"},
            json={"ended_at": _iso(ended_at), "duration": duration},
            prefer="return=representation",
        )
        if not rows:
            raise NotFound(entry_id)

    async def find_open_entries_for_user(self, user_id: str) -> list[TimeEntry]:
        rows = await self._request(
            "GET",
            "/rest/v1/time_entries",
            params={
                "select": ENTRY_COLUMNS,
                "user_id": f"eq.{user_id}",
                "ended_at": "is.null",
                "order": "started_at.desc",
            },
        )
        return [self._entry(row) for row in rows or []]

    async def sum_durations_for_task(self, task_id: str) -> int:
        rows = await self._request(
            "GET",
            "/rest/v1/time_entries",
            params={
                "select": "duration",
                "task_id": f"eq.{task_id}",
                "duration": "not.is.null",
            },
        )
        return sum(row.get("duration") or 0 for row in rows or [])

    async def insert_closed_entry(
        self,
        task_id: str,
        user_id: str,
        started_at: datetime,
        ended_at: datetime,
        duration: int,
    ) -> TimeEntry:
        rows = await self._request(
            "POST",
            "/rest/v1/time_entries",
            params={"select": ENTRY_COLUMNS},
            json={
                "task_id": task_id,
                "user_id": user_id,
                "started_at": _iso(started_at),
                "ended_at": _iso(ended_at),
                "duration": duration,
            },
            prefer="return=representation",
        )
        if not rows:
            raise StoreError("Failed to add manual time entry")
        return self._entry(rows[0])

    async def update_duration(self, entry_id: str, duration: int) -> None:
        rows = await self._request(
            "PATCH",
            "/rest/v1/time_entries",
            params={"id": f"eq.{entry_id}", "select": "id"},
            json={"duration": duration},
            prefer="return=representation",
        )
        if not rows:
            raise NotFound(entry_id)

    async def get_task(self, task_id: str) -> TaskRef | None:
        rows = await self._request(
            "GET",
            "/rest/v1/tasks",
            params={"select": "id,title,project_id", "id": f"eq.{task_id}", "limit": 1},
        )
        if not rows:
            return None
        try:
            return TaskRef.model_validate(rows[0])
        except ValidationError as e:
            raise StoreError(f"Malformed task: {e}") from e

    async def list_entries_for_task(self, task_id: str) -> list[TimeEntry]:
        rows = await self._request(
            "GET",
            "/rest/v1/time_entries",
            params={
                "select": ENTRY_COLUMNS,
                "task_id": f"eq.{task_id}",
                "order": "started_at.desc",
            },
        )
        return [self._entry(row) for row in rows or []]

    async def list_entries_for_user(self, user_id: str, limit: int = 100) -> list[TimeEntry]:
        rows = await self._request(
            "GET",
            "/rest/v1/time_entries",
            params={
                "select": ENTRY_COLUMNS,
                "user_id": f"eq.{user_id}",
                "order": "started_at.desc",
                "limit": limit,
            },
        )
        return [self._entry(row) for row in rows or []]

    async def aclose(self) -> None:
        await self._client.aclose()
