"""
Supabase meal record store.

IMealRecordStore over the Supabase REST (PostgREST) API, table
``meal_logs``.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import aiohttp
import structlog
from pydantic import ValidationError as PydanticValidationError

from nutricoach.domain.nutrition.models import MealRecord, NewMealRecord
from nutricoach.domain.shared.errors import PersistenceError
from nutricoach.domain.shared.value_objects import UserId

logger = structlog.get_logger(__name__)


class SupabaseMealRecordStore:
    """Supabase REST record store."""

    TABLE = "meal_logs"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        access_token: Optional[str] = None,
        timeout_seconds: int = 10,
        max_retries: int = 3,
    ) -> None:
        """Initialize store.

        Args:
            base_url: Project URL (https://<ref>.supabase.co)
            api_key: Anon key
            access_token: Signed-in user's JWT; anon key is used if None
            timeout_seconds: Request timeout
            max_retries: Max attempts for reads
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.access_token = access_token
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "SupabaseMealRecordStore":
        """Async context manager entry."""
        self._get_session()
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={
                    "apikey": self.api_key,
                    "Authorization": f"Bearer {self.access_token or self.api_key}",
                    "Content-Type": "application/json",
                }
            )
        return self._session

    @property
    def _table_url(self) -> str:
        return f"{self.base_url}/rest/v1/{self.TABLE}"

    async def create_meal_record(self, record: NewMealRecord) -> MealRecord:
        """Insert a record and return the stored row.

        Raises:
            PersistenceError: On HTTP/network failure or unexpected payload
        """
        payload = record.model_dump(mode="json")
        rows = await self._request(
            "POST",
            self._table_url,
            json=[payload],
            headers={"Prefer": "return=representation"},
        )

        if not isinstance(rows, list) or not rows:
            raise PersistenceError("Supabase insert returned no row")

        stored = self._to_record(rows[0])
        logger.info("Meal record created", record_id=stored.id, meal_name=stored.meal_name)
        return stored

    async def delete_meal_record(self, record_id: str) -> None:
        """Delete a record by id.

        Raises:
            PersistenceError: On HTTP/network failure
        """
        await self._request("DELETE", self._table_url, params=[("id", f"eq.{record_id}")])
        logger.info("Meal record deleted", record_id=record_id)

    async def list_meal_records(
        self,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[MealRecord]:
        """List a user's records in [start, end), newest logged first.

        Raises:
            PersistenceError: After all retries fail
        """
        params: List[Tuple[str, str]] = [
            ("select", "*"),
            ("user_id", f"eq.{user_id}"),
            ("order", "logged_at.desc"),
        ]
        if start is not None:
            params.append(("logged_at", f"gte.{start.isoformat()}"))
        if end is not None:
            params.append(("logged_at", f"lt.{end.isoformat()}"))

        rows = await self._request("GET", self._table_url, params=params, attempts=self.max_retries)
        return [self._to_record(row) for row in rows or []]

    async def get_current_user(self) -> UserId:
        """Identity behind the access token, or anonymous."""
        if not self.access_token:
            return UserId.anonymous()

        try:
            data = await self._request("GET", f"{self.base_url}/auth/v1/user")
        except PersistenceError as e:
            logger.warning("Supabase user lookup failed", error=str(e))
            return UserId.anonymous()

        user_id = data.get("id") if isinstance(data, dict) else None
        return UserId.from_string(user_id) if user_id else UserId.anonymous()

    async def _request(
        self,
        method: str,
        url: str,
        params: Optional[List[Tuple[str, str]]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
        attempts: int = 1,
    ) -> Any:
        """Send one PostgREST request.

        Timeouts, transport errors and 5xx responses are retried with
        exponential backoff while attempts remain; 4xx responses fail
        immediately.

        Raises:
            PersistenceError: On HTTP/network failure or a non-JSON body
        """
        session = self._get_session()

        for attempt in range(attempts):
            last = attempt == attempts - 1
            try:
                async with session.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                ) as response:
                    if response.status < 500 or last:
                        return await self._read(method, response)
                    reason = f"HTTP {response.status}"
            except asyncio.TimeoutError as e:
                if last:
                    raise PersistenceError(f"Supabase {method} timed out") from e
                reason = "timeout"
            except aiohttp.ClientError as e:
                if last:
                    raise PersistenceError(f"Supabase {method} failed: {e}") from e
                reason = str(e)

            wait = 2**attempt
            logger.warning(
                f"Supabase {method} failed, retrying in {wait}s",
                attempt=attempt + 1,
                reason=reason,
            )
            await asyncio.sleep(wait)

        raise PersistenceError(f"Supabase {method} was not attempted")

    async def _read(self, method: str, response: aiohttp.ClientResponse) -> Any:
        if response.status >= 400:
            body = await response.text()
            raise PersistenceError(
                f"Supabase {method} {self.TABLE} failed: {response.status} {body[:200]}"
            )
        if response.status == 204:
            return None
        try:
            return await response.json(content_type=None)
        except ValueError as e:
            raise PersistenceError(
                f"Supabase {method} {self.TABLE} returned a non-JSON body"
            ) from e

    @staticmethod
    def _to_record(row: Dict[str, Any]) -> MealRecord:
        try:
            return MealRecord.model_validate(row)
        except PydanticValidationError as e:
            raise PersistenceError(f"Unexpected meal_logs row: {e.error_count()} errors") from e
