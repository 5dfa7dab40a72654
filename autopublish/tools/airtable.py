"""
Async Airtable client used to mirror articles into a base table.

Uses ``httpx`` to call the Airtable REST API.  Every call returns a
:class:`~autopublish.models.SyncResult` instead of raising: the mirror is
best-effort and callers must handle both branches explicitly.  No retries
are attempted; a failed push is simply tried again on the next cycle.
"""

import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from autopublish.exceptions import MirrorSyncError
from autopublish.models import SyncResult

logger = logging.getLogger(__name__)


class AirtableClient:
    """Async Airtable REST client for creating records.

    Args:
        api_key: Personal access token (sent as a bearer token).
        base_id: Airtable base identifier (``app...``).
        table_name: Table name or id inside the base.
        base_url: API root, overridable for tests.
        timeout: Request timeout in seconds.
        transport: Optional ``httpx`` transport (tests inject a
            ``MockTransport``).

    Usage::

        client = AirtableClient(api_key, "appXYZ", "Articles")
        result = await client.create_record({"Name": "Hello"})
        if result.success:
            print(result.record_id)
    """

    BASE_URL: str = "https://api.airtable.com/v0"

    def __init__(
        self,
        api_key: str,
        base_id: str,
        table_name: str,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.base_id = base_id
        self.table_name = table_name
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout
        self._transport = transport

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def build_url(self) -> str:
        """Return the table endpoint, with the table name URL-encoded."""
        return f"{self.base_url}/{self.base_id}/{quote(self.table_name, safe='')}"

    def _auth_headers(self) -> Dict[str, str]:
        """Build authorization headers for API requests."""
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def _parse_record_id(body: str, status_code: Optional[int] = None) -> str:
        """Extract ``records[0].id`` from a create-records response body.

        Raises:
            MirrorSyncError: If the body is not JSON or carries no id.
        """
        try:
            data = json.loads(body)
        except ValueError as exc:
            raise MirrorSyncError(
                f"Airtable returned invalid JSON: {exc}", status_code=status_code
            ) from exc

        records = data.get("records") if isinstance(data, dict) else None
        if not records or not isinstance(records[0], dict) or not records[0].get("id"):
            raise MirrorSyncError(
                "Airtable push returned no record id", status_code=status_code
            )
        return records[0]["id"]

    # ------------------------------------------------------------------
    # Record creation
    # ------------------------------------------------------------------

    async def create_record(self, fields: Dict[str, Any]) -> SyncResult:
        """Create one record in the configured table.

        Args:
            fields: Airtable field name -> value mapping.

        Returns:
            ``SyncResult`` with ``record_id`` on success.  Non-2xx
            responses, transport errors and responses without a record id
            produce a failed result.
        """
        payload = {"records": [{"fields": fields}]}

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self.build_url(),
                    headers=self._auth_headers(),
                    json=payload,
                )
        except httpx.HTTPError as exc:
            logger.warning("[AIRTABLE] Request failed: %s", exc)
            return SyncResult.failed(f"Airtable request failed: {exc}")

        text = response.text
        if not response.is_success:
            return SyncResult.failed(
                f"Airtable push failed ({response.status_code}): {text}",
                status_code=response.status_code,
            )

        try:
            record_id = self._parse_record_id(text, response.status_code)
        except MirrorSyncError as exc:
            return SyncResult.failed(str(exc), status_code=exc.status_code)

        logger.debug("[AIRTABLE] Created record %s in %s", record_id, self.table_name)
        return SyncResult.ok(record_id=record_id, status_code=response.status_code)
