"""HTTP client for the logbook import backend.

Speaks the backend's JSON API:
- POST /import (multipart upload) -> ImportResult
- GET /api_key_type -> "none" | "default" | "personal"
- GET /flights -> list of flights with their content hashes
- DELETE /flights/delete?flight_id=N
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import aiofiles
import httpx
from pydantic import ValidationError

from logbook.core.config import settings
from logbook.core.logging import get_logger
from logbook.schemas.importer import (
    CredentialTier,
    FileHandle,
    FlightSummary,
    ImportOutcome,
    UploadedLog,
)
from logbook.services.exceptions import BackendUnavailableError

logger = get_logger(__name__)


class LogbookApiClient:
    """Import backend reached over HTTP.

    The client is created lazily and reused for the lifetime of the
    instance; call close() when done.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the API client.

        Args:
            base_url: Backend base URL (default from settings).
            timeout: Per-request timeout in seconds; None waits indefinitely.
            client: Optional preconfigured httpx client (used by tests).
        """
        self.base_url = (base_url or settings.backend_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.backend_timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                headers={"Accept": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        """Send a request and decode the JSON body.

        Raises:
            BackendUnavailableError: On transport errors or error statuses.
        """
        client = await self._get_client()
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("backend_timeout", method=method, url=url)
            raise BackendUnavailableError(f"Backend timed out: {e}") from e
        except httpx.HTTPError as e:
            logger.warning("backend_connection_error", method=method, url=url, error=str(e))
            raise BackendUnavailableError(f"Connection error: {e}") from e

        if response.status_code >= 400:
            detail = self._error_detail(response)
            logger.warning(
                "backend_http_error",
                method=method,
                url=url,
                status_code=response.status_code,
                detail=detail,
            )
            raise BackendUnavailableError(
                f"HTTP {response.status_code}: {detail}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise BackendUnavailableError(f"Invalid JSON from backend: {e}") from e

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(body, dict):
            return str(body.get("error") or body.get("message") or body)
        return str(body)

    async def import_log(self, file: FileHandle, *, skip_refresh: bool = True) -> ImportOutcome:
        """Upload and import one log file.

        skip_refresh is part of the backend contract; the HTTP API never
        refreshes listings on its own, so it is not sent.
        """
        name, content = await self._read_upload(file)
        payload = await self._request(
            "POST",
            "/import",
            files={"file": (name, content, "application/octet-stream")},
        )
        if not isinstance(payload, dict):
            raise BackendUnavailableError("Unexpected import response from backend")

        try:
            outcome = ImportOutcome.from_payload(payload)
        except ValidationError as e:
            logger.warning("backend_bad_import_payload", file_name=name, error=str(e))
            raise BackendUnavailableError(f"Malformed import response: {e}") from e
        logger.debug(
            "backend_import_result",
            file_name=name,
            status=outcome.status.value,
            flight_id=outcome.flight_id,
        )
        return outcome

    async def get_credential_tier(self) -> CredentialTier:
        """Fetch the configured credential type."""
        return CredentialTier.parse(await self._request("GET", "/api_key_type"))

    async def list_flights(self) -> list[FlightSummary]:
        """Fetch all imported flights."""
        payload = await self._request("GET", "/flights")
        if not isinstance(payload, list):
            raise BackendUnavailableError("Unexpected flight listing from backend")
        return [FlightSummary.model_validate(item) for item in payload]

    async def delete_flight(self, flight_id: int) -> bool:
        """Delete a flight by id."""
        result = await self._request(
            "DELETE", "/flights/delete", params={"flight_id": flight_id}
        )
        return bool(result)

    async def _read_upload(self, file: FileHandle) -> tuple[str, bytes]:
        if isinstance(file, UploadedLog):
            return file.name, file.content
        path = Path(file)
        async with aiofiles.open(path, "rb") as f:
            content = await f.read()
        return path.name, content
