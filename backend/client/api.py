from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class ApiClientError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class VpmsClient:
    """Thin async client for the VPMS REST API."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        *,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.token = token
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def __aenter__(self) -> "VpmsClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self) -> Dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, headers=self._headers(), **kwargs)
        except httpx.HTTPError as exc:
            raise ApiClientError(f"VPMS API unreachable ({method} {path}): {exc}") from exc
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            message = _error_message(exc.response)
            logger.debug("VPMS API error (%s %s): %s", method, path, message)
            raise ApiClientError(message, status_code=exc.response.status_code) from exc
        try:
            body = response.json()
        except ValueError as exc:
            raise ApiClientError("Unexpected response from VPMS API (non-JSON).", response.status_code) from exc
        return body.get("data") if isinstance(body, dict) else body

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        data = await self._request("POST", "/auth/login", json={"email": email, "password": password})
        self.token = data["token"]
        return data["user"]

    async def me(self) -> Dict[str, Any]:
        return await self._request("GET", "/auth/me")

    async def pending_visitor_count(self, resident_id: int) -> int:
        data = await self._request("GET", f"/visitors/pending-count/{resident_id}")
        return int(data["count"])

    async def pending_parcel_count(self, resident_id: int) -> int:
        data = await self._request("GET", f"/parcels/pending-count/{resident_id}")
        return int(data["count"])


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"VPMS API responded with {response.status_code}: {response.text}"
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"VPMS API responded with {response.status_code}"
