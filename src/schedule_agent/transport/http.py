"""
REST HTTP client for the scheduling platform.
"""

from typing import Any, Optional

import httpx

from schedule_agent.errors import ScheduleAgentError

DEFAULT_BASE_URL = "http://localhost:8000"
USER_AGENT = "schedule-agent/0.1.0"


class HttpClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._client = httpx.AsyncClient(
            base_url=f"{self._base_url}/api",
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    def _auth_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    @staticmethod
    def _unwrap(json_data: Any) -> Any:
        """Unwrap the standard API response: { "status": "success", "data": <actual_data> }"""
        if isinstance(json_data, dict) and "status" in json_data and "data" in json_data:
            return json_data["data"]
        return json_data

    @staticmethod
    def _check(resp: httpx.Response) -> Any:
        if resp.status_code >= 400:
            raise ScheduleAgentError(
                "http_error",
                f"HTTP {resp.status_code}: {resp.text[:200]}",
                details={"status_code": resp.status_code},
            )
        if not resp.content:
            return None
        return HttpClient._unwrap(resp.json())

    async def get(self, path: str, params: Optional[dict[str, str]] = None) -> Any:
        resp = await self._client.get(path, params=params, headers=self._auth_headers())
        return self._check(resp)

    async def post(self, path: str, body: Optional[dict[str, Any]] = None) -> Any:
        resp = await self._client.post(path, json=body, headers=self._auth_headers())
        return self._check(resp)

    async def delete(self, path: str) -> Any:
        resp = await self._client.delete(path, headers=self._auth_headers())
        return self._check(resp)

    async def close(self) -> None:
        await self._client.aclose()
