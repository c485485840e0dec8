"""DataForSEO SERP transport (task_post / task_get/html).

Paid API, basic auth.
- Submit: POST {base}/serp/google/organic/task_post
- Fetch:  GET  {base}/serp/google/organic/task_get/html/{task_id}

The envelope carries its own status codes on top of HTTP status; this module
maps both onto the provider-agnostic SubmitStatus / FetchStatus.
"""

from __future__ import annotations

from typing import Any

import httpx
import orjson

from verdict.config import get_settings
from verdict.core.constants import (
    DATAFORSEO_STATUS_OK,
    DATAFORSEO_STATUS_RATE_LIMITED,
    DATAFORSEO_STATUS_TASK_CREATED,
    DATAFORSEO_STATUS_TASK_HANDED,
    DATAFORSEO_STATUS_TASK_IN_QUEUE,
)
from verdict.core.logging import get_logger
from verdict.providers.search.models import (
    FetchResponse,
    FetchStatus,
    SubmitResponse,
    SubmitStatus,
)

logger = get_logger(__name__)

_NOT_READY_CODES = {DATAFORSEO_STATUS_TASK_HANDED, DATAFORSEO_STATUS_TASK_IN_QUEUE}


class DataForSEOTransport:
    """Task-based Google SERP transport backed by DataForSEO.

    Usage:
        transport = DataForSEOTransport(login="...", password="...")
        submitted = await transport.submit("Oppenheimer 2023 movie")
        fetched = await transport.fetch(submitted.handle)
        await transport.close()
    """

    def __init__(
        self,
        login: str,
        password: str,
        base_url: str | None = None,
        location_code: int | None = None,
        language_code: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        settings = get_settings()
        self._auth = httpx.BasicAuth(login, password)
        self._base_url = (base_url or settings.dataforseo_base_url).rstrip("/")
        self._location_code = location_code or settings.dataforseo_location_code
        self._language_code = language_code or settings.dataforseo_language_code
        self._http_client = http_client

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=30.0,
                auth=self._auth,
                headers={"Content-Type": "application/json"},
            )
        return self._http_client

    async def _request(self, method: str, url: str, **kwargs: Any) -> tuple[int, dict[str, Any]]:
        client = self._get_http_client()
        resp = await client.request(method, url, **kwargs)
        if resp.status_code == 429:
            return 429, {}
        resp.raise_for_status()
        data = orjson.loads(resp.content)
        return resp.status_code, data if isinstance(data, dict) else {}

    async def submit(self, query: str) -> SubmitResponse:
        payload = [
            {
                "language_code": self._language_code,
                "location_code": self._location_code,
                "keyword": query,
                "device": "desktop",
                "os": "windows",
            }
        ]
        try:
            http_status, data = await self._request(
                "POST",
                f"{self._base_url}/serp/google/organic/task_post",
                content=orjson.dumps(payload),
            )
        except (httpx.HTTPError, orjson.JSONDecodeError) as e:
            logger.warning("DataForSEO submit failed", query=query, error=str(e))
            return SubmitResponse(status=SubmitStatus.rejected, detail=str(e))

        if http_status == 429 or data.get("status_code") == DATAFORSEO_STATUS_RATE_LIMITED:
            return SubmitResponse(status=SubmitStatus.throttled)

        task = _first_task(data)
        if data.get("status_code") != DATAFORSEO_STATUS_OK or task is None:
            return SubmitResponse(status=SubmitStatus.rejected, detail=data.get("status_message"))
        if task.get("status_code") == DATAFORSEO_STATUS_RATE_LIMITED:
            return SubmitResponse(status=SubmitStatus.throttled)
        if task.get("status_code") != DATAFORSEO_STATUS_TASK_CREATED or not task.get("id"):
            return SubmitResponse(status=SubmitStatus.rejected, detail=task.get("status_message"))

        return SubmitResponse(status=SubmitStatus.accepted, handle=str(task["id"]))

    async def fetch(self, handle: str) -> FetchResponse:
        try:
            http_status, data = await self._request(
                "GET",
                f"{self._base_url}/serp/google/organic/task_get/html/{handle}",
            )
        except (httpx.HTTPError, orjson.JSONDecodeError) as e:
            logger.warning("DataForSEO fetch failed", handle=handle, error=str(e))
            return FetchResponse(status=FetchStatus.rejected, detail=str(e))

        if http_status == 429 or data.get("status_code") == DATAFORSEO_STATUS_RATE_LIMITED:
            return FetchResponse(status=FetchStatus.throttled)
        if data.get("status_code") != DATAFORSEO_STATUS_OK:
            return FetchResponse(status=FetchStatus.rejected, detail=data.get("status_message"))

        task = _first_task(data)
        if task is None:
            return FetchResponse(status=FetchStatus.rejected, detail="no task in response")

        task_status = task.get("status_code")
        if task_status in _NOT_READY_CODES:
            return FetchResponse(status=FetchStatus.not_ready, detail=task.get("status_message"))
        if task_status == DATAFORSEO_STATUS_RATE_LIMITED:
            return FetchResponse(status=FetchStatus.throttled)
        if task_status != DATAFORSEO_STATUS_OK:
            return FetchResponse(status=FetchStatus.rejected, detail=task.get("status_message"))

        html = _first_html(task)
        if not html:
            return FetchResponse(status=FetchStatus.rejected, detail="empty html")
        return FetchResponse(status=FetchStatus.content, content=html)

    async def close(self) -> None:
        """Clean up resources."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
        logger.debug("DataForSEOTransport closed")


def _first_task(data: dict[str, Any]) -> dict[str, Any] | None:
    tasks = data.get("tasks") or []
    if not tasks or not isinstance(tasks[0], dict):
        return None
    return tasks[0]


def _first_html(task: dict[str, Any]) -> str | None:
    """Pull tasks[0].result[0].items[0].html out of a task_get/html task."""
    results = task.get("result") or []
    if not results:
        return None
    items = (results[0] or {}).get("items") or []
    if not items:
        return None
    html = (items[0] or {}).get("html")
    return html if isinstance(html, str) else None
