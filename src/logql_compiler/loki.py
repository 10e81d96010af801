"""Async Loki client for autocomplete value lookups.

Failures never propagate: an endpoint missing from the connected Loki
version degrades to an empty list with a warning, any other HTTP or
transport failure degrades to an empty list with an error log.
"""

from datetime import datetime
from typing import Iterable, Optional

import httpx

from logql_compiler.config import settings
from logql_compiler.models.filters import Filter
from logql_compiler.observability import get_tracer
from logql_compiler.observability.logging import get_logger
from logql_compiler.query import render_filter

logger = get_logger(__name__)
tracer = get_tracer(__name__)

# Status codes Loki returns for endpoints it does not implement
UNSUPPORTED_ENDPOINT_STATUS = {404, 405, 501}


def build_stream_selector(filters: Iterable[Filter]) -> str:
    """Render already-joined filters as ``{k="v", ...}``, or "" when empty."""
    matchers = [render_filter(f) for f in filters]
    if not matchers:
        return ""
    return "{" + ", ".join(matchers) + "}"


def to_nanoseconds(value: datetime) -> int:
    return int(value.timestamp() * 1e9)


class LokiClient:
    """Thin wrapper around one ``httpx.AsyncClient`` bound to a Loki URL."""

    def __init__(
        self,
        base_url: str = settings.loki_url,
        timeout: float = settings.loki_timeout,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=transport
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "LokiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def ready(self) -> bool:
        try:
            resp = await self._client.get("/ready")
        except httpx.HTTPError as e:
            logger.warning(f"Loki readiness check failed: {e}")
            return False
        return resp.status_code == 200

    async def _get_json(self, path: str, params: dict, endpoint: str) -> Optional[dict]:
        try:
            resp = await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            logger.error(
                f"Loki request failed: {e}",
                extra={"extra_fields": {"endpoint": endpoint, "path": path}},
            )
            return None

        if resp.status_code in UNSUPPORTED_ENDPOINT_STATUS:
            logger.warning(
                "Loki endpoint not supported by the connected Loki version",
                extra={
                    "extra_fields": {
                        "endpoint": endpoint,
                        "status_code": resp.status_code,
                    }
                },
            )
            return None

        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Loki request failed: {e}",
                extra={"extra_fields": {"endpoint": endpoint, "path": path}},
            )
            return None

        try:
            data = resp.json()
        except ValueError as e:
            logger.error(
                f"Loki returned a non-JSON body: {e}",
                extra={"extra_fields": {"endpoint": endpoint, "path": path}},
            )
            return None
        if not isinstance(data, dict):
            logger.error(
                "Loki returned an unexpected JSON body",
                extra={"extra_fields": {"endpoint": endpoint, "path": path}},
            )
            return None
        return data

    async def fetch_label_values(
        self,
        key: str,
        filters: Iterable[Filter] = (),
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[str]:
        """Fetch values for a stream label, narrowed by the given filters."""
        with tracer.start_as_current_span("fetch_label_values") as span:
            params: dict = {}
            selector = build_stream_selector(filters)
            if selector:
                params["query"] = selector
            if start is not None:
                params["start"] = to_nanoseconds(start)
            if end is not None:
                params["end"] = to_nanoseconds(end)

            span.set_attribute("loki.label", key)
            span.set_attribute("logql.query", selector)

            data = await self._get_json(
                f"/loki/api/v1/label/{key}/values", params, endpoint="label_values"
            )
            values = (data or {}).get("data")
            if not isinstance(values, list):
                values = []
            span.set_attribute("loki.values_count", len(values))

            logger.info(
                "Fetched label values",
                extra={"extra_fields": {"key": key, "count": len(values)}},
            )
            return values

    async def fetch_detected_field_values(
        self,
        key: str,
        expr: str,
        limit: int = settings.tag_values_limit,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[str]:
        """Fetch values for a detected field (requires Loki 3.3 or newer)."""
        with tracer.start_as_current_span("fetch_detected_field_values") as span:
            params: dict = {"query": expr, "limit": limit}
            if start is not None:
                params["start"] = to_nanoseconds(start)
            if end is not None:
                params["end"] = to_nanoseconds(end)

            span.set_attribute("loki.field", key)
            span.set_attribute("logql.query", expr)

            data = await self._get_json(
                f"/loki/api/v1/detected_field/{key}/values",
                params,
                endpoint="detected_field_values",
            )
            values = (data or {}).get("values")
            if not isinstance(values, list):
                values = []
            span.set_attribute("loki.values_count", len(values))

            logger.info(
                "Fetched detected field values",
                extra={"extra_fields": {"key": key, "count": len(values)}},
            )
            return values
