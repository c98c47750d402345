"""HTTP client for the hosted Meilisearch index."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence
from urllib.parse import quote

import httpx
import orjson
from httpx import HTTPError

from gunpla_search.app.services.search_pipeline.exceptions import (
    IndexConfigurationError,
    SearchIndexError,
)
from gunpla_search.app.services.search_pipeline.executor import IndexSearchResponse

logger = logging.getLogger(__name__)


def normalize_host_url(raw: str | None) -> str:
    """Prefix ``https://`` when the configured host omits a scheme."""

    host = (raw or "").strip()
    if not host:
        return ""
    if not host.startswith("http"):
        host = f"https://{host}"
    return host.rstrip("/")


class MeiliSearchClient:
    """Thin async wrapper over the Meilisearch REST API."""

    def __init__(
        self,
        host_url: str | None,
        api_key: str | None,
        *,
        timeout: float | None = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        host = normalize_host_url(host_url)
        key = (api_key or "").strip()
        if not host or not key:
            raise IndexConfigurationError(
                "Missing required search index configuration: set MEILI_HOST_URL "
                "and MEILI_MASTER_KEY (or GUNPLA_MEILI__HOST_URL and "
                "GUNPLA_MEILI__MASTER_KEY)."
            )
        self.host_url = host
        self._client = httpx.AsyncClient(
            base_url=host,
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {key}",
                "Content-Type": "application/json",
            },
            transport=transport or httpx.AsyncHTTPTransport(retries=0),
        )

    @classmethod
    def from_settings(
        cls,
        settings: Any,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "MeiliSearchClient":
        return cls(
            settings.get("MEILI.host_url"),
            settings.get("MEILI.master_key"),
            timeout=float(settings.get("MEILI.timeout", 10.0)),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        payload: Any = None,
        params: Mapping[str, str] | None = None,
    ) -> Any:
        content = orjson.dumps(payload) if payload is not None else None
        try:
            response = await self._client.request(
                method, path, content=content, params=params
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            detail = exc.response.text.strip() or exc.response.reason_phrase
            raise SearchIndexError(
                f"Search index returned {status} for {method} {path}: {detail}",
                status_code=status,
            ) from exc
        except HTTPError as exc:
            raise SearchIndexError(
                f"Search index request {method} {path} failed: {exc}"
            ) from exc

        if not response.content:
            return None
        try:
            return orjson.loads(response.content)
        except orjson.JSONDecodeError as exc:
            raise SearchIndexError(
                f"Search index returned malformed JSON for {method} {path}"
            ) from exc

    @staticmethod
    def _index_path(collection: str, suffix: str = "") -> str:
        return f"/indexes/{quote(collection, safe='')}{suffix}"

    async def search(
        self,
        collection: str,
        query: str,
        *,
        filter: str | None = None,
        sort: Sequence[str] | None = None,
        limit: int = 20,
        offset: int = 0,
        attributes_to_retrieve: Sequence[str] | None = None,
    ) -> IndexSearchResponse:
        payload: dict[str, Any] = {
            "q": query,
            "limit": int(limit),
            "offset": int(offset),
        }
        if filter:
            payload["filter"] = filter
        if sort:
            payload["sort"] = list(sort)
        if attributes_to_retrieve:
            payload["attributesToRetrieve"] = list(attributes_to_retrieve)

        logger.debug(
            "Index search on %s q=%r limit=%d offset=%d filter=%s",
            collection,
            query,
            limit,
            offset,
            filter,
        )
        body = await self._request(
            "POST", self._index_path(collection, "/search"), payload
        )
        if not isinstance(body, Mapping):
            raise SearchIndexError(f"Unexpected search response from {collection}")

        hits = [hit for hit in body.get("hits") or [] if isinstance(hit, dict)]
        total = body.get("estimatedTotalHits")
        if total is None:
            total = body.get("totalHits", 0)
        return IndexSearchResponse(hits=hits, estimated_total_hits=int(total or 0))

    async def add_documents(
        self,
        collection: str,
        documents: Sequence[Mapping[str, Any]],
        primary_key: str = "id",
    ) -> dict[str, Any]:
        """Enqueue ``documents`` for indexing and return the task summary."""

        body = await self._request(
            "POST",
            self._index_path(collection, "/documents"),
            list(documents),
            params={"primaryKey": primary_key},
        )
        return dict(body or {})

    async def delete_all_documents(self, collection: str) -> dict[str, Any]:
        body = await self._request(
            "DELETE", self._index_path(collection, "/documents")
        )
        return dict(body or {})

    async def update_settings(
        self, collection: str, index_settings: Mapping[str, Any]
    ) -> dict[str, Any]:
        body = await self._request(
            "PATCH", self._index_path(collection, "/settings"), dict(index_settings)
        )
        return dict(body or {})


__all__ = [
    "MeiliSearchClient",
    "normalize_host_url",
]
