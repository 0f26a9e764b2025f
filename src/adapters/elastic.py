"""Adaptador Elasticsearch (API REST sobre httpx).

Responsabilidad:
- Crear el índice k-NN (`dense_vector`, similitud coseno) si no existe.
- Indexar documentos y lanzar búsquedas k-NN.
- Traducir fallos de red y respuestas no 2xx a `SearchBackendError`.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

import httpx

from adapters.http_client import build_async_client
from core.config import AppSettings
from core.domain.models import IndexInfo
from core.errors import SearchBackendError
from core.log import get_logger

logger = get_logger(__name__)

_BODY_PREVIEW_CHARS = 500


def index_definition(dims: int) -> dict[str, Any]:
    """Settings + mappings del índice k-NN."""

    return {
        "settings": {"index": {"knn": True}},
        "mappings": {
            "properties": {
                "vector": {"type": "dense_vector", "dims": dims, "index": True, "similarity": "cosine"},
                "content": {"type": "text"},
            }
        },
    }


def knn_query(vector: list[float], *, k: int, num_candidates: int) -> dict[str, Any]:
    return {
        "knn": {
            "field": "vector",
            "query_vector": vector,
            "k": k,
            "num_candidates": num_candidates,
        },
        "_source": {"includes": ["content"]},
    }


class ElasticsearchIndex:
    """Implementa `core.interfaces.VectorIndex`."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        elastic_url: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        settings = settings or AppSettings()
        self._base_url = (elastic_url or settings.elastic_url).rstrip("/")
        self._client = client or build_async_client(settings, base_url=self._base_url)

    @property
    def base_url(self) -> str:
        return self._base_url

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise SearchBackendError(f"{method} {self._base_url}{path} failed: {exc}") from exc
        logger.debug("%s %s -> %d", method, path, response.status_code)
        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response, action: str) -> None:
        if response.is_success:
            return
        body = response.text[:_BODY_PREVIEW_CHARS]
        raise SearchBackendError(f"{action} failed: {body}", status_code=response.status_code, body=body)

    async def list_indices(self) -> list[IndexInfo]:
        response = await self._request("GET", "/_cat/indices", params={"format": "json"})
        self._raise_for_status(response, "list indices")
        return [IndexInfo.model_validate(row) for row in response.json()]

    async def index_exists(self, name: str) -> bool:
        response = await self._request("HEAD", f"/{name}")
        if response.status_code == 404:
            return False
        self._raise_for_status(response, f"check index {name}")
        return True

    async def ensure_index(self, name: str, *, dims: int) -> bool:
        if await self.index_exists(name):
            return False

        response = await self._request("PUT", f"/{name}", json=index_definition(dims))
        # Otro proceso pudo crearlo entre el HEAD y el PUT.
        if response.status_code == 400 and "resource_already_exists_exception" in response.text:
            return False
        self._raise_for_status(response, f"create index {name}")
        return True

    async def index_document(self, name: str, *, doc_id: UUID | str, vector: list[float], content: str) -> None:
        response = await self._request(
            "PUT",
            f"/{name}/_doc/{doc_id}",
            json={"vector": vector, "content": content},
        )
        self._raise_for_status(response, f"index document {doc_id}")

    async def knn_search(
        self,
        name: str,
        *,
        vector: list[float],
        k: int,
        num_candidates: int,
    ) -> dict[str, Any]:
        response = await self._request(
            "POST",
            f"/{name}/_search",
            json=knn_query(vector, k=k, num_candidates=num_candidates),
        )
        self._raise_for_status(response, f"search {name}")
        return response.json()

    async def ping(self) -> str:
        """Versión del clúster (GET /)."""

        response = await self._request("GET", "/")
        self._raise_for_status(response, "ping")
        payload = response.json()
        version = (payload.get("version") or {}).get("number")
        return f"{payload.get('cluster_name', '?')} (v{version})" if version else str(payload.get("cluster_name", "ok"))

    async def aclose(self) -> None:
        await self._client.aclose()
