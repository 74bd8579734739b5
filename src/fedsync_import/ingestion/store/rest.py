"""
REST Content Store.

httpx-based client for a collection REST API of the shape:

    GET    /api/{collection}?where[field][equals]=value  -> {"docs": [...]}
    POST   /api/{collection}                             -> {"doc": {...}}
    PATCH  /api/{collection}/{id}                        -> {"doc": {...}}

Transient failures (connection errors, 408/429/5xx) of GET and PATCH calls
are retried with exponential backoff. A POST is sent once: a create whose
response was lost may already be stored.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import httpx

from fedsync_import.errors import ContentStoreError
from fedsync_import.ingestion.resilience import RetryPolicy, retry_async
from fedsync_import.ingestion.store.base import Record

logger = logging.getLogger(__name__)


@dataclass
class RestStoreConfig:
    """Configuration for the REST content store."""

    base_url: str
    api_key: Optional[str] = None
    api_prefix: str = "/api"
    health_path: str = "/api/health"
    request_timeout: float = 30.0
    find_limit: int = 10
    headers: Dict[str, str] = field(default_factory=dict)
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    # Only idempotent methods are re-sent
    retry_methods: Tuple[str, ...] = ("GET", "PATCH")


class RestContentStore:
    """
    Content store backed by a REST API.

    One ``httpx.AsyncClient`` is shared by all tasks; httpx clients are safe
    for concurrent requests.
    """

    def __init__(self, config: RestStoreConfig, client: Optional[httpx.AsyncClient] = None):
        """
        Initialize the store.

        Args:
            config: RestStoreConfig with endpoint and retry settings
            client: Pre-built client (tests pass one with a mock transport)
        """
        self.config = config
        self._client = client

    @classmethod
    def from_settings(cls, settings) -> "RestContentStore":
        api_key = settings.STORE_API_KEY.get_secret_value() if settings.STORE_API_KEY else None
        return cls(
            RestStoreConfig(
                base_url=settings.STORE_URL,
                api_key=api_key,
                request_timeout=settings.ITEM_TIMEOUT_S,
                retry=RetryPolicy.from_settings(settings),
            )
        )

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None:
            headers = {
                "Accept": "application/json",
                "Content-Type": "application/json",
                **self.config.headers,
            }
            if self.config.api_key:
                headers["Authorization"] = f"Bearer {self.config.api_key}"
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                headers=headers,
                timeout=self.config.request_timeout,
            )
        return self._client

    def _collection_path(self, collection: str, record_id: Any = None) -> str:
        path = f"{self.config.api_prefix}/{collection}"
        if record_id is not None:
            path = f"{path}/{record_id}"
        return path

    async def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        client = self._get_client()

        async def _send() -> Dict[str, Any]:
            try:
                response = await client.request(method, path, **kwargs)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                raise ContentStoreError(
                    f"{method} {path} failed with HTTP {status}",
                    status_code=status,
                    retryable=self.config.retry.should_retry_status(status),
                    details={"body": e.response.text[:500]},
                ) from e
            except httpx.TransportError as e:
                raise ContentStoreError(
                    f"{method} {path} failed: {e}", retryable=True
                ) from e
            if not response.content:
                return {}
            try:
                return response.json()
            except ValueError as e:
                raise ContentStoreError(f"{method} {path} returned invalid JSON") from e

        if method.upper() not in self.config.retry_methods:
            return await _send()
        return await retry_async(_send, self.config.retry, description=f"{method} {path}")

    async def connect(self) -> None:
        """Check the API is reachable."""
        await self._request("GET", self.config.health_path)
        logger.info(f"Connected to content store at {self.config.base_url}")

    async def close(self) -> None:
        """Close async HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def find(self, collection: str, where: Dict[str, Any]) -> List[Record]:
        params = {f"where[{k}][equals]": v for k, v in where.items()}
        params["limit"] = self.config.find_limit
        payload = await self._request("GET", self._collection_path(collection), params=params)
        docs = payload.get("docs", [])
        return docs if isinstance(docs, list) else []

    async def create(self, collection: str, data: Record) -> Record:
        payload = await self._request("POST", self._collection_path(collection), json=data)
        return payload.get("doc", payload)

    async def update(self, collection: str, record_id: Any, data: Record) -> Record:
        payload = await self._request(
            "PATCH", self._collection_path(collection, record_id), json=data
        )
        return payload.get("doc", payload)
