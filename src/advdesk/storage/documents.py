"""
Document store backends: in-memory and Redis.

Documents are JSON objects addressed by slash-separated paths such as
``tenants/{tenant}/petitions/{id}``. A collection is the parent path of its
documents and lists them in insertion order.
"""

import asyncio
import copy
import json
from functools import lru_cache
from typing import Any, Callable, Protocol

import structlog
from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError

from advdesk.config import get_settings
from advdesk.errors import NotFound

logger = structlog.get_logger(__name__)

Document = dict[str, Any]
TransactFn = Callable[[Document | None], Document]


def parent_of(path: str) -> str:
    return path.rsplit("/", 1)[0] if "/" in path else ""


class DocumentStore(Protocol):
    """Protocol for document storage backends."""

    async def get(self, path: str) -> Document | None: ...
    async def set(self, path: str, data: Document) -> None: ...
    async def update(self, path: str, changes: Document) -> Document: ...
    async def delete(self, path: str) -> None: ...
    async def list(self, collection: str) -> list[tuple[str, Document]]: ...
    async def transact(self, path: str, fn: TransactFn) -> Document: ...


class InMemoryDocumentStore:
    """In-process document store used for development and tests.

    `transact` holds a single lock, so concurrent read-modify-write cycles
    on the same event loop are serialized.
    """

    def __init__(self):
        self._docs: dict[str, Document] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._docs)

    async def get(self, path: str) -> Document | None:
        doc = self._docs.get(path)
        return copy.deepcopy(doc) if doc is not None else None

    async def set(self, path: str, data: Document) -> None:
        self._docs[path] = copy.deepcopy(data)

    async def update(self, path: str, changes: Document) -> Document:
        if path not in self._docs:
            raise NotFound(f"Documento não encontrado: {path}")
        self._docs[path].update(copy.deepcopy(changes))
        return copy.deepcopy(self._docs[path])

    async def delete(self, path: str) -> None:
        self._docs.pop(path, None)

    async def list(self, collection: str) -> list[tuple[str, Document]]:
        return [
            (path.rsplit("/", 1)[-1], copy.deepcopy(doc))
            for path, doc in self._docs.items()
            if parent_of(path) == collection
        ]

    async def transact(self, path: str, fn: TransactFn) -> Document:
        async with self._lock:
            current = self._docs.get(path)
            updated = fn(copy.deepcopy(current) if current is not None else None)
            self._docs[path] = copy.deepcopy(updated)
            return updated


class RedisDocumentStore:
    """
    Redis-backed document store.

    Each document is a JSON string under ``{prefix}:doc:{path}``; each
    collection keeps a sorted set of member paths scored by a global
    insertion counter.
    """

    def __init__(self, url: str | None = None, prefix: str | None = None):
        settings = get_settings()
        self.url = url or settings.redis_url
        self.prefix = prefix or settings.redis_key_prefix
        self._client: Redis | None = None

    def connect(self) -> Redis:
        """Get or create Redis client."""
        if self._client is None:
            self._client = Redis.from_url(self.url, decode_responses=True)
            logger.info("redis_connected", url=self.url)
        return self._client

    @property
    def client(self) -> Redis:
        return self.connect()

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def health_check(self) -> bool:
        """Check Redis connectivity."""
        try:
            await self.client.ping()
            return True
        except RedisConnectionError as e:
            logger.error("redis_health_check_failed", error=str(e))
            return False

    # =========================================================================
    # Keys
    # =========================================================================

    def _doc_key(self, path: str) -> str:
        return f"{self.prefix}:doc:{path}"

    def _collection_key(self, collection: str) -> str:
        return f"{self.prefix}:col:{collection}"

    @property
    def _sequence_key(self) -> str:
        return f"{self.prefix}:seq"

    # =========================================================================
    # Operations
    # =========================================================================

    async def get(self, path: str) -> Document | None:
        raw = await self.client.get(self._doc_key(path))
        return json.loads(raw) if raw else None

    async def set(self, path: str, data: Document) -> None:
        seq = await self.client.incr(self._sequence_key)
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.set(self._doc_key(path), json.dumps(data, default=str))
            pipe.zadd(self._collection_key(parent_of(path)), {path: seq}, nx=True)
            await pipe.execute()

    async def update(self, path: str, changes: Document) -> Document:
        def merge(current: Document | None) -> Document:
            if current is None:
                raise NotFound(f"Documento não encontrado: {path}")
            current.update(changes)
            return current

        return await self.transact(path, merge)

    async def delete(self, path: str) -> None:
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.delete(self._doc_key(path))
            pipe.zrem(self._collection_key(parent_of(path)), path)
            await pipe.execute()

    async def list(self, collection: str) -> list[tuple[str, Document]]:
        paths = await self.client.zrange(self._collection_key(collection), 0, -1)
        if not paths:
            return []
        raws = await self.client.mget([self._doc_key(p) for p in paths])
        return [
            (path.rsplit("/", 1)[-1], json.loads(raw))
            for path, raw in zip(paths, raws)
            if raw
        ]

    async def transact(self, path: str, fn: TransactFn) -> Document:
        """Optimistic WATCH/MULTI/EXEC read-modify-write, retried on conflict."""
        key = self._doc_key(path)

        async def apply(pipe) -> Document:
            raw = await pipe.get(key)
            current = json.loads(raw) if raw else None
            updated = fn(current)
            seq = await pipe.incr(self._sequence_key) if current is None else None
            pipe.multi()
            pipe.set(key, json.dumps(updated, default=str))
            if seq is not None:
                pipe.zadd(self._collection_key(parent_of(path)), {path: seq}, nx=True)
            return updated

        return await self.client.transaction(apply, key, value_from_callable=True)


@lru_cache()
def get_document_store() -> DocumentStore:
    """Get the configured document store instance."""
    settings = get_settings()
    if settings.storage_backend == "redis":
        return RedisDocumentStore()
    return InMemoryDocumentStore()
