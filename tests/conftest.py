"""Pytest configuration and fixtures for connector proxy tests."""

import os
import uuid
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "test")

import httpx
import pytest

from connector_proxy.core.config import Settings
from connector_proxy.integrations import IntegrationRegistry


# In-memory stand-ins for MongoDB and Redis


def _matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    return all(doc.get(key) == value for key, value in query.items())


class FakeCursor:
    def __init__(self, docs: List[Dict[str, Any]]):
        self.docs = docs

    def sort(self, key: str, direction: int = 1) -> "FakeCursor":
        self.docs = sorted(self.docs, key=lambda doc: doc.get(key), reverse=direction < 0)
        return self

    def limit(self, count: int) -> "FakeCursor":
        self.docs = self.docs[:count]
        return self

    def __aiter__(self):
        self._iter = iter(self.docs)
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


class FakeCollection:
    def __init__(self):
        self.docs: Dict[str, Dict[str, Any]] = {}

    async def insert_one(self, doc: Dict[str, Any]):
        doc = dict(doc)
        doc.setdefault("_id", uuid.uuid4().hex)
        self.docs[doc["_id"]] = doc
        return SimpleNamespace(inserted_id=doc["_id"])

    async def replace_one(self, query: Dict[str, Any], doc: Dict[str, Any], upsert: bool = False):
        existing = await self.find_one(query)
        if existing is None and not upsert:
            return SimpleNamespace(matched_count=0, upserted_id=None)
        self.docs[query["_id"]] = dict(doc)
        return SimpleNamespace(
            matched_count=0 if existing is None else 1,
            upserted_id=query["_id"] if existing is None else None,
        )

    async def find_one(self, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        for doc in self.docs.values():
            if _matches(doc, query):
                return dict(doc)
        return None

    def find(self, query: Dict[str, Any]) -> FakeCursor:
        return FakeCursor([dict(doc) for doc in self.docs.values() if _matches(doc, query)])

    async def update_one(self, query: Dict[str, Any], update: Dict[str, Any]):
        for doc in self.docs.values():
            if _matches(doc, query):
                doc.update(update.get("$set", {}))
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def delete_one(self, query: Dict[str, Any]):
        for key, doc in list(self.docs.items()):
            if _matches(doc, query):
                del self.docs[key]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)


class FakeDatabase:
    def __init__(self):
        self.collections: Dict[str, FakeCollection] = {}

    def get_collection(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection())


class FakeRedis:
    def __init__(self):
        self.values: Dict[str, Any] = {}
        self.sorted_sets: Dict[str, Dict[str, float]] = {}

    async def ping(self) -> bool:
        return True

    async def set(self, key: str, value: Any, ex: Optional[int] = None, nx: bool = False):
        if nx and key in self.values:
            return None
        self.values[key] = value
        return True

    async def get(self, key: str):
        return self.values.get(key)

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            removed += int(self.values.pop(key, None) is not None)
            removed += int(self.sorted_sets.pop(key, None) is not None)
        return removed

    async def zremrangebyscore(self, key: str, minimum: float, maximum: float) -> int:
        members = self.sorted_sets.get(key, {})
        stale = [member for member, score in members.items() if minimum <= score <= maximum]
        for member in stale:
            del members[member]
        return len(stale)

    async def zcard(self, key: str) -> int:
        return len(self.sorted_sets.get(key, {}))

    async def zadd(self, key: str, mapping: Dict[str, float]) -> int:
        self.sorted_sets.setdefault(key, {}).update(mapping)
        return len(mapping)

    async def expire(self, key: str, seconds: int) -> bool:
        return True


# Provider HTTP traffic

Responder = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class ProviderStub:
    """httpx.MockTransport handler answering by method and URL (query ignored)."""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Responder] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, url: str, responder: Responder) -> None:
        self.routes[(method.upper(), url)] = responder

    def add_json(self, method: str, url: str, body: Any, status_code: int = 200) -> None:
        self.add(method, url, httpx.Response(status_code, json=body))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        responder = self.routes.get((request.method, url))
        if responder is None:
            return httpx.Response(404, json={"error": f"no stub for {request.method} {url}"})
        if callable(responder):
            return responder(request)
        return responder

    def last(self, path_suffix: str) -> httpx.Request:
        for request in reversed(self.requests):
            if request.url.path.endswith(path_suffix):
                return request
        raise AssertionError(f"no request ending with {path_suffix}")


@pytest.fixture
def provider():
    """Stubbed provider APIs."""
    return ProviderStub()


@pytest.fixture
def http_client(provider):
    """Shared provider HTTP client routed to the stub."""
    return httpx.AsyncClient(transport=httpx.MockTransport(provider.handler))


# Configuration


@pytest.fixture
def settings() -> Settings:
    """Settings without any OAuth client configured."""
    return Settings(secret_key="test-secret-key")


@pytest.fixture
def oauth_settings() -> Settings:
    """Settings with every OAuth client configured."""
    return Settings(
        secret_key="test-secret-key",
        slack_client_id="slack-client-id",
        slack_client_secret="slack-client-secret",
        google_client_id="google-client-id",
        google_client_secret="google-client-secret",
        notion_client_id="notion-client-id",
        notion_client_secret="notion-client-secret",
        discord_client_id="discord-client-id",
        discord_client_secret="discord-client-secret",
        zapier_client_id="zapier-client-id",
    )


@pytest.fixture
def registry(settings) -> IntegrationRegistry:
    return IntegrationRegistry(settings)


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()
