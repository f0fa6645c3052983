from __future__ import annotations

import json
from typing import Any

import redis.asyncio as redis


class RedisCache:
    def __init__(self, url: str, prefix: str = "inviteboard") -> None:
        self._url = url
        self._prefix = prefix
        self.client: redis.Redis | None = None

    async def connect(self) -> None:
        self.client = redis.from_url(self._url, decode_responses=True)
        await self.client.ping()

    async def close(self) -> None:
        if self.client:
            await self.client.aclose()

    def require_client(self) -> redis.Redis:
        if self.client is None:
            raise RuntimeError("Redis client is not initialized")
        return self.client

    def key(self, *parts: object) -> str:
        return ":".join([self._prefix, *(str(p) for p in parts)])

    async def get_hash_json(self, key: str) -> dict[str, Any]:
        raw = await self.require_client().hgetall(key)
        return {field: json.loads(value) for field, value in raw.items()}

    async def replace_hash_json(self, key: str, values: dict[str, Any]) -> None:
        pipe = self.require_client().pipeline()
        pipe.delete(key)
        if values:
            pipe.hset(key, mapping={field: json.dumps(value) for field, value in values.items()})
        await pipe.execute()

    async def set_hash_field_json(self, key: str, field: str, value: Any) -> None:
        await self.require_client().hset(key, field, json.dumps(value))

    async def delete_hash_field(self, key: str, field: str) -> None:
        await self.require_client().hdel(key, field)
