from __future__ import annotations

import asyncpg

SCHEMA = """
CREATE TABLE IF NOT EXISTS members (
    guild_id BIGINT NOT NULL,
    member_id BIGINT NOT NULL,
    name TEXT NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (guild_id, member_id)
);

CREATE TABLE IF NOT EXISTS invite_codes (
    guild_id BIGINT NOT NULL,
    code TEXT NOT NULL,
    channel_id BIGINT,
    inviter_id BIGINT,
    uses INTEGER NOT NULL DEFAULT 0,
    max_uses INTEGER,
    is_temporary BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (guild_id, code)
);

CREATE TABLE IF NOT EXISTS bonus_invites (
    id BIGSERIAL PRIMARY KEY,
    guild_id BIGINT NOT NULL,
    member_id BIGINT NOT NULL,
    amount INTEGER NOT NULL,
    reason TEXT,
    created_by BIGINT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS joins (
    id BIGSERIAL PRIMARY KEY,
    guild_id BIGINT NOT NULL,
    member_id BIGINT NOT NULL,
    exact_match_code TEXT,
    possible_codes TEXT[] NOT NULL DEFAULT '{}',
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS joins_guild_created_idx ON joins (guild_id, created_at);
CREATE INDEX IF NOT EXISTS bonus_invites_guild_idx ON bonus_invites (guild_id, member_id);
"""


class Database:
    def __init__(self, dsn: str, command_timeout: float | None = None) -> None:
        self._dsn = dsn
        self._command_timeout = command_timeout
        self.pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        self.pool = await asyncpg.create_pool(
            self._dsn,
            min_size=2,
            max_size=10,
            command_timeout=self._command_timeout,
        )

    async def init_schema(self) -> None:
        await self.require_pool().execute(SCHEMA)

    async def close(self) -> None:
        if self.pool:
            await self.pool.close()

    def require_pool(self) -> asyncpg.Pool:
        if self.pool is None:
            raise RuntimeError("Database pool is not initialized")
        return self.pool
