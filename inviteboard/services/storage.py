from __future__ import annotations

import asyncio
import logging
from datetime import datetime

import asyncpg

from inviteboard.errors import StorageUnavailableError
from inviteboard.models import Scope

log = logging.getLogger(__name__)

STORAGE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)


class PostgresInviteStorage:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def _fetch(self, query: str, *args: object) -> list[asyncpg.Record]:
        try:
            return await self.pool.fetch(query, *args)
        except STORAGE_ERRORS as exc:
            log.warning("Invite storage query failed: %s", exc)
            raise StorageUnavailableError(f"invite storage query failed: {exc}") from exc

    async def code_invite_rows(self, scope: Scope) -> list[asyncpg.Record]:
        return await self._fetch(
            """
            SELECT ic.inviter_id,
                   m.name AS inviter_name,
                   SUM(ic.uses)::bigint AS total_uses
            FROM invite_codes ic
            LEFT JOIN members m
                ON m.guild_id = ic.guild_id AND m.member_id = ic.inviter_id
            WHERE ic.guild_id = $1
              AND ic.inviter_id IS NOT NULL
              AND ($2::bigint IS NULL OR ic.channel_id = $2)
            GROUP BY ic.inviter_id, m.name
            """,
            scope.guild_id,
            scope.channel_id,
        )

    async def bonus_invite_rows(self, scope: Scope) -> list[asyncpg.Record]:
        return await self._fetch(
            """
            SELECT b.member_id,
                   m.name AS member_name,
                   SUM(b.amount)::bigint AS total_amount
            FROM bonus_invites b
            LEFT JOIN members m
                ON m.guild_id = b.guild_id AND m.member_id = b.member_id
            WHERE b.guild_id = $1
            GROUP BY b.member_id, m.name
            """,
            scope.guild_id,
        )

    async def recent_join_rows(self, scope: Scope, since: datetime) -> list[asyncpg.Record]:
        return await self._fetch(
            """
            SELECT ic.inviter_id,
                   COUNT(j.id)::bigint AS total_joins
            FROM joins j
            JOIN invite_codes ic
                ON ic.guild_id = j.guild_id AND ic.code = j.exact_match_code
            WHERE j.guild_id = $1
              AND j.created_at >= $2
              AND ic.inviter_id IS NOT NULL
              AND ($3::bigint IS NULL OR ic.channel_id = $3)
            GROUP BY ic.inviter_id
            """,
            scope.guild_id,
            since,
            scope.channel_id,
        )
