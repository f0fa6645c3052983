from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

import asyncpg
import discord

from inviteboard.cache import RedisCache
from inviteboard.utils.locks import GuildLockManager

log = logging.getLogger(__name__)


@dataclass
class JoinAttribution:
    exact_match_code: str | None
    possible_codes: list[str] = field(default_factory=list)

    @property
    def is_exact(self) -> bool:
        return self.exact_match_code is not None


def invite_to_snapshot(invite: discord.Invite) -> dict:
    return {
        "uses": invite.uses or 0,
        "inviter_id": invite.inviter.id if invite.inviter else None,
        "channel_id": invite.channel.id if invite.channel else None,
        "max_uses": invite.max_uses,
        "temporary": bool(invite.temporary),
    }


def detect_used_invite(previous: dict[str, dict], current: dict[str, dict]) -> JoinAttribution:
    increased = []
    for code, now_val in current.items():
        old_uses = previous.get(code, {}).get("uses", 0)
        if now_val["uses"] - old_uses > 0:
            increased.append(code)

    # Invites that hit max_uses are deleted by Discord, so they vanish from the listing.
    for code, old_val in previous.items():
        if code in current:
            continue
        max_uses = old_val.get("max_uses")
        if max_uses and old_val.get("uses", 0) + 1 >= max_uses:
            increased.append(code)

    increased.sort()
    if len(increased) == 1:
        return JoinAttribution(increased[0], increased)
    return JoinAttribution(None, increased)


class InviteTrackerService:
    def __init__(self, pool: asyncpg.Pool, cache: RedisCache, lock_manager: GuildLockManager) -> None:
        self.pool = pool
        self.cache = cache
        self.lock_manager = lock_manager

    def _snapshot_key(self, guild_id: int) -> str:
        return self.cache.key("invites", "snapshot", guild_id)

    async def upsert_member(self, guild_id: int, user: discord.abc.User) -> None:
        await self.pool.execute(
            """
            INSERT INTO members (guild_id, member_id, name)
            VALUES ($1, $2, $3)
            ON CONFLICT (guild_id, member_id)
            DO UPDATE SET name = EXCLUDED.name,
                          updated_at = NOW()
            """,
            guild_id,
            user.id,
            user.display_name,
        )

    async def _upsert_invite(self, guild_id: int, invite: discord.Invite) -> None:
        if invite.inviter:
            await self.upsert_member(guild_id, invite.inviter)
        await self.pool.execute(
            """
            INSERT INTO invite_codes (guild_id, code, channel_id, inviter_id, uses, max_uses, is_temporary, created_at)
            VALUES ($1, $2, $3, $4, $5, $6, $7, COALESCE($8, NOW()))
            ON CONFLICT (guild_id, code)
            DO UPDATE SET channel_id = EXCLUDED.channel_id,
                          inviter_id = COALESCE(EXCLUDED.inviter_id, invite_codes.inviter_id),
                          uses = EXCLUDED.uses,
                          max_uses = EXCLUDED.max_uses,
                          is_temporary = EXCLUDED.is_temporary,
                          updated_at = NOW()
            """,
            guild_id,
            invite.code,
            invite.channel.id if invite.channel else None,
            invite.inviter.id if invite.inviter else None,
            invite.uses or 0,
            invite.max_uses,
            bool(invite.temporary),
            invite.created_at,
        )

    async def _fetch_invites(self, guild: discord.Guild) -> list[discord.Invite] | None:
        try:
            return await guild.invites()
        except discord.Forbidden:
            log.warning("Missing permissions to read invites for guild=%s", guild.id)
            return None

    async def rebuild_guild_snapshot(self, guild: discord.Guild) -> None:
        async with self.lock_manager.get(guild.id):
            invites = await self._fetch_invites(guild)
            if invites is None:
                return
            for inv in invites:
                await self._upsert_invite(guild.id, inv)
            snapshot = {inv.code: invite_to_snapshot(inv) for inv in invites}
            await self.cache.replace_hash_json(self._snapshot_key(guild.id), snapshot)
        log.info("Invite snapshot rebuilt guild=%s codes=%s", guild.id, len(invites))

    async def rebuild_all_snapshots(self, guilds: list[discord.Guild]) -> None:
        for guild in guilds:
            await self.rebuild_guild_snapshot(guild)

    async def on_invite_create(self, invite: discord.Invite) -> None:
        if not invite.guild:
            return
        async with self.lock_manager.get(invite.guild.id):
            await self._upsert_invite(invite.guild.id, invite)
            await self.cache.set_hash_field_json(
                self._snapshot_key(invite.guild.id), invite.code, invite_to_snapshot(invite)
            )

    async def on_invite_delete(self, invite: discord.Invite) -> None:
        # The code row stays: its uses still count toward the inviter's credit.
        if not invite.guild:
            return
        async with self.lock_manager.get(invite.guild.id):
            await self.cache.delete_hash_field(self._snapshot_key(invite.guild.id), invite.code)

    async def on_member_join(self, member: discord.Member) -> JoinAttribution:
        guild = member.guild
        async with self.lock_manager.get(guild.id):
            invites = await self._fetch_invites(guild)
            await self.upsert_member(guild.id, member)
            if invites is None:
                attribution = JoinAttribution(None)
            else:
                key = self._snapshot_key(guild.id)
                previous = await self.cache.get_hash_json(key)
                current = {inv.code: invite_to_snapshot(inv) for inv in invites}
                attribution = detect_used_invite(previous, current)
                await self.cache.replace_hash_json(key, current)
                for inv in invites:
                    if inv.code in attribution.possible_codes:
                        await self._upsert_invite(guild.id, inv)
                vanished = [code for code in attribution.possible_codes if code not in current]
                if vanished:
                    await self.pool.execute(
                        """
                        UPDATE invite_codes
                        SET uses = uses + 1, updated_at = NOW()
                        WHERE guild_id = $1 AND code = ANY($2::text[])
                        """,
                        guild.id,
                        vanished,
                    )

            await self.pool.execute(
                """
                INSERT INTO joins (guild_id, member_id, exact_match_code, possible_codes, created_at)
                VALUES ($1, $2, $3, $4, $5)
                """,
                guild.id,
                member.id,
                attribution.exact_match_code,
                attribution.possible_codes,
                datetime.now(timezone.utc),
            )

        log.info(
            "Join recorded guild=%s member=%s exact=%s candidates=%s",
            guild.id,
            member.id,
            attribution.exact_match_code,
            len(attribution.possible_codes),
        )
        return attribution

    async def add_bonus_invites(
        self,
        guild_id: int,
        member: discord.abc.User,
        amount: int,
        reason: str | None = None,
        actor_id: int | None = None,
    ) -> bool:
        if amount == 0:
            return False
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(
                    """
                    INSERT INTO members (guild_id, member_id, name)
                    VALUES ($1, $2, $3)
                    ON CONFLICT (guild_id, member_id)
                    DO UPDATE SET name = EXCLUDED.name,
                                  updated_at = NOW()
                    """,
                    guild_id,
                    member.id,
                    member.display_name,
                )
                await conn.execute(
                    """
                    INSERT INTO bonus_invites (guild_id, member_id, amount, reason, created_by)
                    VALUES ($1, $2, $3, $4, $5)
                    """,
                    guild_id,
                    member.id,
                    amount,
                    reason,
                    actor_id,
                )
        log.info("Bonus invites guild=%s member=%s amount=%s by=%s", guild_id, member.id, amount, actor_id)
        return True
