from __future__ import annotations

import logging
from datetime import timedelta

import asyncpg
import discord
from discord import app_commands
from discord.ext import commands

from inviteboard.cache import RedisCache
from inviteboard.cogs.invites import InvitesCog
from inviteboard.config import Settings
from inviteboard.errors import LeaderboardError
from inviteboard.services.invite_tracker import InviteTrackerService
from inviteboard.services.leaderboard import LeaderboardService
from inviteboard.services.reader import DatasetReader
from inviteboard.services.storage import PostgresInviteStorage
from inviteboard.utils.locks import GuildLockManager

log = logging.getLogger(__name__)


def create_leaderboard_service(settings: Settings, pool: asyncpg.Pool) -> LeaderboardService:
    reader = DatasetReader(PostgresInviteStorage(pool), timeout=settings.leaderboard_read_timeout_seconds)
    return LeaderboardService(
        reader,
        default_limit=settings.leaderboard_default_limit,
        trend_window=timedelta(hours=settings.leaderboard_trend_window_hours),
    )


class InviteLeaderboardBot(commands.AutoShardedBot):
    def __init__(
        self,
        settings: Settings,
        pool: asyncpg.Pool,
        cache: RedisCache,
        leaderboards: LeaderboardService,
    ) -> None:
        intents = discord.Intents.default()
        intents.guilds = True
        intents.members = True
        intents.invites = True

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            application_id=settings.application_id,
        )

        self.settings = settings
        self.pool = pool
        self.cache = cache

        self.locks = GuildLockManager()
        self.invite_tracker = InviteTrackerService(pool, cache, self.locks)
        self.leaderboards = leaderboards

        self._synced = False

    async def setup_hook(self) -> None:
        await self.add_cog(InvitesCog(self, self.leaderboards, self.invite_tracker))
        self.tree.error(self.on_app_command_error)

    async def on_ready(self) -> None:
        if not self._synced:
            await self.tree.sync()
            self._synced = True
            log.info("Slash commands synced")

        log.info("Bot ready: %s (%s)", self.user, self.user.id if self.user else "n/a")
        await self.invite_tracker.rebuild_all_snapshots(self.guilds)

    async def on_guild_join(self, guild: discord.Guild) -> None:
        await self.invite_tracker.rebuild_guild_snapshot(guild)

    async def on_guild_remove(self, guild: discord.Guild) -> None:
        self.locks.discard(guild.id)

    async def on_invite_create(self, invite: discord.Invite) -> None:
        await self.invite_tracker.on_invite_create(invite)

    async def on_invite_delete(self, invite: discord.Invite) -> None:
        await self.invite_tracker.on_invite_delete(invite)

    async def on_member_join(self, member: discord.Member) -> None:
        await self.invite_tracker.on_member_join(member)

    async def on_app_command_error(self, interaction: discord.Interaction, error: app_commands.AppCommandError) -> None:
        original = getattr(error, "original", error)
        if isinstance(original, LeaderboardError):
            message = original.user_message
            log.warning("Slash command failed: %s", original)
        else:
            message = f"Error: {error}"
            log.exception("Slash command error", exc_info=error)
        if interaction.response.is_done():
            await interaction.followup.send(message, ephemeral=True)
        else:
            await interaction.response.send_message(message, ephemeral=True)


async def create_bot(
    settings: Settings,
    pool: asyncpg.Pool,
    cache: RedisCache,
    leaderboards: LeaderboardService,
) -> InviteLeaderboardBot:
    return InviteLeaderboardBot(settings, pool, cache, leaderboards)
