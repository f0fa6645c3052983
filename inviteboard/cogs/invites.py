from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from inviteboard.errors import LeaderboardError
from inviteboard.models import LeaderboardResult
from inviteboard.services.invite_tracker import InviteTrackerService
from inviteboard.services.leaderboard import LeaderboardService

log = logging.getLogger(__name__)

EMPTY_LEADERBOARD = "No invites!"
EMBED_DESCRIPTION_LIMIT = 4096


def render_leaderboard(result: LeaderboardResult) -> tuple[str, int]:
    """Return the embed description and how many entries fit into it."""
    if result.scope.is_channel_scoped:
        header = f"Leaderboard for channel <#{result.scope.channel_id}>"
    else:
        header = "Leaderboard"
    if result.is_empty:
        return f"{header}\n\n{EMPTY_LEADERBOARD}", 0

    lines = [header, ""]
    shown = 0
    for position, entry in enumerate(result.entries, start=1):
        line = f"{position} ▪️ **{entry.name}** {entry.total_credit} invites (**{entry.bonus_credit}** bonus)"
        if sum(len(part) + 1 for part in lines) + len(line) > EMBED_DESCRIPTION_LIMIT:
            break
        lines.append(line)
        shown += 1
    return "\n".join(lines), shown


class InvitesCog(commands.Cog):
    def __init__(
        self,
        bot: commands.Bot,
        leaderboards: LeaderboardService,
        tracker: InviteTrackerService,
    ) -> None:
        self.bot = bot
        self.leaderboards = leaderboards
        self.tracker = tracker

    async def _send_leaderboard(self, interaction: discord.Interaction, channel: discord.TextChannel | None) -> None:
        if not interaction.guild:
            await interaction.response.send_message("This command can only be used in a server.", ephemeral=True)
            return

        await interaction.response.defer()
        try:
            result = await self.leaderboards.compute_leaderboard(
                interaction.guild.id,
                channel.id if channel else None,
            )
        except LeaderboardError as exc:
            log.warning("Leaderboard failed guild=%s: %s", interaction.guild.id, exc)
            await interaction.followup.send(exc.user_message, ephemeral=True)
            return

        description, shown = render_leaderboard(result)
        embed = discord.Embed(description=description, color=discord.Color.green())
        if shown:
            embed.set_footer(text=f"Top {shown}")
        embed.timestamp = result.computed_at
        await interaction.followup.send(embed=embed)

    @app_commands.command(name="leaderboard", description="Show members with most invites")
    @app_commands.describe(channel="Only count invites created for this channel")
    async def leaderboard(
        self,
        interaction: discord.Interaction,
        channel: discord.TextChannel | None = None,
    ) -> None:
        await self._send_leaderboard(interaction, channel)

    @app_commands.command(name="top", description="Show members with most invites")
    @app_commands.describe(channel="Only count invites created for this channel")
    async def top(
        self,
        interaction: discord.Interaction,
        channel: discord.TextChannel | None = None,
    ) -> None:
        await self._send_leaderboard(interaction, channel)

    @app_commands.command(name="addinvites", description="Grant or remove bonus invites for a member")
    @app_commands.default_permissions(manage_guild=True)
    @app_commands.describe(
        member="Member receiving the bonus",
        amount="Invites to add (negative to remove)",
        reason="Optional note",
    )
    async def addinvites(
        self,
        interaction: discord.Interaction,
        member: discord.Member,
        amount: int,
        reason: str | None = None,
    ) -> None:
        if not interaction.guild:
            await interaction.response.send_message("This command can only be used in a server.", ephemeral=True)
            return

        added = await self.tracker.add_bonus_invites(
            interaction.guild.id,
            member,
            amount,
            reason=reason,
            actor_id=interaction.user.id,
        )
        if not added:
            await interaction.response.send_message("Amount must not be zero.", ephemeral=True)
            return

        verb = "Added" if amount > 0 else "Removed"
        await interaction.response.send_message(
            f"{verb} **{abs(amount)}** bonus invites for {member.mention}.",
            ephemeral=True,
        )

