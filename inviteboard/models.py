from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone


@dataclass(frozen=True)
class Scope:
    guild_id: int
    channel_id: int | None = None

    @property
    def is_channel_scoped(self) -> bool:
        return self.channel_id is not None


@dataclass(frozen=True)
class CodeInviteTally:
    inviter_id: int
    inviter_name: str | None
    total_uses: int


@dataclass(frozen=True)
class BonusInviteTally:
    member_id: int
    member_name: str | None
    total_amount: int


@dataclass(frozen=True)
class RecentJoinTally:
    inviter_id: int
    total_joins: int


@dataclass(frozen=True)
class LeaderboardEntry:
    member_id: int
    name: str
    code_credit: int = 0
    bonus_credit: int = 0
    recent_joins: int = 0

    @property
    def total_credit(self) -> int:
        return self.code_credit + self.bonus_credit

    @property
    def trend_credit(self) -> int:
        return self.total_credit - self.recent_joins

    def with_recent_joins(self, recent_joins: int) -> LeaderboardEntry:
        return replace(self, recent_joins=recent_joins)

    def to_dict(self) -> dict:
        return {
            "member_id": self.member_id,
            "name": self.name,
            "code": self.code_credit,
            "bonus": self.bonus_credit,
            "total": self.total_credit,
            "recent_joins": self.recent_joins,
            "trend": self.trend_credit,
        }


@dataclass(frozen=True)
class LeaderboardResult:
    """Bounded leaderboard handed to a renderer.

    ``entries`` is the current ranking; ``trend`` ranks the same members by credit
    minus recent joins. An empty ``entries`` tuple is the explicit "no invites" state.
    """

    scope: Scope
    entries: tuple[LeaderboardEntry, ...]
    trend: tuple[LeaderboardEntry, ...]
    limit: int
    computed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_empty(self) -> bool:
        return not self.entries

    def trend_position(self, member_id: int) -> int | None:
        for position, entry in enumerate(self.trend, start=1):
            if entry.member_id == member_id:
                return position
        return None

    def to_dict(self) -> dict:
        return {
            "guild_id": self.scope.guild_id,
            "channel_id": self.scope.channel_id,
            "limit": self.limit,
            "empty": self.is_empty,
            "computed_at": self.computed_at.isoformat(),
            "entries": [
                {"position": position, **entry.to_dict()}
                for position, entry in enumerate(self.entries, start=1)
            ],
            "trend": [entry.member_id for entry in self.trend],
        }
