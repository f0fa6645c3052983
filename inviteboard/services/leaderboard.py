from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta, timezone

from inviteboard.errors import InvalidScopeError
from inviteboard.models import LeaderboardEntry, LeaderboardResult, Scope
from inviteboard.services.merger import merge
from inviteboard.services.ranking import rank_current, rank_trend
from inviteboard.services.reader import DatasetReader
from inviteboard.services.scope import build_scope
from inviteboard.services.trend import apply_recent_joins

log = logging.getLogger(__name__)

DEFAULT_LIMIT = 50
DEFAULT_TREND_WINDOW = timedelta(hours=24)


def build(
    scope: Scope,
    current: Sequence[LeaderboardEntry],
    trend: Sequence[LeaderboardEntry],
    limit: int = DEFAULT_LIMIT,
    computed_at: datetime | None = None,
) -> LeaderboardResult:
    if limit < 1:
        raise InvalidScopeError(f"limit must be at least 1, got {limit}")
    return LeaderboardResult(
        scope=scope,
        entries=tuple(current[:limit]),
        trend=tuple(trend[:limit]),
        limit=limit,
        computed_at=computed_at or datetime.now(timezone.utc),
    )


class LeaderboardService:
    def __init__(
        self,
        reader: DatasetReader,
        default_limit: int = DEFAULT_LIMIT,
        trend_window: timedelta = DEFAULT_TREND_WINDOW,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.reader = reader
        self.default_limit = default_limit
        self.trend_window = trend_window
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def compute_leaderboard(
        self,
        guild_id: int | str | None,
        channel_id: int | str | None = None,
        limit: int | None = None,
        trend_window: timedelta | None = None,
    ) -> LeaderboardResult:
        scope = build_scope(guild_id, channel_id)
        limit = self.default_limit if limit is None else limit
        window = self.trend_window if trend_window is None else trend_window
        if window <= timedelta(0):
            raise InvalidScopeError(f"trend window must be positive, got {window}")

        now = self._clock()
        datasets = await self.reader.read_all(scope, now - window)

        entries = merge(datasets.codes, datasets.bonuses)
        entries = apply_recent_joins(entries, datasets.recent_joins)
        result = build(scope, rank_current(entries), rank_trend(entries), limit, computed_at=now)

        log.info(
            "Leaderboard computed guild=%s channel=%s members=%s shown=%s",
            scope.guild_id,
            scope.channel_id,
            len(entries),
            len(result.entries),
        )
        return result
