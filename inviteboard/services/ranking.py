from __future__ import annotations

from collections.abc import Mapping

from inviteboard.models import LeaderboardEntry


def ranked_universe(entries: Mapping[int, LeaderboardEntry]) -> list[LeaderboardEntry]:
    return [entry for entry in entries.values() if entry.total_credit > 0]


def rank_current(entries: Mapping[int, LeaderboardEntry]) -> list[LeaderboardEntry]:
    """Members with positive credit, most credit first, ties by ascending member id."""
    return sorted(ranked_universe(entries), key=lambda e: (-e.total_credit, e.member_id))


def rank_trend(entries: Mapping[int, LeaderboardEntry]) -> list[LeaderboardEntry]:
    """Same members as ``rank_current``, ordered by credit held before the trend window."""
    return sorted(ranked_universe(entries), key=lambda e: (-e.trend_credit, e.member_id))
