from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from inviteboard.models import LeaderboardEntry, RecentJoinTally


def apply_recent_joins(
    entries: Mapping[int, LeaderboardEntry],
    recent_join_tallies: Iterable[RecentJoinTally],
) -> Mapping[int, LeaderboardEntry]:
    # Recent joins only adjust members already on the board; they never add one.
    updated = dict(entries)
    for tally in recent_join_tallies:
        entry = updated.get(tally.inviter_id)
        if entry is None:
            continue
        updated[tally.inviter_id] = entry.with_recent_joins(entry.recent_joins + tally.total_joins)
    return MappingProxyType(updated)
