from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from inviteboard.errors import OrphanMemberError
from inviteboard.models import BonusInviteTally, CodeInviteTally, LeaderboardEntry


def merge(
    code_tallies: Iterable[CodeInviteTally],
    bonus_tallies: Iterable[BonusInviteTally],
) -> Mapping[int, LeaderboardEntry]:
    """Fold code-invite and bonus-invite tallies into one entry per member.

    Either source may mention members the other does not, so both are folded in
    full before any entry is built. A member's name may come from either source;
    a member with no name in both raises ``OrphanMemberError``.
    """
    names: dict[int, str | None] = {}
    code: dict[int, int] = {}
    bonus: dict[int, int] = {}

    for tally in code_tallies:
        code[tally.inviter_id] = code.get(tally.inviter_id, 0) + tally.total_uses
        names[tally.inviter_id] = names.get(tally.inviter_id) or tally.inviter_name

    for tally in bonus_tallies:
        bonus[tally.member_id] = bonus.get(tally.member_id, 0) + tally.total_amount
        names[tally.member_id] = names.get(tally.member_id) or tally.member_name

    entries: dict[int, LeaderboardEntry] = {}
    for member_id, name in names.items():
        if not name:
            raise OrphanMemberError(member_id, "code invite" if member_id in code else "bonus invite")
        entries[member_id] = LeaderboardEntry(
            member_id=member_id,
            name=name,
            code_credit=code.get(member_id, 0),
            bonus_credit=bonus.get(member_id, 0),
        )
    return MappingProxyType(entries)
