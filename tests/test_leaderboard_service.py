from __future__ import annotations

import asyncio
import random
from datetime import timedelta

import pytest

from conftest import GUILD_ID, NOW, FakeInviteStorage, bonus_row, code_row, make_service, recent_row
from inviteboard.errors import (
    DataIntegrityError,
    InvalidScopeError,
    OrphanMemberError,
    StorageUnavailableError,
)
from inviteboard.models import Scope
from inviteboard.services.leaderboard import build

A, B, C = 11, 22, 33


def totals(result) -> list[tuple[int, int]]:
    return [(entry.member_id, entry.total_credit) for entry in result.entries]


async def test_code_and_bonus_credit_are_combined():
    storage = FakeInviteStorage(codes=[code_row(A, 10)], bonuses=[bonus_row(A, 5), bonus_row(B, 3)])
    result = await make_service(storage).compute_leaderboard(GUILD_ID)
    assert totals(result) == [(A, 15), (B, 3)]
    assert result.entries[0].bonus_credit == 5


async def test_negative_net_credit_is_excluded():
    storage = FakeInviteStorage(codes=[code_row(A, 2)], bonuses=[bonus_row(A, -5)])
    result = await make_service(storage).compute_leaderboard(GUILD_ID)
    assert result.is_empty
    assert result.entries == ()


async def test_no_tallies_gives_explicit_empty_leaderboard():
    result = await make_service(FakeInviteStorage()).compute_leaderboard(GUILD_ID)
    assert result.is_empty
    assert result.to_dict()["empty"] is True


async def test_recent_joins_only_affect_trend():
    storage = FakeInviteStorage(codes=[code_row(A, 10)], recent=[recent_row(A, 4)])
    result = await make_service(storage).compute_leaderboard(GUILD_ID)
    entry = result.entries[0]
    assert entry.total_credit == 10
    assert entry.trend_credit == 6
    assert result.trend_position(A) == 1
    assert result.trend_position(B) is None


async def test_orphan_bonus_member_fails_whole_computation():
    storage = FakeInviteStorage(codes=[code_row(A, 10)], bonuses=[bonus_row(C, 2, name=None)])
    with pytest.raises(OrphanMemberError):
        await make_service(storage).compute_leaderboard(GUILD_ID)


async def test_missing_numeric_field_is_an_integrity_fault():
    storage = FakeInviteStorage(codes=[{"inviter_id": A, "inviter_name": "a", "total_uses": None}])
    with pytest.raises(DataIntegrityError):
        await make_service(storage).compute_leaderboard(GUILD_ID)


async def test_results_are_truncated_to_the_top_limit():
    storage = FakeInviteStorage(codes=[code_row(member_id, member_id) for member_id in range(1, 21)])
    result = await make_service(storage).compute_leaderboard(GUILD_ID, limit=5)
    assert [entry.member_id for entry in result.entries] == [20, 19, 18, 17, 16]
    assert len(result.trend) == 5


async def test_ordering_is_deterministic_for_shuffled_input():
    rows = [code_row(member_id, member_id % 3 + 1) for member_id in range(1, 30)]
    first = await make_service(FakeInviteStorage(codes=rows)).compute_leaderboard(GUILD_ID)
    shuffled = list(rows)
    random.Random(7).shuffle(shuffled)
    second = await make_service(FakeInviteStorage(codes=shuffled)).compute_leaderboard(GUILD_ID)
    assert totals(first) == totals(second)
    credits = [credit for _, credit in totals(first)]
    assert credits == sorted(credits, reverse=True)


async def test_every_entry_total_is_code_plus_bonus():
    storage = FakeInviteStorage(
        codes=[code_row(A, 3), code_row(B, 1)],
        bonuses=[bonus_row(B, 4), bonus_row(C, 2)],
    )
    result = await make_service(storage).compute_leaderboard(GUILD_ID)
    for entry in result.entries:
        assert entry.total_credit == entry.code_credit + entry.bonus_credit
        assert entry.total_credit > 0


async def test_channel_scope_reaches_code_and_join_reads_but_not_bonus():
    storage = FakeInviteStorage()
    await make_service(storage).compute_leaderboard(GUILD_ID, "55")
    scopes = {call[0]: call[1] for call in storage.calls}
    assert scopes["code"] == Scope(GUILD_ID, 55)
    assert scopes["recent"] == Scope(GUILD_ID, 55)
    assert scopes["bonus"] == Scope(GUILD_ID, None)


async def test_trend_window_start_is_passed_to_recent_join_read():
    storage = FakeInviteStorage()
    await make_service(storage).compute_leaderboard(GUILD_ID, trend_window=timedelta(hours=6))
    recent_call = next(call for call in storage.calls if call[0] == "recent")
    assert recent_call[2] == NOW - timedelta(hours=6)


async def test_storage_failure_aborts_with_storage_unavailable():
    storage = FakeInviteStorage(codes=[code_row(A, 1)], fail_with=ConnectionResetError("gone"))
    with pytest.raises(StorageUnavailableError) as info:
        await make_service(storage).compute_leaderboard(GUILD_ID)
    assert isinstance(info.value.__cause__, ConnectionResetError)


async def test_slow_reads_exceed_the_deadline():
    storage = FakeInviteStorage(codes=[code_row(A, 1)], delay=0.5)
    with pytest.raises(StorageUnavailableError):
        await make_service(storage, timeout=0.05).compute_leaderboard(GUILD_ID)


async def test_concurrent_computations_do_not_interfere():
    first = make_service(FakeInviteStorage(codes=[code_row(A, 3)], delay=0.01))
    second = make_service(FakeInviteStorage(codes=[code_row(B, 7)], delay=0.01))
    one, two = await asyncio.gather(first.compute_leaderboard(1), second.compute_leaderboard(2))
    assert totals(one) == [(A, 3)]
    assert totals(two) == [(B, 7)]


@pytest.mark.parametrize("kwargs", [{"guild_id": None}, {"guild_id": GUILD_ID, "limit": 0}])
async def test_invalid_requests_are_rejected(kwargs):
    with pytest.raises(InvalidScopeError):
        await make_service(FakeInviteStorage()).compute_leaderboard(**kwargs)


def test_build_rejects_non_positive_limit():
    with pytest.raises(InvalidScopeError):
        build(Scope(GUILD_ID), [], [], limit=0)
