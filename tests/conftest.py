from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from inviteboard.models import Scope
from inviteboard.services.leaderboard import LeaderboardService
from inviteboard.services.reader import DatasetReader

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
GUILD_ID = 1000


class FakeInviteStorage:
    def __init__(
        self,
        codes: list[dict] | None = None,
        bonuses: list[dict] | None = None,
        recent: list[dict] | None = None,
        fail_with: BaseException | None = None,
        delay: float = 0.0,
    ) -> None:
        self.codes = codes or []
        self.bonuses = bonuses or []
        self.recent = recent or []
        self.fail_with = fail_with
        self.delay = delay
        self.calls: list[tuple] = []

    async def _respond(self, name: str, rows: list[dict], *args: object) -> list[dict]:
        self.calls.append((name, *args))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None and name == "code":
            raise self.fail_with
        return list(rows)

    async def code_invite_rows(self, scope: Scope) -> list[dict]:
        return await self._respond("code", self.codes, scope)

    async def bonus_invite_rows(self, scope: Scope) -> list[dict]:
        return await self._respond("bonus", self.bonuses, scope)

    async def recent_join_rows(self, scope: Scope, since: datetime) -> list[dict]:
        return await self._respond("recent", self.recent, scope, since)


def code_row(inviter_id: int, uses: int, name: str | None = None) -> dict:
    return {"inviter_id": inviter_id, "inviter_name": name or f"member-{inviter_id}", "total_uses": uses}


def bonus_row(member_id: int, amount: int, name: str | None = "") -> dict:
    return {"member_id": member_id, "member_name": f"member-{member_id}" if name == "" else name, "total_amount": amount}


def recent_row(inviter_id: int, joins: int) -> dict:
    return {"inviter_id": inviter_id, "total_joins": joins}


def make_service(storage: FakeInviteStorage, timeout: float = 1.0) -> LeaderboardService:
    return LeaderboardService(DatasetReader(storage, timeout=timeout), clock=lambda: NOW)


@pytest.fixture
def storage() -> FakeInviteStorage:
    return FakeInviteStorage()


@pytest.fixture
def service(storage: FakeInviteStorage) -> LeaderboardService:
    return make_service(storage)
