from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from inviteboard.errors import DataIntegrityError, LeaderboardError, StorageUnavailableError
from inviteboard.models import BonusInviteTally, CodeInviteTally, RecentJoinTally, Scope

log = logging.getLogger(__name__)

Row = Mapping[str, Any]


class InviteStorage(Protocol):
    async def code_invite_rows(self, scope: Scope) -> Sequence[Row]: ...

    async def bonus_invite_rows(self, scope: Scope) -> Sequence[Row]: ...

    async def recent_join_rows(self, scope: Scope, since: datetime) -> Sequence[Row]: ...


@dataclass(frozen=True)
class InviteDatasets:
    codes: list[CodeInviteTally]
    bonuses: list[BonusInviteTally]
    recent_joins: list[RecentJoinTally]


def _required_int(row: Row, key: str, source: str) -> int:
    try:
        value = row[key]
    except KeyError:
        value = None
    if value is None:
        raise DataIntegrityError(f"{source} row is missing {key}: {dict(row)!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise DataIntegrityError(f"{source} row has non-numeric {key}: {value!r}") from exc


def _optional_name(row: Row, key: str) -> str | None:
    try:
        name = row[key]
    except KeyError:
        return None
    if name is None:
        return None
    name = str(name)
    return name or None


class DatasetReader:
    def __init__(self, storage: InviteStorage, timeout: float = 10.0) -> None:
        self.storage = storage
        self.timeout = timeout

    async def read_code_invite_tallies(self, scope: Scope) -> list[CodeInviteTally]:
        rows = await self.storage.code_invite_rows(scope)
        return [
            CodeInviteTally(
                inviter_id=_required_int(row, "inviter_id", "code invite"),
                inviter_name=_optional_name(row, "inviter_name"),
                total_uses=_required_int(row, "total_uses", "code invite"),
            )
            for row in rows
        ]

    async def read_bonus_invite_tallies(self, scope: Scope) -> list[BonusInviteTally]:
        # Bonus invites are granted per guild, never per channel.
        rows = await self.storage.bonus_invite_rows(Scope(guild_id=scope.guild_id))
        return [
            BonusInviteTally(
                member_id=_required_int(row, "member_id", "bonus invite"),
                member_name=_optional_name(row, "member_name"),
                total_amount=_required_int(row, "total_amount", "bonus invite"),
            )
            for row in rows
        ]

    async def read_recent_join_tallies(self, scope: Scope, window_start: datetime) -> list[RecentJoinTally]:
        rows = await self.storage.recent_join_rows(scope, window_start)
        return [
            RecentJoinTally(
                inviter_id=_required_int(row, "inviter_id", "recent join"),
                total_joins=_required_int(row, "total_joins", "recent join"),
            )
            for row in rows
        ]

    async def read_all(self, scope: Scope, window_start: datetime) -> InviteDatasets:
        tasks = [
            asyncio.create_task(self.read_code_invite_tallies(scope)),
            asyncio.create_task(self.read_bonus_invite_tallies(scope)),
            asyncio.create_task(self.read_recent_join_tallies(scope, window_start)),
        ]
        done, pending = await asyncio.wait(tasks, timeout=self.timeout, return_when=asyncio.FIRST_EXCEPTION)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        failure: BaseException | None = None
        for task in tasks:
            if task in done and task.exception() is not None and failure is None:
                failure = task.exception()
        if failure is not None:
            raise self._translate(failure, scope)
        if pending:
            log.warning("Invite reads timed out after %.1fs for guild=%s", self.timeout, scope.guild_id)
            raise StorageUnavailableError(f"invite reads exceeded {self.timeout}s deadline")

        codes, bonuses, recent = (task.result() for task in tasks)
        return InviteDatasets(codes=codes, bonuses=bonuses, recent_joins=recent)

    @staticmethod
    def _translate(exc: BaseException, scope: Scope) -> BaseException:
        if isinstance(exc, LeaderboardError):
            return exc
        if isinstance(exc, (OSError, asyncio.TimeoutError)):
            log.warning("Invite storage failed for guild=%s: %s", scope.guild_id, exc)
            error = StorageUnavailableError(f"invite storage failed: {exc}")
            error.__cause__ = exc
            return error
        return exc
