from __future__ import annotations

from inviteboard.errors import InvalidScopeError
from inviteboard.models import Scope


MAX_SNOWFLAKE = 2**63 - 1


def _as_snowflake(value: int | str | None, label: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidScopeError(f"{label} must be an id, got {value!r}")
    if isinstance(value, int):
        snowflake = value
    else:
        text = str(value).strip()
        if not text:
            return None
        if not text.isdigit():
            raise InvalidScopeError(f"{label} must be numeric, got {value!r}")
        snowflake = int(text)
    if snowflake <= 0:
        raise InvalidScopeError(f"{label} must be positive, got {value!r}")
    if snowflake > MAX_SNOWFLAKE:
        raise InvalidScopeError(f"{label} is out of range, got {value!r}")
    return snowflake


def build_scope(guild_id: int | str | None, channel_id: int | str | None = None) -> Scope:
    guild = _as_snowflake(guild_id, "guild_id")
    if guild is None:
        raise InvalidScopeError("guild_id is required", "This command can only be used in a server.")
    return Scope(guild_id=guild, channel_id=_as_snowflake(channel_id, "channel_id"))
