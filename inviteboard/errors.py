from __future__ import annotations


class LeaderboardError(Exception):
    """Base class for failures while computing an invite leaderboard."""

    user_message = "Could not compute the leaderboard."

    def __init__(self, message: str, user_message: str | None = None) -> None:
        super().__init__(message)
        if user_message is not None:
            self.user_message = user_message


class InvalidScopeError(LeaderboardError, ValueError):
    """Raised when the guild/channel scope of a request is missing or malformed."""

    user_message = "Invalid leaderboard scope."


class StorageUnavailableError(LeaderboardError):
    """Raised when a read against invite storage fails or exceeds its deadline.

    Computations are idempotent, so callers may retry the whole request.
    """

    user_message = "Invite data is temporarily unavailable. Please try again."


class DataIntegrityError(LeaderboardError):
    user_message = "Invite data is inconsistent; the leaderboard cannot be shown."


class OrphanMemberError(DataIntegrityError):
    """Raised when a tally references a member that has no stored name."""

    def __init__(self, member_id: int, source: str) -> None:
        super().__init__(f"{source} tally references unknown member {member_id}")
        self.member_id = member_id
        self.source = source
