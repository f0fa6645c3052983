from __future__ import annotations

from fastapi import FastAPI, HTTPException

from inviteboard.errors import DataIntegrityError, InvalidScopeError, StorageUnavailableError
from inviteboard.services.leaderboard import LeaderboardService



def create_api(leaderboards: LeaderboardService, max_limit: int = 100) -> FastAPI:
    app = FastAPI(title="Invite Leaderboard API", version="1.0.0")

    @app.get("/health")
    async def health() -> dict:
        return {"ok": True}

    @app.get("/api/guild/{guild_id}/leaderboard")
    async def guild_leaderboard(guild_id: str, channel_id: str | None = None, limit: int | None = None) -> dict:
        bounded = None if limit is None else max(1, min(limit, max_limit))
        try:
            result = await leaderboards.compute_leaderboard(guild_id, channel_id, limit=bounded)
        except InvalidScopeError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except StorageUnavailableError as exc:
            raise HTTPException(status_code=503, detail=exc.user_message) from exc
        except DataIntegrityError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return result.to_dict()

    return app
