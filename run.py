from __future__ import annotations

import asyncio
import logging

import uvicorn
from dotenv import load_dotenv

from api.app import create_api
from inviteboard.cache import RedisCache
from inviteboard.config import load_settings
from inviteboard.db import Database
from inviteboard.logging import configure_logging
from inviteboard.main import create_bot, create_leaderboard_service


async def main() -> None:
    load_dotenv()
    settings = load_settings()
    configure_logging(settings.log_level)
    log = logging.getLogger("runner")

    db = Database(settings.postgres_dsn, command_timeout=settings.leaderboard_read_timeout_seconds)
    cache = RedisCache(settings.redis_url)

    await db.connect()
    await db.init_schema()
    await cache.connect()
    pool = db.require_pool()

    leaderboards = create_leaderboard_service(settings, pool)
    bot = await create_bot(settings, pool, cache, leaderboards)
    api = create_api(leaderboards, max_limit=settings.leaderboard_max_limit)

    config = uvicorn.Config(api, host=settings.api_host, port=settings.api_port, log_level=settings.log_level.lower())
    server = uvicorn.Server(config)

    tasks = [
        asyncio.create_task(server.serve(), name="api"),
        asyncio.create_task(bot.start(settings.discord_token), name="bot"),
    ]

    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        for task in done:
            exc = task.exception()
            if exc:
                raise exc
        for task in pending:
            task.cancel()
    finally:
        await bot.close()
        await cache.close()
        await db.close()
        log.info("Shutdown complete")


if __name__ == "__main__":
    asyncio.run(main())
