"""FastAPI host for the health plan assistant bot.

This module is a thin **presentation layer**.  The bot itself (planner,
prompts, handlers) is assembled in ``bot.build_bot`` and the Teams adapter
runs each turn; the app only forwards ``/api/messages`` to it.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger
from teams import Application, TeamsAdapter

from healthplan_bot import __version__
from healthplan_bot.bot import build_bot, create_adapter
from healthplan_bot.config import Settings, get_settings
from healthplan_bot.logging_config import setup_logging
from healthplan_bot.presentation.routes.messages import router
from healthplan_bot.telemetry import setup_telemetry


def create_app(
    settings: Settings | None = None,
    *,
    bot: Application | None = None,
    adapter: TeamsAdapter | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Settings override (defaults to ``get_settings()``).
        bot: Bot override, used by tests.
        adapter: Channel adapter override, used by tests.
    """
    s = settings or get_settings()
    setup_logging(level=s.log_level, json=s.log_json)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Validate the environment and build the bot once at startup."""
        s.validate_runtime()

        app.state.settings = s
        app.state.adapter = adapter if adapter is not None else create_adapter(s)
        app.state.bot = bot if bot is not None else build_bot(s, app.state.adapter)

        logger.info("Application startup complete | port={}", s.port)
        yield
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="Health Plan Assistant Bot",
        description="Answers health plan questions from documents indexed in Azure AI Search.",
        version=__version__,
        lifespan=lifespan,
    )
    app.include_router(router)

    setup_telemetry(app, s)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("healthplan_bot.main:app", host="0.0.0.0", port=get_settings().port)
