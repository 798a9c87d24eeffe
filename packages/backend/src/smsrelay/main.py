"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. The lifespan builds the listener wiring on the server's event
loop (so subscriber calls land on that loop), optionally starts listening,
and always stops the listener on shutdown so the source registration
never outlives the app.
"""

import asyncio
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from smsrelay import __version__
from smsrelay.api import api_router
from smsrelay.config import settings
from smsrelay.listener.errors import RegistrationError
from smsrelay.relay import build_relay

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs
    at shutdown.
    """
    logger.info(
        "smsrelay.starting",
        version=__version__,
        environment=settings.environment,
        source=settings.source,
        port=settings.port,
    )

    relay = getattr(app.state, "relay", None)
    if relay is None:
        relay = build_relay(settings, loop=asyncio.get_running_loop())
        app.state.relay = relay

    if settings.autostart:
        try:
            await relay.lifecycle.start()
        except RegistrationError as e:
            # App still serves; a later startListening command can retry
            logger.warning("smsrelay.autostart_failed", error=str(e))

    yield

    logger.info("smsrelay.shutdown")
    await relay.lifecycle.shutdown()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="SMS Relay",
        description="Merges SMS delivery fragments and streams completed messages",
        version=__version__,
        lifespan=lifespan,
    )

    app.include_router(api_router)

    from smsrelay.realtime.websocket import router as ws_router
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: smsrelay.main:app)
app = create_app()
