"""Ride chat development relay.

Serves the room WebSocket protocol used by the ride chat client, backed by
in-memory room history.  Run with ``ridechat-relay`` or
``uvicorn ridechat.main:app``.
"""
import argparse
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

import uvicorn
from fastapi import FastAPI

from ridechat.config import configure_logging, get_config, load_config
from ridechat.relay.manager import manager
from ridechat.relay.router import router as relay_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config = getattr(app.state, "config", None) or get_config()
    manager.configure(config.relay)
    logger.info(
        "Relay ready (history_limit=%d, default_room=%s)",
        config.relay.history_limit,
        config.relay.default_room,
    )

    yield  # Application runs here

    # Shutdown
    logger.info("Relay shutdown complete")


app = FastAPI(
    title="Ride Chat Relay",
    description="In-memory room relay for the ride chat client",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(relay_router)


@app.get("/health")
async def health() -> dict:
    """Health check endpoint.

    Returns:
        dict: Status object indicating the server is running.
    """
    return {"status": "ok"}


def run(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``ridechat-relay``."""
    parser = argparse.ArgumentParser(description="Run the ride chat relay")
    parser.add_argument("--config", help="Path to ridechat.settings.yaml")
    parser.add_argument("--host", help="Bind address (overrides relay.host)")
    parser.add_argument("--port", type=int, help="Bind port (overrides relay.port)")
    args = parser.parse_args(argv)

    config = load_config(args.config) if args.config else get_config()
    configure_logging(config.logging.level)
    app.state.config = config

    uvicorn.run(
        app,
        host=args.host or config.relay.host,
        port=args.port or config.relay.port,
        log_level=config.logging.level.lower(),
    )


if __name__ == "__main__":
    run()
