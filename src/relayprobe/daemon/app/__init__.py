"""relayprobe daemon application package.

Creates the FastAPI app, registers the router, and wires up lifecycle events.
Re-exports `app` so uvicorn can load `relayprobe.daemon.app:app`.
"""

import os

from dotenv import load_dotenv
from fastapi import FastAPI

from ... import __version__
from ...utils.logging_config import setup_logging

load_dotenv()
setup_logging(os.getenv("RELAYPROBE_LOG_LEVEL", "INFO"))

app = FastAPI(title="relayprobe", version=__version__)

# --- Lifecycle ---
from .lifecycle import startup_event, shutdown_event


@app.on_event("startup")
async def _startup():
    await startup_event()


@app.on_event("shutdown")
async def _shutdown():
    await shutdown_event()


# --- Routers ---
from .routes import router

app.include_router(router)

__all__ = ["app"]
