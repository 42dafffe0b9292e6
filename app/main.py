from __future__ import annotations
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, status

from app.api import method_not_allowed_handler, router
from logging_config import configure_logging
from services.credentials import log_session_change
from services.gateway import build_default_gateway

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    gateway = build_default_gateway()
    unsubscribe = gateway.sessions.subscribe(log_session_change)
    publisher_task = asyncio.create_task(gateway.publisher.run())
    logger.info("Publishing sensor events every %ss", gateway.publisher.interval)
    try:
        yield
    finally:
        publisher_task.cancel()
        try:
            await publisher_task
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("Sensor publisher stopped with an error")
        unsubscribe()
        try:
            await gateway.aclose()
        finally:
            build_default_gateway.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Sensor Gateway",
        description="Bridges simulated sensors to a per-user realtime database.",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        exception_handlers={
            status.HTTP_405_METHOD_NOT_ALLOWED: method_not_allowed_handler,
        },
    )
    app.include_router(router)
    return app

app = create_app()
