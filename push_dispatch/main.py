"""
ASGI entry point.

    uvicorn push_dispatch.main:app
"""
import logging

from fastapi import FastAPI

from push_dispatch.api.push.routes import router as push_router
from push_dispatch.config import settings


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(title="push-dispatch")
    app.include_router(push_router)
    return app


app = create_app()
