import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from web.backend.routers import divisions

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("api")


def create_app() -> FastAPI:
    app = FastAPI(title="Goal Progress API", version="1.0")

    raw_origins = os.getenv("GOAL_PROGRESS_ALLOWED_ORIGINS", "*")
    allow_origins = [o.strip() for o in raw_origins.split(",") if o.strip()]
    allow_credentials = "*" not in allow_origins

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():
        return {"status": "ok", "service": "Goal Progress"}

    app.include_router(divisions.router, prefix="/api/v1/goals", tags=["goals"])
    logger.info("Goal division routes mounted at /api/v1/goals")

    return app


app = create_app()
