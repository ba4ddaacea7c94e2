"""FastAPI application entry point."""

import logging
import os
import tomllib
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Must run before anything reads configuration from the environment.
load_dotenv()

from adapter.mongodb.connection import get_mongodb_client
from adapter.mongodb.indexes import ensure_all_indexes
from api.dependencies import get_settings
from api.errors import register_error_handlers
from api.routes import auth, health, profile
from utils.logging import setup_structured_logging

setup_structured_logging()

logger = logging.getLogger(__name__)

# Read version from pyproject.toml (single source of truth)
_project_root = Path(__file__).resolve().parent.parent.parent
with open(_project_root / "pyproject.toml", "rb") as f:
    VERSION = tomllib.load(f)["project"]["version"]

SERVICE_NAME = "Solar Wealth Grow API"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: fail fast on bad config, then ensure indexes."""
    settings = get_settings()

    client = get_mongodb_client(settings.mongo_url)
    if client:
        db = client[settings.mongodb_database]
        if ensure_all_indexes(db):
            logger.info("MongoDB indexes verified/created successfully")
        else:
            logger.warning("Failed to create some MongoDB indexes")
    else:
        logger.warning("MongoDB unavailable, skipping index creation")

    yield


app = FastAPI(
    title=SERVICE_NAME,
    description="Registration with SMS OTP, login and sessions for Solar Wealth Grow",
    version=VERSION,
    lifespan=lifespan,
)

# - If CORS_ORIGINS="*": allow_credentials must be False (browsers don't support credentials with wildcard)
# - If CORS_ORIGINS is a specific list: allow_credentials can be True
cors_origins_env = os.getenv("CORS_ORIGINS", "*")

if cors_origins_env == "*":
    cors_origins = ["*"]
    allow_credentials = False
    logger.warning(
        "CORS configured with wildcard origin ('*'). "
        "For production, set CORS_ORIGINS to specific domains (e.g., 'https://app.example.com')"
    )
else:
    cors_origins = [origin.strip() for origin in cors_origins_env.split(",")]
    allow_credentials = True
    logger.info(f"CORS configured with specific origins: {cors_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(auth.router)
app.include_router(profile.router)
app.include_router(health.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": SERVICE_NAME,
        "version": VERSION,
        "status": "running"
    }


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    # Application logs go through structured logging; skip uvicorn's access log.
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=port,
        access_log=False
    )
