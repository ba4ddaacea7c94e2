"""Health check endpoint."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from adapter.mongodb.connection import get_mongodb_client
from api.dependencies import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health():
    """Health check endpoint with dependency status."""
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
        "services": {}
    }

    try:
        settings = get_settings()
        mongo_client = get_mongodb_client(settings.mongo_url)
        if mongo_client:
            mongo_client.admin.command('ping')
            health_status["services"]["mongodb"] = {
                "status": "healthy",
                "message": "Connection successful"
            }
        else:
            health_status["services"]["mongodb"] = {
                "status": "unhealthy",
                "message": "Connection failed or not configured"
            }
    except Exception as e:
        health_status["services"]["mongodb"] = {
            "status": "unhealthy",
            "message": f"Connection error: {str(e)[:200]}"
        }

    if health_status["services"]["mongodb"]["status"] != "healthy":
        health_status["status"] = "unhealthy"
        logger.warning("Health check failed", extra={"services": health_status["services"]})
        return JSONResponse(status_code=503, content=health_status)

    return health_status
