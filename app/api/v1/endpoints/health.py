from fastapi import APIRouter

from app.core.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health() -> dict:
    """Liveness check."""
    return {"status": "healthy", "app": settings.APP_NAME}
