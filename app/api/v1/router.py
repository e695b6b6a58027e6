from fastapi import APIRouter

from app.api.v1.endpoints import (
    agents,
    campaigns,
    commissions,
    health,
    interactions,
    leads,
    public,
    workflows,
)

router = APIRouter(prefix="/api/v1")

router.include_router(public.router)
router.include_router(leads.router)
router.include_router(interactions.router)
router.include_router(agents.router)
router.include_router(commissions.router)
router.include_router(workflows.router)
router.include_router(campaigns.router)
router.include_router(health.router)
