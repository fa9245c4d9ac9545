"""
Main API router aggregator
"""
from fastapi import APIRouter

from iara.api.v1.endpoints import (
    admin,
    analysis,
    approvals,
    auth,
    cases,
    files,
    health,
    settings,
    upload,
)

api_router = APIRouter()

# Include routers
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(approvals.router, tags=["Approvals"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
api_router.include_router(settings.router, prefix="/settings", tags=["Settings"])
api_router.include_router(cases.router, tags=["Cases"])
api_router.include_router(upload.router, tags=["Upload"])
api_router.include_router(files.router, tags=["Extraction"])
api_router.include_router(analysis.router, tags=["AI Analysis"])
api_router.include_router(health.router, prefix="/health", tags=["Health"])
