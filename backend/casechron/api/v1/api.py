"""
Main API router aggregator
"""
from fastapi import APIRouter

from casechron.api.v1.endpoints import (
    analysis,
    cases,
    chronologies,
    documents,
    entries,
    health,
    parties,
)

api_router = APIRouter()

# Include routers
api_router.include_router(cases.router, prefix="/cases", tags=["Cases"])
api_router.include_router(parties.router, prefix="/cases", tags=["Parties"])
api_router.include_router(chronologies.router, prefix="/cases", tags=["Chronologies"])
api_router.include_router(entries.router, prefix="/cases", tags=["Entries"])
api_router.include_router(documents.router, tags=["Documents"])
api_router.include_router(analysis.router, tags=["AI Analysis"])
api_router.include_router(health.router, prefix="/health", tags=["Health"])
