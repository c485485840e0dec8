"""Top-level API router: mounts all domain routers under /api/v1."""

from fastapi import APIRouter

from verdict.api.routes import ratings

api_router = APIRouter()
api_router.include_router(ratings.router, prefix="/ratings", tags=["ratings"])
