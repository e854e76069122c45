from fastapi import APIRouter

from variant_engine.api.endpoints import variant_sessions

api_router = APIRouter()
api_router.include_router(variant_sessions.router, prefix="/variant-sessions", tags=["variant-sessions"])
