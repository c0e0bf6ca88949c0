from fastapi import APIRouter

from mediaharvest.api.v1 import media

api_router = APIRouter(prefix="/v1")

api_router.include_router(media.router, tags=["Media"])
