from fastapi import APIRouter

from mediasync.api import media

api_router = APIRouter()

api_router.include_router(media.router)
