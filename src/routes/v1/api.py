from fastapi import APIRouter

from src.analysis.router import router as analysis_router
from src.routes.v1.websockets import router as ws_router

api_router = APIRouter()

api_router.include_router(analysis_router)
api_router.include_router(ws_router, prefix="/ws")
