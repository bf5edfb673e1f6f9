from fastapi import APIRouter
from beatmarket.api.v1.endpoints import auth, beats, orders, downloads, admin


api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(beats.router, prefix="/beats", tags=["beats"])
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(downloads.router, prefix="/downloads", tags=["downloads"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
