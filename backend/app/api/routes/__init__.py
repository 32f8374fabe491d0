from fastapi import APIRouter

from app.api.routes import admin_content, health, resolve

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(resolve.router, tags=["resolve"])
api_router.include_router(admin_content.router, tags=["admin"])
