"""
API routes and endpoints.
"""

from fastapi import APIRouter
from .v1 import admin, dishes, menus

api_router = APIRouter()

# 包含所有v1路由
api_router.include_router(dishes.router, prefix="/admin/dishes", tags=["菜品"])
api_router.include_router(menus.router, prefix="/admin/menu", tags=["菜单"])
api_router.include_router(admin.router, prefix="/admin", tags=["后台"])
