"""
接口层依赖
数据库管理器挂在 app.state 上，服务按请求构造
"""

from typing import Optional

from fastapi import Depends, Header, Request

from ..core.database import DatabaseManager
from ..services import AdminService, DishService, MenuService


def get_db(request: Request) -> DatabaseManager:
    return request.app.state.db


def get_dish_service(db: DatabaseManager = Depends(get_db)) -> DishService:
    return DishService(db)


def get_menu_service(db: DatabaseManager = Depends(get_db)) -> MenuService:
    return MenuService(db)


def get_admin_service(db: DatabaseManager = Depends(get_db)) -> AdminService:
    return AdminService(db)


def get_admin_id(x_admin_id: Optional[str] = Header(None, alias="X-Admin-Id")) -> Optional[str]:
    """当前操作的管理员ID，由上游鉴权网关写入请求头"""
    if x_admin_id is None:
        return None
    return x_admin_id.strip() or None
