"""
业务逻辑服务层
"""

from .admin_service import AdminService
from .dish_service import DishService
from .menu_service import MenuService

__all__ = ["AdminService", "DishService", "MenuService"]
