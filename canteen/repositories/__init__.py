"""
数据访问层
"""

from .category_repository import CategoryRepository
from .dish_repository import DishRepository
from .menu_repository import MenuRepository
from .user_repository import UserRepository

__all__ = ["CategoryRepository", "DishRepository", "MenuRepository", "UserRepository"]
