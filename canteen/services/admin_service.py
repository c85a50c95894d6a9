"""
后台概览服务
部门列表与首页统计
"""

import logging
from typing import Any, Dict, List

from ..core.database import DatabaseManager, fetch_value
from ..repositories.menu_repository import MenuRepository
from ..repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


class AdminService:
    """后台概览服务"""

    def __init__(self, db: DatabaseManager):
        self.db = db
        self.users = UserRepository(db)
        self.menus = MenuRepository(db)

    def list_departments(self) -> List[Dict[str, Any]]:
        with self.db.connection() as conn:
            rows = self.users.list_departments(conn)
        return [{**row, "memberCount": int(row["memberCount"])} for row in rows]

    def get_overview(self) -> Dict[str, Any]:
        """首页统计：上架菜品数、分类数、各发布状态的菜单数"""
        with self.db.snapshot() as conn:
            active_dishes = fetch_value(conn, "SELECT COUNT(*) FROM dishes WHERE status = 'active'")
            total_dishes = fetch_value(conn, "SELECT COUNT(*) FROM dishes WHERE status != 'deleted'")
            categories = fetch_value(conn, "SELECT COUNT(*) FROM dish_categories WHERE status != 'deleted'")
            menus = self.menus.count_by_status(conn)
        return {
            "dishCount": int(total_dishes),
            "activeDishCount": int(active_dishes),
            "categoryCount": int(categories),
            "menuCount": sum(menus.values()),
            "menusByStatus": menus,
        }
