"""
菜单数据访问
菜单头、菜单菜品行、历史列表与模板查询
"""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

import duckdb

from ..core.database import fetch_all, fetch_one
from ..core.query import build_menu_history_predicates, run_paged
from ..models.dish import MealType
from ..models.filters import MenuHistoryFilters
from ..models.menu import (
    Menu,
    MenuDishLine,
    MenuSummary,
    MenuTemplate,
    PublishStatus,
    default_menu_name,
)
from .base import BaseRepository

MENU_COLUMNS = """
    m._id AS _id,
    m.name AS name,
    m.description AS description,
    m.publishDate AS publishDate,
    m.mealType AS mealType,
    m.publishStatus AS publishStatus,
    m.publisherId AS publisherId,
    u.nickName AS publisherName,
    m.createTime AS createTime,
    m.updateTime AS updateTime
"""


class MenuRepository(BaseRepository):
    """菜单仓储"""

    table = "menus"

    def _to_menu(self, row: Dict[str, Any]) -> Menu:
        data = dict(row)
        if not data.get("name"):
            data["name"] = default_menu_name(data["publishDate"], data["mealType"])
        return Menu.model_validate(data)

    def get(self, conn: duckdb.DuckDBPyConnection, menu_id: str) -> Optional[Menu]:
        """按ID获取未删除的菜单（不含菜品行）"""
        row = fetch_one(
            conn,
            f"""
            SELECT {MENU_COLUMNS}
            FROM menus m
            LEFT JOIN users u ON m.publisherId = u._id
            WHERE m._id = ? AND m.status = 'active'
            """,
            [menu_id],
        )
        return self._to_menu(row) if row else None

    def find_by_date(self, conn: duckdb.DuckDBPyConnection, publish_date: date,
                     meal_type: str) -> Optional[Menu]:
        """按日期和餐次查找未删除的菜单（不含菜品行）"""
        row = fetch_one(
            conn,
            f"""
            SELECT {MENU_COLUMNS}
            FROM menus m
            LEFT JOIN users u ON m.publisherId = u._id
            WHERE m.publishDate = ? AND m.mealType = ? AND m.status = 'active'
            ORDER BY m.createTime DESC
            LIMIT 1
            """,
            [publish_date, MealType(meal_type).value],
        )
        return self._to_menu(row) if row else None

    def lines(self, conn: duckdb.DuckDBPyConnection, menu_id: str) -> List[MenuDishLine]:
        """菜单菜品行，按 sort 升序、菜品名升序"""
        rows = fetch_all(
            conn,
            """
            SELECT
                md._id AS _id,
                md.menuId AS menuId,
                md.dishId AS dishId,
                d.name AS dishName,
                d.description AS dishDescription,
                COALESCE(dc.name, '') AS categoryName,
                d.price AS originalPrice,
                md.price AS price,
                md.sort AS sort
            FROM menu_dishes md
            LEFT JOIN dishes d ON md.dishId = d._id
            LEFT JOIN dish_categories dc ON d.categoryId = dc._id AND dc.status != 'deleted'
            WHERE md.menuId = ? AND md.status = 'active'
            ORDER BY md.sort ASC, d.name ASC, md._id ASC
            """,
            [menu_id],
        )
        return [MenuDishLine.model_validate(row) for row in rows]

    def insert(
        self,
        conn: duckdb.DuckDBPyConnection,
        publish_date: date,
        meal_type: str,
        name: str,
        description: Optional[str],
        publisher_id: Optional[str],
    ) -> str:
        menu_id = self.new_id()
        conn.execute(
            """
            INSERT INTO menus (
                _id, name, description, publishDate, mealType,
                publishStatus, status, publisherId, createTime, updateTime
            ) VALUES (?, ?, ?, ?, ?, 'draft', 'active', ?, now(), now())
            """,
            [menu_id, name, description, publish_date, MealType(meal_type).value, publisher_id],
        )
        return menu_id

    def update_header(
        self,
        conn: duckdb.DuckDBPyConnection,
        menu_id: str,
        name: str,
        description: Optional[str],
        publisher_id: Optional[str],
    ) -> None:
        """更新菜单基本信息并退回草稿状态"""
        conn.execute(
            """
            UPDATE menus
            SET name = ?, description = ?, publisherId = ?,
                publishStatus = 'draft', updateTime = now()
            WHERE _id = ?
            """,
            [name, description, publisher_id, menu_id],
        )

    def set_publish_status(
        self,
        conn: duckdb.DuckDBPyConnection,
        menu_id: str,
        target: PublishStatus,
        allowed_from: Iterable[str],
        operator_id: Optional[str] = None,
    ) -> bool:
        """
        条件更新发布状态，只有当前状态在 allowed_from 中时才更新

        Returns:
            是否更新成功
        """
        allowed = [PublishStatus(s).value for s in allowed_from]
        params: List[Any] = [PublishStatus(target).value]
        assignments = "publishStatus = ?, updateTime = now()"
        if operator_id is not None:
            assignments += ", publisherId = ?"
            params.append(operator_id)
        rows = fetch_all(
            conn,
            f"""
            UPDATE menus SET {assignments}
            WHERE _id = ? AND status = 'active'
              AND publishStatus IN ({self.placeholders(allowed)})
            RETURNING _id
            """,
            params + [menu_id, *allowed],
        )
        return bool(rows)

    def replace_lines(
        self,
        conn: duckdb.DuckDBPyConnection,
        menu_id: str,
        lines: List[Tuple[str, Decimal, int]],
    ) -> int:
        """
        替换菜单菜品行：旧行标记删除后插入新行

        Args:
            lines: (dish_id, price, sort) 列表

        Returns:
            新插入的行数
        """
        conn.execute(
            "UPDATE menu_dishes SET status = 'deleted' WHERE menuId = ? AND status = 'active'",
            [menu_id],
        )
        for dish_id, price, sort in lines:
            conn.execute(
                """
                INSERT INTO menu_dishes (_id, menuId, dishId, price, sort, status, createTime)
                VALUES (?, ?, ?, ?, ?, 'active', now())
                """,
                [self.new_id(), menu_id, dish_id, price, sort],
            )
        return len(lines)

    def soft_delete(self, conn: duckdb.DuckDBPyConnection, menu_id: str) -> bool:
        """软删除菜单并级联删除其菜品行；已删除或不存在时返回 False"""
        rows = fetch_all(
            conn,
            """
            UPDATE menus SET status = 'deleted', updateTime = now()
            WHERE _id = ? AND status = 'active'
            RETURNING _id
            """,
            [menu_id],
        )
        if not rows:
            return False
        conn.execute(
            "UPDATE menu_dishes SET status = 'deleted' WHERE menuId = ? AND status = 'active'",
            [menu_id],
        )
        return True

    def history(self, conn: duckdb.DuckDBPyConnection,
                filters: MenuHistoryFilters) -> Tuple[int, List[MenuSummary]]:
        """菜单历史分页：发布日期倒序，同日按餐次排序"""
        predicates = build_menu_history_predicates(filters)
        total, rows = run_paged(
            conn,
            count_sql="SELECT COUNT(*) FROM menus m {where}",
            data_sql=f"""
                SELECT {MENU_COLUMNS},
                    (SELECT COUNT(*) FROM menu_dishes md
                     WHERE md.menuId = m._id AND md.status = 'active') AS dishCount,
                    (SELECT COALESCE(SUM(md.price), 0) FROM menu_dishes md
                     WHERE md.menuId = m._id AND md.status = 'active') AS totalPrice
                FROM menus m
                LEFT JOIN users u ON m.publisherId = u._id
                {{where}}
                ORDER BY m.publishDate DESC,
                    CASE m.mealType WHEN 'breakfast' THEN 1 WHEN 'lunch' THEN 2 ELSE 3 END ASC,
                    m._id DESC
            """,
            predicates=predicates,
            pagination=filters.pagination,
        )

        items = []
        for row in rows:
            data = dict(row)
            if not data.get("name"):
                data["name"] = default_menu_name(data["publishDate"], data["mealType"])
            data["mealTypeDisplay"] = MealType(data["mealType"]).display
            data["publishStatusDisplay"] = PublishStatus(data["publishStatus"]).display
            items.append(MenuSummary.model_validate(data))
        return total, items

    def templates(self, conn: duckdb.DuckDBPyConnection) -> List[MenuTemplate]:
        """启用中的菜单模板，最新的在前"""
        rows = fetch_all(
            conn,
            """
            SELECT _id, name, description, mealType, dishes, createTime
            FROM menu_templates
            WHERE status = 'active'
            ORDER BY createTime DESC, _id ASC
            """,
        )
        templates = []
        for row in rows:
            data = dict(row)
            data["dishes"] = [
                item for item in self.decode_json_list(row.get("dishes"), "menu_templates.dishes")
                if isinstance(item, dict)
            ]
            templates.append(MenuTemplate.model_validate(data))
        return templates

    def count_by_status(self, conn: duckdb.DuckDBPyConnection) -> Dict[str, int]:
        """未删除菜单按发布状态计数"""
        rows = fetch_all(
            conn,
            """
            SELECT publishStatus, COUNT(*) AS total
            FROM menus WHERE status = 'active'
            GROUP BY publishStatus
            """,
        )
        counts = {status.value: 0 for status in PublishStatus}
        for row in rows:
            counts[row["publishStatus"]] = int(row["total"])
        return counts
