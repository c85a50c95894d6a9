"""
菜品数据访问
负责菜品查询的 SQL 组装以及 JSON 列（tags、meal_types）的编解码
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

import duckdb

from ..core.database import fetch_all, fetch_one
from ..core.query import build_dish_predicates, run_paged
from ..models.dish import Dish, DishCreate, MealType, MEAL_TYPE_ORDER
from ..models.filters import DishFilters
from .base import BaseRepository

logger = logging.getLogger(__name__)

# 列表查询字段，分类缺失或已删除时分类名为空字符串
LIST_COLUMNS = """
    d._id AS _id,
    d.name AS name,
    d.description AS description,
    d.price AS price,
    d.categoryId AS categoryId,
    COALESCE(dc.name, '') AS categoryName,
    d.tags AS tags,
    d.meal_types AS meal_types,
    d.status AS status,
    d.isRecommended AS isRecommended,
    d.calories AS calories,
    d.protein AS protein,
    d.fat AS fat,
    d.carbohydrate AS carbohydrate,
    d.createBy AS createBy,
    d.createTime AS createTime,
    d.updateTime AS updateTime
"""

CATEGORY_JOIN = "LEFT JOIN dish_categories dc ON d.categoryId = dc._id AND dc.status != 'deleted'"

# 可更新字段：模型属性名 -> 列名
UPDATABLE_COLUMNS = {
    "name": "name",
    "category_id": "categoryId",
    "description": "description",
    "price": "price",
    "tags": "tags",
    "meal_types": "meal_types",
    "status": "status",
    "is_recommended": "isRecommended",
    "calories": "calories",
    "protein": "protein",
    "fat": "fat",
    "carbohydrate": "carbohydrate",
}

JSON_COLUMNS = {"tags", "meal_types"}


def _encode_meal_types(meal_types) -> List[str]:
    members = {MealType(m) for m in meal_types}
    return [m.value for m in MEAL_TYPE_ORDER if m in members]


class DishRepository(BaseRepository):
    """菜品仓储"""

    table = "dishes"

    def _to_dish(self, row: Dict[str, Any]) -> Dish:
        """把查询行转换为菜品模型，JSON 列在此解码"""
        data = dict(row)
        data["tags"] = [str(tag) for tag in self.decode_json_list(row.get("tags"), "dishes.tags")]

        meal_types = []
        for value in self.decode_json_list(row.get("meal_types"), "dishes.meal_types"):
            meal_type = MealType.parse(value)
            if meal_type is None:
                logger.warning("Dish %s has unknown meal type %r", row.get("_id"), value)
                continue
            meal_types.append(meal_type)
        data["meal_types"] = _encode_meal_types(meal_types)
        return Dish.model_validate(data)

    def list(
        self,
        conn: duckdb.DuckDBPyConnection,
        filters: DishFilters,
        available_only: bool = False,
    ) -> Tuple[int, List[Dish]]:
        """分页查询菜品，按 _id 倒序"""
        predicates = build_dish_predicates(filters, available_only=available_only)
        total, rows = run_paged(
            conn,
            count_sql="SELECT COUNT(*) FROM dishes d {where}",
            data_sql=f"""
                SELECT {LIST_COLUMNS}
                FROM dishes d
                {CATEGORY_JOIN}
                {{where}}
                ORDER BY d._id DESC
            """,
            predicates=predicates,
            pagination=filters.pagination,
        )
        return total, [self._to_dish(row) for row in rows]

    def get(
        self,
        conn: duckdb.DuckDBPyConnection,
        dish_id: str,
        include_deleted: bool = False,
    ) -> Optional[Dish]:
        """按ID获取菜品详情（含分类名、创建人及其部门）"""
        query = f"""
            SELECT {LIST_COLUMNS},
                u.nickName AS createByName,
                dept.name AS createByDepartment
            FROM dishes d
            {CATEGORY_JOIN}
            LEFT JOIN users u ON d.createBy = u._id
            LEFT JOIN departments dept ON u.departmentId = dept._id
            WHERE d._id = ?
        """
        if not include_deleted:
            query += " AND d.status != 'deleted'"
        row = fetch_one(conn, query, [dish_id])
        return self._to_dish(row) if row else None

    def get_prices(self, conn: duckdb.DuckDBPyConnection, dish_ids: Sequence[str]) -> Dict[str, Decimal]:
        """获取未删除菜品的当前价格"""
        if not dish_ids:
            return {}
        rows = fetch_all(
            conn,
            f"SELECT _id, price FROM dishes WHERE status != 'deleted' AND _id IN ({self.placeholders(dish_ids)})",
            list(dish_ids),
        )
        return {row["_id"]: row["price"] for row in rows}

    def insert(self, conn: duckdb.DuckDBPyConnection, data: DishCreate, actor_id: Optional[str]) -> str:
        """插入菜品，返回新ID"""
        dish_id = self.new_id()
        conn.execute(
            """
            INSERT INTO dishes (
                _id, name, categoryId, description, price, tags, meal_types,
                status, isRecommended, calories, protein, fat, carbohydrate,
                createBy, createTime, updateTime
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, now(), now())
            """,
            [
                dish_id,
                data.name,
                data.category_id,
                data.description,
                data.price,
                self.encode_json(list(data.tags)),
                self.encode_json(_encode_meal_types(data.meal_types)),
                data.status,
                data.is_recommended,
                data.calories,
                data.protein,
                data.fat,
                data.carbohydrate,
                actor_id,
            ],
        )
        return dish_id

    def update(
        self,
        conn: duckdb.DuckDBPyConnection,
        dish_id: str,
        changes: Dict[str, Any],
        actor_id: Optional[str],
    ) -> bool:
        """
        部分更新未删除的菜品

        Returns:
            是否有行被更新
        """
        assignments = []
        values: List[Any] = []
        for field, value in changes.items():
            column = UPDATABLE_COLUMNS.get(field)
            if column is None:
                continue
            if field == "meal_types" and value is not None:
                value = _encode_meal_types(value)
            if column in JSON_COLUMNS:
                value = self.encode_json(value)
            assignments.append(f"{column} = ?")
            values.append(value)

        assignments.append("updateBy = ?")
        values.append(actor_id)
        assignments.append("updateTime = now()")

        rows = fetch_all(
            conn,
            f"UPDATE dishes SET {', '.join(assignments)} WHERE _id = ? AND status != 'deleted' RETURNING _id",
            values + [dish_id],
        )
        return bool(rows)

    def soft_delete(self, conn: duckdb.DuckDBPyConnection, dish_ids: Sequence[str],
                    actor_id: Optional[str]) -> int:
        """把菜品标记为已删除，已删除或不存在的ID不计数"""
        if not dish_ids:
            return 0
        rows = fetch_all(
            conn,
            f"""
            UPDATE dishes SET status = 'deleted', updateBy = ?, updateTime = now()
            WHERE status != 'deleted' AND _id IN ({self.placeholders(dish_ids)})
            RETURNING _id
            """,
            [actor_id, *dish_ids],
        )
        return len(rows)

    def batch_update_status(self, conn: duckdb.DuckDBPyConnection, dish_ids: Sequence[str],
                            status: str, actor_id: Optional[str]) -> int:
        """批量修改未删除菜品的状态，返回实际更新行数"""
        if not dish_ids:
            return 0
        rows = fetch_all(
            conn,
            f"""
            UPDATE dishes SET status = ?, updateBy = ?, updateTime = now()
            WHERE status != 'deleted' AND _id IN ({self.placeholders(dish_ids)})
            RETURNING _id
            """,
            [status, actor_id, *dish_ids],
        )
        return len(rows)
