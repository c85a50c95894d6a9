"""
菜品分类数据访问
"""

from typing import List, Optional

import duckdb

from ..core.database import fetch_all, fetch_one
from ..models.dish import DishCategory, DishCategoryCreate
from .base import BaseRepository


class CategoryRepository(BaseRepository):
    """菜品分类仓储"""

    table = "dish_categories"

    def list_with_counts(self, conn: duckdb.DuckDBPyConnection) -> List[DishCategory]:
        """获取未删除分类及其上架菜品数量"""
        rows = fetch_all(
            conn,
            """
            SELECT dc._id AS _id, dc.name AS name, dc.description AS description,
                   dc.sort AS sort, dc.status AS status, dc.createTime AS createTime,
                   COUNT(d._id) AS dishCount
            FROM dish_categories dc
            LEFT JOIN dishes d ON dc._id = d.categoryId AND d.status = 'active'
            WHERE dc.status != 'deleted'
            GROUP BY dc._id, dc.name, dc.description, dc.sort, dc.status, dc.createTime
            ORDER BY dc.sort ASC, dc.createTime DESC
            """,
        )
        return [DishCategory.model_validate(row) for row in rows]

    def get(self, conn: duckdb.DuckDBPyConnection, category_id: str) -> Optional[DishCategory]:
        row = fetch_one(
            conn,
            """
            SELECT _id, name, description, sort, status, createTime
            FROM dish_categories WHERE _id = ? AND status != 'deleted'
            """,
            [category_id],
        )
        return DishCategory.model_validate(row) if row else None

    def insert(self, conn: duckdb.DuckDBPyConnection, data: DishCategoryCreate,
               actor_id: Optional[str]) -> str:
        category_id = self.new_id()
        conn.execute(
            """
            INSERT INTO dish_categories (_id, name, description, sort, status, createBy, createTime)
            VALUES (?, ?, ?, ?, 'active', ?, now())
            """,
            [category_id, data.name, data.description, data.sort, actor_id],
        )
        return category_id

    def update(self, conn: duckdb.DuckDBPyConnection, category_id: str,
               data: DishCategoryCreate, actor_id: Optional[str]) -> bool:
        """整体更新分类，已删除的分类不更新"""
        rows = fetch_all(
            conn,
            """
            UPDATE dish_categories
            SET name = ?, description = ?, sort = ?, updateBy = ?, updateTime = now()
            WHERE _id = ? AND status != 'deleted'
            RETURNING _id
            """,
            [data.name, data.description, data.sort, actor_id, category_id],
        )
        return bool(rows)
