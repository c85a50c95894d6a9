"""
查询组合层
按过滤条件逐条构造 WHERE 片段，片段与绑定参数按相同顺序追加，
任何值都只通过占位符绑定，不拼接进 SQL 文本

计数查询与数据查询共享同一份片段和参数，并在同一个快照连接上执行
"""

from typing import Any, Dict, List, Tuple

import duckdb

from ..models.base import PaginationParams
from ..models.filters import DishFilters, MenuHistoryFilters
from .database import fetch_all, fetch_value

# 菜品餐次的集合成员判断：把 JSON 数组解析为字符串列表后做精确包含，
# 非数组的历史脏数据解析为 NULL，不会匹配任何餐次
MEAL_TYPE_MEMBERSHIP = "list_contains(from_json({column}, '[\"VARCHAR\"]'), ?)"


class Predicates:
    """WHERE 子句构造器"""

    def __init__(self):
        self._fragments: List[str] = []
        self.params: List[Any] = []

    def add(self, fragment: str, *values: Any) -> "Predicates":
        """追加一个条件片段及其绑定值，占位符数量必须与值的数量一致"""
        if fragment.count("?") != len(values):
            raise ValueError(f"placeholder count mismatch in {fragment!r}")
        self._fragments.append(fragment)
        self.params.extend(values)
        return self

    def never(self) -> "Predicates":
        """追加一个恒假条件"""
        return self.add("1 = 0")

    def where(self) -> str:
        if not self._fragments:
            return ""
        return "WHERE " + " AND ".join(self._fragments)

    def __len__(self) -> int:
        return len(self._fragments)


def build_dish_predicates(filters: DishFilters, available_only: bool = False) -> Predicates:
    """
    根据菜品过滤条件构造查询条件（表别名 d）

    Args:
        filters: 已解析的过滤条件
        available_only: 仅返回上架菜品，此时忽略 status 过滤
    """
    predicates = Predicates()

    if filters.unmatchable:
        return predicates.never()

    if available_only:
        predicates.add("d.status = ?", "active")
    elif filters.status is not None:
        predicates.add("d.status = ?", filters.status)
    else:
        predicates.add("d.status != ?", "deleted")

    if filters.category_id:
        predicates.add("d.categoryId = ?", filters.category_id)

    if filters.keyword:
        predicates.add("contains(lower(d.name), lower(?))", filters.keyword)

    if filters.meal_type is not None:
        predicates.add(MEAL_TYPE_MEMBERSHIP.format(column="d.meal_types"), filters.meal_type)

    if filters.is_recommended is not None:
        predicates.add("d.isRecommended = ?", filters.is_recommended)

    if filters.min_price is not None:
        predicates.add("d.price >= ?", filters.min_price)

    if filters.max_price is not None:
        predicates.add("d.price <= ?", filters.max_price)

    return predicates


def build_menu_history_predicates(filters: MenuHistoryFilters) -> Predicates:
    """根据菜单历史过滤条件构造查询条件（表别名 m），已删除菜单始终排除"""
    predicates = Predicates()

    if filters.unmatchable:
        return predicates.never()

    predicates.add("m.status = ?", "active")

    if filters.start_date is not None:
        predicates.add("m.publishDate >= ?", filters.start_date)

    if filters.end_date is not None:
        predicates.add("m.publishDate <= ?", filters.end_date)

    if filters.meal_type is not None:
        predicates.add("m.mealType = ?", filters.meal_type)

    if filters.publish_status is not None:
        predicates.add("m.publishStatus = ?", filters.publish_status)

    return predicates


def run_paged(
    conn: duckdb.DuckDBPyConnection,
    count_sql: str,
    data_sql: str,
    predicates: Predicates,
    pagination: PaginationParams,
) -> Tuple[int, List[Dict[str, Any]]]:
    """
    执行计数查询和分页数据查询

    Args:
        count_sql / data_sql: 含 {where} 占位的 SQL 模板；data_sql 需自带 ORDER BY
        predicates: 两条查询共享的条件
        pagination: 分页参数

    Returns:
        (总数, 当前页数据)
    """
    where = predicates.where()
    total = int(fetch_value(conn, count_sql.format(where=where), predicates.params) or 0)
    if total == 0 or pagination.offset >= total:
        return total, []

    rows = fetch_all(
        conn,
        data_sql.format(where=where) + "\nLIMIT ? OFFSET ?",
        predicates.params + [pagination.page_size, pagination.offset],
    )
    return total, rows
