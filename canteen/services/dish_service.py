"""
菜品服务
菜品列表/详情查询、软删除以及后台的菜品与分类维护

约定：
- 查询不到时返回 None / False，由接口层决定 HTTP 状态
- 删除均为软删除；重复删除或删除不存在的菜品视为无操作
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from ..core.database import DatabaseManager
from ..core.exceptions import CategoryNotFoundError, DishNotFoundError, ValidationError
from ..models.base import PageResult
from ..models.dish import (
    Dish,
    DishCategory,
    DishCategoryCreate,
    DishCreate,
    DishStatus,
    DishUpdate,
    MealType,
)
from ..models.filters import DishFilters
from ..repositories.category_repository import CategoryRepository
from ..repositories.dish_repository import DishRepository

logger = logging.getLogger(__name__)

FilterInput = Union[DishFilters, Mapping[str, Any], None]


def _as_filters(params: FilterInput) -> DishFilters:
    if isinstance(params, DishFilters):
        return params
    return DishFilters.from_params(params)


class DishService:
    """菜品服务"""

    def __init__(self, db: DatabaseManager):
        self.db = db
        self.dishes = DishRepository(db)
        self.categories = CategoryRepository(db)

    # ---- 查询 ----

    def list_dishes(self, params: FilterInput = None) -> PageResult:
        """菜品列表，默认排除已删除菜品"""
        filters = _as_filters(params)
        with self.db.snapshot() as conn:
            total, items = self.dishes.list(conn, filters)
        return PageResult.create(items, total, filters.pagination)

    def list_available_dishes(self, params: FilterInput = None) -> PageResult:
        """可用于编排菜单的上架菜品，忽略 status 参数"""
        filters = _as_filters(params)
        with self.db.snapshot() as conn:
            total, items = self.dishes.list(conn, filters, available_only=True)
        return PageResult.create(items, total, filters.pagination)

    def list_dishes_by_meal_type(self, meal_type: str, params: FilterInput = None) -> PageResult:
        """按餐次获取菜品列表，餐次必须有效"""
        parsed = MealType.parse(meal_type)
        if parsed is None:
            raise ValidationError("无效的餐次类型", details={"meal_type": meal_type})
        filters = _as_filters(params).model_copy(update={"meal_type": parsed.value})
        return self.list_dishes(filters)

    def get_dish_detail(self, dish_id: str) -> Optional[Dish]:
        """菜品详情，不存在或已删除时返回 None"""
        with self.db.connection() as conn:
            return self.dishes.get(conn, dish_id)

    # ---- 写操作 ----

    def create_dish(self, data: DishCreate, actor_id: Optional[str] = None) -> Dish:
        """创建菜品"""
        with self.db.transaction() as conn:
            self._check_category(conn, data.category_id)
            dish_id = self.dishes.insert(conn, data, actor_id)
        logger.info("Dish %s created by %s", dish_id, actor_id)
        return self.get_dish_detail(dish_id)

    def update_dish(self, dish_id: str, data: DishUpdate, actor_id: Optional[str] = None) -> Dish:
        """部分更新菜品"""
        changes = data.changes()
        if not changes:
            raise ValidationError("没有可更新的字段")
        with self.db.transaction() as conn:
            if changes.get("category_id"):
                self._check_category(conn, changes["category_id"])
            if not self.dishes.update(conn, dish_id, changes, actor_id):
                raise DishNotFoundError(dish_id)
        logger.info("Dish %s updated by %s: %s", dish_id, actor_id, sorted(changes))
        return self.get_dish_detail(dish_id)

    def update_dish_status(self, dish_id: str, status: str, actor_id: Optional[str] = None) -> Dish:
        """上架/下架菜品"""
        try:
            target = DishStatus(status)
        except ValueError:
            raise ValidationError("无效的菜品状态", details={"status": status})
        if target == DishStatus.DELETED:
            raise ValidationError("删除菜品请使用删除接口")
        with self.db.transaction() as conn:
            if not self.dishes.update(conn, dish_id, {"status": target.value}, actor_id):
                raise DishNotFoundError(dish_id)
        return self.get_dish_detail(dish_id)

    def soft_delete_dish(self, dish_id: str, actor_id: Optional[str] = None) -> bool:
        """
        软删除菜品

        Returns:
            True 表示本次把菜品标记为删除；False 表示菜品已删除或不存在（无操作）
        """
        with self.db.transaction() as conn:
            deleted = self.dishes.soft_delete(conn, [dish_id], actor_id) > 0
        if deleted:
            logger.info("Dish %s soft-deleted by %s", dish_id, actor_id)
        else:
            logger.debug("Soft delete of dish %s was a no-op", dish_id)
        return deleted

    def batch_soft_delete(self, dish_ids: Sequence[str], actor_id: Optional[str] = None) -> Dict[str, int]:
        """批量软删除，在同一事务中完成"""
        unique_ids = list(dict.fromkeys(i for i in dish_ids if i))
        if not unique_ids:
            raise ValidationError("菜品ID列表不能为空")
        with self.db.transaction() as conn:
            success_count = self.dishes.soft_delete(conn, unique_ids, actor_id)
        logger.info("Batch soft delete by %s: %d/%d", actor_id, success_count, len(unique_ids))
        return {"successCount": success_count, "totalCount": len(unique_ids)}

    def batch_update_status(self, dish_ids: Sequence[str], status: str,
                            actor_id: Optional[str] = None) -> Dict[str, int]:
        """
        批量上架/下架

        只接受 active / inactive；已删除或不存在的ID不计入 updatedCount
        """
        try:
            target = DishStatus(status)
        except ValueError:
            raise ValidationError("无效的菜品状态", details={"status": status})
        if target == DishStatus.DELETED:
            raise ValidationError("删除菜品请使用删除接口")
        unique_ids = list(dict.fromkeys(i for i in dish_ids if i))
        if not unique_ids:
            raise ValidationError("菜品ID列表不能为空")
        with self.db.transaction() as conn:
            updated = self.dishes.batch_update_status(conn, unique_ids, target.value, actor_id)
        logger.info("Batch status %s by %s: %d/%d", target.value, actor_id, updated, len(unique_ids))
        return {"updatedCount": updated, "totalCount": len(unique_ids)}

    # ---- 分类 ----

    def list_categories(self) -> List[DishCategory]:
        with self.db.connection() as conn:
            return self.categories.list_with_counts(conn)

    def create_category(self, data: DishCategoryCreate, actor_id: Optional[str] = None) -> DishCategory:
        with self.db.transaction() as conn:
            category_id = self.categories.insert(conn, data, actor_id)
        with self.db.connection() as conn:
            return self.categories.get(conn, category_id)

    def update_category(self, category_id: str, data: DishCategoryCreate,
                        actor_id: Optional[str] = None) -> DishCategory:
        with self.db.transaction() as conn:
            if not self.categories.update(conn, category_id, data, actor_id):
                raise CategoryNotFoundError(category_id)
        logger.info("Category %s updated by %s", category_id, actor_id)
        with self.db.connection() as conn:
            return self.categories.get(conn, category_id)

    def _check_category(self, conn, category_id: Optional[str]) -> None:
        if category_id and not self.categories.exists(conn, category_id):
            raise ValidationError("菜品分类不存在", details={"category_id": category_id})
