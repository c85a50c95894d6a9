"""
菜单服务
按日期和餐次编排菜单：草稿保存、发布、撤回、归档、删除，以及历史与模板查询

业务规则：
- 每个 (日期, 餐次) 最多一份未删除的菜单；保存草稿是幂等的 upsert
- 已发布的菜单不能直接覆盖，需先撤回（ConstraintViolationError）
- 已归档的菜单只读
- 菜品行的价格为保存时的快照，缺省取菜品当前价格
- 所有多步写操作在同一事务中完成，任一步失败整体回滚
"""

import logging
from datetime import date
from typing import Any, List, Mapping, Optional, Union

from ..core.database import DatabaseManager
from ..core.exceptions import (
    ConstraintViolationError,
    MenuNotFoundError,
    MenuStatusError,
    ValidationError,
)
from ..models.base import PageResult
from ..models.dish import MealType
from ..models.filters import MenuHistoryFilters
from ..models.menu import (
    Menu,
    MenuDishItem,
    MenuDishLine,
    MenuDraft,
    MenuTemplate,
    PublishStatus,
    STATUS_TRANSITIONS,
    can_transition,
    default_menu_name,
)
from ..repositories.dish_repository import DishRepository
from ..repositories.menu_repository import MenuRepository

logger = logging.getLogger(__name__)


def _sources_for(target: PublishStatus) -> List[str]:
    """可以转换到 target 的所有状态"""
    return [src.value for src, targets in STATUS_TRANSITIONS.items() if target in targets]


class MenuService:
    """菜单服务"""

    def __init__(self, db: DatabaseManager):
        self.db = db
        self.menus = MenuRepository(db)
        self.dishes = DishRepository(db)

    # ---- 查询 ----

    def get_menu_by_date(self, publish_date: date, meal_type: Union[MealType, str]) -> Optional[Menu]:
        """
        获取指定日期和餐次的菜单及其菜品行

        不区分发布状态；没有菜单时返回 None
        """
        parsed = MealType.parse(meal_type)
        if parsed is None:
            return None
        with self.db.snapshot() as conn:
            menu = self.menus.find_by_date(conn, publish_date, parsed.value)
            if menu is None:
                return None
            menu.dishes = self.menus.lines(conn, menu.id)
        return menu

    def get_menu(self, menu_id: str) -> Optional[Menu]:
        with self.db.snapshot() as conn:
            menu = self.menus.get(conn, menu_id)
            if menu is None:
                return None
            menu.dishes = self.menus.lines(conn, menu.id)
        return menu

    def get_menu_dishes(self, menu_id: str) -> List[MenuDishLine]:
        with self.db.snapshot() as conn:
            if self.menus.get(conn, menu_id) is None:
                raise MenuNotFoundError(menu_id)
            return self.menus.lines(conn, menu_id)

    def get_menu_history(self, params: Union[MenuHistoryFilters, Mapping[str, Any], None] = None) -> PageResult:
        """菜单历史分页，过滤条件可任意缺省"""
        filters = params if isinstance(params, MenuHistoryFilters) else MenuHistoryFilters.from_params(params)
        with self.db.snapshot() as conn:
            total, items = self.menus.history(conn, filters)
        return PageResult.create(items, total, filters.pagination)

    def get_menu_templates(self) -> List[MenuTemplate]:
        with self.db.connection() as conn:
            return self.menus.templates(conn)

    # ---- 写操作 ----

    def save_menu_draft(self, draft: MenuDraft, admin_id: Optional[str] = None) -> Menu:
        """
        保存菜单草稿

        同一日期餐次已有草稿或已撤回的菜单时更新该菜单，否则新建
        """
        with self.db.transaction() as conn:
            menu_id = self._upsert_draft(conn, draft, admin_id)
        logger.info("Menu draft %s saved for %s %s by %s",
                    menu_id, draft.publish_date, draft.meal_type, admin_id)
        return self.get_menu(menu_id)

    def publish_menu(self, draft: MenuDraft, admin_id: Optional[str] = None) -> Menu:
        """保存并发布菜单，两步在同一事务中完成"""
        with self.db.transaction() as conn:
            menu_id = self._upsert_draft(conn, draft, admin_id)
            self.menus.set_publish_status(
                conn, menu_id, PublishStatus.PUBLISHED, [PublishStatus.DRAFT.value], admin_id
            )
        logger.info("Menu %s published for %s %s by %s",
                    menu_id, draft.publish_date, draft.meal_type, admin_id)
        return self.get_menu(menu_id)

    def revoke_menu(self, menu_id: str, admin_id: Optional[str] = None) -> Menu:
        """撤回已发布的菜单"""
        return self._transition(menu_id, PublishStatus.REVOKED, admin_id)

    def archive_menu(self, menu_id: str, admin_id: Optional[str] = None) -> Menu:
        """归档菜单，归档后只读"""
        return self._transition(menu_id, PublishStatus.ARCHIVED, admin_id)

    def delete_menu(self, menu_id: str, admin_id: Optional[str] = None) -> bool:
        """
        软删除菜单及其菜品行

        Returns:
            是否本次删除；已删除或不存在时返回 False
        """
        with self.db.transaction() as conn:
            deleted = self.menus.soft_delete(conn, menu_id)
        if deleted:
            logger.info("Menu %s deleted by %s", menu_id, admin_id)
        return deleted

    def set_menu_dishes(self, menu_id: str, items: List[MenuDishItem]) -> Menu:
        """替换菜单的菜品行，已发布或已归档的菜单不可修改"""
        dish_ids = [item.dish_id for item in items]
        if len(dish_ids) != len(set(dish_ids)):
            raise ValidationError("菜单中的菜品不能重复")
        with self.db.transaction() as conn:
            menu = self.menus.get(conn, menu_id)
            if menu is None:
                raise MenuNotFoundError(menu_id)
            self._ensure_editable(menu.publish_status)
            self.menus.replace_lines(conn, menu_id, self._resolve_lines(conn, items))
        return self.get_menu(menu_id)

    # ---- 内部方法 ----

    def _upsert_draft(self, conn, draft: MenuDraft, admin_id: Optional[str]) -> str:
        name = draft.name or default_menu_name(draft.publish_date, draft.meal_type)
        existing = self.menus.find_by_date(conn, draft.publish_date, draft.meal_type)

        if existing is None:
            menu_id = self.menus.insert(
                conn, draft.publish_date, draft.meal_type, name, draft.description, admin_id
            )
        else:
            if existing.publish_status == PublishStatus.PUBLISHED:
                raise ConstraintViolationError(
                    "当日该餐次菜单已发布，请先撤回后再编辑",
                    error_code="MENU_ALREADY_PUBLISHED",
                    details={"menu_id": existing.id},
                )
            self._ensure_editable(existing.publish_status)
            menu_id = existing.id
            self.menus.update_header(conn, menu_id, name, draft.description, admin_id)

        self.menus.replace_lines(conn, menu_id, self._resolve_lines(conn, draft.dishes))
        return menu_id

    def _resolve_lines(self, conn, items: List[MenuDishItem]):
        """确定每行的价格快照和排序，菜品不存在或已删除时报错"""
        prices = self.dishes.get_prices(conn, [item.dish_id for item in items])
        missing = [item.dish_id for item in items if item.dish_id not in prices]
        if missing:
            raise ValidationError("菜品不存在或已被删除", details={"dish_ids": missing})

        lines = []
        for index, item in enumerate(items):
            price = item.price if item.price is not None else prices[item.dish_id]
            sort = item.sort if item.sort is not None else index
            lines.append((item.dish_id, price, sort))
        return lines

    @staticmethod
    def _ensure_editable(status: str) -> None:
        if PublishStatus(status) in (PublishStatus.PUBLISHED, PublishStatus.ARCHIVED):
            raise MenuStatusError(
                f"菜单状态为{PublishStatus(status).display}，不能编辑",
                details={"publish_status": status},
            )

    def _transition(self, menu_id: str, target: PublishStatus, admin_id: Optional[str]) -> Menu:
        with self.db.transaction() as conn:
            menu = self.menus.get(conn, menu_id)
            if menu is None:
                raise MenuNotFoundError(menu_id)
            allowed = can_transition(menu.publish_status, target)
            if not allowed or not self.menus.set_publish_status(conn, menu_id, target, _sources_for(target)):
                raise MenuStatusError(
                    f"无法从 {menu.publish_status} 转换到 {target.value}",
                    details={"from": menu.publish_status, "to": target.value},
                )
        logger.info("Menu %s moved to %s by %s", menu_id, target.value, admin_id)
        return self.get_menu(menu_id)
