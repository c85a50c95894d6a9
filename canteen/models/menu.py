"""
菜单相关数据模型
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from .base import BaseEntity
from .dish import MealType


class PublishStatus(str, Enum):
    """菜单发布状态枚举"""
    DRAFT = "draft"            # 草稿
    PUBLISHED = "published"    # 已发布
    REVOKED = "revoked"        # 已撤回
    ARCHIVED = "archived"      # 已归档

    @property
    def display(self) -> str:
        return PUBLISH_STATUS_DISPLAY[self.value]


PUBLISH_STATUS_DISPLAY = {
    "draft": "草稿",
    "published": "已发布",
    "revoked": "已撤回",
    "archived": "已归档",
}

# 合法的状态转换；revoked -> draft 只能通过重新保存草稿发生
STATUS_TRANSITIONS = {
    PublishStatus.DRAFT: {PublishStatus.PUBLISHED},
    PublishStatus.PUBLISHED: {PublishStatus.REVOKED, PublishStatus.ARCHIVED},
    PublishStatus.REVOKED: {PublishStatus.DRAFT, PublishStatus.PUBLISHED, PublishStatus.ARCHIVED},
    PublishStatus.ARCHIVED: set(),
}


def can_transition(current: str, target: str) -> bool:
    return PublishStatus(target) in STATUS_TRANSITIONS[PublishStatus(current)]


def default_menu_name(publish_date: date, meal_type: str) -> str:
    """菜单未命名时按日期和餐次生成名称，如 菜单-2024-03-01-午餐"""
    return f"菜单-{publish_date.isoformat()}-{MealType(meal_type).display}"


class MenuDishItem(BaseEntity):
    """菜单菜品项（写入用）"""
    dish_id: str = Field(..., min_length=1, description="菜品ID")
    price: Optional[Decimal] = Field(None, ge=0, description="菜单价格，缺省取菜品当前价格")
    sort: Optional[int] = Field(None, ge=0, description="排序，缺省按提交顺序")


class MenuDishLine(BaseEntity):
    """菜单菜品行（读取用）"""
    id: str = Field(..., alias="_id")
    menu_id: str
    dish_id: str
    dish_name: Optional[str] = None
    dish_description: Optional[str] = None
    category_name: str = ""
    original_price: Optional[Decimal] = Field(None, description="菜品当前价格")
    price: Decimal = Field(..., description="发布时的价格快照")
    sort: int = 0


class MenuDraft(BaseEntity):
    """菜单草稿（保存/发布请求体）"""
    publish_date: date = Field(..., alias="date", description="发布日期")
    meal_type: MealType = Field(..., description="餐次")
    name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    dishes: List[MenuDishItem] = Field(default_factory=list)

    @field_validator("dishes")
    @classmethod
    def validate_dishes(cls, v):
        """同一菜单内菜品不能重复"""
        ids = [item.dish_id for item in v]
        if len(ids) != len(set(ids)):
            raise ValueError("菜单中的菜品不能重复")
        return v


class Menu(BaseEntity):
    """菜单完整模型"""
    id: str = Field(..., alias="_id", description="菜单ID")
    name: str
    description: Optional[str] = None
    publish_date: date
    meal_type: MealType
    publish_status: PublishStatus
    publisher_id: Optional[str] = None
    publisher_name: Optional[str] = None
    create_time: Optional[datetime] = None
    update_time: Optional[datetime] = None
    dishes: List[MenuDishLine] = Field(default_factory=list)

    @property
    def is_published(self) -> bool:
        return self.publish_status == PublishStatus.PUBLISHED


class MenuSummary(BaseEntity):
    """菜单历史列表项"""
    id: str = Field(..., alias="_id")
    name: str
    description: Optional[str] = None
    publish_date: date
    meal_type: MealType
    meal_type_display: str
    publish_status: PublishStatus
    publish_status_display: str
    publisher_id: Optional[str] = None
    publisher_name: Optional[str] = None
    dish_count: int = 0
    total_price: Decimal = Decimal("0")
    create_time: Optional[datetime] = None


class MenuTemplate(BaseEntity):
    """菜单模板（只读）"""
    id: str = Field(..., alias="_id")
    name: str
    description: Optional[str] = None
    meal_type: Optional[str] = None
    dishes: List[Dict[str, Any]] = Field(default_factory=list)
    create_time: Optional[datetime] = None


class MenuDishesUpdate(BaseEntity):
    """替换菜单菜品行的请求体"""
    dishes: List[MenuDishItem] = Field(default_factory=list)
