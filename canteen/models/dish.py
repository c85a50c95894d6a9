"""
菜品相关数据模型
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional

from pydantic import Field, field_validator

from .base import BaseEntity


class MealType(str, Enum):
    """餐次类型枚举"""
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"

    @property
    def display(self) -> str:
        return MEAL_TYPE_DISPLAY[self.value]

    @classmethod
    def parse(cls, value) -> Optional["MealType"]:
        """宽松解析，无效值返回 None"""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


MEAL_TYPE_DISPLAY = {
    "breakfast": "早餐",
    "lunch": "午餐",
    "dinner": "晚餐",
}

# 规范顺序，序列化 meal_types 时使用
MEAL_TYPE_ORDER = [MealType.BREAKFAST, MealType.LUNCH, MealType.DINNER]


class DishStatus(str, Enum):
    """菜品状态枚举"""
    ACTIVE = "active"        # 上架
    INACTIVE = "inactive"    # 下架
    DELETED = "deleted"      # 已删除（软删除）


def normalize_meal_types(values: Iterable) -> List[MealType]:
    """
    规范化餐次集合：去重并按早、午、晚排序

    Raises:
        ValueError: 包含不在枚举中的餐次
    """
    members = set()
    for value in values:
        meal_type = MealType.parse(value)
        if meal_type is None:
            raise ValueError(f"无效的餐次类型: {value}")
        members.add(meal_type)
    return [m for m in MEAL_TYPE_ORDER if m in members]


class DishCategory(BaseEntity):
    """菜品分类"""
    id: str = Field(..., alias="_id", description="分类ID")
    name: str = Field(..., description="分类名称")
    description: Optional[str] = None
    sort: int = 0
    status: str = "active"
    dish_count: int = Field(0, description="上架菜品数量")
    create_time: Optional[datetime] = None


class DishCategoryCreate(BaseEntity):
    """分类创建模型"""
    name: str = Field(..., min_length=1, max_length=50, description="分类名称")
    description: Optional[str] = Field(None, max_length=200)
    sort: int = Field(0, ge=0)


class Dish(BaseEntity):
    """菜品完整模型（含分类名、创建人等展示字段）"""
    id: str = Field(..., alias="_id", description="菜品ID")
    name: str
    description: Optional[str] = None
    price: Decimal = Decimal("0")
    category_id: Optional[str] = None
    category_name: str = Field("", description="分类名称，分类缺失时为空")
    tags: List[str] = Field(default_factory=list)
    meal_types: List[MealType] = Field(default_factory=list)
    status: DishStatus
    is_recommended: bool = False
    calories: Optional[Decimal] = None
    protein: Optional[Decimal] = None
    fat: Optional[Decimal] = None
    carbohydrate: Optional[Decimal] = None
    create_by: Optional[str] = None
    create_by_name: Optional[str] = None
    create_by_department: Optional[str] = None
    create_time: Optional[datetime] = None
    update_time: Optional[datetime] = None

    def serves(self, meal_type: MealType) -> bool:
        """该菜品是否在指定餐次供应"""
        return MealType(meal_type).value in self.meal_types


class DishBase(BaseEntity):
    """菜品可写字段的校验规则"""

    @field_validator("meal_types", check_fields=False)
    @classmethod
    def validate_meal_types(cls, v):
        if v is None:
            return v
        meal_types = normalize_meal_types(v)
        if not meal_types:
            raise ValueError("至少需要一个供应餐次")
        return meal_types

    @field_validator("tags", check_fields=False)
    @classmethod
    def validate_tags(cls, v):
        if v is None:
            return v
        return [str(tag).strip() for tag in v if str(tag).strip()]

    @field_validator("status", check_fields=False)
    @classmethod
    def validate_status(cls, v):
        if v is not None and DishStatus(v) == DishStatus.DELETED:
            raise ValueError("删除菜品请使用删除接口")
        return v


class DishCreate(DishBase):
    """菜品创建模型"""
    name: str = Field(..., min_length=1, max_length=100, description="菜品名称")
    category_id: Optional[str] = None
    description: Optional[str] = Field(None, max_length=1000)
    price: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    tags: List[str] = Field(default_factory=list)
    meal_types: List[MealType] = Field(default_factory=lambda: list(MEAL_TYPE_ORDER))
    status: DishStatus = DishStatus.ACTIVE
    is_recommended: bool = False
    calories: Optional[Decimal] = Field(None, ge=0)
    protein: Optional[Decimal] = Field(None, ge=0)
    fat: Optional[Decimal] = Field(None, ge=0)
    carbohydrate: Optional[Decimal] = Field(None, ge=0)


class DishUpdate(DishBase):
    """菜品更新模型，只更新显式提供的字段"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    category_id: Optional[str] = None
    description: Optional[str] = Field(None, max_length=1000)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    tags: Optional[List[str]] = None
    meal_types: Optional[List[MealType]] = None
    status: Optional[DishStatus] = None
    is_recommended: Optional[bool] = None
    calories: Optional[Decimal] = Field(None, ge=0)
    protein: Optional[Decimal] = Field(None, ge=0)
    fat: Optional[Decimal] = Field(None, ge=0)
    carbohydrate: Optional[Decimal] = Field(None, ge=0)

    def changes(self) -> dict:
        """显式提供的字段（按属性名）"""
        return self.model_dump(exclude_unset=True)


class DishStatusUpdate(BaseEntity):
    """上架/下架请求"""
    status: str = Field(..., description="active 或 inactive")


class DishBatchDelete(BaseEntity):
    """批量删除请求"""
    ids: List[str] = Field(..., min_length=1, description="菜品ID列表")


class DishBatchStatusUpdate(BaseEntity):
    """批量上架/下架请求"""
    ids: List[str] = Field(..., min_length=1, description="菜品ID列表")
    status: str = Field(..., description="active 或 inactive")
