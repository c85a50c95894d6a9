"""
查询过滤条件模型
把请求中的松散参数解析为类型明确的过滤结构：
未知参数忽略，格式错误的值回退为默认值或标记为"不可能匹配"，不抛出异常
"""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from pydantic import Field

from .base import BaseEntity, PaginationParams
from .dish import DishStatus, MealType
from .menu import PublishStatus

logger = logging.getLogger(__name__)


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    text = _text(value)
    if text is None:
        return None
    lowered = text.lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    return None


def _decimal(value: Any) -> Optional[Decimal]:
    text = _text(value)
    if text is None:
        return None
    try:
        number = Decimal(text)
    except InvalidOperation:
        logger.debug("Ignoring malformed decimal filter value %r", value)
        return None
    return number if number.is_finite() else None


def _date(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    text = _text(value)
    if text is None:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        logger.debug("Ignoring malformed date filter value %r", value)
        return None


class DishFilters(BaseEntity):
    """菜品列表过滤条件"""
    status: Optional[DishStatus] = None
    category_id: Optional[str] = None
    keyword: Optional[str] = None
    meal_type: Optional[MealType] = None
    is_recommended: Optional[bool] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    # 提供了无法识别的状态或餐次时为 True，查询结果为空
    unmatchable: bool = False
    pagination: PaginationParams = Field(default_factory=PaginationParams)

    @classmethod
    def from_params(cls, params: Optional[Mapping[str, Any]] = None) -> "DishFilters":
        params = params or {}
        unmatchable = False

        status = None
        raw_status = _text(params.get("status"))
        if raw_status is not None:
            try:
                status = DishStatus(raw_status.lower())
            except ValueError:
                unmatchable = True

        meal_type = None
        raw_meal_type = _text(params.get("mealType", params.get("meal_type")))
        if raw_meal_type is not None:
            meal_type = MealType.parse(raw_meal_type)
            if meal_type is None:
                unmatchable = True

        if unmatchable:
            logger.debug("Dish filters can never match: status=%r mealType=%r",
                         raw_status, raw_meal_type)

        return cls(
            status=status,
            category_id=_text(params.get("categoryId", params.get("category_id"))),
            keyword=_text(params.get("keyword")),
            meal_type=meal_type,
            is_recommended=_bool(params.get("isRecommended", params.get("is_recommended"))),
            min_price=_decimal(params.get("minPrice", params.get("min_price"))),
            max_price=_decimal(params.get("maxPrice", params.get("max_price"))),
            unmatchable=unmatchable,
            pagination=PaginationParams.from_params(params),
        )


class MenuHistoryFilters(BaseEntity):
    """菜单历史过滤条件，所有字段均可缺省"""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    meal_type: Optional[MealType] = None
    publish_status: Optional[PublishStatus] = None
    unmatchable: bool = False
    pagination: PaginationParams = Field(default_factory=PaginationParams)

    @classmethod
    def from_params(cls, params: Optional[Mapping[str, Any]] = None) -> "MenuHistoryFilters":
        params = params or {}
        unmatchable = False

        meal_type = None
        raw_meal_type = _text(params.get("mealType", params.get("meal_type")))
        if raw_meal_type is not None:
            meal_type = MealType.parse(raw_meal_type)
            unmatchable = meal_type is None

        publish_status = None
        raw_status = _text(params.get("publishStatus", params.get("status")))
        if raw_status is not None:
            try:
                publish_status = PublishStatus(raw_status.lower())
            except ValueError:
                unmatchable = True

        return cls(
            start_date=_date(params.get("startDate", params.get("start_date"))),
            end_date=_date(params.get("endDate", params.get("end_date"))),
            meal_type=meal_type,
            publish_status=publish_status,
            unmatchable=unmatchable,
            pagination=PaginationParams.from_params(params),
        )
