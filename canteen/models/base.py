"""
基础数据模型
定义通用的模型基类、分页参数和分页结果
"""

from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..config.settings import settings


class BaseEntity(BaseModel):
    """基础实体模型，对外字段统一为驼峰命名"""

    model_config = ConfigDict(
        from_attributes=True,
        use_enum_values=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


def _positive_int(value: Any, default: int) -> int:
    """宽松解析正整数，无法解析或 <= 0 时返回默认值"""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


class PaginationParams(BaseEntity):
    """分页参数"""
    page: int = Field(default=1, ge=1, description="页码")
    page_size: int = Field(default=settings.default_page_size, ge=1, description="每页大小")

    @property
    def offset(self) -> int:
        """计算偏移量"""
        return (self.page - 1) * self.page_size

    @classmethod
    def from_params(
        cls,
        params: Mapping[str, Any],
        default_size: Optional[int] = None,
        max_size: Optional[int] = None,
    ) -> "PaginationParams":
        """
        从请求参数中解析分页信息

        同时接受 pageSize / page_size / size 三种写法，pageSize 优先；
        非数字或非正数回退为默认值，每页大小不超过 max_size
        """
        default_size = default_size or settings.default_page_size
        max_size = max_size or settings.max_page_size

        raw_size = None
        for key in ("pageSize", "page_size", "size"):
            if params.get(key) not in (None, ""):
                raw_size = params.get(key)
                break

        page = _positive_int(params.get("page"), 1)
        page_size = min(_positive_int(raw_size, default_size), max_size)
        return cls(page=page, page_size=page_size)


class Pagination(BaseEntity):
    """分页信息"""
    total: int
    page: int
    page_size: int
    total_pages: int


class PageResult(BaseModel):
    """分页结果：当前页数据与分页信息"""
    items: List[Any]
    pagination: Pagination

    @classmethod
    def create(cls, items: list, total: int, params: PaginationParams) -> "PageResult":
        """创建分页结果"""
        total_pages = (total + params.page_size - 1) // params.page_size
        return cls(
            items=items,
            pagination=Pagination(
                total=total,
                page=params.page,
                page_size=params.page_size,
                total_pages=total_pages,
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        """转换为前端约定的 {list, pagination} 结构"""
        return {
            "list": [
                item.to_dict() if isinstance(item, BaseEntity) else item
                for item in self.items
            ],
            "pagination": self.pagination.to_dict(),
        }
