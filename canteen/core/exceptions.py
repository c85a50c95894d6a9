"""
自定义异常类
提供更精确的错误处理和异常信息
"""

from typing import Any, Dict, Optional


class BaseApplicationError(Exception):
    """应用基础异常类"""

    default_code = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        super().__init__(self.message)


class DatabaseError(BaseApplicationError):
    """数据库相关异常（连接或语句执行失败）"""
    default_code = "DATABASE_ERROR"


class PoolTimeoutError(DatabaseError):
    """连接池在限定时间内没有可用连接"""
    default_code = "POOL_TIMEOUT"


class ConstraintViolationError(BaseApplicationError):
    """唯一性等约束冲突，需要与一般数据库错误区分开"""
    default_code = "DUPLICATE_RESOURCE"


class ValidationError(BaseApplicationError):
    """数据验证异常"""
    default_code = "VALIDATION_ERROR"


class BusinessLogicError(BaseApplicationError):
    """业务逻辑异常"""
    default_code = "BUSINESS_RULE_VIOLATION"


class DishNotFoundError(BusinessLogicError):
    """菜品不存在或已删除"""
    default_code = "DISH_NOT_FOUND"

    def __init__(self, dish_id: str):
        super().__init__("菜品不存在或已被删除", details={"dish_id": dish_id})


class MenuNotFoundError(BusinessLogicError):
    """菜单不存在或已删除"""
    default_code = "MENU_NOT_FOUND"

    def __init__(self, menu_id: str):
        super().__init__("菜单不存在", details={"menu_id": menu_id})


class MenuStatusError(BusinessLogicError):
    """菜单发布状态不允许当前操作"""
    default_code = "MENU_STATUS_TRANSITION_INVALID"


class CategoryNotFoundError(BusinessLogicError):
    """菜品分类不存在或已删除"""
    default_code = "CATEGORY_NOT_FOUND"

    def __init__(self, category_id: str):
        super().__init__("菜品分类不存在", details={"category_id": category_id})
