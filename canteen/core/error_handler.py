"""
统一错误处理模块
提供标准化的错误响应格式和 FastAPI 异常处理器

主要功能：
- 统一的错误响应格式
- 异常捕获和日志记录
- 错误代码到 HTTP 状态码的映射
- 成功/分页响应的统一结构
"""

import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..models.base import PageResult
from .exceptions import BaseApplicationError

logger = logging.getLogger(__name__)


class ErrorResponse:
    """标准错误响应格式"""

    def __init__(self, error_code: str, message: str,
                 details: Optional[Dict[str, Any]] = None,
                 http_status: int = 400):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        self.http_status = http_status

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        return {
            "success": False,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }

    def to_json_response(self) -> JSONResponse:
        """转换为FastAPI JSONResponse"""
        return JSONResponse(
            status_code=self.http_status,
            content=self.to_dict()
        )


class ErrorHandler:
    """全局错误处理器"""

    # 错误代码到HTTP状态码的映射
    ERROR_CODE_STATUS_MAP = {
        "VALIDATION_ERROR": 400,
        "DUPLICATE_RESOURCE": 409,
        "BUSINESS_RULE_VIOLATION": 422,
        "INTERNAL_ERROR": 500,
        "DATABASE_ERROR": 500,
        "POOL_TIMEOUT": 503,

        # 菜品相关错误
        "DISH_NOT_FOUND": 404,
        "CATEGORY_NOT_FOUND": 404,

        # 菜单相关错误
        "MENU_NOT_FOUND": 404,
        "MENU_ALREADY_PUBLISHED": 409,
        "MENU_STATUS_TRANSITION_INVALID": 400,
    }

    @classmethod
    def status_for(cls, error_code: str) -> int:
        return cls.ERROR_CODE_STATUS_MAP.get(error_code, 400)

    @classmethod
    def handle_application_error(cls, error: BaseApplicationError) -> ErrorResponse:
        """处理应用业务异常"""
        http_status = cls.status_for(error.error_code)
        if http_status >= 500:
            logger.error("%s: %s", error.error_code, error.message, exc_info=error)
        else:
            logger.info("%s: %s %s", error.error_code, error.message, error.details)

        return ErrorResponse(
            error_code=error.error_code,
            message=error.message,
            details=error.details,
            http_status=http_status
        )

    @classmethod
    def handle_http_exception(cls, error: HTTPException) -> ErrorResponse:
        """处理FastAPI HTTP异常"""
        return ErrorResponse(
            error_code="HTTP_ERROR",
            message=str(error.detail),
            details={"status_code": error.status_code},
            http_status=error.status_code
        )

    @classmethod
    def handle_validation_error(cls, error: RequestValidationError) -> ErrorResponse:
        """处理请求参数校验错误"""
        errors = [
            {"loc": list(item.get("loc", ())), "msg": item.get("msg", "")}
            for item in error.errors()
        ]
        return ErrorResponse(
            error_code="VALIDATION_ERROR",
            message="请求参数验证失败",
            details={"validation_errors": errors},
            http_status=400
        )

    @classmethod
    def handle_unknown_error(cls, error: Exception) -> ErrorResponse:
        """处理未知异常"""
        logger.exception("Unhandled error: %s", error)
        return ErrorResponse(
            error_code="INTERNAL_ERROR",
            message="系统内部错误",
            details={"error_type": type(error).__name__},
            http_status=500
        )


async def application_error_handler(request: Request, exc: BaseApplicationError) -> JSONResponse:
    """应用异常处理"""
    return ErrorHandler.handle_application_error(exc).to_json_response()


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """HTTP异常处理"""
    return ErrorHandler.handle_http_exception(exc).to_json_response()


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """请求校验异常处理"""
    return ErrorHandler.handle_validation_error(exc).to_json_response()


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """通用异常处理"""
    return ErrorHandler.handle_unknown_error(exc).to_json_response()


def create_success_response(data: Any = None, message: str = "操作成功") -> Dict[str, Any]:
    """创建标准成功响应，data 为空时返回 null"""
    return {
        "success": True,
        "message": message,
        "data": data
    }


def create_paginated_response(result: PageResult, message: str = "查询成功") -> Dict[str, Any]:
    """创建分页响应：data 为 {list, pagination}"""
    return create_success_response(result.to_dict(), message)
