"""
食堂管理后台服务 - 主应用入口
提供菜品目录与菜单编排的后台API服务

主要功能模块：
- 菜品列表、详情与维护
- 菜单草稿、发布、撤回与历史
- 菜品分类、部门与概览统计

技术栈：FastAPI + DuckDB + pydantic
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .api import api_router
from .config.settings import Settings, settings
from .core.database import DatabaseManager
from .core.error_handler import (
    application_error_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .core.exceptions import BaseApplicationError, DatabaseError

logger = logging.getLogger(__name__)


def configure_logging(app_settings: Settings) -> None:
    logging.basicConfig(level=app_settings.log_level.upper(), format=app_settings.log_format)


def create_app(app_settings: Optional[Settings] = None, db: Optional[DatabaseManager] = None) -> FastAPI:
    """
    创建FastAPI应用

    Args:
        app_settings: 配置，缺省使用全局 settings
        db: 数据库管理器，缺省按配置新建；传入时由调用方负责关闭
    """
    app_settings = app_settings or settings
    configure_logging(app_settings)
    owns_db = db is None
    database = db or DatabaseManager(app_settings.database_url, app_settings.pool_size,
                                     app_settings.pool_timeout_sec)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """应用生命周期管理"""
        database.init_database()
        logger.info("%s %s started", app_settings.api_title, app_settings.api_version)
        yield
        if owns_db:
            database.close()

    app = FastAPI(
        title=app_settings.api_title,
        version=app_settings.api_version,
        description="食堂菜品与菜单管理API",
        debug=app_settings.debug,
        lifespan=lifespan
    )
    app.state.db = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 注册异常处理器
    app.add_exception_handler(BaseApplicationError, application_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # 注册路由
    app.include_router(api_router, prefix=app_settings.api_prefix)

    # 健康检查
    @app.get("/health")
    def health_check():
        try:
            database.ping()
            return {
                "status": "healthy",
                "version": app_settings.api_version,
                "database": "connected"
            }
        except DatabaseError as e:
            logger.warning("Health check failed: %s", e.message)
            return {
                "status": "unhealthy",
                "version": app_settings.api_version,
                "database": f"error: {e.message}"
            }

    @app.get("/")
    def root():
        return {
            "name": app_settings.api_title,
            "version": app_settings.api_version,
            "description": "食堂菜品与菜单管理API"
        }

    return app
