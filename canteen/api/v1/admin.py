"""
后台通用路由模块
菜品分类、部门与概览统计
"""

from typing import Optional

from fastapi import APIRouter, Depends

from ...core.error_handler import create_success_response
from ...models.dish import DishCategoryCreate
from ...services import AdminService, DishService
from ..dependencies import get_admin_id, get_admin_service, get_dish_service

router = APIRouter()


@router.get("/dish-categories")
def list_dish_categories(service: DishService = Depends(get_dish_service)):
    categories = service.list_categories()
    return create_success_response([c.to_dict() for c in categories], "获取菜品分类成功")


@router.post("/dish-categories")
def create_dish_category(
    payload: DishCategoryCreate,
    service: DishService = Depends(get_dish_service),
    admin_id: Optional[str] = Depends(get_admin_id),
):
    category = service.create_category(payload, admin_id)
    return create_success_response(category.to_dict(), "创建菜品分类成功")


@router.put("/dish-categories/{category_id}")
def update_dish_category(
    category_id: str,
    payload: DishCategoryCreate,
    service: DishService = Depends(get_dish_service),
    admin_id: Optional[str] = Depends(get_admin_id),
):
    category = service.update_category(category_id, payload, admin_id)
    return create_success_response(category.to_dict(), "更新菜品分类成功")


@router.get("/departments")
def list_departments(service: AdminService = Depends(get_admin_service)):
    return create_success_response(service.list_departments(), "获取部门列表成功")


@router.get("/overview")
def get_overview(service: AdminService = Depends(get_admin_service)):
    """首页统计"""
    return create_success_response(service.get_overview(), "获取概览成功")
