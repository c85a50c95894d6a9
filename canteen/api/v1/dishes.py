"""
菜品管理路由模块
列表、详情、增删改以及上下架
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from ...core.error_handler import create_paginated_response, create_success_response
from ...models.dish import (
    DishBatchDelete,
    DishBatchStatusUpdate,
    DishCreate,
    DishStatusUpdate,
    DishUpdate,
)
from ...services import DishService
from ..dependencies import get_admin_id, get_dish_service

router = APIRouter()


@router.get("")
def list_dishes(request: Request, service: DishService = Depends(get_dish_service)):
    """
    菜品列表

    支持 status / categoryId / keyword / mealType / isRecommended /
    minPrice / maxPrice / page / pageSize 过滤，非法参数按缺省处理
    """
    result = service.list_dishes(request.query_params)
    return create_paginated_response(result, "获取菜品列表成功")


@router.get("/available")
def list_available_dishes(request: Request, service: DishService = Depends(get_dish_service)):
    """可用于编排菜单的上架菜品"""
    result = service.list_available_dishes(request.query_params)
    return create_paginated_response(result, "获取可用菜品成功")


@router.get("/meal-type/{meal_type}")
def list_dishes_by_meal_type(
    meal_type: str,
    request: Request,
    service: DishService = Depends(get_dish_service),
):
    result = service.list_dishes_by_meal_type(meal_type, request.query_params)
    return create_paginated_response(result, "获取菜品列表成功")


@router.post("/batch-delete")
def batch_delete_dishes(
    payload: DishBatchDelete,
    service: DishService = Depends(get_dish_service),
    admin_id: Optional[str] = Depends(get_admin_id),
):
    """批量软删除菜品"""
    summary = service.batch_soft_delete(payload.ids, admin_id)
    return create_success_response(summary, f"成功删除{summary['successCount']}个菜品")


@router.put("/batch-status")
def batch_update_dish_status(
    payload: DishBatchStatusUpdate,
    service: DishService = Depends(get_dish_service),
    admin_id: Optional[str] = Depends(get_admin_id),
):
    """批量上架/下架菜品"""
    summary = service.batch_update_status(payload.ids, payload.status, admin_id)
    return create_success_response(summary, f"成功更新{summary['updatedCount']}个菜品状态")


@router.get("/{dish_id}")
def get_dish_detail(dish_id: str, service: DishService = Depends(get_dish_service)):
    dish = service.get_dish_detail(dish_id)
    if dish is None:
        raise HTTPException(status_code=404, detail="菜品不存在")
    return create_success_response(dish.to_dict(), "获取菜品详情成功")


@router.post("")
def create_dish(
    payload: DishCreate,
    service: DishService = Depends(get_dish_service),
    admin_id: Optional[str] = Depends(get_admin_id),
):
    dish = service.create_dish(payload, admin_id)
    return create_success_response(dish.to_dict(), "创建菜品成功")


@router.put("/{dish_id}")
def update_dish(
    dish_id: str,
    payload: DishUpdate,
    service: DishService = Depends(get_dish_service),
    admin_id: Optional[str] = Depends(get_admin_id),
):
    dish = service.update_dish(dish_id, payload, admin_id)
    return create_success_response(dish.to_dict(), "更新菜品成功")


@router.put("/{dish_id}/status")
def update_dish_status(
    dish_id: str,
    payload: DishStatusUpdate,
    service: DishService = Depends(get_dish_service),
    admin_id: Optional[str] = Depends(get_admin_id),
):
    """上架/下架菜品"""
    dish = service.update_dish_status(dish_id, payload.status, admin_id)
    return create_success_response(dish.to_dict(), "更新菜品状态成功")


@router.delete("/{dish_id}")
def delete_dish(
    dish_id: str,
    service: DishService = Depends(get_dish_service),
    admin_id: Optional[str] = Depends(get_admin_id),
):
    """
    软删除菜品

    重复删除或删除不存在的菜品不报错，data.deleted 为 false
    """
    deleted = service.soft_delete_dish(dish_id, admin_id)
    return create_success_response({"deleted": deleted}, "删除菜品成功" if deleted else "菜品已删除或不存在")
