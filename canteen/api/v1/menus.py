"""
菜单管理路由模块
按日期餐次查询、保存草稿、发布、撤回、归档、历史与模板
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from ...core.error_handler import create_paginated_response, create_success_response
from ...models.menu import MenuDishesUpdate, MenuDraft
from ...services import MenuService
from ..dependencies import get_admin_id, get_menu_service

router = APIRouter()


@router.get("/by-date")
def get_menu_by_date(
    publish_date: date = Query(..., alias="date", description="发布日期 YYYY-MM-DD"),
    meal_type: str = Query(..., alias="mealType", description="餐次"),
    service: MenuService = Depends(get_menu_service),
):
    """获取指定日期和餐次的菜单，没有菜单时 data 为 null"""
    menu = service.get_menu_by_date(publish_date, meal_type)
    if menu is None:
        return create_success_response(None, "当日该餐次暂无菜单")
    return create_success_response(menu.to_dict(), "获取菜单成功")


@router.post("/draft")
def save_menu_draft(
    payload: MenuDraft,
    service: MenuService = Depends(get_menu_service),
    admin_id: Optional[str] = Depends(get_admin_id),
):
    menu = service.save_menu_draft(payload, admin_id)
    return create_success_response(menu.to_dict(), "保存草稿成功")


@router.post("/publish")
def publish_menu(
    payload: MenuDraft,
    service: MenuService = Depends(get_menu_service),
    admin_id: Optional[str] = Depends(get_admin_id),
):
    menu = service.publish_menu(payload, admin_id)
    return create_success_response(menu.to_dict(), "发布菜单成功")


@router.get("/history")
def get_menu_history(request: Request, service: MenuService = Depends(get_menu_service)):
    """
    菜单历史

    支持 startDate / endDate / mealType / publishStatus / page / pageSize
    """
    result = service.get_menu_history(request.query_params)
    return create_paginated_response(result, "获取菜单历史成功")


@router.get("/templates")
def get_menu_templates(service: MenuService = Depends(get_menu_service)):
    templates = service.get_menu_templates()
    return create_success_response([t.to_dict() for t in templates], "获取菜单模板成功")


@router.post("/{menu_id}/revoke")
def revoke_menu(
    menu_id: str,
    service: MenuService = Depends(get_menu_service),
    admin_id: Optional[str] = Depends(get_admin_id),
):
    menu = service.revoke_menu(menu_id, admin_id)
    return create_success_response(menu.to_dict(), "撤回菜单成功")


@router.post("/{menu_id}/archive")
def archive_menu(
    menu_id: str,
    service: MenuService = Depends(get_menu_service),
    admin_id: Optional[str] = Depends(get_admin_id),
):
    menu = service.archive_menu(menu_id, admin_id)
    return create_success_response(menu.to_dict(), "归档菜单成功")


@router.delete("/{menu_id}")
def delete_menu(
    menu_id: str,
    service: MenuService = Depends(get_menu_service),
    admin_id: Optional[str] = Depends(get_admin_id),
):
    deleted = service.delete_menu(menu_id, admin_id)
    return create_success_response({"deleted": deleted}, "删除菜单成功" if deleted else "菜单已删除或不存在")


@router.get("/{menu_id}/dishes")
def get_menu_dishes(menu_id: str, service: MenuService = Depends(get_menu_service)):
    lines = service.get_menu_dishes(menu_id)
    return create_success_response([line.to_dict() for line in lines], "获取菜单菜品成功")


@router.put("/{menu_id}/dishes")
def set_menu_dishes(
    menu_id: str,
    payload: MenuDishesUpdate,
    service: MenuService = Depends(get_menu_service),
):
    """替换菜单菜品，已发布或已归档的菜单不可修改"""
    menu = service.set_menu_dishes(menu_id, payload.dishes)
    return create_success_response(menu.to_dict(), "更新菜单菜品成功")
