from decimal import Decimal

import pytest

from canteen.core.exceptions import CategoryNotFoundError, DishNotFoundError, ValidationError
from canteen.models.dish import DishCategoryCreate, DishCreate, DishUpdate

from conftest import ADMIN_ID, insert_raw_dish, make_dish


def names(page):
    return sorted(dish.name for dish in page.items)


class TestDishQueries:
    """菜品列表查询测试"""

    def test_list_excludes_deleted(self, dish_service, sample_dishes):
        dish_service.soft_delete_dish(sample_dishes["soymilk"].id, ADMIN_ID)
        page = dish_service.list_dishes({})
        assert page.pagination.total == 3
        assert "豆浆" not in names(page)

    def test_list_enriches_category_name(self, dish_service, sample_dishes):
        page = dish_service.list_dishes({"keyword": "红烧"})
        assert [d.category_name for d in page.items] == ["荤菜"]
        uncategorised = dish_service.list_dishes({"keyword": "豆浆"}).items[0]
        assert uncategorised.category_name == ""

    def test_keyword_is_case_insensitive(self, dish_service, sample_dishes):
        make_dish(dish_service, "Tofu Soup")
        for keyword in ("tofu", "TOFU", "u so"):
            page = dish_service.list_dishes({"keyword": keyword})
            assert names(page) == ["Tofu Soup"]
        assert dish_service.list_dishes({"keyword": "tofus"}).pagination.total == 0

    def test_deleted_category_name_is_blank(self, db, dish_service, sample_dishes):
        with db.transaction() as conn:
            conn.execute("UPDATE dish_categories SET status = 'deleted' WHERE _id = 'cat-meat'")
        listed = dish_service.list_dishes({"keyword": "红烧"}).items
        assert [d.category_name for d in listed] == [""]
        detail = dish_service.get_dish_detail(sample_dishes["pork"].id)
        assert detail.category_name == ""
        assert detail.category_id == "cat-meat"

    def test_meal_type_membership(self, dish_service, sample_dishes):
        dinner = dish_service.list_available_dishes({"mealType": "dinner"})
        assert "白粥" not in names(dinner)
        assert names(dinner) == ["宫保鸡丁", "红烧肉"]

        breakfast = dish_service.list_available_dishes({"mealType": "breakfast"})
        assert names(breakfast) == ["白粥", "豆浆"]

    def test_meal_type_substring_does_not_match(self, dish_service, sample_dishes):
        page = dish_service.list_available_dishes({"mealType": "din"})
        assert page.pagination.total == 0
        assert page.items == []

    def test_meal_type_filter_is_case_folded(self, dish_service, sample_dishes):
        upper = dish_service.list_available_dishes({"mealType": " DINNER "})
        assert names(upper) == names(dish_service.list_available_dishes({"mealType": "dinner"}))
        assert names(upper) == ["宫保鸡丁", "红烧肉"]
        assert dish_service.list_dishes({"status": "INACTIVE"}).pagination.total == 0

    def test_malformed_meal_types_never_match(self, db, dish_service):
        insert_raw_dish(db, "raw-1", "旧数据", '"lunch"')
        insert_raw_dish(db, "raw-2", "空餐次", None)
        page = dish_service.list_available_dishes({"mealType": "lunch"})
        assert page.pagination.total == 0
        detail = dish_service.get_dish_detail("raw-1")
        assert detail.meal_types == []

    def test_available_ignores_status_filter(self, dish_service, sample_dishes):
        dish_service.update_dish_status(sample_dishes["pork"].id, "inactive", ADMIN_ID)
        page = dish_service.list_available_dishes({"status": "inactive"})
        assert "红烧肉" not in names(page)
        assert page.pagination.total == 3

    def test_status_and_price_filters(self, dish_service, sample_dishes):
        dish_service.update_dish_status(sample_dishes["chicken"].id, "inactive", ADMIN_ID)
        inactive = dish_service.list_dishes({"status": "inactive"})
        assert names(inactive) == ["宫保鸡丁"]

        mid_price = dish_service.list_dishes({"minPrice": "2", "maxPrice": "16"})
        assert names(mid_price) == ["宫保鸡丁", "白粥"]

        recommended = dish_service.list_dishes({"isRecommended": "true"})
        assert names(recommended) == ["红烧肉"]

    def test_category_filter(self, dish_service, sample_dishes):
        page = dish_service.list_dishes({"categoryId": "cat-meat"})
        assert names(page) == ["宫保鸡丁", "红烧肉"]

    def test_pagination_covers_all_rows(self, dish_service):
        for i in range(23):
            make_dish(dish_service, f"菜品{i:02d}")

        seen = []
        sizes = []
        for page_no in (1, 2, 3):
            page = dish_service.list_dishes({"page": page_no, "pageSize": 10})
            assert page.pagination.total == 23
            assert page.pagination.total_pages == 3
            sizes.append(len(page.items))
            seen.extend(d.id for d in page.items)

        assert sizes == [10, 10, 3]
        assert len(set(seen)) == 23
        assert dish_service.list_dishes({"page": 4, "pageSize": 10}).items == []

    def test_list_by_meal_type(self, dish_service, sample_dishes):
        page = dish_service.list_dishes_by_meal_type("BREAKFAST")
        assert names(page) == ["白粥", "豆浆"]

    def test_list_by_invalid_meal_type_rejected(self, dish_service):
        with pytest.raises(ValidationError):
            dish_service.list_dishes_by_meal_type("supper")


class TestDishDetail:
    """菜品详情测试"""

    def test_detail_includes_creator(self, dish_service, sample_dishes):
        dish = dish_service.get_dish_detail(sample_dishes["pork"].id)
        assert dish.name == "红烧肉"
        assert dish.price == Decimal("18.00")
        assert dish.meal_types == ["lunch", "dinner"]
        assert dish.create_by_name == "王师傅"
        assert dish.create_by_department == "后勤部"
        assert dish.serves("dinner")
        assert not dish.serves("breakfast")

    def test_detail_missing_returns_none(self, dish_service):
        assert dish_service.get_dish_detail("does-not-exist") is None

    def test_detail_of_deleted_returns_none(self, dish_service, sample_dishes):
        dish_id = sample_dishes["congee"].id
        dish_service.soft_delete_dish(dish_id, ADMIN_ID)
        assert dish_service.get_dish_detail(dish_id) is None


class TestDishWrites:
    """菜品维护测试"""

    def test_create_normalizes_meal_types(self, dish_service):
        dish = make_dish(dish_service, "馒头", ["dinner", "breakfast", "dinner"])
        assert dish.meal_types == ["breakfast", "dinner"]
        assert dish.status == "active"

    def test_create_rejects_unknown_category(self, dish_service):
        with pytest.raises(ValidationError):
            dish_service.create_dish(DishCreate(name="炒饭", category_id="cat-x"), ADMIN_ID)

    def test_create_rejects_empty_meal_types(self):
        with pytest.raises(ValueError):
            DishCreate(name="炒饭", meal_types=[])

    def test_update_partial(self, dish_service, sample_dishes):
        dish_id = sample_dishes["chicken"].id
        updated = dish_service.update_dish(dish_id, DishUpdate(price=Decimal("16.00")), ADMIN_ID)
        assert updated.price == Decimal("16.00")
        assert updated.name == "宫保鸡丁"
        assert updated.meal_types == ["lunch", "dinner"]

    def test_update_meal_types(self, dish_service, sample_dishes):
        dish_id = sample_dishes["congee"].id
        dish_service.update_dish(dish_id, DishUpdate(meal_types=["dinner"]), ADMIN_ID)
        dinner = dish_service.list_available_dishes({"mealType": "dinner"})
        assert "白粥" in names(dinner)

    def test_update_without_changes_rejected(self, dish_service, sample_dishes):
        with pytest.raises(ValidationError):
            dish_service.update_dish(sample_dishes["pork"].id, DishUpdate(), ADMIN_ID)

    def test_update_deleted_dish_not_found(self, dish_service, sample_dishes):
        dish_id = sample_dishes["pork"].id
        dish_service.soft_delete_dish(dish_id, ADMIN_ID)
        with pytest.raises(DishNotFoundError):
            dish_service.update_dish(dish_id, DishUpdate(name="新名字"), ADMIN_ID)

    def test_update_status_rejects_deleted(self, dish_service, sample_dishes):
        with pytest.raises(ValidationError):
            dish_service.update_dish_status(sample_dishes["pork"].id, "deleted", ADMIN_ID)
        with pytest.raises(ValidationError):
            dish_service.update_dish_status(sample_dishes["pork"].id, "gone", ADMIN_ID)


class TestSoftDelete:
    """软删除测试"""

    def test_soft_delete_is_idempotent(self, dish_service, sample_dishes):
        dish_id = sample_dishes["pork"].id
        assert dish_service.soft_delete_dish(dish_id, ADMIN_ID) is True
        assert dish_service.soft_delete_dish(dish_id, ADMIN_ID) is False
        assert dish_service.list_dishes({}).pagination.total == 3

    def test_soft_delete_unknown_is_noop(self, dish_service):
        assert dish_service.soft_delete_dish("missing", ADMIN_ID) is False

    def test_soft_delete_keeps_row(self, db, dish_service, sample_dishes):
        dish_id = sample_dishes["pork"].id
        dish_service.soft_delete_dish(dish_id, ADMIN_ID)
        row = db.execute_one("SELECT status, updateBy FROM dishes WHERE _id = ?", [dish_id])
        assert row == {"status": "deleted", "updateBy": ADMIN_ID}

    def test_batch_soft_delete(self, dish_service, sample_dishes):
        ids = [sample_dishes["pork"].id, sample_dishes["chicken"].id]
        dish_service.soft_delete_dish(ids[0], ADMIN_ID)
        summary = dish_service.batch_soft_delete(ids + ["missing", ids[1]], ADMIN_ID)
        assert summary == {"successCount": 1, "totalCount": 3}

    def test_batch_soft_delete_requires_ids(self, dish_service):
        with pytest.raises(ValidationError):
            dish_service.batch_soft_delete([], ADMIN_ID)


class TestCategories:
    """菜品分类测试"""

    def test_list_with_active_counts(self, dish_service, sample_dishes):
        dish_service.update_dish_status(sample_dishes["chicken"].id, "inactive", ADMIN_ID)
        categories = {c.name: c.dish_count for c in dish_service.list_categories()}
        assert categories == {"主食": 1, "荤菜": 1}

    def test_create_category(self, dish_service):
        category = dish_service.create_category(DishCategoryCreate(name="汤品", sort=3), ADMIN_ID)
        assert category.name == "汤品"
        assert [c.name for c in dish_service.list_categories()] == ["主食", "荤菜", "汤品"]

    def test_update_category(self, dish_service, sample_dishes):
        data = DishCategoryCreate(name="肉类", description="荤菜合集", sort=0)
        category = dish_service.update_category("cat-meat", data, ADMIN_ID)
        assert category.name == "肉类"
        assert category.description == "荤菜合集"
        assert [c.name for c in dish_service.list_categories()] == ["肉类", "主食"]
        assert dish_service.get_dish_detail(sample_dishes["pork"].id).category_name == "肉类"

    def test_update_missing_category(self, db, dish_service):
        with pytest.raises(CategoryNotFoundError):
            dish_service.update_category("cat-x", DishCategoryCreate(name="无"), ADMIN_ID)
        with db.transaction() as conn:
            conn.execute("UPDATE dish_categories SET status = 'deleted' WHERE _id = 'cat-staple'")
        with pytest.raises(CategoryNotFoundError):
            dish_service.update_category("cat-staple", DishCategoryCreate(name="主食"), ADMIN_ID)


class TestBatchStatus:
    """批量上下架测试"""

    def test_batch_deactivate(self, db, dish_service, sample_dishes):
        ids = [sample_dishes["pork"].id, sample_dishes["chicken"].id]
        summary = dish_service.batch_update_status(ids + [ids[0]], "inactive", ADMIN_ID)
        assert summary == {"updatedCount": 2, "totalCount": 2}
        assert names(dish_service.list_dishes({"status": "inactive"})) == ["宫保鸡丁", "红烧肉"]
        row = db.execute_one("SELECT updateBy FROM dishes WHERE _id = ?", [ids[0]])
        assert row == {"updateBy": ADMIN_ID}

    def test_batch_skips_deleted_and_unknown(self, dish_service, sample_dishes):
        dish_service.soft_delete_dish(sample_dishes["congee"].id, ADMIN_ID)
        summary = dish_service.batch_update_status(
            [sample_dishes["congee"].id, sample_dishes["soymilk"].id, "missing"], "inactive", ADMIN_ID
        )
        assert summary == {"updatedCount": 1, "totalCount": 3}
        assert dish_service.get_dish_detail(sample_dishes["congee"].id) is None

    def test_batch_reactivate(self, dish_service, sample_dishes):
        dish_id = sample_dishes["soymilk"].id
        dish_service.update_dish_status(dish_id, "inactive", ADMIN_ID)
        summary = dish_service.batch_update_status([dish_id], "active", ADMIN_ID)
        assert summary == {"updatedCount": 1, "totalCount": 1}
        assert dish_service.list_available_dishes({}).pagination.total == 4

    def test_batch_rejects_bad_input(self, dish_service, sample_dishes):
        dish_id = sample_dishes["pork"].id
        with pytest.raises(ValidationError):
            dish_service.batch_update_status([dish_id], "deleted", ADMIN_ID)
        with pytest.raises(ValidationError):
            dish_service.batch_update_status([dish_id], "hidden", ADMIN_ID)
        with pytest.raises(ValidationError):
            dish_service.batch_update_status(["", ""], "inactive", ADMIN_ID)
        assert dish_service.get_dish_detail(dish_id).status == "active"
