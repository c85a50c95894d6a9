"""
测试配置文件
提供内存数据库、种子数据、服务实例和 TestClient
"""

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from canteen.app import create_app
from canteen.config.settings import Settings
from canteen.core.database import DatabaseManager
from canteen.models.dish import DishCreate
from canteen.services import AdminService, DishService, MenuService

ADMIN_ID = "admin-1"
MENU_DATE = date(2024, 3, 1)


@pytest.fixture
def test_settings():
    """测试配置"""
    return Settings(
        database_url="duckdb:///:memory:",
        pool_size=3,
        pool_timeout_sec=0.5,
        api_title="食堂管理 API (Test)",
        api_version="1.0.0-test",
        log_level="DEBUG",
    )


@pytest.fixture
def db(test_settings):
    """内存数据库，每个测试独立"""
    manager = DatabaseManager(
        test_settings.database_url,
        pool_size=test_settings.pool_size,
        acquire_timeout=test_settings.pool_timeout_sec,
    )
    manager.open()
    seed_reference_data(manager)
    yield manager
    manager.close()


@pytest.fixture
def dish_service(db):
    return DishService(db)


@pytest.fixture
def menu_service(db):
    return MenuService(db)


@pytest.fixture
def admin_service(db):
    return AdminService(db)


@pytest.fixture
def client(test_settings, db):
    """测试客户端"""
    app = create_app(test_settings, db=db)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_headers():
    return {"X-Admin-Id": ADMIN_ID}


def seed_reference_data(db: DatabaseManager) -> None:
    """部门、管理员和两个分类"""
    with db.transaction() as conn:
        conn.execute("INSERT INTO departments (_id, name, code) VALUES ('dept-1', '后勤部', 'LOG')")
        conn.execute("INSERT INTO departments (_id, name, code) VALUES ('dept-2', '研发部', 'RD')")
        conn.execute(
            "INSERT INTO users (_id, nickName, role, departmentId) VALUES (?, '王师傅', 'admin', 'dept-1')",
            [ADMIN_ID],
        )
        conn.execute(
            "INSERT INTO dish_categories (_id, name, sort) VALUES ('cat-staple', '主食', 1)"
        )
        conn.execute(
            "INSERT INTO dish_categories (_id, name, sort) VALUES ('cat-meat', '荤菜', 2)"
        )


def make_dish(service: DishService, name: str, meal_types=None, price="10.00", **extra):
    """通过服务创建菜品"""
    data = DishCreate(
        name=name,
        price=Decimal(price),
        meal_types=meal_types or ["breakfast", "lunch", "dinner"],
        **extra,
    )
    return service.create_dish(data, ADMIN_ID)


def insert_raw_dish(db: DatabaseManager, dish_id: str, name: str, meal_types_json, status="active"):
    """直接写入一行菜品，用于构造历史脏数据"""
    with db.transaction() as conn:
        conn.execute(
            """
            INSERT INTO dishes (_id, name, price, meal_types, tags, status)
            VALUES (?, ?, 5, ?, '[]', ?)
            """,
            [dish_id, name, meal_types_json, status],
        )


@pytest.fixture
def sample_dishes(dish_service):
    """白粥、红烧肉、宫保鸡丁、豆浆"""
    return {
        "congee": make_dish(dish_service, "白粥", ["breakfast", "lunch"], "2.00", category_id="cat-staple"),
        "pork": make_dish(dish_service, "红烧肉", ["lunch", "dinner"], "18.00", category_id="cat-meat",
                          is_recommended=True),
        "chicken": make_dish(dish_service, "宫保鸡丁", ["lunch", "dinner"], "15.50", category_id="cat-meat"),
        "soymilk": make_dish(dish_service, "豆浆", ["breakfast"], "1.50"),
    }


def menu_payload(dishes, publish_date=MENU_DATE, meal_type="lunch", **extra):
    """保存/发布菜单的请求体"""
    payload = {
        "date": publish_date.isoformat(),
        "mealType": meal_type,
        "dishes": [{"dishId": d.id} for d in dishes],
    }
    payload.update(extra)
    return payload
