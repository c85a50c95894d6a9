import pytest

from canteen.core.database import DatabaseManager, fetch_all, fetch_one, fetch_value
from canteen.core.exceptions import ConstraintViolationError, DatabaseError, PoolTimeoutError


class TestDatabaseManager:
    """数据库管理器测试"""

    def test_parse_memory_url(self):
        assert DatabaseManager._parse_db_path("duckdb:///:memory:") == ":memory:"
        assert DatabaseManager._parse_db_path(":memory:") == ":memory:"

    def test_file_database(self, tmp_path):
        manager = DatabaseManager(f"duckdb://{tmp_path}/nested/canteen.duckdb", pool_size=1)
        manager.open()
        try:
            assert manager.ping()
            assert (tmp_path / "nested" / "canteen.duckdb").exists()
        finally:
            manager.close()
        assert not manager.is_open

    def test_schema_created(self, db):
        tables = {row["table_name"] for row in db.execute_query(
            "SELECT table_name FROM information_schema.tables"
        )}
        assert {"dishes", "dish_categories", "menus", "menu_dishes",
                "menu_templates", "users", "departments"} <= tables

    def test_fetch_helpers_return_dicts(self, db):
        with db.connection() as conn:
            assert fetch_one(conn, "SELECT 1 AS a, 'x' AS b") == {"a": 1, "b": "x"}
            assert fetch_all(conn, "SELECT ? AS v", [3]) == [{"v": 3}]
            assert fetch_value(conn, "SELECT COUNT(*) FROM departments") == 2
            assert fetch_one(conn, "SELECT * FROM departments WHERE _id = ?", ["nope"]) is None

    def test_pool_timeout(self, db):
        borrowed = [db._acquire() for _ in range(db.pool_size)]
        try:
            with pytest.raises(PoolTimeoutError) as exc_info:
                with db.connection():
                    pass
            assert exc_info.value.error_code == "POOL_TIMEOUT"
            assert isinstance(exc_info.value, DatabaseError)
        finally:
            for conn in borrowed:
                db._pool.put(conn)

    def test_connection_released_after_error(self, db):
        for _ in range(db.pool_size + 2):
            with pytest.raises(DatabaseError):
                with db.connection() as conn:
                    conn.execute("SELECT * FROM missing_table")
        assert db.ping()

    def test_driver_error_wrapped_with_cause(self, db):
        with pytest.raises(DatabaseError) as exc_info:
            db.execute_query("SELEC broken")
        assert exc_info.value.__cause__ is not None
        assert exc_info.value.error_code == "DATABASE_ERROR"

    def test_constraint_violation_is_distinct(self, db):
        with pytest.raises(ConstraintViolationError) as exc_info:
            with db.transaction() as conn:
                conn.execute("INSERT INTO departments (_id, name) VALUES ('dept-1', '重复')")
        assert not isinstance(exc_info.value, PoolTimeoutError)
        assert exc_info.value.error_code == "DUPLICATE_RESOURCE"

    def test_transaction_rolls_back_on_error(self, db):
        with pytest.raises(RuntimeError):
            with db.transaction() as conn:
                conn.execute("INSERT INTO departments (_id, name) VALUES ('dept-9', '临时')")
                raise RuntimeError("boom")
        assert db.execute_one("SELECT * FROM departments WHERE _id = 'dept-9'") is None

    def test_transaction_commits(self, db):
        with db.transaction() as conn:
            conn.execute("INSERT INTO departments (_id, name) VALUES ('dept-9', '临时')")
        assert db.execute_one("SELECT name FROM departments WHERE _id = 'dept-9'") == {"name": "临时"}
