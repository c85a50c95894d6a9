"""
数据库连接和管理模块
提供连接池、事务与只读快照上下文，以及参数化查询的辅助函数

说明：
- 使用 DuckDB，同一个数据库上开出 pool_size 个游标（独立连接）组成连接池
- 获取连接有超时上限，超时抛出 PoolTimeoutError
- 写事务串行化执行，任一步骤失败整体回滚
- 列表查询的计数与分页数据在同一个快照事务中执行，保证两者一致
"""

import logging
import queue
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional, Sequence

import duckdb

from ..config.settings import settings
from .exceptions import ConstraintViolationError, DatabaseError, PoolTimeoutError

logger = logging.getLogger(__name__)

# 完整的表结构定义
# 列名统一使用驼峰形式，主键统一为 _id；meal_types 为唯一的下划线列
SCHEMA_SQL = r"""
CREATE TABLE IF NOT EXISTS departments (
  _id VARCHAR PRIMARY KEY,
  name VARCHAR NOT NULL,
  code VARCHAR,
  status VARCHAR CHECK(status IN ('active','inactive','deleted')) DEFAULT 'active',
  createTime TIMESTAMP DEFAULT now()
);

CREATE TABLE IF NOT EXISTS users (
  _id VARCHAR PRIMARY KEY,
  nickName VARCHAR,
  role VARCHAR DEFAULT 'user',
  departmentId VARCHAR,
  status VARCHAR DEFAULT 'active',
  createTime TIMESTAMP DEFAULT now()
);

CREATE TABLE IF NOT EXISTS dish_categories (
  _id VARCHAR PRIMARY KEY,
  name VARCHAR NOT NULL,
  description VARCHAR,
  sort INTEGER DEFAULT 0,
  status VARCHAR CHECK(status IN ('active','deleted')) DEFAULT 'active',
  createBy VARCHAR,
  updateBy VARCHAR,
  createTime TIMESTAMP DEFAULT now(),
  updateTime TIMESTAMP DEFAULT now()
);

CREATE TABLE IF NOT EXISTS dishes (
  _id VARCHAR PRIMARY KEY,
  name VARCHAR NOT NULL,
  description VARCHAR,
  price DECIMAL(10,2) NOT NULL DEFAULT 0,
  categoryId VARCHAR,
  meal_types JSON,
  tags JSON,
  status VARCHAR CHECK(status IN ('active','inactive','deleted')) NOT NULL DEFAULT 'active',
  isRecommended BOOLEAN DEFAULT FALSE,
  calories DECIMAL(10,2),
  protein DECIMAL(10,2),
  fat DECIMAL(10,2),
  carbohydrate DECIMAL(10,2),
  createBy VARCHAR,
  updateBy VARCHAR,
  createTime TIMESTAMP DEFAULT now(),
  updateTime TIMESTAMP DEFAULT now()
);

CREATE TABLE IF NOT EXISTS menus (
  _id VARCHAR PRIMARY KEY,
  name VARCHAR,
  description VARCHAR,
  publishDate DATE NOT NULL,
  mealType VARCHAR CHECK(mealType IN ('breakfast','lunch','dinner')) NOT NULL,
  publishStatus VARCHAR CHECK(publishStatus IN ('draft','published','revoked','archived')) NOT NULL DEFAULT 'draft',
  status VARCHAR CHECK(status IN ('active','deleted')) NOT NULL DEFAULT 'active',
  publisherId VARCHAR,
  createTime TIMESTAMP DEFAULT now(),
  updateTime TIMESTAMP DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_menus_date_meal ON menus(publishDate, mealType);

CREATE TABLE IF NOT EXISTS menu_dishes (
  _id VARCHAR PRIMARY KEY,
  menuId VARCHAR NOT NULL,
  dishId VARCHAR NOT NULL,
  price DECIMAL(10,2) NOT NULL DEFAULT 0,
  sort INTEGER DEFAULT 0,
  status VARCHAR CHECK(status IN ('active','deleted')) NOT NULL DEFAULT 'active',
  createTime TIMESTAMP DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_menu_dishes_menu ON menu_dishes(menuId);

CREATE TABLE IF NOT EXISTS menu_templates (
  _id VARCHAR PRIMARY KEY,
  name VARCHAR NOT NULL,
  description VARCHAR,
  mealType VARCHAR,
  dishes JSON,
  status VARCHAR CHECK(status IN ('active','deleted')) DEFAULT 'active',
  createTime TIMESTAMP DEFAULT now()
);
"""


def _run(conn: duckdb.DuckDBPyConnection, query: str, params: Optional[Sequence[Any]] = None):
    if params:
        return conn.execute(query, list(params))
    return conn.execute(query)


def fetch_all(conn: duckdb.DuckDBPyConnection, query: str,
              params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
    """执行查询，按列名返回字典列表"""
    cursor = _run(conn, query, params)
    columns = [col[0] for col in cursor.description]
    return [dict(zip(columns, row)) for row in cursor.fetchall()]


def fetch_one(conn: duckdb.DuckDBPyConnection, query: str,
              params: Optional[Sequence[Any]] = None) -> Optional[Dict[str, Any]]:
    """执行查询，返回第一行（字典）或 None"""
    cursor = _run(conn, query, params)
    columns = [col[0] for col in cursor.description]
    row = cursor.fetchone()
    return dict(zip(columns, row)) if row is not None else None


def fetch_value(conn: duckdb.DuckDBPyConnection, query: str,
                params: Optional[Sequence[Any]] = None) -> Any:
    """执行查询，返回第一行第一列"""
    row = _run(conn, query, params).fetchone()
    return row[0] if row is not None else None


class DatabaseManager:
    """数据库管理器，封装连接池、事务和快照"""

    def __init__(
        self,
        database_url: Optional[str] = None,
        pool_size: Optional[int] = None,
        acquire_timeout: Optional[float] = None,
    ):
        self.db_path = self._parse_db_path(database_url or settings.database_url)
        self.pool_size = pool_size or settings.pool_size
        self.acquire_timeout = settings.pool_timeout_sec if acquire_timeout is None else acquire_timeout
        self._root: Optional[duckdb.DuckDBPyConnection] = None
        self._pool: "queue.Queue[duckdb.DuckDBPyConnection]" = queue.Queue(maxsize=self.pool_size)
        self._open_lock = threading.Lock()
        self._write_lock = threading.RLock()

    @staticmethod
    def _parse_db_path(db_url: str) -> str:
        """从 duckdb://<path> 形式的地址中解析数据库路径"""
        path = db_url[len("duckdb://"):] if db_url.startswith("duckdb://") else db_url
        if path in ("", ":memory:", "/:memory:"):
            return ":memory:"
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        return path

    @property
    def is_open(self) -> bool:
        return self._root is not None

    def open(self) -> None:
        """打开数据库、初始化表结构并填充连接池"""
        with self._open_lock:
            if self._root is not None:
                return
            try:
                root = duckdb.connect(self.db_path)
                self._init_schema(root)
                for _ in range(self.pool_size):
                    self._pool.put(root.cursor())
            except duckdb.Error as e:
                raise DatabaseError(f"数据库初始化失败: {e}") from e
            self._root = root
            logger.info("Database opened at %s with pool size %d", self.db_path, self.pool_size)

    def init_database(self) -> None:
        """初始化数据库（保持与应用启动流程一致的入口）"""
        self.open()

    def close(self) -> None:
        """关闭连接池中的所有连接"""
        with self._open_lock:
            if self._root is None:
                return
            while True:
                try:
                    self._pool.get_nowait().close()
                except queue.Empty:
                    break
            self._root.close()
            self._root = None
            logger.info("Database closed")

    def _init_schema(self, conn: duckdb.DuckDBPyConnection) -> None:
        try:
            conn.execute("LOAD json")
        except duckdb.Error as e:
            logger.warning("Loading DuckDB json extension failed: %s", e)
        conn.execute(SCHEMA_SQL)

    def _acquire(self) -> duckdb.DuckDBPyConnection:
        if self._root is None:
            self.open()
        try:
            return self._pool.get(timeout=self.acquire_timeout)
        except queue.Empty:
            raise PoolTimeoutError(
                f"等待数据库连接超时（{self.acquire_timeout}s）",
                details={"pool_size": self.pool_size},
            )

    @contextmanager
    def connection(self) -> Generator[duckdb.DuckDBPyConnection, None, None]:
        """
        从连接池借出一个连接，退出时归还（包括异常路径）

        DuckDB 的约束冲突转换为 ConstraintViolationError，其他驱动异常
        转换为 DatabaseError，原异常保留在 __cause__ 中
        """
        conn = self._acquire()
        try:
            yield conn
        except duckdb.ConstraintException as e:
            raise ConstraintViolationError(f"数据约束冲突: {e}") from e
        except duckdb.Error as e:
            raise DatabaseError(f"数据库操作失败: {e}") from e
        finally:
            self._pool.put(conn)

    @staticmethod
    def _rollback(conn: duckdb.DuckDBPyConnection) -> None:
        try:
            conn.execute("ROLLBACK")
        except duckdb.Error as e:
            logger.warning("Rollback failed: %s", e)

    @contextmanager
    def transaction(self) -> Generator[duckdb.DuckDBPyConnection, None, None]:
        """
        写事务上下文管理器

        同一进程内的写事务串行执行；全部语句成功后才提交，
        任一步骤抛出异常都会回滚，不留下部分写入
        """
        if not self._write_lock.acquire(timeout=self.acquire_timeout):
            raise PoolTimeoutError(f"等待写事务超时（{self.acquire_timeout}s）")
        try:
            with self.connection() as conn:
                conn.execute("BEGIN TRANSACTION")
                try:
                    yield conn
                except BaseException:
                    self._rollback(conn)
                    raise
                conn.execute("COMMIT")
        finally:
            self._write_lock.release()

    @contextmanager
    def snapshot(self) -> Generator[duckdb.DuckDBPyConnection, None, None]:
        """只读快照：同一快照内的多条查询看到一致的数据"""
        with self.connection() as conn:
            conn.execute("BEGIN TRANSACTION")
            try:
                yield conn
            except BaseException:
                self._rollback(conn)
                raise
            conn.execute("COMMIT")

    def execute_query(self, query: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """执行查询并返回结果"""
        with self.connection() as conn:
            return fetch_all(conn, query, params)

    def execute_one(self, query: str, params: Optional[Sequence[Any]] = None) -> Optional[Dict[str, Any]]:
        """执行查询并返回单条结果"""
        with self.connection() as conn:
            return fetch_one(conn, query, params)

    def ping(self) -> bool:
        """健康检查"""
        with self.connection() as conn:
            return fetch_value(conn, "SELECT 1") == 1
