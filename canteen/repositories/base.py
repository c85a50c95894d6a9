"""
数据访问层基类
仓储只负责拼装SQL，连接与事务由服务层管理
"""

import json
import logging
import uuid
from abc import ABC
from typing import Any, Iterable, List, Optional

import duckdb

from ..core.database import DatabaseManager, fetch_value

logger = logging.getLogger(__name__)


class BaseRepository(ABC):
    """
    仓储基类

    查询方法都显式接收连接，服务层可以在同一事务或快照中组合多个仓储调用
    """

    table: str = ""

    def __init__(self, db: DatabaseManager):
        self.db = db

    @staticmethod
    def new_id() -> str:
        """生成主键"""
        return uuid.uuid4().hex

    def exists(self, conn: duckdb.DuckDBPyConnection, entity_id: str) -> bool:
        """判断未删除的记录是否存在"""
        count = fetch_value(
            conn,
            f"SELECT COUNT(*) FROM {self.table} WHERE _id = ? AND status != 'deleted'",
            [entity_id],
        )
        return bool(count)

    @staticmethod
    def encode_json(value: Any) -> Optional[str]:
        if value is None:
            return None
        return json.dumps(value, ensure_ascii=False)

    @staticmethod
    def decode_json_list(raw: Any, field: str) -> List[Any]:
        """
        解析 JSON 数组列

        NULL、非数组或无法解析的内容一律返回空列表
        """
        if raw is None:
            return []
        if isinstance(raw, list):
            return raw
        try:
            value = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Column %s holds malformed JSON: %r", field, raw)
            return []
        if not isinstance(value, list):
            logger.warning("Column %s is not a JSON array: %r", field, raw)
            return []
        return value

    @staticmethod
    def placeholders(values: Iterable[Any]) -> str:
        return ",".join("?" for _ in values)
