"""
部门数据访问（只读）
"""

from typing import Any, Dict, List

import duckdb

from ..core.database import fetch_all
from .base import BaseRepository


class UserRepository(BaseRepository):
    """用户/部门仓储"""

    table = "users"

    def list_departments(self, conn: duckdb.DuckDBPyConnection) -> List[Dict[str, Any]]:
        """启用中的部门及其成员数量"""
        return fetch_all(
            conn,
            """
            SELECT dept._id AS _id, dept.name AS name, dept.code AS code,
                   dept.status AS status, COUNT(u._id) AS memberCount
            FROM departments dept
            LEFT JOIN users u ON u.departmentId = dept._id AND u.status = 'active'
            WHERE dept.status = 'active'
            GROUP BY dept._id, dept.name, dept.code, dept.status
            ORDER BY dept.name ASC
            """,
        )
