"""Table Store - 后端存储协作方（单次请求行数受上限约束）"""

import json
import duckdb
import pandas as pd
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from smartdash.core.config import settings
from smartdash.core.errors import ConfigurationError, UpstreamQueryError
from smartdash.models.query import FilterCondition, SortSpec
from smartdash.utils.logger import log
from smartdash.utils.security import SecurityValidator


class TableStore(ABC):
    """后端存储接口：行数查询 + 区间读取"""

    max_rows_per_request: int = 1000

    @abstractmethod
    def count_rows(self, table: str, filters: Optional[List[FilterCondition]] = None) -> int:
        """精确行数"""

    @abstractmethod
    def fetch_range(
        self,
        table: str,
        start: int,
        end: int,
        filters: Optional[List[FilterCondition]] = None,
        order_by: Optional[SortSpec] = None
    ) -> List[Dict[str, Any]]:
        """读取闭区间 [start, end] 的行，最多 max_rows_per_request 行"""

    @abstractmethod
    def fetch_all(self, table: str) -> List[Dict[str, Any]]:
        """单次无排序、无过滤读取（同样受单次上限约束）"""

    @abstractmethod
    def has_column(self, table: str, column: str) -> bool:
        """列是否存在于该表/视图"""


class DuckDBTableStore(TableStore):
    """基于 DuckDB 的表存储"""

    def __init__(self, db_path: Path, max_rows_per_request: Optional[int] = None):
        self.db_path = Path(db_path)
        self.max_rows_per_request = max_rows_per_request or settings.page_size

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        """获取 DuckDB 连接"""
        return duckdb.connect(str(self.db_path))

    def _quote_identifier(self, name: str) -> str:
        """安全引用标识符"""
        escaped = name.replace('"', '""')
        return f'"{escaped}"'

    def _table_ref(self, table: str) -> str:
        if not SecurityValidator.validate_identifier(table):
            raise ConfigurationError(f"非法表名: {table}", detail={"table": table})
        return self._quote_identifier(table)

    def _execute(self, sql: str, params: List[Any] | None = None) -> List[Dict[str, Any]]:
        """执行查询并返回字典行"""
        conn = self._get_connection()
        try:
            cursor = conn.execute(sql, params or [])
            columns = [d[0] for d in cursor.description]
            return [dict(zip(columns, row)) for row in cursor.fetchall()]
        except duckdb.CatalogException as e:
            log.error(f"表或列不存在: {e} | SQL: {sql}")
            raise UpstreamQueryError("表或列不存在或无访问权限", detail={"sql": sql}, cause=e) from e
        except duckdb.Error as e:
            log.error(f"查询执行失败: {e} | SQL: {sql} | params: {params}")
            raise UpstreamQueryError("查询执行失败", detail={"sql": sql}, cause=e) from e
        finally:
            conn.close()

    def _build_filter(self, filter: FilterCondition) -> Tuple[str, List[Any]]:
        """构建过滤条件"""
        col = self._quote_identifier(filter.col)
        op = filter.op
        value = filter.value

        if op in {"=", "!=", ">", ">=", "<", "<="}:
            return f"{col} {op} ?", [value]
        if op == "in":
            if not isinstance(value, list) or not value:
                raise ValueError("in 操作符需要非空数组")
            placeholders = ", ".join(["?"] * len(value))
            return f"{col} IN ({placeholders})", list(value)
        if op == "between":
            if not isinstance(value, (list, tuple)) or len(value) != 2:
                raise ValueError("between 操作符需要长度为2的数组")
            return f"{col} BETWEEN ? AND ?", [value[0], value[1]]
        if op == "contains":
            if not isinstance(value, str):
                raise ValueError("contains 操作符需要字符串值")
            escaped = SecurityValidator.escape_like(value)
            return f"{col} ILIKE ? ESCAPE '\\'", [f"%{escaped}%"]
        if op == "is_null":
            return f"{col} IS NULL", []
        raise ValueError(f"不支持的操作符: {op}")

    def _build_where(self, filters: Optional[List[FilterCondition]]) -> Tuple[str, List[Any]]:
        if not filters:
            return "", []
        if not SecurityValidator.validate_filter_count(filters):
            raise UpstreamQueryError("过滤条件过多", detail={"filters": len(filters)})
        conditions = []
        params: List[Any] = []
        for f in filters:
            clause, clause_params = self._build_filter(f)
            conditions.append(clause)
            params.extend(clause_params)
        return f"WHERE {' AND '.join(conditions)}", params

    def count_rows(self, table: str, filters: Optional[List[FilterCondition]] = None) -> int:
        where_clause, params = self._build_where(filters)
        sql = " ".join(p for p in [f"SELECT COUNT(*) AS total FROM {self._table_ref(table)}", where_clause] if p)
        rows = self._execute(sql, params)
        return int(rows[0]["total"]) if rows else 0

    def fetch_range(
        self,
        table: str,
        start: int,
        end: int,
        filters: Optional[List[FilterCondition]] = None,
        order_by: Optional[SortSpec] = None
    ) -> List[Dict[str, Any]]:
        if start < 0 or end < start:
            raise UpstreamQueryError(f"非法区间: [{start}, {end}]", detail={"start": start, "end": end})

        limit = min(end - start + 1, self.max_rows_per_request)
        where_clause, params = self._build_where(filters)
        order_clause = ""
        if order_by:
            order_clause = f"ORDER BY {self._quote_identifier(order_by.col)} {order_by.dir.upper()}"

        sql_parts = [
            f"SELECT * FROM {self._table_ref(table)}",
            where_clause,
            order_clause,
            f"LIMIT {int(limit)} OFFSET {int(start)}"
        ]
        sql = " ".join(p for p in sql_parts if p)
        log.debug(f"区间读取 SQL: {sql}")
        return self._execute(sql, params)

    def fetch_all(self, table: str) -> List[Dict[str, Any]]:
        sql = f"SELECT * FROM {self._table_ref(table)} LIMIT {int(self.max_rows_per_request)}"
        return self._execute(sql)

    def has_column(self, table: str, column: str) -> bool:
        rows = self._execute(
            "SELECT column_name FROM information_schema.columns WHERE table_name = ? AND column_name = ?",
            [table, column]
        )
        return len(rows) > 0

    def load_dataframe(self, table: str, df: pd.DataFrame) -> int:
        """
        用 DataFrame 覆盖写入表（导入协作方的测试/演示入口）

        Args:
            table: 表名
            df: 数据

        Returns:
            写入行数
        """
        table_ref = self._table_ref(table)
        df = df.copy()
        # 嵌套对象/数组以 JSON 文本存储
        for col in df.columns:
            if df[col].dtype == object:
                df[col] = df[col].map(
                    lambda v: json.dumps(v, ensure_ascii=False) if isinstance(v, (dict, list)) else v
                )

        conn = self._get_connection()
        try:
            conn.register("incoming_df", df)
            conn.execute(f"CREATE OR REPLACE TABLE {table_ref} AS SELECT * FROM incoming_df")
            conn.unregister("incoming_df")
        except duckdb.Error as e:
            log.error(f"写入表失败: {table} - {e}")
            raise UpstreamQueryError("写入表失败", detail={"table": table}, cause=e) from e
        finally:
            conn.close()

        log.info(f"表 {table} 已写入 {len(df)} 行")
        return len(df)

    def load_records(self, table: str, records: List[Dict[str, Any]]) -> int:
        """用字典行写入表"""
        return self.load_dataframe(table, pd.DataFrame.from_records(records))

    def load_file(self, table: str, file_path: Path, sheet: Optional[str] = None) -> int:
        """从 Excel/CSV 文件写入表"""
        file_path = Path(file_path)
        suffix = file_path.suffix.lower()
        if suffix in ['.xlsx', '.xls']:
            df = pd.read_excel(file_path, sheet_name=sheet or 0)
        elif suffix == '.csv':
            df = pd.read_csv(file_path)
        else:
            raise ConfigurationError(f"不支持的文件类型: {file_path.suffix}", detail={"file": str(file_path)})
        log.info(f"读取文件 {file_path.name}: {len(df)} 行, {len(df.columns)} 列")
        return self.load_dataframe(table, df)
