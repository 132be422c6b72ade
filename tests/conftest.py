"""测试公共夹具"""

from typing import Any, Dict, List, Optional

import pytest

from smartdash.core.errors import UpstreamQueryError
from smartdash.engines.table_store import DuckDBTableStore, TableStore
from smartdash.models.query import FilterCondition, SortSpec


class FakeTableStore(TableStore):
    """记录每次请求的内存存储"""

    def __init__(
        self,
        rows: List[Dict[str, Any]],
        total: Optional[int] = None,
        max_rows_per_request: int = 1000,
        columns: Optional[List[str]] = None,
        fail_from: Optional[int] = None,
        fallback_rows: Optional[List[Dict[str, Any]]] = None,
        fail_fallback: bool = False
    ):
        self.rows = rows
        self.total = len(rows) if total is None else total
        self.max_rows_per_request = max_rows_per_request
        self.columns = columns if columns is not None else (list(rows[0]) if rows else [])
        self.fail_from = fail_from
        self.fallback_rows = fallback_rows
        self.fail_fallback = fail_fallback
        self.calls: List[tuple] = []
        self.orders: List[Optional[SortSpec]] = []
        self.filters: List[Optional[List[FilterCondition]]] = []
        self.fallback_calls = 0

    def count_rows(self, table, filters=None):
        return self.total

    def fetch_range(self, table, start, end, filters=None, order_by=None):
        self.calls.append((start, end))
        self.orders.append(order_by)
        self.filters.append(filters)
        if self.fail_from is not None and start >= self.fail_from:
            raise UpstreamQueryError("range rejected", detail={"start": start})
        stop = min(end + 1, start + self.max_rows_per_request)
        return [dict(r) for r in self.rows[start:stop]]

    def fetch_all(self, table):
        self.fallback_calls += 1
        if self.fail_fallback:
            raise UpstreamQueryError("fallback rejected")
        source = self.rows if self.fallback_rows is None else self.fallback_rows
        return [dict(r) for r in source[:self.max_rows_per_request]]

    def has_column(self, table, column):
        return column in self.columns


def make_rows(n: int) -> List[Dict[str, Any]]:
    return [{"id": i, "created_at": f"2025-01-{(i % 28) + 1:02d}", "amount": i} for i in range(n)]


@pytest.fixture
def fake_store_cls():
    """FakeTableStore 类"""
    return FakeTableStore


@pytest.fixture
def row_factory():
    """生成带唯一 id 的行"""
    return make_rows


@pytest.fixture
def sales_rows() -> List[Dict[str, Any]]:
    """带金额/状态/分支的业务行"""
    statuses = ["פתוח", "סגור", "בטיפול"]
    branches = ["בריאות", "פנסיה", "גמל", "חיים"]
    rows = []
    for i in range(40):
        rows.append({
            "id": i + 1,
            "customer_name": f"לקוח {i}",
            "total_amount": f"₪{(i + 1) * 100:,}",
            "premium": float(i * 10),
            "status": statuses[i % 3],
            "branch": branches[i % 4],
            "created_at": f"2025-{(i % 3) + 1:02d}-15",
            "notes": f"free text number {i} with some words",
        })
    return rows


@pytest.fixture
def duckdb_store(tmp_path) -> DuckDBTableStore:
    """临时 DuckDB 存储"""
    return DuckDBTableStore(tmp_path / "test.duckdb", max_rows_per_request=100)
