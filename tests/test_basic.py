"""基础测试"""

import pytest
from pydantic import ValidationError

from smartdash.core.config import settings
from smartdash.core.constants import CATEGORY_WEIGHTS, LEGACY_LAYOUTS
from smartdash.core.errors import NotFoundError, PartialResultWarning, UpstreamQueryError
from smartdash.models.query import FilterCondition, SortSpec, month_range_filters
from smartdash.utils.rate_limiter import RateLimiter
from smartdash.utils.security import SecurityValidator
from smartdash.utils.trace import FetchTrace


def test_settings():
    """测试配置加载"""
    assert settings is not None
    assert settings.page_size == 1000
    assert settings.max_empty_pages == 3
    assert settings.safety_ceiling == 500_000
    assert settings.quick_sample_size == 1000
    assert settings.weekend_days == [4, 5]


def test_filter_condition():
    """测试过滤条件模型"""
    filter = FilterCondition(
        col="status",
        op="=",
        value="פתוח"
    )
    assert filter.col == "status"
    assert filter.op == "="
    assert filter.value == "פתוח"


def test_filter_condition_rejects_unknown_operator():
    """不支持的操作符"""
    with pytest.raises(ValidationError):
        FilterCondition(col="status", op="like", value="x")


def test_sort_spec_defaults_to_desc():
    assert SortSpec(col="created_at").dir == "desc"


def test_month_range_filters():
    filters = month_range_filters("processing_month", "2025-03")
    assert [(f.op, f.value) for f in filters] == [(">=", "2025-03-01"), ("<", "2025-04-01")]

    february = month_range_filters("processing_month", "2025-02")
    assert [f.value for f in february] == ["2025-02-01", "2025-03-01"]

    december = month_range_filters("processing_month", "2024-12")
    assert [f.value for f in december] == ["2024-12-01", "2025-01-01"]


def test_error_to_dict():
    """结构化错误"""
    err = UpstreamQueryError("查询失败", detail={"table": "leads"}, cause=ValueError("bad column"))
    data = err.to_dict()
    assert data["kind"] == "upstream_query_error"
    assert data["detail"]["table"] == "leads"
    assert data["detail"]["cause"] == "bad column"

    assert NotFoundError("x").to_dict()["kind"] == "not_found"
    assert issubclass(PartialResultWarning, UserWarning)


def test_static_tables_are_read_only():
    """进程级配置不可修改"""
    with pytest.raises(TypeError):
        CATEGORY_WEIGHTS["financial"] = 0
    with pytest.raises(TypeError):
        LEGACY_LAYOUTS["v3"] = ()


def test_identifier_validation():
    assert SecurityValidator.validate_identifier("master_data")
    assert SecurityValidator.validate_identifier("סכום_עסקה")
    assert not SecurityValidator.validate_identifier("leads; DROP TABLE x")
    assert not SecurityValidator.validate_identifier("")


def test_escape_like():
    assert SecurityValidator.escape_like("50%_off") == "50\\%\\_off"


def test_rate_limiter():
    limiter = RateLimiter(max_requests=2, time_window=60)
    key = RateLimiter.make_key("127.0.0.1", "p1")
    assert limiter.is_allowed(key)
    assert limiter.is_allowed(key)
    assert not limiter.is_allowed(key)
    assert limiter.get_remaining(key) == 0
    # 不同项目独立计数
    assert limiter.is_allowed(RateLimiter.make_key("127.0.0.1", "p2"))


def test_fetch_trace():
    trace = FetchTrace("leads")
    data = trace.to_dict()
    assert data["table_name"] == "leads"
    assert data["total_steps"] == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
