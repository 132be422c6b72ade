"""查询相关模型"""

from typing import List, Any, Literal
from pydantic import BaseModel, Field, field_validator
from smartdash.core.constants import ALLOWED_FILTER_OPERATORS


class FilterCondition(BaseModel):
    """过滤条件（等值/范围谓词）"""
    col: str = Field(..., description="列名")
    op: str = Field(..., description="操作符: =, !=, >, >=, <, <=, in, between, contains, is_null")
    value: Any = Field(None, description="过滤值")

    @field_validator('op')
    @classmethod
    def validate_operator(cls, v: str) -> str:
        if v not in ALLOWED_FILTER_OPERATORS:
            raise ValueError(f"不支持的操作符: {v}. 允许的操作符: {ALLOWED_FILTER_OPERATORS}")
        return v


class SortSpec(BaseModel):
    """排序规则"""
    col: str = Field(..., description="排序列名")
    dir: Literal["asc", "desc"] = Field("desc", description="排序方向")


def month_range_filters(col: str, month: str) -> List[FilterCondition]:
    """把 YYYY-MM 转为月份范围过滤条件（左闭右开，上界为下月 1 日）"""
    year, mon = (int(part) for part in month.split("-"))
    year, mon = (year + 1, 1) if mon == 12 else (year, mon + 1)
    return [
        FilterCondition(col=col, op=">=", value=f"{month}-01"),
        FilterCondition(col=col, op="<", value=f"{year:04d}-{mon:02d}-01"),
    ]
