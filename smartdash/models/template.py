"""仪表盘模板相关模型"""

from typing import List, Literal, Optional
from pydantic import BaseModel, Field


class FieldSelection(BaseModel):
    """字段选择"""
    name: str = Field(..., description="列名")
    order: int = Field(..., ge=0, description="显示顺序")
    visible: bool = Field(True, description="是否可见")
    custom_label: Optional[str] = Field(None, description="自定义标签")


class FilterConfig(BaseModel):
    """过滤器配置"""
    column: str = Field(..., description="列名")
    type: Literal["text", "number", "date", "enum", "boolean"] = Field("enum", description="过滤器类型")
    enabled: bool = Field(True, description="是否启用")
    options: List[str] = Field(default_factory=list, description="可选值")


class CardConfig(BaseModel):
    """汇总卡片配置"""
    id: str = Field(..., description="卡片ID")
    title: str = Field(..., description="标题")
    column: str = Field(..., description="聚合列")
    aggregation: Literal["sum", "count", "avg", "min", "max", "distinct"] = Field("sum", description="聚合方式")
    icon: str = Field(..., description="图标")
    color: str = Field(..., description="颜色")
    format: Literal["number", "currency", "percent"] = Field("number", description="数值格式")


class TableConfig(BaseModel):
    """表格配置"""
    columns: List[FieldSelection] = Field(default_factory=list, description="表格列")
    page_size: int = Field(50, ge=1, description="每页行数")
    enable_search: bool = Field(True, description="启用搜索")
    enable_export: bool = Field(True, description="启用导出")


class ChartConfig(BaseModel):
    """图表配置"""
    id: str = Field(..., description="图表ID")
    type: Literal["pie", "bar", "line", "area", "donut"] = Field(..., description="图表类型")
    title: str = Field(..., description="标题")
    group_by: str = Field(..., description="分组列")
    aggregation: Literal["sum", "count", "avg"] = Field("count", description="聚合方式")
    show_legend: bool = True
    show_values: bool = True


class DashboardTemplate(BaseModel):
    """仪表盘模板（由持久化协作方保存）"""
    name: str = Field(..., description="模板名称")
    table_name: str = Field(..., description="表名")
    field_selection: List[FieldSelection] = Field(default_factory=list)
    filters_config: List[FilterConfig] = Field(default_factory=list)
    cards_config: List[CardConfig] = Field(default_factory=list)
    table_config: TableConfig = Field(default_factory=TableConfig)
    charts_config: List[ChartConfig] = Field(default_factory=list)
    is_default: bool = Field(True, description="是否默认模板")
