"""读取与聚合报表相关模型"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from smartdash.models.analysis import DataAnalysis


class ErrorInfo(BaseModel):
    """错误对象"""
    kind: str = Field(..., description="错误类型")
    message: str = Field(..., description="错误信息")
    detail: Dict[str, Any] = Field(default_factory=dict, description="错误详情")


class ReadResult(BaseModel):
    """分块读取结果"""
    table_name: str = Field(..., description="表名")
    rows: List[Dict[str, Any]] = Field(default_factory=list, description="按偏移升序的行")
    total: int = Field(..., ge=0, description="后端报告的总行数")
    target: int = Field(..., ge=0, description="本次读取目标行数")
    pages_fetched: int = Field(0, ge=0, description="已发出的分页请求数")
    sort_key: Optional[str] = Field(None, description="实际使用的排序键")
    partial: bool = Field(False, description="是否未达到目标行数")
    truncated: bool = Field(False, description="是否被读取上限截断")
    used_fallback: bool = Field(False, description="是否使用了兜底全量请求")
    cancelled: bool = Field(False, description="是否被调用方取消")
    warnings: List[ErrorInfo] = Field(default_factory=list, description="警告")
    trace: Dict[str, Any] = Field(default_factory=dict, description="分页追踪")

    @property
    def fetched(self) -> int:
        return len(self.rows)


class GroupStats(BaseModel):
    """分组统计（动态数值合计字段 total_<列名>）"""
    model_config = ConfigDict(extra="allow")

    name: str = Field(..., description="分组值")
    count: int = Field(0, ge=0, description="行数")

    def total(self, column: str) -> float:
        """获取某数值列的合计"""
        return (self.model_extra or {}).get(f"total_{column}", 0.0)


class MonthlyBucket(BaseModel):
    """月度趋势桶（动态数值合计字段 total_<列名>）"""
    model_config = ConfigDict(extra="allow")

    month: str = Field(..., description="YYYY-MM")
    count: int = Field(0, ge=0, description="行数")

    def total(self, column: str) -> float:
        return (self.model_extra or {}).get(f"total_{column}", 0.0)


class ViewTotals(BaseModel):
    """固定结构视图汇总"""
    total_records: int = 0
    fetched_records: int = 0
    total_commission: float = 0.0
    total_premium: float = 0.0
    total_accumulation: float = 0.0
    unique_agents: int = 0
    unique_providers: int = 0
    unique_branches: int = 0


class ViewReport(BaseModel):
    """固定结构视图报表"""
    table_name: str
    dashboard_type: str
    stats: ViewTotals
    top_agents: List[GroupStats] = Field(default_factory=list)
    providers: List[GroupStats] = Field(default_factory=list)
    branches: List[GroupStats] = Field(default_factory=list)
    monthly_trend: List[MonthlyBucket] = Field(default_factory=list)
    filter_options: Dict[str, List[str]] = Field(default_factory=dict)
    recent_records: List[Dict[str, Any]] = Field(default_factory=list)
    partial: bool = False
    warnings: List[ErrorInfo] = Field(default_factory=list)


class TableReport(BaseModel):
    """动态表报表"""
    table_name: str
    total: int = Field(0, ge=0, description="表总行数")
    fetched_records: int = Field(0, ge=0, description="参与聚合的行数")
    analysis: Optional[DataAnalysis] = None
    numeric_columns: List[str] = Field(default_factory=list)
    totals: Dict[str, float] = Field(default_factory=dict, description="total_<列名> → 合计")
    group_by: Optional[str] = None
    group_counts: Dict[str, int] = Field(default_factory=dict, description="原始分组计数（含未知分组）")
    grouped_data: List[GroupStats] = Field(default_factory=list, description="排名后的分组")
    date_column: Optional[str] = None
    monthly_trend: List[MonthlyBucket] = Field(default_factory=list)
    filter_options: Dict[str, List[str]] = Field(default_factory=dict)
    data: List[Dict[str, Any]] = Field(default_factory=list, description="行预览")
    partial: bool = False
    warnings: List[ErrorInfo] = Field(default_factory=list)


class PeriodProjection(BaseModel):
    """周期预测"""
    business_days_passed: int = 0
    business_days_remaining: int = 0
    total_business_days: int = 0
    daily_rate: float = 0.0
    projected_total: float = 0.0


class SalesSummary(BaseModel):
    """业务报表：分类合计与月底预测"""
    table_name: str
    value_column: str
    category_column: str
    categories: List[GroupStats] = Field(default_factory=list)
    category_percentages: Dict[str, int] = Field(default_factory=dict)
    grand_total: float = 0.0
    projection: PeriodProjection = Field(default_factory=PeriodProjection)
    partial: bool = False
    warnings: List[ErrorInfo] = Field(default_factory=list)


class Pagination(BaseModel):
    """分页信息"""
    total: int = 0
    total_in_db: int = 0
    chunks_loaded: int = 0


class DataStreamResult(BaseModel):
    """完整数据流结果"""
    table_name: str
    is_view: bool = False
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)
    partial: bool = False
    warnings: List[ErrorInfo] = Field(default_factory=list)
