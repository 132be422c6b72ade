"""表结构分析相关模型"""

from typing import Any, Dict, List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

DataType = Literal["boolean", "date", "number", "enum", "text", "json", "unknown"]
ColumnCategory = Literal[
    "financial", "dates", "people", "status", "companies",
    "contact", "identifiers", "system", "other"
]


class ColumnStats(BaseModel):
    """列统计信息"""
    count: int = Field(..., ge=0, description="样本行数（含空值）")
    null_count: int = Field(..., ge=0, description="空值数量")
    null_percentage: int = Field(..., ge=0, le=100, description="空值百分比（四舍五入）")
    unique_count: int = Field(..., ge=0, description="唯一值数量")
    # 数值
    sum: Optional[float] = None
    avg: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    # 枚举 / 低基数文本
    unique_values: Optional[List[str]] = None
    value_distribution: Optional[Dict[str, int]] = None
    # 日期
    min_date: Optional[str] = None
    max_date: Optional[str] = None
    # 文本
    avg_length: Optional[int] = None
    max_length: Optional[int] = None


class AnalyzedColumn(BaseModel):
    """分析后的列"""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="列名")
    display_name: str = Field(..., description="展示名称")
    data_type: DataType = Field(..., description="推断的数据类型")
    category: ColumnCategory = Field(..., description="语义分类")
    stats: ColumnStats
    sample_values: List[Any] = Field(default_factory=list, max_length=5, description="示例值")
    recommendation_score: float = Field(0.0, ge=0, le=100, description="推荐分数")
    is_recommended: bool = Field(False, description="是否推荐（分数 >= 50）")


class DataAnalysis(BaseModel):
    """数据表分析结果"""
    model_config = ConfigDict(frozen=True)

    table_name: str = Field(..., description="表名")
    total_rows: int = Field(..., ge=0, description="总行数")
    total_columns: int = Field(..., ge=0, description="列数")
    columns: List[AnalyzedColumn] = Field(default_factory=list, description="按推荐分数降序的列")
    categories: Dict[str, List[AnalyzedColumn]] = Field(default_factory=dict, description="按分类分组的列")
    recommended_fields: List[str] = Field(default_factory=list, max_length=15, description="推荐字段")
    analyzed_at: datetime = Field(default_factory=datetime.now, description="分析时间")

    def column(self, name: str) -> Optional[AnalyzedColumn]:
        """按名称查找列"""
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def columns_of_type(self, data_type: str) -> List[AnalyzedColumn]:
        """按数据类型筛选列（保持分数顺序）"""
        return [c for c in self.columns if c.data_type == data_type]
