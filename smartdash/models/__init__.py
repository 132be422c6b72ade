"""数据模型包"""

from smartdash.models.analysis import (
    ColumnStats,
    AnalyzedColumn,
    DataAnalysis
)
from smartdash.models.query import (
    FilterCondition,
    SortSpec
)
from smartdash.models.template import (
    FieldSelection,
    FilterConfig,
    CardConfig,
    TableConfig,
    ChartConfig,
    DashboardTemplate
)
from smartdash.models.report import (
    ErrorInfo,
    ReadResult,
    GroupStats,
    MonthlyBucket,
    ViewTotals,
    ViewReport,
    TableReport,
    PeriodProjection,
    SalesSummary,
    Pagination,
    DataStreamResult
)
from smartdash.models.response import (
    AnalyzeResponse,
    TemplateResponse,
    ErrorResponse
)

__all__ = [
    # Analysis
    "ColumnStats",
    "AnalyzedColumn",
    "DataAnalysis",
    # Query
    "FilterCondition",
    "SortSpec",
    # Template
    "FieldSelection",
    "FilterConfig",
    "CardConfig",
    "TableConfig",
    "ChartConfig",
    "DashboardTemplate",
    # Report
    "ErrorInfo",
    "ReadResult",
    "GroupStats",
    "MonthlyBucket",
    "ViewTotals",
    "ViewReport",
    "TableReport",
    "PeriodProjection",
    "SalesSummary",
    "Pagination",
    "DataStreamResult",
    # Response
    "AnalyzeResponse",
    "TemplateResponse",
    "ErrorResponse",
]
