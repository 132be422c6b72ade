"""Dashboard Service - 读取 → 规范化 → 分析 → 聚合 → 模板 的请求级编排"""

from datetime import date, datetime
from typing import Callable, List, Optional, Tuple

from smartdash.core.config import settings
from smartdash.core.constants import DEFAULT_SORT_KEY, VIEW_SCHEMAS
from smartdash.core.errors import ConfigurationError
from smartdash.engines.aggregation import AggregationEngine, get_aggregation_engine
from smartdash.engines.chunked_reader import ChunkedTableReader
from smartdash.engines.project_registry import ProjectConfig, ProjectRegistry, get_project_registry
from smartdash.engines.schema_inference import SchemaInferenceEngine, get_schema_inference_engine
from smartdash.engines.table_store import TableStore
from smartdash.engines.template_builder import DashboardTemplateBuilder, get_template_builder
from smartdash.engines.view_adapter import ViewAdapter
from smartdash.models.analysis import DataAnalysis
from smartdash.models.query import FilterCondition, month_range_filters
from smartdash.models.report import (
    DataStreamResult,
    Pagination,
    ReadResult,
    SalesSummary,
    TableReport,
    ViewReport,
)
from smartdash.models.template import DashboardTemplate
from smartdash.utils.logger import log

TEMPLATE_EDITOR_ROLES = ["admin", "editor"]


class DashboardService:
    """仪表盘服务（无结果缓存，每次调用重新计算）"""

    def __init__(
        self,
        registry: Optional[ProjectRegistry] = None,
        schema_engine: Optional[SchemaInferenceEngine] = None,
        aggregation: Optional[AggregationEngine] = None,
        template_builder: Optional[DashboardTemplateBuilder] = None
    ):
        self.registry = registry or get_project_registry()
        self.schema_engine = schema_engine or get_schema_inference_engine()
        self.aggregation = aggregation or get_aggregation_engine()
        self.template_builder = template_builder or get_template_builder()

    def _context(
        self,
        project_id: str,
        role: Optional[str] = None,
        allowed: Optional[List[str]] = None
    ) -> Tuple[ProjectConfig, TableStore]:
        project = self.registry.resolve(project_id)
        self.registry.require_role(project, role, allowed)
        return project, self.registry.store_for(project)

    def _read(
        self,
        project: ProjectConfig,
        store: TableStore,
        table: str,
        filters: Optional[List[FilterCondition]] = None,
        sort_key: Optional[str] = None,
        max_records: Optional[int] = None,
        is_cancelled: Optional[Callable[[], bool]] = None
    ) -> Tuple[ReadResult, list]:
        reader = ChunkedTableReader(store)
        result = reader.read_table(
            table,
            filters=filters,
            sort_key=sort_key,
            max_records=max_records,
            is_cancelled=is_cancelled
        )
        rows = ViewAdapter(project.layout_version).normalize_rows(result.rows)
        return result, rows

    def analyze_table(
        self,
        project_id: str,
        table: Optional[str] = None,
        sample_size: Optional[int] = None,
        role: Optional[str] = None,
        analyzed_at: Optional[datetime] = None,
        is_cancelled: Optional[Callable[[], bool]] = None
    ) -> DataAnalysis:
        """
        快速分析（默认采样 1000 行）

        Args:
            project_id: 项目ID
            table: 表名（默认项目表）
            sample_size: 采样行数
            role: 调用方角色
            analyzed_at: 分析时间
            is_cancelled: 取消回调

        Returns:
            分析结果
        """
        project, store = self._context(project_id, role)
        table_name = table or project.table_name
        result, rows = self._read(
            project, store, table_name,
            sort_key=DEFAULT_SORT_KEY,
            max_records=sample_size or settings.quick_sample_size,
            is_cancelled=is_cancelled
        )
        return self.schema_engine.analyze(table_name, rows, total_rows=result.total, analyzed_at=analyzed_at)

    def table_report(
        self,
        project_id: str,
        table: Optional[str] = None,
        group_by: Optional[str] = None,
        date_column: Optional[str] = None,
        mode: str = "summary",
        filters: Optional[List[FilterCondition]] = None,
        role: Optional[str] = None,
        is_cancelled: Optional[Callable[[], bool]] = None
    ) -> TableReport:
        """动态表报表（summary 最多 10000 行，full 最多 50000 行）"""
        project, store = self._context(project_id, role)
        table_name = table or project.table_name
        max_records = settings.full_max_records if mode == "full" else settings.summary_max_records

        result, rows = self._read(
            project, store, table_name,
            filters=filters,
            sort_key=DEFAULT_SORT_KEY,
            max_records=max_records,
            is_cancelled=is_cancelled
        )
        analysis = self.schema_engine.analyze(table_name, rows, total_rows=result.total)
        report = self.aggregation.build_table_report(
            rows,
            analysis,
            total=result.total,
            group_by=group_by,
            date_column=date_column,
            mode=mode
        )
        log.info(f"表报表 {table_name}: {len(rows)}/{result.total} 行, 分组列 {group_by}")
        return report.model_copy(update={"partial": result.partial, "warnings": result.warnings})

    def view_report(
        self,
        project_id: str,
        view: Optional[str] = None,
        month: Optional[str] = None,
        from_date: Optional[str] = None,
        to_date: Optional[str] = None,
        role: Optional[str] = None,
        is_cancelled: Optional[Callable[[], bool]] = None
    ) -> ViewReport:
        """固定结构视图报表（nifraim / gemel）"""
        project, store = self._context(project_id, role)
        view_name = view or project.table_name
        schema = VIEW_SCHEMAS.get(view_name)
        if schema is None:
            raise ConfigurationError(f"不是固定结构视图: {view_name}", detail={"available": sorted(VIEW_SCHEMAS)})

        filters: List[FilterCondition] = []
        if month:
            filters.extend(month_range_filters(schema.sort_key, month))
        if from_date:
            filters.append(FilterCondition(col=schema.sort_key, op=">=", value=from_date))
        if to_date:
            filters.append(FilterCondition(col=schema.sort_key, op="<=", value=to_date))

        result, rows = self._read(
            project, store, view_name,
            filters=filters or None,
            sort_key=schema.sort_key,
            is_cancelled=is_cancelled
        )
        report = self.aggregation.build_view_report(rows, view_name, total_records=result.total)
        return report.model_copy(update={"partial": result.partial, "warnings": result.warnings})

    def sales_summary(
        self,
        project_id: str,
        value_column: str,
        category_column: str,
        table: Optional[str] = None,
        today: Optional[date] = None,
        role: Optional[str] = None
    ) -> SalesSummary:
        """按分类汇总金额与月底预测"""
        project, store = self._context(project_id, role)
        table_name = table or project.table_name
        result, rows = self._read(
            project, store, table_name,
            sort_key=DEFAULT_SORT_KEY,
            max_records=settings.full_max_records
        )
        summary = self.aggregation.build_sales_summary(
            rows, value_column, category_column, today=today, table_name=table_name
        )
        return summary.model_copy(update={"partial": result.partial, "warnings": result.warnings})

    def stream_table(
        self,
        project_id: str,
        table: Optional[str] = None,
        filters: Optional[List[FilterCondition]] = None,
        role: Optional[str] = None,
        is_cancelled: Optional[Callable[[], bool]] = None
    ) -> DataStreamResult:
        """完整数据流：全部规范化行 + 分页信息"""
        project, store = self._context(project_id, role)
        table_name = table or project.table_name
        schema = VIEW_SCHEMAS.get(table_name)
        result, rows = self._read(
            project, store, table_name,
            filters=filters,
            sort_key=schema.sort_key if schema else DEFAULT_SORT_KEY,
            is_cancelled=is_cancelled
        )
        return DataStreamResult(
            table_name=table_name,
            is_view=schema is not None,
            rows=rows,
            pagination=Pagination(
                total=len(rows),
                total_in_db=result.total,
                chunks_loaded=result.pages_fetched
            ),
            partial=result.partial,
            warnings=result.warnings
        )

    def default_template(
        self,
        project_id: str,
        role: Optional[str],
        table: Optional[str] = None,
        name: Optional[str] = None
    ) -> DashboardTemplate:
        """生成默认模板（仅 admin / editor）"""
        project, _ = self._context(project_id, role, TEMPLATE_EDITOR_ROLES)
        analysis = self.analyze_table(project.project_id, table=table, role=role)
        template = self.template_builder.build_default(analysis, name=name)
        log.info(f"默认模板已生成: {template.table_name}, {len(template.field_selection)} 个字段")
        return template


# 全局单例
_dashboard_service = None


def get_dashboard_service() -> DashboardService:
    """获取 DashboardService 单例"""
    global _dashboard_service
    if _dashboard_service is None:
        _dashboard_service = DashboardService()
    return _dashboard_service
