"""Dashboard Template Builder - 由分析结果生成默认仪表盘配置"""

import uuid
from typing import List, Optional

from smartdash.core.constants import (
    CARD_COLORS,
    CARD_ICONS,
    CHART_TYPES,
    ENUM_MAX_UNIQUE,
    TEMPLATE_CARD_LIMIT,
    TEMPLATE_CHART_LIMIT,
    TEMPLATE_FILTER_LIMIT,
    TEMPLATE_PAGE_SIZE,
)
from smartdash.models.analysis import AnalyzedColumn, DataAnalysis
from smartdash.models.template import (
    CardConfig,
    ChartConfig,
    DashboardTemplate,
    FieldSelection,
    FilterConfig,
    TableConfig,
)


def _stable_id(table_name: str, kind: str, column: str) -> str:
    # 相同输入得到相同ID，保持构建过程无副作用
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"{table_name}:{kind}:{column}"))


def _is_enum_like(column: AnalyzedColumn) -> bool:
    if column.data_type == "enum":
        return True
    values = column.stats.unique_values
    return values is not None and 0 < len(values) <= ENUM_MAX_UNIQUE


class DashboardTemplateBuilder:
    """默认模板构建器（纯函数，不做持久化）"""

    def build_default(self, analysis: DataAnalysis, name: Optional[str] = None) -> DashboardTemplate:
        """
        构建默认模板

        Args:
            analysis: 表分析结果
            name: 模板名称

        Returns:
            仪表盘模板
        """
        table = analysis.table_name

        field_selection: List[FieldSelection] = []
        for order, field_name in enumerate(analysis.recommended_fields):
            column = analysis.column(field_name)
            field_selection.append(FieldSelection(
                name=field_name,
                order=order,
                visible=True,
                custom_label=column.display_name if column else None
            ))

        number_columns = analysis.columns_of_type("number")[:TEMPLATE_CARD_LIMIT]
        cards = [
            CardConfig(
                id=_stable_id(table, "card", col.name),
                title=col.display_name,
                column=col.name,
                aggregation="sum",
                icon=CARD_ICONS[i % len(CARD_ICONS)],
                color=CARD_COLORS[i % len(CARD_COLORS)],
                format="currency" if col.category == "financial" else "number"
            )
            for i, col in enumerate(number_columns)
        ]

        enum_like = [c for c in analysis.columns if _is_enum_like(c)]
        filters = [
            FilterConfig(
                column=col.name,
                type="enum",
                enabled=True,
                options=list(col.stats.unique_values or [])
            )
            for col in enum_like[:TEMPLATE_FILTER_LIMIT]
        ]

        charts = [
            ChartConfig(
                id=_stable_id(table, "chart", col.name),
                type=CHART_TYPES[i],
                title=f"התפלגות {col.display_name}",
                group_by=col.name,
                aggregation="count"
            )
            for i, col in enumerate(enum_like[:TEMPLATE_CHART_LIMIT])
        ]

        return DashboardTemplate(
            name=name or f"{table} - תבנית ברירת מחדל",
            table_name=table,
            field_selection=field_selection,
            filters_config=filters,
            cards_config=cards,
            table_config=TableConfig(
                columns=[f.model_copy() for f in field_selection],
                page_size=TEMPLATE_PAGE_SIZE,
                enable_search=True,
                enable_export=True
            ),
            charts_config=charts,
            is_default=True
        )


# 全局单例
_template_builder = None


def get_template_builder() -> DashboardTemplateBuilder:
    """获取 DashboardTemplateBuilder 单例"""
    global _template_builder
    if _template_builder is None:
        _template_builder = DashboardTemplateBuilder()
    return _template_builder
