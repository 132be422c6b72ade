"""Aggregation Engine - 合计、分组、月度趋势、排名与周期预测"""

import calendar
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from smartdash.core.config import settings
from smartdash.core.constants import (
    FILTER_OPTION_COLUMNS,
    FILTER_OPTION_MAX_UNIQUE,
    AGENT_OPTIONS_LIMIT,
    MAIN_BRANCHES,
    PREVIEW_ROWS,
    RANKED_GROUPS_LIMIT,
    SUMMARY_PREVIEW_ROWS,
    TOP_AGENTS_LIMIT,
    VIEW_SCHEMAS,
)
from smartdash.core.errors import ConfigurationError
from smartdash.models.analysis import DataAnalysis
from smartdash.models.report import (
    GroupStats,
    MonthlyBucket,
    PeriodProjection,
    SalesSummary,
    TableReport,
    ViewReport,
    ViewTotals,
)
from smartdash.utils.logger import log
from smartdash.utils.values import is_null, parse_date, parse_numeric, round_half_up, to_text


class AggregationEngine:
    """聚合引擎（无状态，每次调用独立计算）"""

    def __init__(self, unknown_label: Optional[str] = None, weekend_days: Optional[Sequence[int]] = None):
        self.unknown_label = unknown_label or settings.unknown_group_label
        self.weekend_days = set(weekend_days if weekend_days is not None else settings.weekend_days)

    # ---------- 基础聚合 ----------

    def _number(self, value: Any) -> float:
        parsed = parse_numeric(value)
        return parsed if parsed is not None else 0.0

    def group_key(self, value: Any) -> str:
        """分组键；缺失或空白值归入未知分组"""
        if is_null(value) or (isinstance(value, str) and not value.strip()):
            return self.unknown_label
        return to_text(value)

    def sum_columns(self, rows: Iterable[Dict[str, Any]], numeric_columns: Sequence[str]) -> Dict[str, float]:
        """各数值列的累计合计"""
        totals = {col: 0.0 for col in numeric_columns}
        for row in rows:
            for col in numeric_columns:
                totals[col] += self._number(row.get(col))
        return totals

    def group_by(
        self,
        rows: Iterable[Dict[str, Any]],
        column: str,
        numeric_columns: Sequence[str] = ()
    ) -> List[GroupStats]:
        """
        按列分组

        Args:
            rows: 数据行
            column: 分组列
            numeric_columns: 需要分组合计的数值列

        Returns:
            全部分组（含未知分组），按行数降序
        """
        buckets: Dict[str, Dict[str, Any]] = {}
        for row in rows:
            key = self.group_key(row.get(column))
            bucket = buckets.get(key)
            if bucket is None:
                bucket = {"name": key, "count": 0, **{f"total_{c}": 0.0 for c in numeric_columns}}
                buckets[key] = bucket
            bucket["count"] += 1
            for col in numeric_columns:
                bucket[f"total_{col}"] += self._number(row.get(col))

        groups = [GroupStats(**b) for b in buckets.values()]
        return sorted(groups, key=lambda g: g.count, reverse=True)

    def group_counts(self, groups: Iterable[GroupStats]) -> Dict[str, int]:
        """原始分组计数（含未知分组）"""
        return {g.name: g.count for g in groups}

    def rank_groups(
        self,
        groups: Iterable[GroupStats],
        by: str = "count",
        top_n: Optional[int] = None
    ) -> List[GroupStats]:
        """
        分组排名：去掉未知分组后按行数或某数值列合计降序，截取前 N 个
        """
        ranked = [g for g in groups if g.name != self.unknown_label]
        if by == "count":
            ranked.sort(key=lambda g: g.count, reverse=True)
        else:
            ranked.sort(key=lambda g: g.total(by), reverse=True)
        return ranked[:top_n] if top_n is not None else ranked

    # ---------- 时间维度 ----------

    @staticmethod
    def month_key(value: Any) -> Optional[str]:
        """日期值 → YYYY-MM；无法解析返回 None"""
        parsed = parse_date(value)
        if parsed is None:
            return None
        return f"{parsed.year:04d}-{parsed.month:02d}"

    def monthly_trend(
        self,
        rows: Iterable[Dict[str, Any]],
        date_column: str,
        numeric_columns: Sequence[str] = ()
    ) -> List[MonthlyBucket]:
        """月度趋势（按月份升序，缺失/无法解析的日期不进入趋势）"""
        buckets: Dict[str, Dict[str, Any]] = {}
        skipped = 0
        for row in rows:
            month = self.month_key(row.get(date_column))
            if month is None:
                skipped += 1
                continue
            bucket = buckets.setdefault(
                month,
                {"month": month, "count": 0, **{f"total_{c}": 0.0 for c in numeric_columns}}
            )
            bucket["count"] += 1
            for col in numeric_columns:
                bucket[f"total_{col}"] += self._number(row.get(col))

        if skipped:
            log.debug(f"月度趋势跳过 {skipped} 行无效日期 ({date_column})")
        return [MonthlyBucket(**buckets[m]) for m in sorted(buckets)]

    def business_days(self, today: date) -> Tuple[int, int, int]:
        """
        当月工作日

        Returns:
            (已过工作日含今天, 剩余工作日, 当月总工作日)
        """
        _, days_in_month = calendar.monthrange(today.year, today.month)
        first = today.replace(day=1)
        total = passed = 0
        for offset in range(days_in_month):
            current = first + timedelta(days=offset)
            if current.weekday() in self.weekend_days:
                continue
            total += 1
            if current <= today:
                passed += 1
        return passed, total - passed, total

    def project_period_total(self, cumulative: float, today: date) -> PeriodProjection:
        """按已过工作日的日均值预测月底总量；尚无工作日时预测为 0"""
        passed, remaining, total = self.business_days(today)
        daily_rate = cumulative / passed if passed > 0 else 0.0
        return PeriodProjection(
            business_days_passed=passed,
            business_days_remaining=remaining,
            total_business_days=total,
            daily_rate=daily_rate,
            projected_total=daily_rate * total
        )

    # ---------- 过滤选项 ----------

    def distinct_values(self, rows: Iterable[Dict[str, Any]], column: str) -> List[str]:
        """非空唯一值（首次出现顺序）"""
        values: Dict[str, None] = {}
        for row in rows:
            value = row.get(column)
            if not is_null(value):
                values.setdefault(to_text(value), None)
        return list(values)

    def filter_options(
        self,
        rows: Sequence[Dict[str, Any]],
        columns: Sequence[str],
        max_unique: int = FILTER_OPTION_MAX_UNIQUE
    ) -> Dict[str, List[str]]:
        """低基数列的可选值列表（排序后）"""
        options = {}
        for col in columns:
            values = self.distinct_values(rows, col)
            if 0 < len(values) <= max_unique:
                options[col] = sorted(values)
        return options

    # ---------- 报表 ----------

    def build_view_report(
        self,
        rows: Sequence[Dict[str, Any]],
        view_name: str,
        total_records: Optional[int] = None
    ) -> ViewReport:
        """
        固定结构视图报表（按代理人/供应商/分支/月份拆分）

        Args:
            rows: 视图数据行
            view_name: 视图名（nifraim / gemel）
            total_records: 视图总行数

        Returns:
            视图报表
        """
        schema = VIEW_SCHEMAS.get(view_name)
        if schema is None:
            raise ConfigurationError(f"未知的固定结构视图: {view_name}", detail={"available": sorted(VIEW_SCHEMAS)})

        value, secondary = schema.value_field, schema.secondary_field
        numeric = [value, secondary]
        totals = self.sum_columns(rows, numeric)

        agents = self.group_by(rows, "agent_name", numeric)
        providers = self.group_by(rows, "provider", numeric)
        branches = self.group_by(rows, "branch", [value])

        main_branches = [g for g in self.rank_groups(branches, by=value) if g.name in MAIN_BRANCHES]
        months = {self.month_key(row.get(schema.sort_key)) for row in rows}
        month_options = sorted((m for m in months if m), reverse=True)

        stats = ViewTotals(
            total_records=len(rows) if total_records is None else total_records,
            fetched_records=len(rows),
            total_commission=totals[value],
            total_premium=totals[secondary] if secondary == "premium" else 0.0,
            total_accumulation=totals[secondary] if secondary == "accumulation_balance" else 0.0,
            unique_agents=len(agents),
            unique_providers=len(providers),
            unique_branches=len(branches)
        )

        return ViewReport(
            table_name=view_name,
            dashboard_type=view_name,
            stats=stats,
            top_agents=self.rank_groups(agents, by=value, top_n=TOP_AGENTS_LIMIT),
            providers=self.rank_groups(providers, by=value),
            branches=main_branches,
            monthly_trend=self.monthly_trend(rows, schema.sort_key, numeric),
            filter_options={
                "providers": self.distinct_values(rows, "provider"),
                "branches": [b for b in self.distinct_values(rows, "branch") if b in MAIN_BRANCHES],
                "agents": self.distinct_values(rows, "agent_name")[:AGENT_OPTIONS_LIMIT],
                "months": month_options,
            },
            recent_records=[
                {col: row.get(col) for col in ("id",) + schema.columns}
                for row in rows[:PREVIEW_ROWS]
            ]
        )

    def build_table_report(
        self,
        rows: Sequence[Dict[str, Any]],
        analysis: DataAnalysis,
        total: Optional[int] = None,
        group_by: Optional[str] = None,
        date_column: Optional[str] = None,
        mode: str = "summary",
        top_n: int = RANKED_GROUPS_LIMIT
    ) -> TableReport:
        """
        动态表报表（任意列分组）

        Args:
            rows: 已规范化的数据行
            analysis: 同一批行的分析结果
            total: 表总行数
            group_by: 分组列
            date_column: 日期列（默认取分析出的第一个日期列）
            mode: summary 仅返回前 100 行预览；full 返回全部行
            top_n: 排名分组数量
        """
        numeric_columns = [c.name for c in analysis.columns_of_type("number")]
        totals = self.sum_columns(rows, numeric_columns)

        if date_column is None:
            date_columns = analysis.columns_of_type("date")
            date_column = date_columns[0].name if date_columns else None

        groups: List[GroupStats] = []
        if group_by:
            groups = self.group_by(rows, group_by, numeric_columns)

        option_columns = [
            c.name for c in analysis.columns
            if c.data_type in ("text", "enum")
        ][:FILTER_OPTION_COLUMNS]

        return TableReport(
            table_name=analysis.table_name,
            total=len(rows) if total is None else total,
            fetched_records=len(rows),
            analysis=analysis,
            numeric_columns=numeric_columns,
            totals={f"total_{col}": value for col, value in totals.items()},
            group_by=group_by,
            group_counts=self.group_counts(groups),
            grouped_data=self.rank_groups(groups, top_n=top_n),
            date_column=date_column,
            monthly_trend=self.monthly_trend(rows, date_column, numeric_columns) if date_column else [],
            filter_options=self.filter_options(rows, option_columns),
            data=list(rows) if mode == "full" else list(rows[:SUMMARY_PREVIEW_ROWS])
        )

    def build_sales_summary(
        self,
        rows: Sequence[Dict[str, Any]],
        value_column: str,
        category_column: str,
        today: Optional[date] = None,
        table_name: str = ""
    ) -> SalesSummary:
        """
        业务报表：按分类汇总金额、占比与月底预测
        """
        today = today or date.today()
        groups = self.group_by(rows, category_column, [value_column])
        categories = self.rank_groups(groups, by=value_column)
        grand_total = sum(g.total(value_column) for g in groups)

        percentages = {
            g.name: round_half_up(g.total(value_column) / grand_total * 100) if grand_total > 0 else 0
            for g in categories
        }

        return SalesSummary(
            table_name=table_name,
            value_column=value_column,
            category_column=category_column,
            categories=categories,
            category_percentages=percentages,
            grand_total=grand_total,
            projection=self.project_period_total(grand_total, today)
        )


# 全局单例
_aggregation_engine = None


def get_aggregation_engine() -> AggregationEngine:
    """获取 AggregationEngine 单例"""
    global _aggregation_engine
    if _aggregation_engine is None:
        _aggregation_engine = AggregationEngine()
    return _aggregation_engine
