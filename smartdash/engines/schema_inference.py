"""Schema Inference Engine - 列分类、类型推断与统计"""

import re
from collections import Counter
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from smartdash.core.config import settings
from smartdash.core.constants import (
    ALL_CATEGORIES,
    CATEGORY_PATTERNS,
    DEFAULT_CATEGORY,
    DISTRIBUTION_MAX_UNIQUE,
    ENUM_MAX_UNIQUE,
    ENUM_MAX_UNIQUE_RATIO,
    MAX_SAMPLE_VALUES,
    TYPE_MATCH_RATIO,
)
from smartdash.engines.recommendation import RecommendationScorer, get_recommendation_scorer
from smartdash.models.analysis import AnalyzedColumn, ColumnStats, DataAnalysis
from smartdash.utils.logger import log
from smartdash.utils.values import (
    is_boolean_like,
    is_null,
    looks_like_date,
    parse_date,
    parse_json_container,
    parse_numeric,
    round_half_up,
    to_text,
)


def detect_category(name: str) -> str:
    """按固定顺序匹配列名，先匹配者胜出"""
    for category, pattern in CATEGORY_PATTERNS:
        if pattern.search(name):
            return category
    return DEFAULT_CATEGORY


def _mostly(values: Sequence[Any], predicate: Callable[[Any], bool]) -> bool:
    matched = sum(1 for v in values if predicate(v))
    return matched / len(values) > TYPE_MATCH_RATIO


def _is_boolean(values: Sequence[Any]) -> bool:
    return all(is_boolean_like(v) for v in values)


def _is_date(values: Sequence[Any]) -> bool:
    return _mostly(values, looks_like_date)


def _is_number(values: Sequence[Any]) -> bool:
    return _mostly(values, lambda v: parse_numeric(v) is not None)


def _is_json(values: Sequence[Any]) -> bool:
    return _mostly(values, lambda v: parse_json_container(v) is not None)


def _is_enum(values: Sequence[Any]) -> bool:
    unique_count = len({to_text(v) for v in values})
    return unique_count <= ENUM_MAX_UNIQUE and unique_count < len(values) * ENUM_MAX_UNIQUE_RATIO


# 类型判定规则（顺序即优先级）
DATA_TYPE_RULES: Tuple[Tuple[str, Callable[[Sequence[Any]], bool]], ...] = (
    ("boolean", _is_boolean),
    ("date", _is_date),
    ("number", _is_number),
    ("json", _is_json),
    ("enum", _is_enum),
)


def detect_data_type(values: Sequence[Any]) -> str:
    """
    推断数据类型

    Args:
        values: 样本值（可含空值，空值不参与判定）

    Returns:
        boolean / date / number / json / enum / text，无非空值时为 unknown
    """
    non_null = [v for v in values if not is_null(v)]
    if not non_null:
        return "unknown"
    for data_type, rule in DATA_TYPE_RULES:
        if rule(non_null):
            return data_type
    return "text"


def calculate_stats(values: Sequence[Any], data_type: str) -> ColumnStats:
    """
    计算列统计

    无法按当前类型解析的值直接排除，不会抛出异常。
    """
    count = len(values)
    non_null = [v for v in values if not is_null(v)]
    null_count = count - len(non_null)
    texts = [to_text(v) for v in non_null]
    unique_values = list(dict.fromkeys(texts))

    stats: Dict[str, Any] = {
        "count": count,
        "null_count": null_count,
        "null_percentage": round_half_up(null_count / count * 100) if count else 0,
        "unique_count": len(unique_values),
    }

    if data_type == "number":
        numbers = [n for n in (parse_numeric(v) for v in non_null) if n is not None]
        if numbers:
            total = sum(numbers)
            stats.update(sum=total, avg=total / len(numbers), min=min(numbers), max=max(numbers))

    if data_type == "enum" or (data_type == "text" and len(unique_values) <= DISTRIBUTION_MAX_UNIQUE):
        kept = unique_values[:DISTRIBUTION_MAX_UNIQUE]
        counts = Counter(texts)
        stats["unique_values"] = kept
        stats["value_distribution"] = {v: counts[v] for v in kept}

    if data_type == "date":
        dates = [d for d in (parse_date(v) for v in non_null) if d is not None]
        if dates:
            stats["min_date"] = min(dates).isoformat()
            stats["max_date"] = max(dates).isoformat()

    if data_type == "text" and texts:
        lengths = [len(t) for t in texts]
        stats["avg_length"] = round_half_up(sum(lengths) / len(lengths))
        stats["max_length"] = max(lengths)

    return ColumnStats(**stats)


def format_display_name(name: str) -> str:
    """snake_case / camelCase → Title Case（仅用于展示）"""
    text = name.replace("_", " ")
    text = re.sub(r"([a-z])([A-Z])", r"\1 \2", text)
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), text)


class SchemaInferenceEngine:
    """表结构推断引擎"""

    def __init__(self, scorer: Optional[RecommendationScorer] = None):
        self.scorer = scorer or get_recommendation_scorer()

    def _column_names(self, rows: Sequence[Dict[str, Any]]) -> List[str]:
        # 行间键集合可能不同，取并集并保持首次出现顺序
        names: Dict[str, None] = {}
        for row in rows:
            for key in row:
                names.setdefault(key, None)
        return list(names)

    def analyze_column(self, name: str, values: Sequence[Any]) -> AnalyzedColumn:
        """分析单列"""
        category = detect_category(name)
        data_type = detect_data_type(values)
        stats = calculate_stats(values, data_type)
        score = self.scorer.score(category, data_type, stats)
        return AnalyzedColumn(
            name=name,
            display_name=format_display_name(name),
            data_type=data_type,
            category=category,
            stats=stats,
            sample_values=list(values[:MAX_SAMPLE_VALUES]),
            recommendation_score=score,
            is_recommended=self.scorer.is_recommended(score)
        )

    def analyze(
        self,
        table_name: str,
        rows: Sequence[Dict[str, Any]],
        total_rows: Optional[int] = None,
        analyzed_at: Optional[datetime] = None
    ) -> DataAnalysis:
        """
        分析样本行

        Args:
            table_name: 表名
            rows: 已规范化的样本行
            total_rows: 表总行数（默认为样本行数）
            analyzed_at: 分析时间（传入固定值时结果可重复）

        Returns:
            分析结果
        """
        columns = [
            self.analyze_column(name, [row.get(name) for row in rows])
            for name in self._column_names(rows)
        ]
        ranked = self.scorer.rank(columns)

        categories: Dict[str, List[AnalyzedColumn]] = {c: [] for c in ALL_CATEGORIES}
        for col in ranked:
            categories[col.category].append(col)

        analysis = DataAnalysis(
            table_name=table_name,
            total_rows=len(rows) if total_rows is None else total_rows,
            total_columns=len(ranked),
            columns=ranked,
            categories=categories,
            recommended_fields=self.scorer.recommended_fields(ranked, settings.recommended_fields_limit),
            analyzed_at=analyzed_at or datetime.now()
        )

        log.info(
            f"表 {table_name} 分析完成: {len(rows)} 行样本, {len(ranked)} 列, "
            f"推荐 {len(analysis.recommended_fields)} 列"
        )
        return analysis


# 全局单例
_schema_engine = None


def get_schema_inference_engine() -> SchemaInferenceEngine:
    """获取 SchemaInferenceEngine 单例"""
    global _schema_engine
    if _schema_engine is None:
        _schema_engine = SchemaInferenceEngine()
    return _schema_engine
