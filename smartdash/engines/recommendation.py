"""Recommendation Scorer - 列相关性评分（0-100）"""

from typing import Iterable, List, Optional

from smartdash.core.config import settings
from smartdash.core.constants import (
    CATEGORY_WEIGHTS,
    COMPLETENESS_FACTOR,
    ENUM_BONUS,
    HIGH_CARDINALITY_PENALTY,
    HIGH_CARDINALITY_THRESHOLD,
    NON_SYSTEM_BONUS,
    NUMBER_BONUS,
    RECOMMENDATION_THRESHOLD,
)
from smartdash.models.analysis import AnalyzedColumn, ColumnStats


class RecommendationScorer:
    """推荐评分器（权重为固定产品参数）"""

    def score(self, category: str, data_type: str, stats: ColumnStats) -> float:
        """
        计算推荐分数

        Args:
            category: 列分类
            data_type: 数据类型
            stats: 列统计

        Returns:
            [0, 100] 区间内的分数
        """
        score = 0.0
        if category != "system":
            score += NON_SYSTEM_BONUS
        score += max(0, 100 - stats.null_percentage) * COMPLETENESS_FACTOR
        score += CATEGORY_WEIGHTS.get(category, 0)
        if data_type == "enum":
            score += ENUM_BONUS
        if data_type == "number":
            score += NUMBER_BONUS
        if stats.unique_count > HIGH_CARDINALITY_THRESHOLD:
            score -= HIGH_CARDINALITY_PENALTY
        return min(100.0, max(0.0, score))

    def is_recommended(self, score: float) -> bool:
        return score >= RECOMMENDATION_THRESHOLD

    def rank(self, columns: Iterable[AnalyzedColumn]) -> List[AnalyzedColumn]:
        """按分数降序（同分保持原顺序）"""
        return sorted(columns, key=lambda c: c.recommendation_score, reverse=True)

    def recommended_fields(self, columns: Iterable[AnalyzedColumn], limit: Optional[int] = None) -> List[str]:
        """排名靠前的推荐列名"""
        limit = limit or settings.recommended_fields_limit
        return [c.name for c in self.rank(columns) if c.is_recommended][:limit]


# 全局单例
_scorer = None


def get_recommendation_scorer() -> RecommendationScorer:
    """获取 RecommendationScorer 单例"""
    global _scorer
    if _scorer is None:
        _scorer = RecommendationScorer()
    return _scorer
