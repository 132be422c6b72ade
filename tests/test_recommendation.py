"""推荐评分测试"""

import pytest

from smartdash.core.constants import ALL_CATEGORIES
from smartdash.engines.recommendation import RecommendationScorer
from smartdash.models.analysis import AnalyzedColumn, ColumnStats


def make_stats(null_percentage: int = 0, unique_count: int = 10) -> ColumnStats:
    return ColumnStats(count=100, null_count=null_percentage, null_percentage=null_percentage, unique_count=unique_count)


def make_column(name: str, score: float) -> AnalyzedColumn:
    return AnalyzedColumn(
        name=name,
        display_name=name,
        data_type="text",
        category="other",
        stats=make_stats(),
        recommendation_score=score,
        is_recommended=score >= 50
    )


def test_financial_number_column():
    scorer = RecommendationScorer()
    # 20 + 100*0.3 + 25 + 15
    assert scorer.score("financial", "number", make_stats()) == pytest.approx(90)


def test_enum_status_column():
    scorer = RecommendationScorer()
    # 20 + 90*0.3 + 20 + 10
    assert scorer.score("status", "enum", make_stats(null_percentage=10)) == pytest.approx(77)


def test_system_column_scores_low():
    scorer = RecommendationScorer()
    score = scorer.score("system", "text", make_stats(null_percentage=100))
    assert score == 0
    assert not scorer.is_recommended(score)


def test_high_cardinality_penalty():
    scorer = RecommendationScorer()
    low = scorer.score("other", "text", make_stats(unique_count=1000))
    high = scorer.score("other", "text", make_stats(unique_count=1001))
    assert low - high == pytest.approx(10)
    # 20 + 30 + 5 - 10
    assert high == pytest.approx(45)
    assert not scorer.is_recommended(high)


def test_threshold():
    scorer = RecommendationScorer()
    assert scorer.is_recommended(50)
    assert not scorer.is_recommended(49.99)


@pytest.mark.parametrize("data_type", ["boolean", "date", "number", "enum", "text", "json", "unknown"])
def test_score_is_bounded(data_type):
    scorer = RecommendationScorer()
    for category in ALL_CATEGORIES:
        for null_percentage in (0, 50, 100):
            for unique_count in (0, 5000):
                score = scorer.score(category, data_type, make_stats(null_percentage, unique_count))
                assert 0 <= score <= 100


def test_rank_is_stable():
    scorer = RecommendationScorer()
    columns = [make_column("a", 60), make_column("b", 80), make_column("c", 60), make_column("d", 10)]
    assert [c.name for c in scorer.rank(columns)] == ["b", "a", "c", "d"]


def test_recommended_fields_limit():
    scorer = RecommendationScorer()
    columns = [make_column(f"col_{i}", 50 + i) for i in range(20)] + [make_column("weak", 20)]
    fields = scorer.recommended_fields(columns)
    assert len(fields) == 15
    assert fields[0] == "col_19"
    assert "weak" not in fields
