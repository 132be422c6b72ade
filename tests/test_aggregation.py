"""聚合引擎测试"""

from datetime import date

import pytest

from smartdash.core.errors import ConfigurationError
from smartdash.engines.aggregation import AggregationEngine
from smartdash.engines.schema_inference import SchemaInferenceEngine


@pytest.fixture
def engine():
    return AggregationEngine(unknown_label="unknown", weekend_days=[4, 5])


def test_month_key(engine):
    assert engine.month_key("2025-03-17") == "2025-03"
    assert engine.month_key("2025-03-17T08:00:00Z") == "2025-03"
    assert engine.month_key("17/03/2025") == "2025-03"
    assert engine.month_key(date(2024, 12, 1)) == "2024-12"
    assert engine.month_key(None) is None
    assert engine.month_key("garbage") is None


def test_null_dates_excluded_from_trend_but_counted_in_totals(engine):
    rows = [
        {"created_at": "2025-03-17", "amount": 100},
        {"created_at": "2025-03-02", "amount": 50},
        {"created_at": None, "amount": 25},
        {"created_at": "2025-01-09", "amount": 10},
    ]
    trend = engine.monthly_trend(rows, "created_at", ["amount"])
    assert [(b.month, b.count, b.total("amount")) for b in trend] == [
        ("2025-01", 1, 10.0),
        ("2025-03", 2, 150.0),
    ]
    assert engine.sum_columns(rows, ["amount"]) == {"amount": 185.0}


def test_group_by_four_values(engine):
    values = ["גמל", "פנסיה", "בריאות", "חיים"]
    rows = [{"branch": values[i % 4], "premium": 1} for i in range(10_000)]
    groups = engine.group_by(rows, "branch", ["premium"])

    assert len(groups) == 4
    assert sum(g.count for g in groups) == 10_000
    assert all(g.total("premium") == 2500 for g in groups)


def test_group_by_sorted_by_count(engine):
    rows = [{"s": "a"}] * 2 + [{"s": "b"}] * 5 + [{"s": "c"}] * 3
    assert [g.name for g in engine.group_by(rows, "s")] == ["b", "c", "a"]


def test_unknown_group_counted_but_not_ranked(engine):
    rows = [
        {"agent": "דנה", "amount": "1,000"},
        {"agent": None, "amount": 5000},
        {"agent": "", "amount": 5000},
        {"agent": "   ", "amount": 5000},
        {"agent": "יוסי", "amount": 300},
    ]
    groups = engine.group_by(rows, "agent", ["amount"])
    counts = engine.group_counts(groups)
    assert counts["unknown"] == 3
    assert sum(counts.values()) == 5

    ranked = engine.rank_groups(groups, by="amount")
    assert [g.name for g in ranked] == ["דנה", "יוסי"]
    assert ranked[0].total("amount") == 1000


def test_rank_groups_top_n(engine):
    rows = [{"agent": f"a{i}", "amount": i} for i in range(50)]
    ranked = engine.rank_groups(engine.group_by(rows, "agent", ["amount"]), by="amount", top_n=30)
    assert len(ranked) == 30
    assert ranked[0].name == "a49"


def test_business_days(engine):
    # 2025-03-01 是周六；三月共 22 个工作日（周五、周六为周末）
    assert engine.business_days(date(2025, 3, 1)) == (0, 22, 22)
    assert engine.business_days(date(2025, 3, 2)) == (1, 21, 22)
    assert engine.business_days(date(2025, 3, 31)) == (22, 0, 22)


def test_projection_with_no_business_days_is_zero(engine):
    projection = engine.project_period_total(1000, date(2025, 3, 1))
    assert projection.business_days_passed == 0
    assert projection.projected_total == 0
    assert projection.daily_rate == 0


def test_projection(engine):
    projection = engine.project_period_total(1000, date(2025, 3, 2))
    assert projection.daily_rate == 1000
    assert projection.projected_total == 22_000


def test_filter_options(engine):
    rows = [{"status": s, "code": str(i)} for i, s in enumerate(["b", "a", "b", None] * 60)]
    options = engine.filter_options(rows, ["status", "code"], max_unique=100)
    assert options == {"status": ["a", "b"]}


def view_rows():
    rows = []
    agents = ["דנה", "יוסי", None]
    for i in range(30):
        rows.append({
            "id": i,
            "provider": ["מגדל", "הראל"][i % 2],
            "processing_month": f"2025-{(i % 3) + 1:02d}-01",
            "branch": ["בריאות", "פנסיה", "רכב"][i % 3],
            "agent_name": agents[i % 3],
            "premium": 100,
            "comission": 10 * (i % 3 + 1),
        })
    return rows


def test_view_report(engine):
    report = engine.build_view_report(view_rows(), "nifraim", total_records=30)

    assert report.stats.total_records == 30
    assert report.stats.total_commission == 600
    assert report.stats.total_premium == 3000
    assert report.stats.total_accumulation == 0
    assert [a.name for a in report.top_agents] == ["יוסי", "דנה"]
    assert {b.name for b in report.branches} == {"בריאות", "פנסיה"}
    assert report.filter_options["months"] == ["2025-03", "2025-02", "2025-01"]
    assert "רכב" not in report.filter_options["branches"]
    assert [m.month for m in report.monthly_trend] == ["2025-01", "2025-02", "2025-03"]
    assert len(report.recent_records) == 30
    assert set(report.recent_records[0]) == {"id", "provider", "processing_month", "branch", "agent_name", "premium", "comission"}


def test_view_report_unknown_view(engine):
    with pytest.raises(ConfigurationError):
        engine.build_view_report([], "leads")


def test_table_report(engine, sales_rows):
    analysis = SchemaInferenceEngine().analyze("sales", sales_rows)
    report = engine.build_table_report(sales_rows, analysis, total=40, group_by="status")

    assert "total_amount" in report.numeric_columns
    assert report.totals["total_total_amount"] == sum((i + 1) * 100 for i in range(40))
    assert sum(report.group_counts.values()) == 40
    assert len(report.grouped_data) == 3
    assert report.date_column == "created_at"
    assert [b.month for b in report.monthly_trend] == ["2025-01", "2025-02", "2025-03"]
    assert report.filter_options["status"] == sorted({"פתוח", "סגור", "בטיפול"})
    assert len(report.data) == 40


def test_table_report_summary_preview_is_capped(engine):
    rows = [{"id": i, "status": ["a", "b"][i % 2]} for i in range(250)]
    analysis = SchemaInferenceEngine().analyze("t", rows)
    assert len(engine.build_table_report(rows, analysis).data) == 100
    assert len(engine.build_table_report(rows, analysis, mode="full").data) == 250


def test_sales_summary(engine):
    rows = [
        {"product": "גמל", "amount": "₪300"},
        {"product": "פנסיה", "amount": "100"},
        {"product": "גמל", "amount": "100"},
        {"product": None, "amount": "500"},
    ]
    summary = engine.build_sales_summary(rows, "amount", "product", today=date(2025, 3, 2), table_name="sales")

    assert summary.grand_total == 1000
    assert [c.name for c in summary.categories] == ["גמל", "פנסיה"]
    assert summary.category_percentages == {"גמל": 40, "פנסיה": 10}
    assert summary.projection.projected_total == 22_000
