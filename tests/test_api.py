"""HTTP 接口测试"""

import pandas as pd
import pytest
from fastapi.testclient import TestClient

from smartdash.api.main import app
from smartdash.engines.dashboard_service import DashboardService, get_dashboard_service
from smartdash.engines.project_registry import ProjectConfig, ProjectRegistry
from smartdash.engines.table_store import DuckDBTableStore
from smartdash.utils.rate_limiter import RateLimiter, get_rate_limiter

VIEWER = {"X-User-Role": "viewer"}


@pytest.fixture
def registry(tmp_path, sales_rows):
    db_path = tmp_path / "project.duckdb"
    store = DuckDBTableStore(db_path)
    store.load_records("sales", sales_rows)
    store.load_records("nifraim", [
        {
            "id": i,
            "provider": ["מגדל", "הראל"][i % 2],
            "processing_month": f"2025-0{(i % 2) + 1}-01",
            "branch": "בריאות",
            "agent_name": f"agent {i % 4}",
            "premium": 100.0,
            "comission": 10.0,
        }
        for i in range(20)
    ])

    dated_path = tmp_path / "dated.duckdb"
    DuckDBTableStore(dated_path).load_dataframe("nifraim", pd.DataFrame({
        "id": range(4),
        "provider": ["מגדל", "הראל", "מגדל", "הראל"],
        "processing_month": pd.to_datetime(["2025-01-31", "2025-02-01", "2025-02-28", "2025-03-01"]),
        "branch": ["בריאות"] * 4,
        "agent_name": ["agent 0", "agent 1", "agent 0", "agent 1"],
        "premium": [100.0] * 4,
        "comission": [10.0] * 4,
    }))

    reg = ProjectRegistry(projects_file=tmp_path / "projects.json")
    reg.register(ProjectConfig(project_id="p1", name="מכירות", table_name="sales", database_path=db_path))
    reg.register(ProjectConfig(project_id="views", name="נפרעים", table_name="nifraim", database_path=db_path))
    reg.register(ProjectConfig(project_id="draft", name="טיוטה", is_configured=False))
    reg.register(ProjectConfig(project_id="dated", name="נפרעים לפי תאריך", table_name="nifraim", database_path=dated_path))
    reg.register(ProjectConfig(
        project_id="restricted", name="מנהלים", table_name="sales", database_path=db_path, allowed_roles=["admin"]
    ))
    return reg


@pytest.fixture
def limiter():
    return RateLimiter(max_requests=1000, time_window=60)


@pytest.fixture
def client(registry, limiter):
    app.dependency_overrides[get_dashboard_service] = lambda: DashboardService(registry=registry)
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_analyze(client):
    response = client.get("/projects/p1/analyze", headers=VIEWER)
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    analysis = data["analysis"]
    assert analysis["table_name"] == "sales"
    assert analysis["total_rows"] == 40
    assert "total_amount" in analysis["recommended_fields"]


def test_unknown_project(client):
    response = client.get("/projects/nope/analyze", headers=VIEWER)
    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["error"]["kind"] == "not_found"


def test_unconfigured_project(client):
    response = client.get("/projects/draft/analyze", headers=VIEWER)
    assert response.status_code == 400
    assert response.json()["error"]["kind"] == "configuration_error"


def test_missing_table(client):
    response = client.get("/projects/p1/analyze", params={"table": "contacts"}, headers=VIEWER)
    assert response.status_code == 502
    assert response.json()["error"]["kind"] == "upstream_query_error"


def test_report(client):
    response = client.get("/projects/p1/report", params={"group_by": "status"}, headers=VIEWER)
    assert response.status_code == 200
    report = response.json()
    assert report["total"] == 40
    assert sum(report["group_counts"].values()) == 40
    assert report["grouped_data"][0]["count"] > 0
    assert "total_total_amount" in report["totals"]
    assert report["partial"] is False


def test_report_rejects_unknown_mode(client):
    response = client.get("/projects/p1/report", params={"mode": "everything"})
    assert response.status_code == 422


def test_view_report(client):
    response = client.get("/projects/views/view-report", params={"month": "2025-01"}, headers=VIEWER)
    assert response.status_code == 200
    report = response.json()
    assert report["dashboard_type"] == "nifraim"
    assert report["stats"]["total_records"] == 10
    assert report["filter_options"]["months"] == ["2025-01"]


def test_view_report_on_plain_table(client):
    response = client.get("/projects/p1/view-report", headers=VIEWER)
    assert response.status_code == 400


def test_view_report_short_month_on_date_column(client):
    """日期类型列：二月不存在 31 日"""
    response = client.get("/projects/dated/view-report", params={"month": "2025-02"}, headers=VIEWER)
    assert response.status_code == 200
    report = response.json()
    assert report["stats"]["total_records"] == 2
    assert report["filter_options"]["months"] == ["2025-02"]


def test_sales_summary(client):
    response = client.get(
        "/projects/p1/sales-summary",
        params={"value_column": "total_amount", "category_column": "branch", "today": "2025-03-02"},
        headers=VIEWER
    )
    assert response.status_code == 200
    summary = response.json()
    assert summary["grand_total"] == sum((i + 1) * 100 for i in range(40))
    assert summary["projection"]["business_days_passed"] == 1
    assert sum(summary["category_percentages"].values()) == pytest.approx(100, abs=2)


def test_data_stream(client):
    response = client.get("/projects/views/data-stream", headers=VIEWER)
    assert response.status_code == 200
    data = response.json()
    assert data["is_view"] is True
    assert data["pagination"] == {"total": 20, "total_in_db": 20, "chunks_loaded": 1}
    assert len(data["rows"]) == 20


def test_restricted_project_requires_role(client):
    """未携带角色的请求同样受项目角色限制"""
    assert client.get("/projects/restricted/analyze").status_code == 403
    assert client.get("/projects/restricted/analyze", headers=VIEWER).status_code == 403
    assert client.get("/projects/restricted/data-stream").status_code == 403
    response = client.get("/projects/restricted/analyze", headers={"X-User-Role": "admin"})
    assert response.status_code == 200


def test_missing_role_rejected(client):
    response = client.get("/projects/p1/report")
    assert response.status_code == 403
    assert response.json()["error"]["kind"] == "access_denied"


def test_default_template_requires_editor(client):
    response = client.post("/projects/p1/templates/default")
    assert response.status_code == 403
    assert response.json()["error"]["kind"] == "access_denied"

    response = client.post("/projects/p1/templates/default", headers={"X-User-Role": "viewer"})
    assert response.status_code == 403


def test_default_template(client):
    response = client.post("/projects/p1/templates/default", headers={"X-User-Role": "editor"})
    assert response.status_code == 200
    template = response.json()["template"]
    assert template["table_name"] == "sales"
    assert template["table_config"]["page_size"] == 50
    assert [c["type"] for c in template["charts_config"]] == ["pie", "bar"]


def test_rate_limit(client, limiter):
    limiter.max_requests = 1
    assert client.get("/projects/p1/report", headers=VIEWER).status_code == 200
    assert client.get("/projects/p1/report", headers=VIEWER).status_code == 429
