"""FastAPI 主应用"""

from datetime import date
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from smartdash import __version__
from smartdash.core.config import settings
from smartdash.core.errors import (
    AccessDeniedError,
    AnalysisError,
    ConfigurationError,
    NotFoundError,
    UpstreamQueryError,
)
from smartdash.engines.dashboard_service import DashboardService, get_dashboard_service
from smartdash.models.report import (
    DataStreamResult,
    ErrorInfo,
    SalesSummary,
    TableReport,
    ViewReport,
)
from smartdash.models.response import AnalyzeResponse, ErrorResponse, TemplateResponse
from smartdash.utils.logger import log
from smartdash.utils.rate_limiter import RateLimiter, get_rate_limiter


# 创建应用
app = FastAPI(
    title="SmartDash",
    description="自适应表结构分析与仪表盘引擎",
    version=__version__,
    debug=settings.debug
)

# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 错误类型 → HTTP 状态码
ERROR_STATUS = {
    ConfigurationError: 400,
    AccessDeniedError: 403,
    NotFoundError: 404,
    UpstreamQueryError: 502,
}


@app.exception_handler(AnalysisError)
async def analysis_error_handler(request: Request, exc: AnalysisError):
    """结构化错误统一返回"""
    status_code = ERROR_STATUS.get(type(exc), 500)
    log.warning(f"{request.method} {request.url.path} -> {status_code} {exc.code}: {exc.message}")
    body = ErrorResponse(error=ErrorInfo(**exc.to_dict()))
    return JSONResponse(status_code=status_code, content=body.model_dump())


def check_rate_limit(project_id: str, request: Request, limiter: RateLimiter = Depends(get_rate_limiter)) -> None:
    """报表接口限流（按 客户端+项目）"""
    client = request.client.host if request.client else "unknown"
    key = RateLimiter.make_key(client, project_id)
    if not limiter.is_allowed(key):
        raise HTTPException(
            status_code=429,
            detail=f"请求过于频繁，请稍后再试。剩余配额: {limiter.get_remaining(key)}"
        )


@app.get("/")
async def root():
    """根路径"""
    return {
        "name": "SmartDash",
        "version": __version__,
        "status": "running"
    }


@app.get("/health")
async def health():
    """健康检查"""
    return {"status": "healthy"}


@app.get("/projects/{project_id}/analyze", response_model=AnalyzeResponse)
async def analyze_table(
    project_id: str,
    table: Optional[str] = None,
    sample_size: Optional[int] = Query(None, ge=1, le=50_000),
    x_user_role: Optional[str] = Header(None),
    service: DashboardService = Depends(get_dashboard_service)
):
    """
    分析表结构

    返回列类型、分类、统计和推荐字段
    """
    log.info(f"收到分析请求: project={project_id}, table={table}, sample_size={sample_size}")
    analysis = service.analyze_table(project_id, table=table, sample_size=sample_size, role=x_user_role)
    return AnalyzeResponse(analysis=analysis)


@app.get(
    "/projects/{project_id}/report",
    response_model=TableReport,
    dependencies=[Depends(check_rate_limit)]
)
async def table_report(
    project_id: str,
    table: Optional[str] = None,
    group_by: Optional[str] = None,
    date_column: Optional[str] = None,
    mode: str = Query("summary", pattern="^(summary|full)$"),
    x_user_role: Optional[str] = Header(None),
    service: DashboardService = Depends(get_dashboard_service)
):
    """动态表报表：合计、分组、月度趋势、过滤选项与行预览"""
    return service.table_report(
        project_id,
        table=table,
        group_by=group_by,
        date_column=date_column,
        mode=mode,
        role=x_user_role
    )


@app.get(
    "/projects/{project_id}/view-report",
    response_model=ViewReport,
    dependencies=[Depends(check_rate_limit)]
)
async def view_report(
    project_id: str,
    view: Optional[str] = None,
    month: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}$"),
    from_date: Optional[str] = None,
    to_date: Optional[str] = None,
    x_user_role: Optional[str] = Header(None),
    service: DashboardService = Depends(get_dashboard_service)
):
    """固定结构视图报表"""
    return service.view_report(
        project_id,
        view=view,
        month=month,
        from_date=from_date,
        to_date=to_date,
        role=x_user_role
    )


@app.get(
    "/projects/{project_id}/sales-summary",
    response_model=SalesSummary,
    dependencies=[Depends(check_rate_limit)]
)
async def sales_summary(
    project_id: str,
    value_column: str,
    category_column: str,
    table: Optional[str] = None,
    today: Optional[date] = None,
    x_user_role: Optional[str] = Header(None),
    service: DashboardService = Depends(get_dashboard_service)
):
    """分类金额汇总与月底预测"""
    return service.sales_summary(
        project_id,
        value_column=value_column,
        category_column=category_column,
        table=table,
        today=today,
        role=x_user_role
    )


@app.get(
    "/projects/{project_id}/data-stream",
    response_model=DataStreamResult,
    dependencies=[Depends(check_rate_limit)]
)
async def data_stream(
    project_id: str,
    table: Optional[str] = None,
    x_user_role: Optional[str] = Header(None),
    service: DashboardService = Depends(get_dashboard_service)
):
    """完整数据（分块读取后的全部规范化行）"""
    return service.stream_table(project_id, table=table, role=x_user_role)


@app.post("/projects/{project_id}/templates/default", response_model=TemplateResponse)
async def default_template(
    project_id: str,
    table: Optional[str] = None,
    name: Optional[str] = None,
    x_user_role: Optional[str] = Header(None),
    service: DashboardService = Depends(get_dashboard_service)
):
    """生成默认仪表盘模板（需要 editor 或 admin 角色，不做持久化）"""
    template = service.default_template(project_id, role=x_user_role, table=table, name=name)
    return TemplateResponse(template=template)
