"""API 响应模型"""

from pydantic import BaseModel, Field

from smartdash.models.analysis import DataAnalysis
from smartdash.models.report import ErrorInfo
from smartdash.models.template import DashboardTemplate


class AnalyzeResponse(BaseModel):
    """表分析响应"""
    analysis: DataAnalysis = Field(..., description="分析结果")
    success: bool = Field(True, description="是否成功")


class TemplateResponse(BaseModel):
    """默认模板响应"""
    template: DashboardTemplate = Field(..., description="模板配置")
    success: bool = Field(True, description="是否成功")


class ErrorResponse(BaseModel):
    """错误响应（统一结构）"""
    success: bool = Field(False, description="是否成功")
    error: ErrorInfo = Field(..., description="错误对象")
