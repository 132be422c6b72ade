"""错误类型定义"""

from typing import Any, Dict


class AnalysisError(Exception):
    """分析引擎错误基类（结构化）"""

    code = "analysis_error"

    def __init__(self, message: str, detail: Dict[str, Any] | None = None, cause: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}
        self.cause = str(cause) if cause else None

    def to_dict(self) -> Dict[str, Any]:
        """转为错误对象"""
        detail = dict(self.detail)
        if self.cause:
            detail["cause"] = self.cause
        return {
            "kind": self.code,
            "message": self.message,
            "detail": detail
        }


class ConfigurationError(AnalysisError):
    """后端连接缺失/无效，或无法解析表/项目"""
    code = "configuration_error"


class AccessDeniedError(AnalysisError):
    """调用方缺少所需角色"""
    code = "access_denied"


class NotFoundError(AnalysisError):
    """表、项目或模板不存在"""
    code = "not_found"


class UpstreamQueryError(AnalysisError):
    """后端存储拒绝查询"""
    code = "upstream_query_error"


class PartialResultWarning(AnalysisError, UserWarning):
    """分块读取未达到预期总数"""
    code = "partial_result"
