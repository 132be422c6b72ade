"""Project Registry - 项目 → 表名/存储/角色 解析"""

import json
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from smartdash.core.config import settings
from smartdash.core.constants import DEFAULT_LEGACY_LAYOUT
from smartdash.core.errors import AccessDeniedError, ConfigurationError, NotFoundError
from smartdash.engines.table_store import DuckDBTableStore
from smartdash.utils.logger import log


class ProjectConfig(BaseModel):
    """项目配置"""
    project_id: str = Field(..., description="项目ID")
    name: str = Field(..., description="项目名称")
    table_name: Optional[str] = Field(None, description="默认表/视图名")
    database_path: Optional[Path] = Field(None, description="DuckDB 文件路径（相对路径基于 duckdb_dir）")
    allowed_roles: List[str] = Field(default_factory=lambda: ["admin", "editor", "viewer"])
    layout_version: str = Field(DEFAULT_LEGACY_LAYOUT, description="旧版位置数组布局版本")
    is_configured: bool = Field(True, description="是否已完成连接配置")


class ProjectRegistry:
    """项目注册表"""

    def __init__(self, projects_file: Optional[Path] = None):
        self._projects: Dict[str, ProjectConfig] = {}
        path = projects_file if projects_file is not None else settings.projects_file
        if path and Path(path).exists():
            self.load(Path(path))

    def load(self, path: Path) -> int:
        """从 JSON 文件加载项目列表"""
        with open(path, "r", encoding="utf-8") as f:
            entries = json.load(f)
        for entry in entries:
            self.register(ProjectConfig(**entry))
        log.info(f"从 {path} 加载 {len(entries)} 个项目")
        return len(entries)

    def register(self, project: ProjectConfig) -> ProjectConfig:
        """注册项目"""
        self._projects[project.project_id] = project
        log.debug(f"项目已注册: {project.project_id} ({project.name})")
        return project

    def get(self, project_id: str) -> ProjectConfig:
        """获取项目"""
        project = self._projects.get(project_id)
        if project is None:
            raise NotFoundError(f"项目不存在: {project_id}", detail={"project_id": project_id})
        return project

    def resolve(self, project_id: str) -> ProjectConfig:
        """获取并校验项目连接配置"""
        project = self.get(project_id)
        if not project.is_configured or project.database_path is None:
            raise ConfigurationError(
                "项目尚未配置数据库连接",
                detail={"project_id": project_id}
            )
        if not project.table_name:
            raise ConfigurationError(
                "项目未指定数据表",
                detail={"project_id": project_id}
            )
        return project

    def database_path(self, project: ProjectConfig) -> Path:
        path = Path(project.database_path)
        return path if path.is_absolute() else settings.duckdb_dir / path

    def store_for(self, project: ProjectConfig) -> DuckDBTableStore:
        """项目对应的表存储"""
        path = self.database_path(project)
        if not path.exists():
            raise ConfigurationError(
                f"数据库文件不存在: {path}",
                detail={"project_id": project.project_id}
            )
        return DuckDBTableStore(path)

    def require_role(self, project: ProjectConfig, role: Optional[str], allowed: Optional[List[str]] = None) -> None:
        """
        校验调用方角色

        Args:
            project: 项目
            role: 调用方角色（由上游认证层传入）
            allowed: 本操作允许的角色（默认为项目允许的全部角色）
        """
        permitted = set(project.allowed_roles)
        if allowed is not None:
            permitted &= set(allowed)
        if role not in permitted:
            raise AccessDeniedError(
                "无权访问该操作",
                detail={"project_id": project.project_id, "role": role, "required": sorted(permitted)}
            )


# 全局单例
_project_registry = None


def get_project_registry() -> ProjectRegistry:
    """获取 ProjectRegistry 单例"""
    global _project_registry
    if _project_registry is None:
        _project_registry = ProjectRegistry()
    return _project_registry
