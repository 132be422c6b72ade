"""系统配置管理"""

from pathlib import Path
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """系统配置"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False
    )

    # 分块读取（后端存储单次请求上限）
    page_size: int = 1000
    max_empty_pages: int = 3
    safety_ceiling: int = 500_000

    # 采样上限
    quick_sample_size: int = 1000
    summary_max_records: int = 10_000
    full_max_records: int = 50_000

    # 推荐与聚合
    recommended_fields_limit: int = 15
    unknown_group_label: str = "unknown"
    # Python weekday(): 周五=4, 周六=5
    weekend_days: List[int] = [4, 5]

    # 服务器配置
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = True
    rate_limit_requests: int = 60
    rate_limit_window_seconds: int = 60

    # 存储路径
    duckdb_dir: Path = Path("./data/duckdb")
    projects_file: Path = Path("./data/projects.json")

    # 日志配置
    log_level: str = "INFO"
    log_file: Path = Path("./logs/app.log")

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # 确保目录存在
        self.duckdb_dir.mkdir(parents=True, exist_ok=True)
        self.log_file.parent.mkdir(parents=True, exist_ok=True)


# 全局配置实例
settings = Settings()
