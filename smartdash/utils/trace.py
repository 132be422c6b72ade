"""分页读取追踪工具"""

import uuid
from datetime import datetime
from typing import Dict, List, Any
from pydantic import BaseModel


class FetchStep(BaseModel):
    """单次分页请求日志"""
    start: int
    end: int
    rows: int = 0
    sort_key: str | None = None
    error: str | None = None
    latency_ms: float = 0
    timestamp: datetime


class FetchTrace:
    """读取追踪上下文"""

    def __init__(self, table_name: str):
        self.trace_id: str = str(uuid.uuid4())
        self.table_name = table_name
        self.steps: List[FetchStep] = []
        self.start_time = datetime.now()

    def add_step(self, step: FetchStep):
        """添加分页请求"""
        self.steps.append(step)

    def to_dict(self) -> Dict[str, Any]:
        """转为字典"""
        return {
            "trace_id": self.trace_id,
            "table_name": self.table_name,
            "steps": [
                {
                    "range": [s.start, s.end],
                    "rows": s.rows,
                    "latency_ms": s.latency_ms,
                    "error": s.error,
                    "timestamp": s.timestamp.isoformat()
                }
                for s in self.steps
            ],
            "total_steps": len(self.steps),
            "duration_ms": (datetime.now() - self.start_time).total_seconds() * 1000
        }
