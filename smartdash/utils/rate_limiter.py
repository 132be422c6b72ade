"""速率限制器（报表接口按 客户端+项目 限流）"""

import time
from collections import defaultdict
from typing import Dict, List

from smartdash.core.config import settings
from smartdash.utils.logger import log


class RateLimiter:
    """滑动窗口限流器"""

    def __init__(self, max_requests: int = 60, time_window: int = 60):
        """
        Args:
            max_requests: 时间窗口内最大请求数
            time_window: 时间窗口（秒）
        """
        self.max_requests = max_requests
        self.time_window = time_window
        self.requests: Dict[str, List[float]] = defaultdict(list)

    @staticmethod
    def make_key(client: str, project_id: str) -> str:
        return f"{client}:{project_id}"

    def _prune(self, key: str, now: float) -> None:
        self.requests[key] = [ts for ts in self.requests[key] if now - ts < self.time_window]

    def is_allowed(self, key: str) -> bool:
        """检查并记录一次请求"""
        now = time.time()
        self._prune(key, now)

        if len(self.requests[key]) >= self.max_requests:
            log.warning(f"速率限制触发: {key}")
            return False

        self.requests[key].append(now)
        return True

    def get_remaining(self, key: str) -> int:
        """剩余请求数"""
        self._prune(key, time.time())
        return max(0, self.max_requests - len(self.requests[key]))


# 全局限流器
_rate_limiter = RateLimiter(
    max_requests=settings.rate_limit_requests,
    time_window=settings.rate_limit_window_seconds
)


def get_rate_limiter() -> RateLimiter:
    """获取全局限流器"""
    return _rate_limiter
