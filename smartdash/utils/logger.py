"""日志配置"""

import sys
from loguru import logger

from smartdash.core.config import settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

logger.remove()
logger.add(sys.stderr, level=settings.log_level, format=LOG_FORMAT)
logger.add(
    settings.log_file,
    level=settings.log_level,
    format=LOG_FORMAT,
    rotation="10 MB",
    retention="7 days",
    encoding="utf-8"
)

log = logger
