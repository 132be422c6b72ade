"""启动脚本"""

import uvicorn
from smartdash.core.config import settings
from smartdash.utils.logger import log


if __name__ == "__main__":
    log.info("="*60)
    log.info("SmartDash - 启动中")
    log.info("="*60)
    log.info(f"服务地址: http://{settings.api_host}:{settings.api_port}")
    log.info(f"API 文档: http://{settings.api_host}:{settings.api_port}/docs")
    log.info(f"调试模式: {settings.debug}")
    log.info(f"分页大小: {settings.page_size}, 安全上限: {settings.safety_ceiling}")
    log.info(f"项目配置: {settings.projects_file}")
    log.info("="*60)

    uvicorn.run(
        "smartdash.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level="info"
    )
