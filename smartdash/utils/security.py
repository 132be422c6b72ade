"""安全防护工具"""

import re
from typing import List
from smartdash.utils.logger import log


class SecurityValidator:
    """安全校验器"""

    # 表名/列名：字母、数字、下划线、希伯来文、中文
    IDENTIFIER_PATTERN = re.compile(r'^[\w\u0590-\u05ff\u4e00-\u9fa5]+$')

    MAX_FILTERS = 20

    @classmethod
    def validate_identifier(cls, name: str) -> bool:
        """
        验证标识符安全性

        Args:
            name: 表名或列名

        Returns:
            是否安全
        """
        if not name or not cls.IDENTIFIER_PATTERN.match(name):
            log.warning(f"不安全的标识符: {name}")
            return False
        return True

    @classmethod
    def validate_filter_count(cls, filters: List) -> bool:
        """检查过滤条件数量"""
        if len(filters) > cls.MAX_FILTERS:
            log.warning("过滤条件过多")
            return False
        return True

    @classmethod
    def escape_like(cls, value: str) -> str:
        """转义 LIKE 模式字符"""
        return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
