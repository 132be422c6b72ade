"""单元格取值解析工具（解析失败一律返回 None，从不抛出异常）"""

import json
import math
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

from smartdash.core.constants import (
    BOOLEAN_LIKE_STRINGS,
    DATE_PREFIX_PATTERN,
    DAY_FIRST_DATE_PATTERN,
    NUMERIC_STRIP_PATTERN,
)


def is_null(value: Any) -> bool:
    """None 与空字符串视为空值"""
    if value is None:
        return True
    if isinstance(value, str) and value == "":
        return True
    # pandas/duckdb 读出的缺失浮点
    return isinstance(value, float) and math.isnan(value)


def is_numeric_scalar(value: Any) -> bool:
    """原生数值（bool 除外）"""
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def is_boolean_like(value: Any) -> bool:
    if isinstance(value, bool):
        return True
    if isinstance(value, int):
        return value in (0, 1)
    if isinstance(value, str):
        return value.lower() in BOOLEAN_LIKE_STRINGS
    return False


def parse_numeric(value: Any) -> Optional[float]:
    """
    解析数值：去掉货币符号、百分号、千分位和空白后严格解析

    >>> parse_numeric("₪1,234.50")
    1234.5
    """
    if is_null(value) or isinstance(value, bool):
        return None
    if is_numeric_scalar(value):
        number = float(value)
        return number if math.isfinite(number) else None
    if not isinstance(value, str):
        return None
    cleaned = NUMERIC_STRIP_PATTERN.sub("", value)
    if not cleaned:
        return None
    try:
        number = float(cleaned)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_date(value: Any) -> Optional[date]:
    """
    解析日期：原生日期、ISO 字符串，或日在前的 dd/mm/yyyy、dd.mm.yyyy
    """
    if is_null(value) or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    # 只接受带分隔符的 ISO 形式，避免把 8 位数字编号当成日期
    if len(text) >= 10 and text[4] == "-":
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            pass

    match = DAY_FIRST_DATE_PATTERN.match(text)
    if match:
        day, month, year = match.groups()
        if len(year) == 2:
            year = f"20{year}"
        try:
            return date(int(year), int(month), int(day))
        except ValueError:
            return None
    return None


def looks_like_date(value: Any) -> bool:
    """日期形态的字符串，或可解析为日期"""
    if isinstance(value, (datetime, date)):
        return True
    if isinstance(value, str) and DATE_PREFIX_PATTERN.match(value):
        return True
    return parse_date(value) is not None


def parse_json_container(value: Any) -> Optional[Any]:
    """对象/数组原样返回；可解析为对象/数组的字符串返回解析结果"""
    if isinstance(value, (dict, list)):
        return value
    if not isinstance(value, str):
        return None
    try:
        parsed = json.loads(value)
    except ValueError:
        return None
    return parsed if isinstance(parsed, (dict, list)) else None


def round_half_up(value: float) -> int:
    """四舍五入（0.5 向上）"""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_text(value: Any) -> str:
    """值的稳定文本形式（用于唯一值与分组键）"""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, sort_keys=True)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)
