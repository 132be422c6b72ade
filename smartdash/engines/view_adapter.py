"""View Adapter - 把不同形态的原始行统一为 字段→值 映射"""

import json
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from smartdash.core.constants import (
    DEFAULT_LEGACY_LAYOUT,
    ID_FIELD,
    LEGACY_LAYOUTS,
    PAYLOAD_FIELD,
    LegacyField,
)
from smartdash.core.errors import ConfigurationError
from smartdash.utils.logger import log
from smartdash.utils.values import is_null, parse_date, parse_numeric


class RowShape(str, Enum):
    """原始行形态"""
    FLAT = "flat"
    JSON_PAYLOAD = "json_payload"
    LEGACY_ARRAY = "legacy_array"


class ViewAdapter:
    """行规范化器（每行只判定一次形态）"""

    def __init__(self, layout_version: str = DEFAULT_LEGACY_LAYOUT, payload_field: str = PAYLOAD_FIELD):
        if layout_version not in LEGACY_LAYOUTS:
            raise ConfigurationError(
                f"未知的旧版布局: {layout_version}",
                detail={"available": sorted(LEGACY_LAYOUTS)}
            )
        self.layout: Tuple[LegacyField, ...] = LEGACY_LAYOUTS[layout_version]
        self.layout_version = layout_version
        self.payload_field = payload_field

    def _decode_payload(self, payload: Any) -> Any:
        """字符串载荷尝试 JSON 解析，失败返回 None"""
        if isinstance(payload, (dict, list)):
            return payload
        if isinstance(payload, str):
            try:
                return json.loads(payload)
            except ValueError:
                return None
        return None

    def classify(self, row: Dict[str, Any]) -> Tuple[RowShape, Any]:
        """
        判定行形态

        Returns:
            (形态, 解码后的载荷)；对象载荷优先于数组载荷
        """
        if self.payload_field not in row:
            return RowShape.FLAT, None

        decoded = self._decode_payload(row[self.payload_field])
        if isinstance(decoded, dict):
            return RowShape.JSON_PAYLOAD, decoded
        if isinstance(decoded, list):
            return RowShape.LEGACY_ARRAY, decoded
        # 无法解析的载荷按原样保留
        return RowShape.FLAT, None

    def _legacy_value(self, values: List[Any], field: LegacyField) -> Any:
        if field.index >= len(values):
            return None
        value = values[field.index]
        if field.kind == "number":
            return parse_numeric(value)
        if field.kind == "date":
            parsed = parse_date(value)
            return parsed.isoformat() if parsed else None
        return None if is_null(value) else value

    def normalize(self, row: Dict[str, Any], position: int = 0) -> Dict[str, Any]:
        """
        规范化单行

        Args:
            row: 原始行
            position: 行位置（无 id 时作为标识）

        Returns:
            统一的 字段→值 映射
        """
        shape, payload = self.classify(row)
        return self._apply(row, shape, payload, position)

    def _apply(self, row: Dict[str, Any], shape: RowShape, payload: Any, position: int) -> Dict[str, Any]:
        if shape == RowShape.JSON_PAYLOAD:
            base = {k: v for k, v in row.items() if k != self.payload_field}
            normalized = {**base, **payload}
        elif shape == RowShape.LEGACY_ARRAY:
            base = {k: v for k, v in row.items() if k != self.payload_field}
            mapped = {f.name: self._legacy_value(payload, f) for f in self.layout}
            normalized = {**base, **mapped}
        else:
            normalized = dict(row)

        row_id = row.get(ID_FIELD)
        if row_id is None:
            row_id = payload.get(ID_FIELD) if isinstance(payload, dict) else None
        normalized[ID_FIELD] = row_id if row_id is not None else position
        return normalized

    def normalize_rows(self, rows: Iterable[Dict[str, Any]], start: int = 0) -> List[Dict[str, Any]]:
        """批量规范化，位置从 start 开始计数"""
        result = []
        shapes: Dict[RowShape, int] = {}
        for i, row in enumerate(rows):
            shape, payload = self.classify(row)
            shapes[shape] = shapes.get(shape, 0) + 1
            result.append(self._apply(row, shape, payload, start + i))
        log.debug(f"行规范化完成: {len(result)} 行, 形态分布 {dict((s.value, n) for s, n in shapes.items())}")
        return result


def get_view_adapter(layout_version: Optional[str] = None) -> ViewAdapter:
    """获取行规范化器"""
    return ViewAdapter(layout_version or DEFAULT_LEGACY_LAYOUT)
