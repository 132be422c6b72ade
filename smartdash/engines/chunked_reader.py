"""Chunked Table Reader - 在单次请求上限下分页重建完整数据集"""

import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from smartdash.core.config import settings
from smartdash.core.errors import PartialResultWarning, UpstreamQueryError
from smartdash.engines.table_store import TableStore
from smartdash.models.query import FilterCondition, SortSpec
from smartdash.models.report import ErrorInfo, ReadResult
from smartdash.utils.logger import log
from smartdash.utils.trace import FetchStep, FetchTrace


class ChunkedTableReader:
    """
    分块读取器

    按固定页大小顺序发出 [offset, offset+page_size-1] 区间请求，严格递增、互不重叠。
    终止条件：累计行数达到目标 / 连续空页达到上限 / 偏移到达安全上限。
    """

    def __init__(
        self,
        store: TableStore,
        page_size: Optional[int] = None,
        max_empty_pages: Optional[int] = None,
        safety_ceiling: Optional[int] = None
    ):
        self.store = store
        self.page_size = min(page_size or settings.page_size, store.max_rows_per_request)
        self.max_empty_pages = max_empty_pages or settings.max_empty_pages
        self.safety_ceiling = safety_ceiling or settings.safety_ceiling

    def _resolve_sort(self, table: str, sort_key: Optional[str]) -> Optional[SortSpec]:
        """排序键只有在确认存在时才使用，否则整个读取都不排序"""
        if not sort_key:
            return None
        try:
            if self.store.has_column(table, sort_key):
                return SortSpec(col=sort_key, dir="desc")
        except UpstreamQueryError as e:
            log.warning(f"无法确认排序键 {table}.{sort_key}: {e.message}")
            return None
        log.info(f"表 {table} 不存在排序键 {sort_key}，不排序读取")
        return None

    def read(
        self,
        table: str,
        total: int,
        filters: Optional[List[FilterCondition]] = None,
        sort_key: Optional[str] = None,
        max_records: Optional[int] = None,
        is_cancelled: Optional[Callable[[], bool]] = None
    ) -> ReadResult:
        """
        分块读取

        Args:
            table: 表/视图名
            total: 预先查询的总行数
            filters: 过滤条件
            sort_key: 排序键（可选，需存在于表中）
            max_records: 读取上限
            is_cancelled: 取消检查回调，返回 True 后不再发出请求

        Returns:
            读取结果
        """
        target = total if max_records is None else min(total, max_records)
        order_by = self._resolve_sort(table, sort_key)
        trace = FetchTrace(table)

        rows: List[Dict[str, Any]] = []
        warnings: List[ErrorInfo] = []
        offset = 0
        empty_pages = 0
        pages = 0
        error: Optional[UpstreamQueryError] = None

        log.info(f"开始分块读取 {table}: total={total}, target={target}, sort={order_by.col if order_by else None}")

        while len(rows) < target and empty_pages < self.max_empty_pages:
            if is_cancelled and is_cancelled():
                log.info(f"读取 {table} 已被取消，丢弃 {len(rows)} 行")
                return ReadResult(
                    table_name=table,
                    total=total,
                    target=target,
                    pages_fetched=pages,
                    sort_key=order_by.col if order_by else None,
                    cancelled=True,
                    trace=trace.to_dict()
                )

            end = offset + self.page_size - 1
            started = time.time()
            step = FetchStep(
                start=offset,
                end=end,
                sort_key=order_by.col if order_by else None,
                timestamp=datetime.now()
            )
            try:
                page = self.store.fetch_range(table, offset, end, filters=filters, order_by=order_by)
            except UpstreamQueryError as e:
                step.error = e.message
                step.latency_ms = (time.time() - started) * 1000
                trace.add_step(step)
                pages += 1
                error = e
                log.error(f"分块读取 {table} 在区间 [{offset}, {end}] 失败: {e.message}")
                break

            step.rows = len(page)
            step.latency_ms = (time.time() - started) * 1000
            trace.add_step(step)
            pages += 1
            log.debug(f"区间 [{offset}, {end}] 返回 {len(page)} 行")

            if page:
                rows.extend(page)
                empty_pages = 0
            else:
                empty_pages += 1

            offset += self.page_size
            if offset >= self.safety_ceiling:
                log.warning(f"读取 {table} 到达安全上限 {self.safety_ceiling}")
                break

        if empty_pages >= self.max_empty_pages:
            log.warning(f"读取 {table} 连续 {empty_pages} 个空页，停止")

        rows = rows[:target]
        used_fallback = False

        # 主策略一无所获时，只做一次无排序、无过滤的兜底请求
        if not rows and target > 0:
            used_fallback = True
            log.warning(f"分块读取 {table} 未获得数据，执行兜底请求")
            try:
                rows = self.store.fetch_all(table)[:target]
            except UpstreamQueryError as e:
                error = error or e
                log.error(f"兜底请求 {table} 失败: {e.message}")

        if error is not None:
            warnings.append(ErrorInfo(**error.to_dict()))

        partial = len(rows) < target
        if partial:
            warning = PartialResultWarning(
                f"读取 {table} 未达到预期行数",
                detail={"expected": target, "fetched": len(rows), "pages": pages}
            )
            warnings.append(ErrorInfo(**warning.to_dict()))
            log.warning(f"读取 {table} 部分完成: {len(rows)}/{target}")

        log.info(f"分块读取完成 {table}: {len(rows)} 行, {pages} 次请求")

        return ReadResult(
            table_name=table,
            rows=rows,
            total=total,
            target=target,
            pages_fetched=pages,
            sort_key=order_by.col if order_by else None,
            partial=partial,
            truncated=max_records is not None and max_records < total,
            used_fallback=used_fallback,
            warnings=warnings,
            trace=trace.to_dict()
        )

    def read_table(
        self,
        table: str,
        filters: Optional[List[FilterCondition]] = None,
        sort_key: Optional[str] = None,
        max_records: Optional[int] = None,
        is_cancelled: Optional[Callable[[], bool]] = None
    ) -> ReadResult:
        """先查询总行数，再分块读取"""
        try:
            total = self.store.count_rows(table, filters)
        except UpstreamQueryError as e:
            raise UpstreamQueryError(
                f"读取表 {table} 行数失败: {e.message}",
                detail={"table": table, **e.detail},
                cause=e
            ) from e
        return self.read(
            table,
            total,
            filters=filters,
            sort_key=sort_key,
            max_records=max_records,
            is_cancelled=is_cancelled
        )
