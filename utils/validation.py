"""
Input validation utilities for the quote client.
Validates caller arguments before any upstream request is made.
"""

import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Tuple, Union

from utils import validation_logger
from utils.exceptions import ValidationError, DataValidationError, ErrorCodes
from utils.date_utils import ensure_datetime


class QueryValidator:
    """查询参数验证器"""

    # Yahoo 代码允许的字符：字母、数字、点、横线、&、脱字符和等号（如 M&M.NS、^GSPC、EURUSD=X）
    SYMBOL_PATTERN = re.compile(r'^[A-Za-z0-9.&\-^=]{1,32}$')

    # 历史数据粒度及其别名
    INTERVAL_ALIASES = {
        '1d': '1d', 'daily': '1d', 'day': '1d',
        '1wk': '1wk', 'weekly': '1wk', 'week': '1wk',
        '1mo': '1mo', 'monthly': '1mo', 'month': '1mo',
    }

    @staticmethod
    def validate_symbol(symbol: Any) -> str:
        """验证并标准化交易代码"""
        if not isinstance(symbol, str) or not symbol.strip():
            raise ValidationError(
                "Symbol parameter is required",
                ErrorCodes.VALIDATION_INVALID_SYMBOL,
                {'symbol': symbol}
            )

        normalized = symbol.strip().upper()
        if not QueryValidator.SYMBOL_PATTERN.match(normalized):
            validation_logger.warning(f"[Validation] Malformed symbol: {symbol!r}")
            raise ValidationError(
                f"Invalid symbol: {symbol}",
                ErrorCodes.VALIDATION_INVALID_SYMBOL,
                {'symbol': symbol}
            )
        return normalized

    @staticmethod
    def validate_query(query: Any) -> str:
        """验证搜索关键字"""
        if not isinstance(query, str) or not query.strip():
            raise ValidationError(
                'Query parameter "q" is required',
                ErrorCodes.VALIDATION_INVALID_QUERY,
                {'query': query}
            )
        return query.strip()

    @staticmethod
    def validate_date_range(start: Any, end: Any) -> Tuple[datetime, datetime]:
        """验证日期范围（start <= end），date 和 ISO 字符串会被转换为 datetime"""
        if start is None or end is None:
            raise ValidationError(
                "Start date and end date are required",
                ErrorCodes.VALIDATION_INVALID_DATE
            )

        try:
            start, end = ensure_datetime(start), ensure_datetime(end)
            out_of_order = start > end
        except (TypeError, ValueError) as e:
            raise ValidationError(
                f"Invalid date range: {start!r} - {end!r} ({e})",
                ErrorCodes.VALIDATION_INVALID_DATE
            ) from e

        if out_of_order:
            raise ValidationError(
                f"Invalid date range: {start.isoformat()} is after {end.isoformat()}",
                ErrorCodes.VALIDATION_INVALID_DATE,
                {'start': start.isoformat(), 'end': end.isoformat()}
            )
        return start, end

    @staticmethod
    def validate_interval(interval: Any) -> str:
        """验证并标准化数据粒度"""
        key = getattr(interval, 'value', interval)
        if isinstance(key, str):
            normalized = QueryValidator.INTERVAL_ALIASES.get(key.strip().lower())
            if normalized:
                return normalized

        raise ValidationError(
            f"Invalid interval: {interval}. Expected one of 1d, 1wk, 1mo",
            ErrorCodes.VALIDATION_INVALID_INTERVAL,
            {'interval': str(interval)}
        )

    @staticmethod
    def validate_modules(modules: Union[Iterable[str], None], allowed: List[str]) -> List[str]:
        """验证 quote summary 模块列表，保持调用方给定的顺序"""
        if modules is None:
            return list(allowed)
        if isinstance(modules, str):
            modules = [modules]

        result = [m for m in modules if isinstance(m, str) and m.strip()]
        if not result:
            raise ValidationError(
                "At least one quote summary module is required",
                ErrorCodes.VALIDATION_MISSING_REQUIRED_FIELD
            )
        return result


def validate_response(response: Dict[str, Any], required_fields: Iterable[str]) -> None:
    """检查上游响应中的必需字段"""
    missing_fields = [f for f in required_fields if not response.get(f)]

    if missing_fields:
        raise DataValidationError(
            f"Missing required fields: {', '.join(missing_fields)}",
            context={'missing_fields': missing_fields}
        )
