"""
Date and time utilities for the quote client.
"""

from datetime import datetime, date, time as dt_time, timezone
from typing import Any, Optional, Union

import pandas as pd

from utils import date_utils_logger


def ensure_datetime(value: Union[date, datetime, str, pd.Timestamp]) -> datetime:
    """确保为 datetime 类型，date 转为当天零点，字符串按 ISO 格式解析"""
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, dt_time.min)
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    raise TypeError(f"Unsupported date value: {value!r}")


def to_iso(value: Union[date, datetime]) -> str:
    """用于缓存键的稳定 ISO 字符串"""
    return ensure_datetime(value).isoformat()


def to_epoch_ms(value: Any) -> Optional[int]:
    """将 Yahoo 返回的时间值转换为毫秒时间戳

    支持 epoch 秒（int/float）、{"raw": ...} 格式、datetime/date 和 ISO 字符串。
    """
    if value is None:
        return None
    if isinstance(value, dict):
        return to_epoch_ms(value.get('raw'))
    if isinstance(value, bool):
        raise TypeError(f"Unsupported timestamp value: {value!r}")
    if isinstance(value, (int, float)):
        return int(value * 1000)
    if isinstance(value, (date, datetime, str, pd.Timestamp)):
        dt = ensure_datetime(value)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return int(dt.timestamp() * 1000)

    date_utils_logger.warning(f"[DateUtils] Cannot convert timestamp value: {value!r}")
    raise TypeError(f"Unsupported timestamp value: {value!r}")
