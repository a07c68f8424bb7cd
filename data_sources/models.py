"""
Data models for the quote client.
Pydantic models for historical series points and symbol search results.
"""

from enum import Enum
from typing import Optional, Any, Dict
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Interval(str, Enum):
    """历史数据粒度枚举"""
    DAILY = "1d"
    WEEKLY = "1wk"
    MONTHLY = "1mo"


class HistoricalQuote(BaseModel):
    """历史行情数据点（OHLCV）"""
    model_config = ConfigDict(frozen=True)

    date: datetime = Field(..., description="交易日期")
    open: Optional[float] = Field(None, description="开盘价")
    high: Optional[float] = Field(None, description="最高价")
    low: Optional[float] = Field(None, description="最低价")
    close: Optional[float] = Field(None, description="收盘价")
    adj_close: Optional[float] = Field(None, description="复权收盘价")
    volume: Optional[int] = Field(None, description="成交量")


class SearchResult(BaseModel):
    """代码搜索结果"""
    model_config = ConfigDict(frozen=True)

    symbol: str = Field(..., description="交易代码")
    short_name: Optional[str] = Field(None, description="简称")
    long_name: Optional[str] = Field(None, description="全称")
    exchange: Optional[str] = Field(None, description="交易所代码")
    exchange_display: Optional[str] = Field(None, description="交易所显示名称")
    quote_type: Optional[str] = Field(None, description="品种类型，如 EQUITY、ETF")
    type_display: Optional[str] = Field(None, description="品种类型显示名称")

    @classmethod
    def from_yahoo(cls, raw: Dict[str, Any]) -> "SearchResult":
        """从 Yahoo 搜索接口的 quote 条目构建"""
        return cls(
            symbol=raw['symbol'],
            short_name=raw.get('shortname'),
            long_name=raw.get('longname'),
            exchange=raw.get('exchange'),
            exchange_display=raw.get('exchDisp'),
            quote_type=raw.get('quoteType'),
            type_display=raw.get('typeDisp'),
        )
