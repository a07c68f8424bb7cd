"""
Yahoo Finance data source implementation.
Quote summaries, historical series and symbol search through the yfinance library.
"""

import asyncio
from typing import List, Dict, Any, Optional
from datetime import datetime, timedelta

import pandas as pd
import yfinance as yf
from yfinance.data import YfData

from .base_source import BaseQuoteSource
from utils import yfinance_logger


class YFinanceConstants:
    """Yahoo Finance 数据源的常量"""
    QUOTE_SUMMARY_URL = "https://query2.finance.yahoo.com/v10/finance/quoteSummary"
    CORS_DOMAIN = "finance.yahoo.com"
    # 健康检查使用的股票代码
    TEST_SYMBOL = "AAPL"


class YahooFinanceError(Exception):
    """Yahoo 接口返回的错误，消息为上游给出的原始描述（如 "Invalid Crumb"）"""

    def __init__(self, description: str, code: Optional[str] = None,
                 status_code: Optional[int] = None):
        super().__init__(description)
        self.description = description
        self.code = code
        self.status_code = status_code


class YFinanceSource(BaseQuoteSource):
    """Yahoo Finance数据源

    yfinance 的请求都是阻塞的，统一放到线程中执行，避免阻塞事件循环。
    crumb 由 yfinance 的 YfData 会话自动获取和附加。
    """

    def __init__(self, name: str = "yfinance", data: Optional[YfData] = None):
        super().__init__(name)
        self._data = data

    @property
    def data(self) -> YfData:
        if self._data is None:
            self._data = YfData()
        return self._data

    async def fetch_quote_summary(self, symbol: str, modules: List[str],
                                  timeout: float) -> Optional[Dict[str, Any]]:
        """获取 quote summary"""
        return await asyncio.to_thread(self._fetch_quote_summary_sync, symbol, modules, timeout)

    async def fetch_historical(self, symbol: str, start: datetime, end: datetime,
                               interval: str, timeout: float) -> Optional[List[Dict[str, Any]]]:
        """获取历史行情"""
        return await asyncio.to_thread(self._fetch_historical_sync, symbol, start, end, interval, timeout)

    async def fetch_search(self, query: str, max_results: int,
                           timeout: float) -> Optional[List[Dict[str, Any]]]:
        """搜索交易品种"""
        return await asyncio.to_thread(self._fetch_search_sync, query, max_results, timeout)

    def invalidate_credentials(self):
        """丢弃 YfData 缓存的 crumb，下一次请求时重新获取"""
        if self._data is None:
            return
        if not hasattr(self._data, '_crumb'):
            yfinance_logger.warning(
                f"[{self.name}] YfData has no _crumb attribute, cached crumb could not be dropped"
            )
            return

        self._data._crumb = None
        yfinance_logger.info(f"[{self.name}] Cached crumb dropped, a fresh one will be requested")

    def _fetch_quote_summary_sync(self, symbol: str, modules: List[str],
                                  timeout: float) -> Optional[Dict[str, Any]]:
        params = {
            'modules': ','.join(modules),
            'corsDomain': YFinanceConstants.CORS_DOMAIN,
            'formatted': 'false',
            'symbol': symbol,
        }
        yfinance_logger.debug(f"[{self.name}] Requesting quote summary for {symbol}: {params['modules']}")

        response = self.data.get(
            url=f"{YFinanceConstants.QUOTE_SUMMARY_URL}/{symbol}",
            params=params,
            timeout=timeout
        )
        payload = self._parse_payload(response)

        result = (payload.get('quoteSummary') or {}).get('result')
        if not result:
            yfinance_logger.warning(f"[{self.name}] No quote summary returned for {symbol}")
            return None
        return result[0]

    def _parse_payload(self, response) -> Dict[str, Any]:
        """解析响应；上游错误以其原始描述抛出 YahooFinanceError"""
        status_code = getattr(response, 'status_code', 200)
        try:
            payload = response.json()
        except ValueError:
            # 限流等错误返回纯文本，如 "Too Many Requests"
            text = (getattr(response, 'text', '') or '').strip()
            raise YahooFinanceError(text or f"HTTP {status_code}", status_code=status_code)

        if not isinstance(payload, dict):
            raise YahooFinanceError(f"Unexpected response payload: {type(payload).__name__}",
                                    status_code=status_code)

        for section in ('quoteSummary', 'finance'):
            error = (payload.get(section) or {}).get('error')
            if error:
                description = error.get('description') or error.get('code') or f"HTTP {status_code}"
                yfinance_logger.warning(f"[{self.name}] Yahoo error ({status_code}): {description}")
                raise YahooFinanceError(description, code=error.get('code'), status_code=status_code)

        if status_code >= 400:
            raise YahooFinanceError(f"HTTP {status_code}", status_code=status_code)

        return payload

    def _fetch_historical_sync(self, symbol: str, start: datetime, end: datetime,
                               interval: str, timeout: float) -> Optional[List[Dict[str, Any]]]:
        ticker = yf.Ticker(symbol)

        # yfinance 的 end 不包含当天，这里加一天使区间包含结束日期
        data = ticker.history(
            start=start.strftime('%Y-%m-%d'),
            end=(end + timedelta(days=1)).strftime('%Y-%m-%d'),
            interval=interval,
            auto_adjust=False,
            actions=False,
            timeout=timeout,
            raise_errors=True
        )
        if data is None:
            return None

        quotes = self._frame_to_quotes(data)
        yfinance_logger.debug(f"[{self.name}] Retrieved {len(quotes)} {interval} quotes for {symbol}")
        return quotes

    @staticmethod
    def _frame_to_quotes(data: pd.DataFrame) -> List[Dict[str, Any]]:
        """将 yfinance 返回的 DataFrame 转换为按日期升序的字典列表"""
        quotes = []
        for date, row in data.sort_index().iterrows():
            quotes.append({
                'date': date.to_pydatetime(),
                'open': float(row['Open']) if pd.notna(row.get('Open')) else None,
                'high': float(row['High']) if pd.notna(row.get('High')) else None,
                'low': float(row['Low']) if pd.notna(row.get('Low')) else None,
                'close': float(row['Close']) if pd.notna(row.get('Close')) else None,
                'adj_close': float(row['Adj Close']) if pd.notna(row.get('Adj Close')) else None,
                'volume': int(row['Volume']) if pd.notna(row.get('Volume')) else None,
            })
        return quotes

    def _fetch_search_sync(self, query: str, max_results: int,
                           timeout: float) -> Optional[List[Dict[str, Any]]]:
        search = yf.Search(
            query,
            max_results=max_results,
            news_count=0,
            timeout=timeout,
            raise_errors=True
        )
        quotes = search.quotes
        if quotes is None:
            return None

        yfinance_logger.debug(f"[{self.name}] Search '{query}' returned {len(quotes)} quotes")
        return [q for q in quotes if q.get('symbol')]

    async def health_check(self) -> bool:
        """健康检查"""
        try:
            data = await self.fetch_quote_summary(YFinanceConstants.TEST_SYMBOL, ['price'], timeout=10)
        except Exception as e:
            yfinance_logger.warning(f"[{self.name}] Health check failed: {e}")
            return False

        if data:
            yfinance_logger.debug(f"[{self.name}] Health check passed")
            return True
        yfinance_logger.warning(f"[{self.name}] Health check failed - no data returned")
        return False
