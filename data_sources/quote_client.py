"""
Resilient quote client.
Wraps an upstream quote source with a read-through TTL cache and a retry
policy for invalidated Yahoo crumbs. All other upstream failures propagate
unchanged on the first attempt.
"""

import asyncio
from typing import List, Dict, Any, Optional, Callable, Awaitable, Union
from datetime import date, datetime

from pydantic import ValidationError as ModelValidationError

from utils import (
    config_manager, QuoteClientConfig, quote_client_logger, quote_client_metrics,
    LogContext, log_performance, TTLCache, make_fingerprint, QueryValidator, to_iso
)
from utils.exceptions import ErrorKind, NoDataError, DataValidationError, classify_error, error_message
from .base_source import BaseQuoteSource
from .yfinance_source import YFinanceSource
from .models import HistoricalQuote, SearchResult, Interval
from .transformers import transform_quote_summary

DateLike = Union[date, datetime, str]


class QuoteClient:
    """行情客户端

    配置通过 config_provider 在每次调用时重新读取，运行期修改配置在下一次调用生效。
    """

    def __init__(self, source: Optional[BaseQuoteSource] = None,
                 config_provider: Optional[Callable[[], QuoteClientConfig]] = None,
                 cache: Optional[TTLCache] = None,
                 sleep: Optional[Callable[[float], Awaitable[Any]]] = None):
        self.source = source or YFinanceSource()
        self._config_provider = config_provider or config_manager.get_quote_client_config
        self._sleep = sleep or asyncio.sleep

        if cache is None:
            config = self._config_provider()
            cache = TTLCache(default_ttl=config.cache.ttl, max_size=config.cache.max_size)
        self.cache = cache

    @property
    def config(self) -> QuoteClientConfig:
        return self._config_provider()

    @log_performance("QuoteClient")
    async def get_quote_summary(self, symbol: str, fields: Optional[List[str]] = None) -> Dict[str, Any]:
        """获取 quote summary，结果只包含请求的模块"""
        config = self.config
        symbol = QueryValidator.validate_symbol(symbol)
        modules = QueryValidator.validate_modules(fields, config.default_modules)
        fingerprint = make_fingerprint('quote_summary', symbol, modules)

        with LogContext("QuoteClient", "get_quote_summary", symbol):
            raw = await self._cached_call(
                fingerprint,
                lambda: self.source.fetch_quote_summary(symbol, modules, config.request_timeout),
                config
            )

        if raw is None:
            raise NoDataError(symbol)
        return transform_quote_summary(raw, modules)

    @log_performance("QuoteClient")
    async def get_historical_data(self, symbol: str, start: DateLike, end: DateLike,
                                  interval: Union[str, Interval] = '1d') -> Optional[List[HistoricalQuote]]:
        """获取历史行情，按日期升序"""
        config = self.config
        symbol = QueryValidator.validate_symbol(symbol)
        start, end = QueryValidator.validate_date_range(start, end)
        interval = QueryValidator.validate_interval(interval)
        fingerprint = make_fingerprint('historical', symbol, to_iso(start), to_iso(end), interval)

        with LogContext("QuoteClient", "get_historical_data", symbol, {'interval': interval}):
            rows = await self._cached_call(
                fingerprint,
                lambda: self.source.fetch_historical(symbol, start, end, interval, config.request_timeout),
                config
            )

        if rows is None:
            return None
        try:
            return [HistoricalQuote(**row) for row in rows]
        except ModelValidationError as e:
            raise DataValidationError(f"Malformed historical data for {symbol}: {e}", e) from e

    @log_performance("QuoteClient")
    async def search(self, query: str) -> Optional[List[SearchResult]]:
        """按关键字搜索交易品种"""
        config = self.config
        query = QueryValidator.validate_query(query)
        fingerprint = make_fingerprint('search', query, config.search_max_results)

        with LogContext("QuoteClient", "search", extra_context={'query': query}):
            quotes = await self._cached_call(
                fingerprint,
                lambda: self.source.fetch_search(query, config.search_max_results, config.request_timeout),
                config
            )

        if quotes is None:
            return None
        try:
            return [SearchResult.from_yahoo(q) for q in quotes]
        except (KeyError, ModelValidationError) as e:
            raise DataValidationError(f"Malformed search result for '{query}': {e}", e) from e

    def clear_cache(self) -> None:
        """清空全部缓存"""
        self.cache.clear()
        quote_client_logger.info("[QuoteClient] Cache cleared")

    def get_cache_stats(self) -> Dict[str, Any]:
        return self.cache.get_stats(ttl=self.config.cache.ttl)

    async def _cached_call(self, fingerprint: str, fetch: Callable[[], Awaitable[Any]],
                           config: QuoteClientConfig) -> Any:
        """读穿缓存：命中直接返回，否则请求上游并写入成功的非空结果"""
        cache_config = config.cache
        if cache_config.enabled:
            cached = self.cache.get(fingerprint, ttl=cache_config.ttl)
            if cached is not None:
                return cached

        result = await self._call_with_retry(fingerprint, fetch, config)

        if result is not None and cache_config.enabled:
            self.cache.set(fingerprint, result, max_size=cache_config.max_size, ttl=cache_config.ttl)
        return result

    async def _call_with_retry(self, fingerprint: str, fetch: Callable[[], Awaitable[Any]],
                               config: QuoteClientConfig) -> Any:
        """执行上游请求；仅在 crumb 失效时重试，最多 max_retries 次尝试"""
        retry_config = config.retry
        attempt = 0
        crumb_retries = 0

        while True:
            attempt += 1
            quote_client_metrics.increment("upstream_calls")
            try:
                return await fetch()
            except Exception as error:
                kind = classify_error(error)
                if kind is not ErrorKind.INVALID_CREDENTIAL:
                    quote_client_metrics.increment(f"errors.{kind.value}")
                    quote_client_logger.warning(
                        f"[QuoteClient] Upstream error ({kind.value}) on attempt {attempt}: {error_message(error)}"
                    )
                    raise

                # 丢弃可能与失效令牌相关的缓存，并让数据源重新获取令牌
                self.cache.delete(fingerprint)
                self.source.invalidate_credentials()

                if attempt >= config.max_retries or crumb_retries >= retry_config.invalid_crumb_retries:
                    quote_client_metrics.increment(f"errors.{kind.value}")
                    quote_client_logger.error(
                        f"[QuoteClient] Invalid crumb persisted after {attempt} attempts, giving up"
                    )
                    raise

                delay_ms = retry_config.invalid_crumb_delay
                if retry_config.exponential_backoff:
                    delay_ms *= 2 ** crumb_retries
                crumb_retries += 1
                quote_client_metrics.increment("crumb_retries")
                quote_client_logger.warning(
                    f"[QuoteClient] Invalid crumb on attempt {attempt}, "
                    f"retrying in {delay_ms:.0f}ms ({crumb_retries}/{retry_config.invalid_crumb_retries})"
                )
                await self._sleep(delay_ms / 1000)


_default_client: Optional[QuoteClient] = None


def get_quote_client() -> QuoteClient:
    """获取进程内默认的行情客户端（使用全局配置管理器）"""
    global _default_client
    if _default_client is None:
        _default_client = QuoteClient()
    return _default_client
