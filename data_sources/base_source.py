"""
Base quote source class for the quote client.
Defines the upstream provider contract the quote client is built on.
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional
from datetime import datetime

from utils import ds_logger


class BaseQuoteSource(ABC):
    """上游行情数据源基类

    子类只负责发起请求并把上游失败原样抛出；重试、缓存和错误分类由 QuoteClient 负责。
    """

    def __init__(self, name: str):
        self.name = name
        self.is_initialized = False

    async def initialize(self):
        """初始化数据源"""
        if not self.is_initialized:
            ds_logger.info(f"[{self.name}] Initializing data source...")
            await self._initialize_impl()
            self.is_initialized = True
            ds_logger.info(f"[{self.name}] data source initialized successfully")

    async def _initialize_impl(self):
        """初始化实现，默认无需初始化"""
        pass

    async def close(self):
        """关闭数据源连接"""
        self.is_initialized = False
        ds_logger.info(f"[{self.name}] data source closed")

    @abstractmethod
    async def fetch_quote_summary(self, symbol: str, modules: List[str],
                                  timeout: float) -> Optional[Dict[str, Any]]:
        """获取 quote summary 原始数据，按模块名索引"""
        pass

    @abstractmethod
    async def fetch_historical(self, symbol: str, start: datetime, end: datetime,
                               interval: str, timeout: float) -> Optional[List[Dict[str, Any]]]:
        """获取历史 OHLCV 数据，按日期升序"""
        pass

    @abstractmethod
    async def fetch_search(self, query: str, max_results: int,
                           timeout: float) -> Optional[List[Dict[str, Any]]]:
        """按关键字搜索交易品种"""
        pass

    def invalidate_credentials(self):
        """丢弃已缓存的认证令牌，下一次请求重新获取（可选实现）"""
        pass

    def get_source_info(self) -> Dict[str, Any]:
        """获取数据源信息"""
        return {
            'name': self.name,
            'is_initialized': self.is_initialized,
        }
