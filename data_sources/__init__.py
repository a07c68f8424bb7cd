"""
Data sources module for the quote client.
Provides the upstream quote source, payload transformers and the resilient quote client.
"""

from .base_source import BaseQuoteSource
from .yfinance_source import YFinanceSource, YahooFinanceError
from .models import Interval, HistoricalQuote, SearchResult
from .quote_client import QuoteClient, get_quote_client

__all__ = [
    'BaseQuoteSource',
    'YFinanceSource',
    'YahooFinanceError',
    'Interval',
    'HistoricalQuote',
    'SearchResult',
    'QuoteClient',
    'get_quote_client',
]
