"""
pytest configuration and fixtures for quote client tests
"""

import pytest
import tempfile
import shutil
from pathlib import Path
from unittest.mock import Mock, AsyncMock
import sys

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from utils.config_manager import QuoteClientConfig, RetryConfig, CacheConfig
from utils.cache import TTLCache
from data_sources.base_source import BaseQuoteSource
from data_sources.quote_client import QuoteClient


class FakeClock:
    """可手动推进的时钟"""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files"""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client_config():
    """Mutable client configuration with a short retry delay"""
    return QuoteClientConfig(
        max_retries=3,
        request_timeout=5,
        retry=RetryConfig(invalid_crumb_retries=3, invalid_crumb_delay=1, exponential_backoff=False),
        cache=CacheConfig(enabled=True, ttl=300, max_size=100),
    )


@pytest.fixture
def mock_source():
    """Upstream source with every remote call mocked"""
    source = Mock(spec=BaseQuoteSource)
    source.name = "mock"
    source.fetch_quote_summary = AsyncMock(return_value={'price': {'regularMarketPrice': 150.5}})
    source.fetch_historical = AsyncMock(return_value=[])
    source.fetch_search = AsyncMock(return_value=[])
    source.invalidate_credentials = Mock()
    return source


@pytest.fixture
def mock_sleep():
    return AsyncMock()


@pytest.fixture
def quote_client(mock_source, client_config, clock, mock_sleep):
    """QuoteClient wired to the mocked source, a fake clock and a mocked sleep"""
    cache = TTLCache(default_ttl=client_config.cache.ttl, max_size=client_config.cache.max_size, clock=clock)
    return QuoteClient(
        source=mock_source,
        config_provider=lambda: client_config,
        cache=cache,
        sleep=mock_sleep,
    )


@pytest.fixture
def sample_quote_summary():
    """Raw quote summary payload as returned by Yahoo with formatted=false"""
    return {
        'price': {
            'symbol': 'AAPL',
            'currency': 'USD',
            'regularMarketPrice': 150.5,
            'regularMarketTime': 1704124800,
            'shortName': 'Apple Inc.',
        },
        'summaryDetail': {
            'dividendRate': 0.96,
            'dividendYield': 0.0064,
            'exDividendDate': 1707955200,
        },
        'balanceSheetHistory': {
            'balanceSheetStatements': [
                {'endDate': 1704067200, 'totalAssets': 1000000, 'cash': None, 'maxAge': 86400},
            ],
            'maxAge': 86400,
        },
        'cashflowStatementHistory': {
            'cashflowStatements': [
                {'endDate': {'raw': 1704067200, 'fmt': '2024-01-01'}, 'dividendsPaid': -50000},
            ],
            'maxAge': 86400,
        },
        'earnings': {
            'maxAge': 86400,
            'earningsChart': {
                'earningsDate': [1704067200, 1711929600],
                'currentQuarterEstimate': 1.5,
                'quarterly': [{'date': '4Q2023', 'actual': 1.45, 'estimate': 1.4}],
            },
            'financialCurrency': 'USD',
        },
    }
