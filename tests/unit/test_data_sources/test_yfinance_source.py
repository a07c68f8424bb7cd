"""
Unit tests for the Yahoo Finance data source
"""

import pytest
import logging
from datetime import datetime
from unittest.mock import Mock, patch

import pandas as pd

from data_sources.yfinance_source import YFinanceSource, YahooFinanceError, YFinanceConstants
from utils.exceptions import ErrorKind, classify_error


def _response(payload=None, status_code=200, text=''):
    response = Mock()
    response.status_code = status_code
    response.text = text
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    return response


@pytest.mark.unit
class TestYFinanceSource:
    """Test cases for YFinanceSource"""

    @pytest.fixture
    def yf_data(self):
        data = Mock()
        data._crumb = "crumb-123"
        return data

    @pytest.fixture
    def source(self, yf_data):
        return YFinanceSource(data=yf_data)

    @pytest.mark.asyncio
    async def test_fetch_quote_summary(self, source, yf_data):
        yf_data.get.return_value = _response({
            'quoteSummary': {'result': [{'price': {'regularMarketPrice': 150.5}}], 'error': None}
        })

        result = await source.fetch_quote_summary("AAPL", ["price", "summaryDetail"], timeout=7)

        assert result == {'price': {'regularMarketPrice': 150.5}}
        kwargs = yf_data.get.call_args.kwargs
        assert kwargs['url'] == f"{YFinanceConstants.QUOTE_SUMMARY_URL}/AAPL"
        assert kwargs['params']['modules'] == "price,summaryDetail"
        assert kwargs['params']['formatted'] == "false"
        assert kwargs['timeout'] == 7

    @pytest.mark.asyncio
    async def test_invalid_crumb_keeps_upstream_description(self, source, yf_data):
        yf_data.get.return_value = _response(
            {'finance': {'result': None, 'error': {'code': 'Unauthorized', 'description': 'Invalid Crumb'}}},
            status_code=401
        )

        with pytest.raises(YahooFinanceError) as exc_info:
            await source.fetch_quote_summary("AAPL", ["price"], timeout=5)

        assert str(exc_info.value) == "Invalid Crumb"
        assert exc_info.value.status_code == 401
        assert classify_error(exc_info.value) == ErrorKind.INVALID_CREDENTIAL

    @pytest.mark.asyncio
    async def test_unknown_symbol(self, source, yf_data):
        yf_data.get.return_value = _response(
            {'quoteSummary': {'result': None,
                              'error': {'code': 'Not Found', 'description': 'Quote not found for symbol: ZZZZ'}}},
            status_code=404
        )

        with pytest.raises(YahooFinanceError) as exc_info:
            await source.fetch_quote_summary("ZZZZ", ["price"], timeout=5)

        assert classify_error(exc_info.value) == ErrorKind.INVALID_SYMBOL

    @pytest.mark.asyncio
    async def test_plain_text_rate_limit(self, source, yf_data):
        yf_data.get.return_value = _response(ValueError("no json"), status_code=429, text="Too Many Requests\r\n")

        with pytest.raises(YahooFinanceError, match="^Too Many Requests$") as exc_info:
            await source.fetch_quote_summary("AAPL", ["price"], timeout=5)

        assert classify_error(exc_info.value) == ErrorKind.RATE_LIMITED

    @pytest.mark.asyncio
    async def test_http_error_without_body(self, source, yf_data):
        yf_data.get.return_value = _response({}, status_code=502)

        with pytest.raises(YahooFinanceError, match="HTTP 502"):
            await source.fetch_quote_summary("AAPL", ["price"], timeout=5)

    @pytest.mark.asyncio
    async def test_empty_result(self, source, yf_data):
        yf_data.get.return_value = _response({'quoteSummary': {'result': [], 'error': None}})

        assert await source.fetch_quote_summary("AAPL", ["price"], timeout=5) is None

    def test_invalidate_credentials(self, source, yf_data):
        source.invalidate_credentials()

        assert yf_data._crumb is None

    def test_invalidate_credentials_before_first_request(self):
        source = YFinanceSource()

        source.invalidate_credentials()

        assert source._data is None

    def test_invalidate_credentials_warns_without_crumb_attribute(self, caplog):
        source = YFinanceSource(data=Mock(spec=['get']))

        with caplog.at_level(logging.WARNING, logger="YFinanceSource"):
            source.invalidate_credentials()

        assert "no _crumb attribute" in caplog.text

    @pytest.mark.asyncio
    async def test_fetch_historical(self, source):
        frame = pd.DataFrame(
            {
                'Open': [10.0, 11.0],
                'High': [12.0, 12.5],
                'Low': [9.5, float('nan')],
                'Close': [11.0, 12.0],
                'Adj Close': [10.8, 11.8],
                'Volume': [1000, 2000],
            },
            index=pd.DatetimeIndex([datetime(2024, 1, 3), datetime(2024, 1, 2)], name='Date')
        )

        with patch('data_sources.yfinance_source.yf.Ticker') as mock_ticker:
            mock_ticker.return_value.history.return_value = frame
            quotes = await source.fetch_historical(
                "AAPL", datetime(2024, 1, 1), datetime(2024, 1, 31), "1d", timeout=5
            )

        assert [q['date'] for q in quotes] == [datetime(2024, 1, 2), datetime(2024, 1, 3)]
        assert quotes[0]['low'] is None
        assert quotes[0]['adj_close'] == 11.8
        assert quotes[1]['volume'] == 1000
        kwargs = mock_ticker.return_value.history.call_args.kwargs
        assert kwargs['start'] == '2024-01-01'
        assert kwargs['end'] == '2024-02-01'
        assert kwargs['auto_adjust'] is False
        assert kwargs['raise_errors'] is True

    @pytest.mark.asyncio
    async def test_fetch_historical_error_propagates(self, source):
        with patch('data_sources.yfinance_source.yf.Ticker') as mock_ticker:
            mock_ticker.return_value.history.side_effect = Exception("Connection reset by peer")

            with pytest.raises(Exception, match="Connection reset"):
                await source.fetch_historical("AAPL", datetime(2024, 1, 1), datetime(2024, 1, 2), "1d", timeout=5)

    @pytest.mark.asyncio
    async def test_fetch_search(self, source):
        with patch('data_sources.yfinance_source.yf.Search') as mock_search:
            mock_search.return_value.quotes = [
                {'symbol': 'AAPL', 'shortname': 'Apple Inc.'},
                {'shortname': 'No symbol'},
            ]
            quotes = await source.fetch_search("apple", max_results=5, timeout=5)

        assert quotes == [{'symbol': 'AAPL', 'shortname': 'Apple Inc.'}]
        mock_search.assert_called_once_with("apple", max_results=5, news_count=0, timeout=5, raise_errors=True)

    @pytest.mark.asyncio
    async def test_health_check(self, source, yf_data):
        yf_data.get.return_value = _response({'quoteSummary': {'result': [{'price': {}}], 'error': None}})
        assert await source.health_check() is True

        yf_data.get.side_effect = Exception("Network is unreachable")
        assert await source.health_check() is False

    def test_source_info(self, source):
        assert source.get_source_info() == {'name': 'yfinance', 'is_initialized': False}
