"""
Unit tests for quote summary transformers
"""

import pytest
from datetime import datetime, timezone

from data_sources.transformers import (
    transform_quote_summary, transform_statement, transform_earnings,
    transform_price, transform_summary_detail
)
from utils.exceptions import DataValidationError


def _ms(*args) -> int:
    return int(datetime(*args, tzinfo=timezone.utc).timestamp() * 1000)


@pytest.mark.unit
class TestStatementTransform:

    def test_end_date_converted_and_nulls_dropped(self):
        stmt = {'endDate': 1704067200, 'totalAssets': 1000000, 'cash': None, 'maxAge': 86400}

        result = transform_statement(stmt, 'balanceSheetHistory')

        assert result == {'endDate': _ms(2024, 1, 1), 'totalAssets': 1000000, 'maxAge': 86400}

    def test_raw_value_object(self):
        result = transform_statement({'endDate': {'raw': 1704067200, 'fmt': '2024-01-01'}}, 'cashflowStatementHistory')

        assert result['endDate'] == _ms(2024, 1, 1)

    def test_missing_end_date(self):
        with pytest.raises(DataValidationError, match="without endDate") as exc_info:
            transform_statement({'totalAssets': 1}, 'balanceSheetHistory')

        assert exc_info.value.context == {'module': 'balanceSheetHistory'}
        assert exc_info.value.original_error is None

    def test_unparseable_end_date(self):
        with pytest.raises(DataValidationError, match="bad endDate"):
            transform_statement({'endDate': 'not-a-date'}, 'balanceSheetHistory')


@pytest.mark.unit
class TestEarningsTransform:

    def test_valid_earnings(self):
        module = {
            'maxAge': 86400,
            'earningsChart': {
                'earningsDate': [1704067200, {'raw': 1711929600}],
                'currentQuarterEstimate': 1.5,
                'quarterly': [{'date': '4Q2023', 'actual': 1.45, 'estimate': 1.4}],
            },
            'financialCurrency': 'EUR',
        }

        result = transform_earnings(module)

        assert result == {
            'maxAge': 86400,
            'earningsDate': [_ms(2024, 1, 1), _ms(2024, 4, 1)],
            'earningsAverage': 1.5,
            'earningsLow': 1.4,
            'earningsHigh': 1.4,
            'financialCurrency': 'EUR',
        }

    def test_unparseable_dates_become_zero(self):
        module = {'earningsChart': {'earningsDate': ['2024-01-01', None, 'invalid-date']}}

        result = transform_earnings(module)

        assert result['earningsDate'] == [_ms(2024, 1, 1), 0, 0]

    def test_missing_values_default(self):
        module = {
            'maxAge': None,
            'earningsChart': {'earningsDate': [], 'currentQuarterEstimate': None, 'quarterly': []},
            'financialCurrency': None,
        }

        result = transform_earnings(module)

        assert result['maxAge'] == 0
        assert result['earningsAverage'] == 0
        assert result['earningsLow'] == 0
        assert result['earningsHigh'] == 0
        assert result['financialCurrency'] == 'USD'

    def test_missing_chart(self):
        with pytest.raises(DataValidationError) as exc_info:
            transform_earnings({'earningsChart': None})

        assert exc_info.value.context == {'module': 'earnings'}
        assert exc_info.value.original_error is None


@pytest.mark.unit
class TestPriceAndSummaryDetail:

    def test_price_time_converted(self):
        result = transform_price({'regularMarketTime': 1704124800, 'regularMarketPrice': 150.5, 'currency': None})

        assert result == {'regularMarketTime': _ms(2024, 1, 1, 16), 'regularMarketPrice': 150.5, 'currency': None}

    def test_price_without_time(self):
        assert transform_price({'regularMarketPrice': 1.0})['regularMarketTime'] is None

    def test_summary_detail_dates(self):
        result = transform_summary_detail({'exDividendDate': 1707955200, 'dividendRate': 0.92})

        assert result['exDividendDate'] == _ms(2024, 2, 15)
        assert result['expireDate'] is None
        assert result['dividendRate'] == 0.92


@pytest.mark.unit
class TestQuoteSummaryTransform:

    def test_restricted_to_requested_modules(self, sample_quote_summary):
        result = transform_quote_summary(sample_quote_summary, ['price', 'assetProfile'])

        assert list(result.keys()) == ['price', 'assetProfile']
        assert result['assetProfile'] is None

    def test_full_payload(self, sample_quote_summary):
        modules = ['balanceSheetHistory', 'cashflowStatementHistory', 'earnings', 'summaryDetail']

        result = transform_quote_summary(sample_quote_summary, modules)

        assert result['balanceSheetHistory']['balanceSheetStatements'][0] == {
            'endDate': _ms(2024, 1, 1), 'totalAssets': 1000000, 'maxAge': 86400
        }
        assert result['cashflowStatementHistory']['cashflowStatements'][0]['endDate'] == _ms(2024, 1, 1)
        assert result['earnings']['earningsAverage'] == 1.5
        assert result['summaryDetail']['exDividendDate'] == _ms(2024, 2, 15)

    def test_untransformed_module_passes_through(self):
        profile = {'sector': 'Technology', 'industry': 'Consumer Electronics'}

        assert transform_quote_summary({'assetProfile': profile}, ['assetProfile']) == {'assetProfile': profile}

    @pytest.mark.parametrize("raw, module", [
        ({'balanceSheetHistory': {'balanceSheetStatements': None}}, 'balanceSheetHistory'),
        ({'cashflowStatementHistory': {'cashflowStatements': 'x'}}, 'cashflowStatementHistory'),
        ({'price': [1, 2, 3]}, 'price'),
    ])
    def test_malformed_modules(self, raw, module):
        with pytest.raises(DataValidationError):
            transform_quote_summary(raw, [module])

    def test_non_dict_payload(self):
        with pytest.raises(DataValidationError):
            transform_quote_summary([], ['price'])
