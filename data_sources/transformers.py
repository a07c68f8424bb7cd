"""
Quote summary normalisation.

Yahoo returns dates as epoch seconds (or {"raw": ..., "fmt": ...} objects) and
omits modules it has no data for. The transformers below convert dates to epoch
milliseconds, drop null fields from financial statements and make sure every
requested module is present in the result.
"""

from typing import Any, Dict, List, Optional

from utils import ds_logger, to_epoch_ms
from utils.exceptions import DataValidationError

# 默认的财务报表货币
DEFAULT_FINANCIAL_CURRENCY = "USD"


def _epoch_ms_or_zero(value: Any) -> int:
    """无法解析的日期记为 0"""
    try:
        return to_epoch_ms(value) or 0
    except (TypeError, ValueError):
        return 0


def _statement_list(module: Dict[str, Any], module_name: str, list_key: str) -> List[Dict[str, Any]]:
    statements = module.get(list_key)
    if not isinstance(statements, list):
        raise DataValidationError(
            f"Malformed {module_name}: '{list_key}' must be a list, got {type(statements).__name__}",
            context={'module': module_name}
        )
    return statements


def transform_statement(stmt: Dict[str, Any], module_name: str) -> Dict[str, Any]:
    """转换单期财务报表：endDate 转为毫秒，去掉空字段"""
    if not isinstance(stmt, dict) or stmt.get('endDate') is None:
        raise DataValidationError(f"Malformed {module_name}: statement without endDate",
                                  context={'module': module_name})

    result = {k: v for k, v in stmt.items() if v is not None}
    try:
        result['endDate'] = to_epoch_ms(stmt['endDate'])
    except (TypeError, ValueError) as e:
        raise DataValidationError(f"Malformed {module_name}: bad endDate {stmt['endDate']!r}", e) from e
    return result


def transform_balance_sheet_history(module: Dict[str, Any]) -> Dict[str, Any]:
    statements = _statement_list(module, 'balanceSheetHistory', 'balanceSheetStatements')
    return {
        'balanceSheetStatements': [transform_statement(s, 'balanceSheetHistory') for s in statements],
        'maxAge': module.get('maxAge'),
    }


def transform_cashflow_statement_history(module: Dict[str, Any]) -> Dict[str, Any]:
    statements = _statement_list(module, 'cashflowStatementHistory', 'cashflowStatements')
    return {
        'cashflowStatements': [transform_statement(s, 'cashflowStatementHistory') for s in statements],
        'maxAge': module.get('maxAge'),
    }


def transform_earnings(module: Dict[str, Any]) -> Dict[str, Any]:
    """提取盈利日期和一致预期"""
    chart = module.get('earningsChart')
    if not isinstance(chart, dict):
        raise DataValidationError("Malformed earnings: 'earningsChart' is missing",
                                  context={'module': 'earnings'})

    quarterly = chart.get('quarterly') or []
    first_estimate = quarterly[0].get('estimate') if quarterly and isinstance(quarterly[0], dict) else None
    first_estimate = _number_or_zero(first_estimate)

    return {
        'maxAge': module.get('maxAge') or 0,
        'earningsDate': [_epoch_ms_or_zero(d) for d in chart.get('earningsDate') or []],
        'earningsAverage': _number_or_zero(chart.get('currentQuarterEstimate')),
        'earningsLow': first_estimate,
        'earningsHigh': first_estimate,
        'financialCurrency': module.get('financialCurrency') or DEFAULT_FINANCIAL_CURRENCY,
    }


def _number_or_zero(value: Any) -> float:
    """数值字段：{"raw": x} 取 raw，空值记为 0"""
    if isinstance(value, dict):
        value = value.get('raw')
    return value if value is not None else 0


def _convert_dates(module: Dict[str, Any], module_name: str, date_fields: List[str]) -> Dict[str, Any]:
    result = dict(module)
    for name in date_fields:
        try:
            result[name] = to_epoch_ms(module.get(name))
        except (TypeError, ValueError) as e:
            raise DataValidationError(f"Malformed {module_name}: bad {name} {module.get(name)!r}", e) from e
    return result


def transform_price(module: Dict[str, Any]) -> Dict[str, Any]:
    return _convert_dates(module, 'price', ['regularMarketTime'])


def transform_summary_detail(module: Dict[str, Any]) -> Dict[str, Any]:
    return _convert_dates(module, 'summaryDetail', ['exDividendDate', 'expireDate'])


MODULE_TRANSFORMERS = {
    'balanceSheetHistory': transform_balance_sheet_history,
    'cashflowStatementHistory': transform_cashflow_statement_history,
    'earnings': transform_earnings,
    'price': transform_price,
    'summaryDetail': transform_summary_detail,
}


def transform_quote_summary(raw: Dict[str, Any], modules: List[str]) -> Dict[str, Optional[Any]]:
    """将原始 quote summary 限制到请求的模块并逐个转换

    每个请求的模块都会出现在结果中，上游缺失或为空时值为 None。
    """
    if not isinstance(raw, dict):
        raise DataValidationError(f"Malformed quote summary: expected an object, got {type(raw).__name__}")

    result: Dict[str, Optional[Any]] = {}
    for module_name in modules:
        value = raw.get(module_name)
        if value is None:
            result[module_name] = None
            continue

        transformer = MODULE_TRANSFORMERS.get(module_name)
        if transformer is None:
            result[module_name] = value
            continue

        if not isinstance(value, dict):
            raise DataValidationError(
                f"Malformed {module_name}: expected an object, got {type(value).__name__}",
                context={'module': module_name}
            )
        result[module_name] = transformer(value)

    missing = [m for m in modules if result[m] is None]
    if missing:
        ds_logger.debug(f"[Transformers] Modules without data: {', '.join(missing)}")
    return result
