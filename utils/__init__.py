"""
工具模块包
提供行情客户端所需的配置、日志、异常、缓存和验证工具
"""

# 导出核心工具
from .config_manager import (
    config_manager,
    UnifiedConfigManager,
    LoggingConfig,
    LoggingModuleConfig,
    RetryConfig,
    CacheConfig,
    QuoteClientConfig
)
from .exceptions import (
    QuoteSystemError,
    ConfigurationError,
    ValidationError,
    FinancialApiError,
    RateLimitError,
    InvalidSymbolError,
    NetworkError,
    RequestTimeoutError,
    InvalidCrumbError,
    ServerError,
    NoDataError,
    DataValidationError,
    ErrorKind,
    ErrorCodes,
    classify_error,
    to_financial_error,
    http_status_for,
    create_error_response
)
from .logging_manager import (
    LogContext,
    log_performance,
    MetricsLogger,
    logging_manager,
    logger,
    quote_client_metrics,
    cache_metrics,
    LogConfig,
    initialize_logging,
    quote_client_logger,
    ds_logger,
    yfinance_logger,
    cache_logger,
    validation_logger,
    date_utils_logger
)
from .path_utils import BASE_DIR, CONFIG_DIR, LOG_DIR
from .cache import CacheEntry, TTLCache, make_fingerprint
from .validation import QueryValidator, validate_response
from .date_utils import ensure_datetime, to_iso, to_epoch_ms

# 版本信息
__version__ = "1.0.0"

__all__ = [
    # 配置管理
    "config_manager",
    "UnifiedConfigManager",
    "LoggingConfig",
    "LoggingModuleConfig",
    "RetryConfig",
    "CacheConfig",
    "QuoteClientConfig",

    # 异常处理
    "QuoteSystemError",
    "ConfigurationError",
    "ValidationError",
    "FinancialApiError",
    "RateLimitError",
    "InvalidSymbolError",
    "NetworkError",
    "RequestTimeoutError",
    "InvalidCrumbError",
    "ServerError",
    "NoDataError",
    "DataValidationError",
    "ErrorKind",
    "ErrorCodes",
    "classify_error",
    "to_financial_error",
    "http_status_for",
    "create_error_response",

    # 日志工具
    "LogContext",
    "log_performance",
    "MetricsLogger",
    "logging_manager",
    "logger",
    "quote_client_metrics",
    "cache_metrics",
    "LogConfig",
    "initialize_logging",
    "quote_client_logger",
    "ds_logger",
    "yfinance_logger",
    "cache_logger",
    "validation_logger",
    "date_utils_logger",

    # 路径工具
    "BASE_DIR",
    "CONFIG_DIR",
    "LOG_DIR",

    # 缓存
    "CacheEntry",
    "TTLCache",
    "make_fingerprint",

    # 验证
    "QueryValidator",
    "validate_response",

    # 日期工具
    "ensure_datetime",
    "to_iso",
    "to_epoch_ms",
]
