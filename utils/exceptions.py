"""
统一异常定义模块
提供行情客户端的异常类、上游错误分类和 HTTP 状态映射
"""

from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple


class QuoteSystemError(Exception):
    """行情系统基础异常类"""

    def __init__(self, message: str, error_code: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class ConfigurationError(QuoteSystemError):
    """配置相关错误"""
    pass


class ValidationError(QuoteSystemError):
    """输入参数验证错误"""
    pass


class ErrorKind(str, Enum):
    """上游错误分类（路由层据此选择 HTTP 状态码）"""
    RATE_LIMITED = "RateLimited"
    INVALID_SYMBOL = "InvalidSymbol"
    NETWORK = "Network"
    TIMEOUT = "Timeout"
    INVALID_CREDENTIAL = "InvalidCredential"
    SERVER = "Server"


# 错误代码常量
class ErrorCodes:
    """错误代码常量"""

    # 配置错误
    CONFIG_NOT_FOUND = "CONFIG_001"
    CONFIG_INVALID_FORMAT = "CONFIG_002"
    CONFIG_LOAD_ERROR = "CONFIG_003"
    CONFIG_SAVE_ERROR = "CONFIG_004"

    # 验证错误
    VALIDATION_INVALID_SYMBOL = "VAL_001"
    VALIDATION_INVALID_DATE = "VAL_002"
    VALIDATION_INVALID_INTERVAL = "VAL_003"
    VALIDATION_MISSING_REQUIRED_FIELD = "VAL_004"
    VALIDATION_INVALID_QUERY = "VAL_005"

    # 上游数据源错误
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    INVALID_SYMBOL = "INVALID_SYMBOL"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    INVALID_CRUMB = "INVALID_CRUMB"
    SERVER_ERROR = "SERVER_ERROR"
    NO_DATA = "NO_DATA"
    DATA_VALIDATION_ERROR = "DATA_VALIDATION_ERROR"


class FinancialApiError(QuoteSystemError):
    """上游行情接口错误基类"""

    kind: ErrorKind = ErrorKind.SERVER

    def __init__(self, message: str, code: str, original_error: Any = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, code, context)
        self.code = code
        self.original_error = original_error


class RateLimitError(FinancialApiError):
    """上游限流"""

    kind = ErrorKind.RATE_LIMITED

    def __init__(self, message: str = "Rate limit exceeded", original_error: Any = None):
        super().__init__(message, ErrorCodes.RATE_LIMIT_EXCEEDED, original_error)


class InvalidSymbolError(FinancialApiError):
    """无效的交易代码"""

    kind = ErrorKind.INVALID_SYMBOL

    def __init__(self, symbol: str, original_error: Any = None):
        super().__init__(f"Invalid symbol: {symbol}", ErrorCodes.INVALID_SYMBOL, original_error)
        self.symbol = symbol


class NetworkError(FinancialApiError):
    """网络连接错误"""

    kind = ErrorKind.NETWORK

    def __init__(self, message: str = "Network error occurred", original_error: Any = None):
        super().__init__(message, ErrorCodes.NETWORK_ERROR, original_error)


class RequestTimeoutError(FinancialApiError):
    """请求超时"""

    kind = ErrorKind.TIMEOUT

    def __init__(self, message: str = "Request timed out", original_error: Any = None):
        super().__init__(message, ErrorCodes.TIMEOUT, original_error)


class InvalidCrumbError(FinancialApiError):
    """上游认证令牌（crumb）失效"""

    kind = ErrorKind.INVALID_CREDENTIAL

    def __init__(self, message: str = "Invalid Crumb", original_error: Any = None):
        super().__init__(message, ErrorCodes.INVALID_CRUMB, original_error)


class ServerError(FinancialApiError):
    """上游服务器错误（默认分类）"""

    kind = ErrorKind.SERVER

    def __init__(self, message: str = "Server error occurred", original_error: Any = None):
        super().__init__(message, ErrorCodes.SERVER_ERROR, original_error)


class NoDataError(FinancialApiError):
    """上游未返回任何数据"""

    kind = ErrorKind.INVALID_SYMBOL

    def __init__(self, symbol: str, original_error: Any = None):
        super().__init__(f"No data returned for symbol: {symbol}", ErrorCodes.NO_DATA, original_error)
        self.symbol = symbol


class DataValidationError(FinancialApiError):
    """上游返回的数据格式异常"""

    kind = ErrorKind.SERVER

    def __init__(self, message: str, original_error: Any = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCodes.DATA_VALIDATION_ERROR, original_error, context)


# ============================================================================
# 错误分类
# ============================================================================

# Yahoo 令牌失效时返回的原文
INVALID_CRUMB_PHRASE = "Invalid Crumb"


def _contains(*needles: str) -> Callable[[str], bool]:
    lowered = tuple(n.lower() for n in needles)
    return lambda message: any(n in message.lower() for n in lowered)


def _is_invalid_crumb(message: str) -> bool:
    # 必须整句匹配，子串匹配会让无关错误进入重试循环
    return message.strip().lower() == INVALID_CRUMB_PHRASE.lower()


# 上游库没有结构化错误码，只能按消息文本匹配；按顺序求值，首个命中即返回
ERROR_CLASSIFIERS: List[Tuple[Callable[[str], bool], ErrorKind]] = [
    (_contains("rate limit", "too many requests"), ErrorKind.RATE_LIMITED),
    (_contains("invalid symbol", "not found"), ErrorKind.INVALID_SYMBOL),
    (_contains("network", "connection"), ErrorKind.NETWORK),
    (_contains("timeout", "timed out"), ErrorKind.TIMEOUT),
    (_is_invalid_crumb, ErrorKind.INVALID_CREDENTIAL),
]


def error_message(error: Any) -> str:
    """提取错误消息文本"""
    if isinstance(error, QuoteSystemError):
        return error.message
    return str(error)


def classify_message(message: str) -> ErrorKind:
    """按消息文本对错误分类"""
    for predicate, kind in ERROR_CLASSIFIERS:
        if predicate(message):
            return kind
    return ErrorKind.SERVER


def classify_error(error: Any) -> ErrorKind:
    """对任意上游失败进行分类，已分类的异常保持原分类"""
    if isinstance(error, FinancialApiError):
        return error.kind
    return classify_message(error_message(error))


_KIND_TO_ERROR = {
    ErrorKind.RATE_LIMITED: lambda msg, err: RateLimitError(original_error=err),
    ErrorKind.INVALID_SYMBOL: lambda msg, err: InvalidSymbolError(msg, err),
    ErrorKind.NETWORK: lambda msg, err: NetworkError(original_error=err),
    ErrorKind.TIMEOUT: lambda msg, err: RequestTimeoutError(original_error=err),
    ErrorKind.INVALID_CREDENTIAL: lambda msg, err: InvalidCrumbError(msg, err),
    ErrorKind.SERVER: lambda msg, err: ServerError(original_error=err),
}


def to_financial_error(error: Any) -> FinancialApiError:
    """将上游原始错误转换为对应分类的异常，已是 FinancialApiError 的原样返回"""
    if isinstance(error, FinancialApiError):
        return error

    message = error_message(error)
    converted = _KIND_TO_ERROR[classify_message(message)](message, error)
    if isinstance(error, BaseException):
        converted.__cause__ = error
    return converted


# ============================================================================
# HTTP 映射
# ============================================================================

HTTP_STATUS_BY_KIND = {
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.INVALID_SYMBOL: 404,
}

HTTP_BAD_REQUEST = 400
HTTP_INTERNAL_ERROR = 500


def http_status_for(kind: ErrorKind) -> int:
    """错误分类对应的 HTTP 状态码"""
    return HTTP_STATUS_BY_KIND.get(kind, HTTP_INTERNAL_ERROR)


def create_error_response(error: Any,
                          error_messages: Optional[Dict[str, str]] = None) -> Tuple[int, Dict[str, Any]]:
    """创建标准化的错误响应 (status, body)"""
    messages = error_messages or {}

    if isinstance(error, ValidationError):
        return HTTP_BAD_REQUEST, {
            "error": error.message,
            "error_code": error.error_code,
            "kind": None,
        }

    kind = classify_error(error)
    if isinstance(error, QuoteSystemError):
        error_code = error.error_code
    else:
        error_code = to_financial_error(error).code

    return http_status_for(kind), {
        "error": messages.get(kind.value, error_message(error)),
        "error_code": error_code,
        "kind": kind.value,
    }
