"""
Logging setup for the quote client.

Handlers are installed on the root logger from config/logging.json; modules
obtain named loggers through ``logging_manager.get_logger`` and report
operation counters through ``LogContext`` and ``MetricsLogger``.
"""

import asyncio
import logging
import sys
import time
import functools
import traceback
import threading
from pathlib import Path
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from typing import Optional, Dict, Any, Callable
from dataclasses import dataclass
from collections import defaultdict, deque

from .exceptions import QuoteSystemError, ErrorCodes
from .config_manager import config_manager, LoggingConfig
from .path_utils import BASE_DIR, LOG_DIR

DEFAULT_LOGGER_NAME = "quoteclient"


@dataclass
class LogConfig:
    """日志处理器参数"""
    level: str = "INFO"
    format: str = "[%(levelname)s][%(asctime)s][%(filename)s:%(lineno)d] - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    file_max_bytes: int = 10 * 1024 * 1024
    file_backup_count: int = 5
    enable_console: bool = True
    enable_file: bool = False
    log_directory: Optional[str] = None
    log_filename: str = "quote_client.log"
    rotation_type: str = "size"

    @classmethod
    def from_logging_config(cls, logging_config: LoggingConfig) -> 'LogConfig':
        file_config = logging_config.file_config
        directory = Path(file_config.directory)
        if not directory.is_absolute():
            directory = BASE_DIR / directory

        return cls(
            level=logging_config.level,
            format=logging_config.format,
            date_format=logging_config.date_format,
            file_max_bytes=int(file_config.rotation.max_bytes_mb * 1024 * 1024),
            file_backup_count=file_config.rotation.backup_count,
            enable_console=logging_config.console_config.enabled,
            enable_file=file_config.enabled,
            log_directory=str(directory),
            log_filename=file_config.filename,
            rotation_type=file_config.rotation.type,
        )

    @property
    def log_path(self) -> Path:
        return Path(self.log_directory or LOG_DIR) / self.log_filename


class LoggingManager:
    """进程级日志管理器（单例）"""

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._setup()
        return cls._instance

    def _setup(self):
        self._loggers: Dict[str, logging.Logger] = {}
        self._config = LogConfig()
        self._metrics: Dict[str, float] = defaultdict(int)
        self.slow_operation_threshold = 1.0

    def configure(self, config: Optional[LogConfig] = None):
        """按 LogConfig 重建根日志器的处理器"""
        if config is not None:
            self._config = config

        root = logging.getLogger()
        root.setLevel(self._config.level.upper())
        self._clear_handlers(root)

        if self._config.enable_console:
            root.addHandler(self._with_formatter(logging.StreamHandler(sys.stdout)))
        if self._config.enable_file:
            self._add_file_handler(root)

    def configure_from_config_file(self) -> LoggingConfig:
        """读取 logging_config 段并应用"""
        try:
            logging_config = config_manager.get_logging_config()
            self.configure(LogConfig.from_logging_config(logging_config))

            for name, module_config in logging_config.modules.items():
                level = module_config.level.upper() if module_config.enabled else logging.CRITICAL
                self.get_logger(name).setLevel(level)

            self.slow_operation_threshold = logging_config.performance_monitoring.slow_operation_threshold
        except (AttributeError, TypeError, ValueError, OSError) as e:
            raise QuoteSystemError(
                f"Failed to configure logging from config file: {e}",
                ErrorCodes.CONFIG_INVALID_FORMAT
            ) from e
        return logging_config

    def _with_formatter(self, handler: logging.Handler) -> logging.Handler:
        handler.setFormatter(logging.Formatter(self._config.format, datefmt=self._config.date_format))
        return handler

    def _add_file_handler(self, target: logging.Logger):
        log_path = self._config.log_path
        log_path.parent.mkdir(parents=True, exist_ok=True)

        if self._config.rotation_type == "time":
            handler = TimedRotatingFileHandler(
                log_path, when="midnight", backupCount=self._config.file_backup_count, encoding="utf-8"
            )
        else:
            handler = RotatingFileHandler(
                log_path, maxBytes=self._config.file_max_bytes,
                backupCount=self._config.file_backup_count, encoding="utf-8"
            )
        target.addHandler(self._with_formatter(handler))

    @staticmethod
    def _clear_handlers(target: logging.Logger):
        for handler in list(target.handlers):
            target.removeHandler(handler)
            handler.close()

    def get_logger(self, name: Optional[str] = None) -> logging.Logger:
        name = name or DEFAULT_LOGGER_NAME
        if name not in self._loggers:
            self._loggers[name] = logging.getLogger(name)
        return self._loggers[name]

    def record(self, key: str, value: float = 1) -> float:
        """累加计数器并返回新值"""
        self._metrics[key] += value
        return self._metrics[key]

    def get_metrics(self) -> Dict[str, float]:
        return dict(self._metrics)

    def reset_metrics(self):
        self._metrics.clear()


class LogContext:
    """操作级日志上下文，记录开始、完成和失败次数

    计数器键只由模块和操作名组成，symbol 等请求参数只出现在日志文本中。
    """

    def __init__(self, module: str, operation: Optional[str] = None, symbol: Optional[str] = None,
                 extra_context: Optional[Dict[str, Any]] = None):
        self.label = f"{module}.{operation}" if operation else module

        details = [f"Symbol:{symbol}"] if symbol else []
        details.extend(f"{k}:{v}" for k, v in (extra_context or {}).items() if not k.startswith('_'))
        self.prefix = f"[{self.label}] ({', '.join(details)})" if details else f"[{self.label}]"

        self.logger = logging_manager.get_logger(module)
        self._started_at = 0.0

    def __enter__(self):
        self._started_at = time.perf_counter()
        logging_manager.record(f"{self.label}_started")
        self.logger.debug(f"{self.prefix} Starting operation")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed = time.perf_counter() - self._started_at
        if exc_type is None:
            logging_manager.record(f"{self.label}_completed")
            self.logger.debug(f"{self.prefix} Operation completed in {elapsed:.2f}s")
            return

        logging_manager.record(f"{self.label}_failed")
        self.logger.error(f"{self.prefix} Operation failed in {elapsed:.2f}s: {exc_val}")
        self.logger.debug(f"{self.prefix} Traceback: {''.join(traceback.format_tb(exc_tb))}")


def log_performance(module: str, threshold: Optional[float] = None):
    """耗时超过阈值时记录警告；threshold 为空时使用 performance_monitoring 配置"""
    def decorator(func: Callable) -> Callable:
        def report(elapsed: float):
            limit = logging_manager.slow_operation_threshold if threshold is None else threshold
            perf_logger = logging_manager.get_logger(module)
            if elapsed > limit:
                perf_logger.warning(f"[{module}] Slow operation: {func.__name__} took {elapsed:.2f}s")
            else:
                perf_logger.debug(f"[{module}] {func.__name__} completed in {elapsed:.2f}s")

        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def timed_async(*args, **kwargs):
                started = time.perf_counter()
                try:
                    return await func(*args, **kwargs)
                finally:
                    report(time.perf_counter() - started)
            return timed_async

        @functools.wraps(func)
        def timed(*args, **kwargs):
            started = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                report(time.perf_counter() - started)
        return timed

    return decorator


class MetricsLogger:
    """按模块记录计数与耗时，最近 1000 个样本"""

    def __init__(self, module: str, window: int = 1000):
        self.module = module
        self._samples: Dict[str, deque] = defaultdict(lambda: deque(maxlen=window))

    def _key(self, metric_name: str) -> str:
        return f"{self.module}.{metric_name}"

    def increment(self, metric_name: str, value: int = 1):
        key = self._key(metric_name)
        self._samples[key].append(value)
        total = logging_manager.record(key, value)
        logging_manager.get_logger(self.module).debug(f"[Metrics] {key}: {total}")

    def timing(self, metric_name: str, duration: float):
        key = self._key(f"{metric_name}_duration")
        self._samples[key].append(duration)
        logging_manager.get_logger(self.module).debug(f"[Metrics] {key}: {duration:.2f}s")

    def get_metrics(self) -> Dict[str, Dict[str, float]]:
        return {
            key: {'count': len(samples), 'latest': samples[-1], 'sum': sum(samples)}
            for key, samples in self._samples.items() if samples
        }

    def reset(self):
        self._samples.clear()


logging_manager = LoggingManager()
logger = logging_manager.get_logger()

quote_client_metrics = MetricsLogger("QuoteClient")
cache_metrics = MetricsLogger("Cache")

# 模块日志器
quote_client_logger = logging_manager.get_logger("QuoteClient")
ds_logger = logging_manager.get_logger("DataSource")
yfinance_logger = logging_manager.get_logger("YFinanceSource")
cache_logger = logging_manager.get_logger("Cache")
validation_logger = logging_manager.get_logger("Validation")
date_utils_logger = logging_manager.get_logger("DateUtils")


def initialize_logging(use_config_file: bool = True) -> bool:
    """初始化日志系统，配置文件无效时退回默认设置"""
    if not use_config_file:
        logging_manager.configure()
        return True

    try:
        logging_manager.configure_from_config_file()
    except QuoteSystemError as e:
        print(f"Failed to initialize logging from config file: {e}", file=sys.stderr)
        logging_manager.configure()
        logger.warning("[Logging] Initialized with fallback config")
        return True

    logger.debug("[Logging] Initialized from config file")
    return True


initialize_logging()
