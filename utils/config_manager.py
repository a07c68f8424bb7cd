"""
统一的配置管理模块
从 config/ 目录下的 JSON 文件加载配置，并提供类型安全的分段访问
"""

import json
import logging
from typing import Any, Optional, Dict, List, Type, TypeVar, get_type_hints, get_origin, get_args
from dataclasses import dataclass, field, fields, is_dataclass, asdict
from pathlib import Path

from .exceptions import ConfigurationError, ErrorCodes
from .path_utils import CONFIG_DIR

# 获取配置专用日志器
config_logger = logging.getLogger("Config")

T = TypeVar('T')

# ============================================================================
# 配置数据类型定义
# ============================================================================

@dataclass
class LoggingModuleConfig:
    """模块日志配置"""
    level: str = "INFO"
    enabled: bool = True

@dataclass
class RotationConfig:
    """日志文件轮转配置，type 为 size 或 time"""
    type: str = "size"
    max_bytes_mb: int = 10
    backup_count: int = 5

@dataclass
class FileLoggingConfig:
    """文件日志配置"""
    enabled: bool = False
    directory: str = "log"
    filename: str = "quote_client.log"
    rotation: RotationConfig = field(default_factory=RotationConfig)

@dataclass
class ConsoleLoggingConfig:
    enabled: bool = True

@dataclass
class PerformanceConfig:
    """性能监控配置"""
    enabled: bool = True
    slow_operation_threshold: float = 1.0

@dataclass
class LoggingConfig:
    """完整日志配置"""
    level: str = "INFO"
    format: str = "[%(levelname)s][%(asctime)s][%(filename)s:%(lineno)d] - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    file_config: FileLoggingConfig = field(default_factory=FileLoggingConfig)
    console_config: ConsoleLoggingConfig = field(default_factory=ConsoleLoggingConfig)
    modules: Dict[str, LoggingModuleConfig] = field(default_factory=dict)
    performance_monitoring: PerformanceConfig = field(default_factory=PerformanceConfig)


DEFAULT_QUOTE_MODULES = [
    'assetProfile',
    'balanceSheetHistory',
    'cashflowStatementHistory',
    'earnings',
    'financialData',
    'price',
    'summaryDetail',
    'defaultKeyStatistics',
    'calendarEvents',
]

# 按错误分类给出的用户提示
DEFAULT_ERROR_MESSAGES = {
    'RateLimited': 'Rate limit exceeded. Please try again later.',
    'InvalidSymbol': 'Invalid symbol provided.',
    'Network': 'Network error occurred. Please check your connection.',
    'Timeout': 'Request timed out. Please try again.',
    'Server': 'Server error occurred. Please try again later.',
    'InvalidCredential': 'Yahoo Finance API authentication error. Please try again in a moment.',
}

@dataclass
class RetryConfig:
    """令牌失效重试配置"""
    invalid_crumb_retries: int = 3
    invalid_crumb_delay: float = 2000  # 毫秒
    exponential_backoff: bool = True

@dataclass
class CacheConfig:
    """响应缓存配置"""
    enabled: bool = True
    ttl: float = 300  # 秒
    max_size: int = 1000

@dataclass
class QuoteClientConfig:
    """行情客户端配置"""
    max_retries: int = 3
    request_timeout: float = 30  # 秒
    retry: RetryConfig = field(default_factory=RetryConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    default_modules: List[str] = field(default_factory=lambda: list(DEFAULT_QUOTE_MODULES))
    search_max_results: int = 10
    error_messages: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ERROR_MESSAGES))

    def __post_init__(self):
        # 配置文件只需覆盖部分提示，其余沿用默认值
        self.error_messages = {**DEFAULT_ERROR_MESSAGES, **self.error_messages}


def _coerce(type_hint: Any, value: Any) -> Any:
    if is_dataclass(type_hint):
        return build_dataclass(type_hint, value)
    origin = get_origin(type_hint)
    if origin is dict:
        _, value_type = get_args(type_hint)
        if is_dataclass(value_type):
            return {k: build_dataclass(value_type, v) for k, v in value.items()}
        return dict(value)
    if origin is list:
        return list(value)
    return value


def build_dataclass(cls: Type[T], data: Any) -> T:
    """按字段从字典递归构建 dataclass；缺失的键使用默认值，未知的键忽略"""
    if not isinstance(data, dict):
        raise TypeError(f"{cls.__name__} expects an object, got {type(data).__name__}")

    hints = get_type_hints(cls)
    kwargs = {f.name: _coerce(hints[f.name], data[f.name]) for f in fields(cls) if f.name in data}
    return cls(**kwargs)


# ============================================================================
# 统一配置管理器
# ============================================================================

class UnifiedConfigManager:
    """统一配置管理器

    typed 访问器返回的对象会被缓存并在进程内共享；直接修改其字段即可在运行期生效，
    通过 set/set_nested/update_from_dict 修改原始数据时会丢弃对应的缓存并重新构建。
    """

    # 类型化配置段
    SECTIONS = {
        'logging_config': LoggingConfig,
        'quote_client_config': QuoteClientConfig,
    }

    MERGED_FILENAME = "config.merged.json"

    def __init__(self, config_dir: Optional[str] = None):
        self._config_dir = Path(config_dir) if config_dir else CONFIG_DIR
        self._config_data: Dict[str, Any] = {}
        self._typed_cache: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """按文件名顺序加载并合并目录下的 JSON 配置"""
        self._typed_cache.clear()
        self._config_data = {}

        if not self._config_dir.is_dir():
            config_logger.warning(f"[Config] Directory not found, using defaults: {self._config_dir}")
            return

        config_files = [p for p in sorted(self._config_dir.glob('*.json')) if p.name != self.MERGED_FILENAME]
        for config_file in config_files:
            self._config_data.update(self._read_file(config_file))
            config_logger.debug(f"[Config] Merged {config_file.name}")

        config_logger.info(f"[Config] Loaded {len(config_files)} file(s) from {self._config_dir}")

    @staticmethod
    def _read_file(config_file: Path) -> Dict[str, Any]:
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in configuration file {config_file.name}: {e}",
                ErrorCodes.CONFIG_INVALID_FORMAT
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Failed to read configuration file {config_file.name}: {e}",
                ErrorCodes.CONFIG_LOAD_ERROR
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration file {config_file.name} must contain a JSON object",
                ErrorCodes.CONFIG_INVALID_FORMAT
            )
        return data

    def reload_config(self) -> None:
        """重新加载配置，运行期修改会被丢弃"""
        config_logger.info("[Config] Reloading configuration...")
        self._load_config()

    # ========================================================================
    # 原始数据访问
    # ========================================================================

    def get(self, key: str, default: Optional[T] = None) -> Optional[T]:
        return self._config_data.get(key, default)

    def get_nested(self, path: str, default: Optional[T] = None) -> Optional[T]:
        """按点分隔路径读取，如 quote_client_config.retry.invalid_crumb_delay"""
        current: Any = self._config_data
        for key in path.split('.'):
            if not isinstance(current, dict) or key not in current:
                return default
            current = current[key]
        return current

    def set(self, key: str, value: Any) -> None:
        self._config_data[key] = value
        self._typed_cache.pop(key, None)

    def set_nested(self, path: str, value: Any) -> None:
        """按点分隔路径写入，中间层不存在时自动创建"""
        *parents, leaf = path.split('.')
        current = self._config_data
        for key in parents:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]

        current[leaf] = value
        self._typed_cache.pop(path.split('.', 1)[0], None)

    def __contains__(self, key: str) -> bool:
        return key in self._config_data

    def __getitem__(self, key: str) -> Any:
        return self._config_data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    # ========================================================================
    # 类型安全访问
    # ========================================================================

    def _typed_section(self, section: str):
        if section not in self._typed_cache:
            cls = self.SECTIONS[section]
            try:
                self._typed_cache[section] = build_dataclass(cls, self.get(section, {}))
            except (AttributeError, TypeError, ValueError) as e:
                config_logger.error(f"[Config] Failed to parse {section}, using defaults: {e}")
                self._typed_cache[section] = cls()
        return self._typed_cache[section]

    def get_logging_config(self) -> LoggingConfig:
        """获取日志配置"""
        return self._typed_section('logging_config')

    def get_quote_client_config(self) -> QuoteClientConfig:
        """获取行情客户端配置（进程内共享的可变对象）"""
        return self._typed_section('quote_client_config')

    # ========================================================================
    # 导入导出
    # ========================================================================

    def to_dict(self) -> Dict[str, Any]:
        """配置快照，类型化配置段使用其当前值"""
        data = dict(self._config_data)
        for section, typed in self._typed_cache.items():
            data[section] = asdict(typed)
        return data

    def save_config(self, file_path: Optional[str] = None) -> None:
        """保存合并后的配置，默认写入 config.merged.json 而不覆盖拆分的文件"""
        save_path = Path(file_path) if file_path else self._config_dir / self.MERGED_FILENAME
        try:
            save_path.parent.mkdir(parents=True, exist_ok=True)
            save_path.write_text(json.dumps(self.to_dict(), indent=2, ensure_ascii=False), encoding='utf-8')
        except OSError as e:
            raise ConfigurationError(
                f"Failed to save configuration: {e}",
                ErrorCodes.CONFIG_SAVE_ERROR
            ) from e
        config_logger.info(f"[Config] Configuration saved to: {save_path}")

    def update_from_dict(self, config_dict: Dict[str, Any]) -> None:
        self._config_data.update(config_dict)
        self._typed_cache.clear()
        config_logger.info("[Config] Configuration updated from dict")

    def clear_cache(self) -> None:
        """丢弃类型化配置缓存，下次访问时重新构建"""
        self._typed_cache.clear()


# 全局配置管理器实例
config_manager = UnifiedConfigManager()
