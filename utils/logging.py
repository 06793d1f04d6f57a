"""
Structured logging utilities for the portfolio ledger.
Provides JSON/text formatting, per-category log files, correlation ids
and performance monitoring of analytics calls.
"""

import logging
import logging.handlers
import os
import sys
import json
import time
import threading
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Dict, Any, List, Union
from pathlib import Path
from dataclasses import dataclass, field
from enum import Enum
import functools
import psutil


class LogLevel(Enum):
    """Log levels used by the ledger, including custom ones."""
    TRACE = 5        # Detailed execution traces
    DEBUG = 10       # Debug information
    PERFORMANCE = 15 # Timing of analytics calls
    INFO = 20        # General information
    AUDIT = 25       # Audit trail of recorded transactions
    WARNING = 30     # Warning messages
    LEDGER = 35      # Position changes
    ERROR = 40       # Error conditions
    CRITICAL = 50    # Critical failures


class LogCategory(Enum):
    """Log categories for classification."""
    LEDGER = "ledger"
    PORTFOLIO = "portfolio"
    PERFORMANCE = "performance"
    RISK = "risk"
    AUDIT = "audit"
    ERROR = "error"
    DATA = "data"
    SYSTEM = "system"


@dataclass
class LogConfig:
    """Configuration for the logging system."""
    level: str = "INFO"
    format_type: str = "json"
    log_dir: Path = field(default_factory=lambda: Path("logs"))
    log_to_file: bool = True
    max_file_size: int = 50_000_000  # 50MB
    backup_count: int = 10
    enable_performance_logging: bool = True
    enable_audit_logging: bool = True
    enable_ledger_logging: bool = True
    console_output: bool = True
    structured_metadata: bool = True
    correlation_id_enabled: bool = True

    @classmethod
    def from_settings(cls, settings) -> 'LogConfig':
        """Build from application settings (see ``configs``)."""
        return cls(
            level=settings.log_level,
            format_type=settings.log_format,
            log_dir=Path(settings.log_dir),
            log_to_file=settings.log_to_file
        )


@dataclass
class PerformanceMetrics:
    """Resource usage of one timed call."""
    start_time: float
    end_time: float
    duration: float
    cpu_usage_start: float
    cpu_usage_end: float
    memory_usage_start: int
    memory_usage_end: int
    function_name: str
    args_hash: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'duration_ms': round(self.duration * 1000, 3),
            'cpu_usage_delta': round(self.cpu_usage_end - self.cpu_usage_start, 2),
            'memory_delta_mb': round((self.memory_usage_end - self.memory_usage_start) / 1024 / 1024, 2),
            'function': self.function_name,
            'args_hash': self.args_hash
        }


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _rotating_handler(config: LogConfig, filename: str, level: int,
                      formatter: logging.Formatter,
                      category: Optional['LogCategory'] = None) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        config.log_dir / filename,
        maxBytes=config.max_file_size,
        backupCount=config.backup_count
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    if category is not None:
        handler.addFilter(CategoryFilter(category))
    return handler


def setup_logging(
    config: Optional[LogConfig] = None,
    level: str = "INFO",
    format_type: str = "json"
) -> None:
    """
    Configure root logging for the application.

    Args:
        config: LogConfig object for full configuration
        level: Logging level when no config is given
        format_type: Format type ('json' or 'text') when no config is given
    """
    if config is None:
        config = LogConfig(level=level, format_type=format_type)

    for log_level in LogLevel:
        logging.addLevelName(log_level.value, log_level.name)

    if config.format_type == "json":
        formatter = EnhancedJsonFormatter(config)
    else:
        formatter = EnhancedTextFormatter()

    base_level = getattr(logging, config.level.upper(), logging.INFO)
    handlers = []

    if config.console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(base_level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    if config.log_to_file:
        config.log_dir.mkdir(parents=True, exist_ok=True)

        handlers.append(_rotating_handler(config, "portfolio.log", base_level, formatter))

        if config.enable_ledger_logging:
            handlers.append(_rotating_handler(
                config, "ledger.log", LogLevel.LEDGER.value, formatter, LogCategory.LEDGER
            ))

        if config.enable_performance_logging:
            handlers.append(_rotating_handler(
                config, "performance.log", LogLevel.PERFORMANCE.value, formatter,
                LogCategory.PERFORMANCE
            ))

        if config.enable_audit_logging:
            handlers.append(_rotating_handler(
                config, "audit.log", LogLevel.AUDIT.value, formatter, LogCategory.AUDIT
            ))

        handlers.append(_rotating_handler(config, "errors.log", logging.ERROR, formatter))

    # Root at the lowest level, handlers filter
    logging.basicConfig(
        level=LogLevel.TRACE.value,
        handlers=handlers,
        force=True
    )

    global _log_config
    _log_config = config


_log_config: Optional[LogConfig] = None
_correlation_context = threading.local()


class CategoryFilter(logging.Filter):
    """Filter logs by category."""

    def __init__(self, category: LogCategory):
        super().__init__()
        self.category = category.value

    def filter(self, record):
        return getattr(record, 'category', None) == self.category


class EnhancedJsonFormatter(logging.Formatter):
    """JSON formatter with structured metadata."""

    def __init__(self, config: LogConfig):
        super().__init__()
        self.config = config

    def format(self, record):
        log_entry = {
            'timestamp': _utc_now_iso(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'thread_id': threading.get_ident(),
            'process_id': os.getpid()
        }

        if self.config.correlation_id_enabled:
            correlation_id = getattr(_correlation_context, 'correlation_id', None)
            if correlation_id:
                log_entry['correlation_id'] = correlation_id

        if self.config.structured_metadata:
            if hasattr(record, 'category'):
                log_entry['category'] = record.category

            if hasattr(record, 'performance_metrics'):
                log_entry['performance'] = record.performance_metrics

            if hasattr(record, 'portfolio_context'):
                log_entry['portfolio'] = record.portfolio_context

            if hasattr(record, 'error_context'):
                log_entry['error'] = record.error_context

            if hasattr(record, 'extra_fields'):
                log_entry.update(record.extra_fields)

        if record.exc_info:
            log_entry['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': self.formatException(record.exc_info)
            }

        if record.pathname:
            log_entry['source'] = {
                'file': record.pathname,
                'line': record.lineno,
                'function': record.funcName
            }

        return json.dumps(log_entry, default=str)


class EnhancedTextFormatter(logging.Formatter):
    """Text formatter with category and correlation prefixes."""

    def __init__(self):
        super().__init__(
            fmt='%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    def format(self, record):
        formatted = super().format(record)

        if hasattr(record, 'category'):
            formatted = f"[{record.category}] {formatted}"

        correlation_id = getattr(_correlation_context, 'correlation_id', None)
        if correlation_id:
            formatted = f"[{correlation_id[:8]}] {formatted}"

        return formatted


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger
    """
    return logging.getLogger(name)


def get_enhanced_logger(name: str, category: Optional[LogCategory] = None) -> 'EnhancedLogger':
    """
    Get an enhanced logger instance with structured helpers.

    Args:
        name: Logger name (typically __name__)
        category: Default log category

    Returns:
        Enhanced logger instance
    """
    return EnhancedLogger(name, category)


def set_correlation_id(correlation_id: str) -> None:
    """Set correlation ID for current thread."""
    _correlation_context.correlation_id = correlation_id


def get_correlation_id() -> Optional[str]:
    return getattr(_correlation_context, 'correlation_id', None)


def clear_correlation_id() -> None:
    """Clear correlation ID for current thread."""
    if hasattr(_correlation_context, 'correlation_id'):
        delattr(_correlation_context, 'correlation_id')


def performance_logging(include_args: bool = False):
    """
    Decorator for automatic performance logging.

    Args:
        include_args: Whether to include a hash of the call arguments
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = get_enhanced_logger(func.__module__, LogCategory.PERFORMANCE)

            start_time = time.time()
            process = psutil.Process()
            cpu_start = process.cpu_percent()
            memory_start = process.memory_info().rss

            args_hash = None
            if include_args:
                try:
                    args_hash = str(hash(repr(args) + repr(kwargs)))[:8]
                except Exception:
                    args_hash = "unhashable"

            def collect() -> PerformanceMetrics:
                end_time = time.time()
                return PerformanceMetrics(
                    start_time=start_time,
                    end_time=end_time,
                    duration=end_time - start_time,
                    cpu_usage_start=cpu_start,
                    cpu_usage_end=process.cpu_percent(),
                    memory_usage_start=memory_start,
                    memory_usage_end=process.memory_info().rss,
                    function_name=func.__name__,
                    args_hash=args_hash
                )

            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    f"Function {func.__name__} failed",
                    performance_metrics=collect().to_dict(),
                    exception=str(e)
                )
                raise

            logger.performance(
                f"Function {func.__name__} completed",
                performance_metrics=collect().to_dict()
            )
            return result

        return wrapper
    return decorator


class EnhancedLogger:
    """Logger with structured, category-tagged records."""

    def __init__(self, name: str, default_category: Optional[LogCategory] = None):
        self.logger = logging.getLogger(name)
        self.default_category = default_category

    def _log(
        self,
        level: int,
        message: str,
        category: Optional[LogCategory] = None,
        performance_metrics: Optional[Dict[str, Any]] = None,
        portfolio_context: Optional[Dict[str, Any]] = None,
        error_context: Optional[Dict[str, Any]] = None,
        **extra_fields
    ):
        if not self.logger.isEnabledFor(level):
            return

        record = self.logger.makeRecord(
            name=self.logger.name,
            level=level,
            fn="",
            lno=0,
            msg=message,
            args=(),
            exc_info=None
        )

        if category or self.default_category:
            record.category = (category or self.default_category).value

        if performance_metrics:
            record.performance_metrics = performance_metrics

        if portfolio_context:
            record.portfolio_context = portfolio_context

        if error_context:
            record.error_context = error_context

        if extra_fields:
            record.extra_fields = extra_fields

        self.logger.handle(record)

    def trace(self, message: str, **kwargs):
        self._log(LogLevel.TRACE.value, message, **kwargs)

    def debug(self, message: str, **kwargs):
        self._log(LogLevel.DEBUG.value, message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log(LogLevel.INFO.value, message, **kwargs)

    def audit(self, message: str, **kwargs):
        """Log audit level message."""
        self._log(LogLevel.AUDIT.value, message, category=LogCategory.AUDIT, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log(LogLevel.WARNING.value, message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log(LogLevel.ERROR.value, message, category=LogCategory.ERROR, **kwargs)

    def critical(self, message: str, **kwargs):
        self._log(LogLevel.CRITICAL.value, message, category=LogCategory.ERROR, **kwargs)

    def ledger(self, message: str, **kwargs):
        """Log a position change."""
        self._log(LogLevel.LEDGER.value, message, category=LogCategory.LEDGER, **kwargs)

    def performance(self, message: str, **kwargs):
        """Log performance metrics."""
        self._log(LogLevel.PERFORMANCE.value, message, category=LogCategory.PERFORMANCE, **kwargs)

    def log_transaction(
        self,
        transaction_id: str,
        transaction_type: str,
        symbol: str,
        quantity: Union[int, float, Decimal],
        price: Union[float, Decimal],
        user_id: Optional[str] = None,
        **metadata
    ):
        """Log a transaction applied to the ledger."""
        portfolio_context = {
            'transaction_id': transaction_id,
            'type': transaction_type,
            'symbol': symbol,
            'quantity': str(quantity),
            'price': str(price),
            'user_id': user_id,
            'applied_at': _utc_now_iso(),
            **metadata
        }

        self.ledger(
            f"Transaction applied: {transaction_type} {quantity} {symbol} @ {price}",
            portfolio_context=portfolio_context
        )

    def log_portfolio_update(
        self,
        user_id: str,
        total_value: Union[float, Decimal],
        total_pnl: Union[float, Decimal],
        positions_count: Optional[int] = None,
        **metadata
    ):
        """Log portfolio value update."""
        portfolio_context = {
            'user_id': user_id,
            'total_value': str(total_value),
            'total_pnl': str(total_pnl),
            'positions_count': positions_count,
            'update_time': _utc_now_iso(),
            **metadata
        }

        self.info(
            f"Portfolio update for {user_id}: ${total_value:.2f} (PnL: ${total_pnl:.2f})",
            category=LogCategory.PORTFOLIO,
            portfolio_context=portfolio_context
        )

    def log_risk_event(
        self,
        event_type: str,
        severity: str,
        description: str,
        affected_positions: Optional[List[str]] = None,
        **metadata
    ):
        """Log risk events."""
        portfolio_context = {
            'event_type': event_type,
            'severity': severity,
            'description': description,
            'affected_positions': affected_positions or [],
            'event_time': _utc_now_iso(),
            **metadata
        }

        severity_map = {
            'low': LogLevel.INFO.value,
            'medium': LogLevel.WARNING.value,
            'high': LogLevel.ERROR.value,
            'critical': LogLevel.CRITICAL.value
        }

        level = severity_map.get(severity.lower(), LogLevel.WARNING.value)

        self._log(
            level,
            f"Risk event: {event_type} - {description}",
            category=LogCategory.RISK,
            portfolio_context=portfolio_context
        )

    def log_error_with_context(
        self,
        error: Exception,
        context: Dict[str, Any],
        severity: str = "error"
    ):
        """Log error with additional context."""
        error_context = {
            'error_type': type(error).__name__,
            'error_message': str(error),
            'context': context,
            'timestamp': _utc_now_iso()
        }

        level_map = {
            'warning': LogLevel.WARNING.value,
            'error': LogLevel.ERROR.value,
            'critical': LogLevel.CRITICAL.value
        }

        level = level_map.get(severity.lower(), LogLevel.ERROR.value)

        self._log(
            level,
            f"Error occurred: {error}",
            category=LogCategory.ERROR,
            error_context=error_context
        )
