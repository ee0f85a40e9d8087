"""
Centralized Logging Configuration for the POM resolver
======================================================

Provides unified logging across components with structured JSON output for
log files and a compact console format.

Features:
- Structured JSON logging with metadata
- Component loggers accepting structured keyword fields
- Automatic log rotation
"""
import json
import logging
import logging.handlers
import os
import sys
import threading
import time
from collections import defaultdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

ROOT_LOGGER_NAME = "pomresolver"


class StructuredFormatter(logging.Formatter):
    """Formatter that renders records as single-line JSON documents."""

    def __init__(self):
        super().__init__()
        self.hostname = os.environ.get('HOSTNAME', 'localhost')

    def format(self, record):
        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
            'hostname': self.hostname,
            'process_id': os.getpid(),
            'thread': record.threadName,
        }

        if record.exc_info:
            log_entry['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': self.formatException(record.exc_info)
            }

        extra_fields = getattr(record, 'extra_fields', None)
        if isinstance(extra_fields, dict):
            for key, value in extra_fields.items():
                try:
                    json.dumps(value)
                    log_entry[key] = value
                except (TypeError, ValueError):
                    log_entry[key] = str(value)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class ComponentLogger:
    """Logger wrapper for a component; keyword arguments become structured fields."""

    def __init__(self, component_name: str):
        self.component_name = component_name
        self.logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{component_name}")
        self.log_counts = defaultdict(int)
        self._lock = threading.Lock()

    def _log(self, level: str, message: str, exc_info=None, **extra):
        with self._lock:
            self.log_counts[level] += 1
        fields = {'component': self.component_name, **extra}
        if fields.keys() - {'component'}:
            rendered = " ".join(f"{key}={value}" for key, value in extra.items())
            message = f"{message} [{rendered}]"
        getattr(self.logger, level)(message, exc_info=exc_info, extra={'extra_fields': fields})

    def debug(self, message: str, **extra):
        self._log('debug', message, **extra)

    def info(self, message: str, **extra):
        self._log('info', message, **extra)

    def warning(self, message: str, **extra):
        self._log('warning', message, **extra)

    def error(self, message: str, exc_info=None, **extra):
        self._log('error', message, exc_info=exc_info, **extra)

    def critical(self, message: str, **extra):
        self._log('critical', message, **extra)

    def get_stats(self) -> Dict[str, Any]:
        """Get logging statistics for this component."""
        with self._lock:
            return {
                'component': self.component_name,
                'log_counts': dict(self.log_counts),
                'total_logs': sum(self.log_counts.values()),
            }


_component_loggers: Dict[str, ComponentLogger] = {}
_registry_lock = threading.Lock()


def setup_logging(
    log_level: str = "INFO",
    log_dir: Optional[str] = "logs",
    component: str = "main",
    enable_console: bool = True,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> ComponentLogger:
    """
    Configure the ``pomresolver`` logger hierarchy.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for JSON log files; ``None`` disables file output
        component: Component name used for log file names
        enable_console: Enable console output
        max_file_size: Maximum file size before rotation
        backup_count: Number of rotated files to keep

    Returns:
        ComponentLogger for ``component``
    """
    level = getattr(logging, log_level.upper())
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(
            '%(asctime)s [%(levelname)8s] %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        root_logger.addHandler(console_handler)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        formatter = StructuredFormatter()

        main_handler = logging.handlers.RotatingFileHandler(
            log_path / f"{component}-main.log",
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding='utf-8'
        )
        main_handler.setLevel(level)
        main_handler.setFormatter(formatter)
        root_logger.addHandler(main_handler)

        error_handler = logging.handlers.RotatingFileHandler(
            log_path / f"{component}-errors.log",
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding='utf-8'
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(formatter)
        root_logger.addHandler(error_handler)

    # Suppress noisy transport loggers
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)

    return get_logger(component)


def get_logger(component: str) -> ComponentLogger:
    """Get the shared logger for a specific component."""
    with _registry_lock:
        logger = _component_loggers.get(component)
        if logger is None:
            logger = ComponentLogger(component)
            _component_loggers[component] = logger
        return logger


def get_all_component_stats() -> Dict[str, Any]:
    """Get statistics for every component logger created so far."""
    with _registry_lock:
        loggers = list(_component_loggers.values())
    return {
        'timestamp': time.time(),
        'components': {logger.component_name: logger.get_stats() for logger in loggers},
    }
