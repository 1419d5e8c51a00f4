"""
Categorised logging for the bean layer.

Usage:
    from beanbase.utils.logging_utils import get_logger, log_context
    log = get_logger("crud")
    with log_context(bean_type="user", action="save"):
        log.info("saved user#3")
"""

from .manager import (
    CATEGORIES,
    ContextAwareFormatter,
    LoggerManager,
    get_log_context,
    get_logger,
    init_logger,
    log_context,
)

__all__ = [
    "CATEGORIES",
    "ContextAwareFormatter",
    "LoggerManager",
    "get_logger",
    "get_log_context",
    "log_context",
    "init_logger",
]
