from __future__ import annotations

import json
import logging
import os
from contextlib import contextmanager
from contextvars import ContextVar
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from flask import Flask

# One file per area of the bean layer.
CATEGORIES: Dict[str, str] = {
    "app": "application.log",
    "crud": "crud.log",
    "relation": "relation.log",
    "validation": "validation.log",
    "store": "store.log",
    "audit": "audit.log",
}

_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

_bean_context: ContextVar[Dict[str, Any]] = ContextVar("beanbase_log_context", default={})


def get_log_context() -> Dict[str, Any]:
    return dict(_bean_context.get())


@contextmanager
def log_context(**fields: Any):
    """Bind ``bean_type=``, ``action=`` and similar fields to every record logged inside the block."""

    merged = {**_bean_context.get(), **{k: v for k, v in fields.items() if v is not None}}
    token = _bean_context.set(merged)
    try:
        yield
    finally:
        _bean_context.reset(token)


class ContextAwareFormatter(logging.Formatter):
    """Text or JSON lines carrying the active ``log_context`` fields."""

    def __init__(self, *, json_format: bool = False) -> None:
        super().__init__("[%(asctime)s] %(levelname)s %(name)s - %(message)s")
        self.json_format = json_format

    def format(self, record: logging.LogRecord) -> str:
        context = _bean_context.get()
        if not self.json_format:
            line = super().format(record)
            if context:
                line += " | " + " ".join(f"{key}={context[key]}" for key in sorted(context))
            return line

        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update((k, v) for k, v in vars(record).items() if k not in _STANDARD_ATTRS and not k.startswith("_"))
        if context:
            payload["context"] = dict(context)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class LoggerManager:
    """Hands out ``beanbase.<category>`` loggers, each writing to its own rotating file."""

    def __init__(
        self,
        base_dir: Optional[str] = None,
        *,
        level: int = logging.INFO,
        category_levels: Optional[Mapping[str, int]] = None,
        console: bool = True,
        json_format: bool = False,
        rotation_when: str = "midnight",
        backup_count: int = 7,
    ) -> None:
        self.base_dir = Path(base_dir or os.getenv("LOGGING_BASE_DIR", "/tmp/beanbase_logs"))
        self.level = level
        self.category_levels = {name.lower(): value for name, value in (category_levels or {}).items()}
        self.console = console
        self.json_format = json_format
        self.rotation_when = rotation_when
        self.backup_count = backup_count
        self._handlers: Dict[str, list] = {}

    def get_logger(self, category: str) -> logging.Logger:
        name = category.lower()
        logger = logging.getLogger(f"beanbase.{name}")
        if name in self._handlers:
            return logger

        level = self.category_levels.get(name, self.level)
        logger.setLevel(level)
        logger.propagate = False

        self.base_dir.mkdir(parents=True, exist_ok=True)
        handlers = [
            TimedRotatingFileHandler(
                self.base_dir / CATEGORIES.get(name, f"{name}.log"),
                when=self.rotation_when,
                backupCount=self.backup_count,
                encoding="utf-8",
                utc=True,
                delay=True,
            )
        ]
        if self.console:
            handlers.append(logging.StreamHandler())
        for handler in handlers:
            handler.setLevel(level)
            handler.setFormatter(ContextAwareFormatter(json_format=self.json_format))
            logger.addHandler(handler)

        self._handlers[name] = handlers
        return logger

    def shutdown(self) -> None:
        for name, handlers in self._handlers.items():
            logger = logging.getLogger(f"beanbase.{name}")
            for handler in handlers:
                logger.removeHandler(handler)
                handler.close()
        self._handlers.clear()


def _level(value: Any, default: int = logging.INFO) -> int:
    if isinstance(value, int):
        return value
    return getattr(logging, str(value or "").upper(), default)


_manager: Optional[LoggerManager] = None


def init_logger(app: Flask) -> LoggerManager:
    """Rebuild the shared manager from the ``LOGGING_*`` settings of ``app``."""

    global _manager
    if _manager is not None:
        _manager.shutdown()
    _manager = LoggerManager(
        app.config.get("LOGGING_BASE_DIR"),
        level=_level(app.config.get("LOGGING_DEFAULT_LEVEL")),
        category_levels={k: _level(v) for k, v in (app.config.get("LOGGING_CATEGORY_LEVELS") or {}).items()},
        console=app.config.get("LOGGING_CONSOLE_ENABLED", True),
        json_format=app.config.get("LOGGING_JSON_FORMAT", False),
        rotation_when=app.config.get("LOGGING_ROTATION_WHEN", "midnight"),
        backup_count=app.config.get("LOGGING_ROTATION_BACKUP_COUNT", 7),
    )
    return _manager


def _current_manager() -> LoggerManager:
    global _manager
    if _manager is None:
        _manager = LoggerManager(
            level=_level(os.getenv("LOGGING_DEFAULT_LEVEL")),
            console=os.getenv("LOGGING_CONSOLE_ENABLED", "true").lower() in ("1", "true", "yes", "on"),
        )
    return _manager


class _CategoryLogger:
    """Module-level handle resolved on every call, so ``init_logger`` can swap the manager later."""

    def __init__(self, category: str) -> None:
        self.category = category

    def __getattr__(self, name: str) -> Any:
        return getattr(_current_manager().get_logger(self.category), name)


def get_logger(category: str) -> logging.Logger:
    return _CategoryLogger(category)  # type: ignore[return-value]
