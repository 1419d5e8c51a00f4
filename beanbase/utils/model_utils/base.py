from __future__ import annotations

import json
from typing import Any, Dict, Optional

_SENSITIVE_TOKENS = ("password", "secret", "token", "otp", "key", "passcode", "credential")


def _serialize_value(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


def _sanitize_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    sanitized: Dict[str, Any] = {}
    for key, value in data.items():
        lower = str(key).lower()
        if any(token in lower for token in _SENSITIVE_TOKENS):
            sanitized[key] = "***REDACTED***"
        else:
            sanitized[key] = _serialize_value(value)
    return sanitized


def _bean_identity(bean: Any) -> Optional[str]:
    bean_type = getattr(bean, "bean_type", None) or type(bean).__name__.lower()
    bean_id = getattr(bean, "id", None)
    return f"{bean_type}#{bean_id}" if bean_id is not None else f"{bean_type}#new"


def _build_context(bean_type: Optional[str], action: str, context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    built: Dict[str, Any] = {"bean_type": bean_type, "action": action}
    if context:
        for key, value in context.items():
            built[f"ctx_{key}"] = value
    return built


def _is_empty(value: Any) -> bool:
    """Loose emptiness: None, False, 0, 0.0, "", "0" and empty containers. A blank "  " is not empty."""
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value in ("", "0")
    if isinstance(value, (int, float)):
        return value == 0
    if isinstance(value, (list, tuple, set, dict)):
        return not value
    return False


def _is_storable(value: Any) -> bool:
    """True when ``value`` survives the JSON column."""
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return False
    return True
