# schemas/__init__.py

from .bean_schema import BeanSchema
from .audit_log_schema import AuditLogSchema

__all__ = [
    'BeanSchema',
    'AuditLogSchema',
]
