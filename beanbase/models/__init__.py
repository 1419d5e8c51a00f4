from .AuditLog import AuditLog
from .Bean import Bean, BeanLink
from .enumerations import CrudEvent, CrudOperation, LinkKind, Relation, RelationErrorType, ValidationErrorType

__all__ = [
    "AuditLog",
    "Bean",
    "BeanLink",
    "CrudEvent",
    "CrudOperation",
    "LinkKind",
    "Relation",
    "RelationErrorType",
    "ValidationErrorType",
]
