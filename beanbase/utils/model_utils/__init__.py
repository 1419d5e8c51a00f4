"""
Helpers shared by the bean store and the bean facade: payload sanitising for
logs and audit rows, and the audit trail itself.
"""

from . import base  # re-export to make base helpers discoverable.
from .audit_log_utils import list_events, record_event

__all__ = ["base", "record_event", "list_events"]
