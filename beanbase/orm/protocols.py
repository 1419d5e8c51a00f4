"""Capability contract for the store behind the bean helpers.

``BeanBase`` only talks to its store through this protocol, so tests can
swap in an in-memory fake for the SQLAlchemy implementation.
"""

from typing import Any, ContextManager, Mapping, Optional, Protocol

from beanbase.models.Bean import Bean


class BeanStore(Protocol):
    def dispense(self, bean_type: str) -> Bean: ...

    def load(self, bean_type: str, bean_id: Any) -> Bean:
        """Return the bean, or an empty bean without identity when missing."""
        ...

    def store(self, bean: Bean) -> Bean: ...

    def trash(self, bean: Bean) -> None: ...

    def find_one(self, bean_type: str, where: Mapping[str, Any]) -> Optional[Bean]: ...

    def related_one(self, bean: Bean, bean_type: str) -> Optional[Bean]: ...

    def are_related(self, first: Bean, second: Bean) -> bool: ...

    def associate(self, first: Bean, second: Bean) -> Any: ...

    def transaction(self) -> ContextManager[None]: ...
