from .protocols import BeanStore
from .store import SQLAlchemyBeanStore

__all__ = ["BeanStore", "SQLAlchemyBeanStore"]
