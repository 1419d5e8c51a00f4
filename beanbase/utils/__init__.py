from .filters import exclude_data, is_assoc, strip_data

__all__ = ["is_assoc", "strip_data", "exclude_data"]
