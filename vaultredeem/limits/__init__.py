from .preflight import LimitPreflight

__all__ = ["LimitPreflight"]
