from .log import get_logger
from .telemetry import RedeemJournal

__all__ = ["get_logger", "RedeemJournal"]
