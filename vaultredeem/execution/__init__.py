from .errors import is_user_rejection, normalize_error
from .executor import RedeemExecutor

__all__ = ["is_user_rejection", "normalize_error", "RedeemExecutor"]
