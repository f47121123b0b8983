from .planner import RedeemPlanner

__all__ = ["RedeemPlanner"]
