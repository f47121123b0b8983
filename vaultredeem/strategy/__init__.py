from .fee_tiers import FeeTierResolver, ResolutionMode, apply_fee, build_tiers, fee_percent_text, resolve_fee_tier

__all__ = ["FeeTierResolver", "ResolutionMode", "apply_fee", "build_tiers", "fee_percent_text", "resolve_fee_tier"]
