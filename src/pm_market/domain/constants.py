"""Market-level fee bounds (basis points)."""

CREATOR_FEE_MIN_BPS = 100   # 1%
CREATOR_FEE_MAX_BPS = 500   # 5%
DEFAULT_CREATOR_FEE_BPS = 200

MIN_OPTIONS = 2
