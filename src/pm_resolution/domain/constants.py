"""Resolution engine constants."""

# Platform cut of every resolved pool, in basis points (2%)
HOUSE_FEE_BPS = 200

MIN_CANCELLATION_REASON_LENGTH = 10
