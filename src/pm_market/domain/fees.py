"""Creator fee validation shared by market admin and resolution.

Fees arrive as fractions on the wire (0.02) and are stored as basis points.
The fraction itself is range-checked before rounding, so 0.00996 is
rejected rather than rounded up to 100 bps.
"""

import math

from src.pm_common.errors import InvalidCreatorFeeError
from src.pm_common.tokens import BPS_DENOMINATOR, bps_to_fraction, fraction_to_bps
from src.pm_market.domain.constants import CREATOR_FEE_MAX_BPS, CREATOR_FEE_MIN_BPS


def validate_creator_fee_bps(fee_bps: int) -> int:
    if not (CREATOR_FEE_MIN_BPS <= fee_bps <= CREATOR_FEE_MAX_BPS):
        raise InvalidCreatorFeeError(fee_bps)
    return fee_bps


def validate_creator_fee_fraction(fraction: float) -> int:
    """Validate a fee fraction and return it in basis points.

    Raises:
        InvalidCreatorFeeError: NaN, infinite, or outside [0.01, 0.05].
    """
    if not math.isfinite(fraction):
        raise InvalidCreatorFeeError(fraction)
    low = bps_to_fraction(CREATOR_FEE_MIN_BPS)
    high = bps_to_fraction(CREATOR_FEE_MAX_BPS)
    if not (low <= fraction <= high):
        raise InvalidCreatorFeeError(fraction * BPS_DENOMINATOR)
    return validate_creator_fee_bps(fraction_to_bps(fraction))
