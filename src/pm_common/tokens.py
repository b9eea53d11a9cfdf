"""Integer arithmetic utilities for token amounts and fee rates.

All token amounts are int. Fee rates are int basis points (1 bp = 0.01%).
Fractions only appear at the API boundary and are converted immediately.
"""

BPS_DENOMINATOR = 10_000


def fraction_to_bps(fraction: float) -> int:
    """Convert a fee fraction to basis points: 0.02 -> 200."""
    return int(round(fraction * BPS_DENOMINATOR))


def bps_to_fraction(bps: int) -> float:
    """Convert basis points back to a fraction: 250 -> 0.025."""
    return bps / BPS_DENOMINATOR


def bps_to_percent(bps: int) -> float:
    """Basis points as a display percentage: 250 -> 2.5."""
    return bps / 100


def calculate_fee(pool: int, fee_bps: int) -> int:
    """Fee on a token pool, rounded half-up to the nearest token.

    fee = round(pool * fee_bps / 10000)
    Integer form: (pool * fee_bps + 5000) // 10000
    """
    if pool == 0 or fee_bps == 0:
        return 0
    return (pool * fee_bps + BPS_DENOMINATOR // 2) // BPS_DENOMINATOR


def pro_rata_floor(amount: int, part: int, whole: int) -> int:
    """floor(amount * part / whole) without going through float."""
    if whole <= 0:
        raise ValueError(f"whole must be positive, got {whole}")
    return (amount * part) // whole


def tokens_to_display(tokens: int) -> str:
    """Thousands-separated display string: 12500 -> '12,500 tokens'."""
    unit = "token" if abs(tokens) == 1 else "tokens"
    return f"{tokens:,} {unit}"
