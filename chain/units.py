from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_DECIMALS = 18


def _parse_decimals(decimals: Any) -> int:
    if decimals is None or decimals == "":
        return DEFAULT_DECIMALS
    try:
        return int(str(decimals).strip())
    except (TypeError, ValueError):
        return DEFAULT_DECIMALS


def normalize(value: Any, decimals: Any = DEFAULT_DECIMALS) -> float:
    """
    Convert an integer-string fixed-point amount into a float.

    The whole and fractional parts are split with integer arithmetic and joined
    as text before the single float conversion, so huge supplies do not lose
    precision in the split. Malformed input yields 0.0 and a warning.
    """
    try:
        raw = int(str(value).strip()) if value not in (None, "") else 0
        places = _parse_decimals(decimals)
        if raw < 0:
            raise ValueError(f"negative amount: {value}")
        if places < 0:
            raise ValueError(f"negative decimals: {decimals}")
        if places == 0:
            return float(raw)

        divisor = 10 ** places
        whole, frac = divmod(raw, divisor)
        return float(f"{whole}.{str(frac).rjust(places, '0')}")
    except (TypeError, ValueError, OverflowError) as e:
        logger.warning("normalize failed value=%r decimals=%r: %s", value, decimals, e)
        return 0.0


def wei_to_gwei(value: Any) -> float:
    return normalize(value, 9)
