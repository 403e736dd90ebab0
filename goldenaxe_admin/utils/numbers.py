"""
Number helpers shared by probes, rules and sync history
"""
import math
from typing import Union

Number = Union[int, float]


def round_half_up(value: Number, ndigits: int = 0) -> Number:
    """
    Round .5 away from zero for positives (dashboard convention)
    Python's round() is banker's rounding: round(0.5) == 0
    """
    factor = 10 ** ndigits
    rounded = math.floor(value * factor + 0.5) / factor
    return int(rounded) if ndigits == 0 else rounded


def format_value(value: Number) -> str:
    """1200.0 -> '1200', 99.5 -> '99.5'"""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def connection_usage_percent(active: int, idle: int, max_connections: int) -> int:
    """(active + idle) / max as a whole percentage, 0 when max is unknown"""
    if max_connections <= 0:
        return 0
    return round_half_up((active + idle) / max_connections * 100)


def cache_hit_ratio(blks_hit: int, blks_read: int) -> float:
    """Hit ratio in percent with 2 decimals - no reads yet counts as a perfect cache"""
    total = blks_hit + blks_read
    if total == 0:
        return 100.0
    return float(round_half_up(blks_hit / total * 100, 2))
