"""
Half-up rounding for percentages and averages

Python's round() is banker's rounding; progress and scores round .5 up.
"""
import math


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percentage(part: int, whole: int) -> int:
    """round(100 * part / whole), half-up, 0 when whole is 0"""
    if whole <= 0:
        return 0
    return (200 * part + whole) // (2 * whole)
