"""Time series algebra.

Public API:
- TimeSeries: immutable (timestamp, value) sequence with arithmetic,
  moving averages and as-of filters
- align: intersect two series on their shared timestamps
"""

from .join import align
from .series import EPOCH, TimeSeries

__all__ = [
    "EPOCH",
    "TimeSeries",
    "align",
]
