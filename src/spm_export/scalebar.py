"""
Scale-bar sizing.

The bar spans roughly 42% of the field width, snapped to a "nice" length in
the nearest SI decade below (1, 2, 3, 4, 5, 10, 20, ... 500 x 10^3k).
"""

import math
from dataclasses import dataclass

from .units import format_for_power10

SCALEBAR_FRACTION = 0.42
NICE_SIZES = (
    1.0, 2.0, 3.0, 4.0, 5.0,
    10.0, 20.0, 30.0, 40.0, 50.0,
    100.0, 200.0, 300.0, 400.0, 500.0,
)


@dataclass(frozen=True)
class ScaleBar:
    length: float
    label: str
    fraction: float


def compute_scalebar(real_width: float, unit: str = "m") -> ScaleBar:
    """Choose the scale-bar length for a field `real_width` wide.

    Returns the physical length, its formatted label and the length as a
    fraction of `real_width`. Raises ValueError for non-positive widths.
    """
    if not (real_width > 0 and math.isfinite(real_width)):
        raise ValueError("real_width must be a positive finite number, got %r" % (real_width,))

    vmax = SCALEBAR_FRACTION * real_width
    power10 = 3 * int(math.floor(math.log10(vmax) / 3.0))
    base = 10.0 ** (power10 + 1e-14)
    x = vmax / base

    i = 1
    while i < len(NICE_SIZES) and x >= NICE_SIZES[i]:
        i += 1
    length = NICE_SIZES[i - 1] * base

    label = format_for_power10(unit, power10).format(length)
    return ScaleBar(length=length, label=label, fraction=length / real_width)
