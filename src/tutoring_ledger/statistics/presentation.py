from __future__ import annotations


def nice_ceiling(value: int) -> int:
    """Round a chart maximum up to the nearest {1, 2, 5} x 10^n.

    0 maps to 1 so an empty chart still has a usable axis.
    """

    value = int(value)
    if value <= 1:
        return 1

    magnitude = 10 ** (len(str(value)) - 1)
    for step in (1, 2, 5):
        if value <= step * magnitude:
            return step * magnitude
    return 10 * magnitude


def chart_max(values) -> int:
    return nice_ceiling(max([0, *values]))
