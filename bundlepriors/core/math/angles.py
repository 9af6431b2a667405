"""Angle utilities."""

import numpy as np


def diff_between_angles(a: float, b: float) -> float:
    """Signed shortest difference ``a - b`` mapped into (-pi, pi].

    Only a single 2*pi correction is applied, so both inputs are expected
    to already lie in a wrapped range such as [-pi, pi].
    """
    d = a - b
    if d > np.pi:
        return d - 2 * np.pi
    elif d <= -np.pi:
        return d + 2 * np.pi
    return d
