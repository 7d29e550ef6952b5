"""Utility functions that should have been provided by a standard library"""

from math import sqrt
from typing import Sequence

import numpy as np


class MovingStatistic:
    """A moving average

    Maintains average, variance, min and max of a list of values online
    (Welford's algorithm)
    """

    def __init__(self):
        self.mean = 0.0
        self.num = 0
        self.max = float("-inf")
        self.min = float("+inf")
        self._sum_squared_diff = 0.0

    def add(self, val: float):
        """Add a value to sequence that statistics are being maintained for

        :param val: the new value
        """
        self.num += 1

        delta = val - self.mean
        self.mean = self.mean + delta / self.num
        self._sum_squared_diff += delta * (val - self.mean)

        self.max = max(self.max, val)
        self.min = min(self.min, val)

    @property
    def var(self) -> float:
        """The (population) variance of the values so far, 0 if fewer than 2"""
        if self.num < 2:
            return 0.0
        return self._sum_squared_diff / self.num

    @property
    def std(self) -> float:
        """The (population) standard deviation of the values so far"""
        return sqrt(self.var)

    def __repr__(self) -> str:
        return "MovingStatistic(mean=%s, std=%s, min/max=%s/%s, n=%s)" % (
            self.mean,
            self.std,
            self.min,
            self.max,
            self.num,
        )


def normalize_belief(weights: Sequence[float]) -> np.ndarray:
    """Normalizes non-negative ``weights`` into a probability distribution

    Assumes (and will check) that all weights are non-negative and that at
    least one is positive

    :param weights: unnormalized probabilities
    :return: ``weights / sum(weights)``
    """
    w = np.asarray(weights, dtype=np.float64)
    assert w.ndim == 1 and np.all(w >= 0) and w.sum() > 0

    return w / w.sum()


def uniform_belief(num_states: int) -> np.ndarray:
    """Returns the uniform distribution over ``num_states`` states"""
    assert num_states > 0
    return np.full(num_states, 1.0 / num_states)


def point_belief(state: int, num_states: int) -> np.ndarray:
    """Returns the distribution with all mass on ``state``"""
    assert 0 <= state < num_states

    b = np.zeros(num_states)
    b[state] = 1.0
    return b
