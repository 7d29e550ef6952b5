"""The value function of a POMDP policy: a set of action-tagged alpha vectors

The value of a belief ``b`` is the upper envelope of the linear functions
described by the vectors, ``V(b) = max_i alpha_i . b``, which is piecewise
linear and convex over the belief simplex.

Every query computes all inner products, i.e. costs O(number of vectors x
number of states). For (very) large vector sets that is the dominant cost of
running a policy.
"""
from __future__ import annotations

from math import isfinite
from numbers import Integral
from typing import Dict, Iterable, List, NamedTuple, Sequence, Tuple

import numpy as np

from alpha_vector_policy.errors import (
    DimensionMismatchError,
    InvalidBeliefError,
    MalformedPolicyError,
)
from alpha_vector_policy.types import ActionTag, Belief

TIE_TOLERANCE = 1e-9
"""Relative tolerance under which two inner products are considered equal"""
BELIEF_SUM_TOLERANCE = 1e-6
"""Absolute tolerance on the sum (and non-negativity) of a belief"""


class AlphaVector(NamedTuple):
    """A linear functional over beliefs tagged with the (planner) action at its root"""

    action: ActionTag
    """Zero-based index into the planner's action enumeration"""
    values: Tuple[float, ...]
    """One value per state"""


def tied(value: float, best: float, tolerance: float = TIE_TOLERANCE) -> bool:
    """Whether ``value`` is equal to ``best`` within (relative) ``tolerance``

    The tolerance is scaled with the magnitude of ``best``, but never below an
    absolute ``tolerance``, so that ties around 0 are still detected.

    :param value: some inner product
    :param best: the largest inner product
    :param tolerance: relative tolerance, defaults to :data:`TIE_TOLERANCE`
    :return: ``True`` if ``value`` is considered equal to ``best``
    """
    assert tolerance >= 0
    return best - value <= tolerance * max(1.0, abs(best))


def check_belief(
    belief: Belief, num_states: int, tolerance: float = BELIEF_SUM_TOLERANCE
) -> np.ndarray:
    """Checks that ``belief`` is a probability distribution over ``num_states``

    Raises :class:`~alpha_vector_policy.errors.DimensionMismatchError` if the
    belief has the wrong length and
    :class:`~alpha_vector_policy.errors.InvalidBeliefError` if its entries are
    not finite, (significantly) negative or do not sum to 1 within
    ``tolerance``.

    :param belief: the belief to check
    :param num_states: the expected number of states
    :param tolerance: absolute tolerance, defaults to :data:`BELIEF_SUM_TOLERANCE`
    :return: ``belief`` as a float array
    """
    b = as_belief_array(belief, num_states)

    if not np.all(np.isfinite(b)):
        raise InvalidBeliefError(f"Belief contains non-finite entries: {b}")
    if np.any(b < -tolerance):
        raise InvalidBeliefError(f"Belief contains negative probabilities: {b}")

    total = float(b.sum())
    if abs(total - 1.0) > tolerance:
        raise InvalidBeliefError(f"Belief sums to {total}, not 1")

    return b


def as_belief_array(belief: Belief, num_states: int) -> np.ndarray:
    """Converts ``belief`` into a 1-d float64 array of length ``num_states``

    Does not copy if ``belief`` already is such an array, and never modifies it.

    :param belief: the belief
    :param num_states: the expected length
    :return: the belief as a numpy array
    """
    b = np.asarray(belief, dtype=np.float64)

    if b.ndim != 1:
        raise DimensionMismatchError(num_states, b.size)
    if b.shape[0] != num_states:
        raise DimensionMismatchError(num_states, b.shape[0])

    return b


class AlphaVectorSet:
    """An immutable, ordered and non-empty collection of alpha vectors

    The order of the vectors is the order in which they were loaded, and
    decides ties: when multiple vectors are optimal for a belief, the first
    one wins. The vectors are stored as a read-only ``(m, n)`` matrix.
    """

    def __init__(self, alpha_vectors: Iterable[AlphaVector]):
        """Creates the set out of ``alpha_vectors``

        Raises :class:`~alpha_vector_policy.errors.MalformedPolicyError` if
        there are no vectors, if not all vectors have the same (positive)
        length, or if any action tag is negative or not an integer, or any
        value is not finite.

        :param alpha_vectors: the (action, values) pairs, in order
        """
        vectors: List[AlphaVector] = []
        for i, (a, vals) in enumerate(alpha_vectors):
            if not isinstance(a, Integral):
                raise MalformedPolicyError(None, f"vector {i} has non-integer action {a!r}")
            vectors.append(AlphaVector(int(a), tuple(float(v) for v in vals)))

        if not vectors:
            raise MalformedPolicyError(None, "contains no alpha vectors")

        num_states = len(vectors[0].values)
        if num_states <= 0:
            raise MalformedPolicyError(None, "alpha vectors must have positive length")

        for i, vector in enumerate(vectors):
            if len(vector.values) != num_states:
                raise MalformedPolicyError(
                    None,
                    f"vector {i} has {len(vector.values)} values, expected {num_states}",
                )
            if vector.action < 0:
                raise MalformedPolicyError(
                    None, f"vector {i} has negative action {vector.action}"
                )
            if not all(isfinite(v) for v in vector.values):
                raise MalformedPolicyError(None, f"vector {i} has non-finite values")

        self._vectors: Tuple[AlphaVector, ...] = tuple(vectors)

        self._matrix = np.array([v.values for v in vectors], dtype=np.float64)
        self._matrix.setflags(write=False)
        self._action_tags = np.array([v.action for v in vectors], dtype=np.int64)
        self._action_tags.setflags(write=False)

    @property
    def num_states(self) -> int:
        """The length ``n`` of each alpha vector"""
        return self._matrix.shape[1]

    @property
    def num_actions(self) -> int:
        """The number of planner actions referenced, i.e. largest tag + 1"""
        return int(self._action_tags.max()) + 1

    @property
    def matrix(self) -> np.ndarray:
        """The (read-only) ``number of vectors x number of states`` matrix"""
        return self._matrix

    @property
    def action_tags(self) -> np.ndarray:
        """The (read-only) action tag of each vector, in order"""
        return self._action_tags

    @property
    def vectors(self) -> Tuple[AlphaVector, ...]:
        """The alpha vectors, in load order"""
        return self._vectors

    def __len__(self) -> int:
        return len(self._vectors)

    def __iter__(self):
        return iter(self._vectors)

    def __getitem__(self, i: int) -> AlphaVector:
        return self._vectors[i]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AlphaVectorSet):
            return NotImplemented
        return self._vectors == other._vectors

    def __repr__(self) -> str:
        return f"AlphaVectorSet({len(self)} vectors, {self.num_states} states)"

    def inner_products(self, belief: Belief) -> np.ndarray:
        """Returns the inner product of every vector with ``belief``

        Raises :class:`~alpha_vector_policy.errors.DimensionMismatchError` if
        ``belief`` does not have :attr:`num_states` entries

        :param belief: a distribution over the states
        :return: array of ``len(self)`` values
        """
        return self._matrix.dot(as_belief_array(belief, self.num_states))

    def argmax_vector(self, belief: Belief) -> Tuple[ActionTag, int]:
        """Returns the action tag and position of the best vector at ``belief``

        Vectors whose inner product is within :data:`TIE_TOLERANCE` of the
        maximum are considered equal, in which case the first is returned.

        :param belief: a distribution over the states
        :return: (action tag, index) of the maximizing vector
        """
        utilities = self.inner_products(belief)
        index = first_tied_index(utilities)
        return int(self._action_tags[index]), index

    def value(self, belief: Belief) -> float:
        """The value of ``belief``: the largest inner product of any vector with it

        :param belief: a distribution over the states
        :return: ``max_i alpha_i . belief``
        """
        return float(self.inner_products(belief).max())

    def action_values(self, belief: Belief) -> Dict[ActionTag, float]:
        """Returns the best inner product per action tag

        Actions without any vector are not in the result

        :param belief: a distribution over the states
        :return: tag -> ``max_{i: tag_i = tag} alpha_i . belief``
        """
        utilities = self.inner_products(belief)

        values: Dict[ActionTag, float] = {}
        for tag, u in zip(self._action_tags.tolist(), utilities.tolist()):
            if tag not in values or u > values[tag]:
                values[tag] = u

        return values


def first_tied_index(
    utilities: Sequence[float], tolerance: float = TIE_TOLERANCE
) -> int:
    """Returns the first index whose value ties (see :func:`tied`) with the maximum

    :param utilities: non-empty sequence of values
    :param tolerance: relative tolerance, defaults to :data:`TIE_TOLERANCE`
    :return: the index of the first (near) maximum
    """
    assert len(utilities) > 0

    best = max(utilities)
    for i, u in enumerate(utilities):
        if tied(u, best, tolerance):
            return i

    # unreachable: the maximum always ties with itself
    raise AssertionError("no maximum found")


def alpha_vectors_from_matrix(
    matrix: Sequence[Sequence[float]], actions: Sequence[ActionTag]
) -> List[AlphaVector]:
    """Zips a ``vectors x states`` matrix and action tags into alpha vectors

    :param matrix: one row per alpha vector
    :param actions: one tag per row
    :return: list of alpha vectors
    """
    assert len(matrix) == len(actions)
    return [AlphaVector(int(a), tuple(row)) for a, row in zip(actions, matrix)]
