"""Tests `alpha_vector_policy.alphas`"""

import random
import threading

import numpy as np
import pytest

from alpha_vector_policy.alphas import (
    BELIEF_SUM_TOLERANCE,
    TIE_TOLERANCE,
    AlphaVector,
    AlphaVectorSet,
    alpha_vectors_from_matrix,
    check_belief,
    first_tied_index,
    tied,
)
from alpha_vector_policy.errors import (
    DimensionMismatchError,
    InvalidBeliefError,
    MalformedPolicyError,
)


def two_state_vectors() -> AlphaVectorSet:
    """Action 0 is good in state 0, action 1 in state 1"""
    return AlphaVectorSet([AlphaVector(0, (1.0, 0.0)), AlphaVector(1, (0.0, 1.0))])


def tiger_vectors() -> AlphaVectorSet:
    """(Rounded) SARSOP solution of the tiger problem: open left, open right, listen"""
    return AlphaVectorSet(
        alpha_vectors_from_matrix(
            [
                [-81.5975, 28.4025],
                [3.5974, 3.5974],
                [28.4025, -81.5975],
                [-19.0, 20.3],
                [20.3, -19.0],
            ],
            [0, 2, 1, 2, 2],
        )
    )


def random_belief(n: int) -> np.ndarray:
    """Samples uniformly from the simplex"""
    return np.random.dirichlet(np.ones(n))


def test_constructor():
    """Tests properties of :class:`AlphaVectorSet`"""
    vectors = tiger_vectors()

    assert len(vectors) == 5
    assert vectors.num_states == 2
    assert vectors.num_actions == 3
    assert vectors.matrix.shape == (5, 2)
    assert list(vectors.action_tags) == [0, 2, 1, 2, 2]
    assert vectors[2] == AlphaVector(1, (28.4025, -81.5975))
    assert [v.action for v in vectors] == [0, 2, 1, 2, 2]


def test_immutable():
    """The underlying matrix can not be modified"""
    vectors = two_state_vectors()

    with pytest.raises(ValueError):
        vectors.matrix[0, 0] = 10.0
    with pytest.raises(ValueError):
        vectors.action_tags[0] = 1


def test_non_contiguous_actions():
    """Actions without vectors are fine, the number of actions is the largest tag + 1"""
    vectors = AlphaVectorSet([AlphaVector(3, (1.0,)), AlphaVector(1, (2.0,))])

    assert vectors.num_actions == 4
    assert vectors.action_values([1.0]) == {3: 1.0, 1: 2.0}


@pytest.mark.parametrize(
    "alpha_vectors",
    [
        [],
        [AlphaVector(0, ())],
        [AlphaVector(0, (1.0, 2.0)), AlphaVector(0, (1.0,))],
        [AlphaVector(-1, (1.0, 2.0))],
        [AlphaVector(0, (1.0, float("nan")))],
        [AlphaVector(0, (float("inf"), 0.0))],
        [AlphaVector(1.5, (1.0, 2.0))],
        [AlphaVector(0, (1.0,)), AlphaVector(2.0, (1.0,))],
        [AlphaVector("1", (1.0, 2.0))],
    ],
)
def test_invalid_sets(alpha_vectors):
    """Empty sets, inconsistent lengths, non-integer tags and bad values are rejected"""
    with pytest.raises(MalformedPolicyError):
        AlphaVectorSet(alpha_vectors)


def test_numpy_integer_actions():
    """Integer tags from numpy arrays are fine"""
    tags = np.array([1, 0])
    vectors = AlphaVectorSet([AlphaVector(tags[0], (1.0,)), AlphaVector(tags[1], (2.0,))])

    assert [v.action for v in vectors] == [1, 0]
    assert all(type(v.action) is int for v in vectors)


@pytest.mark.parametrize(
    "belief,tag,index,value",
    [
        ([0.7, 0.3], 0, 0, 0.7),
        ([0.3, 0.7], 1, 1, 0.7),
        ([0.5, 0.5], 0, 0, 0.5),
        ([1.0, 0.0], 0, 0, 1.0),
        ([0.0, 1.0], 1, 1, 1.0),
    ],
)
def test_two_state_queries(belief, tag, index, value):
    """Tests :meth:`AlphaVectorSet.argmax_vector` and :meth:`AlphaVectorSet.value`"""
    vectors = two_state_vectors()

    assert vectors.argmax_vector(belief) == (tag, index)
    assert vectors.value(belief) == pytest.approx(value)


@pytest.mark.parametrize(
    "belief,tag,index",
    [([0.5, 0.5], 2, 1), ([0.99, 0.01], 1, 2), ([0.01, 0.99], 0, 0), ([0.85, 0.15], 2, 4)],
)
def test_tiger_queries(belief, tag, index):
    """Tests picking vectors in the tiger problem"""
    assert tiger_vectors().argmax_vector(belief) == (tag, index)


def test_tie_break_first_loaded():
    """Identical vectors: the first one always wins"""
    vectors = AlphaVectorSet(
        [AlphaVector(2, (1.0, 1.0)), AlphaVector(0, (1.0, 1.0)), AlphaVector(1, (1.0, 1.0))]
    )

    for _ in range(10):
        assert vectors.argmax_vector(random_belief(2)) == (2, 0)


def test_tie_break_within_tolerance():
    """Round-off smaller than the tolerance does not beat earlier vectors"""
    eps = TIE_TOLERANCE / 10
    vectors = AlphaVectorSet([AlphaVector(0, (1.0, 1.0)), AlphaVector(1, (1.0 + eps, 1.0 + eps))])

    assert vectors.argmax_vector([0.5, 0.5]) == (0, 0)

    # but larger differences do
    eps = TIE_TOLERANCE * 10
    vectors = AlphaVectorSet([AlphaVector(0, (1.0, 1.0)), AlphaVector(1, (1.0 + eps, 1.0 + eps))])

    assert vectors.argmax_vector([0.5, 0.5]) == (1, 1)


def test_tie_break_across_threads():
    """Concurrent queries agree on the tie"""
    vectors = two_state_vectors()
    results = []

    def query():
        for _ in range(100):
            results.append(vectors.argmax_vector([0.5, 0.5]))

    threads = [threading.Thread(target=query) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 400
    assert set(results) == {(0, 0)}


@pytest.mark.parametrize(
    "value,best,is_tied",
    [
        (1.0, 1.0, True),
        (1.0 - 1e-12, 1.0, True),
        (1.0 - 1e-6, 1.0, False),
        (1e6 - 1e-4, 1e6, True),
        (1e6 - 1.0, 1e6, False),
        (-1e-10, 0.0, True),
        (-1e-8, 0.0, False),
    ],
)
def test_tied(value, best, is_tied):
    """Tests :func:`tied` is relative for large values and absolute around 0"""
    assert tied(value, best) == is_tied


def test_first_tied_index():
    """Tests :func:`first_tied_index`"""
    assert first_tied_index([0.0, 1.0, 1.0]) == 1
    assert first_tied_index([1.0, 0.0, 1.0 + 1e-12]) == 0
    assert first_tied_index([-5.0]) == 0


def test_determinism():
    """Repeated queries give identical results"""
    vectors = tiger_vectors()
    belief = random_belief(2)

    results = {(vectors.argmax_vector(belief), vectors.value(belief)) for _ in range(20)}
    assert len(results) == 1


def test_convexity():
    """The value function is convex over random pairs of beliefs"""
    np.random.seed(0)
    random.seed(0)

    n = 5
    vectors = AlphaVectorSet(
        AlphaVector(random.randint(0, 3), tuple(np.random.uniform(-10, 10, n)))
        for _ in range(20)
    )

    for _ in range(200):
        b1, b2, lam = random_belief(n), random_belief(n), random.uniform(0, 1)
        mixed = vectors.value(lam * b1 + (1 - lam) * b2)
        assert mixed <= lam * vectors.value(b1) + (1 - lam) * vectors.value(b2) + 1e-9


def test_point_beliefs():
    """A belief on a single state picks the vector with the largest value in that state"""
    np.random.seed(1)

    n = 4
    matrix = np.random.uniform(-5, 5, (6, n))
    vectors = AlphaVectorSet(alpha_vectors_from_matrix(matrix, list(range(6))))

    for s in range(n):
        belief = np.zeros(n)
        belief[s] = 1.0

        assert vectors.argmax_vector(belief) == (int(np.argmax(matrix[:, s])),) * 2
        assert vectors.value(belief) == pytest.approx(matrix[:, s].max())


def test_action_values():
    """Tests :meth:`AlphaVectorSet.action_values` takes the max per action"""
    values = tiger_vectors().action_values([0.5, 0.5])

    assert set(values) == {0, 1, 2}
    assert values[0] == pytest.approx(-26.5975)
    assert values[1] == pytest.approx(-26.5975)
    assert values[2] == pytest.approx(3.5974)


@pytest.mark.parametrize("belief", [[1.0], [0.2, 0.3, 0.5], [[0.5, 0.5]], []])
def test_dimension_mismatch(belief):
    """Beliefs of the wrong size are rejected by every query"""
    vectors = two_state_vectors()

    with pytest.raises(DimensionMismatchError):
        vectors.value(belief)
    with pytest.raises(DimensionMismatchError):
        vectors.argmax_vector(belief)
    with pytest.raises(DimensionMismatchError):
        vectors.action_values(belief)


def test_dimension_mismatch_message():
    """The error reports expected and actual sizes"""
    with pytest.raises(DimensionMismatchError) as e:
        two_state_vectors().value([0.2, 0.3, 0.5])

    assert e.value.expected == 2
    assert e.value.actual == 3


def test_does_not_modify_belief():
    """Queries leave the belief untouched"""
    belief = np.array([0.25, 0.75])
    two_state_vectors().argmax_vector(belief)

    assert list(belief) == [0.25, 0.75]


@pytest.mark.parametrize(
    "belief",
    [
        [0.5, 0.5],
        [1.0, 0.0],
        [0.5 + BELIEF_SUM_TOLERANCE / 2, 0.5],
        [1.0 + BELIEF_SUM_TOLERANCE / 2, -BELIEF_SUM_TOLERANCE / 2],
    ],
)
def test_check_belief(belief):
    """Distributions (within tolerance) are accepted"""
    assert list(check_belief(belief, 2)) == belief


@pytest.mark.parametrize(
    "belief",
    [
        [0.5, 0.6],
        [0.5 + BELIEF_SUM_TOLERANCE * 2, 0.5],
        [1.1, -0.1],
        [float("nan"), 1.0],
        [0.0, 0.0],
    ],
)
def test_check_invalid_belief(belief):
    """Non-distributions are rejected"""
    with pytest.raises(InvalidBeliefError):
        check_belief(belief, 2)


def test_check_belief_dimension():
    """:func:`check_belief` also checks the dimension"""
    with pytest.raises(DimensionMismatchError):
        check_belief([1.0], 2)


if __name__ == "__main__":
    pytest.main([__file__])
