"""Evaluating policies over collections of beliefs"""

from collections import Counter
from typing import Counter as CounterType
from typing import Iterable

from tqdm import tqdm

from alpha_vector_policy.engine import PolicyEngine
from alpha_vector_policy.types import Action, Belief
from alpha_vector_policy.utils import MovingStatistic


def evaluate_values(
    engine: PolicyEngine, beliefs: Iterable[Belief], progress_bar: bool = False
) -> MovingStatistic:
    """Computes the statistics of the (expected) value of ``beliefs``

    Typically used to report the expected return of a policy from (a set of)
    initial beliefs.

    The progress bar is printed by `tqdm`, and will magnificently fail if
    something else is printed or logged during.

    :param engine: the policy to evaluate
    :param beliefs: the beliefs to evaluate
    :param progress_bar: flag to output a progress bar, defaults to False
    :return: mean, min and max etc. of the values
    """
    stats = MovingStatistic()

    for b in tqdm(beliefs, disable=not progress_bar):
        stats.add(engine.value(b))

    return stats


def action_counts(
    engine: PolicyEngine, beliefs: Iterable[Belief]
) -> CounterType[Action]:
    """Counts how often each action is picked by ``engine`` for ``beliefs``

    :param engine: the policy
    :param beliefs: the beliefs to pick actions for
    :return: action -> number of beliefs it was chosen for
    """
    return Counter(engine.best_action(b) for b in beliefs)
