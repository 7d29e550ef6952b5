"""Defines some types for ease of reading"""

from pathlib import Path
from typing import Any, Dict, Hashable, Sequence, Tuple, Union

import numpy as np
from typing_extensions import Protocol

Action = Hashable
"""The abstract type representing (domain) actions requires to be hash-able"""
ActionTag = int
"""The zero-based index of an action in the planner's own enumeration"""
Belief = Union[Sequence[float], np.ndarray]
"""A probability distribution over the states, one entry per state"""
PathLike = Union[str, Path]
"""Anything that can be turned into a :class:`pathlib.Path`"""

Info = Dict[str, Any]
"""Data type used for information flow from implementation to caller"""


class Policy(Protocol):
    """The abstract class representation for policies in this package

    .. automethod:: __call__
    """

    def __call__(self, belief: Belief) -> Tuple[Action, Info]:
        """
        The main functionality this package offers: a method that takes in a
        belief and returns an action

        :param belief:
        :return: the chosen action and run-time information
        """


class PolicyFileProducer(Protocol):
    """The abstract type representing the (external) solve step

    Whatever actually runs the planner, e.g. something calling `pomdpsol`,
    must write a policy file to ``output_path``.

    .. automethod:: __call__
    """

    def __call__(self, model_path: Path, output_path: Path, options: Any) -> None:
        """Solve the model in ``model_path`` and write the policy to ``output_path``

        :param model_path: the (.pomdp/.pomdpx) model given to the planner
        :param output_path: where the planner is expected to write its policy
        :param options: planner options (see :class:`~alpha_vector_policy.solver.SolverOptions`)
        """
