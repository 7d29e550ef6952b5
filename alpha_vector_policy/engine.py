"""Action selection with alpha-vector policies"""
from __future__ import annotations

import logging
from timeit import default_timer as timer
from typing import Dict, Hashable, Iterable, Sequence, Tuple

from alpha_vector_policy.alphas import AlphaVectorSet, check_belief
from alpha_vector_policy.errors import ActionMappingError
from alpha_vector_policy.policy_file import read_policy_file
from alpha_vector_policy.types import Action, ActionTag, Belief, Info, PathLike

logger = logging.getLogger(__name__)


class ActionMapping:
    """The table from the planner's action tags to domain actions

    The planner enumerates actions on its own, starting at 0. Tag ``t`` maps
    to ``actions[t + tag_offset]``, and the other way around, domain action
    ``actions[i]`` has tag ``i - tag_offset``. With the default offset of 0 the
    planner enumerated exactly ``actions``, in order.

    The offset works in both directions:

        - positive: tag 0 is ``actions[tag_offset]``, the leading entries of
          ``actions`` (e.g. a placeholder in a vocabulary indexed from 1) have
          no tag
        - negative: the planner counts from ``-tag_offset``, its first tags
          have no domain action

    Tags or actions without a counterpart raise
    :class:`~alpha_vector_policy.errors.ActionMappingError`, they are never
    wrapped around or clamped. The table is built once and not modified
    afterwards.
    """

    def __init__(self, actions: Iterable[Action], tag_offset: int = 0):
        """Creates the table for ``actions``

        Raises ``ValueError`` if ``actions`` contains duplicates

        :param actions: the domain actions, ordered as the planner enumerated them
        :param tag_offset: position in ``actions`` of the action tagged 0, defaults to 0
        """
        self._actions: Tuple[Action, ...] = tuple(actions)
        self._tag_offset = int(tag_offset)

        self._tags: Dict[Hashable, ActionTag] = {}
        for i, a in enumerate(self._actions):
            if a in self._tags:
                raise ValueError(f"Action {a} occurs more than once in {self._actions}")
            self._tags[a] = i - self._tag_offset

    @property
    def actions(self) -> Tuple[Action, ...]:
        """The domain actions"""
        return self._actions

    @property
    def tag_offset(self) -> int:
        """The position in :attr:`actions` of the action with tag 0, may be negative"""
        return self._tag_offset

    def maps(self, tag: ActionTag) -> bool:
        """Whether planner tag ``tag`` has a domain action"""
        return tag >= 0 and 0 <= tag + self._tag_offset < len(self._actions)

    def action(self, tag: ActionTag) -> Action:
        """Returns the domain action of planner tag ``tag``

        Raises :class:`~alpha_vector_policy.errors.ActionMappingError` if
        ``tag`` has no action

        :param tag: zero-based planner action index
        :return: the domain action
        """
        if not self.maps(tag):
            raise ActionMappingError(tag, len(self._actions), self._tag_offset)
        return self._actions[tag + self._tag_offset]

    def tag(self, action: Action) -> ActionTag:
        """Returns the planner tag of domain action ``action``

        Raises :class:`~alpha_vector_policy.errors.ActionMappingError` if
        ``action`` is unknown or is one of the entries skipped by a positive
        offset

        :param action: a domain action
        :return: zero-based planner action index
        """
        if action not in self._tags:
            raise ActionMappingError(
                None, len(self._actions), self._tag_offset, action=action
            )

        tag = self._tags[action]
        if tag < 0:
            raise ActionMappingError(tag, len(self._actions), self._tag_offset)
        return tag

    def __len__(self) -> int:
        """The number of planner tags that map to an action"""
        return max(0, len(self._actions) - max(0, self._tag_offset))

    def __repr__(self) -> str:
        return f"ActionMapping({list(self._actions)}, tag_offset={self._tag_offset})"


class PolicyEngine:
    """Picks actions for beliefs according to a set of alpha vectors

    Binds an :class:`~alpha_vector_policy.alphas.AlphaVectorSet` to the domain
    actions through an :class:`ActionMapping`. Neither are modified, nor is any
    belief retained, so an engine can be queried from multiple threads at once.

    Implements :class:`~alpha_vector_policy.types.Policy`

    .. automethod:: __call__
    """

    def __init__(
        self,
        action_mapping: ActionMapping,
        alpha_vectors: AlphaVectorSet,
        validate_beliefs: bool = True,
    ):
        """Creates the engine, does no I/O

        Raises :class:`~alpha_vector_policy.errors.ActionMappingError` if any
        of the tags in ``alpha_vectors`` does not map to a domain action

        :param action_mapping: planner tag -> domain action
        :param alpha_vectors: the value function
        :param validate_beliefs: whether to check beliefs are distributions, defaults to ``True``
        """
        for tag in sorted(set(alpha_vectors.action_tags.tolist())):
            if not action_mapping.maps(tag):
                raise ActionMappingError(
                    tag, len(action_mapping.actions), action_mapping.tag_offset
                )

        self._action_mapping = action_mapping
        self._alpha_vectors = alpha_vectors
        self._validate_beliefs = validate_beliefs

    @classmethod
    def from_file(
        cls,
        path: PathLike,
        action_mapping: ActionMapping,
        validate_beliefs: bool = True,
    ) -> PolicyEngine:
        """Reads the policy in ``path`` and creates an engine

        Errors of :func:`~alpha_vector_policy.policy_file.read_policy_file`
        are propagated as is.

        :param path: path to the policy file
        :param action_mapping: planner tag -> domain action
        :param validate_beliefs: whether to check beliefs are distributions, defaults to ``True``
        """
        return cls(action_mapping, read_policy_file(path), validate_beliefs)

    @property
    def action_mapping(self) -> ActionMapping:
        """The planner tag -> domain action mapping"""
        return self._action_mapping

    @property
    def alpha_vectors(self) -> AlphaVectorSet:
        """The alpha vectors making up the value function"""
        return self._alpha_vectors

    @property
    def num_states(self) -> int:
        """The number of states beliefs are expected to cover"""
        return self._alpha_vectors.num_states

    def _belief(self, belief: Belief) -> Belief:
        if self._validate_beliefs:
            return check_belief(belief, self.num_states)
        return belief

    def best_action(self, belief: Belief) -> Action:
        """Returns the action of the best alpha vector at ``belief``

        :param belief: a distribution over the states
        :return: the domain action
        """
        tag, _ = self._alpha_vectors.argmax_vector(self._belief(belief))
        return self._action_mapping.action(tag)

    def value(self, belief: Belief) -> float:
        """Returns the (expected) value of ``belief``

        :param belief: a distribution over the states
        :return: the largest inner product of any alpha vector with ``belief``
        """
        return self._alpha_vectors.value(self._belief(belief))

    def action_values(self, belief: Belief) -> Dict[Action, float]:
        """Returns the value of each action (that has an alpha vector) at ``belief``

        :param belief: a distribution over the states
        :return: domain action -> best inner product of its vectors
        """
        tag_values = self._alpha_vectors.action_values(self._belief(belief))
        return {self._action_mapping.action(t): v for t, v in tag_values.items()}

    def __call__(self, belief: Belief) -> Tuple[Action, Info]:
        """Picks an action for ``belief``, returns it together with run-time info

        ``info`` contains the "value" of the belief, the "vector_index" and
        "action_tag" of the chosen vector, and the "query_runtime".

        :param belief: a distribution over the states
        :return: the chosen action and run-time information
        """
        t = timer()

        b = self._belief(belief)
        tag, index = self._alpha_vectors.argmax_vector(b)
        action = self._action_mapping.action(tag)

        info: Info = {
            "value": self._alpha_vectors.value(b),
            "vector_index": index,
            "action_tag": tag,
            "query_runtime": timer() - t,
        }

        return action, info

    def __repr__(self) -> str:
        return f"PolicyEngine({self._alpha_vectors}, {self._action_mapping})"


def load_policy(
    path: PathLike,
    actions: Sequence[Action],
    tag_offset: int = 0,
    validate_beliefs: bool = True,
) -> PolicyEngine:
    """Creates a :class:`PolicyEngine` from a previously saved policy file

    Does not require any solve to have happened in this process.

    :param path: path to the policy file
    :param actions: the domain actions, ordered as the planner enumerated them
    :param tag_offset: see :class:`ActionMapping`, defaults to 0
    :param validate_beliefs: whether to check beliefs are distributions, defaults to ``True``
    :return: the engine
    """
    mapping = ActionMapping(actions, tag_offset)
    engine = PolicyEngine.from_file(path, mapping, validate_beliefs)

    logger.info(
        "Loaded policy from %s: %d alpha vectors, %d states, %d actions",
        path,
        len(engine.alpha_vectors),
        engine.num_states,
        len(engine.action_mapping),
    )

    return engine
