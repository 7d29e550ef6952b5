"""Keeps an engine in sync with a policy file that may be rewritten

A long-running solve periodically writes out its current policy. Rather than
updating vectors in place, every (re)load creates a new
:class:`~alpha_vector_policy.engine.PolicyEngine` and replaces the single
reference to the old one. Queries running against the old engine finish on a
complete (if outdated) value function.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from alpha_vector_policy.engine import ActionMapping, PolicyEngine
from alpha_vector_policy.errors import MissingFileError
from alpha_vector_policy.types import Action, Belief, PathLike

logger = logging.getLogger(__name__)


class PolicyCache:
    """Holds the latest engine loaded from a policy file

    Loads eagerly upon construction, so errors surface immediately.
    """

    def __init__(
        self,
        policy_path: PathLike,
        action_mapping: ActionMapping,
        validate_beliefs: bool = True,
    ):
        """Loads the policy in ``policy_path``

        :param policy_path: the (possibly periodically updated) policy file
        :param action_mapping: planner tag -> domain action
        :param validate_beliefs: passed on to the engines, defaults to ``True``
        """
        self._path = Path(policy_path)
        self._action_mapping = action_mapping
        self._validate_beliefs = validate_beliefs

        self._engine: PolicyEngine
        self._mtime: Optional[int] = None
        self.num_loads = 0

        self.reload()

    @property
    def path(self) -> Path:
        """The policy file"""
        return self._path

    @property
    def engine(self) -> PolicyEngine:
        """The most recently loaded engine

        Callers that issue multiple queries which should agree with each other
        should hold on to the returned engine rather than calling this again.
        """
        return self._engine

    def _modification_time(self) -> int:
        try:
            return self._path.stat().st_mtime_ns
        except FileNotFoundError:
            raise MissingFileError(self._path) from None

    def reload(self) -> PolicyEngine:
        """Creates a new engine from the policy file and makes it current

        Errors propagate and leave the current engine untouched

        :return: the new engine
        """
        mtime = self._modification_time()
        engine = PolicyEngine.from_file(
            self._path, self._action_mapping, self._validate_beliefs
        )

        # single reference assignment: readers see either the old or new engine
        self._engine = engine
        self._mtime = mtime
        self.num_loads += 1

        logger.debug("Loaded policy %s (load #%d)", self._path, self.num_loads)

        return engine

    def refresh(self) -> bool:
        """Reloads the policy only if the file changed since the last load

        :return: whether a new engine was loaded
        """
        if self._modification_time() == self._mtime:
            return False

        self.reload()
        return True

    def best_action(self, belief: Belief) -> Action:
        """Shortcut to :meth:`PolicyEngine.best_action` of the current engine"""
        return self._engine.best_action(belief)

    def value(self, belief: Belief) -> float:
        """Shortcut to :meth:`PolicyEngine.value` of the current engine"""
        return self._engine.value(belief)
