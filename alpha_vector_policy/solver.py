"""The (external) solve step that produces policy files

The planner itself is not part of this package. Its options are described by
:class:`SolverOptions`, and whatever runs it is passed in as a
:class:`~alpha_vector_policy.types.PolicyFileProducer`.
"""
from __future__ import annotations

import logging
from math import isclose, isnan
from pathlib import Path
from typing import List, NamedTuple, Optional

from alpha_vector_policy.errors import MissingFileError
from alpha_vector_policy.types import PathLike, PolicyFileProducer

logger = logging.getLogger(__name__)

DEFAULT_PRECISION = 1e-3
DEFAULT_TRIAL_IMPROVEMENT_FACTOR = 0.5
DEFAULT_POLICY_FILE = "out.policy"


class SolverOptions(NamedTuple):
    """The options of the SARSOP planner (`pomdpsol`)

    ``nan`` means 'not set', in which case the planner's own default applies.
    """

    fast: bool = False
    """use the fast (but very picky) alternate parser for .pomdp files"""
    randomization: bool = False
    """turn on randomization for the sampling algorithm"""
    precision: float = DEFAULT_PRECISION
    """run ends when target precision is reached"""
    timeout: float = float("nan")
    """[sec] when exceeded the planner writes out a policy and terminates"""
    memory: float = float("nan")
    """[MB] when exceeded the planner writes out a policy and terminates"""
    trial_improvement_factor: float = DEFAULT_TRIAL_IMPROVEMENT_FACTOR
    """a trial terminates when the gap between its bounds is within this factor of the precision"""
    policy_interval: float = float("nan")
    """[sec] time between two consecutive write-outs of the policy, defaults to only at the end"""

    def as_arguments(self) -> List[str]:
        """Returns the command line arguments for the options that are set

        Options equal to their default are left out

        :return: e.g. ``["--fast", "--timeout", "10.0"]``
        """
        assert self.precision > 0
        assert isnan(self.timeout) or self.timeout >= 0
        assert isnan(self.memory) or self.memory > 0
        assert self.trial_improvement_factor > 0
        assert isnan(self.policy_interval) or self.policy_interval > 0

        args: List[str] = []

        if self.fast:
            args.append("--fast")
        if self.randomization:
            args.append("--randomization")
        if not isclose(self.precision, DEFAULT_PRECISION):
            args += ["--precision", str(self.precision)]
        if not isnan(self.timeout):
            args += ["--timeout", str(self.timeout)]
        if not isnan(self.memory):
            args += ["--memory", str(self.memory)]
        if not isclose(self.trial_improvement_factor, DEFAULT_TRIAL_IMPROVEMENT_FACTOR):
            args += ["--trial-improvement-factor", str(self.trial_improvement_factor)]
        if not isnan(self.policy_interval):
            args += ["--policy-interval", str(self.policy_interval)]

        return args


def produce_or_load_policy_file(
    model_path: PathLike,
    options: SolverOptions = SolverOptions(),
    policy_path: PathLike = DEFAULT_POLICY_FILE,
    producer: Optional[PolicyFileProducer] = None,
    overwrite: bool = False,
) -> Path:
    """Returns the path to a policy file for ``model_path``, solving if needed

    If ``policy_path`` exists and ``overwrite`` is not set, it is assumed to be
    a policy for ``model_path`` from an earlier solve and returned as is.
    Otherwise ``producer`` is called to (re-)create it.

    Raises :class:`~alpha_vector_policy.errors.MissingFileError` if there is
    no policy file and no ``producer``, if ``model_path`` does not exist when
    solving, or if ``producer`` did not write ``policy_path``.

    :param model_path: the model to (possibly) solve
    :param options: options given to ``producer``, defaults to all defaults
    :param policy_path: where the policy file is (to be) stored, defaults to "out.policy"
    :param producer: the solve step, defaults to ``None`` (only loads)
    :param overwrite: whether to solve even if ``policy_path`` exists, defaults to ``False``
    :return: ``policy_path``
    """
    model_path, policy_path = Path(model_path), Path(policy_path)

    if policy_path.is_file() and not overwrite:
        logger.debug("Re-using existing policy file %s", policy_path)
        return policy_path

    if producer is None:
        raise MissingFileError(policy_path, "does not exist and no solver was given")
    if not model_path.is_file():
        raise MissingFileError(model_path, "(the model to solve) does not exist")

    logger.info(
        "Solving %s into %s with arguments %s",
        model_path,
        policy_path,
        options.as_arguments(),
    )
    producer(model_path, policy_path, options)

    if not policy_path.is_file():
        raise MissingFileError(policy_path, "was not written by the solver")

    return policy_path
