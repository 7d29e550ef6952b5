"""The errors raised while loading and querying policies

All of them derive from :class:`PolicyError`, and additionally from the
closest built-in exception so that callers can catch either.
"""
from typing import Hashable, Optional

from alpha_vector_policy.types import PathLike


class PolicyError(Exception):
    """Base class of all errors in this package"""


class MissingFileError(PolicyError, FileNotFoundError):
    """The policy file does not exist or can not be read"""

    def __init__(self, path: PathLike, reason: str = "does not exist"):
        self.path = str(path)
        super().__init__(f"Policy file {self.path} {reason}")

    def __str__(self) -> str:
        return self.args[0]


class MalformedPolicyError(PolicyError, ValueError):
    """The policy file violates the expected format"""

    def __init__(self, path: Optional[PathLike], reason: str):
        self.path = None if path is None else str(path)
        self.reason = reason
        where = f" in {self.path}" if self.path else ""
        super().__init__(f"Malformed policy{where}: {reason}")


class DimensionMismatchError(PolicyError, ValueError):
    """A belief does not have one entry per state of the policy"""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Belief has {actual} entries but the policy covers {expected} states"
        )


class InvalidBeliefError(PolicyError, ValueError):
    """A belief is not a probability distribution"""


class ActionMappingError(PolicyError, LookupError):
    """A planner action tag has no corresponding domain action, or the other way around

    ``tag`` is ``None`` when the failing lookup was for the domain ``action``
    """

    def __init__(
        self,
        tag: Optional[int],
        num_actions: int,
        tag_offset: int = 0,
        action: Optional[Hashable] = None,
    ):
        self.tag = tag
        self.num_actions = num_actions
        self.tag_offset = tag_offset
        self.action = action

        if tag is None:
            message = f"Action {action!r} is not one of the {num_actions} domain actions"
        else:
            message = (
                f"Action tag {tag} (offset {tag_offset}) does not map into "
                f"the {num_actions} domain actions"
            )
        super().__init__(message)
