"""Reading (and writing) the `.policy` files of the SARSOP/APPL planner

A policy file is an XML document of the form::

    <?xml version="1.0" encoding="ISO-8859-1"?>
    <Policy version="0.1" type="value" model="tiger.pomdp">
    <AlphaVector vectorLength="2" numObsValue="1" numVectors="2">
    <Vector action="0" obsValue="0">-81.5975 3.5974 </Vector>
    <SparseVector action="2" obsValue="0"><Entry>1 19.3</Entry></SparseVector>
    </AlphaVector> </Policy>

``vectorLength`` is the number of states, ``numVectors`` the number of
records. Dense ``Vector`` records list one value per state (in state order),
``SparseVector`` records list ``<Entry>state value</Entry>`` pairs (at most one
per state), all other states being 0. Anything else (``obsValue``,
``numObsValue``, ...) is ignored.
"""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from math import isfinite
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from alpha_vector_policy.alphas import AlphaVector, AlphaVectorSet
from alpha_vector_policy.errors import MalformedPolicyError, MissingFileError
from alpha_vector_policy.types import PathLike

logger = logging.getLogger(__name__)

DENSE_VECTOR_TAG = "Vector"
SPARSE_VECTOR_TAG = "SparseVector"
ENTRY_TAG = "Entry"


def read_policy_file(path: PathLike) -> AlphaVectorSet:
    """Parses the policy file at ``path`` into an :class:`AlphaVectorSet`

    Has no side effects, so can be called repeatedly, e.g. to pick up the
    policies periodically written out by a long-running solve.

    Raises :class:`~alpha_vector_policy.errors.MissingFileError` if ``path``
    can not be read, and
    :class:`~alpha_vector_policy.errors.MalformedPolicyError` if its content
    does not describe a non-empty set of alpha vectors of the declared length.

    :param path: path to the `.policy` file
    :return: the alpha vectors, in file order
    """
    path = Path(path)

    try:
        content = path.read_bytes()
    except FileNotFoundError:
        raise MissingFileError(path) from None
    except OSError as e:
        raise MissingFileError(path, f"can not be read ({e.strerror})") from e

    alpha_vectors = parse_policy(content, path)

    logger.debug(
        "Read %d alpha vectors over %d states from %s",
        len(alpha_vectors),
        alpha_vectors.num_states,
        path,
    )

    return alpha_vectors


def parse_policy(content: bytes, path: Optional[PathLike] = None) -> AlphaVectorSet:
    """Parses the content of a policy file

    See :func:`read_policy_file`, ``path`` is only used for error messages

    :param content: the (XML) text of a policy file
    :param path: where ``content`` came from, optional
    :return: the alpha vectors, in order of appearance
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise MalformedPolicyError(path, f"not a valid XML document ({e})") from e

    # the root is `Policy`, but a bare `AlphaVector` document is accepted too
    vectors_element = root if root.tag == "AlphaVector" else root.find("AlphaVector")
    if vectors_element is None:
        raise MalformedPolicyError(path, "no AlphaVector element")

    num_states = _positive_int_attribute(vectors_element, "vectorLength", path)
    num_vectors = _optional_int_attribute(vectors_element, "numVectors", path)

    alpha_vectors: List[AlphaVector] = []
    for element in vectors_element:
        if element.tag == DENSE_VECTOR_TAG:
            values = _parse_dense_values(element, num_states, len(alpha_vectors), path)
        elif element.tag == SPARSE_VECTOR_TAG:
            values = _parse_sparse_values(element, num_states, len(alpha_vectors), path)
        else:
            continue

        action = _parse_action(element, len(alpha_vectors), path)
        alpha_vectors.append(AlphaVector(action, values))

    if not alpha_vectors:
        raise MalformedPolicyError(path, "contains no alpha vectors")
    if num_vectors is not None and num_vectors != len(alpha_vectors):
        raise MalformedPolicyError(
            path,
            f"declares {num_vectors} vectors but contains {len(alpha_vectors)}",
        )

    return AlphaVectorSet(alpha_vectors)


def _positive_int_attribute(element: ET.Element, name: str, path) -> int:
    """Returns the (required, positive) integer attribute ``name`` of ``element``"""
    value = _optional_int_attribute(element, name, path)

    if value is None:
        raise MalformedPolicyError(path, f"missing attribute '{name}'")
    if value <= 0:
        raise MalformedPolicyError(
            path, f"attribute '{name}' must be positive, got {value}"
        )

    return value


def _optional_int_attribute(element: ET.Element, name: str, path) -> Optional[int]:
    """Returns the integer attribute ``name`` of ``element``, or ``None`` if absent"""
    text = element.get(name)
    if text is None:
        return None

    try:
        return int(text.strip())
    except ValueError:
        raise MalformedPolicyError(
            path, f"attribute '{name}' is not an integer: '{text}'"
        ) from None


def _parse_action(element: ET.Element, index: int, path) -> int:
    """Returns the action tag of the ``index``-th vector record"""
    text = element.get("action")
    if text is None:
        raise MalformedPolicyError(path, f"vector {index} has no action")

    try:
        action = int(text.strip())
    except ValueError:
        raise MalformedPolicyError(
            path, f"vector {index} has non-numeric action '{text}'"
        ) from None

    if action < 0:
        raise MalformedPolicyError(path, f"vector {index} has negative action {action}")

    return action


def _parse_float(text: str, index: int, path) -> float:
    try:
        value = float(text)
    except ValueError:
        raise MalformedPolicyError(
            path, f"vector {index} contains non-numeric value '{text}'"
        ) from None

    if not isfinite(value):
        raise MalformedPolicyError(
            path, f"vector {index} contains non-finite value '{text}'"
        )

    return value


def _parse_dense_values(
    element: ET.Element, num_states: int, index: int, path
) -> Tuple[float, ...]:
    """Parses the whitespace separated values of a ``Vector`` record"""
    tokens = (element.text or "").split()

    if len(tokens) != num_states:
        raise MalformedPolicyError(
            path,
            f"vector {index} has {len(tokens)} values, expected {num_states}",
        )

    return tuple(_parse_float(t, index, path) for t in tokens)


def _parse_sparse_values(
    element: ET.Element, num_states: int, index: int, path
) -> Tuple[float, ...]:
    """Parses the ``<Entry>state value</Entry>`` children of a ``SparseVector`` record"""
    values = [0.0] * num_states
    seen = set()

    for entry in element.iter(ENTRY_TAG):
        tokens = (entry.text or "").split()
        if len(tokens) != 2:
            raise MalformedPolicyError(
                path, f"vector {index} has entry '{entry.text}', expected 'state value'"
            )

        try:
            state = int(tokens[0])
        except ValueError:
            raise MalformedPolicyError(
                path, f"vector {index} has non-numeric state '{tokens[0]}'"
            ) from None

        if not 0 <= state < num_states:
            raise MalformedPolicyError(
                path,
                f"vector {index} has entry for state {state}, expected [0, {num_states})",
            )
        if state in seen:
            raise MalformedPolicyError(
                path, f"vector {index} has more than one entry for state {state}"
            )
        seen.add(state)

        values[state] = _parse_float(tokens[1], index, path)

    return tuple(values)


def write_policy_file(
    alpha_vectors: Iterable[AlphaVector], path: PathLike, model: str = ""
) -> Path:
    """Writes ``alpha_vectors`` as a (dense) policy file to ``path``

    Values are written with ``repr``, so reading the file back gives the exact
    same floats.

    :param alpha_vectors: the vectors to write, in order
    :param path: destination, overwritten if it exists
    :param model: stored in the ``model`` attribute of the root, defaults to ""
    :return: ``path``
    """
    vectors = list(alpha_vectors)
    assert vectors, "can not write a policy without alpha vectors"

    num_states = len(vectors[0].values)
    assert all(len(v.values) == num_states for v in vectors)

    root = ET.Element("Policy", version="0.1", type="value", model=model)
    vectors_element = ET.SubElement(
        root,
        "AlphaVector",
        vectorLength=str(num_states),
        numObsValue="1",
        numVectors=str(len(vectors)),
    )
    for v in vectors:
        record = ET.SubElement(
            vectors_element, DENSE_VECTOR_TAG, action=str(v.action), obsValue="0"
        )
        record.text = " ".join(repr(float(x)) for x in v.values)

    path = Path(path)
    ET.ElementTree(root).write(str(path), encoding="ISO-8859-1", xml_declaration=True)

    logger.debug("Wrote %d alpha vectors to %s", len(vectors), path)

    return path
