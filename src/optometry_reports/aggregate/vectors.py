"""84-slot answer vectors.

Slot i always means question i+1 (`q{i+1}`), whatever key order the stored
document happens to have. Vectors are read-only numpy arrays; every sum
returns a new array, so a zero template is never mutated in place.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping

import numpy as np

ANSWER_SLOTS = 84
ANSWER_KEYS: tuple[str, ...] = tuple(f"q{i + 1}" for i in range(ANSWER_SLOTS))


def to_number(value: Any) -> float:
    """Coerce a stored answer to a finite float; anything else becomes 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0.0
    try:
        n = float(value)
    except (TypeError, ValueError):
        return 0.0
    return n if math.isfinite(n) else 0.0


def _frozen(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


def zero_vector() -> np.ndarray:
    return _frozen(np.zeros(ANSWER_SLOTS, dtype=np.float64))


def answers_to_vector(answers: Mapping[str, Any] | None) -> np.ndarray:
    """Return the 84-slot vector for an answers mapping keyed q1..q84.

    Missing, non-numeric and non-finite slots are 0; keys outside q1..q84
    are ignored.
    """
    answers = answers or {}
    return _frozen(np.array([to_number(answers.get(k)) for k in ANSWER_KEYS], dtype=np.float64))


def sequence_to_vector(values: Iterable[Any]) -> np.ndarray:
    """Return an 84-slot vector from positional values, padding with zeros."""
    out = [to_number(v) for v in list(values)[:ANSWER_SLOTS]]
    out.extend([0.0] * (ANSWER_SLOTS - len(out)))
    return _frozen(np.array(out, dtype=np.float64))


def add_vectors(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Elementwise sum as a new read-only vector."""
    return _frozen(np.add(a, b))


def sum_vectors(vectors: Iterable[np.ndarray]) -> np.ndarray:
    """Fold `add_vectors` over `vectors`, starting from the zero vector."""
    total = zero_vector()
    for v in vectors:
        total = add_vectors(total, v)
    return total


def vector_to_answers(vector: np.ndarray) -> dict[str, float]:
    return {k: float(v) for k, v in zip(ANSWER_KEYS, vector)}


def vector_to_list(vector: np.ndarray) -> list[float]:
    return [float(v) for v in vector]
