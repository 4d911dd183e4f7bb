"""Threshold value ordering and delta policies.

The evaluator never inspects threshold values directly. It only compares them
and steps ``delta`` levels back, so any totally ordered type works as long as
an ordering policy is provided for it.
"""

from abc import ABC, abstractmethod
from collections.abc import Hashable, Sequence
from dataclasses import dataclass
from numbers import Real
from typing import Any

import numpy as np


def _validate_delta(delta: Any) -> None:
    if isinstance(delta, bool) or not isinstance(delta, Real):
        raise ValueError(f"delta must be a number, got {type(delta).__name__}")
    if delta <= 0:
        raise ValueError(f"delta must be positive, got {delta}")


def _sign(a: Any, b: Any) -> int:
    return int(a > b) - int(a < b)


def _as_number(value: Any) -> Any:
    """Unwrap numpy scalars so stepping by delta cannot wrap around."""
    return value.item() if isinstance(value, np.generic) else value


class ValueOrdering(ABC):
    """Total order over threshold values plus the "value minus delta" step."""

    @abstractmethod
    def compare(self, a: Any, b: Any) -> int:
        """Return a negative number, zero or a positive number as a <, == or > b."""

    @abstractmethod
    def value_minus_delta(self, value: Any) -> Any:
        """Return the value ``delta`` levels below ``value``.

        The result must compare strictly below ``value``.
        """


class DarkToBright(ValueOrdering):
    """Thresholds rise numerically; regions grow from dark to bright."""

    def __init__(self, delta: Real) -> None:
        _validate_delta(delta)
        self.delta = _as_number(delta)

    def compare(self, a: Any, b: Any) -> int:
        return _sign(_as_number(a), _as_number(b))

    def value_minus_delta(self, value: Any) -> Any:
        return _as_number(value) - self.delta

    def __repr__(self) -> str:
        return f"DarkToBright(delta={self.delta})"


class BrightToDark(ValueOrdering):
    """Thresholds fall numerically; "below" means numerically larger."""

    def __init__(self, delta: Real) -> None:
        _validate_delta(delta)
        self.delta = _as_number(delta)

    def compare(self, a: Any, b: Any) -> int:
        return _sign(_as_number(b), _as_number(a))

    def value_minus_delta(self, value: Any) -> Any:
        return _as_number(value) + self.delta

    def __repr__(self) -> str:
        return f"BrightToDark(delta={self.delta})"


@dataclass(frozen=True)
class Underflow:
    """Marker for a level below the first one of a LevelOrdering."""

    rank: int


class LevelOrdering(ValueOrdering):
    """Ordering over an explicit sequence of enumerated threshold levels.

    Parameters
    ----------
    levels : Sequence[Hashable]
        Levels from lowest to highest
    delta : int
        Number of levels to step back
    """

    def __init__(self, levels: Sequence[Hashable], delta: int) -> None:
        if not isinstance(delta, int) or isinstance(delta, bool):
            raise ValueError(f"delta must be an integer number of levels, got {delta!r}")
        _validate_delta(delta)
        self.levels = tuple(levels)
        if not self.levels:
            raise ValueError("levels must not be empty")
        self._rank = {level: i for i, level in enumerate(self.levels)}
        if len(self._rank) != len(self.levels):
            raise ValueError("levels must be unique")
        self.delta = delta

    def rank(self, value: Any) -> int:
        if isinstance(value, Underflow):
            return value.rank
        try:
            return self._rank[value]
        except KeyError:
            raise ValueError(f"unknown level {value!r}") from None

    def compare(self, a: Any, b: Any) -> int:
        return _sign(self.rank(a), self.rank(b))

    def value_minus_delta(self, value: Any) -> Any:
        target = self.rank(value) - self.delta
        return self.levels[target] if target >= 0 else Underflow(target)

    def __repr__(self) -> str:
        return f"LevelOrdering(levels={len(self.levels)}, delta={self.delta})"


def ordering_for(delta: Real, dark_to_bright: bool = True) -> ValueOrdering:
    """Build the numeric ordering for a threshold sweep direction."""
    return DarkToBright(delta) if dark_to_bright else BrightToDark(delta)
