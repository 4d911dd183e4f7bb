"""Core data structures shared by the component tree builder and the evaluator.

This module implements:
- PixelList: ordered pixel membership of a connected component
- ComponentRecord: a growing connected component accumulating pixels and position sums
- Mser: immutable snapshot of a maximally stable extremal region
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import numpy as np

from msertree.utils import covariance_size

if TYPE_CHECKING:
    from msertree.evaluation import EvaluationNode


class PixelList:
    """Ordered collection of pixel ids belonging to one component."""

    __slots__ = ("_ids",)

    def __init__(self, ids: Iterable[Hashable] = ()) -> None:
        self._ids: list[Hashable] = list(ids)

    def add(self, pixel_id: Hashable) -> None:
        self._ids.append(pixel_id)

    def merge(self, other: PixelList) -> None:
        """Append the pixels of ``other`` after the pixels of this list."""
        self._ids.extend(other._ids)

    def copy(self) -> PixelList:
        return PixelList(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._ids)

    def __contains__(self, pixel_id: object) -> bool:
        return pixel_id in self._ids

    def __repr__(self) -> str:
        return f"PixelList(size={len(self._ids)})"


class ComponentRecord:
    """A connected component growing while the threshold rises.

    The component tree builder adds pixels and merges neighbouring records
    into this one. Every time the builder finalizes the component at its
    current ``value``, the evaluator snapshots it into an evaluation node and
    stores the node index in ``evaluation_node`` so the next finalization can
    continue from it.

    Parameters
    ----------
    value : Any
        Threshold value the component currently lives at
    n : int, default=2
        Number of spatial dimensions of pixel positions
    """

    def __init__(self, value: Any, n: int = 2) -> None:
        if not isinstance(n, int) or n < 1:
            raise ValueError(f"n must be a positive integer, got {n}")
        self.value = value
        self.n = n
        self.pixels = PixelList()
        self.sum_pos = np.zeros(n, dtype=np.float64)
        self.sum_squ_pos = np.zeros(covariance_size(n), dtype=np.float64)
        self.children: list[ComponentRecord] = []
        self.evaluation_node: int | None = None
        self._triu = np.triu_indices(n)

    @property
    def size(self) -> int:
        return len(self.pixels)

    def add_position(self, pixel_id: Hashable, position: Sequence[float]) -> None:
        """Add one pixel at ``position`` to the component."""
        pos = np.asarray(position, dtype=np.float64)
        if pos.shape != (self.n,):
            raise ValueError(f"position must have {self.n} coordinates, got {pos.shape}")
        self.pixels.add(pixel_id)
        self.sum_pos += pos
        self.sum_squ_pos += np.outer(pos, pos)[self._triu]

    def add_pixel(self, flat_index: int, shape: tuple[int, ...]) -> None:
        """Add a pixel given by its flat index into an image of ``shape``."""
        if len(shape) != self.n:
            raise ValueError(f"shape must have {self.n} dimensions, got {shape}")
        self.add_position(int(flat_index), np.unravel_index(flat_index, shape))

    def merge(self, other: ComponentRecord) -> None:
        """Absorb ``other`` into this component and remember it as a child.

        ``other`` must already have been finalized, since its evaluation node
        becomes a child of the next node created for this component.
        """
        if other.n != self.n:
            raise ValueError(f"cannot merge {other.n}-d component into {self.n}-d component")
        if other.evaluation_node is None:
            raise RuntimeError("component must be finalized before it is merged")
        self.pixels.merge(other.pixels)
        self.sum_pos += other.sum_pos
        self.sum_squ_pos += other.sum_squ_pos
        self.children.append(other)

    def __repr__(self) -> str:
        return f"ComponentRecord(value={self.value!r}, size={self.size})"


@dataclass(eq=False)
class Mser:
    """Maximally stable extremal region reported by an MSER tree.

    Attributes
    ----------
    value : Any
        Threshold value at which the region was found
    score : float
        Relative growth rate over the delta window
    size : int
        Number of pixels
    pixels : PixelList
        Pixel ids of the region (read-only view shared with the evaluation tree)
    mean : np.ndarray
        Mean pixel position
    cov : np.ndarray
        Upper triangle of the covariance of pixel positions, row-major
    """

    value: Any
    score: float
    size: int
    pixels: PixelList
    mean: np.ndarray
    cov: np.ndarray
    parent: Mser | None = None
    children: list[Mser] = field(default_factory=list)

    @classmethod
    def from_node(cls, node: EvaluationNode) -> Mser:
        return cls(
            value=node.value,
            score=node.score,
            size=node.size,
            pixels=node.pixels,
            mean=node.mean,
            cov=node.cov,
        )

    def to_mask(self, shape: tuple[int, ...]) -> np.ndarray:
        """Render the region as a boolean mask, assuming pixel ids are flat indices."""
        mask = np.zeros(int(np.prod(shape)), dtype=bool)
        mask[np.fromiter(self.pixels, dtype=np.int64, count=len(self.pixels))] = True
        return mask.reshape(shape)

    def __repr__(self) -> str:
        return (
            f"Mser(value={self.value!r}, size={self.size}, score={self.score:.4f}, "
            f"children={len(self.children)})"
        )
