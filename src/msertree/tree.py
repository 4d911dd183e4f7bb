"""MSER tree assembled from the minima found during evaluation."""

import logging
from collections.abc import Iterator

from msertree.core import Mser
from msertree.evaluation import EvaluationNode, ResultSink
from msertree.utils import validate_size_range, warn_on_diversity

logger = logging.getLogger(__name__)


class MserTree(ResultSink):
    """Collects accepted MSERs and nests them by containment.

    Parameters
    ----------
    min_size : int, default=1
        Smallest accepted region size in pixels
    max_size : int, optional
        Largest accepted region size in pixels, unbounded if omitted
    max_var : float, default=1.0
        Largest accepted stability score
    min_diversity : float, default=0.0
        Minimum relative size difference between a region and a nested one;
        nested regions closer than this are collapsed by prune_duplicates
    """

    def __init__(
        self,
        min_size: int = 1,
        max_size: int | None = None,
        max_var: float = 1.0,
        min_diversity: float = 0.0,
    ) -> None:
        validate_size_range(min_size, max_size)
        if max_var < 0:
            raise ValueError(f"max_var must be non-negative, got {max_var}")
        if not 0 <= min_diversity < 1:
            raise ValueError(f"min_diversity must be in [0, 1), got {min_diversity}")
        warn_on_diversity(min_diversity)

        self.min_size = min_size
        self.max_size = max_size
        self.max_var = max_var
        self.min_diversity = min_diversity
        self._roots: list[Mser] = []
        self._nodes: list[Mser] = []
        self._seen: set[int] = set()

    def accepts(self, node: EvaluationNode) -> bool:
        if node.size < self.min_size:
            return False
        if self.max_size is not None and node.size > self.max_size:
            return False
        return node.score <= self.max_var

    def report_candidate(self, node: EvaluationNode) -> Mser | None:
        if node.index in self._seen:
            logger.debug("Ignoring repeated report of %r", node)
            return None
        self._seen.add(node.index)
        if not self.accepts(node):
            return None

        mser = Mser.from_node(node)
        mser.children = list(node.candidates)
        for child in mser.children:
            child.parent = mser
        self._roots = [root for root in self._roots if root not in mser.children]
        self._roots.append(mser)
        self._nodes.append(mser)
        return mser

    def prune_duplicates(self) -> None:
        """Collapse nested regions whose size is too close to their parent's."""
        kept: list[Mser] = []
        for root in self._roots:
            self._prune_children(root, kept)
        removed = len(self._nodes) - len(kept) - len(self._roots)
        self._nodes = kept + self._roots
        logger.debug("Pruned %d duplicate regions, %d remain", removed, len(self._nodes))

    def _prune_children(self, mser: Mser, kept: list[Mser]) -> None:
        valid: list[Mser] = []
        pending = list(mser.children)
        # Children of collapsed regions are appended and examined in turn.
        for child in pending:
            if (mser.size - child.size) / mser.size > self.min_diversity:
                valid.append(child)
                self._prune_children(child, kept)
            else:
                for grandchild in child.children:
                    grandchild.parent = mser
                pending.extend(child.children)
        mser.children = valid
        kept.extend(valid)

    def roots(self) -> list[Mser]:
        return list(self._roots)

    def __iter__(self) -> Iterator[Mser]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)
