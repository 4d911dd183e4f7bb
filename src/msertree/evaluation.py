"""Online MSER evaluation over a growing component tree.

Every time the component tree builder finalizes a component, the evaluator
snapshots it into an evaluation node, links it to the nodes of its previous
self and of the components merged into it, scores it against its history
``delta`` levels below and checks whether its children are local minima of
the score along their branch. Nodes are immutable once built, so every check
runs in a single pass over already-built history.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

import numpy as np

from msertree.core import ComponentRecord, Mser, PixelList
from msertree.ordering import ValueOrdering

if TYPE_CHECKING:
    from msertree.callback import CompositeCallback, ProcessingStats

logger = logging.getLogger(__name__)


class NodeKind(Enum):
    """Construction mode of an evaluation node."""

    FINALIZED = "finalized"
    CONTINUATION = "continuation"


@dataclass(eq=False)
class EvaluationNode:
    """One node of the evaluation tree.

    Finalized nodes own a snapshot of the component pixels and statistics.
    Continuation nodes relay an existing node at their parent's threshold
    value and alias its pixels, statistics and candidate list. All links
    are indices into the owning NodeArena.
    """

    index: int
    kind: NodeKind
    value: Any
    size: int
    pixels: PixelList
    mean: np.ndarray
    cov: np.ndarray
    candidates: list[Mser]
    children: list[int] = field(default_factory=list)
    history_child: int | None = None
    parent: int | None = None
    relayed: int | None = None
    score: float = 0.0
    score_valid: bool = False

    @property
    def is_continuation(self) -> bool:
        return self.kind is NodeKind.CONTINUATION

    def __repr__(self) -> str:
        score = f"{self.score:.4f}" if self.score_valid else "--"
        return (
            f"EvaluationNode(#{self.index} {self.kind.value}, value={self.value!r}, "
            f"size={self.size}, score={score})"
        )


class NodeArena:
    """Owning storage for evaluation nodes."""

    def __init__(self) -> None:
        self._nodes: list[EvaluationNode] = []

    def add(self, **fields: Any) -> EvaluationNode:
        node = EvaluationNode(index=len(self._nodes), **fields)
        self._nodes.append(node)
        return node

    def __getitem__(self, index: int) -> EvaluationNode:
        return self._nodes[index]

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[EvaluationNode]:
        return iter(self._nodes)

    def set_parent(self, child: int, parent: int) -> None:
        node = self._nodes[child]
        if node.parent is not None:
            raise RuntimeError(f"node #{child} already has parent #{node.parent}")
        node.parent = parent

    def parent(self, node: EvaluationNode) -> EvaluationNode | None:
        return None if node.parent is None else self._nodes[node.parent]

    def history_child(self, node: EvaluationNode) -> EvaluationNode | None:
        return None if node.history_child is None else self._nodes[node.history_child]

    def history(self, node: EvaluationNode) -> Iterator[EvaluationNode]:
        """Iterate the history chain below ``node``, nearest first."""
        below = self.history_child(node)
        while below is not None:
            yield below
            below = self.history_child(below)

    def describe(self, node: EvaluationNode) -> str:
        """Render ``node`` and its history chain for debugging."""
        steps = []
        for below in self.history(node):
            score = f"s {below.score}" if below.score_valid else "s --"
            steps.append(f"({below.value}; {below.size} {score})")
        return f"{node!r}, history = [{', '.join(steps)}]"


class ResultSink(ABC):
    """Receives nodes found to be local minima of the stability score."""

    @abstractmethod
    def report_candidate(self, node: EvaluationNode) -> Mser | None:
        """Handle a newly found minimum.

        The sink must not modify ``node``. Returning an Mser makes it the
        single candidate of the node's subtree; returning None rejects it.
        """


class MserEvaluator:
    """Builds evaluation nodes from finalized components and detects minima.

    Parameters
    ----------
    ordering : ValueOrdering
        Comparator and delta step over threshold values
    sink : ResultSink
        Receiver of found minima
    arena : NodeArena, optional
        Storage for the nodes, a new one is created if omitted
    callback : CompositeCallback, optional
        Notified about accepted and rejected candidates
    stats : ProcessingStats, optional
        Counters updated while evaluating
    """

    def __init__(
        self,
        ordering: ValueOrdering,
        sink: ResultSink,
        arena: NodeArena | None = None,
        callback: CompositeCallback | None = None,
        stats: ProcessingStats | None = None,
    ) -> None:
        if not isinstance(ordering, ValueOrdering):
            raise TypeError("ordering must be a ValueOrdering")
        if not isinstance(sink, ResultSink):
            raise TypeError("sink must be a ResultSink")
        self.ordering = ordering
        self.sink = sink
        self.arena = arena if arena is not None else NodeArena()
        self.callback = callback
        self.stats = stats

    def evaluate(self, component: ComponentRecord) -> EvaluationNode:
        """Handle one finalization event of ``component``.

        The component's merged children are consumed and the new node is
        registered on the component for its next finalization.
        """
        size = component.size
        if size == 0:
            raise RuntimeError("cannot finalize an empty component")

        # Link: relay the previous self first, then every merged component.
        children: list[EvaluationNode] = []
        history: EvaluationNode | None = None
        history_size = 0
        if component.evaluation_node is not None:
            previous = self.arena[component.evaluation_node]
            history_size = previous.size
            history = self._relay(previous, component.value)
            children.append(history)
        for record in component.children:
            if record.evaluation_node is None:
                raise RuntimeError(f"merged {record!r} has no evaluation node")
            relay = self._relay(self.arena[record.evaluation_node], component.value)
            children.append(relay)
            if record.size > history_size:
                history = relay
                history_size = record.size

        mean = component.sum_pos / size
        cov = component.sum_squ_pos / size - np.outer(mean, mean)[np.triu_indices(component.n)]
        node = self.arena.add(
            kind=NodeKind.FINALIZED,
            value=component.value,
            size=size,
            pixels=component.pixels.copy(),
            mean=mean,
            cov=cov,
            candidates=[],
            children=[child.index for child in children],
            history_child=None if history is None else history.index,
        )
        for child in children:
            self.arena.set_parent(child.index, node.index)
        component.evaluation_node = node.index
        component.children.clear()

        node.score_valid = self._compute_score(node, is_intermediate=False)

        # Evaluate: children scores can only be judged once the parent score is known.
        if node.score_valid:
            for child in children:
                self._evaluate_local_minimum(child)

        # A single child cannot open a new branch, so its list is shared.
        if len(children) == 1:
            node.candidates = children[0].candidates
        else:
            node.candidates = [mser for child in children for mser in child.candidates]

        logger.debug("Finalized %r with %d children", node, len(children))
        return node

    def _relay(self, child: EvaluationNode, value: Any) -> EvaluationNode:
        """Wrap ``child`` in a continuation node at ``value``."""
        relay = self.arena.add(
            kind=NodeKind.CONTINUATION,
            value=value,
            size=child.size,
            pixels=child.pixels,
            mean=child.mean,
            cov=child.cov,
            candidates=child.candidates,
            children=[child.index],
            history_child=child.index,
            relayed=child.index,
        )
        self.arena.set_parent(child.index, relay.index)
        # The relayed node is never a minimum here: its score is at least the relay's.
        relay.score_valid = self._compute_score(relay, is_intermediate=True)
        return relay

    def _compute_score(self, node: EvaluationNode, is_intermediate: bool) -> bool:
        """Score ``node`` as |Q(value - delta)| growth relative to its size.

        Walks the history chain to the first node at or below
        ``value - delta``. On an exact hit, a continuation node skips the
        relay found there in favour of the node it relays. Returns False when
        the history is too short.
        """
        compare = self.ordering.compare
        target = self.ordering.value_minus_delta(node.value)

        below = self.arena.history_child(node)
        while below is not None and compare(below.value, target) > 0:
            below = self.arena.history_child(below)
        if below is None:
            logger.debug("No history %r below %r for %r", target, node.value, node)
            return False
        if is_intermediate and compare(below.value, target) == 0 and below.history_child is not None:
            below = self.arena[below.history_child]

        node.score = (node.size - below.size) / node.size
        if self.stats is not None:
            self.stats.valid_scores += 1
        return True

    def _require_history(self, node: EvaluationNode) -> EvaluationNode:
        below = self.arena.history_child(node)
        if below is None:
            raise RuntimeError(f"{node!r} has a valid score but no history")
        return below

    def _evaluate_local_minimum(self, node: EvaluationNode) -> None:
        """Report ``node`` if its score is a local minimum along its branch.

        Called once, right after the parent's score became valid.
        """
        if not node.score_valid:
            return

        below = self._require_history(node)
        while below.score_valid and below.size == node.size:
            below = self._require_history(below)

        if below.score_valid:
            below = self._require_history(below)
            parent = self.arena.parent(node)
            if parent is None:
                raise RuntimeError(f"{node!r} has no parent to compare against")
            if node.score <= below.score and node.score < parent.score:
                self._report(node)
        else:
            # Bottom of the branch lies more than delta below: its size there is zero.
            target = self.ordering.value_minus_delta(node.value)
            if self.ordering.compare(target, below.value) > 0:
                self._report(node)

    def _report(self, node: EvaluationNode) -> None:
        mser = self.sink.report_candidate(node)
        if mser is None:
            logger.debug("Rejected minimum %r", node)
            if self.stats is not None:
                self.stats.candidates_rejected += 1
            if self.callback is not None:
                self.callback.on_candidate_rejected(node)
            return

        node.candidates[:] = [mser]
        logger.debug("Found minimum %r", node)
        if self.stats is not None:
            self.stats.candidates_found += 1
        if self.callback is not None:
            self.callback.on_candidate_found(mser, node)
