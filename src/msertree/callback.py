"""Callbacks for progress tracking and metrics collection during MSER detection."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from msertree.core import Mser
    from msertree.evaluation import EvaluationNode


class ProcessingStats:
    """Counters and timings of one detection run."""

    def __init__(self) -> None:
        self.start_time: float | None = None
        self.end_time: float | None = None
        self.total_components = 0
        self.processed_components = 0
        self.nodes_created = 0
        self.valid_scores = 0
        self.candidates_found = 0
        self.candidates_rejected = 0

    @property
    def elapsed_time(self) -> float:
        if self.start_time is None:
            return 0.0
        end = self.end_time if self.end_time is not None else time.time()
        return end - self.start_time

    @property
    def components_per_second(self) -> float:
        elapsed = self.elapsed_time
        return self.processed_components / elapsed if elapsed > 0 else 0.0


class MserCallback:
    """Base class for detection callbacks. All hooks are optional."""

    def on_processing_start(self, stats: ProcessingStats) -> None:
        pass

    def on_processing_end(self, stats: ProcessingStats) -> None:
        pass

    def on_processing_error(self, error: Exception, stats: ProcessingStats) -> None:
        pass

    def on_component(self, node: EvaluationNode, index: int) -> None:
        pass

    def on_candidate_found(self, mser: Mser, node: EvaluationNode) -> None:
        pass

    def on_candidate_rejected(self, node: EvaluationNode) -> None:
        pass


class CompositeCallback(MserCallback):
    """Forwards every hook to a list of callbacks."""

    def __init__(self, callbacks: list[MserCallback]) -> None:
        for callback in callbacks:
            if not isinstance(callback, MserCallback):
                raise TypeError(f"callbacks must be MserCallback instances, got {type(callback)}")
        self.callbacks = list(callbacks)

    def on_processing_start(self, stats: ProcessingStats) -> None:
        for callback in self.callbacks:
            callback.on_processing_start(stats)

    def on_processing_end(self, stats: ProcessingStats) -> None:
        for callback in self.callbacks:
            callback.on_processing_end(stats)

    def on_processing_error(self, error: Exception, stats: ProcessingStats) -> None:
        for callback in self.callbacks:
            callback.on_processing_error(error, stats)

    def on_component(self, node: EvaluationNode, index: int) -> None:
        for callback in self.callbacks:
            callback.on_component(node, index)

    def on_candidate_found(self, mser: Mser, node: EvaluationNode) -> None:
        for callback in self.callbacks:
            callback.on_candidate_found(mser, node)

    def on_candidate_rejected(self, node: EvaluationNode) -> None:
        for callback in self.callbacks:
            callback.on_candidate_rejected(node)


class ProgressCallback(MserCallback):
    """Prints progress while components are evaluated.

    Parameters
    ----------
    verbose : bool, default=True
        Print anything at all
    every : int, default=1000
        Print a progress line every ``every`` components
    """

    def __init__(self, verbose: bool = True, every: int = 1000) -> None:
        if every < 1:
            raise ValueError(f"every must be positive, got {every}")
        self.verbose = verbose
        self.every = every
        self._start: float | None = None

    def on_processing_start(self, stats: ProcessingStats) -> None:
        self._start = time.time()
        if self.verbose:
            if stats.total_components:
                print(f"Starting MSER evaluation: {stats.total_components} components")
            else:
                print("Starting MSER evaluation")

    def on_component(self, node: EvaluationNode, index: int) -> None:
        if self.verbose and (index + 1) % self.every == 0:
            elapsed = time.time() - self._start if self._start else 0.0
            rate = (index + 1) / elapsed if elapsed > 0 else 0.0
            print(f"  {index + 1} components evaluated ({rate:.1f} components/sec)")

    def on_candidate_found(self, mser: Mser, node: EvaluationNode) -> None:
        if self.verbose:
            print(f"  MSER at {mser.value}: size={mser.size}, score={mser.score:.4f}")

    def on_processing_end(self, stats: ProcessingStats) -> None:
        if self.verbose:
            print(
                f"Completed: {stats.processed_components} components, "
                f"{stats.candidates_found} regions in {stats.elapsed_time:.2f}s"
            )

    def on_processing_error(self, error: Exception, stats: ProcessingStats) -> None:
        if self.verbose:
            print(f"Processing failed after {stats.processed_components} components: {error}")


class MetricsCallback(MserCallback):
    """Collects candidate metrics for later inspection."""

    def __init__(self) -> None:
        self.found: list[dict[str, Any]] = []
        self.rejected: list[dict[str, Any]] = []
        self.summary: dict[str, Any] = {}

    def on_candidate_found(self, mser: Mser, node: EvaluationNode) -> None:
        self.found.append({"value": mser.value, "size": mser.size, "score": mser.score})

    def on_candidate_rejected(self, node: EvaluationNode) -> None:
        self.rejected.append({"value": node.value, "size": node.size, "score": node.score})

    def on_processing_end(self, stats: ProcessingStats) -> None:
        self.summary = {
            "components": stats.processed_components,
            "nodes": stats.nodes_created,
            "valid_scores": stats.valid_scores,
            "found": stats.candidates_found,
            "rejected": stats.candidates_rejected,
            "elapsed_time": stats.elapsed_time,
        }
