"""MSER detection engine.

This module implements msertree's public processor:
- MserDetector: main processor class with configure/run interface
- Incremental mode: a component tree builder calls start/emit/finish
- Batch mode: run consumes an iterable of finalization events
"""

import logging
import time
from collections.abc import Iterable
from typing import Any

from msertree.callback import CompositeCallback, MserCallback, ProcessingStats
from msertree.config import MserConfig
from msertree.core import ComponentRecord
from msertree.evaluation import EvaluationNode, MserEvaluator, NodeArena
from msertree.ordering import ValueOrdering, ordering_for
from msertree.tree import MserTree

logger = logging.getLogger(__name__)


class MserDetector:
    """Maximally stable extremal region detector.

    Consumes the finalization events of a component tree builder, in
    increasing threshold order, and assembles the resulting MSER tree.

    Examples
    --------
    >>> detector = MserDetector(delta=2, min_size=10)
    >>> detector.configure()
    >>> tree = detector.run(builder.components(image))

    >>> # Driven incrementally by a builder
    >>> detector.start()
    >>> for component in builder.components(image):
    ...     detector.emit(component)
    >>> tree = detector.finish()
    """

    def __init__(
        self, config: MserConfig | None = None, name: str = "MserDetector", **overrides: Any
    ) -> None:
        """Initialize the detector.

        Parameters
        ----------
        config : MserConfig, optional
            Detection parameters, defaults to MserConfig()
        name : str, default="MserDetector"
            Name of the detector for logging/debugging
        **overrides
            Individual MserConfig fields overriding ``config``
        """
        if config is not None and not isinstance(config, MserConfig):
            raise TypeError("config must be an MserConfig")
        base = config if config is not None else MserConfig()
        self.config = MserConfig(**{**base.model_dump(), **overrides}) if overrides else base
        self.name = name

        self.ordering: ValueOrdering | None = None
        self.arena: NodeArena | None = None
        self._configured = False
        self._evaluator: MserEvaluator | None = None
        self._tree: MserTree | None = None
        self._callback: CompositeCallback | None = None
        self._stats: ProcessingStats | None = None

    def configure(self, ordering: ValueOrdering | None = None) -> None:
        """Configure the threshold ordering.

        Parameters
        ----------
        ordering : ValueOrdering, optional
            Custom ordering, e.g. a LevelOrdering over enumerated values.
            Derived from ``config.delta`` and ``config.dark_to_bright`` if omitted.
        """
        if ordering is None:
            ordering = ordering_for(self.config.delta, self.config.dark_to_bright)
        elif not isinstance(ordering, ValueOrdering):
            raise TypeError("ordering must be a ValueOrdering")
        self.ordering = ordering
        self._configured = True

    @property
    def running(self) -> bool:
        return self._evaluator is not None

    def start(self, callbacks: list[MserCallback] | None = None, total: int = 0) -> None:
        """Open a detection session."""
        if not self._configured:
            raise RuntimeError(
                f"Detector '{self.name}' must be configured before use. Call detector.configure()"
            )
        if self.running:
            raise RuntimeError(f"Detector '{self.name}' is already running")

        self._callback = CompositeCallback(callbacks or [])
        self._stats = ProcessingStats()
        self._stats.total_components = total
        self._stats.start_time = time.time()
        self._tree = MserTree(
            min_size=self.config.min_size,
            max_size=self.config.max_size,
            max_var=self.config.max_var,
            min_diversity=self.config.min_diversity,
        )
        self.arena = NodeArena()
        self._evaluator = MserEvaluator(
            self.ordering, self._tree, self.arena, callback=self._callback, stats=self._stats
        )
        logger.debug("%s started with %r", self.name, self.ordering)
        self._callback.on_processing_start(self._stats)

    def emit(self, component: ComponentRecord) -> EvaluationNode:
        """Evaluate one finalized component."""
        if not self.running:
            raise RuntimeError(f"Detector '{self.name}' is not running. Call detector.start()")
        node = self._evaluator.evaluate(component)
        index = self._stats.processed_components
        self._stats.processed_components = index + 1
        self._callback.on_component(node, index)
        return node

    def finish(self) -> MserTree:
        """Close the session and return the pruned MSER tree."""
        if not self.running:
            raise RuntimeError(f"Detector '{self.name}' is not running. Call detector.start()")
        tree = self._tree
        tree.prune_duplicates()
        self._stats.end_time = time.time()
        self._stats.nodes_created = len(self.arena)
        self._callback.on_processing_end(self._stats)
        logger.debug(
            "%s finished: %d components, %d regions",
            self.name,
            self._stats.processed_components,
            len(tree),
        )
        self._close()
        return tree

    def run(
        self,
        components: Iterable[ComponentRecord],
        callbacks: list[MserCallback] | None = None,
    ) -> MserTree:
        """Run detection over a stream of finalization events.

        Parameters
        ----------
        components : Iterable[ComponentRecord]
            Finalized components in increasing threshold order. A generator may
            yield the same record several times as it keeps growing.
        callbacks : list[MserCallback], optional
            Callbacks for progress tracking

        Returns
        -------
        MserTree
            Detected regions
        """
        total = len(components) if hasattr(components, "__len__") else 0
        self.start(callbacks, total=total)
        try:
            for component in components:
                self.emit(component)
        except Exception as e:
            self._callback.on_processing_error(e, self._stats)
            self._close()
            raise
        return self.finish()

    def _close(self) -> None:
        self._evaluator = None
        self._tree = None
        self._callback = None
        self._stats = None

    def summary(self) -> None:
        """Print detector configuration summary."""
        print(f"MSER Detector: {self.name}")
        print("=" * 50)
        print(f"Delta:          {self.config.delta}")
        print(f"Size range:     {self.config.min_size} .. {self.config.max_size or 'unbounded'}")
        print(f"Max variation:  {self.config.max_var}")
        print(f"Min diversity:  {self.config.min_diversity}")
        print(f"Direction:      {'dark to bright' if self.config.dark_to_bright else 'bright to dark'}")
        print(f"Configured:     {self._configured}")
        if self._configured:
            print(f"Ordering:       {self.ordering!r}")
        print("=" * 50)
