"""msertree: online maximally stable extremal region detection over component trees."""

from msertree.callback import (
    CompositeCallback,
    MetricsCallback,
    MserCallback,
    ProcessingStats,
    ProgressCallback,
)
from msertree.config import MserConfig
from msertree.core import ComponentRecord, Mser, PixelList
from msertree.evaluation import EvaluationNode, MserEvaluator, NodeArena, NodeKind, ResultSink
from msertree.model import MserDetector
from msertree.ordering import BrightToDark, DarkToBright, LevelOrdering, ValueOrdering, ordering_for
from msertree.tree import MserTree

__version__ = "0.1.0"

__all__ = [
    "BrightToDark",
    "ComponentRecord",
    "CompositeCallback",
    "DarkToBright",
    "EvaluationNode",
    "LevelOrdering",
    "MetricsCallback",
    "Mser",
    "MserCallback",
    "MserConfig",
    "MserDetector",
    "MserEvaluator",
    "MserTree",
    "NodeArena",
    "NodeKind",
    "PixelList",
    "ProcessingStats",
    "ProgressCallback",
    "ResultSink",
    "ValueOrdering",
    "ordering_for",
]
