"""
Graph configuration.

`GraphConfig` gathers the tunables of an `ExpressionGraph` in one immutable
record. Graphs accept either a config object or keyword overrides:

    graph = ExpressionGraph(GraphConfig(workers=4))
    graph = ExpressionGraph(memory_budget=256 << 20, seed=1234)
"""

from dataclasses import dataclass, fields, replace
from typing import Any, Callable, Optional

from ...domain._types import ElementType


@dataclass(frozen=True)
class GraphConfig:
    """
    Configuration of an expression graph.

    Attributes
    ----------
    device : str
        Device string ("cpu" or "cuda:<n>") used for kernel lookup.
    default_type : ElementType | str
        Element type of leaves and scalar constants when none is given.
    workers : int
        Number of threads used by forward/backward traversals. 1 runs
        sequentially; larger values evaluate independent nodes of the same
        topological depth concurrently.
    memory_budget : Optional[int]
        Byte limit of the graph's buffer pool, or None for unbounded.
    reuse_buffers : bool
        Whether released buffers are recycled by the pool.
    debug_hook : Optional[Callable[[str, str, Any], None]]
        Called as ``hook(message, phase, array)`` by `debug` nodes, where
        phase is "forward" or "backward".
    seed : Optional[int]
        Seed of the graph's random generator (random initializers, dropout).
    """

    device: str = "cpu"
    default_type: Any = ElementType.FLOAT32
    workers: int = 1
    memory_budget: Optional[int] = None
    reuse_buffers: bool = True
    debug_hook: Optional[Callable[[str, str, Any], None]] = None
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "default_type", ElementType.parse(self.default_type))
        if int(self.workers) < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")
        if self.memory_budget is not None and self.memory_budget < 0:
            raise ValueError(f"memory_budget must be >= 0, got {self.memory_budget}")

    def with_overrides(self, **overrides: Any) -> "GraphConfig":
        """Return a copy with the given fields replaced."""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise TypeError(f"Unknown GraphConfig fields: {', '.join(sorted(unknown))}")
        return replace(self, **overrides)
