"""Call cost engine: geographic rate resolution and cost aggregation."""

from .core.engine import CostEngine
from .core.container import DIContainer

__all__ = [
    "CostEngine",
    "DIContainer",
    "domain",
    "rating",
    "analytics",
    "estimation",
    "storage",
    "core",
    "utils",
]
