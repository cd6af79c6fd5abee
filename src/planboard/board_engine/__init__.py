"""Board engine: persistence, ordering, dependencies and the services built on them."""

from .accounts import AccountService
from .dependencies import DependencyGraph
from .engine import BoardEngine
from .planner import PlannerService
from .positions import PositionManager
from .store import BoardStore, StoreTx

__all__ = [
    "AccountService",
    "BoardEngine",
    "BoardStore",
    "DependencyGraph",
    "PlannerService",
    "PositionManager",
    "StoreTx",
]
