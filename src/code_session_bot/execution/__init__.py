from .engine import ExecutionEngine
from .local_engine import LocalEngine
from .remote_engine import RemoteEngine
from .types import ExecutionOutcome, ExecutionRequest, OutcomeKind

__all__ = [
    "ExecutionEngine",
    "ExecutionOutcome",
    "ExecutionRequest",
    "LocalEngine",
    "OutcomeKind",
    "RemoteEngine",
]
