from .config import BotConfig
from .dispatcher import Dispatcher
from .execution.local_engine import LocalEngine
from .execution.remote_engine import RemoteEngine
from .execution.types import ExecutionOutcome, ExecutionRequest, OutcomeKind
from .languages import Language
from .resolver import resolve
from .sessions import RealSession, ReferenceSession, RepliedSession, SessionStore

__all__ = [
    "BotConfig",
    "Dispatcher",
    "ExecutionOutcome",
    "ExecutionRequest",
    "Language",
    "LocalEngine",
    "OutcomeKind",
    "RealSession",
    "ReferenceSession",
    "RemoteEngine",
    "RepliedSession",
    "SessionStore",
    "resolve",
]
