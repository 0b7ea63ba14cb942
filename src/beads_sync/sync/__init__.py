"""Client side of synchronization with the Backend"""

from .client import BackendClient
from .mutator import OptimisticMutator
from .reconciler import PushReconciler, websocket_channel
from .session import SyncSession

__all__ = [
    "BackendClient",
    "OptimisticMutator",
    "PushReconciler",
    "websocket_channel",
    "SyncSession",
]
