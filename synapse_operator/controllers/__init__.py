from .base import BaseReconciler
from .synapse import SynapseReconciler
from .heisenbridge import HeisenbridgeReconciler
from .mautrixsignal import MautrixSignalReconciler

__all__ = [
    "BaseReconciler",
    "SynapseReconciler",
    "HeisenbridgeReconciler",
    "MautrixSignalReconciler",
]
