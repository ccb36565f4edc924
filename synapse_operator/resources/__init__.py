from .base import BaseResource
from .bridge import BridgeRegistration
from .synapse import Synapse
from .heisenbridge import Heisenbridge
from .mautrixsignal import MautrixSignal

__all__ = [
    "BaseResource",
    "BridgeRegistration",
    "Synapse",
    "Heisenbridge",
    "MautrixSignal",
]
