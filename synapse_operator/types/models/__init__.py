from .reference import ResourceReference
from .synapse_spec import SynapseSpec, SynapseHomeserver, SynapseHomeserverValues
from .heisenbridge_spec import HeisenbridgeSpec
from .mautrixsignal_spec import MautrixSignalSpec
from .status import (
    STATE_RUNNING,
    STATE_FAILED,
    STATE_PENDING,
    StatusRecord,
    ResourceStatus,
    SynapseStatus,
)
from .synapse_resources import SynapseResources
from .heisenbridge_resources import HeisenbridgeResources
from .mautrixsignal_resources import MautrixSignalResources

__all__ = [
    "ResourceReference",
    "SynapseSpec",
    "SynapseHomeserver",
    "SynapseHomeserverValues",
    "HeisenbridgeSpec",
    "MautrixSignalSpec",
    "STATE_RUNNING",
    "STATE_FAILED",
    "STATE_PENDING",
    "StatusRecord",
    "ResourceStatus",
    "SynapseStatus",
    "SynapseResources",
    "HeisenbridgeResources",
    "MautrixSignalResources",
]
