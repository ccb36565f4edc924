from .reference import ResourceReferenceSchema
from .synapse_spec import (
    SynapseSpecSchema,
    SynapseHomeserverSchema,
    SynapseHomeserverValuesSchema,
)
from .heisenbridge_spec import HeisenbridgeSpecSchema
from .mautrixsignal_spec import MautrixSignalSpecSchema
from .status import ResourceStatusSchema, SynapseStatusSchema, status_schema_for

__all__ = [
    "ResourceReferenceSchema",
    "SynapseSpecSchema",
    "SynapseHomeserverSchema",
    "SynapseHomeserverValuesSchema",
    "HeisenbridgeSpecSchema",
    "MautrixSignalSpecSchema",
    "ResourceStatusSchema",
    "SynapseStatusSchema",
    "status_schema_for",
]
