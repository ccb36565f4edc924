from typing import Dict, Type
from marshmallow import fields
from synapse_operator.types.base import BaseSchema
from synapse_operator.types.models.status import (
    StatusRecord,
    ResourceStatus,
    SynapseStatus,
)


class ResourceStatusSchema(BaseSchema):
    __model__ = ResourceStatus

    state = fields.Str(data_key="state", allow_none=True, load_default=None)
    reason = fields.Str(data_key="reason", allow_none=True, load_default=None)
    needs_reconcile = fields.Bool(
        data_key="needsReconcile", allow_none=True, load_default=None
    )


class SynapseStatusSchema(ResourceStatusSchema):
    __model__ = SynapseStatus

    homeserver_configuration = fields.Dict(
        keys=fields.Str(),
        data_key="homeserverConfiguration",
        allow_none=True,
        load_default=None,
    )
    bridges = fields.Dict(
        keys=fields.Str(),
        data_key="bridges",
        allow_none=True,
        load_default=None,
    )


_STATUS_SCHEMAS: Dict[Type[StatusRecord], Type[BaseSchema]] = {
    ResourceStatus: ResourceStatusSchema,
    SynapseStatus: SynapseStatusSchema,
}


def status_schema_for(record_type: Type[StatusRecord]) -> BaseSchema:
    """Return a schema instance able to load and dump `record_type`."""
    for cls in record_type.__mro__:
        if cls in _STATUS_SCHEMAS:
            return _STATUS_SCHEMAS[cls]()
    raise KeyError(f"No status schema registered for {record_type.__name__}")
