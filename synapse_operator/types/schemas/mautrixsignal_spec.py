from marshmallow import fields
from synapse_operator.types.base import BaseSchema
from synapse_operator.types.models.mautrixsignal_spec import MautrixSignalSpec
from synapse_operator.types.schemas.reference import ResourceReferenceSchema


class MautrixSignalSpecSchema(BaseSchema):
    __model__ = MautrixSignalSpec

    synapse = fields.Nested(ResourceReferenceSchema(), data_key="synapse", required=True)
    config_map = fields.Nested(
        ResourceReferenceSchema(),
        data_key="configMap",
        allow_none=True,
        load_default=None,
    )
