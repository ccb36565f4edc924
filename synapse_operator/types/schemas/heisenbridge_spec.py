from marshmallow import fields, validate
from synapse_operator.types.base import BaseSchema
from synapse_operator.types.models.heisenbridge_spec import HeisenbridgeSpec
from synapse_operator.types.schemas.reference import ResourceReferenceSchema


class HeisenbridgeSpecSchema(BaseSchema):
    __model__ = HeisenbridgeSpec

    synapse = fields.Nested(ResourceReferenceSchema(), data_key="synapse", required=True)
    config_map = fields.Nested(
        ResourceReferenceSchema(),
        data_key="configMap",
        allow_none=True,
        load_default=None,
    )
    verbose_level = fields.Int(
        data_key="verboseLevel",
        allow_none=True,
        load_default=0,
        validate=validate.Range(min=0),
    )
