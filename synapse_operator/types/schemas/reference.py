from marshmallow import fields, validate
from synapse_operator.types.base import BaseSchema
from synapse_operator.types.models.reference import ResourceReference


class ResourceReferenceSchema(BaseSchema):
    __model__ = ResourceReference

    name = fields.Str(data_key="name", required=True, validate=validate.Length(min=1))
    namespace = fields.Str(data_key="namespace", allow_none=True, load_default=None)
