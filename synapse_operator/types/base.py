from types import SimpleNamespace
from typing import Any, Dict, Type
from marshmallow import INCLUDE, Schema, post_load

JSON = Dict[str, Any]


class BaseModel(SimpleNamespace):
    """Attribute bag built from a resource payload by a schema's ``post_load``.

    Attributes use snake_case names; schemas map them to the camelCase keys
    of the Kubernetes payload through ``data_key``.
    """


class BaseSchema(Schema):
    """Schema for spec and status payloads of the operator's resources."""

    __model__: Type[BaseModel] = BaseModel
    """Class instantiated by ``load``."""

    class Meta:
        # Status carries keys written by kopf; specs may come from newer CRDs
        unknown = INCLUDE

    @post_load
    def make_object(self, data: JSON, **kwargs: Any) -> BaseModel:
        return self.__model__(**data)
