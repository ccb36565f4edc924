from typing import Optional
from synapse_operator.types.base import BaseModel
from synapse_operator.types.models.reference import ResourceReference


class HeisenbridgeSpec(BaseModel):
    synapse: ResourceReference
    config_map: Optional[ResourceReference]
    verbose_level: int
