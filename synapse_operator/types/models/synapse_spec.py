from typing import Optional
from synapse_operator.types.base import BaseModel
from synapse_operator.types.models.reference import ResourceReference


class SynapseHomeserverValues(BaseModel):
    server_name: str
    report_stats: bool


class SynapseHomeserver(BaseModel):
    config_map: Optional[ResourceReference]
    values: Optional[SynapseHomeserverValues]


class SynapseSpec(BaseModel):
    homeserver: SynapseHomeserver
