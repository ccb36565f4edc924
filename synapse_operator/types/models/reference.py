from typing import Optional
from synapse_operator.types.base import BaseModel


class ResourceReference(BaseModel):
    """Reference to a namespaced object by name."""

    name: str
    namespace: Optional[str]
