from typing import Any, Dict, List, Optional, Tuple
from synapse_operator.types.base import BaseModel

STATE_RUNNING = "RUNNING"
STATE_FAILED = "FAILED"
STATE_PENDING = "PENDING"


class StatusRecord(BaseModel):
    """Status substate of a resource.

    Only the attributes named in ``FIELDS`` take part in equality. A field
    left as ``None`` on a candidate record means "not set by this writer":
    it is skipped when the record is merged over a persisted one, so a
    writer never overwrites a field it does not own (e.g. a trigger flag set
    concurrently by another controller).
    """

    FIELDS: Tuple[str, ...] = ()

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        for field in self.FIELDS:
            self.__dict__.setdefault(field, None)

    __hash__ = None

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, StatusRecord):
            return NotImplemented
        return not self.diff(other)

    def diff(self, other: "StatusRecord") -> List[str]:
        """Names of the fields whose values differ from `other`."""
        return [
            field
            for field in self.FIELDS
            if getattr(self, field, None) != getattr(other, field, None)
        ]

    def set_fields(self) -> Dict[str, Any]:
        return {
            field: getattr(self, field)
            for field in self.FIELDS
            if getattr(self, field, None) is not None
        }

    def merged(self, candidate: "StatusRecord") -> "StatusRecord":
        """Return a copy of this record with the candidate's set fields applied."""
        values = {field: getattr(self, field, None) for field in self.FIELDS}
        values.update(candidate.set_fields())
        return self.__class__(**values)


class ResourceStatus(StatusRecord):
    """Status shared by every kind managed by the operator."""

    FIELDS = ("state", "reason", "needs_reconcile")

    state: Optional[str]
    reason: Optional[str]
    needs_reconcile: Optional[bool]


class SynapseStatus(ResourceStatus):
    FIELDS = ResourceStatus.FIELDS + ("homeserver_configuration", "bridges")

    homeserver_configuration: Optional[Dict[str, Any]]
    bridges: Optional[Dict[str, Any]]
