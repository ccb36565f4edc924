import logging
from typing import Dict, List, Optional
from synapse_operator.sensors import OperatorSensor
from synapse_operator.store import Store
from synapse_operator.types.models.status import StatusRecord
from synapse_operator.types.schemas.status import status_schema_for
from synapse_operator.utils.errors import NotFoundError
from synapse_operator.utils.helpers import json_pointer


class StatusPatcher:
    """Writes status records with the smallest possible patch."""

    store: Store

    def __init__(
        self,
        store: Store,
        sensor: Optional[OperatorSensor] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.store = store
        self.sensor = sensor or OperatorSensor()
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def load_status(body: Dict, record_type) -> StatusRecord:
        schema = status_schema_for(record_type)
        return schema.load(body.get("status") or {})

    async def update_status(
        self, kind: str, namespace: str, name: str, candidate: StatusRecord
    ) -> bool:
        """Merge `candidate` over the persisted status and write the difference.

        Only the fields set on the candidate can change. Returns whether a
        patch was issued.

        Raises:
            NotFoundError: the resource does not exist.
            ConflictError: the resource changed between read and write.
        """
        body = await self.store.get(kind, namespace, name)
        if body is None:
            raise NotFoundError(f"{kind} {namespace}/{name} not found", status=404)

        schema = status_schema_for(type(candidate))
        persisted = self.load_status(body, type(candidate))
        merged = persisted.merged(candidate)
        changed = merged.diff(persisted)
        if not changed:
            return False

        patch = self.prepare_status_patch(body, schema, merged, changed)
        await self.store.patch_status(kind, namespace, name, patch)
        self.logger.debug(
            f"Updated status of {kind} {namespace}/{name}: {', '.join(changed)}"
        )
        self.sensor.on_status_update(kind, name, namespace, changed)
        return True

    @staticmethod
    def prepare_status_patch(
        body: Dict, schema, record: StatusRecord, changed: List[str]
    ) -> List[Dict]:
        dumped = schema.dump(record)
        values = {}
        for field in changed:
            key = schema.fields[field].data_key or field
            values[key] = dumped.get(key)

        patch = [
            {
                "op": "replace",
                "path": "/metadata/resourceVersion",
                "value": body["metadata"]["resourceVersion"],
            }
        ]
        if not body.get("status"):
            patch.append(
                {
                    "op": "add",
                    "path": "/status",
                    "value": {k: v for k, v in values.items() if v is not None},
                }
            )
        else:
            for key, value in values.items():
                patch.append({"op": "add", "path": json_pointer("status", key), "value": value})
        return patch
