from typing import Dict, Mapping, Optional
import kopf
from synapse_operator.utils.errors import InvariantViolation


def _identity(obj: Mapping) -> str:
    meta = obj.get("metadata", {})
    return f"{obj.get('kind')} {meta.get('namespace')}/{meta.get('name')}"


class OwnershipManager:
    """Links dependent objects to the top-level resource that created them.

    The controlling owner reference lets the API server's garbage collector
    delete the children when the parent goes away.
    """

    @staticmethod
    def controller_of(obj: Mapping) -> Optional[Dict]:
        """Return the controlling owner reference of `obj`, if any."""
        for reference in obj.get("metadata", {}).get("ownerReferences") or []:
            if reference.get("controller"):
                return reference
        return None

    @staticmethod
    def owner_reference(parent: Mapping) -> Dict:
        return dict(
            kopf.build_owner_reference(
                parent, controller=True, block_owner_deletion=True
            )
        )

    def is_controlled_by(self, child: Mapping, parent: Mapping) -> bool:
        reference = self.controller_of(child)
        return bool(reference) and reference.get("uid") == parent["metadata"]["uid"]

    def assign_owner(self, child: Dict, parent: Mapping) -> Dict:
        """Make `parent` the controlling owner of `child` (in place).

        The child's namespace defaults to the parent's. Calling it again for
        the same parent is a no-op.

        Raises:
            InvariantViolation: the child lives in another namespace than the
                parent, or is already controlled by a different owner.
        """
        parent_meta = parent["metadata"]
        meta = child.setdefault("metadata", {})

        namespace = meta.setdefault("namespace", parent_meta.get("namespace"))
        if namespace != parent_meta.get("namespace"):
            raise InvariantViolation(
                f"{_identity(child)} cannot be owned by {_identity(parent)}: "
                f"owners cannot own objects across namespaces"
            )

        current = self.controller_of(child)
        if current is not None:
            if current.get("uid") != parent_meta["uid"]:
                raise InvariantViolation(
                    f"{_identity(child)} is already controlled by "
                    f"{current.get('kind')} {current.get('name')}"
                )
            return child

        references = [
            ref
            for ref in meta.get("ownerReferences") or []
            if ref.get("uid") != parent_meta["uid"]
        ]
        references.append(self.owner_reference(parent))
        meta["ownerReferences"] = references
        return child
