from .base import Store, ReconcileRequest
from .kinds import KindInfo, KINDS, lookup
from .kube import KubeStore

__all__ = [
    "Store",
    "ReconcileRequest",
    "KindInfo",
    "KINDS",
    "lookup",
    "KubeStore",
]
