import os
from typing import Any

_TRUE, _FALSE = {"True", "true", "yes", "1"}, {"False", "false", "no", "0"}


def _getenv(name: str, *default: Any) -> Any:
    try:
        v = os.environ[name]
        if v in _TRUE:
            return True
        elif v in _FALSE:
            return False
        else:
            return v
    except KeyError:
        pass
    if default:
        return default[0]
    raise KeyError(name)


# ------------------------------------------------
# ---- Defaults and environment variables ----
# ------------------------------------------------

#: Seconds to wait before re-running a pipeline that asked to be requeued
REQUEUE_DELAY_SECONDS = float(_getenv("REQUEUE_DELAY_SECONDS", 5.0))

#: Initial backoff in seconds after a pipeline failed with an error
ERROR_BACKOFF_SECONDS = float(_getenv("ERROR_BACKOFF_SECONDS", 2.0))

#: Upper bound for the exponential error backoff
ERROR_BACKOFF_MAX_SECONDS = float(_getenv("ERROR_BACKOFF_MAX_SECONDS", 300.0))

#: Interval of the periodic full resync of every managed resource
RESYNC_INTERVAL_SECONDS = float(_getenv("RESYNC_INTERVAL_SECONDS", 300.0))

#: How often a Synapse checks its status for reconcile requests from bridges
TRIGGER_POLL_SECONDS = float(_getenv("TRIGGER_POLL_SECONDS", 1.0))

#: Maximum number of concurrent kopf workers
WORKER_LIMIT = int(_getenv("WORKER_LIMIT", 4))

#: Container images for the managed workloads
SYNAPSE_IMAGE = _getenv("SYNAPSE_IMAGE", "matrixdotorg/synapse:v1.60.0")
HEISENBRIDGE_IMAGE = _getenv("HEISENBRIDGE_IMAGE", "hif1/heisenbridge:1.14")
MAUTRIXSIGNAL_IMAGE = _getenv("MAUTRIXSIGNAL_IMAGE", "dock.mau.dev/mautrix/signal:v0.4.1")
SIGNALD_IMAGE = _getenv("SIGNALD_IMAGE", "docker.io/signald/signald:0.23.0")

#: Size requested for persistent volume claims created by the operator
DEFAULT_STORAGE_SIZE = _getenv("DEFAULT_STORAGE_SIZE", "5Gi")

#: Expose Prometheus metrics over HTTP
METRICS_ENABLED = bool(_getenv("METRICS_ENABLED", False))

#: Port of the Prometheus metrics server
METRICS_PORT = int(_getenv("METRICS_PORT", 8000))


class Settings:
    """Operator settings"""

    requeue_delay_seconds: float = REQUEUE_DELAY_SECONDS
    error_backoff_seconds: float = ERROR_BACKOFF_SECONDS
    error_backoff_max_seconds: float = ERROR_BACKOFF_MAX_SECONDS
    resync_interval_seconds: float = RESYNC_INTERVAL_SECONDS
    trigger_poll_seconds: float = TRIGGER_POLL_SECONDS
    worker_limit: int = WORKER_LIMIT
    synapse_image: str = SYNAPSE_IMAGE
    heisenbridge_image: str = HEISENBRIDGE_IMAGE
    mautrixsignal_image: str = MAUTRIXSIGNAL_IMAGE
    signald_image: str = SIGNALD_IMAGE
    default_storage_size: str = DEFAULT_STORAGE_SIZE
    metrics_enabled: bool = METRICS_ENABLED
    metrics_port: int = METRICS_PORT

    def __init__(
        self,
        *args,
        requeue_delay_seconds: float = None,
        error_backoff_seconds: float = None,
        error_backoff_max_seconds: float = None,
        resync_interval_seconds: float = None,
        trigger_poll_seconds: float = None,
        worker_limit: int = None,
        synapse_image: str = None,
        heisenbridge_image: str = None,
        mautrixsignal_image: str = None,
        signald_image: str = None,
        default_storage_size: str = None,
        metrics_enabled: bool = None,
        metrics_port: int = None,
        **kwargs,
    ):
        if requeue_delay_seconds is not None:
            self.requeue_delay_seconds = requeue_delay_seconds

        if error_backoff_seconds is not None:
            self.error_backoff_seconds = error_backoff_seconds

        if error_backoff_max_seconds is not None:
            self.error_backoff_max_seconds = error_backoff_max_seconds

        if resync_interval_seconds is not None:
            self.resync_interval_seconds = resync_interval_seconds

        if trigger_poll_seconds is not None:
            self.trigger_poll_seconds = trigger_poll_seconds

        if worker_limit is not None:
            self.worker_limit = worker_limit

        if synapse_image is not None:
            self.synapse_image = synapse_image

        if heisenbridge_image is not None:
            self.heisenbridge_image = heisenbridge_image

        if mautrixsignal_image is not None:
            self.mautrixsignal_image = mautrixsignal_image

        if signald_image is not None:
            self.signald_image = signald_image

        if default_storage_size is not None:
            self.default_storage_size = default_storage_size

        if metrics_enabled is not None:
            self.metrics_enabled = metrics_enabled

        if metrics_port is not None:
            self.metrics_port = metrics_port

    def error_backoff(self, retry: int) -> float:
        """Exponential backoff for the given retry attempt (0-based)."""
        delay = self.error_backoff_seconds * (2 ** max(retry, 0))
        return min(delay, self.error_backoff_max_seconds)
