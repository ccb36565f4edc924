import kopf
import logging
import synapse_operator.handlers.synapse as synapse
import synapse_operator.handlers.heisenbridge as heisenbridge
import synapse_operator.handlers.mautrixsignal as mautrixsignal
import synapse_operator.handlers.probes as probes
from synapse_operator.types.settings import Settings
from synapse_operator.controllers.base import BaseReconciler
from synapse_operator.resources.base import BaseResource
from synapse_operator.store import KubeStore
from synapse_operator.sensors import init_metrics_server, SensorDelegate, PrometheusMonitor
from kubernetes_asyncio import config
from kubernetes_asyncio.client.api_client import ApiClient


@kopf.on.startup()
async def setup(
    settings: kopf.OperatorSettings, memo: kopf.Memo, logger: logging.Logger, **kwargs
):
    # In-cluster config first (production), then local kubeconfig (development)
    try:
        config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        logger.info("In-cluster config not found, trying local kubeconfig")
        try:
            await config.load_kube_config()
            logger.info("Loaded local Kubernetes configuration")
        except config.ConfigException as e:
            logger.error(f"Failed to load Kubernetes configuration: {e}")
            raise

    memo.conf = Settings()
    BaseResource.conf = memo.conf

    # One ApiClient shared by every pipeline
    memo.api_client = ApiClient()
    memo.store = KubeStore(memo.api_client)
    BaseReconciler.shared_api_client = memo.api_client
    logger.info("Shared Kubernetes API client initialized")

    sensor_delegate = SensorDelegate()
    sensor_delegate.add(PrometheusMonitor())
    memo.sensor = sensor_delegate
    logger.info("Sensor infrastructure initialized with PrometheusMonitor")

    if memo.conf.metrics_enabled:
        try:
            init_metrics_server(memo.conf.metrics_port)
        except Exception as e:
            # Operator keeps running without metrics
            logger.error(f"Failed to start metrics server: {e}")
            logger.warning("Continuing without metrics server")

    # Limit the number of concurrent workers to prevent flooding the API
    settings.batching.worker_limit = memo.conf.worker_limit

    # Only post events to the Kubernetes API for warnings and above
    settings.posting.enabled = True
    settings.posting.level = logging.WARNING


@kopf.on.cleanup()
async def cleanup(memo: kopf.Memo, logger: logging.Logger, **kwargs):
    """Cleanup handler for operator shutdown."""
    logger.info("Shutting down operator...")

    sensor = getattr(memo, "sensor", None)
    if sensor:
        sensor.clear()

    api_client = getattr(memo, "api_client", None)
    if api_client:
        await api_client.close()
        logger.info("Shared API client closed")

    logger.info("Operator shutdown complete")


__all__ = [
    "synapse",
    "heisenbridge",
    "mautrixsignal",
    "probes",
]
