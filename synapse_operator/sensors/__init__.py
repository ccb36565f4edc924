"""Synapse Operator Sensor Framework.

Non-invasive instrumentation of the reconciliation engine through a
hook-based pattern.

Key components:
- OperatorSensor: Base class defining lifecycle hooks for engine events
- SensorDelegate: Fan-out pattern for routing events to multiple sensor backends
- PrometheusMonitor: Prometheus metrics exporter
"""

from synapse_operator.sensors.base import OperatorSensor
from synapse_operator.sensors.delegate import SensorDelegate
from synapse_operator.sensors.prometheus import PrometheusMonitor
from synapse_operator.sensors.server import init_metrics_server

__all__ = [
    "OperatorSensor",
    "SensorDelegate",
    "PrometheusMonitor",
    "init_metrics_server",
]
