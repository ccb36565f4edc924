"""Prometheus monitoring backend for the synapse operator.

PrometheusMonitor collects the engine's lifecycle events and exposes them as
Prometheus metrics:

1. Pipeline health - duration, terminal signal, errors
2. Managed object convergence - operation counts, latency, drift
3. Status writes and cross-resource triggers
"""

from typing import Dict, List, Optional, Any
import time
import logging

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram

from synapse_operator.sensors.base import OperatorSensor

logger = logging.getLogger(__name__)


class PrometheusMonitor(OperatorSensor):
    """Prometheus metrics monitor for the synapse operator.

    Metrics are registered on ``registry`` (the process-wide default registry
    unless one is given), so tests can create independent monitors.
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        super().__init__()

        # =============================================================================
        # Pipeline Metrics
        # =============================================================================

        self.reconcile_duration = Histogram(
            "synapseop_reconcile_duration_seconds",
            "Time spent running a reconcile pipeline",
            labelnames=["kind", "namespace", "trigger_source", "result"],
            buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
            registry=registry,
        )

        self.reconcile_total = Counter(
            "synapseop_reconcile_total",
            "Total number of reconcile pipelines run",
            labelnames=["kind", "name", "namespace", "trigger_source", "result"],
            registry=registry,
        )

        self.reconcile_errors = Counter(
            "synapseop_reconcile_errors_total",
            "Total number of pipelines that ended with an error",
            labelnames=["kind", "name", "namespace", "error_type"],
            registry=registry,
        )

        # =============================================================================
        # Managed Object Metrics
        # =============================================================================

        self.resource_sync_duration = Histogram(
            "synapseop_resource_sync_duration_seconds",
            "Time spent converging managed objects",
            labelnames=["namespace", "resource_type", "operation", "result"],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
            registry=registry,
        )

        self.resource_sync_total = Counter(
            "synapseop_resource_sync_total",
            "Total number of managed object convergences",
            labelnames=[
                "resource_name",
                "namespace",
                "resource_type",
                "operation",
                "result",
            ],
            registry=registry,
        )

        self.resource_sync_errors = Counter(
            "synapseop_resource_sync_errors_total",
            "Total number of managed object convergence errors",
            labelnames=["resource_name", "namespace", "resource_type", "error_type"],
            registry=registry,
        )

        self.resource_drift_detected = Counter(
            "synapseop_resource_drift_detected_total",
            "Total number of drift detections on managed objects",
            labelnames=["resource_name", "namespace", "resource_type", "drift_field"],
            registry=registry,
        )

        # =============================================================================
        # Status and Trigger Metrics
        # =============================================================================

        self.status_updates = Counter(
            "synapseop_status_updates_total",
            "Total number of status fields written",
            labelnames=["kind", "name", "namespace", "update_field"],
            registry=registry,
        )

        self.reconcile_triggers = Counter(
            "synapseop_reconcile_triggers_total",
            "Total number of cross-resource reconcile requests",
            labelnames=["kind", "name", "namespace"],
            registry=registry,
        )

        logger.info("PrometheusMonitor initialized with all metrics")

    # =============================================================================
    # Pipeline Lifecycle Hooks
    # =============================================================================

    def on_reconcile_start(
        self,
        kind: str,
        name: str,
        namespace: str,
        trigger_source: str,
    ) -> Optional[Dict[str, Any]]:
        return {
            "start_time": time.time(),
            "trigger_source": trigger_source,
        }

    def on_reconcile_complete(
        self,
        kind: str,
        name: str,
        namespace: str,
        state: Optional[Dict[str, Any]],
        result: str,
        error: Optional[BaseException] = None,
    ) -> None:
        """Record pipeline duration and terminal signal."""
        if state:
            duration = time.time() - state["start_time"]
            trigger_source = state["trigger_source"]

            self.reconcile_duration.labels(
                kind=kind,
                namespace=namespace,
                trigger_source=trigger_source,
                result=result,
            ).observe(duration)

            self.reconcile_total.labels(
                kind=kind,
                name=name,
                namespace=namespace,
                trigger_source=trigger_source,
                result=result,
            ).inc()

        if error:
            self.reconcile_errors.labels(
                kind=kind,
                name=name,
                namespace=namespace,
                error_type=error.__class__.__name__,
            ).inc()

    # =============================================================================
    # Managed Object Hooks
    # =============================================================================

    def on_resource_sync_start(
        self,
        resource_name: str,
        namespace: str,
        resource_type: str,
    ) -> Optional[Dict[str, Any]]:
        return {"start_time": time.time()}

    def on_resource_sync_complete(
        self,
        resource_name: str,
        namespace: str,
        resource_type: str,
        state: Optional[Dict[str, Any]],
        operation: str,
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        """Record convergence duration and result."""
        result = "success" if success else "failure"
        if state:
            duration = time.time() - state["start_time"]
            self.resource_sync_duration.labels(
                namespace=namespace,
                resource_type=resource_type,
                operation=operation,
                result=result,
            ).observe(duration)

        self.resource_sync_total.labels(
            resource_name=resource_name,
            namespace=namespace,
            resource_type=resource_type,
            operation=operation,
            result=result,
        ).inc()

        if error:
            self.resource_sync_errors.labels(
                resource_name=resource_name,
                namespace=namespace,
                resource_type=resource_type,
                error_type=error.__class__.__name__,
            ).inc()

    def on_resource_drift_detected(
        self,
        resource_name: str,
        namespace: str,
        resource_type: str,
        drift_fields: List[str],
    ) -> None:
        for field in drift_fields:
            self.resource_drift_detected.labels(
                resource_name=resource_name,
                namespace=namespace,
                resource_type=resource_type,
                drift_field=field,
            ).inc()

    # =============================================================================
    # Status and Trigger Hooks
    # =============================================================================

    def on_status_update(
        self,
        kind: str,
        name: str,
        namespace: str,
        update_fields: List[str],
    ) -> None:
        for field in update_fields:
            self.status_updates.labels(
                kind=kind,
                name=name,
                namespace=namespace,
                update_field=field,
            ).inc()

    def on_reconcile_triggered(self, kind: str, name: str, namespace: str) -> None:
        self.reconcile_triggers.labels(kind=kind, name=name, namespace=namespace).inc()
