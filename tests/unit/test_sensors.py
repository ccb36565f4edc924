"""Unit tests for the sensor framework."""

import pytest
from prometheus_client import CollectorRegistry
from synapse_operator.controllers import HeisenbridgeReconciler
from synapse_operator.sensors import OperatorSensor, PrometheusMonitor, SensorDelegate
from conftest import custom_resource


class BrokenSensor(OperatorSensor):
    def on_reconcile_start(self, kind, name, namespace, trigger_source):
        raise RuntimeError("sensor bug")

    def on_status_update(self, kind, name, namespace, update_fields):
        raise RuntimeError("sensor bug")


@pytest.fixture
def registry():
    return CollectorRegistry()


@pytest.fixture
def monitor(registry):
    return PrometheusMonitor(registry=registry)


class TestPrometheusMonitor:
    def test_reconcile_metrics(self, monitor, registry):
        state = monitor.on_reconcile_start("Synapse", "matrix", "default", "timer")
        monitor.on_reconcile_complete(
            "Synapse", "matrix", "default", state, "requeue_with_error", ValueError("x")
        )
        labels = {
            "kind": "Synapse",
            "name": "matrix",
            "namespace": "default",
            "trigger_source": "timer",
            "result": "requeue_with_error",
        }
        assert registry.get_sample_value("synapseop_reconcile_total", labels) == 1.0
        assert (
            registry.get_sample_value(
                "synapseop_reconcile_errors_total",
                {"kind": "Synapse", "name": "matrix", "namespace": "default", "error_type": "ValueError"},
            )
            == 1.0
        )

    def test_drift_counts_each_field(self, monitor, registry):
        monitor.on_resource_drift_detected("matrix", "default", "Service", ["spec.ports", "spec.type"])
        for field in ("spec.ports", "spec.type"):
            assert (
                registry.get_sample_value(
                    "synapseop_resource_drift_detected_total",
                    {
                        "resource_name": "matrix",
                        "namespace": "default",
                        "resource_type": "Service",
                        "drift_field": field,
                    },
                )
                == 1.0
            )


class TestSensorDelegate:
    def test_broken_sensor_does_not_interrupt(self, monitor, registry):
        delegate = SensorDelegate()
        delegate.add(BrokenSensor())
        delegate.add(monitor)
        state = delegate.on_reconcile_start("Synapse", "matrix", "default", "change")
        delegate.on_reconcile_complete("Synapse", "matrix", "default", state, "halt")
        delegate.on_status_update("Synapse", "matrix", "default", ["state"])
        assert (
            registry.get_sample_value(
                "synapseop_reconcile_total",
                {
                    "kind": "Synapse",
                    "name": "matrix",
                    "namespace": "default",
                    "trigger_source": "change",
                    "result": "halt",
                },
            )
            == 1.0
        )

    def test_remove(self, monitor):
        delegate = SensorDelegate()
        delegate.add(monitor)
        delegate.remove(monitor)
        assert delegate.on_reconcile_start("Synapse", "matrix", "default", "timer") is None

    async def test_pipeline_reports_through_delegate(self, store, monitor, registry, api_client):
        store.put(custom_resource("Heisenbridge", "irc", {"synapse": {"name": "matrix"}}))
        delegate = SensorDelegate()
        delegate.add(monitor)
        await HeisenbridgeReconciler(store, sensor=delegate).reconcile("irc", "default", "change")
        assert (
            registry.get_sample_value(
                "synapseop_resource_sync_total",
                {
                    "resource_name": "irc-heisenbridge",
                    "namespace": "default",
                    "resource_type": "Deployment",
                    "operation": "created",
                    "result": "success",
                },
            )
            == 1.0
        )
        assert (
            registry.get_sample_value(
                "synapseop_status_updates_total",
                {"kind": "Heisenbridge", "name": "irc", "namespace": "default", "update_field": "state"},
            )
            == 1.0
        )
