"""Sensor delegation for fan-out pattern.

SensorDelegate routes sensor events to multiple monitoring backends
simultaneously. Each backend receives the same events and keeps independent
state. A failing backend is logged and never interrupts reconciliation.
"""

from typing import Set, Dict, List, Optional, Any
import logging

from synapse_operator.sensors.base import OperatorSensor

logger = logging.getLogger(__name__)


class SensorDelegate(OperatorSensor):
    """Delegate sensor that fans out events to multiple backends.

    Example:
        delegate = SensorDelegate()
        delegate.add(PrometheusMonitor())

        state = delegate.on_reconcile_start("Synapse", "my-synapse", "default", "timer")
        delegate.on_reconcile_complete("Synapse", "my-synapse", "default", state, "halt")
    """

    def __init__(self) -> None:
        self._sensors: Set[OperatorSensor] = set()

    def add(self, sensor: OperatorSensor) -> None:
        logger.info(f"Adding sensor: {sensor.__class__.__name__}")
        self._sensors.add(sensor)

    def remove(self, sensor: OperatorSensor) -> None:
        logger.info(f"Removing sensor: {sensor.__class__.__name__}")
        self._sensors.discard(sensor)

    def clear(self) -> None:
        logger.info(f"Clearing {len(self._sensors)} sensors")
        self._sensors.clear()

    def _start(self, hook: str, *args) -> Optional[Dict[OperatorSensor, Any]]:
        if not self._sensors:
            return None
        states = {}
        for sensor in self._sensors:
            try:
                state = getattr(sensor, hook)(*args)
                if state is not None:
                    states[sensor] = state
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.{hook}: {e}",
                    exc_info=True,
                )
        return states if states else None

    def _emit(self, hook: str, *args, **kwargs) -> None:
        for sensor in self._sensors:
            try:
                getattr(sensor, hook)(*args, **kwargs)
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.{hook}: {e}",
                    exc_info=True,
                )

    def _complete(
        self, hook: str, state: Optional[Dict[OperatorSensor, Any]], *args, **kwargs
    ) -> None:
        """Forward a complete hook, handing each sensor its own start state."""
        for sensor in self._sensors:
            try:
                sensor_state = state.get(sensor) if state else None
                getattr(sensor, hook)(*args, state=sensor_state, **kwargs)
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.{hook}: {e}",
                    exc_info=True,
                )

    # =============================================================================
    # Pipeline Lifecycle Hooks
    # =============================================================================

    def on_reconcile_start(
        self,
        kind: str,
        name: str,
        namespace: str,
        trigger_source: str,
    ) -> Optional[Dict[OperatorSensor, Any]]:
        return self._start("on_reconcile_start", kind, name, namespace, trigger_source)

    def on_reconcile_complete(
        self,
        kind: str,
        name: str,
        namespace: str,
        state: Optional[Dict[OperatorSensor, Any]],
        result: str,
        error: Optional[BaseException] = None,
    ) -> None:
        self._complete(
            "on_reconcile_complete",
            state,
            kind,
            name,
            namespace,
            result=result,
            error=error,
        )

    # =============================================================================
    # Managed Object Hooks
    # =============================================================================

    def on_resource_sync_start(
        self,
        resource_name: str,
        namespace: str,
        resource_type: str,
    ) -> Optional[Dict[OperatorSensor, Any]]:
        return self._start(
            "on_resource_sync_start", resource_name, namespace, resource_type
        )

    def on_resource_sync_complete(
        self,
        resource_name: str,
        namespace: str,
        resource_type: str,
        state: Optional[Dict[OperatorSensor, Any]],
        operation: str,
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        self._complete(
            "on_resource_sync_complete",
            state,
            resource_name,
            namespace,
            resource_type,
            operation=operation,
            success=success,
            error=error,
        )

    def on_resource_drift_detected(
        self,
        resource_name: str,
        namespace: str,
        resource_type: str,
        drift_fields: List[str],
    ) -> None:
        self._emit(
            "on_resource_drift_detected",
            resource_name,
            namespace,
            resource_type,
            drift_fields,
        )

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
        self._emit("on_status_update", kind, name, namespace, update_fields)

    def on_reconcile_triggered(self, kind: str, name: str, namespace: str) -> None:
        self._emit("on_reconcile_triggered", kind, name, namespace)

    def asdict(self) -> Dict[str, Any]:
        return {
            sensor.__class__.__name__: sensor.asdict() for sensor in self._sensors
        }
