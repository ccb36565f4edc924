"""Base sensor classes for operator monitoring.

This module defines the base OperatorSensor class that provides lifecycle hooks
for monitoring the reconciliation engine. All hooks are no-ops by default,
allowing subclasses to override only the events they care about.

The hook pattern:
- Hooks come in pairs: on_X_start() and on_X_complete()
- Start hooks return an optional state dict for tracking multi-phase operations
- Complete hooks receive the state dict from their corresponding start hook
"""

from typing import Dict, List, Optional, Any
import logging

logger = logging.getLogger(__name__)


class OperatorSensor:
    """Base sensor class for synapse operator monitoring.

    Hooks cover three categories:
    1. Pipeline lifecycle (one reconcile request of a custom resource)
    2. Managed object convergence (create/patch/no-op of a dependent object)
    3. Status writes and cross-resource triggers

    Example:
        class LoggingSensor(OperatorSensor):
            def on_reconcile_start(self, kind, name, namespace, trigger_source):
                return {'start_time': time.time()}

            def on_reconcile_complete(self, kind, name, namespace, state, result, error=None):
                duration = time.time() - state['start_time']
                logger.info(f"Reconciled {kind} {name} in {duration}s")
    """

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
        """Called when a pipeline begins.

        Args:
            kind: Kind of the top-level resource (Synapse, Heisenbridge, ...)
            name: Resource name
            namespace: Kubernetes namespace
            trigger_source: What triggered the pipeline (resume, create, update,
                trigger, timer)

        Returns:
            Optional state dict passed to on_reconcile_complete
        """
        pass

    def on_reconcile_complete(
        self,
        kind: str,
        name: str,
        namespace: str,
        state: Optional[Dict[str, Any]],
        result: str,
        error: Optional[BaseException] = None,
    ) -> None:
        """Called when a pipeline returns its terminal signal.

        Args:
            kind: Kind of the top-level resource
            name: Resource name
            namespace: Kubernetes namespace
            state: State dict returned from on_reconcile_start
            result: Terminal signal kind (halt, requeue, requeue_with_error, error)
            error: Exception carried by the signal, if any
        """
        pass

    # =============================================================================
    # Managed Object Hooks
    # =============================================================================

    def on_resource_sync_start(
        self,
        resource_name: str,
        namespace: str,
        resource_type: str,
    ) -> Optional[Dict[str, Any]]:
        """Called when convergence of a managed object begins.

        Returns:
            Optional state dict passed to on_resource_sync_complete
        """
        pass

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
        """Called when convergence of a managed object completes.

        Args:
            resource_name: Name of the managed object
            namespace: Kubernetes namespace
            resource_type: Kind of the managed object
            state: State dict returned from on_resource_sync_start
            operation: Operation performed (created, patched, no-op)
            success: Whether the operation succeeded
            error: Exception if the operation failed
        """
        pass

    def on_resource_drift_detected(
        self,
        resource_name: str,
        namespace: str,
        resource_type: str,
        drift_fields: List[str],
    ) -> None:
        """Called when an existing object no longer matches its desired state.

        Args:
            drift_fields: Owned fields that differ from the desired state
        """
        pass

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
        """Called after a status patch was written.

        Args:
            update_fields: Status fields that were written
        """
        pass

    def on_reconcile_triggered(
        self,
        kind: str,
        name: str,
        namespace: str,
    ) -> None:
        """Called when another resource's pipeline was asked to re-run."""
        pass

    # =============================================================================
    # Utility Methods
    # =============================================================================

    def asdict(self) -> Dict[str, Any]:
        """Return sensor state as dictionary."""
        return {}
