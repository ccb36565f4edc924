"""Unit tests for StatusPatcher and CrossResourceTrigger."""

import pytest
from synapse_operator.reconcile import CrossResourceTrigger, StatusPatcher
from synapse_operator.types.models import (
    STATE_FAILED,
    STATE_RUNNING,
    ResourceStatus,
    SynapseStatus,
)
from synapse_operator.types.schemas import ResourceStatusSchema
from synapse_operator.utils.errors import NotFoundError


class TestStatusRecord:
    def test_equality_covers_declared_fields_only(self):
        a = ResourceStatus(state=STATE_RUNNING, reason="")
        b = ResourceStatus(state=STATE_RUNNING, reason="", kopf={"progress": {}})
        assert a == b
        assert a != ResourceStatus(state=STATE_FAILED, reason="")

    def test_merge_skips_unset_fields(self):
        persisted = ResourceStatus(state=STATE_RUNNING, reason="", needs_reconcile=True)
        merged = persisted.merged(ResourceStatus(state=STATE_FAILED, reason="bad"))
        assert merged.state == STATE_FAILED
        assert merged.reason == "bad"
        assert merged.needs_reconcile is True

    def test_false_is_a_set_value(self):
        persisted = ResourceStatus(needs_reconcile=True)
        merged = persisted.merged(ResourceStatus(needs_reconcile=False))
        assert merged.diff(persisted) == ["needs_reconcile"]


class TestStatusPatcher:
    async def test_writes_status_of_resource_without_status(self, store, synapse_body, sensor):
        patcher = StatusPatcher(store, sensor=sensor)
        changed = await patcher.update_status(
            "Synapse", "default", "matrix", ResourceStatus(state=STATE_RUNNING, reason="")
        )
        assert changed is True
        assert store.peek("Synapse", "default", "matrix")["status"] == {
            "state": STATE_RUNNING,
            "reason": "",
        }
        assert sensor.named("status") == [("status", "Synapse", "matrix", ("state", "reason"))]

    async def test_unchanged_status_is_not_written(self, store, synapse_body):
        patcher = StatusPatcher(store)
        candidate = ResourceStatus(state=STATE_RUNNING, reason="")
        await patcher.update_status("Synapse", "default", "matrix", candidate)
        writes = store.writes()
        assert await patcher.update_status("Synapse", "default", "matrix", candidate) is False
        assert store.writes() == writes

    async def test_only_changed_fields_are_patched(self, store, synapse_body):
        patcher = StatusPatcher(store)
        await patcher.update_status(
            "Synapse", "default", "matrix", ResourceStatus(state=STATE_RUNNING, reason="")
        )
        await patcher.update_status(
            "Synapse", "default", "matrix", ResourceStatus(needs_reconcile=True)
        )
        assert store.peek("Synapse", "default", "matrix")["status"] == {
            "state": STATE_RUNNING,
            "reason": "",
            "needsReconcile": True,
        }

    async def test_foreign_status_keys_survive(self, store, synapse_body):
        store.objects[("Synapse", "default", "matrix")]["status"] = {"kopf": {"dummy": "x"}}
        await StatusPatcher(store).update_status(
            "Synapse", "default", "matrix", ResourceStatus(state=STATE_RUNNING)
        )
        status = store.peek("Synapse", "default", "matrix")["status"]
        assert status["kopf"] == {"dummy": "x"}
        assert status["state"] == STATE_RUNNING

    async def test_synapse_status_fields(self, store, synapse_body):
        await StatusPatcher(store).update_status(
            "Synapse",
            "default",
            "matrix",
            SynapseStatus(
                homeserver_configuration={"serverName": "example.com", "reportStats": False},
                bridges={"heisenbridge": ["irc"], "mautrixsignal": []},
            ),
        )
        status = store.peek("Synapse", "default", "matrix")["status"]
        assert status["homeserverConfiguration"]["serverName"] == "example.com"
        assert status["bridges"]["heisenbridge"] == ["irc"]

    async def test_missing_resource_raises(self, store):
        with pytest.raises(NotFoundError):
            await StatusPatcher(store).update_status(
                "Synapse", "default", "absent", ResourceStatus(state=STATE_RUNNING)
            )

    def test_patch_is_guarded_by_resource_version(self):
        body = {"metadata": {"resourceVersion": "42"}, "status": {"state": "RUNNING"}}
        patch = StatusPatcher.prepare_status_patch(
            body,
            ResourceStatusSchema(),
            ResourceStatus(state="RUNNING", needs_reconcile=True),
            ["needs_reconcile"],
        )
        assert patch == [
            {"op": "replace", "path": "/metadata/resourceVersion", "value": "42"},
            {"op": "add", "path": "/status/needsReconcile", "value": True},
        ]


class TestCrossResourceTrigger:
    async def test_sets_needs_reconcile(self, store, synapse_body, sensor):
        trigger = CrossResourceTrigger(StatusPatcher(store), sensor=sensor)
        assert await trigger.request_reconcile("Synapse", "default", "matrix") is True
        assert store.peek("Synapse", "default", "matrix")["status"]["needsReconcile"] is True
        assert sensor.named("triggered") == [("triggered", "Synapse", "matrix")]

    async def test_already_flagged_target_is_not_rewritten(self, store, synapse_body, sensor):
        trigger = CrossResourceTrigger(StatusPatcher(store), sensor=sensor)
        await trigger.request_reconcile("Synapse", "default", "matrix")
        writes = store.writes()
        assert await trigger.request_reconcile("Synapse", "default", "matrix") is False
        assert store.writes() == writes
        assert len(sensor.named("triggered")) == 1

    async def test_missing_target_is_a_no_op(self, store):
        trigger = CrossResourceTrigger(StatusPatcher(store))
        assert await trigger.request_reconcile("Synapse", "default", "absent") is False
        assert store.writes() == 0

    async def test_keeps_other_status_fields(self, store, synapse_body):
        patcher = StatusPatcher(store)
        await patcher.update_status(
            "Synapse", "default", "matrix", ResourceStatus(state=STATE_RUNNING, reason="")
        )
        await CrossResourceTrigger(patcher).request_reconcile("Synapse", "default", "matrix")
        status = store.peek("Synapse", "default", "matrix")["status"]
        assert status["state"] == STATE_RUNNING
