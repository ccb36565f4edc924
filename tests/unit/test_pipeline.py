"""Unit tests for pipeline signals and the pipeline runner."""

import pytest
from typing import Optional, get_type_hints
from conftest import custom_resource
from synapse_operator.reconcile import (
    PipelineRunner,
    evaluate,
    error,
    halt,
    proceed,
    requeue,
    requeue_with_error,
    should_halt_or_requeue,
)
from synapse_operator.store import ReconcileRequest
from synapse_operator.types.settings import Settings
from synapse_operator.utils.errors import (
    ConflictError,
    InvariantViolation,
    UpstreamError,
)

REQUEST = ReconcileRequest("Synapse", "default", "matrix")


def returning(signal, calls=None, name="step"):
    async def step(request):
        if calls is not None:
            calls.append(name)
        return signal

    step.__name__ = name
    return step


class TestSignal:
    def test_only_continue_lets_the_pipeline_go_on(self):
        assert not should_halt_or_requeue(proceed())
        assert should_halt_or_requeue(halt())
        assert should_halt_or_requeue(requeue())
        assert should_halt_or_requeue(requeue_with_error(ValueError()))
        assert should_halt_or_requeue(error(ValueError()))

    def test_error_signals_carry_the_error(self):
        ex = ValueError("boom")
        assert requeue_with_error(ex).is_error
        assert error(ex).error is ex
        assert not requeue(1.0).is_error

    def test_requeue_delay_defaults_to_none(self):
        assert get_type_hints(requeue)["delay"] == Optional[float]
        assert get_type_hints(evaluate)["settings"] == Optional[Settings]
        assert requeue().delay is None

    def test_str(self):
        assert str(halt()) == "halt"
        assert str(requeue(3)) == "requeue(3s)"


class TestEvaluate:
    def setup_method(self):
        self.settings = Settings(
            requeue_delay_seconds=7.0,
            error_backoff_seconds=2.0,
            error_backoff_max_seconds=10.0,
        )

    def test_halt_is_not_requeued(self):
        assert evaluate(halt(), self.settings).requeue is False

    def test_requeue_uses_default_delay(self):
        result = evaluate(requeue(), self.settings)
        assert result.requeue and result.delay == 7.0

    def test_requeue_keeps_explicit_delay(self):
        assert evaluate(requeue(1.5), self.settings).delay == 1.5

    def test_errors_back_off_exponentially(self):
        signal = requeue_with_error(UpstreamError("down", status=503))
        assert evaluate(signal, self.settings, retry=0).delay == 2.0
        assert evaluate(signal, self.settings, retry=2).delay == 8.0
        assert evaluate(signal, self.settings, retry=5).delay == 10.0

    def test_non_retryable_errors_are_not_requeued(self):
        ex = InvariantViolation("foreign controller")
        result = evaluate(error(ex), self.settings)
        assert result.requeue is False
        assert result.error is ex


class TestPipelineRunnerRun:
    async def test_runs_steps_in_order_until_exhausted(self, store):
        calls = []
        runner = PipelineRunner(store)
        steps = [returning(proceed(), calls, "a"), returning(proceed(), calls, "b")]
        result = await runner.run(REQUEST, steps)
        assert result.is_halt
        assert calls == ["a", "b"]

    async def test_first_non_continue_signal_ends_the_pipeline(self, store):
        calls = []
        runner = PipelineRunner(store)
        steps = [
            returning(proceed(), calls, "a"),
            returning(requeue(4.0), calls, "b"),
            returning(proceed(), calls, "c"),
        ]
        result = await runner.run(REQUEST, steps)
        assert result.is_requeue and result.delay == 4.0
        assert calls == ["a", "b"]

    async def test_halt_skips_the_remaining_steps(self, store):
        counters = {"a": 0, "b": 0, "c": 0}

        def counting(signal, name):
            async def step(request):
                counters[name] += 1
                return signal

            step.__name__ = name
            return step

        steps = [counting(proceed(), "a"), counting(halt(), "b"), counting(proceed(), "c")]
        result = await PipelineRunner(store).run(REQUEST, steps)
        assert result.is_halt
        assert counters == {"a": 1, "b": 1, "c": 0}

    async def test_exception_becomes_error_signal(self, store):
        async def explode(request):
            raise RuntimeError("unexpected")

        calls = []
        runner = PipelineRunner(store)
        result = await runner.run(REQUEST, [explode, returning(proceed(), calls)])
        assert result.kind == "error"
        assert isinstance(result.error, RuntimeError)
        assert calls == []

    async def test_conflict_is_surfaced(self, store):
        conflict = ConflictError("stale", status=409)
        runner = PipelineRunner(store)
        result = await runner.run(REQUEST, [returning(requeue_with_error(conflict))])
        assert result.error is conflict

    async def test_empty_pipeline_halts(self, store):
        assert (await PipelineRunner(store).run(REQUEST, [])).is_halt


class TestPipelineRunnerReconcile:
    async def test_missing_resource_halts_without_planning(self, store, sensor):
        planned = []
        runner = PipelineRunner(store, sensor=sensor)
        result = await runner.reconcile(REQUEST, lambda body: planned.append(body) or [])
        assert result.is_halt
        assert planned == []
        assert sensor.named("reconcile_complete") == [
            ("reconcile_complete", "Synapse", "matrix", "halt")
        ]

    async def test_plan_receives_current_body(self, store, sensor):
        store.put(custom_resource("Synapse", "matrix", {"homeserver": {}}))
        seen = []

        def plan(body):
            seen.append(body["metadata"]["resourceVersion"])
            return [returning(requeue())]

        runner = PipelineRunner(store, sensor=sensor)
        result = await runner.reconcile(REQUEST, plan, trigger_source="timer")
        assert result.is_requeue
        assert seen == ["1"]
        assert sensor.named("reconcile_start") == [
            ("reconcile_start", "Synapse", "matrix", "timer")
        ]

    async def test_store_failure_on_load_requeues_with_error(self, store):
        store.errors[("get", "Synapse")] = UpstreamError("unavailable", status=503)
        result = await PipelineRunner(store).reconcile(REQUEST, lambda body: [])
        assert result.kind == "requeue_with_error"

    async def test_failing_plan_is_an_error(self, store):
        store.put(custom_resource("Synapse", "matrix", {}))

        def plan(body):
            raise KeyError("spec")

        result = await PipelineRunner(store).reconcile(REQUEST, plan)
        assert result.kind == "error"


@pytest.mark.parametrize(
    "signal,expected",
    [
        (proceed(), False),
        (halt(), False),
        (requeue(), True),
    ],
)
def test_evaluate_requeue_flag(signal, expected):
    assert evaluate(signal, Settings()).requeue is expected
