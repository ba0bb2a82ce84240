"""Tests for concurrent verification of instance types."""

import asyncio
from typing import Dict, List

import pytest

from fleet_verify.config import VerifyConfig
from fleet_verify.events import VerificationEventType, get_events
from fleet_verify.verification.runner import (
    VerificationExecutor,
    VerificationOutcome,
    verify_instance_types,
    verify_with_config,
)
from fleet_verify.verification.tracker import VerificationTracker
from fleet_verify.verification.types import VerificationStatus


class FakeExecutor:
    """Executor returning canned outcomes and tracking concurrency."""

    def __init__(self, outcomes: Dict[str, object], delay: float = 0.01):
        self.outcomes = outcomes
        self.delay = delay
        self.calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def verify(self, instance_type: str) -> VerificationOutcome:
        self.calls.append(instance_type)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            outcome = self.outcomes.get(instance_type, VerificationOutcome(confirmed=True))
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        finally:
            self.in_flight -= 1


class HangingExecutor:
    async def verify(self, instance_type: str) -> VerificationOutcome:
        await asyncio.sleep(10)
        return VerificationOutcome(confirmed=True)


class NoneExecutor:
    """Executor that forgets to return an outcome for one type."""

    def __init__(self, bad_type: str):
        self.bad_type = bad_type

    async def verify(self, instance_type: str):
        await asyncio.sleep(0.01)
        if instance_type == self.bad_type:
            return None
        return VerificationOutcome(confirmed=True, metric=5)


class TestVerificationExecutorProtocol:
    def test_fake_executor_satisfies_protocol(self):
        assert isinstance(FakeExecutor({}), VerificationExecutor)


class TestVerifyInstanceTypes:
    """Test verify_instance_types()."""

    @pytest.mark.asyncio
    async def test_records_each_outcome(self):
        tracker = VerificationTracker()
        executor = FakeExecutor(
            {
                "c5.large": VerificationOutcome(confirmed=True, metric=120),
                "p3.2xlarge": VerificationOutcome(confirmed=False, error="no capacity"),
            }
        )

        results = await verify_instance_types(["c5.large", "p3.2xlarge"], executor, tracker)

        assert results == {
            "c5.large": VerificationStatus(True, True, 120),
            "p3.2xlarge": VerificationStatus(True, False, -1),
        }
        assert tracker.get_status("c5.large") == results["c5.large"]
        assert tracker.get_status("p3.2xlarge") == results["p3.2xlarge"]

    @pytest.mark.asyncio
    async def test_executor_exception_recorded_as_inconclusive(self):
        tracker = VerificationTracker()
        executor = FakeExecutor({"c5.large": RuntimeError("launch failed")})

        results = await verify_instance_types(["c5.large", "m5.large"], executor, tracker)

        assert results["c5.large"] == VerificationStatus(True, False, -1)
        assert results["m5.large"].confirmed
        failed = [
            e for e in get_events() if e.event_type == VerificationEventType.VERIFICATION_FAILED
        ]
        assert len(failed) == 1
        assert failed[0].data["instance_type"] == "c5.large"
        assert "launch failed" in failed[0].data["error"]

    @pytest.mark.asyncio
    async def test_timeout_recorded_as_inconclusive(self):
        tracker = VerificationTracker()

        results = await verify_instance_types(
            ["c5.large"], HangingExecutor(), tracker, timeout_seconds=0.05
        )

        assert results["c5.large"] == VerificationStatus(True, False, -1)

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        tracker = VerificationTracker()
        executor = FakeExecutor({}, delay=0.02)
        instance_types = [f"t{i}" for i in range(10)]

        await verify_instance_types(instance_types, executor, tracker, max_concurrency=3)

        assert executor.max_in_flight <= 3
        assert sorted(executor.calls) == sorted(instance_types)

    @pytest.mark.asyncio
    async def test_duplicates_verified_once(self):
        tracker = VerificationTracker()
        executor = FakeExecutor({})

        results = await verify_instance_types(["b", "a", "b"], executor, tracker)

        assert sorted(executor.calls) == ["a", "b"]
        assert list(results) == ["b", "a"]

    @pytest.mark.asyncio
    async def test_empty_list_does_nothing(self):
        executor = FakeExecutor({})

        assert await verify_instance_types([], executor, VerificationTracker()) == {}
        assert executor.calls == []
        assert get_events() == []

    @pytest.mark.asyncio
    async def test_invalid_concurrency_raises(self):
        with pytest.raises(ValueError):
            await verify_instance_types(
                ["a"], FakeExecutor({}), VerificationTracker(), max_concurrency=0
            )

    @pytest.mark.asyncio
    async def test_emits_start_and_complete_events(self):
        tracker = VerificationTracker()
        executor = FakeExecutor({"b": VerificationOutcome(confirmed=False)})

        await verify_instance_types(["a", "b"], executor, tracker)

        events = get_events()
        assert events[0].event_type == VerificationEventType.VERIFICATION_STARTED
        assert events[-1].event_type == VerificationEventType.VERIFICATION_COMPLETE
        assert events[-1].data["confirmed"] == ["a"]
        assert events[-1].data["inconclusive"] == ["b"]

    @pytest.mark.asyncio
    async def test_plan_then_verify_then_plan(self, store_path, existing_store):
        """Verified types are confirmed on the next plan and persisted."""
        tracker = VerificationTracker(store_path=store_path)
        for instance_type, status in existing_store.items():
            tracker._cache[instance_type] = status

        _, to_verify = tracker.plan(["a", "b", "c", "d"])
        assert to_verify == ["c", "d"]

        await verify_instance_types(to_verify, FakeExecutor({}), tracker)

        reloaded = VerificationTracker(store_path=store_path)
        assert reloaded.plan(["c", "d"]) == (["c", "d"], [])

    @pytest.mark.asyncio
    async def test_non_outcome_result_recorded_as_inconclusive(self):
        tracker = VerificationTracker()

        results = await verify_instance_types(
            ["a", "b", "c"], NoneExecutor("b"), tracker, max_concurrency=3
        )

        assert results == {
            "a": VerificationStatus(True, True, 5),
            "b": VerificationStatus(True, False, -1),
            "c": VerificationStatus(True, True, 5),
        }
        failed = [
            e for e in get_events() if e.event_type == VerificationEventType.VERIFICATION_FAILED
        ]
        assert [e.data["instance_type"] for e in failed] == ["b"]
        assert "NoneType" in failed[0].data["error"]


class TestVerifyWithConfig:
    """Test verify_with_config()."""

    @pytest.mark.asyncio
    async def test_uses_configured_concurrency(self):
        executor = FakeExecutor({}, delay=0.02)
        tracker = VerificationTracker()
        config = VerifyConfig(max_concurrency=2)

        await verify_with_config([f"t{i}" for i in range(6)], executor, tracker, config)

        assert executor.max_in_flight == 2
        started = get_events()[0]
        assert started.data["max_concurrency"] == 2

    @pytest.mark.asyncio
    async def test_uses_configured_timeout(self):
        tracker = VerificationTracker()
        config = VerifyConfig(timeout_seconds=0.05)

        results = await verify_with_config(["c5.large"], HangingExecutor(), tracker, config)

        assert results["c5.large"] == VerificationStatus(True, False, -1)

    @pytest.mark.asyncio
    async def test_defaults_to_global_config_and_tracker(self, monkeypatch, store_path):
        monkeypatch.setenv("FLEET_VERIFY_STORE", store_path)
        monkeypatch.setenv("FLEET_VERIFY_MAX_CONCURRENCY", "1")
        executor = FakeExecutor({}, delay=0.01)

        await verify_with_config(["a", "b", "c"], executor)

        assert executor.max_in_flight == 1
        assert VerificationTracker(store_path).plan(["a", "b", "c"]) == (["a", "b", "c"], [])
