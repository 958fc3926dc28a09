"""
Tests for the simulation engine.

Tests for:
- Clock and timeline construction
- Seeded determinism and run isolation
- Error handling (configuration errors, failures, cancellation)
- Run serialisation
"""

import json

import pytest

from twinsim import config as settings
from twinsim.services.digital_twin import StepUpdater
from twinsim.services.errors import ScenarioConfigurationError, TwinNotFoundError
from twinsim.services.simulation import (
    RunStatus,
    Scenario,
    SimulationEngine,
    SimulationRun,
)


class ExplodingUpdater(StepUpdater):
    """Fails on a chosen step."""

    def __init__(self, fail_at, **kwargs):
        super().__init__(**kwargs)
        self.fail_at = fail_at

    def update(self, twin, overrides, step, timestamp=None, disrupted=False):
        if step == self.fail_at:
            raise RuntimeError("sensor feed lost")
        return super().update(twin, overrides, step, timestamp=timestamp, disrupted=disrupted)


# ============================================
# Clock / Timeline
# ============================================

class TestSimulationClock:
    """Tests for timeline construction."""

    def test_one_step_per_hour(self, engine, make_scenario, start_time):
        run = engine.execute(make_scenario(duration=5), start_time=start_time)

        assert run.status == RunStatus.COMPLETED
        assert [ts.step for ts in run.timeline] == [0, 1, 2, 3, 4]
        assert run.timeline[0].timestamp == "2024-01-15 06:00:00"
        assert run.timeline[4].timestamp == "2024-01-15 10:00:00"
        assert run.start_time == "2024-01-15 06:00:00"
        assert run.end_time == "2024-01-15 11:00:00"

    def test_partial_hour_rounds_up(self, engine, make_scenario, start_time):
        run = engine.execute(make_scenario(duration=1.5), start_time=start_time)
        assert len(run.timeline) == 2

    def test_zero_duration(self, engine, make_scenario, start_time):
        """A 0-hour run has an empty timeline and a zeroed summary."""
        run = engine.execute(make_scenario(duration=0), start_time=start_time)

        assert run.status == RunStatus.COMPLETED
        assert run.timeline == []
        assert run.summary["total_steps"] == 0
        assert run.summary["total_output"] == 0.0
        assert run.summary["average_efficiency"] == 0.0
        assert run.end_time == run.start_time

    def test_duration_override(self, engine, make_scenario, start_time):
        run = engine.execute(
            make_scenario(duration=10),
            run_parameters={"duration_hours": 2},
            start_time=start_time,
        )
        assert len(run.timeline) == 2
        assert run.duration_hours == 2.0

    def test_every_twin_in_every_step(self, engine, make_scenario, start_time):
        run = engine.execute(make_scenario(targets=[1, "cell-7"]), start_time=start_time)
        for time_step in run.timeline:
            assert list(time_step.twins) == ["1", "cell-7"]

    def test_cumulative_output_monotone(self, engine, make_scenario, start_time):
        run = engine.execute(make_scenario(duration=24), start_time=start_time)
        cumulative = [ts.twins["1"].metrics["cumulative_output"] for ts in run.timeline]
        assert all(b >= a for a, b in zip(cumulative, cumulative[1:]))

    def test_efficiency_stays_in_range(self, engine, make_scenario, start_time):
        run = engine.execute(
            make_scenario(targets=["1", "cell-7"], duration=48), start_time=start_time
        )
        for time_step in run.timeline:
            for snapshot in time_step.twins.values():
                assert 0.1 <= snapshot.state.current_efficiency <= 1.0
                assert 0.0 <= snapshot.state.equipment_wear <= 1.0
                assert 0.0 <= snapshot.state.worker_fatigue <= 1.0
                assert snapshot.state.current_downtime >= 0.0

    def test_run_records_initial_twins(self, engine, make_scenario, start_time):
        run = engine.execute(make_scenario(duration=3), start_time=start_time)
        assert run.twins["1"]["state"]["current_output"] == 0.0
        assert run.timeline[-1].twins["1"].state.current_output > 0.0


# ============================================
# Determinism and Isolation
# ============================================

class TestDeterminism:
    """Seeded engines reproduce runs exactly."""

    def test_same_seed_same_timeline(self, registry, make_scenario, start_time):
        scenario = make_scenario(targets=["1", "cell-7"], duration=12)

        first = SimulationEngine(registry, seed=99, config=settings.TestingConfig).execute(
            scenario, start_time=start_time
        )
        second = SimulationEngine(registry, seed=99, config=settings.TestingConfig).execute(
            scenario, start_time=start_time
        )

        assert json.dumps([ts.to_dict() for ts in first.timeline]) == \
            json.dumps([ts.to_dict() for ts in second.timeline])
        assert first.summary == second.summary

    def test_different_seed_differs(self, registry, make_scenario, start_time):
        scenario = make_scenario(duration=4)
        first = SimulationEngine(registry, seed=1, config=settings.TestingConfig).execute(
            scenario, start_time=start_time
        )
        second = SimulationEngine(registry, seed=2, config=settings.TestingConfig).execute(
            scenario, start_time=start_time
        )
        assert first.summary["total_output"] != second.summary["total_output"]

    def test_source_twins_untouched(self, registry, engine, make_scenario, start_time):
        params = {"conditions": [{"type": "downtime_event", "trigger_time": 0, "value": 90}]}
        engine.execute(
            make_scenario("what_if", params=params, duration=4), start_time=start_time
        )

        twin = registry.get("1")
        assert twin.state.current_output == 0.0
        assert twin.state.current_downtime == 0.0

    def test_twin_source_mapping_of_records(self, line_record, make_scenario, start_time):
        engine = SimulationEngine({"1": line_record}, seed=5, config=settings.TestingConfig)
        run = engine.execute(make_scenario(duration=2), start_time=start_time)
        assert len(run.timeline) == 2


# ============================================
# Errors
# ============================================

class TestErrorHandling:
    """Configuration errors, failures and cancellation."""

    def test_missing_twin_raises_before_steps(self, engine, make_scenario):
        with pytest.raises(TwinNotFoundError) as exc_info:
            engine.execute(make_scenario(targets=["1", "ghost"]))
        assert exc_info.value.twin_id == "ghost"

    def test_invalid_scenario_record(self, engine):
        with pytest.raises(ScenarioConfigurationError):
            engine.execute({"scenario_type": "standard"})

    def test_negative_override_rejected(self, engine, make_scenario):
        with pytest.raises(ScenarioConfigurationError):
            engine.execute(make_scenario(), run_parameters={"duration_hours": -2})

    def test_failure_marks_run_failed(self, registry, make_scenario, start_time):
        engine = SimulationEngine(
            registry, seed=3, config=settings.TestingConfig,
            step_updater=ExplodingUpdater(fail_at=2),
        )

        with pytest.raises(RuntimeError, match="sensor feed lost") as exc_info:
            engine.execute(make_scenario(duration=5), start_time=start_time)

        run = exc_info.value.simulation_run
        assert run.status == RunStatus.FAILED
        assert run.error == "sensor feed lost"
        assert len(run.timeline) == 2

    def test_cancellation_returns_partial_timeline(self, engine, make_scenario, start_time):
        calls = []

        def cancel_after_three():
            calls.append(1)
            return len(calls) > 3

        run = engine.execute(
            make_scenario(duration=10),
            cancel_check=cancel_after_three,
            start_time=start_time,
        )

        assert run.status == RunStatus.CANCELLED
        assert len(run.timeline) == 3
        assert run.summary["total_steps"] == 3
        assert run.end_time == "2024-01-15 09:00:00"

    def test_scenario_object_accepted(self, engine, make_scenario, start_time):
        scenario = Scenario.from_record(make_scenario(duration=1))
        run = engine.execute(scenario, start_time=start_time)
        assert run.scenario_id == scenario.scenario_id
        assert run.scenario_type == "standard"


# ============================================
# Serialisation
# ============================================

class TestRunSerialization:
    """Runs survive a JSON round-trip."""

    def test_json_round_trip(self, engine, make_scenario, start_time):
        params = {"risk_scenarios": [{"type": "quality_issue", "probability": 50}]}
        run = engine.execute(
            make_scenario("risk_assessment", targets=["1", "cell-7"], params=params, duration=6),
            start_time=start_time,
        )

        restored = SimulationRun.from_json(run.to_json())

        assert restored.to_dict() == run.to_dict()
        assert restored.status == RunStatus.COMPLETED
        assert [ts.step for ts in restored.timeline] == list(range(6))
        assert restored.timeline[3].twins["cell-7"].metrics == run.timeline[3].twins["cell-7"].metrics
        assert restored.risk_assessment == run.risk_assessment

    def test_result_shape(self, engine, make_scenario, start_time):
        data = engine.execute(make_scenario(duration=1), start_time=start_time).to_dict()
        for key in ("scenario_id", "scenario_name", "scenario_type", "start_time",
                    "end_time", "duration_seconds", "duration_hours", "twins",
                    "timeline", "summary"):
            assert key in data
        assert "optimization_results" not in data
