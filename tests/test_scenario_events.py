"""
Tests for scenario events and scenario parsing.

Tests for:
- What-if conditions, risk events, capacity actions
- One-shot trigger schedule
- Scenario / ScenarioParameters records
"""

import random

import pytest

from twinsim.services.digital_twin import DigitalTwin
from twinsim.services.errors import ScenarioConfigurationError
from twinsim.services.optimization import OptimizationGoal
from twinsim.services.simulation import (
    CapacityAction,
    CapacityActionType,
    ConditionType,
    RiskEvent,
    RiskType,
    Scenario,
    ScenarioParameters,
    ScenarioType,
    TriggerSchedule,
    WhatIfCondition,
)


@pytest.fixture
def twins(line_record, cell_record):
    return {
        "1": DigitalTwin.from_record(line_record),
        "cell-7": DigitalTwin.from_record(cell_record),
    }


# ============================================
# What-if Conditions
# ============================================

class TestWhatIfCondition:
    """Tests for WhatIfCondition."""

    def test_from_dict(self):
        condition = WhatIfCondition.from_dict({
            "type": "efficiency_change", "trigger_time": 2, "value": 0.5, "name": "Slowdown",
        })
        assert condition.condition_type == ConditionType.EFFICIENCY_CHANGE
        assert condition.trigger_time == 2.0
        assert condition.name == "Slowdown"
        assert condition.target_twins is None

    def test_unknown_type_rejected(self):
        with pytest.raises(ScenarioConfigurationError):
            WhatIfCondition.from_dict({"type": "meteor_strike"})

    def test_efficiency_change_clamped(self, twins):
        condition = WhatIfCondition(ConditionType.EFFICIENCY_CHANGE, 0, value=5.0)
        affected = condition.apply(twins)

        assert affected == ["1", "cell-7"]
        assert twins["1"].state.current_efficiency == 1.0

    def test_capacity_change(self, twins):
        condition = WhatIfCondition(ConditionType.CAPACITY_CHANGE, 0, value=1.5)
        condition.apply(twins, default_capacity=1000.0)

        assert twins["1"].configuration.production_capacity == 1200.0
        # No capacity configured: multiplies the default
        assert twins["cell-7"].configuration.production_capacity == 1500.0

    def test_capacity_change_to_zero(self, twins):
        """A zero multiplier shuts the line; zero stays zero afterwards."""
        condition = WhatIfCondition(ConditionType.CAPACITY_CHANGE, 0, value=0.0)
        condition.apply(twins)
        assert twins["1"].configuration.production_capacity == 0.0

        WhatIfCondition(ConditionType.CAPACITY_CHANGE, 0, value=2.0).apply(twins)
        assert twins["1"].configuration.production_capacity == 0.0

    def test_downtime_event_default(self, twins):
        condition = WhatIfCondition(ConditionType.DOWNTIME_EVENT, 0)
        condition.apply(twins)
        assert twins["1"].state.current_downtime == 30.0
        assert condition.adds_downtime

    def test_resource_change(self, twins):
        WhatIfCondition(ConditionType.RESOURCE_CHANGE, 0, value=0.5).apply(twins)
        assert twins["1"].state.resource_utilization == pytest.approx(0.4)

    def test_targets_restrict_application(self, twins):
        condition = WhatIfCondition(
            ConditionType.DOWNTIME_EVENT, 0, value=60, target_twins=("cell-7",)
        )
        affected = condition.apply(twins)

        assert affected == ["cell-7"]
        assert twins["1"].state.current_downtime == 0.0
        assert twins["cell-7"].state.current_downtime == 60.0


# ============================================
# Risk Events
# ============================================

class TestRiskEvent:
    """Tests for RiskEvent."""

    def test_defaults(self):
        risk = RiskEvent.from_dict({"type": "supply_delay"})
        assert risk.probability == 10.0
        assert risk.impact == 1.0
        assert risk.duration == 120.0

    def test_roll_extremes(self, rng):
        always = RiskEvent(RiskType.QUALITY_ISSUE, probability=100)
        never = RiskEvent(RiskType.QUALITY_ISSUE, probability=0)
        assert all(always.roll(rng) for _ in range(100))
        assert not any(never.roll(rng) for _ in range(100))

    def test_roll_rate(self):
        rng = random.Random(99)
        risk = RiskEvent(RiskType.SUPPLY_DELAY, probability=25)
        hits = sum(risk.roll(rng) for _ in range(4000))
        assert 850 <= hits <= 1150

    def test_equipment_failure(self, twins):
        twins["1"].state.equipment_wear = 0.9
        RiskEvent(RiskType.EQUIPMENT_FAILURE, duration=120).apply(twins)

        assert twins["1"].state.current_downtime == 120.0
        assert twins["1"].state.equipment_wear == 1.0
        assert twins["cell-7"].state.equipment_wear == pytest.approx(0.2)

    def test_quality_issue(self, twins):
        RiskEvent(RiskType.QUALITY_ISSUE).apply(twins)
        assert twins["1"].state.quality_rate == pytest.approx(0.76)

    def test_worker_shortage(self, twins):
        RiskEvent(RiskType.WORKER_SHORTAGE).apply(twins)
        assert twins["1"].state.resource_utilization == pytest.approx(0.56)
        assert twins["1"].state.current_efficiency == pytest.approx(0.72)

    def test_supply_delay_respects_floor(self, twins):
        twins["1"].state.current_efficiency = 0.12
        RiskEvent(RiskType.SUPPLY_DELAY).apply(twins)
        assert twins["1"].state.current_efficiency == 0.1


# ============================================
# Capacity Actions
# ============================================

class TestCapacityAction:
    """Tests for CapacityAction."""

    def test_from_dict_defaults(self):
        action = CapacityAction.from_dict({"action": "increase_capacity", "start_hour": 1})
        assert action.multiplier == 1.2
        assert action.name == "increase_capacity"

    def test_unknown_action_rejected(self):
        with pytest.raises(ScenarioConfigurationError):
            CapacityAction.from_dict({"action": "teleport"})

    def test_increase_capacity(self, twins):
        CapacityAction(CapacityActionType.INCREASE_CAPACITY, 0, multiplier=1.25).apply(twins)
        assert twins["1"].configuration.production_capacity == 1000.0

    def test_increase_on_shut_line_stays_zero(self, twins):
        twins["1"].configuration.production_capacity = 0.0
        CapacityAction(CapacityActionType.INCREASE_CAPACITY, 0, multiplier=2.0).apply(twins)
        assert twins["1"].configuration.production_capacity == 0.0

    def test_add_shift(self, twins):
        CapacityAction(CapacityActionType.ADD_SHIFT, 0).apply(twins)
        assert twins["1"].configuration.production_capacity == 1200.0

    def test_upgrade_equipment_clamped(self, twins):
        CapacityAction(CapacityActionType.UPGRADE_EQUIPMENT, 0).apply(twins)
        assert twins["1"].configuration.current_efficiency == pytest.approx(0.99)
        twins["1"].configuration.current_efficiency = 0.95
        CapacityAction(CapacityActionType.UPGRADE_EQUIPMENT, 0).apply(twins)
        assert twins["1"].configuration.current_efficiency == 1.0

    def test_reduce_downtime(self, twins):
        twins["1"].state.current_downtime = 80
        CapacityAction(CapacityActionType.REDUCE_DOWNTIME, 0, target_twins=("1",)).apply(twins)
        assert twins["1"].state.current_downtime == 40.0


# ============================================
# Trigger Schedule
# ============================================

class TestTriggerSchedule:
    """Events fire exactly once."""

    def test_fires_once_at_trigger(self):
        schedule = TriggerSchedule(["a", "b"], {"a": 1.0, "b": 3.0}.get)

        assert schedule.due(0.0) == []
        assert schedule.due(1.0) == ["a"]
        assert schedule.due(2.0) == []
        assert schedule.due(3.0) == ["b"]
        assert schedule.due(4.0) == []
        assert schedule.pending == 0

    def test_same_hour_evaluated_twice(self):
        schedule = TriggerSchedule(["a"], lambda e: 0.0)
        assert schedule.due(0.0) == ["a"]
        assert schedule.due(0.0) == []

    def test_late_start_releases_overdue(self):
        schedule = TriggerSchedule(["a", "b"], {"a": 1.0, "b": 2.0}.get)
        assert schedule.due(5.0) == ["a", "b"]

    def test_no_trigger_never_fires(self):
        schedule = TriggerSchedule(["a"], lambda e: None)
        assert schedule.due(100.0) == []
        assert schedule.pending == 0


# ============================================
# Scenario Records
# ============================================

class TestScenarioRecords:
    """Tests for Scenario.from_record and ScenarioParameters."""

    def test_json_columns(self):
        scenario = Scenario.from_record({
            "id": 10,
            "scenario_name": "Risk",
            "scenario_type": "risk_assessment",
            "target_twins": "[1, 2]",
            "input_parameters": '{"risk_scenarios": [{"type": "quality_issue", "probability": 50}]}',
            "duration_hours": "4",
        })

        assert scenario.scenario_id == "10"
        assert scenario.scenario_type == ScenarioType.RISK_ASSESSMENT
        assert scenario.target_twins == ("1", "2")
        assert scenario.duration_hours == 4.0
        assert scenario.input_parameters.risk_scenarios[0].probability == 50.0

    def test_unknown_type_rejected(self):
        with pytest.raises(ScenarioConfigurationError):
            Scenario.from_record({"id": 1, "scenario_type": "astrology"})

    def test_negative_duration_rejected(self):
        with pytest.raises(ScenarioConfigurationError):
            Scenario.from_record({"id": 1, "duration_hours": -1})

    def test_bad_event_list_rejected(self):
        with pytest.raises(ScenarioConfigurationError):
            ScenarioParameters.from_dict({"conditions": "efficiency_change"})

    def test_unknown_goal_rejected(self):
        with pytest.raises(ScenarioConfigurationError):
            ScenarioParameters.from_dict({"optimization_goals": {"maximize_profit": True}})

    def test_goals_from_mapping(self):
        params = ScenarioParameters.from_dict({
            "optimization_goals": {"maximize_efficiency": True, "maximize_quality": False},
        })
        assert params.optimization_goals == frozenset({OptimizationGoal.MAXIMIZE_EFFICIENCY})

    def test_merged_overrides_win(self):
        params = ScenarioParameters.from_dict({"efficiency_modifier": 0.9, "custom": "x"})
        merged = params.merged({"efficiency_modifier": 1.1, "duration_hours": 6})

        assert merged.efficiency_modifier == 1.1
        assert merged.duration_hours == 6.0
        assert merged.extras == {"custom": "x"}

    def test_with_modifiers_ignores_unknown(self):
        params = ScenarioParameters().with_modifiers(capacity_modifier=0.95, bogus=1.0)
        assert params.capacity_modifier == 0.95

    def test_to_dict_round_trip(self):
        raw = {
            "conditions": [{"type": "downtime_event", "trigger_time": 1, "value": 15}],
            "capacity_scenarios": [{"action": "add_shift", "start_hour": 2}],
            "optimization_goals": {"maximize_capacity": True},
        }
        params = ScenarioParameters.from_dict(raw)
        assert ScenarioParameters.from_dict(params.to_dict()) == params
